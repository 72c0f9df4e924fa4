"""
gdocs-source - Configuration

Two layers:
    SourceSettings  - environment / .env values (GDOCS_* prefix), loaded by
                      pydantic-settings. get_settings() is the cached factory.
    SourceOptions   - the option set a GoogleDocsSource runs with. Built from
                      settings or from a plain mapping that may use the
                      camelCase plugin option names
                      (typeName, foldersIds, fieldsMapper, ...).

Usage:
    from gdocs_source.config import SourceOptions, get_settings

    options = SourceOptions.from_settings(get_settings())
    options = SourceOptions.from_mapping({
        "typeName": "Post",
        "foldersIds": ["1AbC"],
        "refs": {"author": {"typeName": "Author", "create": True}},
    })
    options.validate()

    # Invalidate cache (e.g. in tests):
    get_settings.cache_clear()

Version: 0.1.0
"""

import json
from dataclasses import dataclass, field, fields, replace
from functools import lru_cache
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional, Union

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from .exceptions import ConfigurationError

__all__ = [
    'DEFAULT_SCOPES',
    'RefConfig',
    'SourceOptions',
    'SourceSettings',
    'get_settings',
]

DEFAULT_SCOPES: List[str] = [
    'https://www.googleapis.com/auth/documents.readonly',
    'https://www.googleapis.com/auth/drive.metadata.readonly',
]

DEFAULT_REDIRECT_URIS: List[str] = ['urn:ietf:wg:oauth:2.0:oob', 'http://localhost']

_VALID_LOG_LEVELS = frozenset({"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"})

# camelCase plugin option names -> SourceOptions attribute names
_OPTION_ALIASES: Dict[str, str] = {
    'typeName': 'type_name',
    'apiKey': 'api_key',
    'clientId': 'client_id',
    'clientSecret': 'client_secret',
    'foldersIds': 'folders_ids',
    'fieldsMapper': 'fields_mapper',
    'fieldsDefault': 'fields_default',
    'tokenPath': 'token_path',
    'imageDirectory': 'image_directory',
    'downloadImages': 'download_images',
    'accessType': 'access_type',
    'redirectUris': 'redirect_uris',
    'scope': 'scopes',
}


def _split_ids(value: Union[str, List[str], None]) -> List[str]:
    """Accept a list of ids, a JSON list string or a comma-separated string."""
    if not value:
        return []
    if isinstance(value, str) and value.strip().startswith("["):
        try:
            value = json.loads(value)
        except json.JSONDecodeError as e:
            raise ConfigurationError(
                f"source-google-docs: Invalid folders ids list: {e}", config_key="foldersIds"
            ) from e
        return [str(part).strip() for part in value if str(part).strip()]
    if isinstance(value, str):
        return [part.strip() for part in value.split(",") if part.strip()]
    return [str(part) for part in value]


# =============================================================================
# Environment Settings
# =============================================================================

class SourceSettings(BaseSettings):
    """
    Environment-backed settings (``GDOCS_`` prefix).

    Attributes:
        api_key: Google API key used for Docs requests
        client_id: OAuth client id
        client_secret: OAuth client secret
        folders_ids: Drive folder ids to crawl (comma-separated or JSON list)
        type_name: Collection name for imported documents
        route: Optional route template for the collection
        refs: JSON object of reference fields
        token_path: OAuth token cache file
        image_directory: Local directory for downloaded images
        download_images: Toggle image downloading
        log_level: Python logging level name
        log_dir: Directory for the rotating JSON log (None = console only)
    """

    model_config = SettingsConfigDict(
        env_prefix="GDOCS_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    api_key: Optional[str] = None
    client_id: Optional[str] = None
    client_secret: Optional[str] = None
    folders_ids: Optional[str] = Field(
        default=None, description="Drive folder ids, comma-separated or JSON list"
    )
    type_name: str = "GoogleDocs"
    route: Optional[str] = None
    refs: Dict[str, Any] = Field(default_factory=dict)
    token_path: str = "google-docs-token.json"
    image_directory: str = "gdocs_images"
    download_images: bool = True
    log_level: str = "INFO"
    log_dir: Optional[str] = None

    @field_validator("log_level", mode="before")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Normalise and validate the logging level string."""
        upper = str(v).upper()
        if upper not in _VALID_LOG_LEVELS:
            raise ValueError(
                f"GDOCS_LOG_LEVEL must be one of {sorted(_VALID_LOG_LEVELS)}, got: {v!r}"
            )
        return upper

    @property
    def log_path(self) -> Optional[Path]:
        """Directory for file logging, if configured."""
        return Path(self.log_dir).expanduser() if self.log_dir else None


@lru_cache(maxsize=1)
def get_settings() -> SourceSettings:
    """Return the process-wide SourceSettings (cached)."""
    return SourceSettings()


# =============================================================================
# Source Options
# =============================================================================

@dataclass
class RefConfig:
    """
    One declared reference field.

    Attributes:
        type_name: Collection the reference points into
        create: Whether placeholder nodes are created for seen values
        route: Route for the referenced collection when it is created
    """
    type_name: str
    create: bool = False
    route: Optional[str] = None


@dataclass
class SourceOptions:
    """
    Options for one GoogleDocsSource.

    Defaults match the plugin option defaults. Credentials and
    folder ids have no default and are checked by validate().
    """
    type_name: str = 'GoogleDocs'
    route: Optional[str] = None
    refs: Dict[str, Any] = field(default_factory=dict)
    api_key: Optional[str] = None
    client_id: Optional[str] = None
    client_secret: Optional[str] = None
    folders_ids: List[str] = field(default_factory=list)
    fields: List[str] = field(default_factory=lambda: ['createdTime'])
    fields_mapper: Dict[str, str] = field(
        default_factory=lambda: {'createdTime': 'date', 'name': 'title'}
    )
    fields_default: Dict[str, Any] = field(default_factory=lambda: {'draft': False})
    token_path: str = 'google-docs-token.json'
    image_directory: str = 'gdocs_images'
    download_images: bool = True
    access_type: str = 'offline'
    redirect_uris: List[str] = field(default_factory=lambda: list(DEFAULT_REDIRECT_URIS))
    scopes: List[str] = field(default_factory=lambda: list(DEFAULT_SCOPES))

    @classmethod
    def from_mapping(cls, options: Mapping[str, Any]) -> "SourceOptions":
        """
        Build options from a plain mapping.

        Keys may be snake_case attribute names or the camelCase names
        of the plugin options.

        Raises:
            ConfigurationError: On an unknown option name
        """
        known = {f.name for f in fields(cls)}
        kwargs: Dict[str, Any] = {}

        for key, value in options.items():
            name = _OPTION_ALIASES.get(key, key)
            if name not in known:
                raise ConfigurationError(
                    f"source-google-docs: Unknown option '{key}'", config_key=key
                )
            kwargs[name] = value

        if 'folders_ids' in kwargs:
            kwargs['folders_ids'] = _split_ids(kwargs['folders_ids'])

        return cls(**kwargs)

    @classmethod
    def from_settings(cls, settings: SourceSettings, **overrides: Any) -> "SourceOptions":
        """Build options from environment settings plus explicit overrides."""
        options = cls(
            type_name=settings.type_name,
            route=settings.route,
            refs=dict(settings.refs),
            api_key=settings.api_key,
            client_id=settings.client_id,
            client_secret=settings.client_secret,
            folders_ids=_split_ids(settings.folders_ids),
            token_path=settings.token_path,
            image_directory=settings.image_directory,
            download_images=settings.download_images,
        )
        return replace(options, **overrides) if overrides else options

    def validate(self) -> None:
        """
        Check required options in a fixed order.

        Raises:
            ConfigurationError: For the first missing required option
        """
        if not self.api_key:
            raise ConfigurationError(
                'source-google-docs: Missing API key', config_key='apiKey'
            )
        if not self.client_id:
            raise ConfigurationError(
                'source-google-docs: Missing client id', config_key='clientId'
            )
        if not self.client_secret:
            raise ConfigurationError(
                'source-google-docs: Missing client secret', config_key='clientSecret'
            )
        if not self.folders_ids:
            raise ConfigurationError(
                'source-google-docs: Missing folders ids', config_key='foldersIds'
            )

    def to_dict(self) -> Dict[str, Any]:
        """Options as a dict with secrets masked, for logging and display."""
        data = {f.name: getattr(self, f.name) for f in fields(self)}
        for secret in ('api_key', 'client_secret'):
            if data.get(secret):
                data[secret] = '***'
        return data

    def to_json(self) -> str:
        return json.dumps(self.to_dict(), indent=2, default=str)
