"""
gdocs-source - Field Normalizer

Recursive walk over a document's field tree that rewrites image
references to local file paths:

    str matching IMAGE_URL_PATTERN      → ImageCache.download()
    {"img": {"source": url, ...}}       → source via download_google_docs_image()
    list / tuple / mapping              → rebuilt recursively, order kept
    None, bool, int, float, other str   → unchanged
    anything else                       → unchanged, with a warning

Traversal is depth-first and left-to-right; every download is awaited
before the next sibling is visited. The input is never mutated.

Usage:
    from gdocs_source.normalizer import FieldNormalizer

    normalizer = FieldNormalizer(image_cache)
    node = await normalizer.normalize(document)
    print(normalizer.images)

Version: 0.1.0
"""

import logging
import re
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional

from .files import ImageCache

__all__ = ['FieldNormalizer', 'IMAGE_URL_PATTERN', 'is_image_url']

logger = logging.getLogger(__name__)

IMAGE_URL_PATTERN = re.compile(
    r'^https://.*/.*\.(jpg|png|svg|gif|jpeg)($|[?#])', re.IGNORECASE
)

_IMAGE_FIELD = 'img'
_IMAGE_SOURCE = 'source'


def is_image_url(value: str) -> bool:
    return bool(IMAGE_URL_PATTERN.match(value))


class FieldNormalizer:
    """
    Rewrites embedded image references in a JSON-like value.

    Attributes:
        image_cache: Cache used for downloads; None disables downloading
            and image references pass through unchanged
        images: Local paths produced so far, in traversal order
    """

    def __init__(self, image_cache: Optional[ImageCache] = None):
        self.image_cache = image_cache
        self.images: List[str] = []

    async def normalize(self, value: Any) -> Any:
        """Return a copy of *value* with image references localised."""
        if value is None:
            return value

        # bool before int: bool is an int subclass
        if isinstance(value, bool):
            return value
        if isinstance(value, (int, float)):
            return value
        if isinstance(value, str):
            if is_image_url(value):
                return await self._download(value)
            return value
        if isinstance(value, (list, tuple)):
            return [await self.normalize(item) for item in value]
        if isinstance(value, Mapping):
            return await self._normalize_mapping(value)

        logger.warning(
            f"Unrecognised field type {type(value).__name__}, passing it through"
        )
        return value

    async def _normalize_mapping(self, value: Mapping[str, Any]) -> Dict[str, Any]:
        result: Dict[str, Any] = {}

        for key, item in value.items():
            if key == _IMAGE_FIELD and isinstance(item, Mapping) and _IMAGE_SOURCE in item:
                image = dict(item)
                image[_IMAGE_SOURCE] = await self._download_google_docs(item[_IMAGE_SOURCE])
                result[key] = image
            else:
                result[key] = await self.normalize(item)

        return result

    async def _download(self, url: str) -> str:
        if self.image_cache is None:
            return url
        path = await self.image_cache.download(url, self.image_cache.path_for(url))
        return self._record(path)

    async def _download_google_docs(self, source: Any) -> Any:
        if self.image_cache is None or not isinstance(source, str):
            return source
        # already local
        if not source.startswith(('http://', 'https://')):
            return source
        path = await self.image_cache.download_google_docs_image(
            source, self.image_cache.path_for(source)
        )
        return self._record(path)

    def _record(self, path: Path) -> str:
        local = str(path)
        self.images.append(local)
        return local
