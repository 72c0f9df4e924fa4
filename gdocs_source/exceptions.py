"""
gdocs-source - Exception Hierarchy

Structured error types for the Google Docs import pipeline. Fatal errors
(configuration, authentication, listing) abort a run before any node is
registered; conversion errors are caught per document by the adapter.

Usage:
    from gdocs_source.exceptions import ConfigurationError, FetchError

    try:
        result = await source.load(graph)
    except ConfigurationError as e:
        logger.error(f"Bad option: {e.config_key}")

Exception Hierarchy:
    GDocsSourceError (base)
    ├── ConfigurationError
    ├── AuthenticationError
    ├── FetchError
    ├── ConversionError
    └── DownloadError

Version: 0.1.0
"""

from typing import Any, Dict, Optional

__all__ = [
    'GDocsSourceError',
    'ConfigurationError',
    'AuthenticationError',
    'FetchError',
    'ConversionError',
    'DownloadError',
]


# =============================================================================
# Base Exception
# =============================================================================

class GDocsSourceError(Exception):
    """
    Base exception for all gdocs-source errors.

    Attributes:
        message: Human-readable error description
        details: Additional context about the error
    """

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        self.message = message
        self.details = details or {}
        super().__init__(self.message)

    def __str__(self) -> str:
        if self.details:
            return f"{self.message} | Details: {self.details}"
        return self.message


# =============================================================================
# Fatal Errors
# =============================================================================

class ConfigurationError(GDocsSourceError):
    """
    Invalid or missing source option.

    Raised before any network activity when a required credential or
    folder id is absent, or when an option set contains unknown keys.

    Attributes:
        config_key: The option that caused the error
    """

    def __init__(self, message: str, config_key: Optional[str] = None):
        self.config_key = config_key
        details = {"config_key": config_key} if config_key else None
        super().__init__(message, details)


class AuthenticationError(GDocsSourceError):
    """OAuth credentials could not be loaded, refreshed or obtained."""


class FetchError(GDocsSourceError):
    """
    A Drive listing or Docs fetch failed.

    Attributes:
        resource_id: Folder or document id being fetched
    """

    def __init__(
        self,
        message: str,
        resource_id: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None
    ):
        self.resource_id = resource_id
        full_details = {"resource_id": resource_id} if resource_id else {}
        if details:
            full_details.update(details)
        super().__init__(message, full_details or None)


# =============================================================================
# Per-document Errors
# =============================================================================

class ConversionError(GDocsSourceError):
    """
    A document's content tree could not be converted.

    Attributes:
        document_id: Id of the offending document, when known
    """

    def __init__(self, message: str, document_id: Optional[str] = None):
        self.document_id = document_id
        details = {"document_id": document_id} if document_id else None
        super().__init__(message, details)


class DownloadError(GDocsSourceError):
    """
    An image transfer failed.

    Only raised inside the image cache; callers of the cache get a
    (possibly dangling) path back instead.

    Attributes:
        url: Source URL of the image
    """

    def __init__(self, message: str, url: str):
        self.url = url
        super().__init__(message, {"url": url})
