"""
gdocs-source - Google Docs Content Source

Imports Google Docs from Drive folders into a content graph as Markdown
nodes, downloading embedded images to a local directory.

Modules:
    source: GoogleDocsSource node adapter
    normalizer: Image reference rewriting in document fields
    files: Local image cache (httpx downloads, image type sniffing)
    markdown: Content tree to Markdown conversion
    graph: ContentGraph protocol and an in-memory implementation
    google: Drive listing, Docs fetching, Docs JSON conversion
    config, logger, exceptions, models: settings, logging, errors, results

Quick start:
    import asyncio
    from gdocs_source import GoogleDocsSource, InMemoryContentGraph

    source = GoogleDocsSource({
        "apiKey": "...",
        "clientId": "...",
        "clientSecret": "...",
        "foldersIds": ["1AbC"],
    })
    graph = InMemoryContentGraph()
    result = asyncio.run(source.load(graph))
    print(result.summary())

CLI:
    python -m gdocs_source import --out content/posts
"""

__version__ = "0.1.0"

from .config import RefConfig, SourceOptions, SourceSettings, get_settings
from .exceptions import (
    AuthenticationError,
    ConfigurationError,
    ConversionError,
    DownloadError,
    FetchError,
    GDocsSourceError,
)
from .files import ImageCache, filename_for
from .graph import Collection, ContentGraph, InMemoryCollection, InMemoryContentGraph
from .google import GoogleDocumentFetcher, docs_to_content
from .logger import configure_logging, get_logger
from .markdown import MarkdownDocument, convert_to_markdown
from .models import BatchImportResult, ImportResult
from .normalizer import FieldNormalizer
from .source import DocumentFetcher, GoogleDocsSource

__all__ = [
    # Source
    "GoogleDocsSource",
    "DocumentFetcher",
    "GoogleDocumentFetcher",
    # Pipeline stages
    "FieldNormalizer",
    "ImageCache",
    "filename_for",
    "MarkdownDocument",
    "convert_to_markdown",
    "docs_to_content",
    # Content graph
    "Collection",
    "ContentGraph",
    "InMemoryCollection",
    "InMemoryContentGraph",
    # Config
    "RefConfig",
    "SourceOptions",
    "SourceSettings",
    "get_settings",
    # Logging
    "configure_logging",
    "get_logger",
    # Results
    "BatchImportResult",
    "ImportResult",
    # Errors
    "GDocsSourceError",
    "ConfigurationError",
    "AuthenticationError",
    "FetchError",
    "ConversionError",
    "DownloadError",
]
