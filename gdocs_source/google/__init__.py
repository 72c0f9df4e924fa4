"""
gdocs-source - Google API Layer

Drive listing, Docs fetching and Docs JSON conversion.

Version: 0.1.0
"""

from .auth import GoogleAuth
from .content import docs_to_content
from .docs import GoogleDocsClient
from .drive import GoogleDriveClient, slugify
from .fetcher import GoogleDocumentFetcher

__all__ = [
    'GoogleAuth',
    'GoogleDocsClient',
    'GoogleDocumentFetcher',
    'GoogleDriveClient',
    'docs_to_content',
    'slugify',
]
