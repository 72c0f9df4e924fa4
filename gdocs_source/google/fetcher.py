"""
gdocs-source - Google Document Fetcher

Authenticates, lists the configured Drive folders and fetches every
Google Doc found, attaching the Docs API response as content. The
response is converted to a content tree per document by GoogleDocsSource.

Usage:
    fetcher = GoogleDocumentFetcher()
    documents = await fetcher.fetch_documents(options)
    # [{"id": ..., "title": ..., "date": ..., "path": ..., "content": {"body": ...}}]

Version: 0.1.0
"""

import logging
from typing import Any, Dict, List, Optional

from ..config import SourceOptions
from .auth import GoogleAuth
from .docs import GoogleDocsClient
from .drive import GoogleDriveClient

__all__ = ['GoogleDocumentFetcher']

logger = logging.getLogger(__name__)


class GoogleDocumentFetcher:
    """
    DocumentFetcher backed by the Drive and Docs APIs.

    Clients are built from the options on each call unless given here.
    """

    def __init__(
        self,
        auth: Optional[GoogleAuth] = None,
        drive: Optional[GoogleDriveClient] = None,
        docs: Optional[GoogleDocsClient] = None,
    ):
        self._auth = auth
        self._drive = drive
        self._docs = docs

    async def fetch_documents(self, options: SourceOptions) -> List[Dict[str, Any]]:
        """
        Return one Document dict per Google Doc in the configured folders.

        Raises:
            AuthenticationError: If credentials cannot be obtained
            FetchError: If listing or fetching a document fails
        """
        auth = self._auth or GoogleAuth(
            client_id=options.client_id,
            client_secret=options.client_secret,
            token_path=options.token_path,
            scopes=options.scopes,
            redirect_uris=options.redirect_uris,
            access_type=options.access_type,
        )
        credentials = await auth.authenticate()

        drive = self._drive or GoogleDriveClient(credentials)
        docs = self._docs or GoogleDocsClient(credentials, api_key=options.api_key)

        files = await drive.list_documents(
            options.folders_ids,
            fields=options.fields,
            fields_mapper=options.fields_mapper,
            fields_default=options.fields_default,
        )

        documents = []
        for file_data in files:
            raw = await docs.get_document(file_data['id'])
            document = dict(file_data)
            if not document.get('title') and raw.get('title'):
                document['title'] = raw['title']
            document['content'] = raw
            documents.append(document)

        logger.info(f"Fetched {len(documents)} documents")
        return documents
