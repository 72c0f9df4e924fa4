"""
gdocs-source - Google Docs Fetch

Thin async wrapper over ``documents().get`` of the Docs v1 API.

Version: 0.1.0
"""

import asyncio
import logging
from typing import Any, Dict, Optional

from googleapiclient.discovery import build
from googleapiclient.errors import HttpError

from ..exceptions import FetchError

__all__ = ['GoogleDocsClient']

logger = logging.getLogger(__name__)


class GoogleDocsClient:
    """Fetches Google Docs as Docs API JSON."""

    def __init__(self, credentials: Any, api_key: Optional[str] = None):
        self._credentials = credentials
        self._api_key = api_key
        self._service = None

    @property
    def service(self):
        """Lazy-loaded Docs v1 service."""
        if self._service is None:
            self._service = build(
                'docs', 'v1',
                credentials=self._credentials,
                developerKey=self._api_key,
                cache_discovery=False,
            )
        return self._service

    async def get_document(self, document_id: str) -> Dict[str, Any]:
        """
        Fetch one document.

        Raises:
            FetchError: If the API call fails
        """
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(None, self._get_document_sync, document_id)

    def _get_document_sync(self, document_id: str) -> Dict[str, Any]:
        """Synchronous fetch (run in executor)."""
        try:
            document = self.service.documents().get(documentId=document_id).execute()
        except HttpError as e:
            raise FetchError(
                f"Failed to get Google Doc {document_id}: {e}", resource_id=document_id
            ) from e
        logger.debug(f"Fetched Google Doc {document_id}")
        return document
