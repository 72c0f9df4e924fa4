"""
gdocs-source - Google Drive Listing

Recursive traversal of Drive folders, collecting the Google Docs they
contain as Document dicts.

Each Document is a projection of the Drive file resource:
    - "id" and the requested fields (name, createdTime, ...), renamed
      through fields_mapper
    - fields_default values for keys still missing
    - custom Drive file properties merged on top
    - "path": slugified folder breadcrumb + document name

Usage:
    drive = GoogleDriveClient(credentials)
    documents = await drive.list_documents(
        ["1AbC"],
        fields=["createdTime"],
        fields_mapper={"createdTime": "date", "name": "title"},
        fields_default={"draft": False},
    )

Version: 0.1.0
"""

import asyncio
import logging
import re
import unicodedata
from typing import Any, Dict, List, Mapping, Optional, Sequence, Set, Tuple

from googleapiclient.discovery import build
from googleapiclient.errors import HttpError

from ..exceptions import FetchError

__all__ = [
    'GOOGLE_DOC_MIME_TYPE',
    'GOOGLE_FOLDER_MIME_TYPE',
    'GoogleDriveClient',
    'slugify',
]

logger = logging.getLogger(__name__)

GOOGLE_DOC_MIME_TYPE = 'application/vnd.google-apps.document'
GOOGLE_FOLDER_MIME_TYPE = 'application/vnd.google-apps.folder'

# always requested, whatever the projection
_BASE_FIELDS = ('id', 'name', 'mimeType', 'properties')


def slugify(value: str) -> str:
    """Lowercase ASCII slug: "Été 2024 / Notes" -> "ete-2024-notes"."""
    normalized = unicodedata.normalize('NFKD', value).encode('ascii', 'ignore').decode('ascii')
    return re.sub(r'[^a-z0-9]+', '-', normalized.lower()).strip('-')


class GoogleDriveClient:
    """
    Lists Google Docs below a set of Drive folders.

    Attributes:
        page_size: Files per page in API requests
        include_trashed: Whether trashed files are listed
    """

    def __init__(self, credentials: Any, page_size: int = 100, include_trashed: bool = False):
        self._credentials = credentials
        self._service = None
        self.page_size = page_size
        self.include_trashed = include_trashed

    @property
    def service(self):
        """Lazy-loaded Drive v3 service."""
        if self._service is None:
            self._service = build(
                'drive', 'v3', credentials=self._credentials, cache_discovery=False
            )
        return self._service

    async def list_documents(
        self,
        folder_ids: Sequence[str],
        fields: Sequence[str] = ('createdTime',),
        fields_mapper: Optional[Mapping[str, str]] = None,
        fields_default: Optional[Mapping[str, Any]] = None,
    ) -> List[Dict[str, Any]]:
        """
        List Google Docs in the given folders and all their subfolders.

        Raises:
            FetchError: If a Drive request fails
        """
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(
            None,
            self._list_documents_sync,
            list(folder_ids),
            list(fields),
            dict(fields_mapper or {}),
            dict(fields_default or {}),
        )

    def _list_documents_sync(
        self,
        folder_ids: List[str],
        fields: List[str],
        fields_mapper: Dict[str, str],
        fields_default: Dict[str, Any],
    ) -> List[Dict[str, Any]]:
        """Synchronous traversal (run in executor)."""
        documents: List[Dict[str, Any]] = []
        folders_to_process: List[Tuple[str, List[str]]] = [(fid, []) for fid in folder_ids]
        processed_folders: Set[str] = set()
        seen_documents: Set[str] = set()

        while folders_to_process:
            folder_id, breadcrumb = folders_to_process.pop(0)

            if folder_id in processed_folders:
                continue
            processed_folders.add(folder_id)

            page_token = None
            while True:
                response = self._query_files(folder_id, fields, page_token)

                for file_data in response.get('files', []):
                    mime_type = file_data.get('mimeType', '')

                    if mime_type == GOOGLE_FOLDER_MIME_TYPE:
                        folders_to_process.append(
                            (file_data['id'], breadcrumb + [slugify(file_data.get('name', ''))])
                        )
                        continue

                    if mime_type != GOOGLE_DOC_MIME_TYPE or file_data['id'] in seen_documents:
                        continue

                    seen_documents.add(file_data['id'])
                    documents.append(self._project(
                        file_data, breadcrumb, fields, fields_mapper, fields_default
                    ))

                page_token = response.get('nextPageToken')
                if not page_token:
                    break

        logger.info(f"Found {len(documents)} Google Docs in {len(processed_folders)} folders")
        return documents

    def _query_files(
        self,
        folder_id: str,
        fields: List[str],
        page_token: Optional[str] = None
    ) -> Dict[str, Any]:
        """
        Query one page of a folder's children.

        Raises:
            FetchError: On an API error
        """
        query_parts = [f"'{folder_id}' in parents"]
        if not self.include_trashed:
            query_parts.append("trashed = false")

        requested = list(_BASE_FIELDS) + [f for f in fields if f not in _BASE_FIELDS]

        try:
            return self.service.files().list(
                q=" and ".join(query_parts),
                pageSize=self.page_size,
                pageToken=page_token,
                fields=f"nextPageToken, files({', '.join(requested)})",
            ).execute()
        except HttpError as e:
            raise FetchError(
                f"Failed to list Drive folder {folder_id}: {e}", resource_id=folder_id
            ) from e

    def _project(
        self,
        file_data: Dict[str, Any],
        breadcrumb: List[str],
        fields: List[str],
        fields_mapper: Dict[str, str],
        fields_default: Dict[str, Any],
    ) -> Dict[str, Any]:
        """Convert a Drive file resource into a Document dict."""
        document: Dict[str, Any] = {'id': file_data['id']}

        for key in ['name'] + fields:
            if key in file_data:
                document[fields_mapper.get(key, key)] = file_data[key]

        for key, value in fields_default.items():
            document.setdefault(key, value)

        for key, value in (file_data.get('properties') or {}).items():
            if key != 'id':
                document[key] = value

        name = slugify(file_data.get('name', '')) or file_data['id']
        document['path'] = '/' + '/'.join(breadcrumb + [name])
        return document
