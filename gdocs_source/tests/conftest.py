"""
gdocs-source Test Configuration - Shared Fixtures

Provides option sets, an in-memory content graph, a static document
fetcher and canned image bytes, so no test touches Google or the
network.

All fixtures use pytest's function scope so each test starts clean.
"""

import copy
from typing import Any, Dict, List, Optional

import httpx
import pytest

from gdocs_source.config import SourceOptions, get_settings
from gdocs_source.graph import InMemoryContentGraph

# JPEG SOI + APP0 marker; enough for type sniffing
JPEG_BYTES = b'\xff\xd8\xff\xe0\x00\x10JFIF\x00\x01\x01\x00\x00\x01\x00\x01\x00\x00' + b'\x00' * 64

# PNG signature, IHDR and an empty IDAT chunk
PNG_BYTES = (
    b'\x89PNG\r\n\x1a\n'
    b'\x00\x00\x00\rIHDR' + b'\x00\x00\x00\x01\x00\x00\x00\x01\x08\x02\x00\x00\x00' + b'\x00' * 4
    + b'\x00\x00\x00\x00IDAT' + b'\x00' * 4
)


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

class StaticFetcher:
    """DocumentFetcher returning canned documents (deep-copied per call)."""

    def __init__(self, documents: Optional[List[Dict[str, Any]]] = None, error: Exception = None):
        self.documents = documents or []
        self.error = error
        self.calls = 0

    async def fetch_documents(self, options: SourceOptions) -> List[Dict[str, Any]]:
        self.calls += 1
        if self.error is not None:
            raise self.error
        return copy.deepcopy(self.documents)


def image_transport(routes: Dict[str, bytes], requests: Optional[List[str]] = None) -> httpx.MockTransport:
    """MockTransport serving *routes* (url → body); other URLs get 404.

    Args:
        routes: Response bodies keyed by full URL.
        requests: Optional list that records every requested URL.
    """
    def handler(request: httpx.Request) -> httpx.Response:
        url = str(request.url)
        if requests is not None:
            requests.append(url)
        if url in routes:
            return httpx.Response(200, content=routes[url])
        return httpx.Response(404, content=b'not found')

    return httpx.MockTransport(handler)


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------

@pytest.fixture(autouse=True)
def _clear_settings_cache():
    """Keep cached settings from leaking between tests."""
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


@pytest.fixture()
def options() -> SourceOptions:
    """Valid options with image downloading disabled."""
    return SourceOptions(
        api_key='test-api-key',
        client_id='test-client-id',
        client_secret='test-client-secret',
        folders_ids=['folder-1'],
        download_images=False,
    )


@pytest.fixture()
def graph() -> InMemoryContentGraph:
    return InMemoryContentGraph()


@pytest.fixture()
def image_dir(tmp_path):
    """Empty image directory inside pytest's tmp_path."""
    path = tmp_path / 'images'
    path.mkdir()
    return path


@pytest.fixture()
def make_fetcher():
    """Factory for StaticFetcher instances."""
    return StaticFetcher


@pytest.fixture()
def make_transport():
    """Factory for image-serving httpx.MockTransport instances."""
    return image_transport


@pytest.fixture()
def jpeg_bytes() -> bytes:
    return JPEG_BYTES


@pytest.fixture()
def png_bytes() -> bytes:
    return PNG_BYTES
