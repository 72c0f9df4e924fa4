"""
gdocs-source - File / Image Cache

Local image directory management and a bounded-concurrency downloader.

A file's existence on disk is the only cache-validity check: an existing
target is never re-downloaded or re-validated. Failed transfers are logged
and leave a dangling path behind; they never raise to the caller.

Google Docs image URLs carry no file extension, so
download_google_docs_image() sniffs the downloaded bytes and renames the
file to ``<name>.<ext>``.

Usage:
    from gdocs_source.files import ImageCache, filename_for

    filename_for("https://x/a%2Fb/img.png?x=1#y")   # "img.png"

    async with ImageCache("gdocs_images") as cache:
        local = await cache.download("https://example.com/a/logo.png")
        local = await cache.download_google_docs_image(
            "https://lh3.googleusercontent.com/abc"
        )

Version: 0.1.0
"""

import asyncio
import glob
import hashlib
import logging
import os
import re
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Awaitable, Callable, Dict, Optional, Tuple, Union

import filetype
import httpx

from .exceptions import DownloadError

__all__ = [
    'DEFAULT_CONCURRENCY',
    'DEFAULT_TIMEOUT',
    'DownloadStats',
    'ImageCache',
    'create_directory',
    'exists',
    'filename_for',
    'full_path',
    'sniff_extension',
]

logger = logging.getLogger(__name__)

DEFAULT_CONCURRENCY = 4
DEFAULT_TIMEOUT = 5.0

# filetype needs at most this many leading bytes to identify a format
_SNIFF_BYTES = 261

_ENCODED_SLASH = re.compile(r'%2F', re.IGNORECASE)
_FRAGMENT = re.compile(r'#.*$')
_QUERY = re.compile(r'\?.*$')

_SNIFFED_EXTENSIONS = frozenset({
    'jpg', 'png', 'gif', 'webp', 'bmp', 'tif', 'ico', 'heic', 'avif', 'svg',
})

PathLike = Union[str, Path]


def filename_for(url: str) -> str:
    """
    Derive the local filename for a URL.

    Encoded slashes count as path separators; the last segment is kept
    and a trailing fragment and query are removed. URLs with no usable
    segment fall back to the md5 of the URL.
    """
    name = _ENCODED_SLASH.sub('/', url).split('/')[-1]
    name = _QUERY.sub('', _FRAGMENT.sub('', name))
    return name or hashlib.md5(url.encode('utf-8')).hexdigest()


def create_directory(directory: PathLike, root: Optional[PathLike] = None) -> Path:
    """Create *directory* (relative to *root*, default cwd) and return it."""
    path = Path(root or Path.cwd()) / directory
    path.mkdir(parents=True, exist_ok=True)
    return path


def full_path(directory: PathLike, filename: str, root: Optional[PathLike] = None) -> Path:
    return Path(root or Path.cwd()) / directory / filename


def exists(path: PathLike) -> bool:
    return os.path.exists(path)


def _partial_path(target: Path) -> Path:
    return target.with_name(f"{target.name}.part")


def sniff_extension(path: PathLike) -> Optional[str]:
    """
    Detect an image type from the leading bytes of a file.

    Returns:
        Extension without dot (``png``, ``jpg``, ...) or None when the
        bytes are not a recognised image
    """
    with open(path, 'rb') as fh:
        head = fh.read(_SNIFF_BYTES)

    kind = filetype.image_match(head)
    if kind is not None:
        return kind.extension

    # SVG is text and has no magic number
    stripped = head.lstrip()
    if stripped.startswith(b'<svg') or (stripped.startswith(b'<?xml') and b'<svg' in head):
        return 'svg'
    return None


@dataclass
class DownloadStats:
    """Counters for one cache's lifetime."""
    downloaded: int = 0
    cached: int = 0
    failed: int = 0


class ImageCache:
    """
    Downloads images into a local directory, at most once per target path.

    Transfers run under a semaphore (``concurrency`` simultaneous
    downloads) and each is abandoned after ``timeout`` seconds.

    Attributes:
        directory: Absolute image directory (created on init)
        timeout: Per-transfer timeout in seconds
        stats: DownloadStats counters
    """

    def __init__(
        self,
        directory: PathLike,
        root: Optional[PathLike] = None,
        client: Optional[httpx.AsyncClient] = None,
        concurrency: int = DEFAULT_CONCURRENCY,
        timeout: float = DEFAULT_TIMEOUT,
    ):
        self.directory = create_directory(directory, root)
        self.timeout = timeout
        self.stats = DownloadStats()
        self._client = client
        self._owns_client = client is None
        self._semaphore = asyncio.Semaphore(concurrency)
        self._inflight: Dict[Tuple[str, Path], "asyncio.Future[Any]"] = {}

    async def __aenter__(self) -> "ImageCache":
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.aclose()

    async def aclose(self) -> None:
        """Close the HTTP client if this cache created it."""
        if self._owns_client and self._client is not None:
            await self._client.aclose()
            self._client = None

    def path_for(self, url: str) -> Path:
        """Absolute target path for *url* inside the image directory."""
        return self.directory / filename_for(url)

    # =========================================================================
    # Public Download API
    # =========================================================================

    async def download(self, url: str, path: Optional[PathLike] = None) -> Path:
        """
        Download *url* to *path* unless *path* already exists.

        Args:
            url: Source URL
            path: Target file (defaults to path_for(url))

        Returns:
            The target path, whether or not the transfer succeeded
        """
        target = Path(path) if path else self.path_for(url)

        if exists(target):
            logger.debug(f"{target.name} already exists")
            self.stats.cached += 1
            return target

        await self._once(('url', target), lambda: self._fetch(url, target))
        return target

    async def download_google_docs_image(
        self,
        url: str,
        path: Optional[PathLike] = None
    ) -> Path:
        """
        Download a Google Docs image and give it a sniffed extension.

        Args:
            url: Image content URL (no extension)
            path: Target file without extension (defaults to path_for(url))

        Returns:
            ``path.<ext>`` after a successful sniff; ``path`` when the
            download failed or the bytes are not a recognised image
        """
        target = Path(path) if path else self.path_for(url)

        previous = self._find_sniffed(target)
        if previous is not None:
            logger.debug(f"{previous.name} already exists")
            self.stats.cached += 1
            return previous

        return await self._once(
            ('gdocs', target), lambda: self._fetch_and_sniff(url, target)
        )

    # =========================================================================
    # Internals
    # =========================================================================

    async def _once(self, key: Tuple[str, Path], factory: Callable[[], Awaitable[Any]]) -> Any:
        """Share one in-flight task between concurrent callers of *key*."""
        task = self._inflight.get(key)
        if task is None:
            task = asyncio.ensure_future(factory())
            self._inflight[key] = task
            task.add_done_callback(lambda _t: self._inflight.pop(key, None))
        return await task

    async def _fetch_and_sniff(self, url: str, target: Path) -> Path:
        await self.download(url, target)

        if not exists(target):
            return target

        extension = sniff_extension(target)
        if extension is None:
            logger.warning(f"Could not detect image type of {target.name}, keeping it as is")
            return target

        final = target.with_name(f"{target.name}.{extension}")
        target.replace(final)
        logger.debug(f"Renamed {target.name} to {final.name}")
        return final

    async def _fetch(self, url: str, target: Path) -> bool:
        async with self._semaphore:
            logger.info(f"Downloading: {url}")
            try:
                await asyncio.wait_for(self._stream_to(url, target), timeout=self.timeout)
            except asyncio.TimeoutError:
                logger.warning(f"Timed out after {self.timeout}s downloading {url}")
            except (httpx.HTTPError, DownloadError, OSError) as e:
                logger.warning(f"Failed to download {url}: {e}")
            else:
                self.stats.downloaded += 1
                return True

        self.stats.failed += 1
        try:
            _partial_path(target).unlink()
        except FileNotFoundError:
            pass
        return False

    async def _stream_to(self, url: str, target: Path) -> None:
        client = self._get_client()
        async with client.stream("GET", url) as response:
            if response.is_error:
                raise DownloadError(f"HTTP {response.status_code}", url)
            partial = _partial_path(target)
            with open(partial, 'wb') as fh:
                async for chunk in response.aiter_bytes():
                    fh.write(chunk)
            partial.replace(target)

    def _get_client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(follow_redirects=True, timeout=self.timeout)
        return self._client

    def _find_sniffed(self, target: Path) -> Optional[Path]:
        """Return an already renamed ``target.<ext>`` file, if any."""
        pattern = f"{glob.escape(target.name)}.*"
        for candidate in sorted(target.parent.glob(pattern)):
            if candidate.stem != target.name:
                continue
            if candidate.suffix.lstrip('.').lower() in _SNIFFED_EXTENSIONS:
                return candidate
        return None
