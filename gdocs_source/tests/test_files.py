"""
Tests for gdocs_source.files

All HTTP goes through httpx.MockTransport; nothing leaves the process.

Coverage:
    filename_for: encoded slashes, query/fragment stripping, md5 fallback
    create_directory / full_path / exists
    sniff_extension: jpeg, png, svg, unknown
    ImageCache.download:
        existing target → no request, same path
        success writes body; 404 and timeout leave no file, still return path
        concurrent calls for one URL share a single request
        a transfer in progress is written to a .part file, never seen as cached
    ImageCache.download_google_docs_image:
        sniffed rename leaves exactly one file
        second call reuses the sniffed file without a request
        another image's sniffed file (abc.def.png for abc) is not reused
        unknown bytes keep the extension-less path
    aclose leaves an injected client open
"""

import asyncio
import hashlib

import httpx
import pytest

from gdocs_source.files import (
    ImageCache,
    create_directory,
    exists,
    filename_for,
    full_path,
    sniff_extension,
)


# ---------------------------------------------------------------------------
# Module helpers
# ---------------------------------------------------------------------------

class TestFilenameFor:
    def test_strips_encoded_dirs_query_and_fragment(self):
        assert filename_for("https://x/a%2Fb/img.png?x=1#y") == "img.png"

    def test_lowercase_encoded_slash(self):
        assert filename_for("https://x/folder%2fsub%2fphoto.jpg") == "photo.jpg"

    def test_plain_url(self):
        assert filename_for("https://lh3.googleusercontent.com/abc") == "abc"

    def test_fragment_containing_question_mark(self):
        assert filename_for("https://x/pic.gif#frag?x") == "pic.gif"

    def test_trailing_slash_falls_back_to_md5(self):
        url = "https://example.com/images/"
        assert filename_for(url) == hashlib.md5(url.encode("utf-8")).hexdigest()


class TestPathHelpers:
    def test_create_directory_relative_to_root(self, tmp_path):
        path = create_directory("a/b", root=tmp_path)
        assert path == tmp_path / "a" / "b"
        assert path.is_dir()

    def test_create_directory_is_idempotent(self, tmp_path):
        create_directory("imgs", root=tmp_path)
        assert create_directory("imgs", root=tmp_path).is_dir()

    def test_full_path(self, tmp_path):
        assert full_path("imgs", "a.png", root=tmp_path) == tmp_path / "imgs" / "a.png"

    def test_exists(self, tmp_path):
        target = tmp_path / "x.png"
        assert not exists(target)
        target.write_bytes(b"x")
        assert exists(target)


class TestSniffExtension:
    def test_jpeg(self, tmp_path, jpeg_bytes):
        target = tmp_path / "img"
        target.write_bytes(jpeg_bytes)
        assert sniff_extension(target) == "jpg"

    def test_png(self, tmp_path, png_bytes):
        target = tmp_path / "img"
        target.write_bytes(png_bytes)
        assert sniff_extension(target) == "png"

    def test_svg(self, tmp_path):
        target = tmp_path / "img"
        target.write_bytes(b'<?xml version="1.0"?>\n<svg xmlns="http://www.w3.org/2000/svg"></svg>')
        assert sniff_extension(target) == "svg"

    def test_unknown(self, tmp_path):
        target = tmp_path / "img"
        target.write_bytes(b"just some text")
        assert sniff_extension(target) is None


# ---------------------------------------------------------------------------
# ImageCache.download
# ---------------------------------------------------------------------------

URL = "https://example.com/media/logo.png"
GDOCS_URL = "https://lh3.googleusercontent.com/abc"


class TestDownload:
    @pytest.mark.asyncio
    async def test_existing_target_makes_no_request(self, image_dir, make_transport):
        requests = []
        (image_dir / "logo.png").write_bytes(b"cached")

        async with httpx.AsyncClient(transport=make_transport({URL: b"new"}, requests)) as client:
            cache = ImageCache(image_dir, client=client)
            path = await cache.download(URL)

        assert path == image_dir / "logo.png"
        assert path.read_bytes() == b"cached"
        assert requests == []
        assert cache.stats.cached == 1

    @pytest.mark.asyncio
    async def test_success_writes_body(self, image_dir, make_transport, png_bytes):
        async with httpx.AsyncClient(transport=make_transport({URL: png_bytes})) as client:
            cache = ImageCache(image_dir, client=client)
            path = await cache.download(URL, image_dir / "custom.png")

        assert path == image_dir / "custom.png"
        assert path.read_bytes() == png_bytes
        assert cache.stats.downloaded == 1

    @pytest.mark.asyncio
    async def test_http_error_returns_dangling_path(self, image_dir, make_transport):
        async with httpx.AsyncClient(transport=make_transport({})) as client:
            cache = ImageCache(image_dir, client=client)
            path = await cache.download(URL)

        assert path == image_dir / "logo.png"
        assert not path.exists()
        assert cache.stats.failed == 1

    @pytest.mark.asyncio
    async def test_timeout_returns_dangling_path(self, image_dir):
        async def slow(request: httpx.Request) -> httpx.Response:
            await asyncio.sleep(1)
            return httpx.Response(200, content=b"late")

        async with httpx.AsyncClient(transport=httpx.MockTransport(slow)) as client:
            cache = ImageCache(image_dir, client=client, timeout=0.05)
            path = await cache.download(URL)

        assert not path.exists()
        assert cache.stats.failed == 1

    @pytest.mark.asyncio
    async def test_transport_error_is_not_raised(self, image_dir):
        def broken(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("refused", request=request)

        async with httpx.AsyncClient(transport=httpx.MockTransport(broken)) as client:
            cache = ImageCache(image_dir, client=client)
            path = await cache.download(URL)

        assert path == image_dir / "logo.png"
        assert not path.exists()

    @pytest.mark.asyncio
    async def test_concurrent_calls_share_one_request(self, image_dir, make_transport, png_bytes):
        requests = []
        async with httpx.AsyncClient(transport=make_transport({URL: png_bytes}, requests)) as client:
            cache = ImageCache(image_dir, client=client)
            first, second = await asyncio.gather(cache.download(URL), cache.download(URL))

        assert first == second
        assert requests == [URL]

    @pytest.mark.asyncio
    async def test_file_in_progress_is_not_reported_as_cached(self, image_dir):
        streaming = asyncio.Event()
        release = asyncio.Event()

        async def body():
            yield b"first-"
            streaming.set()
            await release.wait()
            yield b"second"

        async def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(200, content=body())

        async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as client:
            cache = ImageCache(image_dir, client=client)
            first = asyncio.ensure_future(cache.download(URL))
            await streaming.wait()
            assert not (image_dir / "logo.png").exists()

            second = asyncio.ensure_future(cache.download(URL))
            release.set()
            paths = await asyncio.gather(first, second)

        assert paths == [image_dir / "logo.png", image_dir / "logo.png"]
        assert paths[0].read_bytes() == b"first-second"
        assert [p.name for p in image_dir.iterdir()] == ["logo.png"]
        assert cache.stats.cached == 0
        assert cache.stats.downloaded == 1

    def test_path_for(self, image_dir):
        cache = ImageCache(image_dir)
        assert cache.path_for("https://x/a%2Fb/img.png?x=1#y") == image_dir / "img.png"


# ---------------------------------------------------------------------------
# ImageCache.download_google_docs_image
# ---------------------------------------------------------------------------

class TestGoogleDocsImage:
    @pytest.mark.asyncio
    async def test_sniffed_rename_leaves_one_file(self, image_dir, make_transport, jpeg_bytes):
        async with httpx.AsyncClient(transport=make_transport({GDOCS_URL: jpeg_bytes})) as client:
            cache = ImageCache(image_dir, client=client)
            path = await cache.download_google_docs_image(GDOCS_URL)

        assert path == image_dir / "abc.jpg"
        assert [p.name for p in image_dir.iterdir()] == ["abc.jpg"]

    @pytest.mark.asyncio
    async def test_second_call_reuses_sniffed_file(self, image_dir, make_transport, png_bytes):
        requests = []
        async with httpx.AsyncClient(transport=make_transport({GDOCS_URL: png_bytes}, requests)) as client:
            cache = ImageCache(image_dir, client=client)
            first = await cache.download_google_docs_image(GDOCS_URL)
            second = await cache.download_google_docs_image(GDOCS_URL)

        assert first == second == image_dir / "abc.png"
        assert requests == [GDOCS_URL]
        assert cache.stats.cached == 1

    @pytest.mark.asyncio
    async def test_other_images_sniffed_file_is_not_reused(self, image_dir, make_transport, png_bytes):
        (image_dir / "abc.def.png").write_bytes(png_bytes)
        requests = []
        async with httpx.AsyncClient(transport=make_transport({GDOCS_URL: png_bytes}, requests)) as client:
            cache = ImageCache(image_dir, client=client)
            path = await cache.download_google_docs_image(GDOCS_URL)

        assert path == image_dir / "abc.png"
        assert requests == [GDOCS_URL]
        assert cache.stats.cached == 0

    @pytest.mark.asyncio
    async def test_unknown_bytes_keep_plain_path(self, image_dir, make_transport):
        async with httpx.AsyncClient(transport=make_transport({GDOCS_URL: b"plain text"})) as client:
            cache = ImageCache(image_dir, client=client)
            path = await cache.download_google_docs_image(GDOCS_URL)

        assert path == image_dir / "abc"
        assert path.exists()

    @pytest.mark.asyncio
    async def test_failed_download_returns_target(self, image_dir, make_transport):
        async with httpx.AsyncClient(transport=make_transport({})) as client:
            cache = ImageCache(image_dir, client=client)
            path = await cache.download_google_docs_image(GDOCS_URL)

        assert path == image_dir / "abc"
        assert list(image_dir.iterdir()) == []


# ---------------------------------------------------------------------------
# Client ownership
# ---------------------------------------------------------------------------

class TestClientOwnership:
    @pytest.mark.asyncio
    async def test_injected_client_stays_open(self, image_dir, make_transport):
        client = httpx.AsyncClient(transport=make_transport({}))
        async with ImageCache(image_dir, client=client):
            pass
        assert not client.is_closed
        await client.aclose()

    @pytest.mark.asyncio
    async def test_owned_client_is_closed(self, image_dir):
        cache = ImageCache(image_dir)
        client = cache._get_client()
        await cache.aclose()
        assert client.is_closed
