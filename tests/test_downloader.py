"""Unit tests for the HTTP downloader."""

from __future__ import annotations

from pathlib import Path

import httpx
import pytest

from conftest import RecordingStore
from lfs_transfer_adapter.protocol.messages import Action, DownloadRequest
from lfs_transfer_adapter.transfer.downloader import HttpDownloader, expected_size
from lfs_transfer_adapter.transfer.errors import TransferErrorCode


def _request(oid: str = "abc123", size: int = 4, href: str = "http://x/o/abc123",
             header: dict | None = None) -> DownloadRequest:
    return DownloadRequest(oid=oid, size=size, action=Action(href=href, header=header or {}))


class FailingWriter:
    """aiofiles-like handle whose writes fail."""

    def __init__(self, real) -> None:
        self.real = real

    async def write(self, data: bytes) -> int:
        raise OSError(28, "No space left on device")

    async def close(self) -> None:
        await self.real.close()


class FailingCloser:
    """aiofiles-like handle that writes fine but fails to close."""

    def __init__(self, real) -> None:
        self.real = real

    async def write(self, data: bytes) -> int:
        return await self.real.write(data)

    async def close(self) -> None:
        await self.real.close()
        raise OSError(5, "Input/output error")


class WriteFailingStore(RecordingStore):
    async def open_for_write(self, path):
        return FailingWriter(await super().open_for_write(path))


class CloseFailingStore(RecordingStore):
    async def open_for_write(self, path):
        return FailingCloser(await super().open_for_write(path))


class CreateFailingStore(RecordingStore):
    def create(self) -> Path:
        raise PermissionError(13, "Permission denied")


@pytest.mark.asyncio
async def test_download_writes_body_and_reports_path(store, sink, transport_for) -> None:
    """Body lands in a temp file whose absolute path is returned."""
    seen = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["method"] = request.method
        seen["url"] = str(request.url)
        seen["auth"] = request.headers.get("Authorization")
        return httpx.Response(200, content=b"test")

    downloader = HttpDownloader(transport_for(handler), store, sink)
    result = await downloader.download(_request(header={"Authorization": "Basic xyz"}))

    assert result.ok
    assert result.oid == "abc123"
    path = Path(result.path)
    assert path.is_absolute()
    assert path.read_bytes() == b"test"
    assert path.name.startswith("lfscustomdl")
    assert seen == {"method": "GET", "url": "http://x/o/abc123", "auth": "Basic xyz"}
    assert sink.reports == [("abc123", 4, 4)]
    assert downloader.get_stats() == {"completed": 1, "failed": 0, "bytes": 4}


@pytest.mark.asyncio
async def test_download_progress_per_chunk_is_monotonic(store, sink, transport_for) -> None:
    body = bytes(range(256)) * 10

    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, content=body)

    downloader = HttpDownloader(transport_for(handler), store, sink, chunk_size=1000)
    result = await downloader.download(_request(size=len(body)))

    assert Path(result.path).read_bytes() == body
    so_far = [r[1] for r in sink.reports]
    assert so_far == sorted(so_far)
    assert so_far[-1] == len(body)
    assert sum(r[2] for r in sink.reports) == len(body)
    assert len(sink.reports) == 3


@pytest.mark.asyncio
async def test_download_size_hint_is_not_validated(store, sink, transport_for) -> None:
    """A wrong size hint does not fail the transfer."""

    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, content=b"0123456789")

    downloader = HttpDownloader(transport_for(handler), store, sink)
    result = await downloader.download(_request(size=3))

    assert result.ok
    assert Path(result.path).read_bytes() == b"0123456789"


def test_expected_size_prefers_content_length() -> None:
    declared = httpx.Response(200, headers={"Content-Length": "12"})
    bogus = httpx.Response(200, headers={"Content-Length": "twelve"})

    assert expected_size(declared, 3) == 12
    assert expected_size(bogus, 3) == 3
    assert expected_size(httpx.Response(200), 3) == 3


@pytest.mark.asyncio
async def test_download_error_status_reports_remote_status(store, sink, transport_for) -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(404, content=b"missing")

    downloader = HttpDownloader(transport_for(handler), store, sink)
    result = await downloader.download(_request())

    assert not result.ok
    assert result.path is None
    assert result.error.code == TransferErrorCode.REMOTE_STATUS
    assert "404" in result.error.message
    assert store.created == []
    assert sink.reports == []


@pytest.mark.asyncio
async def test_download_transport_failure(store, sink, transport_for) -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("connection refused", request=request)

    downloader = HttpDownloader(transport_for(handler), store, sink)
    result = await downloader.download(_request())

    assert result.error.code == TransferErrorCode.TRANSPORT
    assert "connection refused" in result.error.message
    assert downloader.get_stats()["failed"] == 1


@pytest.mark.asyncio
async def test_download_bad_url_is_construction_error(store, sink, transport_for) -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        raise AssertionError("request must not be sent")

    downloader = HttpDownloader(transport_for(handler), store, sink)
    result = await downloader.download(_request(href="not a url"))

    assert result.error.code == TransferErrorCode.REQUEST_CONSTRUCTION
    assert result.to_response().error.code == 2


@pytest.mark.asyncio
async def test_download_write_failure_removes_temp_file(tmp_path, sink, transport_for) -> None:
    store = WriteFailingStore(tmp_path / "dl")

    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, content=b"test")

    downloader = HttpDownloader(transport_for(handler), store, sink)
    result = await downloader.download(_request())

    assert result.error.code == TransferErrorCode.LOCAL_WRITE
    assert len(store.created) == 1
    assert str(store.created[0]) in result.error.message
    assert not store.created[0].exists()
    assert result.path is None


@pytest.mark.asyncio
async def test_download_close_failure_removes_temp_file(tmp_path, sink, transport_for) -> None:
    store = CloseFailingStore(tmp_path / "dl")

    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, content=b"test")

    downloader = HttpDownloader(transport_for(handler), store, sink)
    result = await downloader.download(_request())

    assert result.error.code == TransferErrorCode.LOCAL_CLOSE
    assert not store.created[0].exists()


@pytest.mark.asyncio
async def test_download_temp_file_create_failure(tmp_path, sink, transport_for) -> None:
    store = CreateFailingStore(tmp_path / "dl")

    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, content=b"test")

    downloader = HttpDownloader(transport_for(handler), store, sink)
    result = await downloader.download(_request())

    assert result.error.code == TransferErrorCode.LOCAL_OPEN
    assert "Permission denied" in result.error.message


class BrokenBody(httpx.AsyncByteStream):
    """Response body whose connection drops after the first chunk."""

    async def __aiter__(self):
        yield b"te"
        raise httpx.ReadError("connection reset by peer")


@pytest.mark.asyncio
async def test_download_body_read_failure_removes_temp_file(store, sink, transport_for) -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, stream=BrokenBody())

    downloader = HttpDownloader(transport_for(handler), store, sink, chunk_size=2)
    result = await downloader.download(_request())

    assert not result.ok
    assert result.path is None
    assert result.error.code == TransferErrorCode.TRANSPORT
    assert "connection reset by peer" in result.error.message
    assert len(store.created) == 1
    assert not store.created[0].exists()
    assert sink.reports == [("abc123", 2, 2)]
    assert downloader.get_stats()["failed"] == 1
