"""Pytest configuration for the transfer adapter test suite."""

import io
import json
from pathlib import Path
from typing import Callable, List, Tuple

import httpx
import pytest

from lfs_transfer_adapter.config import AdapterConfig
from lfs_transfer_adapter.session import AdapterSession, run_adapter
from lfs_transfer_adapter.transfer.http import HttpTransport
from lfs_transfer_adapter.transfer.storage import TempFileStore


class RecordingSink:
    """Progress sink that keeps every report in order."""

    def __init__(self) -> None:
        self.reports: List[Tuple[str, int, int]] = []

    async def report(self, oid: str, bytes_so_far: int, bytes_since_last: int) -> None:
        self.reports.append((oid, bytes_so_far, bytes_since_last))


class RecordingStore(TempFileStore):
    """TempFileStore that remembers every temp file it created."""

    def __init__(self, temp_dir: Path) -> None:
        super().__init__(temp_dir)
        self.created: List[Path] = []

    def create(self) -> Path:
        path = super().create()
        self.created.append(path)
        return path


def mock_client(handler: Callable[[httpx.Request], httpx.Response]) -> httpx.AsyncClient:
    """Async client whose requests are answered by handler."""
    return httpx.AsyncClient(transport=httpx.MockTransport(handler))


@pytest.fixture
def sink() -> RecordingSink:
    return RecordingSink()


@pytest.fixture
def store(tmp_path: Path) -> RecordingStore:
    return RecordingStore(tmp_path / "dl")


@pytest.fixture
def transport_for():
    """Build an HttpTransport around a mock handler."""

    def _build(handler) -> HttpTransport:
        return HttpTransport(mock_client(handler))

    return _build


@pytest.fixture
def run_session(tmp_path: Path):
    """Run a whole session over in-memory streams.

    Returns the session and the decoded output lines.
    """

    async def _run(lines: List[str], handler=None, chunk_size: int = 256 * 1024):
        if handler is None:
            def handler(request: httpx.Request) -> httpx.Response:
                return httpx.Response(200)

        reader = io.StringIO("".join(line + "\n" for line in lines))
        writer = io.StringIO()
        config = AdapterConfig(temp_dir=tmp_path / "dl", chunk_size=chunk_size)

        async with mock_client(handler) as client:
            session: AdapterSession = await run_adapter(config, reader, writer, client=client)

        output = [json.loads(line) for line in writer.getvalue().splitlines()]
        return session, output

    return _run
