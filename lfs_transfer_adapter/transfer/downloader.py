"""
HTTP Downloader

Download Flow:
1. Build a GET for action.href with the action headers
2. Send it and check the status
3. Create a unique temp file
4. Stream the body into it, reporting progress after every chunk
5. Close the file and hand its path to the controller

Any failure after step 3 removes the temp file before the error is
reported, so the controller never sees a partial object.
"""

import contextlib
import logging
from pathlib import Path

import httpx

from ..protocol.messages import DownloadRequest
from .errors import LocalIOError, TransferError, TransferErrorCode, TransportError
from .http import HttpTransport
from .progress import ProgressSink, ProgressTracker
from .result import TransferResult
from .storage import TempFileStore

logger = logging.getLogger(__name__)

CHUNK_SIZE = 256 * 1024  # 256KB


def expected_size(response: httpx.Response, hint: int) -> int:
    """Declared Content-Length wins over the controller's size hint."""
    declared = response.headers.get('content-length')
    if declared is not None:
        try:
            return int(declared)
        except ValueError:
            pass
    return hint


class HttpDownloader:
    """Fetches one object per call into a temp file."""

    def __init__(self, transport: HttpTransport, storage: TempFileStore,
                 sink: ProgressSink, chunk_size: int = CHUNK_SIZE):
        self.transport = transport
        self.storage = storage
        self.sink = sink
        self.chunk_size = chunk_size

        # Statistics
        self.transfers_completed = 0
        self.transfers_failed = 0
        self.bytes_downloaded = 0

    async def download(self, request: DownloadRequest) -> TransferResult:
        """
        Download request.oid.

        Never raises for transfer failures; they come back in the result.
        """
        tracker = ProgressTracker(request.oid, self.sink)
        try:
            path = await self._download(request, tracker)
        except TransferError as e:
            self.transfers_failed += 1
            logger.error(f"Download of {request.oid} failed: {e.message}")
            return TransferResult(oid=request.oid, error=e)

        self.transfers_completed += 1
        self.bytes_downloaded += tracker.bytes_so_far
        logger.info(f"Downloaded {request.oid} ({tracker.bytes_so_far:,} bytes) to {path}")
        return TransferResult(oid=request.oid, path=str(path))

    async def _download(self, request: DownloadRequest,
                        tracker: ProgressTracker) -> Path:
        action = request.action
        http_request = self.transport.build_request('GET', action.href, action.header)

        response = await self.transport.send(http_request)
        try:
            self.transport.check_status(http_request, response)

            total = expected_size(response, request.size)
            logger.debug(f"Fetching {request.oid}: expecting {total:,} bytes "
                         f"(hint {request.size:,})")

            path = self._create_temp_file()
            try:
                await self._write_body(response, path, tracker)
            except Exception:
                await self.storage.remove(path)
                raise
            return path
        finally:
            await response.aclose()

    def _create_temp_file(self) -> Path:
        try:
            return self.storage.create()
        except OSError as e:
            raise LocalIOError(f"cannot create tempfile: {e}",
                               TransferErrorCode.LOCAL_OPEN) from e

    async def _write_body(self, response: httpx.Response, path: Path,
                          tracker: ProgressTracker):
        try:
            handle = await self.storage.open_for_write(path)
        except OSError as e:
            raise LocalIOError(f"cannot open tempfile {str(path)!r}: {e}",
                               TransferErrorCode.LOCAL_OPEN) from e

        try:
            await self._copy(response, handle, path, tracker)
        except BaseException:
            with contextlib.suppress(OSError):
                await handle.close()
            raise

        try:
            await handle.close()
        except OSError as e:
            raise LocalIOError(f"can't close tempfile {str(path)!r}: {e}",
                               TransferErrorCode.LOCAL_CLOSE) from e

    async def _copy(self, response: httpx.Response, handle, path: Path,
                    tracker: ProgressTracker):
        try:
            async for chunk in response.aiter_bytes(self.chunk_size):
                try:
                    await handle.write(chunk)
                except OSError as e:
                    raise LocalIOError(
                        f"cannot write data to tempfile {str(path)!r}: {e}",
                        TransferErrorCode.LOCAL_WRITE) from e
                await tracker.advance(len(chunk))
        except (httpx.HTTPError, httpx.StreamError) as e:
            raise TransportError(
                f"error reading body for {response.request.url}: {e}") from e

    def get_stats(self) -> dict:
        """Get downloader statistics."""
        return {
            'completed': self.transfers_completed,
            'failed': self.transfers_failed,
            'bytes': self.bytes_downloaded,
        }
