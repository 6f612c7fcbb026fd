"""
HTTP Uploader

Sends a local file to action.href with a PUT.

Body framing:
- Transfer-Encoding: chunked in the action headers -> chunked body,
  no Content-Length
- otherwise -> Content-Length: <size>

The response body is always drained before the response is closed so the
connection can go back to the pool.
"""

import logging
from typing import AsyncIterator, Dict, Optional

import httpx

from ..protocol.messages import UploadRequest
from .errors import LocalIOError, TransferError, TransferErrorCode
from .http import HttpTransport
from .progress import ProgressSink, ProgressTracker
from .result import TransferResult
from .storage import TempFileStore

logger = logging.getLogger(__name__)

CHUNK_SIZE = 256 * 1024  # 256KB
DEFAULT_CONTENT_TYPE = 'application/octet-stream'


def _get_header(headers: Dict[str, str], name: str) -> Optional[str]:
    for key, value in headers.items():
        if key.lower() == name:
            return value
    return None


def _drop_header(headers: Dict[str, str], name: str):
    for key in [k for k in headers if k.lower() == name]:
        del headers[key]


def build_upload_headers(action_headers: Dict[str, str], size: int) -> Dict[str, str]:
    """Apply the content-type default and pick chunked or sized framing."""
    headers = dict(action_headers)

    if not _get_header(headers, 'content-type'):
        _drop_header(headers, 'content-type')
        headers['Content-Type'] = DEFAULT_CONTENT_TYPE

    _drop_header(headers, 'content-length')
    encoding = _get_header(headers, 'transfer-encoding') or ''
    if encoding.strip().lower() != 'chunked':
        headers['Content-Length'] = str(size)

    return headers


class HttpUploader:
    """Sends one local file per call."""

    def __init__(self, transport: HttpTransport, storage: TempFileStore,
                 sink: ProgressSink, chunk_size: int = CHUNK_SIZE):
        self.transport = transport
        self.storage = storage
        self.sink = sink
        self.chunk_size = chunk_size

        # Statistics
        self.transfers_completed = 0
        self.transfers_failed = 0
        self.bytes_uploaded = 0

    async def upload(self, request: UploadRequest) -> TransferResult:
        """
        Upload request.path as request.oid.

        Never raises for transfer failures; they come back in the result.
        """
        tracker = ProgressTracker(request.oid, self.sink)
        try:
            await self._upload(request, tracker)
        except TransferError as e:
            self.transfers_failed += 1
            logger.error(f"Upload of {request.oid} failed: {e.message}")
            return TransferResult(oid=request.oid, error=e)

        self.transfers_completed += 1
        self.bytes_uploaded += tracker.bytes_so_far
        logger.info(f"Uploaded {request.oid} ({tracker.bytes_so_far:,} bytes)")
        return TransferResult(oid=request.oid)

    async def _upload(self, request: UploadRequest, tracker: ProgressTracker):
        action = request.action
        headers = build_upload_headers(action.header, request.size)

        # Opened after the request is built; the body reads it lazily
        source = None

        async def body() -> AsyncIterator[bytes]:
            while True:
                try:
                    chunk = await source.read(self.chunk_size)
                except OSError as e:
                    raise LocalIOError(
                        f"Cannot read data from {request.path!r}: {e}",
                        TransferErrorCode.LOCAL_OPEN) from e
                if not chunk:
                    break
                yield chunk
                await tracker.advance(len(chunk))

        http_request = self.transport.build_request('PUT', action.href, headers,
                                                    content=body())

        try:
            source = await self.storage.open_for_read(request.path)
        except OSError as e:
            raise LocalIOError(f"Cannot read data from {request.path!r}: {e}",
                               TransferErrorCode.LOCAL_OPEN) from e

        try:
            # A 3xx is reported as a status error; the body cannot be replayed
            response = await self.transport.send(http_request, follow_redirects=False)
            try:
                self.transport.check_status(http_request, response)
            finally:
                await self._discard(response)
        finally:
            await source.close()

    async def _discard(self, response: httpx.Response):
        """Read and drop the response body, then release the connection."""
        try:
            async for _ in response.aiter_raw():
                pass
        except (httpx.HTTPError, httpx.StreamError) as e:
            logger.debug(f"Ignoring error draining response body: {e}")
        finally:
            await response.aclose()

    def get_stats(self) -> dict:
        """Get uploader statistics."""
        return {
            'completed': self.transfers_completed,
            'failed': self.transfers_failed,
            'bytes': self.bytes_uploaded,
        }
