"""
Adapter Session - Main Controller

Owns the read loop for one controller connection (our stdin/stdout):
- decodes one request line at a time
- routes it to the handler registered for its message type
- sends the responses for that request before reading the next line

Session States:
```
UNINITIALIZED --init--> READY --terminate / end of input--> TERMINATED
```

Transfers that arrive before init are still executed; the protocol has
no way to reject them.
"""

import logging
from enum import Enum
from typing import Awaitable, Callable, Dict, Optional, TextIO

import httpx

from .config import AdapterConfig
from .protocol.messages import (
    DownloadRequest,
    InitRequest,
    InitResponse,
    MalformedRequest,
    MessageType,
    TerminateRequest,
    UploadRequest,
    decode_request,
)
from .protocol.stream import LineProtocol
from .transfer.downloader import HttpDownloader
from .transfer.errors import TransferError, TransferErrorCode
from .transfer.http import HttpTransport, create_client
from .transfer.progress import ProtocolProgressSink
from .transfer.result import TransferResult
from .transfer.storage import TempFileStore
from .transfer.uploader import HttpUploader

logger = logging.getLogger(__name__)

# Longest slice of a bad input line echoed into diagnostics
MAX_LOGGED_LINE = 200


class SessionState(Enum):
    UNINITIALIZED = "uninitialized"
    READY = "ready"
    TERMINATED = "terminated"


# Type for request handlers
RequestHandler = Callable[..., Awaitable[None]]


class AdapterSession:
    """
    One controller session.

    Strictly one request in flight: each handler runs to completion,
    including the single `complete` for a transfer, before the next line
    is read.
    """

    def __init__(self, protocol: LineProtocol, downloader: HttpDownloader,
                 uploader: HttpUploader):
        self.protocol = protocol
        self.downloader = downloader
        self.uploader = uploader

        self.state = SessionState.UNINITIALIZED
        # Recorded for diagnostics only
        self.operation: Optional[str] = None
        self.concurrent_transfers = 0

        self._handlers: Dict[MessageType, RequestHandler] = {}

        # Statistics
        self.requests_handled = 0
        self.malformed_lines = 0

        self._setup_handlers()

    def _setup_handlers(self):
        """Register request handlers."""
        self.set_handler(MessageType.INIT, self._handle_init)
        self.set_handler(MessageType.DOWNLOAD, self._handle_download)
        self.set_handler(MessageType.UPLOAD, self._handle_upload)
        self.set_handler(MessageType.TERMINATE, self._handle_terminate)

    def set_handler(self, msg_type: MessageType, handler: RequestHandler):
        """Set a request handler."""
        self._handlers[msg_type] = handler

    @property
    def is_ready(self) -> bool:
        return self.state == SessionState.READY

    async def run(self):
        """Process requests until terminate or end of input."""
        logger.debug("Session started, waiting for requests")
        try:
            while self.state != SessionState.TERMINATED:
                line = await self.protocol.receive()
                if line is None:
                    logger.info("Input closed, ending session")
                    break

                if not line.strip():
                    logger.debug("Skipping blank input line")
                    continue

                try:
                    request = decode_request(line)
                except MalformedRequest as e:
                    self.malformed_lines += 1
                    logger.warning(f"Unable to parse request ({e}): "
                                   f"{line[:MAX_LOGGED_LINE]!r}")
                    continue

                await self.dispatch(request)
        finally:
            self.state = SessionState.TERMINATED
            self.protocol.close()
            self._log_summary()

    async def dispatch(self, request):
        """Route one decoded request to its handler."""
        msg_type = MessageType(request.id)
        handler = self._handlers.get(msg_type)
        if handler is None:
            logger.warning(f"No handler for {msg_type.value}")
            return

        self.requests_handled += 1
        await handler(request)

    # === Handlers ===

    async def _handle_init(self, request: InitRequest):
        self.operation = request.operation
        self.concurrent_transfers = request.concurrent_transfers
        self.state = SessionState.READY
        logger.info(f"Initialised custom adapter for {request.operation} "
                    f"(concurrent={request.concurrent}, "
                    f"transfers={request.concurrent_transfers})")
        await self.protocol.send(InitResponse())

    async def _handle_download(self, request: DownloadRequest):
        logger.info(f"Received download request for {request.oid}")
        await self._run_transfer(request, self.downloader.download)

    async def _handle_upload(self, request: UploadRequest):
        logger.info(f"Received upload request for {request.oid}")
        await self._run_transfer(request, self.uploader.upload)

    async def _handle_terminate(self, request: TerminateRequest):
        logger.info("Terminating custom adapter gracefully")
        self.state = SessionState.TERMINATED

    async def _run_transfer(self, request, execute):
        """Run one executor and send exactly one complete for it."""
        if not self.is_ready:
            logger.debug(f"{request.id} for {request.oid} arrived before init")

        try:
            result = await execute(request)
        except Exception as e:
            logger.exception(f"Unexpected error during {request.id} of {request.oid}")
            error = TransferError(f"internal error: {e}", TransferErrorCode.INTERNAL)
            result = TransferResult(oid=request.oid, error=error)

        if not await self.protocol.send(result.to_response()):
            logger.error(f"Could not report {request.id} result for {request.oid}")

    def _log_summary(self):
        stats = self.get_stats()
        logger.info(
            f"Session ended: downloads {stats['downloads']['completed']} ok / "
            f"{stats['downloads']['failed']} failed, "
            f"uploads {stats['uploads']['completed']} ok / "
            f"{stats['uploads']['failed']} failed, "
            f"{stats['malformed_lines']} malformed lines"
        )

    def get_stats(self) -> dict:
        """Get session statistics."""
        return {
            'state': self.state.value,
            'operation': self.operation,
            'requests': self.requests_handled,
            'malformed_lines': self.malformed_lines,
            'protocol': self.protocol.get_stats(),
            'downloads': self.downloader.get_stats(),
            'uploads': self.uploader.get_stats(),
        }


def create_session(config: AdapterConfig, protocol: LineProtocol,
                   client: httpx.AsyncClient) -> AdapterSession:
    """Wire executors, storage and progress reporting onto a protocol."""
    transport = HttpTransport(client)
    storage = TempFileStore(config.temp_dir, config.temp_prefix)
    sink = ProtocolProgressSink(protocol)
    return AdapterSession(
        protocol,
        HttpDownloader(transport, storage, sink, chunk_size=config.chunk_size),
        HttpUploader(transport, storage, sink, chunk_size=config.chunk_size),
    )


async def run_adapter(config: AdapterConfig, reader: TextIO, writer: TextIO,
                      client: Optional[httpx.AsyncClient] = None) -> AdapterSession:
    """
    Run a full session over the given streams.

    A client passed in stays open; one created here is closed on exit.
    """
    protocol = LineProtocol(reader, writer)
    owns_client = client is None
    if owns_client:
        client = create_client(config)

    session = create_session(config, protocol, client)
    try:
        await session.run()
    finally:
        if owns_client:
            await client.aclose()

    return session
