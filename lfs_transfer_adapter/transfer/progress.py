"""
Progress Reporting

Executors report each chunk they move; the sink turns that into a
`progress` line. Frequency is bounded by the executor's chunk size, there
is no timer or coalescing.
"""

from typing import Protocol

from ..protocol.messages import ProgressResponse
from ..protocol.stream import LineProtocol


class ProgressSink(Protocol):
    """Anything that accepts byte-count updates for an oid."""

    async def report(self, oid: str, bytes_so_far: int,
                     bytes_since_last: int) -> None:
        ...


class ProtocolProgressSink:
    """Emits one progress message per report on the controller stream."""

    def __init__(self, protocol: LineProtocol):
        self.protocol = protocol

    async def report(self, oid: str, bytes_so_far: int,
                     bytes_since_last: int) -> None:
        await self.protocol.send(ProgressResponse(
            oid=oid,
            bytes_so_far=bytes_so_far,
            bytes_since_last=bytes_since_last,
        ))


class ProgressTracker:
    """
    Running byte count for a single transfer.

    Only chunk sizes go in, so the cumulative value can never go
    backwards.
    """

    def __init__(self, oid: str, sink: ProgressSink):
        self.oid = oid
        self.sink = sink
        self.bytes_so_far = 0

    async def advance(self, chunk_size: int):
        if chunk_size <= 0:
            return
        self.bytes_so_far += chunk_size
        await self.sink.report(self.oid, self.bytes_so_far, chunk_size)
