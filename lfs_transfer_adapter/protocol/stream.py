"""
Line Protocol over stdio

Owns the controller-facing streams for one session. Input is read a line
at a time; every response is written as one line and flushed before
`send` returns, so the controller never waits on buffered output.
"""

import asyncio
import logging
from typing import Optional, TextIO

from .messages import Response, encode_response

logger = logging.getLogger(__name__)


class LineProtocol:
    """
    Reads request lines and writes response lines.

    There is exactly one reader and one writer per session, so no locking
    is needed.
    """

    def __init__(self, reader: TextIO, writer: TextIO):
        self.reader = reader
        self.writer = writer
        self._closed = False

        # Statistics
        self.lines_received = 0
        self.messages_sent = 0

    @property
    def closed(self) -> bool:
        return self._closed

    async def receive(self) -> Optional[str]:
        """
        Read the next line.

        Returns:
            The line without its trailing newline, or None at end of input
        """
        if self._closed:
            return None

        # readline blocks; keep it off the event loop
        line = await asyncio.to_thread(self.reader.readline)
        if not line:
            self._closed = True
            return None

        self.lines_received += 1
        return line.rstrip('\r\n')

    async def send(self, response: Response) -> bool:
        """
        Write one response line and flush.

        Returns:
            True if the line was written, False if encoding or writing failed
        """
        try:
            data = encode_response(response)
        except Exception as e:
            # A half-encoded message can't be emitted safely
            logger.error(f"Unable to encode {type(response).__name__}: {e}")
            return False

        try:
            self.writer.write(data)
            self.writer.flush()
        except (OSError, ValueError) as e:
            logger.error(f"Unable to send {type(response).__name__}: {e}")
            return False

        self.messages_sent += 1
        return True

    def close(self):
        """Stop reading; the streams themselves belong to the caller."""
        self._closed = True

    def get_stats(self) -> dict:
        return {
            'lines_received': self.lines_received,
            'messages_sent': self.messages_sent,
        }
