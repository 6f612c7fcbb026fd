"""
Transfer Errors

Every failure that happens while moving one object is reported to the
controller as a `complete` message with a numeric code. The codes are
grouped by failure class, not by call site:

    INTERNAL              1  unexpected exception inside an executor
    REQUEST_CONSTRUCTION  2  the HTTP request could not be built
    LOCAL_OPEN            3  temp file could not be created / source not readable
    LOCAL_WRITE           4  writing downloaded bytes failed
    LOCAL_CLOSE           5  closing the downloaded temp file failed
    TRANSPORT             6  connection, TLS or protocol failure
    REMOTE_STATUS         7  server answered with a status >= 300

Malformed input lines are not transfer errors: they have no oid to
report against and are only logged.
"""

from enum import IntEnum
from typing import Optional


class TransferErrorCode(IntEnum):
    """Stable error codes sent in `complete` messages."""
    INTERNAL = 1
    REQUEST_CONSTRUCTION = 2
    LOCAL_OPEN = 3
    LOCAL_WRITE = 4
    LOCAL_CLOSE = 5
    TRANSPORT = 6
    REMOTE_STATUS = 7


class TransferError(Exception):
    """Base class for failures that end a single transfer."""

    code = TransferErrorCode.INTERNAL

    def __init__(self, message: str, code: Optional[TransferErrorCode] = None):
        super().__init__(message)
        self.message = message
        if code is not None:
            self.code = code


class RequestConstructionError(TransferError):
    code = TransferErrorCode.REQUEST_CONSTRUCTION


class TransportError(TransferError):
    code = TransferErrorCode.TRANSPORT


class RemoteStatusError(TransferError):
    """Server replied, but with a status that is not a success."""

    code = TransferErrorCode.REMOTE_STATUS

    def __init__(self, message: str, status_code: int):
        super().__init__(message)
        self.status_code = status_code


class LocalIOError(TransferError):
    """Temp file or source file failure; callers pass the specific code."""

    code = TransferErrorCode.LOCAL_OPEN
