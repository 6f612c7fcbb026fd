from dataclasses import dataclass
from typing import Optional

from ..protocol.messages import CompleteResponse, ErrorBody
from .errors import TransferError


@dataclass
class TransferResult:
    """Outcome of one download or upload, turned into exactly one `complete`."""
    oid: str
    # set only for a completed download
    path: Optional[str] = None
    error: Optional[TransferError] = None

    @property
    def ok(self) -> bool:
        return self.error is None

    def to_response(self) -> CompleteResponse:
        if self.error is not None:
            return CompleteResponse(
                oid=self.oid,
                error=ErrorBody(code=int(self.error.code), message=self.error.message),
            )
        return CompleteResponse(oid=self.oid, path=self.path)
