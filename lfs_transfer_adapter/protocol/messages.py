"""
Custom Transfer Wire Messages

Design Decision: Message Framing
================================

Options Considered:
1. Length-prefixed JSON header + binary payload
   - Robust against embedded newlines
   - Not what the controller speaks

2. Line-delimited JSON
   - One message per line, UTF-8
   - Trivial to debug with a terminal
   - JSON encoders never emit raw newlines, so framing is safe

Decision: Line-delimited JSON, validated with pydantic
- Requests are a discriminated union keyed on "id"
- Each variant carries only its own fields
- Unknown extra fields are ignored so newer controllers keep working

Message Format:
```
-> {"id":"init","operation":"download","concurrent":true,"concurrenttransfers":3}
<- {}
-> {"id":"download","oid":"abc","size":4,"action":{"href":"https://...","header":{...}}}
<- {"id":"progress","oid":"abc","bytesSoFar":4,"bytesSinceLast":4}
<- {"id":"complete","oid":"abc","path":"/tmp/lfscustomdl123"}
-> {"id":"terminate"}
```
"""

import json
from datetime import datetime
from enum import Enum
from typing import Annotated, Any, Dict, Literal, Optional, Union

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    TypeAdapter,
    ValidationError,
    field_validator,
)


class MessageType(Enum):
    """Values of the "id" field."""
    # Controller -> adapter
    INIT = "init"
    DOWNLOAD = "download"
    UPLOAD = "upload"
    TERMINATE = "terminate"

    # Adapter -> controller
    PROGRESS = "progress"
    COMPLETE = "complete"


REQUEST_TYPES = {
    MessageType.INIT.value,
    MessageType.DOWNLOAD.value,
    MessageType.UPLOAD.value,
    MessageType.TERMINATE.value,
}


class DecodeFailure(Enum):
    """Why an input line could not be turned into a request."""
    INVALID_JSON = "invalid_json"
    NOT_AN_OBJECT = "not_an_object"
    UNKNOWN_COMMAND = "unknown_command"
    INVALID_FIELDS = "invalid_fields"


class MalformedRequest(Exception):
    """An input line that is not a valid request. Never fatal to the session."""

    def __init__(self, reason: DecodeFailure, line: str, detail: str = ''):
        self.reason = reason
        self.line = line
        self.detail = detail
        text = f"{reason.value}: {detail}" if detail else reason.value
        super().__init__(text)


# === Requests ===

class Action(BaseModel):
    """Remote endpoint for one transfer."""
    href: str
    header: Dict[str, str] = Field(default_factory=dict)
    # Informational only, the controller checks expiry before sending
    expires_at: Optional[datetime] = None

    @field_validator('header', mode='before')
    @classmethod
    def _null_header(cls, value: Any) -> Any:
        return {} if value is None else value


class InitRequest(BaseModel):
    """Start of a session."""
    model_config = ConfigDict(populate_by_name=True)

    id: Literal['init'] = 'init'
    operation: Literal['upload', 'download']
    concurrent: bool = False
    concurrent_transfers: int = Field(default=0, alias='concurrenttransfers')


class DownloadRequest(BaseModel):
    """Fetch one object into a local temp file."""
    id: Literal['download'] = 'download'
    oid: str = Field(min_length=1)
    size: int = Field(ge=0)
    action: Action


class UploadRequest(BaseModel):
    """Send one local file to the remote endpoint."""
    id: Literal['upload'] = 'upload'
    oid: str = Field(min_length=1)
    size: int = Field(ge=0)
    path: str = Field(min_length=1)
    action: Action


class TerminateRequest(BaseModel):
    id: Literal['terminate'] = 'terminate'


Request = Annotated[
    Union[InitRequest, DownloadRequest, UploadRequest, TerminateRequest],
    Field(discriminator='id'),
]

_request_adapter = TypeAdapter(Request)


# === Responses ===

class ErrorBody(BaseModel):
    code: int
    message: str


class InitResponse(BaseModel):
    """Reply to init. An empty object means success."""
    error: Optional[ErrorBody] = None


class ProgressResponse(BaseModel):
    """Intermediate byte count for one oid."""
    model_config = ConfigDict(populate_by_name=True)

    id: Literal['progress'] = 'progress'
    oid: str
    bytes_so_far: int = Field(alias='bytesSoFar')
    bytes_since_last: int = Field(alias='bytesSinceLast')


class CompleteResponse(BaseModel):
    """
    Terminal message for one transfer.

    `path` is only set for successful downloads, `error` only for failures.
    """
    id: Literal['complete'] = 'complete'
    oid: str
    path: Optional[str] = None
    error: Optional[ErrorBody] = None

    @property
    def ok(self) -> bool:
        return self.error is None


Response = Union[InitResponse, ProgressResponse, CompleteResponse]


# === Codec ===

def decode_request(line: str) -> Request:
    """
    Decode one input line into a typed request.

    Raises:
        MalformedRequest: line is not JSON, not an object, has an unknown
            "id", or is missing/has invalid fields for its command
    """
    try:
        data = json.loads(line)
    except ValueError as e:
        raise MalformedRequest(DecodeFailure.INVALID_JSON, line, str(e)) from e

    if not isinstance(data, dict):
        raise MalformedRequest(DecodeFailure.NOT_AN_OBJECT, line,
                               f"got {type(data).__name__}")

    command = data.get('id')
    if not isinstance(command, str) or command not in REQUEST_TYPES:
        raise MalformedRequest(DecodeFailure.UNKNOWN_COMMAND, line,
                               f"unrecognised id {command!r}")

    try:
        return _request_adapter.validate_python(data)
    except ValidationError as e:
        fields = ', '.join(
            '.'.join(str(p) for p in err['loc'][1:]) or str(err['loc'][0])
            for err in e.errors()
        )
        raise MalformedRequest(DecodeFailure.INVALID_FIELDS, line,
                               f"{command}: {fields}") from e


def encode_response(response: Response) -> str:
    """Encode a response as one JSON line, newline included."""
    body = response.model_dump_json(by_alias=True, exclude_none=True)
    return body + '\n'
