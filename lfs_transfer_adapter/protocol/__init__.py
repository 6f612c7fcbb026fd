"""
Protocol Module - Line-delimited JSON with the controller

Request/response schemas and the stdio line transport.
"""

from .messages import (
    Action,
    CompleteResponse,
    DecodeFailure,
    DownloadRequest,
    ErrorBody,
    InitRequest,
    InitResponse,
    MalformedRequest,
    MessageType,
    ProgressResponse,
    TerminateRequest,
    UploadRequest,
    decode_request,
    encode_response,
)
from .stream import LineProtocol

__all__ = [
    'Action',
    'CompleteResponse',
    'DecodeFailure',
    'DownloadRequest',
    'ErrorBody',
    'InitRequest',
    'InitResponse',
    'LineProtocol',
    'MalformedRequest',
    'MessageType',
    'ProgressResponse',
    'TerminateRequest',
    'UploadRequest',
    'decode_request',
    'encode_response',
]
