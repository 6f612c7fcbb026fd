"""
Transfer Module - HTTP Download/Upload

Moves object bytes between action URLs and local files, reporting
progress as it goes.
"""

from .downloader import HttpDownloader
from .errors import (
    LocalIOError,
    RemoteStatusError,
    RequestConstructionError,
    TransferError,
    TransferErrorCode,
    TransportError,
)
from .http import HttpTransport, create_client, trace_request
from .progress import ProgressSink, ProgressTracker, ProtocolProgressSink
from .result import TransferResult
from .storage import TempFileStore
from .uploader import HttpUploader

__all__ = [
    'HttpDownloader',
    'HttpTransport',
    'HttpUploader',
    'LocalIOError',
    'ProgressSink',
    'ProgressTracker',
    'ProtocolProgressSink',
    'RemoteStatusError',
    'RequestConstructionError',
    'TempFileStore',
    'TransferError',
    'TransferErrorCode',
    'TransferResult',
    'TransportError',
    'create_client',
    'trace_request',
]
