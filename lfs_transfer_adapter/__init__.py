"""lfs_transfer_adapter

Custom transfer adapter that relays object downloads and uploads to HTTP
storage endpoints, driven by a controller over line-delimited JSON on
stdin/stdout.
Run as module: python -m lfs_transfer_adapter
"""

from .config import AdapterConfig, load_config
from .session import AdapterSession, SessionState, run_adapter

__version__ = "0.1.0"

__all__ = [
    "AdapterConfig",
    "AdapterSession",
    "SessionState",
    "load_config",
    "run_adapter",
]
