"""
Temp File Storage

Downloads land in a uniquely named temp file. The file belongs to the
downloader until its path is reported to the controller; on any failure
before that it is removed.

Storage Layout:
```
<temp_dir>/
├── lfscustomdl1a2b3c    # completed download, path reported to controller
└── lfscustomdl4d5e6f    # in progress
```
"""

import logging
import os
import tempfile
from pathlib import Path
from typing import Optional, Union

import aiofiles
import aiofiles.os

logger = logging.getLogger(__name__)

DEFAULT_PREFIX = 'lfscustomdl'


class TempFileStore:
    """
    Filesystem operations used by the transfer executors.

    Each method is a single fallible step; errors surface as OSError and
    are classified by the caller.
    """

    def __init__(self, temp_dir: Optional[Path] = None,
                 prefix: str = DEFAULT_PREFIX):
        """
        Args:
            temp_dir: Directory for downloads (system temp dir if None)
            prefix: File name prefix for created temp files
        """
        self.temp_dir = Path(temp_dir) if temp_dir else None
        self.prefix = prefix

    def create(self) -> Path:
        """Create a new empty temp file and return its absolute path."""
        if self.temp_dir is not None:
            self.temp_dir.mkdir(parents=True, exist_ok=True)
        fd, name = tempfile.mkstemp(prefix=self.prefix, dir=self.temp_dir)
        os.close(fd)
        return Path(name).resolve()

    async def open_for_write(self, path: Union[str, Path]):
        return await aiofiles.open(path, 'wb')

    async def open_for_read(self, path: Union[str, Path]):
        return await aiofiles.open(path, 'rb')

    async def remove(self, path: Union[str, Path]) -> bool:
        """
        Delete a file.

        Returns:
            True if the file is gone afterwards
        """
        try:
            await aiofiles.os.remove(path)
            return True
        except FileNotFoundError:
            return True
        except OSError as e:
            logger.error(f"Unable to remove temp file {path}: {e}")
            return False
