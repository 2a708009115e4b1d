"""
File storage for exported images.

A sink takes encoded bytes plus a file name and returns a handle for the
stored result. FileSink writes into a directory and never leaves a
half-written file behind: data goes to a temporary file that is renamed over
the target only once it is complete.
"""

import os
import tempfile
from pathlib import Path

from constants import Export


class FileSink:
    """Directory-backed export sink."""

    def __init__(self, directory: Path = None):
        self.directory = Path(directory) if directory is not None else Export.OUTPUT_DIR

    def _ensure_dir(self):
        """Ensure the output directory exists."""
        self.directory.mkdir(parents=True, exist_ok=True)

    def write(self, data: bytes, name: str) -> Path:
        """
        Store `data` as `name` inside the directory.

        Returns:
            Path of the written file

        Raises:
            OSError: if the directory or file cannot be written; any previous
                file with the same name is left untouched
        """
        self._ensure_dir()
        target = self.directory / name
        fd, tmp_path = tempfile.mkstemp(prefix=".", suffix=".part", dir=self.directory)
        try:
            with os.fdopen(fd, 'wb') as f:
                f.write(data)
                f.flush()
                os.fsync(f.fileno())
            os.replace(tmp_path, target)
        except BaseException:
            if os.path.exists(tmp_path):
                os.unlink(tmp_path)
            raise
        return target


# Global storage instance
_storage = None


def get_storage() -> FileSink:
    """Get the global export sink."""
    global _storage
    if _storage is None:
        _storage = FileSink()
    return _storage
