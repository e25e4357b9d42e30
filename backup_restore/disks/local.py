"""
Local File System Disk

Implements the disk protocol on top of a directory on the local file
system.

Directory structure:
    root/
    ├── <backup_name>/
    │   ├── 2024-01-01-00-00-00.zip
    │   ├── 2024-02-01-00-00-00.zip
"""

import logging
from datetime import datetime
from pathlib import Path, PurePosixPath
from typing import BinaryIO, List, Union

logger = logging.getLogger(__name__)


class LocalDisk:
    """
    Local file system disk.

    Example:
        ```python
        disk = LocalDisk("local", "/var/www/html/storage/app")
        for path in disk.files("laravel-backup"):
            print(path, disk.size(path))
        ```
    """

    def __init__(self, name: str, root: Union[str, Path]):
        """
        Initialize local disk.

        Args:
            name: Disk name used in messages and listings
            root: Root directory of the disk
        """
        self.name = name
        self.root_path = Path(root)
        logger.debug(f"LocalDisk '{name}' initialized with root: {self.root_path}")

    def _full_path(self, path: str) -> Path:
        """Map a disk-relative path to a local path inside the root."""
        relative = PurePosixPath(path.lstrip("/"))
        if ".." in relative.parts:
            raise ValueError(f"Path escapes disk root: {path}")
        return self.root_path.joinpath(*relative.parts)

    def exists(self, path: str) -> bool:
        return self._full_path(path).exists()

    def files(self, directory: str) -> List[str]:
        directory_path = self._full_path(directory)
        if not directory_path.is_dir():
            return []

        prefix = directory.strip("/")
        result = []
        for entry in sorted(directory_path.iterdir()):
            if entry.is_file():
                result.append(f"{prefix}/{entry.name}" if prefix else entry.name)
        return result

    def size(self, path: str) -> int:
        return self._full_path(path).stat().st_size

    def last_modified(self, path: str) -> datetime:
        return datetime.fromtimestamp(self._full_path(path).stat().st_mtime)

    def open(self, path: str) -> BinaryIO:
        return open(self._full_path(path), "rb")

    def get(self, path: str) -> bytes:
        return self._full_path(path).read_bytes()

    def __repr__(self) -> str:
        return f"LocalDisk(name={self.name!r}, root={str(self.root_path)!r})"
