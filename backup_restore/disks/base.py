"""
Disk Protocol

Defines the interface every disk driver implements. Paths are relative to
the disk root and use ``/`` as separator, independent of the driver.
"""

from datetime import datetime
from typing import BinaryIO, List, Protocol, runtime_checkable


@runtime_checkable
class Disk(Protocol):
    """Protocol for disks that hold backup archives."""

    name: str

    def exists(self, path: str) -> bool:
        """Return True if a file or directory exists at path."""
        ...

    def files(self, directory: str) -> List[str]:
        """
        List files directly inside a directory.

        Returns:
            Disk-relative file paths (``directory/name``), empty if the
            directory does not exist
        """
        ...

    def size(self, path: str) -> int:
        """Return the size of a file in bytes."""
        ...

    def last_modified(self, path: str) -> datetime:
        """Return the last modification time of a file."""
        ...

    def open(self, path: str) -> BinaryIO:
        """
        Open a file for binary reading.

        Raises:
            FileNotFoundError: If the file does not exist
            OSError: If the read fails (may be transient)
        """
        ...

    def get(self, path: str) -> bytes:
        """Read a whole file."""
        ...
