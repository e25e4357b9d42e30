"""
Archive Locator

Resolves a named or the latest backup archive on a disk.
"""

import logging
from pathlib import PurePosixPath
from typing import List, Optional

from config.settings import RestoreSettings
from ..disks import Disk
from ..exceptions import ArchiveNotFoundError
from ..models.entities import BackupArchive

logger = logging.getLogger(__name__)


class ArchiveLocator:
    """
    Locate backup archives inside the configured backup directory of a disk.

    Example:
        ```python
        locator = ArchiveLocator(settings)
        archive = locator.locate(disk)                      # latest
        archive = locator.locate(disk, "backup-2024-02-01.zip")
        ```
    """

    def __init__(self, settings: RestoreSettings):
        self.settings = settings
        self.backup_directory = settings.backup_name.strip("/")
        self.extensions = tuple(settings.archive.extensions)

    def _is_archive(self, path: str) -> bool:
        return path.endswith(self.extensions)

    def _to_archive(self, disk: Disk, path: str) -> BackupArchive:
        return BackupArchive(
            path=path,
            disk=disk.name,
            size_bytes=disk.size(path),
            last_modified=disk.last_modified(path)
        )

    def list_archives(self, disk: Disk) -> List[BackupArchive]:
        """
        List archives in the backup directory, newest first.

        Returns:
            Archives sorted by last-modified time, empty if the directory is absent
        """
        if not disk.exists(self.backup_directory):
            logger.debug(f"Backup directory '{self.backup_directory}' not found on disk '{disk.name}'")
            return []

        archives = [
            self._to_archive(disk, path)
            for path in disk.files(self.backup_directory)
            if self._is_archive(path)
        ]
        archives.sort(key=lambda a: a.last_modified, reverse=True)

        logger.debug(f"Found {len(archives)} archives on disk '{disk.name}'")
        return archives

    def locate(self, disk: Disk, backup: Optional[str] = None) -> BackupArchive:
        """
        Resolve the archive to restore.

        Args:
            disk: Disk to search
            backup: Explicit archive name or path; latest archive if None

        Returns:
            The located BackupArchive

        Raises:
            ArchiveNotFoundError: If no matching archive exists
        """
        if backup:
            return self._locate_named(disk, backup)
        return self._locate_latest(disk)

    def _locate_named(self, disk: Disk, backup: str) -> BackupArchive:
        # A name containing a separator is already a disk path
        path = backup if "/" in backup else f"{self.backup_directory}/{backup}"

        try:
            found = disk.exists(path)
        except ValueError as e:
            raise ArchiveNotFoundError(
                f"Backup '{backup}' is outside the disk: {e}",
                disk=disk.name,
                searched_path=self.backup_directory
            ) from e

        if found:
            logger.info(f"Located backup by path: {path}")
            return self._to_archive(disk, path)

        for candidate in disk.files(self.backup_directory):
            if PurePosixPath(candidate).name == backup:
                logger.info(f"Located backup by filename: {candidate}")
                return self._to_archive(disk, candidate)

        raise ArchiveNotFoundError(
            f"Backup '{backup}' not found",
            disk=disk.name,
            searched_path=self.backup_directory
        )

    def _locate_latest(self, disk: Disk) -> BackupArchive:
        if not disk.exists(self.backup_directory):
            raise ArchiveNotFoundError(
                f"Backup directory '{self.backup_directory}' does not exist",
                disk=disk.name,
                searched_path=self.backup_directory
            )

        archives = self.list_archives(disk)
        if not archives:
            raise ArchiveNotFoundError(
                f"No backup archives found in '{self.backup_directory}'",
                disk=disk.name,
                searched_path=self.backup_directory
            )

        latest = archives[0]
        logger.info(f"Located latest backup: {latest.path} ({latest.last_modified})")
        return latest
