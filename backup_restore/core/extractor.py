"""
Archive Extractor

Downloads a located archive from its disk into a run-unique scratch
directory, inspects it, and unpacks it (zip with optional password, tar,
tar.gz).
"""

import logging
import os
import shutil
import tarfile
import zipfile
import zlib
from datetime import datetime
from pathlib import Path, PurePosixPath
from typing import List, Optional, Union

from dotenv import dotenv_values
from tenacity import Retrying, retry_if_exception, stop_after_attempt, wait_exponential

from config.settings import RestoreSettings, ENV_PASSWORD_KEY
from ..disks import Disk
from ..exceptions import ExtractionError
from ..models.entities import BackupArchive, ExtractedTree
from ..utils.formatting import format_bytes, render_tree

logger = logging.getLogger(__name__)

# Directory spatie/laravel-backup stores dumps under
DB_DUMP_DIRECTORY = "/db-dumps/"

TREE_RENDER_DEPTH = 3
# Extraction filters exist from 3.9.17, 3.10.12 and 3.11.4 on
TAR_EXTRACTION_FILTERS = hasattr(tarfile, "data_filter")


def _is_transient(error: BaseException) -> bool:
    return isinstance(error, OSError) and not isinstance(
        error, (FileNotFoundError, IsADirectoryError, PermissionError)
    )


class ArchiveExtractor:
    """
    Download and extract backup archives.

    The archive is copied from the disk once per run. The scratch directory
    is named ``<temp_directory>-<YYYYmmdd_HHMMSS_ffffff>`` so concurrent or
    repeated runs never share one.

    Example:
        ```python
        extractor = ArchiveExtractor(settings)
        local_archive = extractor.download(disk, archive)

        if extractor.contains_database(local_archive):
            print("Archive carries a database dump")

        password = extractor.resolve_password(explicit=None)
        tree = extractor.extract(local_archive, password)
        ...
        extractor.cleanup(tree)
        ```
    """

    def __init__(self, settings: RestoreSettings):
        self.settings = settings

    def create_scratch_directory(self) -> Path:
        """Create a new run-unique scratch directory."""
        timestamp = datetime.now().strftime("%Y%m%d_%H%M%S_%f")
        base = self.settings.temp_base_path
        scratch = base.with_name(f"{base.name}-{timestamp}")
        scratch.mkdir(parents=True, exist_ok=False)
        logger.debug(f"Created scratch directory: {scratch}")
        return scratch

    def download(self, disk: Disk, archive: BackupArchive, scratch: Optional[Path] = None) -> Path:
        """
        Copy an archive from its disk into a scratch directory.

        Transient read errors are retried with exponential backoff.

        Args:
            disk: Disk holding the archive
            archive: Located archive
            scratch: Target directory (a new scratch directory if None)

        Returns:
            Local path of the downloaded archive

        Raises:
            ExtractionError: If the archive cannot be read from the disk
        """
        scratch = scratch or self.create_scratch_directory()
        local_path = scratch / archive.filename
        restoration = self.settings.restoration

        retryer = Retrying(
            stop=stop_after_attempt(restoration.max_retries),
            wait=wait_exponential(multiplier=restoration.retry_delay_seconds,
                                  max=restoration.retry_delay_seconds * 10),
            retry=retry_if_exception(_is_transient),
            reraise=True
        )

        try:
            for attempt in retryer:
                with attempt:
                    if attempt.retry_state.attempt_number > 1:
                        logger.warning(
                            f"Retrying download of {archive.path} "
                            f"(attempt {attempt.retry_state.attempt_number}/{restoration.max_retries})"
                        )
                    with disk.open(archive.path) as src, open(local_path, "wb") as dst:
                        shutil.copyfileobj(src, dst)
        except OSError as e:
            raise ExtractionError(
                f"Failed to download archive from disk '{disk.name}': {e}",
                backup_path=archive.path
            )

        logger.info(f"Downloaded {archive.filename} ({format_bytes(local_path.stat().st_size)}) to {scratch}")
        return local_path

    def resolve_password(self, explicit: Optional[str] = None) -> Optional[str]:
        """
        Resolve the archive password.

        Precedence: explicit value, ``archive.password`` setting, the
        BACKUP_ARCHIVE_PASSWORD environment variable, then a raw read of the
        configured env file.

        Returns:
            Password, or None when nothing is configured
        """
        if explicit:
            logger.debug("Using archive password from command line")
            return explicit

        configured = self.settings.archive.password
        if configured is not None and configured.get_secret_value():
            logger.debug("Using archive password from settings")
            return configured.get_secret_value()

        from_env = os.environ.get(ENV_PASSWORD_KEY)
        if from_env:
            logger.debug(f"Using archive password from {ENV_PASSWORD_KEY}")
            return from_env

        env_file = self.settings.resolve_path(self.settings.archive.env_file)
        if env_file.is_file():
            value = dotenv_values(env_file).get(ENV_PASSWORD_KEY)
            if value:
                logger.debug(f"Using archive password from {env_file}")
                return value

        logger.warning("No archive password configured, attempting extraction without password")
        return None

    def list_entries(self, local_archive: Path) -> List[str]:
        """
        List member names without extracting.

        Raises:
            ExtractionError: If the archive cannot be opened
        """
        try:
            if zipfile.is_zipfile(local_archive):
                with zipfile.ZipFile(local_archive) as zf:
                    return zf.namelist()
            with tarfile.open(local_archive, "r:*") as tf:
                return tf.getnames()
        except (zipfile.BadZipFile, tarfile.TarError, OSError) as e:
            raise ExtractionError(f"Cannot open archive: {e}", backup_path=str(local_archive))

    def contains_database(self, local_archive: Path) -> bool:
        """Return True if any member is a SQL file or lies under db-dumps/."""
        for name in self.list_entries(local_archive):
            if name.endswith(".sql") or DB_DUMP_DIRECTORY in f"/{name}".replace("\\", "/"):
                logger.debug(f"Database dump entry found: {name}")
                return True
        return False

    def extract(self, local_archive: Path, password: Optional[str] = None) -> ExtractedTree:
        """
        Extract an archive into its scratch directory.

        On success the downloaded archive file is deleted so only the
        extracted contents remain. On failure the whole scratch directory is
        removed.

        Args:
            local_archive: Downloaded archive inside a scratch directory
            password: Archive password (zip only)

        Returns:
            The extracted tree

        Raises:
            ExtractionError: On a wrong password, a corrupt archive or an unsafe member path
        """
        scratch = local_archive.parent
        logger.info(f"Extracting {local_archive.name} to {scratch}")

        try:
            if zipfile.is_zipfile(local_archive):
                entries = self._extract_zip(local_archive, scratch, password)
            else:
                if password:
                    logger.warning("Password ignored for non-zip archive")
                entries = self._extract_tar(local_archive, scratch)
        except (zipfile.BadZipFile, tarfile.TarError, RuntimeError, OSError, ValueError, EOFError, zlib.error) as e:
            self.cleanup(scratch)
            raise ExtractionError(f"Failed to extract archive: {e}", backup_path=str(local_archive))

        local_archive.unlink()
        logger.info(f"Extracted {entries} entries")

        if logger.isEnabledFor(logging.DEBUG):
            for line in render_tree(scratch, max_depth=TREE_RENDER_DEPTH):
                logger.debug(line)

        return ExtractedTree(root=scratch, archive_path=local_archive.name, entries=entries)

    def _extract_zip(self, local_archive: Path, destination: Path, password: Optional[str]) -> int:
        with zipfile.ZipFile(local_archive) as zf:
            for name in zf.namelist():
                member = PurePosixPath(name.replace("\\", "/"))
                if member.is_absolute() or ".." in member.parts:
                    raise ValueError(f"Unsafe member path in archive: {name}")
            if password:
                zf.setpassword(password.encode())
            zf.extractall(destination)
            return len(zf.namelist())

    def _extract_tar(self, local_archive: Path, destination: Path) -> int:
        with tarfile.open(local_archive, "r:*") as tf:
            members = tf.getmembers()
            if TAR_EXTRACTION_FILTERS:
                tf.extractall(destination, filter="data")
            else:
                for member in members:
                    path = PurePosixPath(member.name)
                    if path.is_absolute() or ".." in path.parts or member.issym() or member.islnk() or member.isdev():
                        raise ValueError(f"Unsafe member in archive: {member.name}")
                tf.extractall(destination)
            return len(members)

    def cleanup(self, target: Union[ExtractedTree, Path, None]) -> None:
        """Remove a scratch directory if it exists."""
        if target is None:
            return
        path = target.root if isinstance(target, ExtractedTree) else Path(target)
        if path.exists():
            shutil.rmtree(path, ignore_errors=True)
            logger.debug(f"Removed scratch directory: {path}")
