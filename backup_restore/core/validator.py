"""
Restore Validator

Provides pre-extraction validation for archives: format, size, free space
and archive integrity.
"""

import logging
import shutil
import zipfile
import zlib
from pathlib import Path
from typing import Optional, List

from config.settings import RestoreSettings
from ..models.entities import BackupArchive
from ..exceptions import (
    ArchiveValidationError,
    InsufficientStorageError,
    ExtractionError
)

logger = logging.getLogger(__name__)


class RestoreValidator:
    """
    Validator for restore operations.

    Provides validation methods for:
    - Archive format against the allowed extensions
    - Archive size against the configured maximum
    - Storage space availability for the download
    - Zip archive integrity

    Example:
        ```python
        validator = RestoreValidator(settings)

        # Validate archive before download
        validator.validate_archive(archive)

        # Check storage space
        validator.validate_storage_space(required_bytes=archive.size_bytes)
        ```
    """

    def __init__(self, settings: RestoreSettings):
        """
        Initialize restore validator.

        Args:
            settings: Restore settings
        """
        self.settings = settings
        logger.debug("RestoreValidator initialized")

    def archive_format(self, path: str) -> Optional[str]:
        """Return the allowed extension matching path, longest first."""
        name = Path(path).name.lower()
        for ext in sorted(self.settings.security.allowed_extensions, key=len, reverse=True):
            if name.endswith(f".{ext.lower().lstrip('.')}"):
                return ext
        return None

    def validate_archive(self, archive: BackupArchive) -> None:
        """
        Validate archive format and size.

        Args:
            archive: Located archive

        Raises:
            ArchiveValidationError: If the archive fails any check
        """
        errors: List[str] = []

        if self.archive_format(archive.path) is None:
            allowed = ", ".join(self.settings.security.allowed_extensions)
            errors.append(f"Unsupported archive format (allowed: {allowed})")

        max_size = self.settings.security.max_file_size
        if archive.size_bytes > max_size:
            errors.append(
                f"Archive size {archive.size_bytes / (1024**2):.2f} MB exceeds "
                f"maximum {max_size / (1024**2):.2f} MB"
            )

        if errors:
            raise ArchiveValidationError(
                f"Archive validation failed: {'; '.join(errors)}",
                backup_path=archive.path,
                validation_errors=errors
            )

        logger.debug(f"Archive validated: {archive.path}")

    def validate_storage_space(
        self,
        required_bytes: int,
        storage_path: Optional[Path] = None
    ) -> None:
        """
        Check if sufficient disk space is available.

        Args:
            required_bytes: Required space in bytes
            storage_path: Path to check (uses the temp directory parent if None)

        Raises:
            InsufficientStorageError: If not enough space available
        """
        if storage_path is None:
            storage_path = self.settings.temp_base_path.parent

        # The scratch directory may not exist yet; measure the nearest existing ancestor
        candidate = Path(storage_path)
        while not candidate.exists() and candidate != candidate.parent:
            candidate = candidate.parent

        try:
            stat = shutil.disk_usage(candidate)
        except OSError as e:
            logger.warning(f"Failed to check disk space: {e}")
            return

        available_bytes = stat.free
        if available_bytes < required_bytes:
            raise InsufficientStorageError(
                f"Insufficient storage space: need {required_bytes / (1024**3):.2f} GB, "
                f"available {available_bytes / (1024**3):.2f} GB",
                required_bytes=required_bytes,
                available_bytes=available_bytes,
                storage_path=str(storage_path)
            )

        logger.debug(
            f"Storage validation passed: {available_bytes / (1024**3):.2f} GB available, "
            f"{required_bytes / (1024**3):.2f} GB required"
        )

    def validate_integrity(self, local_archive: Path, password: Optional[str] = None) -> None:
        """
        Test a downloaded zip archive for corrupt members.

        Tar archives are checked while they are extracted.

        Raises:
            ExtractionError: If the archive is unreadable or a member is corrupt
        """
        if not zipfile.is_zipfile(local_archive):
            return

        try:
            with zipfile.ZipFile(local_archive) as zf:
                if password:
                    zf.setpassword(password.encode())
                bad_member = zf.testzip()
        except (zipfile.BadZipFile, RuntimeError, OSError, EOFError, zlib.error) as e:
            raise ExtractionError(f"Archive integrity check failed: {e}", backup_path=str(local_archive))

        if bad_member is not None:
            raise ExtractionError(
                f"Corrupt archive member: {bad_member}",
                backup_path=str(local_archive)
            )

        logger.debug(f"Archive integrity verified: {local_archive.name}")
