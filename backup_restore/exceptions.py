"""
Backup Restore Exceptions

Defines a granular exception hierarchy for restore runs. Fatal errors
(NotFound, extraction, validation, timeout) abort the run; recoverable
errors (statement, mapping, permission, health check) are raised inside a
stage, caught there, logged and counted.
"""

from typing import Optional, Dict, Any, List

from backup_restore_exceptions import RestoreOpsError, OperationTimeoutError


class BackupRestoreError(RestoreOpsError):
    """
    Base exception for all restore operations.

    Attributes:
        message: Human-readable error message
        backup_path: Path of the archive involved (if applicable)
        context: Additional context information as key-value pairs

    Example:
        ```python
        try:
            manager.run(params)
        except BackupRestoreError as e:
            logger.error(f"Restore error for {e.backup_path}: {e.message}")
            logger.error(f"Context: {e.context}")
        ```
    """

    def __init__(
        self,
        message: str,
        backup_path: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None
    ):
        self.message = message
        self.backup_path = backup_path
        self.context = context or {}
        super().__init__(self.message)

    def __str__(self) -> str:
        parts = [self.message]
        if self.backup_path:
            parts.append(f"Backup: {self.backup_path}")
        if self.context:
            parts.append(f"Context: {self.context}")
        return " | ".join(parts)


class NotFoundError(BackupRestoreError):
    """Something the run depends on does not exist. Always fatal."""


class ArchiveNotFoundError(NotFoundError):
    """
    Backup archive could not be located on the disk.

    Additional Attributes:
        disk: Name of the disk that was searched
        searched_path: Directory or path that was searched
    """

    def __init__(
        self,
        message: str,
        disk: Optional[str] = None,
        searched_path: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None
    ):
        super().__init__(message, None, context)
        self.disk = disk
        self.searched_path = searched_path


class DumpNotFoundError(NotFoundError):
    """The extracted archive holds no SQL dump."""


class ConnectionNotFoundError(NotFoundError):
    """
    The requested database connection is not configured.

    Additional Attributes:
        connection_name: Requested connection
        available_connections: Configured connection names
    """

    def __init__(
        self,
        message: str,
        connection_name: Optional[str] = None,
        available_connections: Optional[List[str]] = None,
        context: Optional[Dict[str, Any]] = None
    ):
        super().__init__(message, None, context)
        self.connection_name = connection_name
        self.available_connections = available_connections or []


class ExtractionError(BackupRestoreError):
    """
    Archive could not be opened or extracted.

    Raised for wrong passwords, corrupt archives and unsafe member paths.
    The scratch directory is removed before this propagates.
    """


class ArchiveValidationError(BackupRestoreError):
    """
    Archive failed a pre-extraction check (extension, size).

    Additional Attributes:
        validation_errors: List of specific validation failures
    """

    def __init__(
        self,
        message: str,
        backup_path: Optional[str] = None,
        validation_errors: Optional[List[str]] = None,
        context: Optional[Dict[str, Any]] = None
    ):
        super().__init__(message, backup_path, context)
        self.validation_errors = validation_errors or []


class InsufficientStorageError(BackupRestoreError):
    """
    Not enough disk space to download the archive.

    Additional Attributes:
        required_bytes: Number of bytes required
        available_bytes: Number of bytes available
        storage_path: Path where space is needed

    Example:
        ```python
        raise InsufficientStorageError(
            message="Insufficient disk space for download",
            required_bytes=10737418240,  # 10 GB
            available_bytes=5368709120,   # 5 GB
            storage_path="/var/www/html/storage/app"
        )
        ```
    """

    def __init__(
        self,
        message: str,
        required_bytes: Optional[int] = None,
        available_bytes: Optional[int] = None,
        storage_path: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None
    ):
        super().__init__(message, None, context)
        self.required_bytes = required_bytes
        self.available_bytes = available_bytes
        self.storage_path = storage_path

    @property
    def required_gb(self) -> Optional[float]:
        """Get required space in GB."""
        if self.required_bytes:
            return self.required_bytes / (1024 ** 3)
        return None

    @property
    def available_gb(self) -> Optional[float]:
        """Get available space in GB."""
        if self.available_bytes:
            return self.available_bytes / (1024 ** 3)
        return None


class RestoreTimeoutError(BackupRestoreError, OperationTimeoutError):
    """The run exceeded restoration.max_execution_time."""


class StatementError(BackupRestoreError):
    """
    A single SQL statement failed during replay.

    Recovered under the best-effort policy: counted and logged, replay continues.

    Additional Attributes:
        statement_index: 1-based position of the statement in the dump
        statement: The statement text
    """

    def __init__(
        self,
        message: str,
        statement_index: int,
        statement: str,
        context: Optional[Dict[str, Any]] = None
    ):
        super().__init__(message, None, context)
        self.statement_index = statement_index
        self.statement = statement


class MappingSkippedError(BackupRestoreError):
    """
    A file mapping source is absent from the archive.

    Recovered: logged as a warning and counted as skipped.
    """

    def __init__(
        self,
        message: str,
        source: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None
    ):
        super().__init__(message, None, context)
        self.source = source


class PermissionFixError(BackupRestoreError):
    """
    Permissions could not be applied to a restored directory.

    Recovered: reported as a warning, never fails the run.
    """

    def __init__(
        self,
        message: str,
        path: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None
    ):
        super().__init__(message, None, context)
        self.path = path


class HealthCheckFailure(BackupRestoreError):
    """
    A health check reported failure.

    Checks may raise this to attach a message to the failed outcome.
    """

    def __init__(
        self,
        message: str,
        check_name: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None
    ):
        super().__init__(message, None, context)
        self.check_name = check_name
