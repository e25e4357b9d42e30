"""
Backup Restore Entities

Defines data models for restore runs: the archive being restored, the
scratch tree it is extracted to, file mappings, and per-stage results.

These models use Pydantic for validation and provide a type-safe interface
for restore operations.
"""

from datetime import datetime
from enum import Enum
from pathlib import Path
from typing import List, Optional
from pydantic import BaseModel, ConfigDict, Field


class RestoreStage(str, Enum):
    """
    Stages of a restore run, in execution order.

    Any hard failure moves straight to FAILED; CLEANUP still runs.
    """
    IDLE = "IDLE"
    CONFIRMING = "CONFIRMING"
    LOCATING_ARCHIVE = "LOCATING_ARCHIVE"
    CHECKING_FOR_DATABASE = "CHECKING_FOR_DATABASE"
    RESTORING_DATABASE = "RESTORING_DATABASE"
    EXTRACTING_ARCHIVE = "EXTRACTING_ARCHIVE"
    RESTORING_FILES = "RESTORING_FILES"
    FIXING_PERMISSIONS = "FIXING_PERMISSIONS"
    RUNNING_HEALTH_CHECKS = "RUNNING_HEALTH_CHECKS"
    CLEANUP = "CLEANUP"
    DONE = "DONE"
    FAILED = "FAILED"


class BackupArchive(BaseModel):
    """
    A backup archive discovered on a disk.

    Discovered by the locator, consumed once by the extractor, never mutated.

    Attributes:
        path: Path of the archive on the disk
        disk: Name of the disk holding the archive
        size_bytes: Archive size in bytes
        last_modified: Last modification timestamp
        password: Optional archive password
    """
    model_config = ConfigDict(frozen=True)

    path: str = Field(..., description="Path of the archive on the disk")
    disk: str = Field(..., description="Disk name")
    size_bytes: int = Field(default=0, ge=0, description="Archive size in bytes")
    last_modified: datetime = Field(..., description="Last modification timestamp")
    password: Optional[str] = Field(default=None, repr=False, description="Archive password")

    @property
    def filename(self) -> str:
        return Path(self.path).name

    @property
    def size_mb(self) -> float:
        """Get size in megabytes."""
        return self.size_bytes / (1024 ** 2)


class ExtractedTree(BaseModel):
    """
    Scratch directory holding an unpacked archive.

    Owned exclusively by one restore run.
    """
    root: Path = Field(..., description="Scratch directory")
    archive_path: str = Field(..., description="Archive the tree was extracted from")
    entries: int = Field(default=0, ge=0, description="Number of extracted members")


class FileMapping(BaseModel):
    """Pairing of a backup-relative source with a local destination."""
    model_config = ConfigDict(frozen=True)

    source: str = Field(..., description="Path inside the backup, relative to the container base path")
    destination: Path = Field(..., description="Local destination directory")


class StatementFailure(BaseModel):
    """A SQL statement that failed during replay."""
    index: int = Field(..., ge=1, description="1-based statement position")
    statement: str = Field(..., description="Statement text (truncated)")
    error: str = Field(..., description="Driver error message")


class DatabaseRestoreResult(BaseModel):
    """
    Outcome of the database stage.

    ``success`` is deliberately lenient under best-effort replay: the stage
    succeeds when at least one statement was applied. Under atomic replay
    any failure fails the stage.
    """
    connection_name: str = Field(..., description="Target connection")
    dump_file: Optional[str] = Field(default=None, description="Replayed dump file")
    total_statements: int = Field(default=0, ge=0)
    succeeded_statements: int = Field(default=0, ge=0)
    failed_statements: int = Field(default=0, ge=0)
    dropped_tables: List[str] = Field(default_factory=list)
    failures: List[StatementFailure] = Field(default_factory=list, description="First reported failures")
    atomic: bool = Field(default=False, description="Whether atomic replay was used")
    rolled_back: bool = Field(default=False, description="Whether an atomic replay was rolled back")
    execution_time_ms: float = Field(default=0.0, ge=0.0)

    @property
    def success(self) -> bool:
        if self.atomic:
            return self.failed_statements == 0 and not self.rolled_back
        return self.succeeded_statements > 0


class FileRestoreResult(BaseModel):
    """Outcome of the file stage, counted per mapping."""
    restored: int = Field(default=0, ge=0, description="Mappings merged successfully")
    failed: int = Field(default=0, ge=0, description="Mappings that raised an error")
    skipped: int = Field(default=0, ge=0, description="Mappings whose source was absent")
    files_copied: int = Field(default=0, ge=0)
    snapshots: List[str] = Field(default_factory=list, description="Snapshots of pre-existing destinations")
    errors: List[str] = Field(default_factory=list)

    @property
    def success(self) -> bool:
        return self.failed == 0


class HealthCheckOutcome(BaseModel):
    """Result of one health check."""
    name: str
    passed: bool
    message: Optional[str] = None


class HealthCheckSummary(BaseModel):
    """Aggregated health check outcomes."""
    outcomes: List[HealthCheckOutcome] = Field(default_factory=list)

    @property
    def passed(self) -> int:
        return sum(1 for o in self.outcomes if o.passed)

    @property
    def failed(self) -> int:
        return sum(1 for o in self.outcomes if not o.passed)

    @property
    def all_passed(self) -> bool:
        return self.failed == 0


class RestoreResult(BaseModel):
    """
    Result of a complete restore run.

    Determines the command exit status: success iff there was no fatal
    error, the database stage (when attempted) succeeded, no file mapping
    failed, and no health check failed when failures are configured fatal.

    Example:
        ```python
        result = manager.run(params)
        print(f"Stage reached: {result.stage}")
        print(f"Statements: {result.database.succeeded_statements}")
        ```
    """
    archive: Optional[BackupArchive] = Field(default=None, description="Restored archive")
    stage: RestoreStage = Field(default=RestoreStage.IDLE, description="Final stage")
    stages: List[RestoreStage] = Field(default_factory=list, description="Stages visited in order")
    has_database: Optional[bool] = Field(default=None, description="Whether the archive carries a dump")
    database: Optional[DatabaseRestoreResult] = None
    files: Optional[FileRestoreResult] = None
    permission_warnings: List[str] = Field(default_factory=list)
    health: Optional[HealthCheckSummary] = None
    health_checks_fatal: bool = Field(default=False)
    error_message: Optional[str] = Field(default=None, description="Fatal error, if any")
    cancelled: bool = Field(default=False, description="Whether the operator declined confirmation")
    execution_time_ms: float = Field(default=0.0, ge=0.0)

    @property
    def success(self) -> bool:
        if self.cancelled:
            return False
        if self.error_message is not None or self.stage == RestoreStage.FAILED:
            return False
        if self.database is not None and not self.database.success:
            return False
        if self.files is not None and not self.files.success:
            return False
        if self.health_checks_fatal and self.health is not None and not self.health.all_passed:
            return False
        return True

    @property
    def exit_code(self) -> int:
        return 0 if self.success else 1

    @property
    def execution_time_seconds(self) -> float:
        """Get execution time in seconds."""
        return self.execution_time_ms / 1000
