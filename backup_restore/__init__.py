"""
Backup Complete Restore

Restores an application backup (database dump plus files) produced by a
Spatie-Laravel-Backup style job, from a configured disk into the local
application.

Features:
- Named or latest archive lookup on configurable disks
- Password protected zip archives with a layered password lookup
- Best-effort or atomic SQL dump replay through SQLAlchemy
- Additive file merges with snapshots of existing destinations
- Permission fixing and pluggable post-restore health checks
- Run deadline, scratch directory cleanup and post-restore commands

Typical usage:

    from config import load_settings
    from backup_restore import RestoreManager, RestoreParams

    settings = load_settings("restore.yaml")
    manager = RestoreManager(settings)

    result = manager.run(RestoreParams(backup="2024-02-01-00-00-00.zip", reset=True))
    if not result.success:
        print(result.error_message)
"""

# Core
from .core import (
    RestoreManager,
    ArchiveLocator,
    RestoreValidator,
    ArchiveExtractor,
    DatabaseRestorer,
    FileRestorer,
    PermissionFixer
)

# Models
from .models.entities import (
    RestoreStage,
    BackupArchive,
    ExtractedTree,
    FileMapping,
    StatementFailure,
    DatabaseRestoreResult,
    FileRestoreResult,
    HealthCheckOutcome,
    HealthCheckSummary,
    RestoreResult
)
from .models.parameters import RestoreParams

# Exceptions
from .exceptions import (
    BackupRestoreError,
    NotFoundError,
    ArchiveNotFoundError,
    DumpNotFoundError,
    ConnectionNotFoundError,
    ExtractionError,
    ArchiveValidationError,
    InsufficientStorageError,
    RestoreTimeoutError,
    StatementError,
    MappingSkippedError,
    PermissionFixError,
    HealthCheckFailure
)

# Extension points
from .disks import Disk, LocalDisk, create_disk, register_disk_driver
from .health_checks import HealthCheck, HealthCheckContext, register_health_check

__all__ = [
    # Core
    'RestoreManager',
    'ArchiveLocator',
    'RestoreValidator',
    'ArchiveExtractor',
    'DatabaseRestorer',
    'FileRestorer',
    'PermissionFixer',

    # Enums
    'RestoreStage',

    # Entities
    'BackupArchive',
    'ExtractedTree',
    'FileMapping',
    'StatementFailure',
    'DatabaseRestoreResult',
    'FileRestoreResult',
    'HealthCheckOutcome',
    'HealthCheckSummary',
    'RestoreResult',

    # Parameters
    'RestoreParams',

    # Exceptions
    'BackupRestoreError',
    'NotFoundError',
    'ArchiveNotFoundError',
    'DumpNotFoundError',
    'ConnectionNotFoundError',
    'ExtractionError',
    'ArchiveValidationError',
    'InsufficientStorageError',
    'RestoreTimeoutError',
    'StatementError',
    'MappingSkippedError',
    'PermissionFixError',
    'HealthCheckFailure',

    # Extension points
    'Disk',
    'LocalDisk',
    'create_disk',
    'register_disk_driver',
    'HealthCheck',
    'HealthCheckContext',
    'register_health_check'
]
