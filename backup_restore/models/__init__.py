"""
Backup Restore Models

Exports entity and parameter models for restore runs.
"""

from .entities import (
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

from .parameters import RestoreParams

__all__ = [
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
    'RestoreParams'
]
