"""
Backup Restore Parameters

Per-run options supplied on the command line, validated before the
pipeline starts.
"""

from typing import Optional
from pydantic import BaseModel, Field, model_validator


class RestoreParams(BaseModel):
    """
    Parameters for one restore run.

    Attributes:
        disk: Disk to restore from (uses settings.default_disk if None)
        backup: Explicit archive name or path (latest archive if None)
        connection: Target database connection (uses settings default if None)
        reset: Drop all tables before replaying the dump
        database_only: Restore only the database
        files_only: Restore only files
        force: Skip the confirmation prompt
        password: Explicit archive password, first in the password fallback chain

    Example:
        ```python
        params = RestoreParams(disk="local", backup="backup-2024-02-01.zip", reset=True)
        ```
    """
    disk: Optional[str] = Field(default=None, description="Source disk name")
    backup: Optional[str] = Field(default=None, description="Explicit archive name or path")
    connection: Optional[str] = Field(default=None, description="Target database connection")
    reset: bool = Field(default=False, description="Drop all tables before restoring")
    database_only: bool = Field(default=False, description="Restore only the database")
    files_only: bool = Field(default=False, description="Restore only files")
    force: bool = Field(default=False, description="Skip confirmation prompt")
    password: Optional[str] = Field(default=None, repr=False, description="Explicit archive password")

    @model_validator(mode="after")
    def validate_scope(self) -> "RestoreParams":
        """database_only and files_only exclude each other."""
        if self.database_only and self.files_only:
            raise ValueError("database_only and files_only cannot both be set")
        if self.backup is not None and not self.backup.strip():
            raise ValueError("backup cannot be empty")
        return self

    @property
    def restore_database(self) -> bool:
        return not self.files_only

    @property
    def restore_files(self) -> bool:
        return not self.database_only
