"""
Built-in Health Checks

Database and file system checks run after a restore.
"""

import os
from pathlib import Path

from dotenv import dotenv_values
from sqlalchemy import func, inspect, select, table, text

from .base import HealthCheck, HealthCheckContext
from .registry import register_health_check

DEFAULT_ALLOWED_MODES = (0o755, 0o775)
DEFAULT_REQUIRED_KEYS = ("APP_NAME", "APP_ENV", "APP_KEY", "APP_DEBUG")


@register_health_check
class DatabaseHasTables(HealthCheck):
    name = "database_has_tables"
    description = "Verifies that the restored database contains tables."

    def check(self, context: HealthCheckContext):
        tables = inspect(context.engine()).get_table_names()
        if not tables:
            self.fail("Database has no tables")
        return True


@register_health_check
class DatabaseHasRecords(HealthCheck):
    name = "database_has_records"
    description = "Verifies that the restored database contains records in tables."

    def check(self, context: HealthCheckContext):
        engine = context.engine()
        tables = inspect(engine).get_table_names()
        with engine.connect() as conn:
            for name in tables:
                count = conn.execute(select(func.count()).select_from(table(name))).scalar()
                if count:
                    return True
        self.fail(f"No records found in {len(tables)} tables")


@register_health_check
class FilesExist(HealthCheck):
    """Option ``files``: paths relative to app_base_path that must exist."""

    name = "files_exist"
    description = "Verifies that critical files exist after restoration."

    def check(self, context: HealthCheckContext):
        missing = [
            path for path in self.options.get("files", [])
            if not context.settings.resolve_path(path).exists()
        ]
        if missing:
            self.fail(f"Missing files: {', '.join(missing)}")
        return True


@register_health_check
class FileIntegrity(HealthCheck):
    """
    Every mapping destination exists, is readable and carries an allowed mode.

    Option ``allowed_modes``: integers or octal strings, default 0755 and 0775.
    """

    name = "file_integrity"
    description = "Verifies restored directories are readable with expected permissions."

    def allowed_modes(self):
        modes = self.options.get("allowed_modes", DEFAULT_ALLOWED_MODES)
        return {int(m, 8) if isinstance(m, str) else int(m) for m in modes}

    def check(self, context: HealthCheckContext):
        allowed = self.allowed_modes()
        for destination in context.mapping_destinations:
            if not destination.exists():
                self.fail(f"{destination} does not exist")
            if not os.access(destination, os.R_OK):
                self.fail(f"{destination} is not readable")
            mode = destination.stat().st_mode & 0o7777
            if mode not in allowed:
                self.fail(f"{destination} has mode {oct(mode)}")
        return True


@register_health_check
class StorageDirectoriesWritable(HealthCheck):
    """Option ``directories``: defaults to the configured storage directories."""

    name = "storage_directories_writable"
    description = "Verifies storage directories are writable."

    def check(self, context: HealthCheckContext):
        directories = self.options.get("directories", context.settings.permissions.storage_directories)
        for directory in directories:
            path: Path = context.settings.resolve_path(directory)
            if not path.is_dir():
                self.fail(f"{directory} is not a directory")
            if not os.access(path, os.W_OK):
                self.fail(f"{directory} is not writable")
        return True


@register_health_check
class DatabaseConnection(HealthCheck):
    name = "database_connection"
    description = "Verifies the database connection answers a query."

    def check(self, context: HealthCheckContext):
        with context.engine().connect() as conn:
            conn.execute(text("SELECT 1"))
        return True


@register_health_check
class ApplicationConfiguration(HealthCheck):
    """
    Required application settings are present in the restored env file.

    Options ``keys`` (default APP_NAME, APP_ENV, APP_KEY, APP_DEBUG) and
    ``env_file`` (default ``archive.env_file``). Keys set in the process
    environment also count.
    """

    name = "application_configuration"
    description = "Verifies required application configuration keys are set."

    def check(self, context: HealthCheckContext):
        env_file = context.settings.resolve_path(
            self.options.get("env_file", context.settings.archive.env_file)
        )
        values = dotenv_values(env_file) if env_file.is_file() else {}

        missing = [
            key for key in self.options.get("keys", DEFAULT_REQUIRED_KEYS)
            if values.get(key) is None and os.environ.get(key) is None
        ]
        if missing:
            self.fail(f"Configuration missing: {', '.join(missing)}")
        return True
