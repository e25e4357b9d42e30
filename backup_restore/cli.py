#!/usr/bin/env python3
"""
restore-complete command line entry point.

Restores the latest (or a named) backup archive from a configured disk:
database dump first, then files, permissions and health checks.

Usage:
    restore-complete --list
    restore-complete --backup 2024-02-01-00-00-00.zip --reset --force
    restore-complete --files-only --config restore.yaml
    restore-health-check --config restore.yaml
"""

import argparse
import logging
import sys
from typing import List, Optional

from pydantic import ValidationError

from backup_restore_exceptions import ConfigurationError
from config.settings import RestoreSettings, load_settings, parse_memory_limit
from .core import RestoreManager
from .models.entities import HealthCheckSummary, RestoreResult, RestoreStage
from .models.parameters import RestoreParams
from .utils.console import (
    print_section,
    print_step,
    print_success,
    print_error,
    print_warning,
    print_note,
    print_info
)
from .utils.formatting import format_bytes

logger = logging.getLogger(__name__)

LIST_LIMIT = 10

STAGE_DESCRIPTIONS = {
    RestoreStage.LOCATING_ARCHIVE: "Locating backup archive",
    RestoreStage.CHECKING_FOR_DATABASE: "Checking backup for a database dump",
    RestoreStage.RESTORING_DATABASE: "Restoring database",
    RestoreStage.EXTRACTING_ARCHIVE: "Extracting backup archive",
    RestoreStage.RESTORING_FILES: "Restoring files",
    RestoreStage.FIXING_PERMISSIONS: "Fixing permissions",
    RestoreStage.RUNNING_HEALTH_CHECKS: "Running health checks",
    RestoreStage.CLEANUP: "Cleaning up",
}


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="restore-complete",
        description="Restore a complete application backup (database and files)"
    )
    parser.add_argument("--disk", help="Disk to restore from (default: configured default disk)")
    parser.add_argument("--backup", help="Backup archive name or path (default: latest)")
    parser.add_argument("--connection", help="Database connection to restore into")
    parser.add_argument("--reset", action="store_true", help="Drop all tables before restoring")

    scope = parser.add_mutually_exclusive_group()
    scope.add_argument("--database-only", action="store_true", help="Restore only the database")
    scope.add_argument("--files-only", action="store_true", help="Restore only files")

    parser.add_argument("--list", action="store_true", help="List available backups and exit")
    parser.add_argument("--force", action="store_true", help="Skip the confirmation prompt")
    parser.add_argument("--password", help="Archive password")
    parser.add_argument("--config", help="YAML settings file")
    parser.add_argument("--show-config", action="store_true", help="Print effective settings and exit")
    parser.add_argument("--verbose", "-v", action="store_true", help="Enable debug logging")
    return parser


def configure_logging(settings: RestoreSettings, verbose: bool = False) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else getattr(logging, settings.logging.level),
        format=settings.logging.format
    )


def apply_memory_limit(limit: Optional[str]) -> None:
    """Cap the process address space; unsupported platforms only log a warning."""
    if not limit:
        return
    try:
        import resource
    except ImportError:
        logger.warning("Memory limit is not supported on this platform")
        return

    limit_bytes = parse_memory_limit(limit)
    try:
        _, hard = resource.getrlimit(resource.RLIMIT_AS)
        if hard != resource.RLIM_INFINITY:
            limit_bytes = min(limit_bytes, hard)
        resource.setrlimit(resource.RLIMIT_AS, (limit_bytes, hard))
        logger.debug(f"Memory limit set to {format_bytes(limit_bytes)}")
    except (ValueError, OSError) as e:
        logger.warning(f"Failed to apply memory limit {limit}: {e}")


def list_backups(manager: RestoreManager, disks: List[str]) -> None:
    """Print the newest archives of every disk."""
    for disk_name in disks:
        print_section(f"Backups on disk '{disk_name}'")
        archives = manager.list_backups(disk_name)
        if not archives:
            print("No backups found")
            continue

        for archive in archives[:LIST_LIMIT]:
            modified = archive.last_modified.strftime("%Y-%m-%d %H:%M:%S")
            print(f"  {archive.filename:<40} {format_bytes(archive.size_bytes):>12}  {modified}")
        if len(archives) > LIST_LIMIT:
            print(f"  ... and {len(archives) - LIST_LIMIT} more backups")


def confirm_restore(params: RestoreParams) -> bool:
    print_warning("This will overwrite your current database and files!")
    print_info("Backup", params.backup or "latest")
    print_info("Scope", "database only" if params.database_only else "files only" if params.files_only else "database and files")
    if params.reset:
        print_warning("All existing tables will be dropped before the restore")
    try:
        answer = input("Are you sure you want to continue? (yes/no) [no]: ")
    except EOFError:
        return False
    return answer.strip().lower() in ("y", "yes")


def print_summary(result: RestoreResult) -> None:
    print_section("Restore Summary")

    if result.archive is not None:
        print_info("Backup", f"{result.archive.filename} ({format_bytes(result.archive.size_bytes)})")

    if result.database is not None:
        db = result.database
        print_info("Database", f"{db.succeeded_statements}/{db.total_statements} statements succeeded")
        if db.dropped_tables:
            print_info("Dropped tables", len(db.dropped_tables))
        for failure in db.failures:
            print_warning(f"Statement {failure.index} failed: {failure.error}")
        if db.failed_statements > len(db.failures):
            print_note(f"... and {db.failed_statements - len(db.failures)} more failed statements")
    elif result.has_database is False:
        print_info("Database", "no dump in backup")

    if result.files is not None:
        files = result.files
        print_info("Files", f"{files.restored} restored, {files.skipped} skipped, {files.failed} failed")
        for error in files.errors:
            print_error(error)

    for warning in result.permission_warnings:
        print_warning(warning)

    if result.health is not None:
        for outcome in result.health.outcomes:
            status = "passed" if outcome.passed else f"FAILED{': ' + outcome.message if outcome.message else ''}"
            print_info(f"Health check {outcome.name}", status)

    print_info("Execution time", f"{result.execution_time_seconds:.2f}s")

    if result.error_message:
        print_error(result.error_message)


def print_next_steps() -> None:
    print("\nRecommended next steps:")
    print("  1. Clear application caches")
    print("  2. Verify file permissions")
    print("  3. Test critical functionality")


def main(argv: Optional[List[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    try:
        settings = load_settings(args.config)
    except ConfigurationError as e:
        print_error(str(e))
        return 1

    configure_logging(settings, args.verbose)

    if args.show_config:
        print(settings.to_yaml())
        return 0

    apply_memory_limit(settings.restoration.memory_limit)

    try:
        if args.list:
            manager = RestoreManager(settings)
            list_backups(manager, [args.disk] if args.disk else list(settings.disks))
            return 0

        params = RestoreParams(
            disk=args.disk,
            backup=args.backup,
            connection=args.connection,
            reset=args.reset,
            database_only=args.database_only,
            files_only=args.files_only,
            force=args.force,
            password=args.password
        )
    except ValidationError as e:
        print_error(f"Invalid options: {e}")
        return 1
    except ConfigurationError as e:
        print_error(str(e))
        return 1

    steps = {"count": 0}

    def announce(stage: RestoreStage) -> None:
        description = STAGE_DESCRIPTIONS.get(stage)
        if description:
            steps["count"] += 1
            print_step(steps["count"], description)

    print_section("Backup Complete Restore")
    manager = RestoreManager(settings, confirm=confirm_restore, on_stage=announce)

    try:
        result = manager.run(params)
    except KeyboardInterrupt:
        print("\nOperation cancelled by user.")
        return 1

    if result.cancelled:
        print("Restore operation cancelled.")
        return 1

    print_summary(result)

    if result.success:
        print_success("Restore completed successfully")
        print_next_steps()
    else:
        print_error("Restore failed")

    return result.exit_code


def build_health_check_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="restore-health-check",
        description="Run post-restore health checks against the application"
    )
    parser.add_argument("--connection", help="Database connection to check")
    parser.add_argument("--config", help="YAML settings file")
    parser.add_argument("--verbose", "-v", action="store_true", help="Enable debug logging")
    return parser


def print_health_summary(summary: HealthCheckSummary) -> None:
    for outcome in summary.outcomes:
        if outcome.passed:
            print_success(f"{outcome.name}: PASSED")
        else:
            print_error(f"{outcome.name}: FAILED{' - ' + outcome.message if outcome.message else ''}")

    print_section("Health Check Summary")
    print_info("Passed", summary.passed)
    print_info("Failed", summary.failed)
    print_info("Total", len(summary.outcomes))


def health_check_main(argv: Optional[List[str]] = None) -> int:
    """Entry point of ``restore-health-check``; exits 1 if any check fails."""
    args = build_health_check_parser().parse_args(argv)

    try:
        settings = load_settings(args.config)
    except ConfigurationError as e:
        print_error(str(e))
        return 1

    configure_logging(settings, args.verbose)

    print_section("Backup Health Checks")
    summary = RestoreManager(settings).check_health(args.connection)
    print_health_summary(summary)

    if summary.failed:
        print_warning("Some health checks failed. Please review the issues above.")
        return 1
    print_success("All health checks passed")
    return 0


if __name__ == "__main__":
    sys.exit(main())
