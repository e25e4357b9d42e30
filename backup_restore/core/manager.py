"""
Restore Manager

Main orchestration class for a complete restore: locate, download,
extract, replay the database, merge files, fix permissions, run health
checks and clean up.
"""

import logging
import subprocess
from datetime import datetime
from pathlib import Path
from typing import Callable, List, Optional

from sqlalchemy.exc import SQLAlchemyError

from backup_restore_exceptions import RestoreOpsError, ConfigurationError
from config.settings import RestoreSettings
from ..disks import Disk, create_disk
from ..exceptions import ConnectionNotFoundError
from ..health_checks import DEFAULT_HEALTH_CHECKS, HealthCheckContext, HealthCheckRunner
from ..models.entities import BackupArchive, ExtractedTree, HealthCheckSummary, RestoreResult, RestoreStage
from ..models.parameters import RestoreParams
from .database import DatabaseRestorer
from .deadline import Deadline
from .extractor import ArchiveExtractor
from .files import FileRestorer
from .locator import ArchiveLocator
from .permissions import PermissionFixer
from .validator import RestoreValidator

logger = logging.getLogger(__name__)

ConfirmCallback = Callable[[RestoreParams], bool]
StageCallback = Callable[[RestoreStage], None]


class RestoreManager:
    """
    Runs the restore pipeline as a linear state machine.

    Stages run in the order of ``RestoreStage``. The archive is downloaded
    once and extracted by the first stage that needs its contents. A fatal
    error moves the run to FAILED; cleanup always runs.

    Example:
        ```python
        manager = RestoreManager(settings, confirm=lambda params: True)

        result = manager.run(RestoreParams(backup="backup-2024-02-01.zip", reset=True))
        print(f"Final stage: {result.stage.value}")
        if result.database:
            print(f"Statements: {result.database.succeeded_statements}")
        ```
    """

    def __init__(
        self,
        settings: RestoreSettings,
        confirm: Optional[ConfirmCallback] = None,
        on_stage: Optional[StageCallback] = None
    ):
        """
        Initialize RestoreManager.

        Args:
            settings: Restore settings
            confirm: Asked before anything is touched unless confirmation is
                disabled or forced; returning False cancels the run
            on_stage: Called on every stage transition
        """
        self.settings = settings
        self._confirm = confirm
        self._on_stage = on_stage

        self.locator = ArchiveLocator(settings)
        self.validator = RestoreValidator(settings)
        self.extractor = ArchiveExtractor(settings)
        self.database = DatabaseRestorer(settings)
        self.files = FileRestorer(settings)
        self.permissions = PermissionFixer(settings)
        self.health_checks = HealthCheckRunner(settings.health_checks)

        logger.debug("RestoreManager initialized")

    def _enter(self, result: RestoreResult, stage: RestoreStage) -> None:
        result.stage = stage
        result.stages.append(stage)
        logger.debug(f"Stage: {stage.value}")
        if self._on_stage is not None:
            self._on_stage(stage)

    def resolve_disk(self, name: Optional[str] = None) -> Disk:
        """
        Build the named disk (default disk if None).

        Raises:
            ConfigurationError: If the disk is not configured
        """
        try:
            return create_disk(name or self.settings.default_disk, self.settings)
        except KeyError as e:
            raise ConfigurationError(e.args[0])

    def list_backups(self, disk_name: str) -> List[BackupArchive]:
        """List archives on a disk, newest first."""
        return self.locator.list_archives(self.resolve_disk(disk_name))

    def run(self, params: Optional[RestoreParams] = None) -> RestoreResult:
        """
        Run a complete restore.

        Args:
            params: Per-run parameters (defaults if None)

        Returns:
            RestoreResult describing every stage that ran
        """
        params = params or RestoreParams()
        start_time = datetime.now()
        deadline = Deadline(self.settings.restoration.max_execution_time)
        result = RestoreResult(health_checks_fatal=self.settings.restoration.fail_on_health_check_failure)
        run = _RunState()

        try:
            self._execute(params, result, run, deadline)
        except (RestoreOpsError, SQLAlchemyError, OSError) as e:
            result.error_message = getattr(e, "message", None) or str(e)
            logger.error(f"Restore failed during {result.stage.value}: {e}")
        finally:
            self._cleanup(result, run)

        result.execution_time_ms = (datetime.now() - start_time).total_seconds() * 1000
        self._enter(result, RestoreStage.DONE if result.success else RestoreStage.FAILED)

        if result.success:
            logger.info(f"Restore completed in {result.execution_time_seconds:.2f}s")
            self.run_post_restore_commands()
        return result

    def _execute(self, params: RestoreParams, result: RestoreResult, run: "_RunState", deadline: Deadline) -> None:
        self._enter(result, RestoreStage.CONFIRMING)
        if self._needs_confirmation(params) and not self._confirm(params):
            logger.info("Restore cancelled by operator")
            result.cancelled = True
            return

        self._enter(result, RestoreStage.LOCATING_ARCHIVE)
        disk = self.resolve_disk(params.disk)
        archive = self.locator.locate(disk, params.backup)
        self.validator.validate_archive(archive)
        self.validator.validate_storage_space(archive.size_bytes * 2)

        run.scratch = self.extractor.create_scratch_directory()
        run.local_archive = self.extractor.download(disk, archive, run.scratch)
        run.password = self.extractor.resolve_password(params.password)
        result.archive = archive.model_copy(update={"password": run.password})

        if self.settings.restoration.validate_backup:
            self.validator.validate_integrity(run.local_archive, run.password)
        deadline.check("locating archive")

        if params.restore_database:
            self._enter(result, RestoreStage.CHECKING_FOR_DATABASE)
            result.has_database = self.extractor.contains_database(run.local_archive)

            if result.has_database:
                self._enter(result, RestoreStage.RESTORING_DATABASE)
                tree = self._ensure_extracted(run)
                result.database = self.database.restore(tree, params.connection, params.reset, deadline)
                if not result.database.success:
                    logger.error("Database restoration failed, skipping remaining stages")
                    return
            else:
                logger.info("No database dump found in backup, skipping database restore")
            deadline.check("restoring database")

        if params.restore_files:
            self._enter(result, RestoreStage.EXTRACTING_ARCHIVE)
            tree = self._ensure_extracted(run)

            self._enter(result, RestoreStage.RESTORING_FILES)
            result.files = self.files.restore(tree, deadline)

            if result.files.restored > 0:
                self._enter(result, RestoreStage.FIXING_PERMISSIONS)
                result.permission_warnings = self.permissions.fix()
            deadline.check("restoring files")

        if self.settings.restoration.run_health_checks and self.settings.health_checks:
            self._enter(result, RestoreStage.RUNNING_HEALTH_CHECKS)
            result.health = self.health_checks.run(self.health_context(params.connection))

    def _needs_confirmation(self, params: RestoreParams) -> bool:
        return (
            self._confirm is not None
            and self.settings.security.require_confirmation
            and not params.force
        )

    def _ensure_extracted(self, run: "_RunState") -> ExtractedTree:
        if run.tree is None:
            run.tree = self.extractor.extract(run.local_archive, run.password)
        return run.tree

    def health_context(self, connection: Optional[str] = None) -> HealthCheckContext:
        """Build the context health checks run against."""
        engine_factory = None
        try:
            self.database.resolve_connection(connection)
            engine_factory = lambda: self.database.get_engine(connection)  # noqa: E731
        except ConnectionNotFoundError:
            logger.debug("No database connection configured for health checks")

        return HealthCheckContext(
            settings=self.settings,
            engine_factory=engine_factory,
            mapping_destinations=[m.destination for m in self.files.mappings()]
        )

    def check_health(self, connection: Optional[str] = None) -> HealthCheckSummary:
        """
        Run health checks outside a restore.

        Uses the configured checks, or the default set when none are
        configured.
        """
        runner = HealthCheckRunner(self.settings.health_checks or DEFAULT_HEALTH_CHECKS)
        try:
            return runner.run(self.health_context(connection))
        finally:
            self.database.close()

    def _cleanup(self, result: RestoreResult, run: "_RunState") -> None:
        self._enter(result, RestoreStage.CLEANUP)
        try:
            if run.scratch is None:
                return
            if self.settings.cleanup_temp_files:
                self.extractor.cleanup(run.scratch)
                logger.info("Temporary files cleaned up")
            else:
                logger.info(f"Temporary files kept at {run.scratch}")
        finally:
            self.database.close()

    def run_post_restore_commands(self) -> None:
        """Run configured shell commands from app_base_path; failures are logged."""
        cwd = self.settings.resolve_path(".")
        for command in self.settings.restoration.post_restore_commands:
            logger.info(f"Running post-restore command: {command}")
            try:
                completed = subprocess.run(command, shell=True, cwd=cwd, capture_output=True, text=True)
            except OSError as e:
                logger.warning(f"Post-restore command failed to start: {command}: {e}")
                continue
            if completed.returncode != 0:
                logger.warning(
                    f"Post-restore command exited with {completed.returncode}: {command}: "
                    f"{completed.stderr.strip()}"
                )


class _RunState:
    """Resources owned by one run."""

    def __init__(self):
        self.scratch: Optional[Path] = None
        self.local_archive: Optional[Path] = None
        self.password: Optional[str] = None
        self.tree: Optional[ExtractedTree] = None
