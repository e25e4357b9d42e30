"""
Database Restorer

Replays the SQL dump found in an extracted archive against a configured
SQLAlchemy connection. Optionally drops every existing table first.
"""

import logging
import time
from pathlib import Path
from typing import Dict, List, Optional, Tuple

from sqlalchemy import create_engine, inspect
from sqlalchemy.engine import Connection, Engine
from sqlalchemy.exc import SQLAlchemyError
from tqdm import tqdm

from backup_restore_exceptions import ConfigurationError
from config.settings import RestoreSettings, ReplayPolicy
from ..exceptions import (
    BackupRestoreError,
    ConnectionNotFoundError,
    DumpNotFoundError,
    StatementError
)
from ..models.entities import DatabaseRestoreResult, ExtractedTree, StatementFailure
from ..utils.sql import split_sql_statements
from .deadline import Deadline

logger = logging.getLogger(__name__)

# Longest statement text kept in a StatementFailure
STATEMENT_PREVIEW_LENGTH = 200

# Statements toggling foreign key enforcement per dialect: (disable, enable)
FOREIGN_KEY_TOGGLES: Dict[str, Tuple[str, str]] = {
    "mysql": ("SET FOREIGN_KEY_CHECKS=0", "SET FOREIGN_KEY_CHECKS=1"),
    "mariadb": ("SET FOREIGN_KEY_CHECKS=0", "SET FOREIGN_KEY_CHECKS=1"),
    "sqlite": ("PRAGMA foreign_keys=OFF", "PRAGMA foreign_keys=ON"),
    "postgresql": ("SET session_replication_role = replica", "SET session_replication_role = origin"),
}


class DatabaseRestorer:
    """
    Restore a database from an extracted backup.

    Two replay policies are supported:
    - best_effort: each statement runs on its own autocommit connection;
      failures are counted, the first few are reported, replay continues
    - atomic: every statement runs in one transaction and the first failure
      rolls it back. DDL on MySQL and SQLite commits implicitly and is not
      undone by the rollback.

    Example:
        ```python
        restorer = DatabaseRestorer(settings)
        result = restorer.restore(tree, connection_name="mysql", reset=True)

        print(f"Statements: {result.succeeded_statements}/{result.total_statements}")
        for failure in result.failures:
            print(f"  #{failure.index}: {failure.error}")

        restorer.close()
        ```
    """

    def __init__(self, settings: RestoreSettings):
        self.settings = settings
        self.db_settings = settings.database
        self._engines: Dict[str, Engine] = {}

    def find_dump(self, tree: ExtractedTree) -> Path:
        """
        Find the SQL dump in an extracted tree.

        Raises:
            DumpNotFoundError: If the tree holds no .sql file
        """
        dumps = sorted(p for p in tree.root.rglob("*.sql") if p.is_file())
        if not dumps:
            raise DumpNotFoundError(
                "No SQL dump file found in backup",
                backup_path=tree.archive_path
            )
        if len(dumps) > 1:
            logger.warning(f"Found {len(dumps)} SQL dumps, using {dumps[0].name}")
        logger.info(f"Found database dump: {dumps[0].relative_to(tree.root)}")
        return dumps[0]

    def resolve_connection(self, name: Optional[str] = None) -> Tuple[str, str]:
        """
        Resolve a connection name to its SQLAlchemy URL.

        Args:
            name: Connection name (uses database.default_connection if None)

        Returns:
            Tuple of (connection name, URL)

        Raises:
            ConnectionNotFoundError: If the connection is not configured
        """
        name = name or self.db_settings.default_connection
        url = self.db_settings.connections.get(name)
        if url is None:
            available = list(self.db_settings.connections)
            raise ConnectionNotFoundError(
                f"Database connection '{name}' is not configured",
                connection_name=name,
                available_connections=available
            )
        return name, url

    def get_engine(self, name: Optional[str] = None) -> Engine:
        """
        Return a cached engine for the named connection.

        Raises:
            ConnectionNotFoundError: If the connection is not configured
            ConfigurationError: If the DB-API driver of the URL is not installed
        """
        name, url = self.resolve_connection(name)
        if name not in self._engines:
            try:
                engine = create_engine(url)
            except ImportError as e:
                raise ConfigurationError(
                    f"Database driver for connection '{name}' is not installed: {e}"
                ) from e
            self._engines[name] = engine
            logger.debug(f"Created engine for connection '{name}' ({self._engines[name].dialect.name})")
        return self._engines[name]

    def close(self) -> None:
        """Dispose all engines."""
        for engine in self._engines.values():
            engine.dispose()
        self._engines.clear()

    def _set_foreign_key_checks(self, conn: Connection, enabled: bool) -> None:
        toggles = FOREIGN_KEY_TOGGLES.get(conn.dialect.name)
        if toggles is None:
            logger.debug(f"No foreign key toggle known for dialect '{conn.dialect.name}'")
            return
        conn.exec_driver_sql(toggles[1] if enabled else toggles[0])
        logger.debug(f"Foreign key checks {'enabled' if enabled else 'disabled'}")

    def _drop_table(self, conn: Connection, table: str) -> None:
        quoted = conn.dialect.identifier_preparer.quote(table)
        cascade = " CASCADE" if conn.dialect.name == "postgresql" else ""
        conn.exec_driver_sql(f"DROP TABLE IF EXISTS {quoted}{cascade}")

    def drop_all_tables(self, engine: Engine) -> List[str]:
        """
        Drop every table on the connection.

        Foreign key checks are disabled for the drop and re-enabled
        afterwards, even when a drop fails. Drops are not transactional.

        Returns:
            Names of the dropped tables

        Raises:
            BackupRestoreError: If a table cannot be dropped
        """
        tables = inspect(engine).get_table_names()
        if not tables:
            logger.info("No existing tables to drop")
            return []

        logger.info(f"Dropping {len(tables)} existing tables")
        dropped: List[str] = []

        with engine.connect().execution_options(isolation_level="AUTOCOMMIT") as conn:
            self._set_foreign_key_checks(conn, False)
            try:
                for table in tables:
                    try:
                        self._drop_table(conn, table)
                    except SQLAlchemyError as e:
                        raise BackupRestoreError(
                            f"Failed to drop table '{table}': {e}",
                            context={"dropped": len(dropped), "total": len(tables)}
                        )
                    dropped.append(table)
                    logger.debug(f"Dropped table: {table}")
            finally:
                self._set_foreign_key_checks(conn, True)

        logger.info(f"Dropped {len(dropped)} tables")
        return dropped

    def _execute_statement(self, conn: Connection, index: int, statement: str) -> None:
        try:
            conn.exec_driver_sql(statement)
        except SQLAlchemyError as e:
            error = getattr(e, "orig", None) or e
            raise StatementError(str(error), statement_index=index, statement=statement)

    def _record_failure(self, result: DatabaseRestoreResult, error: StatementError) -> None:
        result.failed_statements += 1
        if len(result.failures) < self.db_settings.max_reported_errors:
            preview = error.statement[:STATEMENT_PREVIEW_LENGTH]
            result.failures.append(
                StatementFailure(index=error.statement_index, statement=preview, error=error.message)
            )
            logger.warning(f"Statement {error.statement_index} failed: {error.message}")
        else:
            logger.debug(f"Statement {error.statement_index} failed: {error.message}")

    def _log_progress(self, done: int, total: int) -> None:
        if done % self.db_settings.progress_interval == 0 or done == total:
            logger.info(f"Processed {done}/{total} statements")

    def replay(
        self,
        dump: Path,
        engine: Engine,
        result: DatabaseRestoreResult,
        deadline: Optional[Deadline] = None
    ) -> DatabaseRestoreResult:
        """
        Replay a SQL dump.

        Args:
            dump: Dump file
            engine: Target engine
            result: Result to fill in
            deadline: Run deadline checked between statements

        Returns:
            The filled in result

        Raises:
            RestoreTimeoutError: If the deadline passes during replay
        """
        sql = dump.read_text(encoding="utf-8", errors="replace")
        statements = split_sql_statements(sql)
        result.total_statements = len(statements)
        result.dump_file = dump.name
        logger.info(f"Replaying {len(statements)} statements from {dump.name}")

        if result.atomic:
            return self._replay_atomic(statements, engine, result, deadline)
        return self._replay_best_effort(statements, engine, result, deadline)

    def _replay_best_effort(self, statements, engine, result, deadline):
        skip_fk = self.db_settings.skip_foreign_key_checks
        progress = tqdm(total=len(statements), desc="Replaying SQL", unit="stmt",
                        disable=not self.settings.restoration.show_progress)

        with progress, engine.connect().execution_options(isolation_level="AUTOCOMMIT") as conn:
            if skip_fk:
                self._set_foreign_key_checks(conn, False)
            try:
                for index, statement in enumerate(statements, start=1):
                    if deadline is not None:
                        deadline.check(f"replaying statement {index}/{len(statements)}")
                    try:
                        self._execute_statement(conn, index, statement)
                        result.succeeded_statements += 1
                    except StatementError as e:
                        self._record_failure(result, e)
                        conn.rollback()
                    progress.update(1)
                    self._log_progress(index, len(statements))
            finally:
                if skip_fk:
                    self._set_foreign_key_checks(conn, True)

        return result

    def _replay_atomic(self, statements, engine, result, deadline):
        skip_fk = self.db_settings.skip_foreign_key_checks
        progress = tqdm(total=len(statements), desc="Replaying SQL (atomic)", unit="stmt",
                        disable=not self.settings.restoration.show_progress)

        with progress, engine.connect() as conn:
            if skip_fk:
                self._set_foreign_key_checks(conn, False)
                conn.commit()
            try:
                trans = conn.begin()
                try:
                    for index, statement in enumerate(statements, start=1):
                        if deadline is not None:
                            deadline.check(f"replaying statement {index}/{len(statements)}")
                        self._execute_statement(conn, index, statement)
                        result.succeeded_statements += 1
                        progress.update(1)
                        self._log_progress(index, len(statements))
                    trans.commit()
                except StatementError as e:
                    trans.rollback()
                    self._record_failure(result, e)
                    result.rolled_back = True
                    result.succeeded_statements = 0
                    logger.error(f"Atomic replay rolled back at statement {e.statement_index}")
                except BaseException:
                    trans.rollback()
                    raise
            finally:
                if skip_fk:
                    self._set_foreign_key_checks(conn, True)
                    conn.commit()

        return result

    def restore(
        self,
        tree: ExtractedTree,
        connection_name: Optional[str] = None,
        reset: bool = False,
        deadline: Optional[Deadline] = None
    ) -> DatabaseRestoreResult:
        """
        Restore the database from an extracted tree.

        Args:
            tree: Extracted archive
            connection_name: Target connection (default connection if None)
            reset: Drop all tables before replay
            deadline: Run deadline

        Returns:
            DatabaseRestoreResult with statement counts

        Raises:
            DumpNotFoundError: If the tree holds no dump
            ConnectionNotFoundError: If the connection is not configured
            RestoreTimeoutError: If the deadline passes
        """
        start_time = time.time()
        dump = self.find_dump(tree)
        name, _ = self.resolve_connection(connection_name)
        engine = self.get_engine(name)

        result = DatabaseRestoreResult(
            connection_name=name,
            atomic=self.db_settings.replay_policy == ReplayPolicy.ATOMIC
        )

        if reset or self.db_settings.drop_tables_before_restore:
            result.dropped_tables = self.drop_all_tables(engine)

        self.replay(dump, engine, result, deadline)
        result.execution_time_ms = (time.time() - start_time) * 1000

        if result.success:
            logger.info(
                f"Database restored on '{name}': {result.succeeded_statements} succeeded, "
                f"{result.failed_statements} failed"
            )
        else:
            logger.error(
                f"Database restore failed on '{name}': {result.succeeded_statements} succeeded, "
                f"{result.failed_statements} failed"
            )
        return result
