# warpstore/storage/sqlite.py
"""
Embedded backend: warps in a single SQLite file.

All work against the file runs on one dedicated worker thread. The connection
is opened on that thread, used only there and closed there, so there is never
more than one writer. Public methods may be called from any thread; they hand
their work to the worker and wait for the result.
"""
import logging
import threading
from concurrent.futures import Future, ThreadPoolExecutor
from pathlib import Path
from typing import Callable, Optional, TypeVar, Union

from sqlalchemy import Connection, Engine, create_engine, event
from sqlalchemy.exc import SQLAlchemyError

from warpstore.models.warp import validate_table_name
from warpstore.storage.base import DataConnection, storage_errors
from warpstore.storage.errors import ConnectionFailure, MigrationError, SchemaMissing, SchemaOutdated, StorageError
from warpstore.storage.migrations import SchemaMigrator

logger = logging.getLogger(__name__)

T = TypeVar("T")


def create_sqlite_engine(database: Union[str, Path]) -> Engine:
    """
    Engine for a SQLite file with transactional DDL.

    pysqlite's own transaction handling does not cover DDL, so it is turned
    off and transactions are started explicitly.
    """
    engine = create_engine(f"sqlite:///{Path(database).resolve()}")

    @event.listens_for(engine, "connect")
    def _disable_pysqlite_transactions(dbapi_connection, connection_record):
        dbapi_connection.isolation_level = None

    @event.listens_for(engine, "begin")
    def _begin(conn):
        conn.exec_driver_sql("BEGIN")

    return engine


class EmbeddedDataConnection(DataConnection):
    """DataConnection on a SQLite file. Obtain instances through :func:`open_sqlite_connection`."""

    def __init__(
        self,
        engine: Engine,
        connection: Connection,
        executor: ThreadPoolExecutor,
        table_name: str = "warp",
    ):
        super().__init__(table_name)
        self._engine = engine
        self._connection = connection
        self._executor = executor
        self._worker_ident = threading.get_ident()
        self._closed = False
        self._close_lock = threading.Lock()

    @property
    def closed(self) -> bool:
        return self._closed

    def _on_worker(self, fn: Callable[[], T]) -> T:
        if threading.get_ident() == self._worker_ident:
            return fn()
        if self._closed:
            raise StorageError(f"Connection to '{self._engine.url.database}' is closed")
        try:
            future = self._executor.submit(fn)
        except RuntimeError as exc:
            # close() shut the executor down after the check above
            raise StorageError(f"Connection to '{self._engine.url.database}' is closed") from exc
        return future.result()

    def _run(self, action: str, work: Callable[[Connection], T], transactional: bool = True) -> T:
        def task() -> T:
            with storage_errors(action):
                if not transactional:
                    return work(self._connection)
                with self._connection.begin():
                    return work(self._connection)

        return self._on_worker(task)

    def _migrator(self, conn: Connection) -> SchemaMigrator:
        return SchemaMigrator(conn, self.table_name)

    def check_schema(self, create_if_missing: bool) -> None:
        def work(conn: Connection) -> None:
            migrator = self._migrator(conn)
            if migrator.table_exists():
                return
            if not create_if_missing:
                raise SchemaMissing(f"Table '{self.table_name}' does not exist.")
            migrator.migrate()

        self._run("Table Check", work, transactional=False)

    def migrate_schema(self, apply_if_necessary: bool) -> None:
        def work(conn: Connection) -> None:
            migrator = self._migrator(conn)
            if not migrator.table_exists():
                raise SchemaMissing(f"Table '{self.table_name}' does not exist.")
            pending = migrator.pending()
            if not pending:
                return
            if not apply_if_necessary:
                raise SchemaOutdated(
                    f"Table '{self.table_name}' is at version {migrator.current_version()}, "
                    f"missing migrations {pending}."
                )
            migrator.migrate()

        self._run("Table Update", work, transactional=False)

    def schema_version(self) -> int:
        return self._run("Table Version", lambda conn: self._migrator(conn).current_version(), transactional=False)

    def close(self) -> None:
        with self._close_lock:
            if self._closed:
                return
            self._closed = True

        def task() -> None:
            try:
                self._connection.close()
            except SQLAlchemyError as exc:
                logger.error(f"Unable to close SQLite connection: {exc}")
            finally:
                self._engine.dispose()

        if threading.get_ident() == self._worker_ident:
            task()
            self._executor.shutdown(wait=False)
        else:
            self._executor.submit(task).result()
            self._executor.shutdown(wait=True)
        logger.info(f"Closed SQLite database '{self._engine.url.database}'")


def open_sqlite_connection(
    database: Union[str, Path],
    control_db_layout: bool = True,
    table_name: str = "warp",
    target_version: Optional[int] = None,
) -> "Future[EmbeddedDataConnection]":
    """
    Open a SQLite database on a worker thread of its own.

    Args:
        database: Path of the database file; it is created if missing.
        control_db_layout: Create the table and apply pending migrations.
        table_name: Name of the warp table.
        target_version: Stop migrating at this version (default: latest).

    Returns:
        A future that resolves to the ready connection or fails with a
        StorageError (ConnectionFailure, MigrationError, ...).
    """
    executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix="warpstore-sqlite")

    def _open() -> EmbeddedDataConnection:
        path = Path(database)
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            engine = create_sqlite_engine(path)
            connection = engine.connect()
        except ImportError as exc:
            raise ConnectionFailure("Unable to find SQLite library.") from exc
        except (OSError, SQLAlchemyError) as exc:
            logger.error(f"Failed to connect to SQLite database '{path}': {exc}")
            raise ConnectionFailure("Failed to connect to the database.") from exc

        data_connection = EmbeddedDataConnection(engine, connection, executor, table_name)
        if control_db_layout:
            try:
                SchemaMigrator(connection, table_name).migrate(target_version)
            except SQLAlchemyError as exc:
                data_connection.close()
                raise MigrationError("Failed to execute migration process.") from exc
            except Exception:
                data_connection.close()
                raise
        logger.info(f"Opened SQLite database '{path}'")
        return data_connection

    validate_table_name(table_name)
    future = executor.submit(_open)

    def _shutdown_on_failure(done: Future) -> None:
        if done.cancelled() or done.exception() is not None:
            executor.shutdown(wait=False)

    future.add_done_callback(_shutdown_on_failure)
    return future
