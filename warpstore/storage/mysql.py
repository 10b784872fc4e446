# warpstore/storage/mysql.py
"""
Networked backend: warps in a table of a MySQL (or any SQLAlchemy) database.

Networked databases are usually shared and administered by someone else, so
nothing here touches the schema unless asked to: ``check_schema`` and
``migrate_schema`` have to be called explicitly. Every operation checks a
connection out of the engine's pool, runs one statement and returns the
connection, also when the statement fails.
"""
import logging
import threading
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Callable, Dict, List, Optional, TypeVar

from sqlalchemy import Connection, DateTime, Engine, SmallInteger, column, create_engine, inspect, table, text, update
from sqlalchemy.engine import make_url
from sqlalchemy.exc import SQLAlchemyError

from warpstore.models.warp import CreationDateType
from warpstore.storage.base import DataConnection, storage_errors
from warpstore.storage.errors import ConnectionFailure, SchemaMissing, SchemaOutdated, StorageError

logger = logging.getLogger(__name__)

T = TypeVar("T")

Columns = Dict[str, Dict[str, Any]]


@dataclass(frozen=True)
class UpgradeStep:
    """
    One self-contained change to an older table layout.

    ``is_applied`` looks only at the column it concerns, so steps can run in
    any order and running one twice is harmless.
    """
    description: str
    is_applied: Callable[[Columns], bool]
    apply: Callable[["NetworkedDataConnection", Connection], None]


def _is_small_integer(columns: Columns, name: str) -> bool:
    return isinstance(columns[name]["type"], SmallInteger)


def _narrow_y(store: "NetworkedDataConnection", conn: Connection) -> None:
    conn.execute(text(f"ALTER TABLE {store.quoted_table} MODIFY {store.quote('y')} SMALLINT NOT NULL DEFAULT 0"))


def _add_group_permissions(store: "NetworkedDataConnection", conn: Connection) -> None:
    group_permissions = store.quote("groupPermissions")
    conn.execute(text(f"ALTER TABLE {store.quoted_table} ADD COLUMN {group_permissions} TEXT"))
    conn.execute(text(f"UPDATE {store.quoted_table} SET {group_permissions} = '' WHERE {group_permissions} IS NULL"))


def _add_visits(store: "NetworkedDataConnection", conn: Connection) -> None:
    conn.execute(text(f"ALTER TABLE {store.quoted_table} ADD COLUMN {store.quote('visits')} INTEGER NOT NULL DEFAULT 0"))


def _widen_visits(store: "NetworkedDataConnection", conn: Connection) -> None:
    conn.execute(text(f"ALTER TABLE {store.quoted_table} MODIFY {store.quote('visits')} INTEGER NOT NULL DEFAULT 0"))


def _add_creation_date(store: "NetworkedDataConnection", conn: Connection) -> None:
    column_type = CreationDateType.compile(dialect=conn.dialect)
    conn.execute(text(f"ALTER TABLE {store.quoted_table} ADD COLUMN {store.quote('creationDate')} {column_type}"))
    creation_date = column("creationDate", DateTime)
    now = datetime.now(timezone.utc).replace(tzinfo=None)
    conn.execute(update(table(store.table_name, creation_date)).where(creation_date.is_(None)).values(creationDate=now))


UPGRADE_STEPS: List[UpgradeStep] = [
    UpgradeStep(
        "Column 'y' has the wrong data type.",
        lambda columns: _is_small_integer(columns, "y"),
        _narrow_y,
    ),
    UpgradeStep(
        "Column 'groupPermissions' does not exist.",
        lambda columns: "groupPermissions" in columns,
        _add_group_permissions,
    ),
    UpgradeStep(
        "Column 'visits' does not exist.",
        lambda columns: "visits" in columns,
        _add_visits,
    ),
    UpgradeStep(
        # a missing column is created wide by the step above
        "Column 'visits' is too narrow.",
        lambda columns: "visits" not in columns or not _is_small_integer(columns, "visits"),
        _widen_visits,
    ),
    UpgradeStep(
        "Column 'creationDate' does not exist.",
        lambda columns: "creationDate" in columns,
        _add_creation_date,
    ),
]


def build_url(dsn: str, user: Optional[str] = None, password: Optional[str] = None):
    """Merge credentials into a DSN such as ``mysql+pymysql://db.lan/minecraft``."""
    url = make_url(dsn)
    if user is not None:
        url = url.set(username=user)
    if password is not None:
        url = url.set(password=password)
    return url


class NetworkedDataConnection(DataConnection):
    """DataConnection on a client/server database reached by DSN and credentials."""

    def __init__(
        self,
        dsn: str,
        user: Optional[str] = None,
        password: Optional[str] = None,
        table_name: str = "warp",
        engine: Optional[Engine] = None,
        **engine_options: Any,
    ):
        super().__init__(table_name)
        if engine is None:
            engine_options.setdefault("pool_pre_ping", True)
            try:
                engine = create_engine(build_url(dsn, user, password), **engine_options)
            except (ImportError, SQLAlchemyError) as exc:
                raise ConnectionFailure("Unable to load the database driver.") from exc
        self._engine = engine
        self._closed = False
        self._close_lock = threading.Lock()

    @property
    def closed(self) -> bool:
        return self._closed

    @property
    def quoted_table(self) -> str:
        return self.quote(self.table_name)

    def quote(self, identifier: str) -> str:
        return self._engine.dialect.identifier_preparer.quote(identifier)

    def _run(self, action: str, work: Callable[[Connection], T], transactional: bool = True) -> T:
        if self._closed:
            raise StorageError(f"Connection to '{self._engine.url.render_as_string()}' is closed")
        try:
            conn = self._engine.connect()
        except SQLAlchemyError as exc:
            logger.error(f"{action} Exception (connect): {exc}")
            raise ConnectionFailure("Failed to connect to the database.") from exc

        with conn, storage_errors(action):
            if not transactional:
                return work(conn)
            with conn.begin():
                return work(conn)

    def _columns(self, conn: Connection) -> Columns:
        inspector = inspect(conn)
        if not inspector.has_table(self.table_name):
            raise SchemaMissing(f"Table '{self.table_name}' does not exist.")
        return {col["name"]: col for col in inspector.get_columns(self.table_name)}

    def check_schema(self, create_if_missing: bool) -> None:
        def work(conn: Connection) -> None:
            if inspect(conn).has_table(self.table_name):
                return
            if not create_if_missing:
                raise SchemaMissing(f"Table '{self.table_name}' does not exist.")
            self.table.create(conn)
            logger.info(f"Created table '{self.table_name}'")

        self._run("Table Check", work)

    def pending_upgrades(self) -> List[str]:
        """Descriptions of the upgrade steps the table still needs."""
        columns = self._run("Table Update", self._columns)
        return [step.description for step in UPGRADE_STEPS if not step.is_applied(columns)]

    def migrate_schema(self, apply_if_necessary: bool) -> None:
        def work(conn: Connection) -> None:
            columns = self._columns(conn)
            pending = [step for step in UPGRADE_STEPS if not step.is_applied(columns)]
            if pending and not apply_if_necessary:
                raise SchemaOutdated(" ".join(step.description for step in pending))
            for step in pending:
                step.apply(self, conn)
                logger.info(f"Upgraded table '{self.table_name}': {step.description}")

        self._run("Table Update", work)

    def close(self) -> None:
        with self._close_lock:
            if self._closed:
                return
            self._closed = True
        self._engine.dispose()
        logger.info("Closed networked warp storage")
