"""
Warp persistence.

Two backends implement the DataConnection contract:
- embedded: a SQLite file, migrated automatically when opened
- networked: a MySQL (or other SQLAlchemy) database, schema changes on request

Usage:
    future = open_data_connection(get_settings())
    connection = future.result()
    warps = connection.load_all()
"""
import logging
from concurrent.futures import Future, ThreadPoolExecutor

from warpstore.config import Settings
from warpstore.storage.base import DataConnection
from warpstore.storage.errors import (
    ConnectionFailure,
    DecodeError,
    DuplicateWarp,
    MigrationError,
    SchemaMissing,
    SchemaOutdated,
    StorageError,
)
from warpstore.storage.mysql import NetworkedDataConnection
from warpstore.storage.sqlite import EmbeddedDataConnection, open_sqlite_connection

logger = logging.getLogger(__name__)


def open_networked_connection(settings: Settings) -> "Future[NetworkedDataConnection]":
    """Connect to the networked database and run the configured schema checks off the caller's thread."""

    def _open() -> NetworkedDataConnection:
        connection = NetworkedDataConnection(
            settings.MYSQL_DSN,
            settings.MYSQL_USER,
            settings.MYSQL_PASSWORD,
            table_name=settings.TABLE_NAME,
        )
        try:
            connection.check_schema(settings.CREATE_IF_NOT_EXIST)
            connection.migrate_schema(settings.UPDATE_IF_NECESSARY)
        except StorageError:
            connection.close()
            raise
        return connection

    executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix="warpstore-connect")
    future = executor.submit(_open)
    executor.shutdown(wait=False)
    return future


def open_data_connection(settings: Settings) -> "Future[DataConnection]":
    """Open the backend selected by ``STORAGE_BACKEND``."""
    logger.info(f"Opening {settings.STORAGE_BACKEND} warp storage")
    if settings.STORAGE_BACKEND == "mysql":
        return open_networked_connection(settings)
    return open_sqlite_connection(
        settings.SQLITE_PATH,
        control_db_layout=settings.CONTROL_DB_LAYOUT,
        table_name=settings.TABLE_NAME,
    )


__all__ = [
    "DataConnection",
    "EmbeddedDataConnection",
    "NetworkedDataConnection",
    "open_data_connection",
    "open_networked_connection",
    "open_sqlite_connection",
    "ConnectionFailure",
    "DecodeError",
    "DuplicateWarp",
    "MigrationError",
    "SchemaMissing",
    "SchemaOutdated",
    "StorageError",
]
