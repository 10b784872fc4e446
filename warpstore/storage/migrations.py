# warpstore/storage/migrations.py
"""
Versioned schema migrations for the embedded database.

Each migration class brings the warp table up by exactly one version. The
versions already applied are recorded in ``<table>_schema_version``; a warp
table that predates the history is baselined by looking at its columns.

Version history:
- v1: baseline table
- v2: ``y`` narrowed to SMALLINT
- v3: ``groupPermissions`` added
- v4: ``visits`` added
- v5: ``creationDate`` added
"""
import logging
from datetime import datetime, timezone
from typing import Dict, List, Optional, Type

from sqlalchemy import Connection, DateTime, SmallInteger, column, delete, inspect, insert, select, table, text, update
from sqlalchemy.exc import SQLAlchemyError

from warpstore.models.warp import schema_version_table, validate_table_name
from warpstore.storage.errors import MigrationError

logger = logging.getLogger(__name__)

# Columns of the v1 layout, in table order.
V1_COLUMNS = "id, name, creator, world, x, y, z, yaw, pitch, publicAll, permissions, welcomeMessage"


def _v1_table_ddl(table_name: str, y_type: str) -> str:
    return f"""
        CREATE TABLE {table_name} (
            id INTEGER PRIMARY KEY,
            name VARCHAR(32) NOT NULL UNIQUE,
            creator VARCHAR(36) NOT NULL,
            world VARCHAR(36) NOT NULL,
            x DOUBLE NOT NULL DEFAULT 0,
            y {y_type} NOT NULL DEFAULT 0,
            z DOUBLE NOT NULL DEFAULT 0,
            yaw SMALLINT NOT NULL DEFAULT 0,
            pitch SMALLINT NOT NULL DEFAULT 0,
            publicAll BOOLEAN NOT NULL DEFAULT 1,
            permissions TEXT,
            welcomeMessage VARCHAR(100) NOT NULL DEFAULT ''
        )
    """


class BaseMigration:
    """Base class for all migrations."""
    version = 0
    description = "Base Migration"

    def upgrade(self, connection: Connection, table_name: str) -> None:
        raise NotImplementedError


class Migration001_CreateWarpTable(BaseMigration):
    version = 1
    description = "Create warp table"

    def upgrade(self, connection: Connection, table_name: str) -> None:
        connection.execute(text(_v1_table_ddl(table_name, "INTEGER")))


class Migration002_NarrowY(BaseMigration):
    """SQLite cannot change a column type in place, so the table is rebuilt."""
    version = 2
    description = "Narrow y to SMALLINT"

    def upgrade(self, connection: Connection, table_name: str) -> None:
        rebuilt = f"{table_name}__v2"
        connection.execute(text(_v1_table_ddl(rebuilt, "SMALLINT")))
        connection.execute(text(f"INSERT INTO {rebuilt} ({V1_COLUMNS}) SELECT {V1_COLUMNS} FROM {table_name}"))
        connection.execute(text(f"DROP TABLE {table_name}"))
        connection.execute(text(f"ALTER TABLE {rebuilt} RENAME TO {table_name}"))


class Migration003_AddGroupPermissions(BaseMigration):
    version = 3
    description = "Add groupPermissions"

    def upgrade(self, connection: Connection, table_name: str) -> None:
        connection.execute(text(f"ALTER TABLE {table_name} ADD COLUMN groupPermissions TEXT NOT NULL DEFAULT ''"))


class Migration004_AddVisits(BaseMigration):
    version = 4
    description = "Add visits"

    def upgrade(self, connection: Connection, table_name: str) -> None:
        connection.execute(text(f"ALTER TABLE {table_name} ADD COLUMN visits INTEGER NOT NULL DEFAULT 0"))


class Migration005_AddCreationDate(BaseMigration):
    """Existing rows are stamped with the time of the migration."""
    version = 5
    description = "Add creationDate"

    def upgrade(self, connection: Connection, table_name: str) -> None:
        connection.execute(text(f"ALTER TABLE {table_name} ADD COLUMN creationDate DATETIME"))
        creation_date = column("creationDate", DateTime)
        now = datetime.now(timezone.utc).replace(tzinfo=None)
        connection.execute(
            update(table(table_name, creation_date)).where(creation_date.is_(None)).values(creationDate=now)
        )


class MigrationRegistry:
    """Ordered collection of the known migrations."""

    def __init__(self):
        self._migrations: Dict[int, BaseMigration] = {}

    def register(self, migration_class: Type[BaseMigration]) -> None:
        migration = migration_class()
        if migration.version in self._migrations:
            raise MigrationError(f"Duplicate migration version {migration.version}")
        self._migrations[migration.version] = migration

    def get(self, version: int) -> BaseMigration:
        return self._migrations[version]

    def list_migrations(self) -> List[Dict[str, object]]:
        return [
            {"version": version, "description": self._migrations[version].description}
            for version in sorted(self._migrations)
        ]

    def get_latest_version(self) -> int:
        return max(self._migrations, default=0)

    def get_migration_plan(self, current_version: int, target: Optional[int] = None) -> List[int]:
        target = self.get_latest_version() if target is None else target
        return [version for version in sorted(self._migrations) if current_version < version <= target]


migration_registry = MigrationRegistry()
for _migration in (
    Migration001_CreateWarpTable,
    Migration002_NarrowY,
    Migration003_AddGroupPermissions,
    Migration004_AddVisits,
    Migration005_AddCreationDate,
):
    migration_registry.register(_migration)


class SchemaMigrator:
    """
    Applies pending migrations to the warp table of one database.

    The connection passed in must not be inside a transaction; every step
    runs in a transaction of its own together with its history entry.
    """

    def __init__(self, connection: Connection, table_name: str, registry: MigrationRegistry = migration_registry):
        self.connection = connection
        self.table_name = validate_table_name(table_name)
        self.registry = registry
        self.history = schema_version_table(table_name)

    def table_exists(self) -> bool:
        with self.connection.begin():
            return inspect(self.connection).has_table(self.table_name)

    def current_version(self) -> int:
        """The version of the warp table, 0 if it does not exist."""
        with self.connection.begin():
            inspector = inspect(self.connection)
            if not inspector.has_table(self.table_name):
                return 0
            if inspector.has_table(self.history.name):
                recorded = self.connection.execute(
                    select(self.history.c.version).order_by(self.history.c.version.desc()).limit(1)
                ).scalar()
                if recorded is not None:
                    return recorded
            return self._infer_version(inspector)

    def _infer_version(self, inspector) -> int:
        columns = {col["name"]: col for col in inspector.get_columns(self.table_name)}
        missing = [name for name in V1_COLUMNS.split(", ") if name not in columns]
        if missing:
            raise MigrationError(f"Table '{self.table_name}' is not a warp table, missing columns {missing}")
        if "creationDate" in columns:
            return 5
        if "visits" in columns:
            return 4
        if "groupPermissions" in columns:
            return 3
        if isinstance(columns["y"]["type"], SmallInteger):
            return 2
        return 1

    def pending(self, target: Optional[int] = None) -> List[int]:
        return self.registry.get_migration_plan(self.current_version(), target)

    def migrate(self, target: Optional[int] = None) -> int:
        """
        Apply every pending migration up to ``target`` (default: latest).

        Returns:
            The version of the table afterwards.

        Raises:
            MigrationError: if a step fails; earlier steps stay applied.
        """
        current = self.current_version()
        plan = self.registry.get_migration_plan(current, target)
        if not plan:
            return current

        self._ensure_history(current)
        for version in plan:
            migration = self.registry.get(version)
            try:
                with self.connection.begin():
                    migration.upgrade(self.connection, self.table_name)
                    self.connection.execute(
                        insert(self.history).values(
                            version=version,
                            description=migration.description,
                            installed_on=datetime.now(timezone.utc).replace(tzinfo=None),
                        )
                    )
            except SQLAlchemyError as exc:
                logger.error(f"Migration {version} ({migration.description}) of '{self.table_name}' failed: {exc}")
                raise MigrationError(f"Failed to execute migration {version}: {migration.description}") from exc
            logger.info(f"Migrated '{self.table_name}' to version {version}: {migration.description}")
            current = version
        return current

    def _ensure_history(self, baseline: int) -> None:
        """
        Create the history table, recording ``baseline`` for tables that predate it.

        History left behind by a warp table that no longer exists is dropped.
        """
        with self.connection.begin():
            if inspect(self.connection).has_table(self.history.name):
                if baseline == 0:
                    result = self.connection.execute(delete(self.history))
                    if result.rowcount:
                        logger.warning(f"Discarded stale migration history of missing table '{self.table_name}'")
                return
            self.history.create(self.connection)
            if baseline > 0:
                self.connection.execute(
                    insert(self.history).values(
                        version=baseline,
                        description="Baseline of existing table",
                        installed_on=datetime.now(timezone.utc).replace(tzinfo=None),
                    )
                )
                logger.info(f"Baselined existing table '{self.table_name}' at version {baseline}")
