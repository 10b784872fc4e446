# warpstore/storage/base.py
"""
The storage contract shared by every backend.

A DataConnection persists Warps in one table. Besides loading, inserting and
deleting, it offers one narrow update per group of fields so that a change
only ever writes the columns it concerns.
"""
import logging
from abc import ABC, abstractmethod
from contextlib import contextmanager
from typing import Any, Callable, Dict, Iterator, TypeVar

from sqlalchemy import Connection, delete, insert, or_, select, update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from warpstore.models.enums import WarpType
from warpstore.models.warp import warp_table
from warpstore.storage.codec import decode_row, encode_warp, join_list, location_values
from warpstore.storage.errors import DecodeError, DuplicateWarp, StorageError
from warpstore.warp.model import Warp

logger = logging.getLogger(__name__)

T = TypeVar("T")


@contextmanager
def storage_errors(action: str) -> Iterator[None]:
    """Log driver errors and re-raise them as StorageError."""
    try:
        yield
    except StorageError:
        raise
    except IntegrityError as exc:
        logger.error(f"{action} Exception: {exc}")
        raise DuplicateWarp(f"{action} violated a uniqueness constraint") from exc
    except SQLAlchemyError as exc:
        logger.error(f"{action} Exception: {exc}")
        raise StorageError(f"{action} failed") from exc


def _identity(warp: Warp) -> int:
    if warp.id is None:
        raise ValueError(f"Warp '{warp.name}' has not been stored yet")
    return warp.id


class DataConnection(ABC):
    """Storage contract for warps."""

    def __init__(self, table_name: str = "warp"):
        self.table = warp_table(table_name)
        self.table_name = self.table.name

    # ========== Backend hooks ==========

    @abstractmethod
    def _run(self, action: str, work: Callable[[Connection], T], transactional: bool = True) -> T:
        """
        Run ``work`` against a connection of this backend.

        With ``transactional`` the work runs inside a transaction that commits
        on success. Driver errors surface as StorageError subclasses.
        """

    @abstractmethod
    def check_schema(self, create_if_missing: bool) -> None:
        """
        Verify that the warp table exists.

        Raises:
            SchemaMissing: if the table is absent and ``create_if_missing`` is false.
        """

    @abstractmethod
    def migrate_schema(self, apply_if_necessary: bool) -> None:
        """
        Bring the warp table to the current layout.

        Raises:
            SchemaOutdated: if changes are needed and ``apply_if_necessary`` is false.
        """

    @abstractmethod
    def close(self) -> None:
        """Release held resources. Safe to call more than once."""

    def __enter__(self) -> "DataConnection":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    # ========== Reads ==========

    def load_all(self) -> Dict[str, Warp]:
        """
        Load every stored warp, keyed by name.

        Rows that cannot be decoded are logged and skipped.
        """
        rows = self._run("Warp Load", lambda conn: conn.execute(select(self.table)).mappings().all())

        warps: Dict[str, Warp] = {}
        for row in rows:
            try:
                warp = decode_row(row)
            except DecodeError as exc:
                logger.warning(f"Skipping warp row {row.get('id')!r} in '{self.table_name}': {exc}")
                continue
            warps[warp.name] = warp
        logger.info(f"Loaded {len(warps)} warps from '{self.table_name}'")
        return warps

    # ========== Inserts and deletes ==========

    def create(self, warp: Warp) -> Warp:
        """
        Insert a new warp.

        Returns:
            The warp carrying the storage identity assigned to it.

        Raises:
            DuplicateWarp: if the identity or the name is already taken.
            StorageError: on any other failure.
        """
        values = encode_warp(warp)

        def work(conn: Connection) -> int:
            result = conn.execute(insert(self.table).values(**values))
            return result.inserted_primary_key[0]

        warp_id = self._run("Warp Insert", work)
        return warp.with_id(warp_id)

    def delete(self, warp: Warp) -> None:
        """Delete the warp's row. Deleting a row that is already gone is not an error."""
        warp_id = _identity(warp)

        def work(conn: Connection) -> None:
            result = conn.execute(delete(self.table).where(self.table.c.id == warp_id))
            if result.rowcount == 0:
                logger.debug(f"Warp {warp_id} was already deleted from '{self.table_name}'")

        self._run("Warp Delete", work)

    # ========== Field-scoped updates ==========

    def _update(self, action: str, warp: Warp, *criteria: Any, **values: Any) -> None:
        statement = update(self.table).where(self.table.c.id == _identity(warp), *criteria).values(**values)
        self._run(action, lambda conn: conn.execute(statement))

    def update_visibility(self, warp: Warp) -> None:
        self._update("Warp Publicize", warp, publicAll=warp.type == WarpType.PUBLIC)

    def update_creator(self, warp: Warp) -> None:
        self._update("Warp Creator", warp, creator=warp.creator)

    def update_location(self, warp: Warp) -> None:
        self._update("Warp Location", warp, **location_values(warp))

    def update_permissions(self, warp: Warp) -> None:
        self._update("Warp Permissions", warp, permissions=join_list(warp.invited_players))

    def update_group_permissions(self, warp: Warp) -> None:
        self._update("Warp GroupPermissions", warp, groupPermissions=join_list(warp.invited_groups))

    def update_visits(self, warp: Warp) -> None:
        """Persist the visit count; a lower count than the stored one is ignored."""
        visits = self.table.c.visits
        self._update(
            "Warp Visits",
            warp,
            or_(visits.is_(None), visits <= warp.visits),
            visits=warp.visits,
        )

    def update_welcome_message(self, warp: Warp) -> None:
        self._update("Warp WelcomeMessage", warp, welcomeMessage=warp.welcome_message)
