# warpstore/storage/codec.py
"""Conversion between Warps and rows of the warp table."""
import logging
import math
from datetime import datetime, timezone
from typing import Any, Dict, FrozenSet, Iterable, Mapping, Optional

from pydantic import ValidationError

from warpstore.models.enums import WarpType
from warpstore.storage.errors import DecodeError
from warpstore.warp.model import LIST_SEPARATOR, EulerDirection, Vector3, Warp

logger = logging.getLogger(__name__)


def join_list(values: Iterable[str]) -> str:
    """Serialize an invitation set; sorted so equal sets give equal text."""
    return LIST_SEPARATOR.join(sorted(values))


def split_list(value: Optional[str]) -> FrozenSet[str]:
    if not value:
        return frozenset()
    return frozenset(part.strip() for part in value.split(LIST_SEPARATOR) if part.strip())


def to_db_datetime(value: datetime) -> datetime:
    """Timestamps are stored as naive UTC."""
    return value.astimezone(timezone.utc).replace(tzinfo=None)


def from_db_datetime(value: Any) -> datetime:
    if isinstance(value, str):
        value = datetime.fromisoformat(value)
    if not isinstance(value, datetime):
        raise TypeError(f"Unexpected creation date {value!r}")
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def location_values(warp: Warp) -> Dict[str, Any]:
    return {
        "world": warp.world_identifier,
        "x": warp.position.x,
        "y": warp.position.y,
        "z": warp.position.z,
        "yaw": warp.rotation.yaw,
        "pitch": warp.rotation.pitch,
    }


def encode_warp(warp: Warp) -> Dict[str, Any]:
    """Column values for inserting a warp. ``id`` is left out until assigned."""
    values = {
        "name": warp.name,
        "creator": warp.creator,
        **location_values(warp),
        "publicAll": warp.type == WarpType.PUBLIC,
        "permissions": join_list(warp.invited_players),
        "groupPermissions": join_list(warp.invited_groups),
        "welcomeMessage": warp.welcome_message,
        "visits": warp.visits,
        "creationDate": to_db_datetime(warp.creation_date),
    }
    if warp.id is not None:
        values["id"] = warp.id
    return values


def decode_row(row: Mapping[str, Any]) -> Warp:
    """
    Build a Warp from a row of the warp table.

    Raises:
        DecodeError: if the row holds values no valid Warp can have.
    """
    try:
        creation_date = row.get("creationDate")
        if creation_date is None:
            # rows written before creation dates were tracked
            logger.debug(f"Warp '{row.get('name')}' has no creation date, using the current time")
            creation_date = datetime.now(timezone.utc)

        return Warp(
            id=row["id"],
            name=row["name"],
            creator=row["creator"],
            world_identifier=row["world"],
            position=Vector3(x=row["x"], y=math.floor(row["y"]), z=row["z"]),
            rotation=EulerDirection(yaw=int(row["yaw"]), pitch=int(row["pitch"])),
            type=WarpType.PUBLIC if row["publicAll"] else WarpType.PRIVATE,
            invited_players=split_list(row.get("permissions")),
            invited_groups=split_list(row.get("groupPermissions")),
            creation_date=from_db_datetime(creation_date),
            visits=row.get("visits") or 0,
            welcome_message=row.get("welcomeMessage") or "",
        )
    except (KeyError, TypeError, ValueError, ValidationError) as exc:
        raise DecodeError(f"Unable to decode warp row {row.get('id')!r}: {exc}") from exc
