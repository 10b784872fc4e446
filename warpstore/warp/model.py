# warpstore/warp/model.py
import math
from datetime import datetime, timezone
from typing import Any, FrozenSet, Iterable, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from warpstore.models.enums import WarpType

NAME_MAX_LENGTH = 32
IDENTIFIER_MAX_LENGTH = 36
GROUP_MAX_LENGTH = 64
WELCOME_MESSAGE_MAX_LENGTH = 100

# Range of the SMALLINT columns holding y, yaw and pitch.
SMALLINT_MIN = -32768
SMALLINT_MAX = 32767

# Separator of the persisted invitation lists.
LIST_SEPARATOR = ","

SECONDS_PER_DAY = 24 * 60 * 60


def _check_identifier(value: str, max_length: int) -> str:
    if not value or not value.strip():
        raise ValueError("must not be empty")
    if LIST_SEPARATOR in value:
        raise ValueError(f"must not contain '{LIST_SEPARATOR}'")
    if len(value) > max_length:
        raise ValueError(f"must be at most {max_length} characters long")
    return value


def as_utc(value: datetime) -> datetime:
    """Treat naive timestamps as UTC and convert aware ones to UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


class Vector3(BaseModel):
    model_config = ConfigDict(frozen=True)

    x: float
    y: int = Field(..., ge=SMALLINT_MIN, le=SMALLINT_MAX)
    z: float

    @property
    def floor_x(self) -> int:
        return math.floor(self.x)

    @property
    def floor_y(self) -> int:
        return self.y

    @property
    def floor_z(self) -> int:
        return math.floor(self.z)


class EulerDirection(BaseModel):
    model_config = ConfigDict(frozen=True)

    yaw: int = Field(..., ge=SMALLINT_MIN, le=SMALLINT_MAX)
    pitch: int = Field(..., ge=SMALLINT_MIN, le=SMALLINT_MAX)


class Warp(BaseModel):
    """
    A named, owned, location-bound record.

    Instances are immutable. Changes are made by deriving a new instance with
    one of the ``with_*`` methods and handing it to the matching field-scoped
    update of a DataConnection.
    """

    model_config = ConfigDict(frozen=True)

    id: Optional[int] = None
    name: str = Field(..., max_length=NAME_MAX_LENGTH)
    creator: str
    world_identifier: str
    position: Vector3
    rotation: EulerDirection
    type: WarpType = WarpType.PUBLIC
    invited_players: FrozenSet[str] = frozenset()
    invited_groups: FrozenSet[str] = frozenset()
    creation_date: datetime
    visits: int = Field(0, ge=0)
    welcome_message: str = Field("", max_length=WELCOME_MESSAGE_MAX_LENGTH)

    @field_validator("name")
    @classmethod
    def _name_not_blank(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("warp name must not be empty")
        return value

    @field_validator("creator", "world_identifier")
    @classmethod
    def _valid_identifier(cls, value: str) -> str:
        return _check_identifier(value, IDENTIFIER_MAX_LENGTH)

    @field_validator("invited_players")
    @classmethod
    def _valid_players(cls, value: FrozenSet[str]) -> FrozenSet[str]:
        for player in value:
            _check_identifier(player, IDENTIFIER_MAX_LENGTH)
        return value

    @field_validator("invited_groups")
    @classmethod
    def _valid_groups(cls, value: FrozenSet[str]) -> FrozenSet[str]:
        for group in value:
            _check_identifier(group, GROUP_MAX_LENGTH)
        return value

    @field_validator("creation_date")
    @classmethod
    def _normalize_creation_date(cls, value: datetime) -> datetime:
        return as_utc(value)

    def __str__(self) -> str:
        return self.name

    def _evolve(self, **changes: Any) -> "Warp":
        # model_copy() skips validation, so rebuild through the validators
        return type(self).model_validate({**dict(self), **changes})

    def is_creator(self, player: str) -> bool:
        return self.creator == player

    def is_player_invited(self, player: str) -> bool:
        return player in self.invited_players

    def is_group_invited(self, group: str) -> bool:
        return group in self.invited_groups

    def visits_per_day(self, now: Optional[datetime] = None) -> float:
        """Average visits per day since creation, counting at least one day."""
        now = as_utc(now) if now is not None else datetime.now(timezone.utc)
        days = (now - self.creation_date).total_seconds() / SECONDS_PER_DAY
        return self.visits / max(days, 1.0)

    def welcome_text(self) -> str:
        """The welcome message with placeholders replaced."""
        return self.welcome_message.replace("%warp%", self.name).replace("%creator%", self.creator)

    def with_id(self, warp_id: int) -> "Warp":
        return self._evolve(id=warp_id)

    def with_type(self, warp_type: WarpType) -> "Warp":
        return self._evolve(type=warp_type)

    def with_creator(self, creator: str) -> "Warp":
        return self._evolve(creator=creator)

    def with_location(self, world_identifier: str, position: Vector3, rotation: EulerDirection) -> "Warp":
        return self._evolve(world_identifier=world_identifier, position=position, rotation=rotation)

    def with_invited_players(self, players: Iterable[str]) -> "Warp":
        return self._evolve(invited_players=frozenset(players))

    def with_invited_groups(self, groups: Iterable[str]) -> "Warp":
        return self._evolve(invited_groups=frozenset(groups))

    def visited(self) -> "Warp":
        return self._evolve(visits=self.visits + 1)

    def with_welcome_message(self, welcome_message: str) -> "Warp":
        return self._evolve(welcome_message=welcome_message)
