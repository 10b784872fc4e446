# warpstore/warp/builder.py
from datetime import datetime, timezone
from typing import Iterable, Optional, Set

from warpstore.i18n import DynamicMessages
from warpstore.models.enums import WarpType
from warpstore.warp.model import EulerDirection, Vector3, Warp

msg = DynamicMessages()


def default_welcome_message() -> str:
    """The welcome message template of the current locale."""
    return msg.get_string("default-welcome-message")


class WarpBuilder:
    """
    Builds Warps from the required values plus any optional ones.

    Every setter returns the builder itself so calls can be chained:

        warp = (
            WarpBuilder("spawn", creator, world, Vector3(x=0, y=64, z=0), EulerDirection(yaw=0, pitch=0))
            .set_type(WarpType.PRIVATE)
            .add_invited_player(friend)
            .build()
        )

    Unset optional values default to: creation date = now, type = PUBLIC,
    visits = 0 and the localized default welcome message.
    """

    def __init__(
        self,
        name: str,
        creator: str,
        world_identifier: str,
        position: Vector3,
        rotation: EulerDirection,
    ):
        self.name = name
        self.creator = creator
        self.world_identifier = world_identifier
        self.position = position
        self.rotation = rotation

        self.invited_players: Set[str] = set()
        self.invited_groups: Set[str] = set()
        self.creation_date: Optional[datetime] = None
        self.type = WarpType.PUBLIC
        self.visits = 0
        self.welcome_message: Optional[str] = None

    def set_creation_date(self, creation_date: datetime) -> "WarpBuilder":
        self.creation_date = creation_date
        return self

    def add_invited_player(self, player: str) -> "WarpBuilder":
        self.invited_players.add(player)
        return self

    def add_invited_players(self, players: Iterable[str]) -> "WarpBuilder":
        self.invited_players.update(players)
        return self

    def add_invited_group(self, group: str) -> "WarpBuilder":
        self.invited_groups.add(group)
        return self

    def add_invited_groups(self, groups: Iterable[str]) -> "WarpBuilder":
        self.invited_groups.update(groups)
        return self

    def set_type(self, warp_type: WarpType) -> "WarpBuilder":
        self.type = warp_type
        return self

    def set_visits(self, visits: int) -> "WarpBuilder":
        self.visits = visits
        return self

    def set_welcome_message(self, welcome_message: str) -> "WarpBuilder":
        self.welcome_message = welcome_message
        return self

    def build(self) -> Warp:
        """
        Build the Warp.

        Raises:
            pydantic.ValidationError: if a value violates the Warp invariants
                (empty name, negative visits, malformed identifiers).
        """
        return Warp(
            name=self.name,
            creator=self.creator,
            world_identifier=self.world_identifier,
            position=self.position,
            rotation=self.rotation,
            type=self.type,
            invited_players=frozenset(self.invited_players),
            invited_groups=frozenset(self.invited_groups),
            creation_date=self.creation_date or datetime.now(timezone.utc),
            visits=self.visits,
            welcome_message=(
                self.welcome_message if self.welcome_message is not None else default_welcome_message()
            ),
        )


def build_warp(
    name: str,
    creator: str,
    world_identifier: str,
    position: Vector3,
    rotation: EulerDirection,
    *,
    creation_date: Optional[datetime] = None,
    invited_players: Iterable[str] = (),
    invited_groups: Iterable[str] = (),
    warp_type: WarpType = WarpType.PUBLIC,
    visits: int = 0,
    welcome_message: Optional[str] = None,
) -> Warp:
    """
    Build a Warp in one call.

    Args:
        name: Unique name of the warp.
        creator: Identifier of the creating player.
        world_identifier: Identifier of the world holding the warp.
        position: Position inside the world.
        rotation: Yaw and pitch.
        creation_date: Defaults to the current time.
        invited_players: Invited player identifiers, duplicates collapse.
        invited_groups: Invited group names, duplicates collapse.
        warp_type: Defaults to PUBLIC.
        visits: Defaults to 0.
        welcome_message: Defaults to the localized welcome template.
    """
    builder = (
        WarpBuilder(name, creator, world_identifier, position, rotation)
        .add_invited_players(invited_players)
        .add_invited_groups(invited_groups)
        .set_type(warp_type)
        .set_visits(visits)
    )
    if creation_date is not None:
        builder.set_creation_date(creation_date)
    if welcome_message is not None:
        builder.set_welcome_message(welcome_message)
    return builder.build()
