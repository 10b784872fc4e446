# warpstore/services/info_printer.py
from datetime import datetime
from typing import Iterable, List, Optional

from warpstore.i18n import DynamicMessages, LocaleManager, format_datetime
from warpstore.platform import Actor, Game, PlayerNameResolver, is_player
from warpstore.warp.authorization import AuthorizationResolver
from warpstore.warp.model import Warp

msg = DynamicMessages()

SEPARATOR = ", "


def to_name(identifier: str, resolver: PlayerNameResolver) -> str:
    """Display name of a player, falling back to the identifier."""
    return resolver.get_name(identifier) or identifier


class InfoPrinter:
    """Renders the information about a warp that a receiver may see."""

    def __init__(
        self,
        warp: Warp,
        authorization_resolver: AuthorizationResolver,
        game: Game,
        player_name_resolver: PlayerNameResolver,
    ):
        self.warp = warp
        self.authorization_resolver = authorization_resolver
        self.game = game
        self.player_name_resolver = player_name_resolver

    def get_text(self, receiver: Actor, now: Optional[datetime] = None) -> str:
        """
        Build the information text for a receiver.

        Invitations are only listed if the receiver may modify the warp. The
        text is rendered in the receiver's locale.
        """
        with LocaleManager.using(receiver.locale):
            return "\n".join(self._lines(receiver, now))

    def print_to(self, receiver: Actor) -> None:
        receiver.send_message(self.get_text(receiver))

    def _lines(self, receiver: Actor, now: Optional[datetime]) -> List[str]:
        warp = self.warp
        lines = [f"{msg.get_string('info.heading')} '{warp}':"]

        creator = f"{msg.get_string('info.created-by')} {to_name(warp.creator, self.player_name_resolver)}"
        if is_player(receiver) and warp.is_creator(receiver.unique_id):
            creator += f" {msg.get_string('info.created-by-you')}"
        lines.append(creator)

        position = msg.get_string(
            "info.location.position",
            x=warp.position.floor_x,
            y=warp.position.floor_y,
            z=warp.position.floor_z,
            world=self._world_name(warp.world_identifier),
        )
        lines.append(f"{msg.get_string('info.location')} {position}")

        if self.authorization_resolver.is_modifiable(warp, receiver):
            players = sorted(to_name(player, self.player_name_resolver) for player in warp.invited_players)
            lines.append(f"{msg.get_string('info.invited-players')} {self._listing(players)}")
            lines.append(f"{msg.get_string('info.invited-groups')} {self._listing(sorted(warp.invited_groups))}")

        lines.append(f"{msg.get_string('info.creation-date')} {format_datetime(warp.creation_date)}")

        visits = msg.get_string("info.visits.per-day", visits=warp.visits, per_day=warp.visits_per_day(now))
        lines.append(f"{msg.get_string('info.visits')} {visits}")
        return lines

    @staticmethod
    def _listing(values: Iterable[str]) -> str:
        return SEPARATOR.join(values) or "-"

    def _world_name(self, world_identifier: str) -> str:
        world = self.game.get_world(world_identifier)
        if world is not None:
            return world.name
        return world_identifier
