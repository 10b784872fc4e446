# warpstore/api/dependencies.py
from dataclasses import dataclass, field
from typing import FrozenSet, List, Optional

from fastapi import Header, Request

from warpstore.platform import Actor, Game, LocalWorld, PlayerNameResolver
from warpstore.services.warp_service import WarpService


@dataclass
class ConsoleActor:
    """Requests without a player header act with console rights."""
    locale: Optional[str] = None
    messages: List[str] = field(default_factory=list)

    def send_message(self, message: str) -> None:
        self.messages.append(message)

    def has_permission(self, node: str) -> bool:
        return True


@dataclass
class RequestPlayer:
    """The player a request is made on behalf of, as forwarded by the game server."""
    unique_id: str
    groups: FrozenSet[str] = frozenset()
    permissions: FrozenSet[str] = frozenset()
    locale: Optional[str] = None
    messages: List[str] = field(default_factory=list)

    def send_message(self, message: str) -> None:
        self.messages.append(message)

    def has_permission(self, node: str) -> bool:
        return node in self.permissions


class UnknownWorlds:
    """Game stand-in that knows no world names."""

    def get_world(self, identifier: str) -> Optional[LocalWorld]:
        return None


class IdentifierNames:
    """Name resolver stand-in that knows no player names."""

    def get_name(self, identifier: str) -> Optional[str]:
        return None


def _split(value: Optional[str]) -> FrozenSet[str]:
    if not value:
        return frozenset()
    return frozenset(part.strip() for part in value.split(",") if part.strip())


def _locale(accept_language: Optional[str]) -> Optional[str]:
    if not accept_language:
        return None
    return accept_language.split(",", 1)[0].split(";", 1)[0].strip() or None


def get_actor(
    x_player_id: Optional[str] = Header(None),
    x_player_groups: Optional[str] = Header(None),
    x_player_permissions: Optional[str] = Header(None),
    accept_language: Optional[str] = Header(None),
) -> Actor:
    """Build the acting player from the request headers."""
    locale = _locale(accept_language)
    if not x_player_id:
        return ConsoleActor(locale=locale)
    return RequestPlayer(
        unique_id=x_player_id,
        groups=_split(x_player_groups),
        permissions=_split(x_player_permissions),
        locale=locale,
    )


def get_warp_service(request: Request) -> WarpService:
    return request.app.state.warp_service


def get_game(request: Request) -> Game:
    return getattr(request.app.state, "game", None) or UnknownWorlds()


def get_player_name_resolver(request: Request) -> PlayerNameResolver:
    return getattr(request.app.state, "player_name_resolver", None) or IdentifierNames()
