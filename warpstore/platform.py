# warpstore/platform.py
"""
Interfaces of the game host the warp core talks to.

The host implements these; the core only calls them.
"""
from typing import FrozenSet, Optional, Protocol, runtime_checkable


@runtime_checkable
class Actor(Protocol):
    """Anything that can receive messages and hold permissions."""

    @property
    def locale(self) -> Optional[str]:
        ...

    def send_message(self, message: str) -> None:
        ...

    def has_permission(self, node: str) -> bool:
        ...


@runtime_checkable
class LocalPlayer(Actor, Protocol):
    """An actor that is a player on the server."""

    @property
    def unique_id(self) -> str:
        ...

    @property
    def groups(self) -> FrozenSet[str]:
        ...


class LocalWorld(Protocol):
    @property
    def name(self) -> str:
        ...


class Game(Protocol):
    def get_world(self, identifier: str) -> Optional[LocalWorld]:
        """Look up a loaded world by its identifier."""
        ...


class PlayerNameResolver(Protocol):
    def get_name(self, identifier: str) -> Optional[str]:
        """Resolve a player identifier to a display name, if known."""
        ...


def is_player(actor: Actor) -> bool:
    return isinstance(actor, LocalPlayer)
