# warpstore/warp/authorization.py
from typing import Protocol

from warpstore.models.enums import Permission, WarpType
from warpstore.platform import Actor, LocalPlayer, is_player
from warpstore.warp.model import Warp


class AuthorizationResolver(Protocol):
    """Decides who may modify or use a warp."""

    def is_modifiable(self, warp: Warp, actor: Actor) -> bool:
        ...

    def is_usable(self, warp: Warp, actor: Actor) -> bool:
        ...


class DefaultAuthorizationResolver:
    """
    Resolves authorizations from a warp's ownership and invitations.

    Actors that are not players (the console, for example) may modify and
    use every warp.
    """

    def is_modifiable(self, warp: Warp, actor: Actor) -> bool:
        if not is_player(actor):
            return True
        if warp.is_creator(actor.unique_id):
            return True
        return actor.has_permission(Permission.MODIFY_OVERRIDE.value)

    def is_usable(self, warp: Warp, actor: Actor) -> bool:
        if self.is_modifiable(warp, actor):
            return True
        if warp.type == WarpType.PUBLIC:
            return True
        if self._is_invited(warp, actor):
            return True
        return actor.has_permission(Permission.USE_OVERRIDE.value)

    def _is_invited(self, warp: Warp, player: LocalPlayer) -> bool:
        if warp.is_player_invited(player.unique_id):
            return True
        return any(warp.is_group_invited(group) for group in player.groups)
