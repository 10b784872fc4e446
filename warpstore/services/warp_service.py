# warpstore/services/warp_service.py
import logging
import threading
from typing import Callable, Dict, List, Optional

from warpstore.models.enums import Permission, WarpType
from warpstore.platform import Actor, is_player
from warpstore.services.errors import (
    NoSuchWarp,
    NotModifiable,
    NotUsable,
    PrivateLimitReached,
    WarpNameTaken,
)
from warpstore.storage.base import DataConnection
from warpstore.storage.errors import DuplicateWarp
from warpstore.warp.authorization import AuthorizationResolver, DefaultAuthorizationResolver
from warpstore.warp.model import EulerDirection, Vector3, Warp

logger = logging.getLogger(__name__)


class WarpService:
    """
    Service for handling warp operations.

    Keeps a name-keyed copy of the stored warps. Every change is written to
    storage with the matching field-scoped update first and only then applied
    to the copy, so the copy never holds anything storage refused.
    """

    def __init__(
        self,
        connection: DataConnection,
        authorization_resolver: Optional[AuthorizationResolver] = None,
        max_private_warps: int = 10,
    ):
        self.connection = connection
        self.authorization_resolver = authorization_resolver or DefaultAuthorizationResolver()
        self.max_private_warps = max_private_warps
        self._warps: Dict[str, Warp] = {}
        self._lock = threading.RLock()

    def reload(self) -> int:
        """Replace the copy with a full read from storage. Returns the number of warps."""
        warps = self.connection.load_all()
        with self._lock:
            self._warps = warps
        return len(warps)

    # ========== Lookups ==========

    def exists(self, name: str) -> bool:
        with self._lock:
            return name in self._warps

    def get(self, name: str) -> Warp:
        with self._lock:
            warp = self._warps.get(name)
        if warp is None:
            raise NoSuchWarp(name)
        return warp

    def match(self, query: str) -> Optional[Warp]:
        """
        Find a warp by name.

        Exact matches win, then case-insensitive ones, then a prefix that
        matches exactly one warp. A blank query matches nothing.
        """
        if not query.strip():
            return None
        with self._lock:
            if query in self._warps:
                return self._warps[query]
            lowered = query.lower()
            for name, warp in self._warps.items():
                if name.lower() == lowered:
                    return warp
            candidates = [warp for name, warp in self._warps.items() if name.lower().startswith(lowered)]
        return candidates[0] if len(candidates) == 1 else None

    def all(self) -> List[Warp]:
        with self._lock:
            return sorted(self._warps.values(), key=lambda warp: warp.name.lower())

    def usable_by(self, actor: Actor) -> List[Warp]:
        return [warp for warp in self.all() if self.authorization_resolver.is_usable(warp, actor)]

    def private_warp_count(self, player: str) -> int:
        with self._lock:
            return sum(
                1 for warp in self._warps.values() if warp.is_creator(player) and warp.type == WarpType.PRIVATE
            )

    # ========== Creation and removal ==========

    def add(self, warp: Warp) -> Warp:
        """Store a new warp and return it with its storage identity."""
        with self._lock:
            if warp.name in self._warps:
                raise WarpNameTaken(warp.name)
            try:
                stored = self.connection.create(warp)
            except DuplicateWarp as exc:
                raise WarpNameTaken(warp.name) from exc
            self._warps[stored.name] = stored
        logger.info(f"Warp '{stored.name}' created by {stored.creator}")
        return stored

    def remove(self, name: str, actor: Actor) -> Warp:
        with self._lock:
            warp = self._modifiable(name, actor)
            self.connection.delete(warp)
            del self._warps[name]
        logger.info(f"Warp '{name}' deleted")
        return warp

    # ========== Changes ==========

    def _modifiable(self, name: str, actor: Actor) -> Warp:
        warp = self.get(name)
        if not self.authorization_resolver.is_modifiable(warp, actor):
            raise NotModifiable(name)
        return warp

    def _change(self, name: str, actor: Actor, derive: Callable[[Warp], Warp], write: Callable[[Warp], None]) -> Warp:
        with self._lock:
            changed = derive(self._modifiable(name, actor))
            write(changed)
            self._warps[name] = changed
        return changed

    def privatize(self, name: str, actor: Actor) -> Warp:
        """
        Make a warp private.

        Raises:
            NoSuchWarp: if there is no warp with that name.
            NotModifiable: if the actor may not modify the warp.
            PrivateLimitReached: if the actor already owns the maximum number
                of private warps.
        """
        with self._lock:
            warp = self._modifiable(name, actor)
            if warp.type == WarpType.PRIVATE:
                return warp
            if self._limit_applies(actor) and self.private_warp_count(actor.unique_id) >= self.max_private_warps:
                raise PrivateLimitReached(name, self.max_private_warps)
            return self._change(
                name, actor, lambda w: w.with_type(WarpType.PRIVATE), self.connection.update_visibility
            )

    def _limit_applies(self, actor: Actor) -> bool:
        if self.max_private_warps < 0 or not is_player(actor):
            return False
        return not actor.has_permission(Permission.UNLIMITED_PRIVATE.value)

    def publicize(self, name: str, actor: Actor) -> Warp:
        return self._change(name, actor, lambda w: w.with_type(WarpType.PUBLIC), self.connection.update_visibility)

    def give(self, name: str, actor: Actor, new_creator: str) -> Warp:
        return self._change(name, actor, lambda w: w.with_creator(new_creator), self.connection.update_creator)

    def move(
        self, name: str, actor: Actor, world_identifier: str, position: Vector3, rotation: EulerDirection
    ) -> Warp:
        return self._change(
            name,
            actor,
            lambda w: w.with_location(world_identifier, position, rotation),
            self.connection.update_location,
        )

    def invite_player(self, name: str, actor: Actor, player: str) -> Warp:
        return self._change(
            name,
            actor,
            lambda w: w.with_invited_players(w.invited_players | {player}),
            self.connection.update_permissions,
        )

    def uninvite_player(self, name: str, actor: Actor, player: str) -> Warp:
        return self._change(
            name,
            actor,
            lambda w: w.with_invited_players(w.invited_players - {player}),
            self.connection.update_permissions,
        )

    def invite_group(self, name: str, actor: Actor, group: str) -> Warp:
        return self._change(
            name,
            actor,
            lambda w: w.with_invited_groups(w.invited_groups | {group}),
            self.connection.update_group_permissions,
        )

    def uninvite_group(self, name: str, actor: Actor, group: str) -> Warp:
        return self._change(
            name,
            actor,
            lambda w: w.with_invited_groups(w.invited_groups - {group}),
            self.connection.update_group_permissions,
        )

    def set_welcome_message(self, name: str, actor: Actor, message: str) -> Warp:
        return self._change(
            name, actor, lambda w: w.with_welcome_message(message), self.connection.update_welcome_message
        )

    def visit(self, name: str, actor: Actor) -> Warp:
        """Count a visit by an actor allowed to use the warp."""
        with self._lock:
            warp = self.get(name)
            if not self.authorization_resolver.is_usable(warp, actor):
                raise NotUsable(name)
            visited = warp.visited()
            self.connection.update_visits(visited)
            self._warps[name] = visited
        return visited
