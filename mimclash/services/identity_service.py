"""
Identity Service - maps volatile connection ids to durable player identities.

Lookup is two-tier. The fast path is a dictionary keyed by connection id. When
a connection is unknown (a reconnect arrived on a new socket before any
explicit rebind), the slow path scans every room for a player whose durable
identity (room code + name) matches the hint the connection carries. That
scan is O(rooms x players) and only runs on a fast-path miss.

Only an offline player can be matched this way. A successful slow-path
match rebinds the player to the new connection under the room's lock: the old
connection id is evicted and every per-round reference to it is migrated in
one step.

Lock order: room lock first, then this service's table lock.
"""

import logging
import threading
from typing import Callable, Dict, List, Optional, Tuple

from mimclash.core.errors import ErrorCode, NotFoundError
from mimclash.core.models import Player, PlayerIdentity, Room

logger = logging.getLogger(__name__)


class IdentityHint:
    """What a connection claims to be: a player name and optionally a room code."""

    def __init__(self, name: Optional[str] = None, room_code: Optional[str] = None):
        self.name = name
        self.room_code = room_code

    def merged_with(self, other: Optional['IdentityHint']) -> 'IdentityHint':
        if other is None:
            return self
        return IdentityHint(self.name or other.name, self.room_code or other.room_code)

    def __bool__(self) -> bool:
        return bool(self.name)

    def __repr__(self) -> str:
        return f"IdentityHint(name={self.name!r}, room_code={self.room_code!r})"


class IdentityService:
    """Connection id to player identity bookkeeping."""

    def __init__(self, room_manager):
        self.room_manager = room_manager
        self._connections: Dict[str, PlayerIdentity] = {}
        self._hints: Dict[str, IdentityHint] = {}
        self._lock = threading.RLock()
        self._rebind_listeners: List[Callable[[Room, Player, str], None]] = []

    def add_rebind_listener(self, listener: Callable[[Room, Player, str], None]):
        """Called as listener(room, player, old_connection_id) after every rebind."""
        self._rebind_listeners.append(listener)

    # Bookkeeping

    def bind(self, connection_id: str, player: Player) -> None:
        with self._lock:
            self._connections[connection_id] = player.identity
        logger.debug(f"Bound connection {connection_id} to {player.identity.key}")

    def unbind(self, connection_id: str) -> Optional[PlayerIdentity]:
        with self._lock:
            identity = self._connections.pop(connection_id, None)
        if identity:
            logger.debug(f"Unbound connection {connection_id} from {identity.key}")
        return identity

    def get_identity(self, connection_id: str) -> Optional[PlayerIdentity]:
        with self._lock:
            return self._connections.get(connection_id)

    def is_bound(self, connection_id: str) -> bool:
        with self._lock:
            return connection_id in self._connections

    def remember_hint(self, connection_id: str, hint: IdentityHint) -> None:
        """Store the identity a connection announced at handshake time."""
        if not hint:
            return
        with self._lock:
            self._hints[connection_id] = hint

    def forget_connection(self, connection_id: str) -> Optional[PlayerIdentity]:
        """Drop everything known about a closed connection."""
        with self._lock:
            self._hints.pop(connection_id, None)
            return self._connections.pop(connection_id, None)

    def connection_count(self) -> int:
        with self._lock:
            return len(self._connections)

    # Resolution

    def resolve(self, connection_id: str, hint: Optional[IdentityHint] = None) -> Tuple[Room, Player]:
        """
        Find the room and player acting through `connection_id`.

        Raises:
            NotFoundError: PLAYER_NOT_FOUND if neither path finds the player
        """
        found = self._resolve_fast(connection_id)
        if found is not None:
            return found

        with self._lock:
            stored_hint = self._hints.get(connection_id)
        effective_hint = (hint or IdentityHint()).merged_with(stored_hint)
        if effective_hint:
            found = self._resolve_by_scan(connection_id, effective_hint)
            if found is not None:
                return found

        raise NotFoundError(
            ErrorCode.PLAYER_NOT_FOUND,
            'Could not find your player. Please rejoin the room.',
            {'connection_id': connection_id}
        )

    def _resolve_fast(self, connection_id: str) -> Optional[Tuple[Room, Player]]:
        identity = self.get_identity(connection_id)
        if identity is None:
            return None

        room = self.room_manager.get_room(identity.room_code)
        player = room.find_player(connection_id) if room else None
        if player is None:
            # The player was removed while this connection stayed bound
            self.unbind(connection_id)
            return None
        return room, player

    def _resolve_by_scan(self, connection_id: str, hint: IdentityHint) -> Optional[Tuple[Room, Player]]:
        # The durable identity is name plus room; a bare name identifies nobody
        if not hint.room_code:
            return None
        for room in self.room_manager.get_all_rooms():
            if room.code != hint.room_code or room.find_player_by_name(hint.name) is None:
                continue

            with self.room_manager.room_operation(room.code):
                # Re-check under the lock, the room may have changed meanwhile
                player = room.find_player_by_name(hint.name)
                if self.room_manager.get_room(room.code) is not room or player is None:
                    return None
                if player.online:
                    # Taking over a live connection needs an explicit join or room-info
                    logger.warning(f"Refusing implicit takeover of online player {player.identity.key} by {connection_id}")
                    return None
                logger.info(f"Resolved connection {connection_id} to {player.identity.key} by identity scan")
                self.rebind(room, player, connection_id)
                return room, player
        return None

    def rebind(self, room: Room, player: Player, new_connection_id: str) -> None:
        """
        Point a player at a new connection. The caller holds the room lock.

        The old connection id is evicted from the lookup table and every
        reference to it in the room is migrated to the new id.
        """
        old_connection_id = player.id
        with self._lock:
            if old_connection_id != new_connection_id:
                self._connections.pop(old_connection_id, None)
            stale = [cid for cid, identity in self._connections.items()
                     if identity == player.identity and cid != new_connection_id]
            for cid in stale:
                del self._connections[cid]
            self._connections[new_connection_id] = player.identity

        if old_connection_id != new_connection_id:
            room.rekey_player(old_connection_id, new_connection_id)
        self.room_manager.mark_player_online(room, player)
        logger.info(f"Rebound {player.identity.key} from {old_connection_id} to {new_connection_id}")

        for listener in self._rebind_listeners:
            listener(room, player, old_connection_id)
