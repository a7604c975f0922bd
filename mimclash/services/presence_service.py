"""
Presence Service - disconnects, offline grace periods, leaving and empty-room
garbage collection.

A dropped connection only marks its player offline. The player is removed if
they are still offline when the grace period ends (longer after an abrupt
transport failure). A reconnect within the grace period cancels the removal.
"""

import logging
from functools import partial
from typing import Optional

from mimclash.config.game_config import get_game_config
from mimclash.core.models import Player, Room
from mimclash.services.phase_scheduler import ROOM_GC_SLOT, offline_slot

logger = logging.getLogger(__name__)

ABRUPT_DISCONNECT_REASONS = frozenset({'transport error', 'ping timeout', 'transport close'})


class PresenceService:
    """Tracks player presence and cleans up after players and rooms."""

    def __init__(self, room_manager, identity_service, phase_scheduler, game_flow_service, broadcast_service):
        self.room_manager = room_manager
        self.identity_service = identity_service
        self.phase_scheduler = phase_scheduler
        self.game_flow_service = game_flow_service
        self.broadcast_service = broadcast_service
        self.game_config = get_game_config()
        identity_service.add_rebind_listener(self._on_rebind)

    def grace_period(self, reason: Optional[str]) -> int:
        if reason and str(reason).lower() in ABRUPT_DISCONNECT_REASONS:
            return self.game_config.transport_grace_seconds
        return self.game_config.offline_grace_seconds

    def handle_disconnect(self, connection_id: str, reason: Optional[str] = None) -> Optional[Player]:
        """
        Mark the player behind a closed connection offline and start their grace timer.

        Returns:
            The affected player, or None if the connection was not in a room
        """
        identity = self.identity_service.forget_connection(connection_id)
        if identity is None:
            return None

        with self.room_manager.room_operation(identity.room_code):
            room = self.room_manager.get_room(identity.room_code)
            player = room.find_player(connection_id) if room else None
            if player is None:
                # Already rebound to a newer connection, or gone
                return None

            self.room_manager.mark_player_offline(room, player, reason)
            grace = self.grace_period(reason)
            self.phase_scheduler.schedule(
                room.code, grace,
                partial(self._expire_offline_player, room.code, player.name, connection_id),
                slot=offline_slot(player.name),
                label=f'offline_grace:{player.name}',
            )
            logger.info(f"Player {player.name} in room {room.code} has {grace}s to reconnect")
            self.broadcast_service.broadcast_player_status(room, player)
            return player

    def _expire_offline_player(self, room_code: str, player_name: str, connection_id: str):
        room = self.room_manager.get_room(room_code)
        if room is None:
            return
        player = room.find_player_by_name(player_name)
        if player is None or player.online or player.id != connection_id:
            return
        logger.info(f"Player {player_name} did not reconnect to room {room_code}, removing")
        self._remove(room, player, 'timeout')

    def leave(self, room: Room, player: Player, reason: str = 'left') -> None:
        """Remove a player at their own request. The caller holds the room lock."""
        self.identity_service.unbind(player.id)
        self._remove(room, player, reason)

    def _remove(self, room: Room, player: Player, reason: str):
        if self.room_manager.remove_player(room, player.id) is None:
            return
        self.phase_scheduler.cancel(room.code, offline_slot(player.name))
        self.broadcast_service.broadcast_player_left(room, player, reason)
        self.game_flow_service.handle_player_removed(room)
        if room.is_empty:
            self.schedule_room_collection(room.code)

    # Empty rooms

    def schedule_room_collection(self, room_code: str):
        ttl = self.game_config.empty_room_ttl_seconds
        self.phase_scheduler.schedule(
            room_code, ttl, partial(self._collect_room, room_code),
            slot=ROOM_GC_SLOT, label='room_gc',
        )
        logger.info(f"Room {room_code} is empty, collecting in {ttl}s")

    def cancel_room_collection(self, room_code: str) -> bool:
        return self.phase_scheduler.cancel(room_code, ROOM_GC_SLOT)

    def _collect_room(self, room_code: str):
        room = self.room_manager.get_room(room_code)
        if room is None or not room.is_empty:
            return
        self.phase_scheduler.cancel_room(room_code)
        self.room_manager.delete_room(room_code)
        logger.info(f"Collected empty room {room_code}")

    def _on_rebind(self, room: Room, player: Player, old_connection_id: str):
        if self.phase_scheduler.cancel(room.code, offline_slot(player.name)):
            logger.info(f"Player {player.name} reconnected to room {room.code} within the grace period")
        self.broadcast_service.broadcast_player_status(room, player)
        self.game_flow_service.resend_voting_set(room, player)
