"""
Room Manager for MimClash

The room registry. Coordinates the lifecycle, player and concurrency services
behind one facade and owns the canonical Room records.
"""

import logging
from contextlib import contextmanager
from typing import List, Optional, Tuple

from mimclash.core.errors import ErrorCode, NotFoundError
from mimclash.core.models import Player, Room
from mimclash.services.concurrency_control_service import ConcurrencyControlService
from mimclash.services.player_management_service import PlayerManagementService
from mimclash.services.room_lifecycle_service import RoomLifecycleService

logger = logging.getLogger(__name__)


class RoomManager:
    """Manages game rooms and their players."""

    def __init__(self):
        self.concurrency_control = ConcurrencyControlService()
        self.lifecycle = RoomLifecycleService()
        self.players = PlayerManagementService()

    @contextmanager
    def room_operation(self, room_code: str):
        """Exclusive access to one room. All room mutations go through here."""
        with self.concurrency_control.room_operation(room_code):
            yield

    # Room Lifecycle Operations

    def create_room(self) -> Room:
        return self.lifecycle.create_room()

    def delete_room(self, room_code: str) -> bool:
        result = self.lifecycle.delete_room(room_code)
        if result:
            self.concurrency_control.cleanup_room_lock(room_code)
        return result

    def room_exists(self, room_code: str) -> bool:
        return self.lifecycle.room_exists(room_code)

    def get_room(self, room_code: str) -> Optional[Room]:
        return self.lifecycle.get_room(room_code)

    def require_room(self, room_code: str) -> Room:
        """
        Raises:
            NotFoundError: If the room does not exist
        """
        room = self.lifecycle.get_room(room_code)
        if room is None:
            raise NotFoundError(
                ErrorCode.ROOM_NOT_FOUND,
                f'Room {room_code} not found',
                {'room_code': room_code}
            )
        return room

    def get_all_rooms(self) -> List[Room]:
        return self.lifecycle.get_all_rooms()

    def get_room_count(self) -> int:
        return len(self.lifecycle.get_all_room_codes())

    # Player Operations (callers hold the room lock)

    def add_player(self, room: Room, player_name: str, connection_id: str) -> Tuple[Player, bool]:
        return self.players.add_player(room, player_name, connection_id)

    def mark_player_offline(self, room: Room, player: Player, reason: Optional[str] = None) -> None:
        self.players.mark_offline(room, player, reason)

    def mark_player_online(self, room: Room, player: Player) -> None:
        self.players.mark_online(room, player)

    def remove_player(self, room: Room, player_id: str) -> Optional[Player]:
        return self.players.remove_player(room, player_id)

    def clear(self):
        """Drop every room (useful for testing)."""
        for code in self.lifecycle.get_all_room_codes():
            self.concurrency_control.cleanup_room_lock(code)
        self.lifecycle.clear()
