"""
Room Lifecycle Service for MimClash

Handles room creation with unique short codes, lookup and deletion.
"""

import logging
import random
import string
import threading
from collections import deque
from typing import Dict, List, Optional

from mimclash.config.game_config import get_game_config
from mimclash.core.models import Room

logger = logging.getLogger(__name__)

ROOM_CODE_ALPHABET = string.ascii_uppercase + string.digits


class RoomLifecycleService:
    """Manages room creation, deletion, and lookup."""

    def __init__(self, rng: Optional[random.Random] = None):
        self._rooms: Dict[str, Room] = {}
        self._rooms_lock = threading.RLock()
        self._rng = rng or random.SystemRandom()
        self.game_config = get_game_config()

    def _generate_code(self) -> str:
        length = self.game_config.room_code_length
        return ''.join(self._rng.choice(ROOM_CODE_ALPHABET) for _ in range(length))

    def create_room(self) -> Room:
        """
        Create a new room under a freshly generated code.

        Returns:
            The new Room with default settings
        """
        with self._rooms_lock:
            code = self._generate_code()
            while code in self._rooms:
                code = self._generate_code()

            room = Room(
                code=code,
                settings=self.game_config.default_settings(),
                chat_log=deque(maxlen=self.game_config.chat_history_limit),
            )
            self._rooms[code] = room
            logger.info(f"Created room {code}")
            return room

    def delete_room(self, room_code: str) -> bool:
        """
        Delete a room.

        Returns:
            True if room was deleted, False if room didn't exist
        """
        with self._rooms_lock:
            if room_code in self._rooms:
                del self._rooms[room_code]
                logger.info(f"Deleted room {room_code}")
                return True
            return False

    def room_exists(self, room_code: str) -> bool:
        return room_code in self._rooms

    def get_room(self, room_code: str) -> Optional[Room]:
        return self._rooms.get(room_code)

    def get_all_rooms(self) -> List[Room]:
        """Snapshot of all rooms, safe to iterate while rooms come and go."""
        with self._rooms_lock:
            return list(self._rooms.values())

    def get_all_room_codes(self) -> List[str]:
        with self._rooms_lock:
            return list(self._rooms.keys())

    def clear(self):
        with self._rooms_lock:
            self._rooms.clear()
