"""
Concurrency Control Service for MimClash

Per-room locking: every mutation of a room, whether it comes from a socket
handler or a timer callback, runs inside `room_operation(code)`.
"""

import logging
import threading
from contextlib import contextmanager
from typing import Dict

logger = logging.getLogger(__name__)


class ConcurrencyControlService:
    """Manages per-room re-entrant locks."""

    def __init__(self):
        self._room_locks: Dict[str, threading.RLock] = {}
        # Lock for managing room locks themselves
        self._locks_lock = threading.Lock()

    def get_room_lock(self, room_code: str) -> threading.RLock:
        """Get or create a lock for a specific room."""
        with self._locks_lock:
            if room_code not in self._room_locks:
                self._room_locks[room_code] = threading.RLock()
            return self._room_locks[room_code]

    def cleanup_room_lock(self, room_code: str):
        """Clean up lock for a deleted room."""
        with self._locks_lock:
            self._room_locks.pop(room_code, None)

    @contextmanager
    def room_operation(self, room_code: str):
        """Context manager for serialized room operations."""
        room_lock = self.get_room_lock(room_code)
        with room_lock:
            yield
