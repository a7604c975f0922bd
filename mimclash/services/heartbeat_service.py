"""
Heartbeat Service - periodic liveness broadcast.

Every `heartbeat_seconds` each room with players receives a `heartbeat`
event carrying how many of its players are online, so clients can spot a
stale roster without polling.
"""

import logging
import threading
from typing import Optional

from mimclash.config.game_config import get_game_config

logger = logging.getLogger(__name__)


class HeartbeatService:
    """Background worker broadcasting room heartbeats."""

    def __init__(self, room_manager, broadcast_service, interval: Optional[float] = None):
        self.room_manager = room_manager
        self.broadcast_service = broadcast_service
        self.interval = interval if interval is not None else get_game_config().heartbeat_seconds
        self.shutdown_event = threading.Event()
        self._thread: Optional[threading.Thread] = None

    @property
    def is_running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def beat(self) -> int:
        """Send one heartbeat to every occupied room. Returns how many rooms got one."""
        count = 0
        for room in self.room_manager.get_all_rooms():
            with self.room_manager.room_operation(room.code):
                if room.is_empty:
                    continue
                self.broadcast_service.broadcast_heartbeat(room)
            count += 1
        return count

    def start(self) -> bool:
        """Start the worker. Returns False if disabled or already running."""
        if self.interval <= 0 or self.is_running:
            return False

        def _heartbeat_worker():
            while not self.shutdown_event.wait(self.interval):
                try:
                    self.beat()
                except Exception as e:
                    logger.error(f'Heartbeat error: {e}')

        self.shutdown_event.clear()
        self._thread = threading.Thread(target=_heartbeat_worker, name='RoomHeartbeat')
        self._thread.daemon = True
        self._thread.start()
        logger.info(f'Room heartbeat every {self.interval}s')
        return True

    def stop(self):
        self.shutdown_event.set()
        if self._thread is not None:
            self._thread.join(timeout=1)
            self._thread = None
