"""
Rate limiting service for preventing event flooding from a single client.
"""

import logging
import os
import threading
import time
from collections import defaultdict, deque
from functools import wraps
from typing import Optional

from flask import request
from flask_socketio import emit

from mimclash.core.errors import ErrorCode

logger = logging.getLogger(__name__)


class EventQueueManager:
    """Per-client sliding windows with temporary blocking."""

    def __init__(self, max_events_per_second: int = 10, max_events_per_minute: int = 100,
                 block_duration: int = 60):
        self.max_events_per_second = max_events_per_second
        self.max_events_per_minute = max_events_per_minute
        self.block_duration = block_duration
        self.client_rates = defaultdict(lambda: deque(maxlen=max_events_per_minute + 1))
        self.blocked_clients = {}
        self.lock = threading.RLock()

    @classmethod
    def from_config(cls, app_config) -> 'EventQueueManager':
        return cls(
            max_events_per_second=app_config.max_events_per_second,
            max_events_per_minute=app_config.max_events_per_minute,
            block_duration=app_config.rate_limit_block_seconds,
        )

    def _is_testing(self) -> bool:
        return os.environ.get('TESTING') == '1'

    def is_client_blocked(self, client_id: str) -> bool:
        with self.lock:
            if client_id in self.blocked_clients:
                if time.time() - self.blocked_clients[client_id] > self.block_duration:
                    del self.blocked_clients[client_id]
                    logger.info(f"Unblocked client {client_id}")
                    return False
                return True
            return False

    def block_client(self, client_id: str, reason: str = "Rate limit exceeded"):
        with self.lock:
            self.blocked_clients[client_id] = time.time()
            logger.warning(f"Blocked client {client_id}: {reason}")

    def can_process_event(self, client_id: str, event_type: str) -> bool:
        """Record an event and report whether the client is still within its limits."""
        if self._is_testing():
            return True

        with self.lock:
            if self.is_client_blocked(client_id):
                return False

            current_time = time.time()
            client_events = self.client_rates[client_id]
            client_events.append(current_time)

            recent_events = sum(1 for t in client_events if current_time - t <= 1)
            if recent_events > self.max_events_per_second:
                self.block_client(client_id, f"Too many events per second: {recent_events} ({event_type})")
                return False

            minute_events = sum(1 for t in client_events if current_time - t <= 60)
            if minute_events > self.max_events_per_minute:
                self.block_client(client_id, f"Too many events per minute: {minute_events} ({event_type})")
                return False

            return True

    def forget_client(self, client_id: str):
        with self.lock:
            self.client_rates.pop(client_id, None)


_event_queue_manager: Optional[EventQueueManager] = None


def set_event_queue_manager(manager: EventQueueManager):
    """Set the global event queue manager instance."""
    global _event_queue_manager
    _event_queue_manager = manager


def get_event_queue_manager() -> Optional[EventQueueManager]:
    return _event_queue_manager


def prevent_event_overflow(event_type: str = "generic"):
    """Decorator that rejects events from clients over their rate limit."""
    def decorator(func):
        @wraps(func)
        def wrapper(*args, **kwargs):
            if _event_queue_manager is None:
                raise RuntimeError("Event queue manager not initialized. Call set_event_queue_manager() first.")

            client_id = request.sid
            if not _event_queue_manager.can_process_event(client_id, event_type):
                logger.warning(f"Event {event_type} blocked for client {client_id}")
                emit('error', {
                    'code': ErrorCode.RATE_LIMITED.value,
                    'message': 'Too many requests. Please slow down.',
                    'details': {'retry_after': _event_queue_manager.block_duration}
                })
                return None

            return func(*args, **kwargs)

        return wrapper
    return decorator
