"""
Phase Scheduler - cancellable per-room timers.

Each room has named timer slots. The `phase` slot drives the round state
machine and holds at most one live timer: scheduling into an occupied slot
cancels the previous timer. Auxiliary slots (offline grace per player, empty
room collection) follow the same rules independently.

Every timer carries a token. When a timer fires it takes the room lock and
only runs its callback if its token is still the one registered for the
slot, so a timer cancelled after its thread already woke up does nothing.
"""

import itertools
import logging
import threading
from typing import Callable, Dict, Optional, Tuple

logger = logging.getLogger(__name__)

PHASE_SLOT = 'phase'
ROOM_GC_SLOT = 'room_gc'


def offline_slot(player_name: str) -> str:
    return f'offline:{player_name}'


class TimerHandle:
    """A scheduled callback that can be cancelled."""

    def __init__(self, room_code: str, slot: str, token: int, delay: float, label: str, timer):
        self.room_code = room_code
        self.slot = slot
        self.token = token
        self.delay = delay
        self.label = label
        self._timer = timer

    def cancel(self):
        self._timer.cancel()

    def __repr__(self) -> str:
        return f"TimerHandle(room={self.room_code}, slot={self.slot}, label={self.label}, token={self.token})"


class PhaseScheduler:
    """Schedules and cancels room timers."""

    def __init__(self, room_manager, timer_factory: Callable = threading.Timer):
        """
        Args:
            room_manager: Provides `room_operation(code)` for serialized callbacks
            timer_factory: Callable with the `threading.Timer` signature
        """
        self.room_manager = room_manager
        self._timer_factory = timer_factory
        self._handles: Dict[Tuple[str, str], TimerHandle] = {}
        self._lock = threading.Lock()
        self._tokens = itertools.count(1)

    def schedule(self, room_code: str, delay: float, callback: Callable[[], None],
                 slot: str = PHASE_SLOT, label: str = '') -> TimerHandle:
        """Schedule `callback` after `delay` seconds, replacing any timer in the slot."""
        with self._lock:
            self._cancel_locked(room_code, slot)
            token = next(self._tokens)
            timer = self._timer_factory(delay, self._fire, args=(room_code, slot, token, callback))
            timer.daemon = True
            handle = TimerHandle(room_code, slot, token, delay, label or slot, timer)
            self._handles[(room_code, slot)] = handle

        timer.start()
        logger.debug(f"Scheduled {handle.label} for room {room_code} in {delay}s")
        return handle

    def cancel(self, room_code: str, slot: str = PHASE_SLOT) -> bool:
        """Cancel the timer in a slot. Returns True if one was pending."""
        with self._lock:
            return self._cancel_locked(room_code, slot)

    def cancel_room(self, room_code: str) -> int:
        """Cancel every timer of a room."""
        with self._lock:
            slots = [slot for (code, slot) in self._handles if code == room_code]
            for slot in slots:
                self._cancel_locked(room_code, slot)
        if slots:
            logger.debug(f"Cancelled {len(slots)} timers for room {room_code}")
        return len(slots)

    def get_pending(self, room_code: str, slot: str = PHASE_SLOT) -> Optional[TimerHandle]:
        with self._lock:
            return self._handles.get((room_code, slot))

    def has_pending(self, room_code: str, slot: str = PHASE_SLOT) -> bool:
        return self.get_pending(room_code, slot) is not None

    def pending_count(self) -> int:
        with self._lock:
            return len(self._handles)

    def _cancel_locked(self, room_code: str, slot: str) -> bool:
        handle = self._handles.pop((room_code, slot), None)
        if handle is None:
            return False
        handle.cancel()
        logger.debug(f"Cancelled {handle.label} for room {room_code}")
        return True

    def _fire(self, room_code: str, slot: str, token: int, callback: Callable[[], None]):
        with self.room_manager.room_operation(room_code):
            with self._lock:
                handle = self._handles.get((room_code, slot))
                if handle is None or handle.token != token:
                    logger.debug(f"Ignoring stale timer {slot} (token {token}) for room {room_code}")
                    return
                del self._handles[(room_code, slot)]

            try:
                callback()
            except Exception:
                logger.exception(f"Error in {handle.label} timer for room {room_code}")

    def shutdown(self):
        """Cancel everything (process exit)."""
        with self._lock:
            for handle in self._handles.values():
                handle.cancel()
            self._handles.clear()
