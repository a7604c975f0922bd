"""
Test Data Factories

Builders for rooms and players in a known state, so tests do not repeat the
join/start/submit choreography.
"""

from .room_factory import RoomFactory

__all__ = ['RoomFactory']
