"""
Heartbeat Service Tests

Tests the periodic room heartbeat: which rooms get one, what it carries, and
starting and stopping the background worker.
"""

import time

import pytest
from unittest.mock import Mock

from mimclash.services.heartbeat_service import HeartbeatService
from tests.factories import RoomFactory
from tests.helpers.socket_mocks import emitted_events


class TestHeartbeatService:
    """Test heartbeat broadcasting"""

    @pytest.fixture(autouse=True)
    def setup(self, container, mock_socketio):
        self.socketio = mock_socketio
        self.factory = RoomFactory(container)
        self.room_manager = container.get('RoomManager')
        self.broadcast_service = container.get('BroadcastService')
        self.service = container.get('HeartbeatService')

    def teardown_method(self):
        self.service.stop()

    def test_interval_comes_from_configuration(self):
        assert self.service.interval == 30

    def test_beat_reaches_occupied_rooms_only(self):
        """Every room with players gets one heartbeat, empty rooms none"""
        room = self.factory.create_room(['Alice', 'Bob', 'Carol'])
        empty = self.room_manager.create_room()
        self.room_manager.mark_player_offline(room, room.find_player_by_name('Carol'))

        assert self.service.beat() == 1

        payload = emitted_events(self.socketio, 'heartbeat', to=room.code)[-1][1]
        assert payload['players_online'] == 2
        assert payload['total_players'] == 3
        assert emitted_events(self.socketio, 'heartbeat', to=empty.code) == []

    def test_disabled_interval_does_not_start(self):
        """An interval of zero turns the heartbeat off"""
        service = HeartbeatService(self.room_manager, self.broadcast_service, interval=0)

        assert service.start() is False
        assert not service.is_running

    def test_start_and_stop(self):
        """The worker runs until stopped and only starts once"""
        service = HeartbeatService(self.room_manager, self.broadcast_service, interval=60)
        try:
            assert service.start() is True
            assert service.is_running
            assert service.start() is False
        finally:
            service.stop()

        assert not service.is_running

    def test_worker_survives_broadcast_errors(self):
        """A failing beat is logged and the worker keeps going"""
        room_manager = Mock()
        room_manager.get_all_rooms.side_effect = RuntimeError('boom')
        service = HeartbeatService(room_manager, self.broadcast_service, interval=0.01)
        try:
            service.start()
            for _ in range(200):
                if room_manager.get_all_rooms.call_count >= 2:
                    break
                time.sleep(0.01)

            assert room_manager.get_all_rooms.call_count >= 2
            assert service.is_running
        finally:
            service.stop()
