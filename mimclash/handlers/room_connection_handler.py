"""
Room Connection Handler

Socket.IO events for room membership: creating and joining rooms,
reconnecting through get-room-info, and leaving.
"""

import logging

from mimclash.core.errors import ErrorCode, StateConflictError
from mimclash.error_handler import with_error_handling
from mimclash.services.rate_limit_service import prevent_event_overflow
from .base_handler import BaseRoomHandler

logger = logging.getLogger(__name__)


class RoomConnectionHandler(BaseRoomHandler):
    """Handler for room membership operations."""

    def _ensure_not_in_other_room(self, room_code: str = None):
        identity = self.identity_service.get_identity(self.connection_id)
        if identity is not None and identity.room_code != room_code:
            raise StateConflictError(
                ErrorCode.ALREADY_IN_ROOM,
                f'You are already in room {identity.room_code}. Leave it first.',
                {'room_code': identity.room_code}
            )

    @prevent_event_overflow('create-room')
    @with_error_handling
    def handle_create_room(self, data):
        """
        Create a room and join it as host.

        Expected data: {'player_name': 'Alice'} or the bare name string.
        """
        self.log_handler_start('handle_create_room', data)
        raw_name = data if isinstance(data, str) else self.validate_data_dict(data, ['player_name'])['player_name']
        player_name = self.validation_service.validate_player_name(raw_name)
        self._ensure_not_in_other_room()

        room = self.room_manager.create_room()
        with self.room_manager.room_operation(room.code):
            player, _ = self.room_manager.add_player(room, player_name, self.connection_id)
            self.identity_service.bind(self.connection_id, player)
            self.join_socketio_room(room.code)

            self.emit_to_sender('room-created', {
                'room_code': room.code,
                'player': self.presenter.player_payload(room, player),
                'players': self.presenter.player_list(room),
                'settings': room.settings.to_dict(),
            })
        logger.info(f'{player_name} created room {room.code}')

    @prevent_event_overflow('join-room')
    @with_error_handling
    def handle_join_room(self, data):
        """
        Join an existing room.

        Expected data: {'room_code': 'ABC123', 'player_name': 'Bob'}

        Joining under the name of a player who is offline resumes that
        player (same score) instead of creating a new one.
        """
        self.log_handler_start('handle_join_room', data)
        data = self.validate_data_dict(data, ['room_code', 'player_name'])
        room_code = self.validation_service.validate_room_code(data['room_code'])
        player_name = self.validation_service.validate_player_name(data['player_name'])
        self._ensure_not_in_other_room(room_code)

        with self.room_manager.room_operation(room_code):
            room = self.room_manager.require_room(room_code)

            existing = room.find_player_by_name(player_name)
            if existing is not None and (not existing.online or existing.id == self.connection_id):
                self.identity_service.rebind(room, existing, self.connection_id)
                player, was_reset, reconnected = existing, False, True
            else:
                player, was_reset = self.room_manager.add_player(room, player_name, self.connection_id)
                reconnected = False
                self.identity_service.bind(self.connection_id, player)
                self.presence_service.cancel_room_collection(room.code)

            self.join_socketio_room(room.code)

            snapshot = self.presenter.room_snapshot(room, player.id)
            snapshot['player'] = self.presenter.player_payload(room, player)
            snapshot['reconnected'] = reconnected
            self.emit_to_sender('room-joined', snapshot)

            if was_reset:
                self.broadcast_service.broadcast_room_reset(room)
            if not reconnected:
                self.broadcast_service.broadcast_player_joined(room, player)

        logger.info(f'{player_name} {"rejoined" if reconnected else "joined"} room {room_code}')

    @prevent_event_overflow('get-room-info')
    @with_error_handling
    def handle_get_room_info(self, data):
        """
        Send the full room state to the caller, reconciling their identity.

        Expected data: {'room_code': 'ABC123', 'player_info': {'name': 'Bob'}}

        A caller whose connection is unknown but whose name matches a player
        in the room is rebound to that player. An unknown name joins the room
        through the regular admission rules.
        """
        self.log_handler_start('handle_get_room_info', data)
        data = self.validate_data_dict(data, ['room_code'])
        room_code = self.validation_service.validate_room_code(data['room_code'])
        player_info = data.get('player_info') or {}
        hinted_name = player_info.get('name') if isinstance(player_info, dict) else None

        with self.room_manager.room_operation(room_code):
            room = self.room_manager.require_room(room_code)
            player = room.find_player(self.connection_id)

            if player is None and hinted_name:
                self._ensure_not_in_other_room(room_code)
                player_name = self.validation_service.validate_player_name(hinted_name)
                player = room.find_player_by_name(player_name)
                if player is not None:
                    self.identity_service.rebind(room, player, self.connection_id)
                else:
                    player, was_reset = self.room_manager.add_player(room, player_name, self.connection_id)
                    self.identity_service.bind(self.connection_id, player)
                    self.presence_service.cancel_room_collection(room.code)
                    if was_reset:
                        self.broadcast_service.broadcast_room_reset(room)
                    self.broadcast_service.broadcast_player_joined(room, player)

            if player is not None:
                self.join_socketio_room(room.code)

            self.emit_to_sender('room-info', self.presenter.room_snapshot(
                room, player.id if player else None
            ))

    def _leave(self, data, reason: str):
        with self.player_action(data) as (room, player):
            self.presence_service.leave(room, player, reason)
            self.leave_socketio_room(room.code)
            self.emit_to_sender('room-left', {'room_code': room.code, 'reason': reason})
            logger.info(f'{player.name} left room {room.code} ({reason})')

    @prevent_event_overflow('leave-room')
    @with_error_handling
    def handle_leave_room(self, data=None):
        """Leave the current room for good."""
        self.log_handler_start('handle_leave_room', data)
        self._leave(data, 'left')

    @prevent_event_overflow('return-to-home')
    @with_error_handling
    def handle_return_to_home(self, data=None):
        """Leave the room from the final results screen."""
        self.log_handler_start('handle_return_to_home', data)
        self._leave(data, 'returned_home')


