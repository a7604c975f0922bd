"""
Base Handler Classes

Base classes for Socket.IO handlers: service access through the container,
acting-player resolution, payload validation helpers and Socket.IO room
membership.
"""

import logging
from contextlib import contextmanager
from typing import Any, Dict, Iterator, Optional, Tuple

from flask import request
from flask_socketio import emit, join_room, leave_room

from container import get_container
from mimclash.core.errors import ErrorCode, NotFoundError, ValidationError
from mimclash.core.models import Player, Room
from mimclash.services.identity_service import IdentityHint

logger = logging.getLogger(__name__)


class BaseHandler:
    """
    Base class for all Socket.IO handlers.

    Services are looked up in the global container on every access, so a
    reconfigured container is picked up without re-registering handlers.
    """

    def __init__(self):
        self._container = get_container()

    @property
    def room_manager(self):
        return self._container.get('RoomManager')

    @property
    def identity_service(self):
        return self._container.get('IdentityService')

    @property
    def game_flow_service(self):
        return self._container.get('GameFlowService')

    @property
    def presence_service(self):
        return self._container.get('PresenceService')

    @property
    def broadcast_service(self):
        return self._container.get('BroadcastService')

    @property
    def presenter(self):
        return self._container.get('RoomStatePresenter')

    @property
    def validation_service(self):
        return self._container.get('ValidationService')

    @property
    def card_catalog(self):
        return self._container.get('CardCatalog')

    @property
    def chat_service(self):
        return self._container.get('ChatService')

    @property
    def connection_id(self) -> str:
        return request.sid  # type: ignore[attr-defined]

    def validate_data_dict(self, data: Any, required_fields: Optional[list] = None) -> Dict[str, Any]:
        """
        Validate that data is a dictionary and contains required fields.

        Raises:
            ValidationError: If validation fails
        """
        if not isinstance(data, dict):
            raise ValidationError(
                ErrorCode.INVALID_DATA,
                "Invalid data format - expected dictionary"
            )

        for field in required_fields or []:
            if field not in data:
                if field == 'room_code':
                    raise ValidationError(ErrorCode.MISSING_ROOM_CODE, "Room code is required")
                elif field == 'player_name':
                    raise ValidationError(ErrorCode.MISSING_PLAYER_NAME, "Player name is required")
                else:
                    raise ValidationError(ErrorCode.INVALID_DATA, f"Missing required field: {field}")

        return data

    def identity_hint(self, data: Any = None) -> IdentityHint:
        """Identity claimed by the payload, if any (name and/or room code)."""
        if not isinstance(data, dict):
            return IdentityHint()
        room_code = self.validation_service.optional_room_code(data)
        name = data.get('player_name')
        return IdentityHint(name.strip() if isinstance(name, str) else None, room_code)

    @contextmanager
    def player_action(self, data: Any = None) -> Iterator[Tuple[Room, Player]]:
        """
        Resolve the acting player and hold their room's lock.

        Raises:
            NotFoundError: PLAYER_NOT_FOUND if the player cannot be resolved,
                or was removed before the lock was taken
        """
        room, player = self.identity_service.resolve(self.connection_id, self.identity_hint(data))
        with self.room_manager.room_operation(room.code):
            if self.room_manager.get_room(room.code) is not room or room.find_player(player.id) is not player:
                raise NotFoundError(
                    ErrorCode.PLAYER_NOT_FOUND,
                    'You are no longer in this room'
                )
            # A connection matched by the identity scan is not in the broadcast room yet
            join_room(room.code)
            yield room, player

    def emit_to_sender(self, event_name: str, data: Dict[str, Any]) -> None:
        emit(event_name, data)

    def log_handler_start(self, handler_name: str, data: Any = None) -> None:
        logger.info(f'{handler_name} called by client: {self.connection_id}')
        if data:
            logger.debug(f'{handler_name} data: {str(data)[:200]}')


class RoomHandlerMixin:
    """Socket.IO room membership for broadcasting."""

    def join_socketio_room(self, room_code: str) -> None:
        join_room(room_code)
        logger.debug(f'Client {request.sid} joined Socket.IO room: {room_code}')  # type: ignore[attr-defined]

    def leave_socketio_room(self, room_code: str) -> None:
        leave_room(room_code)
        logger.debug(f'Client {request.sid} left Socket.IO room: {room_code}')  # type: ignore[attr-defined]


class BaseRoomHandler(BaseHandler, RoomHandlerMixin):
    """Base class for handlers that deal with room membership."""
    pass


class BaseGameHandler(BaseHandler):
    """Base class for handlers that deal with game actions."""
    pass
