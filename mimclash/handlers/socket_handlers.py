"""
Socket.IO event handlers for the MimClash game.

This module provides the registration function and the connect/disconnect
handlers. Every other event goes through the event router.
"""

import logging
import os

from flask import request
from flask_socketio import emit

from config_factory import ConfigurationFactory
from container import get_container
from mimclash.services.identity_service import IdentityHint
from mimclash.services.rate_limit_service import get_event_queue_manager
from .chat_handler import ChatHandler
from .game_action_handler import GameActionHandler
from .game_info_handler import GameInfoHandler
from .room_connection_handler import RoomConnectionHandler
from .socket_event_router import setup_router

logger = logging.getLogger(__name__)


def register_socket_handlers(socketio_instance):
    """Register all socket handlers with the SocketIO instance."""
    router = setup_router(socketio_instance)

    room_handler = RoomConnectionHandler()
    game_handler = GameActionHandler()
    info_handler = GameInfoHandler()
    chat_handler = ChatHandler()

    # Connection lifecycle events bypass the router
    socketio_instance.on_event('connect', handle_connect)
    socketio_instance.on_event('disconnect', handle_disconnect)

    router.register_route('create-room', room_handler.handle_create_room)
    router.register_route('join-room', room_handler.handle_join_room)
    router.register_route('get-room-info', room_handler.handle_get_room_info)
    router.register_route('leave-room', room_handler.handle_leave_room)
    router.register_route('return-to-home', room_handler.handle_return_to_home)

    router.register_route('start-game', game_handler.handle_start_game)
    router.register_route('submit', game_handler.handle_submit)
    router.register_route('vote', game_handler.handle_vote)
    router.register_route('update-settings', game_handler.handle_update_settings)
    router.register_route('return-to-lobby', game_handler.handle_return_to_lobby)

    router.register_route('get-status-cards', info_handler.handle_get_status_cards)
    router.register_route('get-status-categories', info_handler.handle_get_status_categories)

    router.register_route('send-chat', chat_handler.handle_send_chat)

    router.register_with_socketio()

    logger.info(f"Registered {len(router.get_registered_events())} socket event handlers")
    return router


def _origin_allowed(origin) -> bool:
    factory = ConfigurationFactory()
    if not factory.is_loaded() or not factory.get_config().is_production:
        return True

    allowed_origins_env = os.environ.get('SOCKETIO_CORS_ALLOWED_ORIGINS', '')
    if not allowed_origins_env:
        return True
    allowed = {o.strip() for o in allowed_origins_env.split(',') if o.strip()}
    return not origin or origin in allowed


def handle_connect(auth=None):
    """
    Accept a client connection.

    The `playerName` and `roomCode` query parameters are remembered as the
    connection's identity hint, so a client whose connection id changed can
    still be matched to its player on its first action.
    """
    origin = request.headers.get('Origin')
    if not _origin_allowed(origin):
        logger.warning(f'Rejecting connection from disallowed Origin: {origin}')
        return False

    player_name = (request.args.get('playerName') or '').strip() or None
    room_code = (request.args.get('roomCode') or '').strip().upper() or None
    hint = IdentityHint(player_name, room_code)
    if hint:
        get_container().get('IdentityService').remember_hint(request.sid, hint)

    logger.info(f'Client connected: {request.sid} from Origin: {origin}')
    emit('connected', {'status': 'Connected to MimClash server'})


def handle_disconnect(reason=None):
    """Start the offline grace period for the player behind this connection."""
    reason = str(reason) if reason is not None else None
    logger.info(f'Client disconnected: {request.sid} ({reason})')

    get_container().get('PresenceService').handle_disconnect(request.sid, reason)

    manager = get_event_queue_manager()
    if manager is not None:
        manager.forget_client(request.sid)
