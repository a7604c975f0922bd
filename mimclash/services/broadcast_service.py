"""
Broadcast Service - Centralized Socket.IO message broadcasting.

This service handles all server-initiated emissions:
- Room-wide broadcasts
- Targeted per-player messages (personalized voting sets)
- Phase transition notifications
"""

import logging
from typing import Any, Dict, Iterable, List, Optional

from mimclash.core.models import Player, Room, Submission

logger = logging.getLogger(__name__)


class BroadcastService:
    """Centralized service for all Socket.IO broadcasting operations."""

    def __init__(self, socketio, room_state_presenter):
        """
        Args:
            socketio: Flask-SocketIO instance for emitting messages
            room_state_presenter: Builds the payloads
        """
        self.socketio = socketio
        self.presenter = room_state_presenter

    # Core emission methods

    def emit_to_room(self, event: str, data: Dict[str, Any], room_code: str):
        """Emit an event to all players in a room."""
        try:
            self.socketio.emit(event, data, to=room_code)
            logger.debug(f'Emitted {event} to room {room_code}')
        except Exception as e:
            logger.error(f'Error emitting {event} to room {room_code}: {e}')

    def emit_to_player(self, event: str, data: Dict[str, Any], connection_id: str):
        """Emit an event to a specific player."""
        try:
            self.socketio.emit(event, data, to=connection_id)
            logger.debug(f'Emitted {event} to player {connection_id}')
        except Exception as e:
            logger.error(f'Error emitting {event} to player {connection_id}: {e}')

    # Membership

    def broadcast_player_joined(self, room: Room, player: Player):
        self.emit_to_room('player-joined', {
            'player': self.presenter.player_payload(room, player),
            'players': self.presenter.player_list(room),
        }, room.code)

    def broadcast_player_left(self, room: Room, player: Player, reason: str):
        self.emit_to_room('player-left', {
            'player_id': player.id,
            'player_name': player.name,
            'reason': reason,
            'players': self.presenter.player_list(room),
        }, room.code)

    def broadcast_player_status(self, room: Room, player: Player):
        self.emit_to_room('player-status-updated', {
            'player': self.presenter.player_payload(room, player),
            'players': self.presenter.player_list(room),
        }, room.code)

    def broadcast_heartbeat(self, room: Room):
        self.emit_to_room('heartbeat', self.presenter.heartbeat(room), room.code)

    def broadcast_room_reset(self, room: Room):
        self.emit_to_room('room-reset', {
            'message': 'A new game is starting in this room',
            'phase': room.phase.value,
            'players': self.presenter.player_list(room),
            'settings': room.settings.to_dict(),
        }, room.code)

    def broadcast_settings_updated(self, room: Room):
        self.emit_to_room('settings-updated', {'settings': room.settings.to_dict()}, room.code)

    # Round flow

    def broadcast_round_started(self, room: Room):
        self.emit_to_room('round-started', self.presenter.round_started(room), room.code)

    def broadcast_submission_progress(self, room: Room):
        self.emit_to_room('submission-progress', {
            'submission_count': len(room.submissions),
            'total_players': len(room.players),
        }, room.code)

    def send_voting_sets(self, room: Room, voting_sets: Dict[str, List[Submission]],
                         player_ids: Optional[Iterable[str]] = None):
        """Each player (or only `player_ids`) receives the submissions they may vote for."""
        recipients = None if player_ids is None else set(player_ids)
        for player in room.players:
            if recipients is not None and player.id not in recipients:
                continue
            payload = self.presenter.voting_started(room, voting_sets.get(player.id, []))
            self.emit_to_player('voting-started', payload, player.id)

    def broadcast_vote_progress(self, room: Room, expected_votes: int):
        self.emit_to_room('vote-progress', {
            'votes_cast': len(room.voted_players),
            'expected_votes': expected_votes,
        }, room.code)

    def broadcast_voting_ended_early(self, room: Room):
        self.emit_to_room('voting-ended-early', {
            'message': 'Everyone has voted, calculating results',
        }, room.code)

    def broadcast_round_results(self, room: Room, round_points: Dict[str, int]):
        self.emit_to_room('round-results', self.presenter.round_results(room, round_points), room.code)

    def broadcast_game_finished(self, room: Room, leaderboard: List[Dict[str, Any]]):
        self.emit_to_room('game-finished', {
            'final_scores': leaderboard,
            'rounds_played': room.current_round,
        }, room.code)

    # After the game

    def broadcast_player_returning(self, room: Room, player: Player):
        self.emit_to_room('player-returning-to-lobby', {
            'player_id': player.id,
            'player_name': player.name,
            'total_returning': len(room.returning_to_lobby),
            'total_players': len(room.players),
        }, room.code)

    def broadcast_returned_to_lobby(self, room: Room):
        self.emit_to_room('returned-to-lobby', {
            'message': 'Everyone is back in the lobby',
            'players': self.presenter.player_list(room),
            'settings': room.settings.to_dict(),
        }, room.code)

    def broadcast_host_transferred(self, room: Room, new_host: Player, old_host: Optional[Player]):
        self.emit_to_room('host-transferred', {
            'new_host': self.presenter.player_payload(room, new_host),
            'old_host': old_host.name if old_host else None,
            'reason': 'host_did_not_return',
            'players': self.presenter.player_list(room),
        }, room.code)

    # Chat

    def broadcast_chat_message(self, room: Room, message: Dict[str, str]):
        self.emit_to_room('chat-message', message, room.code)
