"""
Game Action Handler

This module handles Socket.IO events related to game actions: starting the
game, submitting memes, voting, changing settings and returning to the lobby.
"""

import logging

from mimclash.core.errors import ErrorCode, ValidationError
from mimclash.error_handler import with_error_handling
from mimclash.services.rate_limit_service import prevent_event_overflow
from .base_handler import BaseGameHandler

logger = logging.getLogger(__name__)


class GameActionHandler(BaseGameHandler):
    """Handler for in-game player actions."""

    @prevent_event_overflow('start-game')
    @with_error_handling
    def handle_start_game(self, data=None):
        """Host starts the game. Only valid in the lobby."""
        self.log_handler_start('handle_start_game', data)
        with self.player_action(data) as (room, player):
            self.game_flow_service.start_game(room, player)

    @prevent_event_overflow('submit')
    @with_error_handling
    def handle_submit(self, data):
        """
        Handle a meme submission during the playing phase.

        Expected data format:
        {
            'image_data': 'data:image/png;base64,...'
        }
        or the legacy text form:
        {
            'top_text': '...', 'bottom_text': '...', 'template': 'drake.jpg'
        }
        """
        self.log_handler_start('handle_submit')
        payload = self.validation_service.validate_submission(data)

        with self.player_action(data) as (room, player):
            self.game_flow_service.submit(room, player, payload)
            self.emit_to_sender('submission-accepted', {
                'submission_count': len(room.submissions),
                'total_players': len(room.players),
            })

    @prevent_event_overflow('vote')
    @with_error_handling
    def handle_vote(self, data):
        """
        Handle a vote during the voting phase.

        Expected data format:
        {
            'submission_id': '<id from voting-started>'
        }
        """
        self.log_handler_start('handle_vote', data)
        data = self.validate_data_dict(data, ['submission_id'])
        submission_id = data['submission_id']
        if not isinstance(submission_id, str) or not submission_id:
            raise ValidationError(ErrorCode.INVALID_DATA, 'submission_id must be a non-empty string')

        with self.player_action(data) as (room, player):
            self.game_flow_service.cast_vote(room, player, submission_id)
            self.emit_to_sender('vote-accepted', {'submission_id': submission_id})

    @prevent_event_overflow('update-settings')
    @with_error_handling
    def handle_update_settings(self, data):
        """
        Host changes lobby settings.

        Expected data format:
        {
            'settings': {'max_rounds': 5, 'enabled_categories': ['work', ...]}
        }
        """
        self.log_handler_start('handle_update_settings', data)
        data = self.validate_data_dict(data, ['settings'])
        changes = self.validation_service.validate_settings_update(
            data['settings'], self.card_catalog.category_keys()
        )

        with self.player_action(data) as (room, player):
            self.game_flow_service.update_settings(room, player, changes)

    @prevent_event_overflow('return-to-lobby')
    @with_error_handling
    def handle_return_to_lobby(self, data=None):
        """Player chooses to stay in the room for another game."""
        self.log_handler_start('handle_return_to_lobby', data)
        with self.player_action(data) as (room, player):
            self.game_flow_service.return_to_lobby(room, player)
