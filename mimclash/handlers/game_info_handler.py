"""
Game Info Handler

This module handles Socket.IO events that only read state: the deck status
of a room and the card catalog's categories.
"""

import logging

from mimclash.error_handler import with_error_handling
from mimclash.services.rate_limit_service import prevent_event_overflow
from .base_handler import BaseHandler

logger = logging.getLogger(__name__)


class GameInfoHandler(BaseHandler):
    """Handler for read-only game information requests."""

    @prevent_event_overflow('get-status-cards')
    @with_error_handling
    def handle_get_status_cards(self, data):
        """Send the room's deck state: remaining, used and current cards."""
        self.log_handler_start('handle_get_status_cards', data)
        data = self.validate_data_dict(data, ['room_code'])
        room_code = self.validation_service.validate_room_code(data['room_code'])

        with self.room_manager.room_operation(room_code):
            room = self.room_manager.require_room(room_code)
            self.emit_to_sender('status-cards', self.presenter.status_cards(room))

    @prevent_event_overflow('get-status-categories')
    @with_error_handling
    def handle_get_status_categories(self, data=None):
        """Send every category in the catalog with its cards."""
        self.log_handler_start('handle_get_status_categories', data)
        self.emit_to_sender('status-categories', {
            'categories': self.card_catalog.get_categories()
        })
