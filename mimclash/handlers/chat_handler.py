"""
Chat Handler

Relays in-room chat messages.
"""

import logging

from mimclash.error_handler import with_error_handling
from mimclash.services.rate_limit_service import prevent_event_overflow
from .base_handler import BaseHandler

logger = logging.getLogger(__name__)


class ChatHandler(BaseHandler):

    @prevent_event_overflow('send-chat')
    @with_error_handling
    def handle_send_chat(self, data):
        """
        Post a chat message to the sender's room.

        Expected data format:
        {
            'message': 'hello'
        }
        """
        self.log_handler_start('handle_send_chat', data)
        data = self.validate_data_dict(data)
        text = self.validation_service.validate_chat_message(data.get('message'))

        with self.player_action(data) as (room, player):
            self.chat_service.post_message(room, player, text)
