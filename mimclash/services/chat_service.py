"""
Chat Service - thin relay for in-room chat with a bounded history.
"""

import logging
from typing import Dict

from mimclash.core.models import ChatMessage, Player, Room

logger = logging.getLogger(__name__)


class ChatService:

    def __init__(self, broadcast_service):
        self.broadcast_service = broadcast_service

    def post_message(self, room: Room, player: Player, text: str) -> Dict[str, str]:
        """Append to the room's log (oldest messages fall off) and relay to the room."""
        message = ChatMessage(player_name=player.name, message=text)
        room.chat_log.append(message)
        room.touch()
        payload = message.to_dict()
        self.broadcast_service.broadcast_chat_message(room, payload)
        logger.debug(f"Chat in room {room.code} from {player.name}")
        return payload
