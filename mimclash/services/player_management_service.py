"""
Player Management Service for MimClash

Handles player admission (capacity, phase and duplicate-name rules), the late
join reset of finished rooms, presence flags and removal. Callers hold the
room's lock.
"""

import logging
from datetime import datetime
from typing import Optional, Tuple

from mimclash.config.game_config import get_game_config
from mimclash.core.errors import ErrorCode, StateConflictError
from mimclash.core.game_phases import GamePhase
from mimclash.core.models import Player, Room

logger = logging.getLogger(__name__)


class PlayerManagementService:
    """Manages player operations within rooms."""

    def __init__(self):
        self.game_config = get_game_config()

    def _validate_player_addition(self, room: Room, player_name: str) -> None:
        _, max_players = self.game_config.effective_player_bounds(room.settings)
        if len(room.players) >= max_players:
            raise StateConflictError(
                ErrorCode.ROOM_FULL,
                f'Room {room.code} is full',
                {'max_players': max_players}
            )

        if not room.phase.accepts_new_players:
            raise StateConflictError(
                ErrorCode.GAME_IN_PROGRESS,
                'A game is already in progress in this room',
                {'phase': room.phase.value}
            )

        if room.find_player_by_name(player_name) is not None:
            raise StateConflictError(
                ErrorCode.DUPLICATE_NAME,
                f"The name '{player_name}' is already taken in this room"
            )

    def add_player(self, room: Room, player_name: str, connection_id: str) -> Tuple[Player, bool]:
        """
        Admit a new player to a room.

        A finished room is reset to the lobby once the join is known to succeed.

        Returns:
            Tuple of (player, room_was_reset)

        Raises:
            StateConflictError: ROOM_FULL, GAME_IN_PROGRESS or DUPLICATE_NAME
        """
        self._validate_player_addition(room, player_name)

        was_reset = False
        if room.phase == GamePhase.FINISHED:
            room.reset_for_new_game()
            was_reset = True
            logger.info(f"Room {room.code} reset by late joiner {player_name}")

        player = Player(id=connection_id, name=player_name, room_code=room.code)
        room.players.append(player)
        room.touch()
        logger.info(f"Player {player_name} ({connection_id}) joined room {room.code}")
        return player, was_reset

    def mark_offline(self, room: Room, player: Player, reason: Optional[str] = None) -> None:
        player.online = False
        player.last_seen = datetime.now()
        player.disconnect_reason = reason
        room.touch()
        logger.info(f"Player {player.name} marked offline in room {room.code} (reason: {reason})")

    def mark_online(self, room: Room, player: Player) -> None:
        player.online = True
        player.last_seen = datetime.now()
        player.disconnect_reason = None
        room.touch()

    def remove_player(self, room: Room, player_id: str) -> Optional[Player]:
        """
        Remove a player and every per-round reference to them.

        While a round is open their submission is withdrawn too, and voters
        who picked it get their vote back. A vote the leaving player already
        cast stays with its submission.

        Returns:
            The removed player, or None if they were not in the room
        """
        player = room.find_player(player_id)
        if player is None:
            return None

        room.players.remove(player)
        if room.phase in (GamePhase.PLAYING, GamePhase.VOTING):
            released = room.drop_submission(player_id)
            if released:
                logger.info(f"Released {len(released)} votes cast for {player.name}'s submission in room {room.code}")
        room.voted_players.discard(player_id)
        room.ballots.pop(player_id, None)
        room.returning_to_lobby = [pid for pid in room.returning_to_lobby if pid != player_id]
        room.touch()
        logger.info(f"Player {player.name} ({player_id}) removed from room {room.code}")
        return player
