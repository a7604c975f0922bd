"""
Game phase definitions for MimClash.
"""

from enum import Enum


class GamePhase(Enum):
    """Round state machine phases."""
    WAITING = "waiting"
    PLAYING = "playing"
    VOTING = "voting"
    RESULTS = "results"
    FINISHED = "finished"

    @property
    def accepts_new_players(self) -> bool:
        return self in (GamePhase.WAITING, GamePhase.FINISHED)
