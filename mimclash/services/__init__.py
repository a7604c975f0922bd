"""
Services package for MimClash

Each service owns one concern of the game; the container wires them together.
"""

from .room_lifecycle_service import RoomLifecycleService
from .player_management_service import PlayerManagementService
from .concurrency_control_service import ConcurrencyControlService
from .scoring_service import ScoringService
from .card_deck_service import CardDeckService
from .phase_scheduler import PhaseScheduler
from .identity_service import IdentityService
from .game_flow_service import GameFlowService
from .presence_service import PresenceService

__all__ = [
    'RoomLifecycleService',
    'PlayerManagementService',
    'ConcurrencyControlService',
    'ScoringService',
    'CardDeckService',
    'PhaseScheduler',
    'IdentityService',
    'GameFlowService',
    'PresenceService'
]
