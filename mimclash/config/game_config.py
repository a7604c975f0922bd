"""
Game Configuration Module

Provides centralized access to game-specific configuration values: room
defaults, settings bounds, phase timing and limits.
"""

import logging
from typing import Dict, Tuple

from mimclash.core.models import ALL_CATEGORIES, GameSettings

logger = logging.getLogger(__name__)

# Inclusive bounds for host-adjustable settings
SETTINGS_BOUNDS: Dict[str, Tuple[int, int]] = {
    'max_rounds': (3, 10),
    'submission_minutes': (1, 5),
    'voting_seconds': (30, 180),
    'min_players': (2, 6),
    'max_players': (4, 8),
}


class GameConfig:
    """Centralized game configuration with built-in fallbacks."""

    _FALLBACKS = {
        'default_max_rounds': 5,
        'default_submission_minutes': 3,
        'default_voting_seconds': 60,
        'default_min_players': 3,
        'default_max_players': 8,
        'hard_min_players': 2,
        'hard_max_players': 8,
        'submission_settle_seconds': 0.5,
        'vote_settle_seconds': 1.0,
        'results_display_seconds': 10,
        'host_handoff_seconds': 30,
        'offline_grace_seconds': 30,
        'transport_grace_seconds': 60,
        'empty_room_ttl_seconds': 300,
        'heartbeat_seconds': 30,
        'chat_history_limit': 100,
        'max_chat_length': 200,
        'max_player_name_length': 20,
        'max_submission_bytes': 10 * 1024 * 1024,
        'room_code_length': 6,
        'cards_file': '',
        'templates_dir': 'static/templates',
    }

    def __init__(self, app_config=None):
        """
        Initialize game configuration.

        Args:
            app_config: Application configuration instance from config_factory
        """
        self._config = app_config
        if app_config is None:
            try:
                from config_factory import get_config
                self._config = get_config()
            except Exception as e:
                logger.warning(f"Could not load configuration: {e}, using defaults")
                self._config = None

    def _get(self, name: str):
        if self._config is None:
            return self._FALLBACKS[name]
        return getattr(self._config, name)

    def __getattr__(self, name: str):
        if name in self._FALLBACKS:
            return self._get(name)
        raise AttributeError(name)

    def default_settings(self) -> GameSettings:
        """Settings a freshly created room starts with."""
        return GameSettings(
            max_rounds=self._get('default_max_rounds'),
            submission_minutes=self._get('default_submission_minutes'),
            voting_seconds=self._get('default_voting_seconds'),
            min_players=self._get('default_min_players'),
            max_players=self._get('default_max_players'),
            enabled_categories=list(ALL_CATEGORIES),
        )

    def effective_player_bounds(self, settings: GameSettings) -> Tuple[int, int]:
        """(min, max) players for a room, with disabled bounds replaced by hard limits."""
        minimum = settings.min_players if settings.min_players_enabled else self._get('hard_min_players')
        maximum = settings.max_players if settings.max_players_enabled else self._get('hard_max_players')
        return minimum, maximum


_game_config_instance = None


def get_game_config(app_config=None) -> GameConfig:
    """
    Get or create the global game configuration instance.

    Args:
        app_config: Optional app config to use

    Returns:
        GameConfig instance
    """
    global _game_config_instance

    if _game_config_instance is None or app_config is not None:
        _game_config_instance = GameConfig(app_config)

    return _game_config_instance


def reset_game_config():
    """Reset the global game configuration instance (mainly for testing)."""
    global _game_config_instance
    _game_config_instance = None
