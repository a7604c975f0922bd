"""
Core error definitions for MimClash

Provides error codes and the exception hierarchy raised by services and
translated into `error` events by the socket handlers.
"""

from enum import Enum
from typing import Dict, Optional


class ErrorCode(Enum):
    """Standardized error codes for the application."""

    # Payload and input errors
    INVALID_DATA = "INVALID_DATA"
    MISSING_ROOM_CODE = "MISSING_ROOM_CODE"
    INVALID_ROOM_CODE = "INVALID_ROOM_CODE"
    MISSING_PLAYER_NAME = "MISSING_PLAYER_NAME"
    PLAYER_NAME_TOO_LONG = "PLAYER_NAME_TOO_LONG"
    INVALID_SETTINGS = "INVALID_SETTINGS"
    INVALID_SUBMISSION = "INVALID_SUBMISSION"
    PAYLOAD_TOO_LARGE = "PAYLOAD_TOO_LARGE"
    EMPTY_MESSAGE = "EMPTY_MESSAGE"
    MESSAGE_TOO_LONG = "MESSAGE_TOO_LONG"

    # Room management errors
    ROOM_NOT_FOUND = "ROOM_NOT_FOUND"
    ROOM_FULL = "ROOM_FULL"
    GAME_IN_PROGRESS = "GAME_IN_PROGRESS"
    DUPLICATE_NAME = "DUPLICATE_NAME"
    ALREADY_IN_ROOM = "ALREADY_IN_ROOM"
    PLAYER_NOT_FOUND = "PLAYER_NOT_FOUND"

    # Game flow errors
    NOT_HOST = "NOT_HOST"
    INVALID_PHASE = "INVALID_PHASE"
    NOT_ENOUGH_PLAYERS = "NOT_ENOUGH_PLAYERS"
    TOO_MANY_PLAYERS = "TOO_MANY_PLAYERS"
    NO_CARDS_AVAILABLE = "NO_CARDS_AVAILABLE"
    ALREADY_SUBMITTED = "ALREADY_SUBMITTED"
    ALREADY_VOTED = "ALREADY_VOTED"
    INVALID_TARGET = "INVALID_TARGET"

    # System errors
    INTERNAL_ERROR = "INTERNAL_ERROR"
    RATE_LIMITED = "RATE_LIMITED"


class GameError(Exception):
    """Base class for errors reported back to the acting client."""

    def __init__(self, code: ErrorCode, message: str, details: Optional[Dict] = None):
        self.code = code
        self.message = message
        self.details = details or {}
        super().__init__(message)


class ValidationError(GameError):
    """Malformed or out-of-range input. Nothing is mutated."""


class StateConflictError(GameError):
    """Action not allowed in the room's current state (phase, host, duplicates)."""


class NotFoundError(GameError):
    """Unknown room or unresolvable player identity."""
