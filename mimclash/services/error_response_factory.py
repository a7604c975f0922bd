"""
Error Response Factory for MimClash

Builds `error` event payloads and converts exceptions into them.
"""

import logging
import traceback
from typing import Dict, Optional, Tuple

from flask_socketio import emit

from mimclash.core.errors import ErrorCode, GameError

logger = logging.getLogger(__name__)


class ErrorResponseFactory:
    """Factory responsible for creating standardized error responses."""

    def create_error_response(self, code: ErrorCode, message: str, details: Optional[Dict] = None) -> Dict:
        """
        Args:
            code: Error code enum
            message: Human-readable error message
            details: Optional additional error details
        """
        return {
            "code": code.value,
            "message": message,
            "details": details or {}
        }

    def emit_error(self, code: ErrorCode, message: str, details: Optional[Dict] = None):
        """Emit an error to the requesting client only."""
        error_response = self.create_error_response(code, message, details)
        logger.warning(f"Emitting error: {code.value} - {message}")
        emit('error', error_response)

    def emit_game_error(self, error: GameError):
        self.emit_error(error.code, error.message, error.details)

    def handle_exception(self, e: Exception, context: str = "Unknown") -> Tuple[ErrorCode, str]:
        """
        Map an exception to an error code and message.

        Unexpected exceptions are logged with their traceback and reported
        as INTERNAL_ERROR.
        """
        if isinstance(e, GameError):
            return e.code, e.message

        logger.error(f"Unexpected exception in {context}: {str(e)}")
        logger.error(f"Exception traceback: {traceback.format_exc()}")
        return ErrorCode.INTERNAL_ERROR, "An internal error occurred"
