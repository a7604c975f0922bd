"""
Error handling decorator for MimClash socket handlers.
"""

import logging
from functools import wraps

from mimclash.core.errors import GameError
from mimclash.services.error_response_factory import ErrorResponseFactory

logger = logging.getLogger(__name__)


def with_error_handling(func):
    """
    Decorator for Socket.IO event handlers to provide consistent error handling.

    GameError subclasses become an `error` event for the sender; anything else
    is logged and reported as INTERNAL_ERROR.
    """
    @wraps(func)
    def wrapper(*args, **kwargs):
        try:
            return func(*args, **kwargs)
        except GameError as e:
            logger.info(f"{func.__name__} rejected: {e.code.value} - {e.message}")
            ErrorResponseFactory().emit_game_error(e)
        except Exception as e:
            factory = ErrorResponseFactory()
            error_code, error_message = factory.handle_exception(e, func.__name__)
            factory.emit_error(error_code, error_message)

    return wrapper
