"""
Validation Service for MimClash

Input validation and sanitization for socket payloads: room codes, player
names, submissions, settings updates and chat messages.
"""

import html
import logging
import re
from typing import Any, Dict, Iterable, Optional

from mimclash.config.game_config import SETTINGS_BOUNDS, get_game_config
from mimclash.core.errors import ErrorCode, ValidationError

logger = logging.getLogger(__name__)

LEGACY_TEXT_FIELDS = ('top_text', 'bottom_text', 'template')
MAX_LEGACY_TEXT_LENGTH = 200


class ValidationService:
    """Service responsible for input validation and sanitization."""

    ROOM_CODE_PATTERN = re.compile(r'^[A-Z0-9]{4,10}$')
    IMAGE_DATA_PREFIX = re.compile(r'^data:image/(png|jpeg|jpg|gif|webp);base64,')

    def __init__(self):
        self.game_config = get_game_config()

    def validate_data_dict(self, data: Any) -> Dict[str, Any]:
        if not isinstance(data, dict):
            raise ValidationError(
                ErrorCode.INVALID_DATA,
                "Invalid data format - expected dictionary"
            )
        return data

    def validate_room_code(self, room_code: Any) -> str:
        """
        Validate and normalize a room code (codes are uppercase).

        Raises:
            ValidationError: If the code is missing or malformed
        """
        if not room_code or not isinstance(room_code, str) or not room_code.strip():
            raise ValidationError(ErrorCode.MISSING_ROOM_CODE, "Room code is required")

        room_code = room_code.strip().upper()
        if not self.ROOM_CODE_PATTERN.match(room_code):
            raise ValidationError(
                ErrorCode.INVALID_ROOM_CODE,
                "Room code can only contain letters and numbers",
                {"room_code": room_code}
            )
        return room_code

    def validate_player_name(self, player_name: Any) -> str:
        """
        Validate and sanitize player name.

        Raises:
            ValidationError: If player name is invalid
        """
        if not player_name or not isinstance(player_name, str):
            raise ValidationError(ErrorCode.MISSING_PLAYER_NAME, "Player name is required")

        player_name = player_name.strip()
        if not player_name:
            raise ValidationError(ErrorCode.MISSING_PLAYER_NAME, "Player name cannot be empty")

        max_length = self.game_config.max_player_name_length
        if len(player_name) > max_length:
            raise ValidationError(
                ErrorCode.PLAYER_NAME_TOO_LONG,
                f"Player name must be {max_length} characters or less",
                {"max_length": max_length, "actual_length": len(player_name)}
            )

        return player_name

    def validate_submission(self, data: Any) -> Dict[str, Any]:
        """
        Validate a meme submission.

        Accepts either `image_data` (an image data URL exported by the editor)
        or the legacy `top_text`/`bottom_text`/`template` triple.

        Returns:
            {'image_data': str} or {'text_fields': {...}}

        Raises:
            ValidationError: INVALID_SUBMISSION or PAYLOAD_TOO_LARGE
        """
        data = self.validate_data_dict(data)

        image_data = data.get('image_data')
        if image_data is not None:
            if not isinstance(image_data, str):
                raise ValidationError(ErrorCode.INVALID_SUBMISSION, "Image data must be a string")

            max_bytes = self.game_config.max_submission_bytes
            if len(image_data) > max_bytes:
                raise ValidationError(
                    ErrorCode.PAYLOAD_TOO_LARGE,
                    "Image is too large",
                    {"max_bytes": max_bytes, "actual_bytes": len(image_data)}
                )

            if not self.IMAGE_DATA_PREFIX.match(image_data):
                raise ValidationError(ErrorCode.INVALID_SUBMISSION, "Image data must be a base64 image data URL")

            return {'image_data': image_data}

        if all(field in data for field in LEGACY_TEXT_FIELDS):
            text_fields = {}
            for field in LEGACY_TEXT_FIELDS:
                value = data[field]
                if not isinstance(value, str):
                    raise ValidationError(ErrorCode.INVALID_SUBMISSION, f"'{field}' must be a string")
                if len(value) > MAX_LEGACY_TEXT_LENGTH:
                    raise ValidationError(
                        ErrorCode.INVALID_SUBMISSION,
                        f"'{field}' must be {MAX_LEGACY_TEXT_LENGTH} characters or less"
                    )
                text_fields[field] = html.escape(value.strip())
            if not text_fields['template']:
                raise ValidationError(ErrorCode.INVALID_SUBMISSION, "A template is required")
            return {'text_fields': text_fields}

        raise ValidationError(
            ErrorCode.INVALID_SUBMISSION,
            "Submission must contain image_data or top_text, bottom_text and template"
        )

    def validate_settings_update(self, raw: Any, category_keys: Iterable[str]) -> Dict[str, Any]:
        """
        Validate a partial settings update. Any invalid field rejects the whole update.

        Unknown category keys are dropped; an update that leaves no known
        category is rejected.

        Returns:
            The accepted changes, keyed by GameSettings field name
        """
        if not isinstance(raw, dict) or not raw:
            raise ValidationError(ErrorCode.INVALID_SETTINGS, "Settings must be a non-empty dictionary")

        changes: Dict[str, Any] = {}
        for key, value in raw.items():
            if key in SETTINGS_BOUNDS:
                low, high = SETTINGS_BOUNDS[key]
                if isinstance(value, bool) or not isinstance(value, int) or not low <= value <= high:
                    raise ValidationError(
                        ErrorCode.INVALID_SETTINGS,
                        f"'{key}' must be an integer between {low} and {high}",
                        {"field": key, "min": low, "max": high, "value": value}
                    )
                changes[key] = value
            elif key in ('min_players_enabled', 'max_players_enabled'):
                if not isinstance(value, bool):
                    raise ValidationError(
                        ErrorCode.INVALID_SETTINGS,
                        f"'{key}' must be a boolean",
                        {"field": key, "value": value}
                    )
                changes[key] = value
            elif key == 'enabled_categories':
                if not isinstance(value, list):
                    raise ValidationError(
                        ErrorCode.INVALID_SETTINGS,
                        "'enabled_categories' must be a list",
                        {"field": key}
                    )
                known = set(category_keys)
                categories = [c for c in dict.fromkeys(value) if isinstance(c, str) and c in known]
                if not categories:
                    raise ValidationError(
                        ErrorCode.INVALID_SETTINGS,
                        "At least one known category must be enabled",
                        {"field": key, "known": sorted(known)}
                    )
                changes[key] = categories
            else:
                raise ValidationError(
                    ErrorCode.INVALID_SETTINGS,
                    f"Unknown setting '{key}'",
                    {"field": key}
                )

        return changes

    def validate_chat_message(self, message: Any) -> str:
        if not isinstance(message, str) or not message.strip():
            raise ValidationError(ErrorCode.EMPTY_MESSAGE, "Message cannot be empty")

        message = message.strip()
        max_length = self.game_config.max_chat_length
        if len(message) > max_length:
            raise ValidationError(
                ErrorCode.MESSAGE_TOO_LONG,
                f"Message must be {max_length} characters or less",
                {"max_length": max_length, "actual_length": len(message)}
            )
        return html.escape(message)

    def optional_room_code(self, data: Optional[Dict[str, Any]]) -> Optional[str]:
        """Room code from an action payload, if one was sent."""
        if isinstance(data, dict) and data.get('room_code'):
            return self.validate_room_code(data['room_code'])
        return None
