"""
Validation Service Tests

Tests input validation for room codes, names, submissions, settings and chat.
"""

import pytest
from unittest.mock import patch

from mimclash.config.game_config import GameConfig
from mimclash.core.errors import ErrorCode, ValidationError
from mimclash.core.models import ALL_CATEGORIES
from mimclash.services.validation_service import ValidationService

PNG = 'data:image/png;base64,iVBORw0KGgo='


def assert_rejected(func, *args, code):
    with pytest.raises(ValidationError) as exc_info:
        func(*args)
    assert exc_info.value.code == code
    return exc_info.value


class TestIdentifiers:
    """Test room code and player name validation"""

    def setup_method(self):
        with patch('mimclash.services.validation_service.get_game_config', return_value=GameConfig()):
            self.service = ValidationService()

    def test_room_code_normalized_to_uppercase(self):
        """Room codes are stripped and uppercased"""
        assert self.service.validate_room_code('  ab12cd ') == 'AB12CD'

    @pytest.mark.parametrize('code', [None, '', '   ', 42])
    def test_missing_room_code(self, code):
        """Empty or non-string codes give MISSING_ROOM_CODE"""
        assert_rejected(self.service.validate_room_code, code, code=ErrorCode.MISSING_ROOM_CODE)

    @pytest.mark.parametrize('code', ['AB-12', 'ABC', 'ROOM CODE', 'A' * 11])
    def test_malformed_room_code(self, code):
        """Codes with other characters or bad length give INVALID_ROOM_CODE"""
        assert_rejected(self.service.validate_room_code, code, code=ErrorCode.INVALID_ROOM_CODE)

    def test_player_name_stripped(self):
        """Names are stripped of surrounding whitespace"""
        assert self.service.validate_player_name('  Alice ') == 'Alice'

    def test_missing_player_name(self):
        """Empty names give MISSING_PLAYER_NAME"""
        assert_rejected(self.service.validate_player_name, '   ', code=ErrorCode.MISSING_PLAYER_NAME)
        assert_rejected(self.service.validate_player_name, None, code=ErrorCode.MISSING_PLAYER_NAME)

    def test_player_name_too_long(self):
        """Names over the limit give PLAYER_NAME_TOO_LONG"""
        error = assert_rejected(self.service.validate_player_name, 'x' * 21, code=ErrorCode.PLAYER_NAME_TOO_LONG)
        assert error.details['max_length'] == 20

    def test_optional_room_code(self):
        """optional_room_code validates when present and returns None otherwise"""
        assert self.service.optional_room_code({'room_code': 'abcd12'}) == 'ABCD12'
        assert self.service.optional_room_code({}) is None
        assert self.service.optional_room_code(None) is None


class TestSubmissions:
    """Test meme submission validation"""

    def setup_method(self):
        with patch('mimclash.services.validation_service.get_game_config', return_value=GameConfig()):
            self.service = ValidationService()

    def test_image_submission(self):
        """A base64 image data URL is accepted as is"""
        assert self.service.validate_submission({'image_data': PNG}) == {'image_data': PNG}

    def test_image_must_be_data_url(self):
        """Anything but an image data URL is rejected"""
        assert_rejected(self.service.validate_submission, {'image_data': 'http://x/y.png'},
                        code=ErrorCode.INVALID_SUBMISSION)
        assert_rejected(self.service.validate_submission, {'image_data': 5},
                        code=ErrorCode.INVALID_SUBMISSION)

    def test_oversized_image_rejected(self):
        """Images over the size limit give PAYLOAD_TOO_LARGE"""
        self.service.game_config = GameConfig()
        with patch.object(GameConfig, '_get', return_value=100):
            error = assert_rejected(self.service.validate_submission, {'image_data': PNG + 'A' * 200},
                                    code=ErrorCode.PAYLOAD_TOO_LARGE)
        assert error.details['max_bytes'] == 100

    def test_legacy_text_submission_is_escaped(self):
        """Legacy text fields are stripped and HTML-escaped"""
        result = self.service.validate_submission({
            'top_text': ' <b>Me</b> ', 'bottom_text': 'also me', 'template': 'drake.jpg'
        })

        assert result == {'text_fields': {
            'top_text': '&lt;b&gt;Me&lt;/b&gt;', 'bottom_text': 'also me', 'template': 'drake.jpg'
        }}

    def test_legacy_submission_needs_template(self):
        """An empty template is rejected"""
        assert_rejected(self.service.validate_submission,
                        {'top_text': 'a', 'bottom_text': 'b', 'template': ' '},
                        code=ErrorCode.INVALID_SUBMISSION)

    def test_empty_submission_rejected(self):
        """A payload with neither form is rejected"""
        assert_rejected(self.service.validate_submission, {'top_text': 'a'}, code=ErrorCode.INVALID_SUBMISSION)
        assert_rejected(self.service.validate_submission, 'not a dict', code=ErrorCode.INVALID_DATA)


class TestSettingsUpdates:
    """Test settings validation"""

    def setup_method(self):
        self.service = ValidationService()

    def validate(self, raw):
        return self.service.validate_settings_update(raw, ALL_CATEGORIES)

    def test_valid_partial_update(self):
        """Known in-range fields are returned"""
        assert self.validate({'max_rounds': 10, 'min_players_enabled': False}) == {
            'max_rounds': 10, 'min_players_enabled': False
        }

    @pytest.mark.parametrize('raw', [
        {'max_rounds': 2},
        {'max_rounds': 11},
        {'submission_minutes': 0},
        {'voting_seconds': 181},
        {'min_players': 1},
        {'max_players': 9},
        {'max_rounds': '5'},
        {'max_rounds': True},
        {'min_players_enabled': 'yes'},
        {'colour': 'red'},
        {},
        [],
    ])
    def test_invalid_updates_rejected(self, raw):
        """Out-of-range, mistyped or unknown fields reject the update"""
        assert_rejected(self.validate, raw, code=ErrorCode.INVALID_SETTINGS)

    def test_one_bad_field_rejects_everything(self):
        """A valid field next to an invalid one is not applied either"""
        assert_rejected(self.validate, {'max_rounds': 4, 'voting_seconds': 5}, code=ErrorCode.INVALID_SETTINGS)

    def test_unknown_categories_are_dropped(self):
        """Unknown category keys are filtered and duplicates removed"""
        result = self.validate({'enabled_categories': ['work', 'nope', 'work', 'daily']})

        assert result == {'enabled_categories': ['work', 'daily']}

    def test_no_known_category_rejected(self):
        """An update leaving no known category is rejected"""
        assert_rejected(self.validate, {'enabled_categories': ['nope']}, code=ErrorCode.INVALID_SETTINGS)
        assert_rejected(self.validate, {'enabled_categories': []}, code=ErrorCode.INVALID_SETTINGS)


class TestChatMessages:
    """Test chat message validation"""

    def setup_method(self):
        self.service = ValidationService()

    def test_message_escaped(self):
        """Messages are stripped and HTML-escaped"""
        assert self.service.validate_chat_message('  <hi> ') == '&lt;hi&gt;'

    def test_empty_message(self):
        """Blank messages give EMPTY_MESSAGE"""
        assert_rejected(self.service.validate_chat_message, '  ', code=ErrorCode.EMPTY_MESSAGE)
        assert_rejected(self.service.validate_chat_message, None, code=ErrorCode.EMPTY_MESSAGE)

    def test_long_message(self):
        """Messages over the limit give MESSAGE_TOO_LONG"""
        assert_rejected(self.service.validate_chat_message, 'x' * 201, code=ErrorCode.MESSAGE_TOO_LONG)
