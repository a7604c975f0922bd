"""
Integration tests for chat relay and error responses over Socket.IO.
"""

from unittest.mock import patch

import pytest

from tests.helpers.room_helpers import (
    clear_all,
    create_room_helper,
    event_payload,
    find_event_in_received,
    join_room_helper,
)
from tests.helpers.socket_integration import SocketIntegrationBase


class TestChat(SocketIntegrationBase):
    """Test in-room chat"""

    def setup_pair(self):
        self.alice = self.connect()
        self.bob = self.connect()
        self.code = create_room_helper(self.alice, 'Alice')['room_code']
        join_room_helper(self.bob, self.code, 'Bob')
        clear_all([self.alice, self.bob])

    def test_message_relayed_to_room(self):
        self.setup_pair()

        self.bob.emit('send-chat', {'message': '  hello there  '})

        for client in (self.alice, self.bob):
            message = event_payload(client.get_received(), 'chat-message')
            assert message['player_name'] == 'Bob'
            assert message['message'] == 'hello there'
            assert message['timestamp']

    def test_message_is_escaped(self):
        self.setup_pair()

        self.alice.emit('send-chat', {'message': '<b>hi</b>'})

        assert event_payload(self.bob.get_received(), 'chat-message')['message'] == '&lt;b&gt;hi&lt;/b&gt;'

    def test_chat_history_in_join_snapshot(self):
        """Late joiners see the recent chat log"""
        self.setup_pair()
        self.alice.emit('send-chat', {'message': 'first'})

        joined = join_room_helper(self.connect(), self.code, 'Carol')

        assert [m['message'] for m in joined['chat_log']] == ['first']

    @pytest.mark.parametrize('payload, code', [
        ({'message': '   '}, 'EMPTY_MESSAGE'),
        ({'message': 'x' * 1000}, 'MESSAGE_TOO_LONG'),
        ({}, 'EMPTY_MESSAGE'),
    ])
    def test_invalid_messages(self, payload, code):
        self.setup_pair()

        self.alice.emit('send-chat', payload)

        assert event_payload(self.alice.get_received(), 'error')['code'] == code
        assert find_event_in_received(self.bob.get_received(), 'chat-message') is None

    def test_chat_outside_room(self):
        client = self.connect()
        client.get_received()

        client.emit('send-chat', {'message': 'anyone?'})

        assert event_payload(client.get_received(), 'error')['code'] == 'PLAYER_NOT_FOUND'


class TestErrorResponses(SocketIntegrationBase):
    """Test the shape of error events"""

    def test_error_payload_shape(self):
        """Errors carry code, message and details"""
        client = self.connect()
        client.get_received()

        client.emit('join-room', {'room_code': 'ZZZZZZ', 'player_name': 'Bob'})

        error = event_payload(client.get_received(), 'error')
        assert set(error) == {'code', 'message', 'details'}
        assert error['details'] == {'room_code': 'ZZZZZZ'}

    def test_unexpected_failure_reports_internal_error(self):
        """Unexpected exceptions become INTERNAL_ERROR without leaking details"""
        client = self.connect()
        client.get_received()
        room_manager = self.container.get('RoomManager')

        with patch.object(room_manager, 'create_room', side_effect=RuntimeError('disk on fire')):
            client.emit('create-room', {'player_name': 'Alice'})

        error = event_payload(client.get_received(), 'error')
        assert error['code'] == 'INTERNAL_ERROR'
        assert 'disk' not in error['message']

    def test_wrong_phase_action(self):
        client = self.connect()
        create_room_helper(client, 'Alice')

        client.emit('vote', {'submission_id': 'abc'})

        error = event_payload(client.get_received(), 'error')
        assert error['code'] == 'INVALID_PHASE'

    @pytest.mark.parametrize('payload', [{}, {'submission_id': ''}, {'submission_id': 7}, 'abc'])
    def test_malformed_vote(self, payload):
        client = self.connect()
        create_room_helper(client, 'Alice')

        client.emit('vote', payload)

        assert event_payload(client.get_received(), 'error')['code'] == 'INVALID_DATA'

    @pytest.mark.parametrize('payload, code', [
        ({'image_data': 'not a data url'}, 'INVALID_SUBMISSION'),
        ({'top_text': 'a'}, 'INVALID_SUBMISSION'),
        ('abc', 'INVALID_DATA'),
    ])
    def test_malformed_submission(self, payload, code):
        client = self.connect()
        create_room_helper(client, 'Alice')

        client.emit('submit', payload)

        assert event_payload(client.get_received(), 'error')['code'] == code
