"""
Common SocketIO mock patterns for testing.
Provides standardized mock objects and utilities for testing Socket.IO functionality.
"""

from unittest.mock import Mock


def create_mock_socketio():
    """Create a standardized mock SocketIO object for testing.

    Returns:
        Mock: A configured mock SocketIO object with common methods
    """
    mock_socketio = Mock()
    mock_socketio.emit = Mock()
    mock_socketio.reset_mock()
    return mock_socketio


def emitted_events(mock_socketio, event=None, to=None):
    """Calls recorded on a mock SocketIO's emit, as (event, data, to) tuples.

    Args:
        event (str): Only keep emits of this event (optional)
        to (str): Only keep emits addressed to this room or connection (optional)
    """
    result = []
    for call in mock_socketio.emit.call_args_list:
        name, data = call[0][0], call[0][1] if len(call[0]) > 1 else None
        target = call[1].get('to')
        if event is not None and name != event:
            continue
        if to is not None and target != to:
            continue
        result.append((name, data, target))
    return result


class MockSocketIOTestHelper:
    """Helper class for testing SocketIO interactions with standardized assertions."""

    def __init__(self, mock_socketio=None):
        self.mock_socketio = mock_socketio or create_mock_socketio()

    def assert_emitted(self, event, to=None):
        """Assert that an event was emitted at least once, optionally to a target."""
        matching = emitted_events(self.mock_socketio, event, to)
        assert matching, f"Expected emit of '{event}'" + (f" to '{to}'" if to else "") + " not found"
        return matching[-1][1]

    def count(self, event) -> int:
        return len(emitted_events(self.mock_socketio, event))

    def reset(self):
        self.mock_socketio.emit.reset_mock()
