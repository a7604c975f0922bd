"""
Global pytest configuration and fixtures.
Provides service fixtures wired through the dependency injection container,
with a manual timer factory so phase timers only fire when a test says so.
"""

import pytest
import os

# Ensure testing environment
os.environ['TESTING'] = '1'

from tests.helpers.fake_timers import ManualTimerFactory
from tests.helpers.socket_mocks import create_mock_socketio


@pytest.fixture(scope="function", autouse=True)
def reset_game_configuration():
    """Each test starts from a freshly built game configuration."""
    from mimclash.config.game_config import reset_game_config
    reset_game_config()
    yield
    reset_game_config()


@pytest.fixture(scope="function")
def timer_factory():
    """Deterministic replacement for threading.Timer."""
    return ManualTimerFactory()


@pytest.fixture(scope="function")
def mock_socketio():
    return create_mock_socketio()


@pytest.fixture(scope="function")
def container(mock_socketio, timer_factory):
    """Service container wired with a mock Socket.IO server and manual timers."""
    from container import configure_container, reset_container

    configured = configure_container(socketio=mock_socketio, config={}, timer_factory=timer_factory)
    configured.get('CardCatalog').load_cards_from_yaml()
    yield configured
    reset_container()


@pytest.fixture(scope="function")
def room_manager(container):
    """Provide RoomManager service through dependency injection."""
    return container.get('RoomManager')


@pytest.fixture(scope="function")
def card_catalog(container):
    return container.get('CardCatalog')


@pytest.fixture(scope="function")
def card_deck_service(container):
    return container.get('CardDeckService')


@pytest.fixture(scope="function")
def phase_scheduler(container):
    return container.get('PhaseScheduler')


@pytest.fixture(scope="function")
def identity_service(container):
    return container.get('IdentityService')


@pytest.fixture(scope="function")
def scoring_service(container):
    return container.get('ScoringService')


@pytest.fixture(scope="function")
def broadcast_service(container):
    """Provide BroadcastService through dependency injection."""
    return container.get('BroadcastService')


@pytest.fixture(scope="function")
def game_flow_service(container):
    """Provide GameFlowService (the round state machine) through dependency injection."""
    return container.get('GameFlowService')


@pytest.fixture(scope="function")
def presence_service(container):
    return container.get('PresenceService')


@pytest.fixture(scope="function")
def validation_service(container):
    """Provide ValidationService through dependency injection."""
    return container.get('ValidationService')


@pytest.fixture(scope="function")
def socket_app(timer_factory):
    """
    The real Flask app and Socket.IO server, with the global container rewired
    to manual timers. Yields (app, socketio, container).
    """
    from app import app as flask_app, socketio as app_socketio
    from container import configure_container, reset_container

    configured = configure_container(socketio=app_socketio, config={}, timer_factory=timer_factory)
    configured.get('CardCatalog').load_cards_from_yaml()
    yield flask_app, app_socketio, configured
    reset_container()
