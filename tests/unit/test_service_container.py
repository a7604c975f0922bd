"""
Tests for the dependency injection container.
"""

import pytest
from unittest.mock import Mock

from container import (
    CircularDependencyError,
    ServiceContainer,
    ServiceLifecycle,
    ServiceNotFoundError,
    configure_container,
    get_container,
    reset_container,
)


class Engine:
    pass


class Car:
    def __init__(self, engine):
        self.engine = engine


class TestServiceContainer:
    """Test registration and resolution"""

    def setup_method(self):
        self.container = ServiceContainer()

    def test_resolves_dependencies_in_order(self):
        """Dependencies are created first and passed to the factory"""
        self.container.register('Engine', Engine)
        self.container.register('Car', Car, dependencies=['Engine'])

        car = self.container.get('Car')

        assert isinstance(car.engine, Engine)
        assert car.engine is self.container.get('Engine')

    def test_singleton_returns_same_instance(self):
        self.container.register('Engine', Engine)

        assert self.container.get('Engine') is self.container.get('Engine')

    def test_transient_returns_new_instance(self):
        self.container.register('Engine', Engine, lifecycle=ServiceLifecycle.TRANSIENT)

        assert self.container.get('Engine') is not self.container.get('Engine')

    def test_unknown_service_raises(self):
        with pytest.raises(ServiceNotFoundError):
            self.container.get('Nothing')

    def test_duplicate_registration_raises(self):
        self.container.register('Engine', Engine)

        with pytest.raises(ValueError):
            self.container.register('Engine', Engine)

    def test_non_callable_factory_raises(self):
        with pytest.raises(ValueError):
            self.container.register('Engine', 'not callable')

    def test_circular_dependency_detected(self):
        """A cycle is reported instead of recursing forever"""
        self.container.register('A', lambda b: b, dependencies=['B'])
        self.container.register('B', lambda a: a, dependencies=['A'])

        with pytest.raises(CircularDependencyError):
            self.container.get('A')

    def test_external_dependency(self):
        """External instances satisfy dependencies without registration"""
        engine = Engine()
        self.container.set_external_dependency('engine', engine)
        self.container.register('Car', Car, dependencies=['engine'])

        assert self.container.get('Car').engine is engine

    def test_validate_dependencies_reports_missing(self):
        self.container.register('Car', Car, dependencies=['Engine'])

        assert self.container.validate_dependencies() == {'Car': ['Engine']}

    def test_clear_shuts_down_scheduler(self):
        """Clearing the container cancels pending phase timers"""
        scheduler = Mock()
        self.container.set_external_dependency('PhaseScheduler', scheduler)
        self.container.set_config({'cards_file': 'x.yaml'})

        self.container.clear()

        scheduler.shutdown.assert_called_once()
        assert self.container.get_config('cards_file') is None
        assert self.container.get_service_names() == []


class TestConfigureContainer:
    """Test the application wiring"""

    def teardown_method(self):
        reset_container()

    def test_all_services_resolve(self, mock_socketio, timer_factory):
        """Every registered service can be built with the external dependencies"""
        container = configure_container(socketio=mock_socketio, config={}, timer_factory=timer_factory)

        assert container.validate_dependencies() == {}
        for name in container.get_service_names():
            assert container.get(name) is not None

    def test_reconfigure_reuses_global_container(self, mock_socketio, timer_factory):
        """configure_container rewires the global container in place"""
        first = configure_container(socketio=mock_socketio, config={}, timer_factory=timer_factory)
        room_manager = first.get('RoomManager')

        second = configure_container(socketio=mock_socketio, config={}, timer_factory=timer_factory)

        assert first is second is get_container()
        assert second.get('RoomManager') is not room_manager

    def test_game_flow_shares_collaborators(self, container):
        """Services share one room registry and scheduler"""
        game_flow = container.get('GameFlowService')
        presence = container.get('PresenceService')

        assert game_flow.room_manager is container.get('RoomManager')
        assert presence.room_manager is game_flow.room_manager
        assert presence.phase_scheduler is container.get('PhaseScheduler')
