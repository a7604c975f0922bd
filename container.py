"""
Service Container - Dependency Injection Container for MimClash
Wires the room registry, round state machine and their collaborators.
"""

import inspect
import threading
from enum import Enum
from typing import Any, Callable, Dict, List, Optional


class ServiceLifecycle(Enum):
    """Service lifecycle management options"""
    SINGLETON = "singleton"  # One instance per container
    TRANSIENT = "transient"  # New instance every time


class ServiceDefinition:
    """Definition of how a service should be created"""

    def __init__(
        self,
        name: str,
        factory: Callable,
        dependencies: Optional[List[str]] = None,
        lifecycle: ServiceLifecycle = ServiceLifecycle.SINGLETON,
    ):
        self.name = name
        self.factory = factory
        self.dependencies = dependencies or []
        self.lifecycle = lifecycle


class CircularDependencyError(Exception):
    """Raised when circular dependency is detected"""
    pass


class ServiceNotFoundError(Exception):
    """Raised when requested service is not registered"""
    pass


class ServiceContainer:
    """
    Dependency Injection Container.

    Services are registered by name with an explicit list of the names they
    depend on; dependencies are passed positionally to the factory. External
    dependencies (the Socket.IO server, the timer factory) are set as ready
    instances.
    """

    def __init__(self):
        self._services: Dict[str, ServiceDefinition] = {}
        self._instances: Dict[str, Any] = {}
        self._creating: set = set()
        self._config: Dict[str, Any] = {}
        self._lock = threading.RLock()

    def register(
        self,
        name: str,
        factory: Callable,
        dependencies: Optional[List[str]] = None,
        lifecycle: ServiceLifecycle = ServiceLifecycle.SINGLETON,
    ) -> 'ServiceContainer':
        """
        Register a service with the container.

        Args:
            name: Service name for retrieval
            factory: Class or function to create the service
            dependencies: Names of services passed to the factory, in order
            lifecycle: How the service instance should be managed

        Returns:
            Self for method chaining
        """
        if name in self._services:
            raise ValueError(f"Service '{name}' is already registered")

        if not callable(factory):
            raise ValueError(f"Factory for '{name}' must be callable")

        self._services[name] = ServiceDefinition(name, factory, dependencies, lifecycle)
        return self

    def configure_services(self) -> 'ServiceContainer':
        """Register all MimClash services with their dependencies."""
        from mimclash.room_manager import RoomManager
        from mimclash.services.broadcast_service import BroadcastService
        from mimclash.services.card_deck_service import CardDeckService
        from mimclash.services.chat_service import ChatService
        from mimclash.services.error_response_factory import ErrorResponseFactory
        from mimclash.services.game_flow_service import GameFlowService
        from mimclash.services.heartbeat_service import HeartbeatService
        from mimclash.services.identity_service import IdentityService
        from mimclash.services.phase_scheduler import PhaseScheduler
        from mimclash.services.presence_service import PresenceService
        from mimclash.services.room_state_presenter import RoomStatePresenter
        from mimclash.services.scoring_service import ScoringService
        from mimclash.services.validation_service import ValidationService
        from config_factory import ConfigurationFactory

        self.register('ConfigurationFactory', ConfigurationFactory)

        # No dependencies
        self.register('ValidationService', ValidationService)
        self.register('ErrorResponseFactory', ErrorResponseFactory)
        self.register('RoomManager', RoomManager)
        self.register('ScoringService', ScoringService)
        self.register('CardCatalog', self._create_card_catalog)

        self.register('CardDeckService', CardDeckService, dependencies=['CardCatalog'])
        self.register('IdentityService', IdentityService, dependencies=['RoomManager'])
        self.register('PhaseScheduler', PhaseScheduler, dependencies=['RoomManager', 'timer_factory'])
        self.register('RoomStatePresenter', RoomStatePresenter, dependencies=['ScoringService'])

        # socketio is injected as an external dependency
        self.register('BroadcastService', BroadcastService, dependencies=['socketio', 'RoomStatePresenter'])
        self.register('ChatService', ChatService, dependencies=['BroadcastService'])
        self.register('HeartbeatService', HeartbeatService, dependencies=['RoomManager', 'BroadcastService'])

        self.register('GameFlowService', GameFlowService, dependencies=[
            'RoomManager', 'CardDeckService', 'ScoringService', 'PhaseScheduler', 'BroadcastService'
        ])
        self.register('PresenceService', PresenceService, dependencies=[
            'RoomManager', 'IdentityService', 'PhaseScheduler', 'GameFlowService', 'BroadcastService'
        ])

        return self

    def _create_card_catalog(self):
        from mimclash.card_catalog import CardCatalog
        return CardCatalog(self._config.get('cards_file') or None)

    def set_external_dependency(self, name: str, instance: Any) -> 'ServiceContainer':
        """
        Set an external dependency that's created outside the container.
        Useful for Flask-SocketIO and similar framework objects.
        """
        self._instances[name] = instance
        return self

    def set_config(self, config: Dict[str, Any]) -> 'ServiceContainer':
        """Set global configuration for the container"""
        self._config.update(config)
        return self

    def get_config(self, key: str, default: Any = None) -> Any:
        return self._config.get(key, default)

    def get(self, name: str) -> Any:
        """
        Get a service instance, creating it if necessary.

        Raises:
            ServiceNotFoundError: If service is not registered
            CircularDependencyError: If circular dependency detected
        """
        with self._lock:
            if name in self._instances:
                return self._instances[name]

            if name not in self._services:
                raise ServiceNotFoundError(f"Service '{name}' is not registered")

            return self._create_service(name)

    def _create_service(self, name: str) -> Any:
        if name in self._creating:
            cycle = ' -> '.join(list(self._creating) + [name])
            raise CircularDependencyError(f"Circular dependency detected: {cycle}")

        self._creating.add(name)
        try:
            service_def = self._services[name]
            dependencies = [self.get(dep_name) for dep_name in service_def.dependencies]

            if inspect.isclass(service_def.factory) and not service_def.dependencies:
                instance = service_def.factory()
            else:
                instance = service_def.factory(*dependencies)

            if service_def.lifecycle == ServiceLifecycle.SINGLETON:
                self._instances[name] = instance

            return instance
        finally:
            self._creating.discard(name)

    def has_service(self, name: str) -> bool:
        """Check if a service is registered"""
        return name in self._services

    def get_service_names(self) -> List[str]:
        return list(self._services.keys())

    def validate_dependencies(self) -> Dict[str, List[str]]:
        """
        Returns:
            Dictionary mapping service names to lists of missing dependencies
        """
        issues = {}
        for name, service_def in self._services.items():
            missing = [dep for dep in service_def.dependencies
                       if not self.has_service(dep) and dep not in self._instances]
            if missing:
                issues[name] = missing
        return issues

    def clear(self) -> 'ServiceContainer':
        """Clear all services and instances (useful for testing)"""
        scheduler = self._instances.get('PhaseScheduler')
        if scheduler is not None:
            scheduler.shutdown()
        self._services.clear()
        self._instances.clear()
        self._creating.clear()
        self._config.clear()
        return self

    def __repr__(self) -> str:
        return f"ServiceContainer(services={len(self._services)}, instances={len(self._instances)})"


# Global container instance for the application
_app_container: Optional[ServiceContainer] = None


def get_container() -> ServiceContainer:
    """Get the global application service container"""
    global _app_container
    if _app_container is None:
        _app_container = ServiceContainer()
    return _app_container


def reset_container() -> ServiceContainer:
    """Clear the global container (for testing)"""
    return get_container().clear()


def configure_container(socketio=None, config=None, timer_factory=None) -> ServiceContainer:
    """
    Configure the global service container with MimClash services.

    Args:
        socketio: Flask-SocketIO instance
        config: Application configuration as a dictionary
        timer_factory: Replacement for threading.Timer (tests use a manual one)

    Returns:
        Configured service container
    """
    container = get_container()
    container.clear()

    if socketio is not None:
        container.set_external_dependency('socketio', socketio)
    container.set_external_dependency('timer_factory', timer_factory or threading.Timer)

    if config is not None:
        container.set_config(config)

    container.configure_services()
    return container
