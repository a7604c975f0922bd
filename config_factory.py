"""
Configuration Factory - Centralized configuration management for MimClash
Provides type-safe configuration with validation and environment-specific settings.
"""

import os
import logging
from typing import Any, Dict, Optional, Type
from enum import Enum
from dataclasses import dataclass, field


class Environment(Enum):
    """Environment types for configuration"""
    DEVELOPMENT = "development"
    PRODUCTION = "production"
    TESTING = "testing"


class ConfigError(Exception):
    """Configuration-related errors"""
    pass


DEFAULT_SECRET_KEY = 'dev-secret-key-change-in-production'


@dataclass
class AppConfig:
    """Application configuration with type safety and validation"""

    # Core Flask settings
    secret_key: str = field(default_factory=lambda: DEFAULT_SECRET_KEY)
    debug: bool = False
    flask_env: str = 'development'

    # Server settings
    host: str = '0.0.0.0'
    port: int = 5000

    # Default room settings
    default_max_rounds: int = 5
    default_submission_minutes: int = 3
    default_voting_seconds: int = 60
    default_min_players: int = 3
    default_max_players: int = 8

    # Hard limits used when a room disables its own player bounds
    hard_min_players: int = 2
    hard_max_players: int = 8

    # Timing
    submission_settle_seconds: float = 0.5  # after the last submission
    vote_settle_seconds: float = 1.0  # after the last vote
    results_display_seconds: int = 10
    host_handoff_seconds: int = 30
    offline_grace_seconds: int = 30
    transport_grace_seconds: int = 60  # abrupt transport failure
    empty_room_ttl_seconds: int = 300
    heartbeat_seconds: int = 30  # 0 disables the room heartbeat

    # Limits
    chat_history_limit: int = 100
    max_chat_length: int = 200
    max_player_name_length: int = 20
    max_submission_bytes: int = 10 * 1024 * 1024
    room_code_length: int = 6

    # Rate Limiting settings
    max_events_per_second: int = 10
    max_events_per_minute: int = 100
    rate_limit_block_seconds: int = 60

    # File paths
    cards_file: str = ''  # empty means the catalog shipped with the package
    templates_dir: str = 'static/templates'

    # Gunicorn settings (for production deployment)
    worker_connections: int = 1000
    timeout: int = 30
    keepalive: int = 2
    log_level: str = 'info'

    # Environment
    environment: Environment = Environment.DEVELOPMENT

    def __post_init__(self):
        """Validate configuration after initialization"""
        self._validate()

    def _validate(self):
        """Validate configuration values"""
        if self.port < 1 or self.port > 65535:
            raise ConfigError(f"Invalid port number: {self.port}")

        if self.default_max_rounds < 1 or self.default_max_rounds > 50:
            raise ConfigError(f"Invalid default_max_rounds: {self.default_max_rounds}")

        if self.default_submission_minutes < 1 or self.default_submission_minutes > 30:
            raise ConfigError(f"Invalid default_submission_minutes: {self.default_submission_minutes}")

        if self.default_voting_seconds < 5 or self.default_voting_seconds > 1800:
            raise ConfigError(f"Invalid default_voting_seconds: {self.default_voting_seconds}")

        if self.hard_min_players < 1 or self.hard_min_players > self.hard_max_players:
            raise ConfigError(f"Invalid hard_min_players: {self.hard_min_players}")

        if self.default_min_players < self.hard_min_players or self.default_min_players > self.default_max_players:
            raise ConfigError(f"Invalid default_min_players: {self.default_min_players}")

        if self.default_max_players > self.hard_max_players:
            raise ConfigError(f"Invalid default_max_players: {self.default_max_players}")

        for name in ('submission_settle_seconds', 'vote_settle_seconds', 'results_display_seconds',
                     'host_handoff_seconds', 'offline_grace_seconds', 'transport_grace_seconds',
                     'empty_room_ttl_seconds', 'heartbeat_seconds'):
            if getattr(self, name) < 0:
                raise ConfigError(f"Invalid {name}: {getattr(self, name)}")

        if self.chat_history_limit < 1:
            raise ConfigError(f"Invalid chat_history_limit: {self.chat_history_limit}")

        if self.room_code_length < 4 or self.room_code_length > 10:
            raise ConfigError(f"Invalid room_code_length: {self.room_code_length}")

        # Rate Limiting validations
        if self.max_events_per_second < 1 or self.max_events_per_second > 1000:
            raise ConfigError(f"Invalid max_events_per_second: {self.max_events_per_second}")

        if self.max_events_per_minute < self.max_events_per_second or self.max_events_per_minute > 10000:
            raise ConfigError(f"Invalid max_events_per_minute: {self.max_events_per_minute}")

        if self.environment == Environment.PRODUCTION and self.secret_key == DEFAULT_SECRET_KEY:
            raise ConfigError("Production environment requires a secure SECRET_KEY")

    @property
    def is_development(self) -> bool:
        """Check if running in development mode"""
        return self.environment == Environment.DEVELOPMENT

    @property
    def is_production(self) -> bool:
        """Check if running in production mode"""
        return self.environment == Environment.PRODUCTION

    @property
    def is_testing(self) -> bool:
        """Check if running in testing mode"""
        return self.environment == Environment.TESTING


class ConfigurationFactory:
    """
    Factory for creating and managing application configuration.

    Features:
    - Environment variable loading with type conversion
    - Configuration validation
    - Environment-specific defaults
    - Singleton pattern for global config access
    """

    _instance: Optional['ConfigurationFactory'] = None
    _config: Optional[AppConfig] = None

    def __new__(cls) -> 'ConfigurationFactory':
        """Singleton pattern implementation"""
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __init__(self):
        """Initialize the configuration factory"""
        if not hasattr(self, '_initialized'):
            self._logger = logging.getLogger(__name__)
            self._env_overrides: Dict[str, Any] = {}
            self._initialized = True

    def load_from_environment(self, env_prefix: str = '') -> AppConfig:
        """
        Load configuration from environment variables.

        Args:
            env_prefix: Optional prefix for environment variables (e.g., 'MIMCLASH_')

        Returns:
            Configured AppConfig instance
        """
        def get_env_var(key: str, default: Any = None, var_type: Type = str) -> Any:
            """Get environment variable with type conversion"""
            env_key = f"{env_prefix}{key}" if env_prefix else key
            value = os.environ.get(env_key)

            if value is None:
                return default

            if var_type == bool:
                return value.lower() in ('true', '1', 'yes', 'on')
            elif var_type == int:
                try:
                    return int(value)
                except ValueError:
                    self._logger.warning(f"Invalid integer value for {env_key}: {value}, using default: {default}")
                    return default
            elif var_type == float:
                try:
                    return float(value)
                except ValueError:
                    self._logger.warning(f"Invalid float value for {env_key}: {value}, using default: {default}")
                    return default
            else:
                return value

        flask_env = get_env_var('FLASK_ENV', 'development')
        if flask_env == 'development':
            environment = Environment.DEVELOPMENT
            debug = True
        elif flask_env == 'testing':
            environment = Environment.TESTING
            debug = True
        else:
            environment = Environment.PRODUCTION
            debug = False

        config = AppConfig(
            # Core Flask settings
            secret_key=get_env_var('SECRET_KEY', DEFAULT_SECRET_KEY),
            debug=get_env_var('DEBUG', debug, bool),
            flask_env=flask_env,

            # Server settings
            host=get_env_var('HOST', '0.0.0.0'),
            port=get_env_var('PORT', 5000, int),

            # Default room settings
            default_max_rounds=get_env_var('DEFAULT_MAX_ROUNDS', 5, int),
            default_submission_minutes=get_env_var('DEFAULT_SUBMISSION_MINUTES', 3, int),
            default_voting_seconds=get_env_var('DEFAULT_VOTING_SECONDS', 60, int),
            default_min_players=get_env_var('DEFAULT_MIN_PLAYERS', 3, int),
            default_max_players=get_env_var('DEFAULT_MAX_PLAYERS', 8, int),
            hard_min_players=get_env_var('HARD_MIN_PLAYERS', 2, int),
            hard_max_players=get_env_var('HARD_MAX_PLAYERS', 8, int),

            # Timing
            submission_settle_seconds=get_env_var('SUBMISSION_SETTLE_SECONDS', 0.5, float),
            vote_settle_seconds=get_env_var('VOTE_SETTLE_SECONDS', 1.0, float),
            results_display_seconds=get_env_var('RESULTS_DISPLAY_SECONDS', 10, int),
            host_handoff_seconds=get_env_var('HOST_HANDOFF_SECONDS', 30, int),
            offline_grace_seconds=get_env_var('OFFLINE_GRACE_SECONDS', 30, int),
            transport_grace_seconds=get_env_var('TRANSPORT_GRACE_SECONDS', 60, int),
            empty_room_ttl_seconds=get_env_var('EMPTY_ROOM_TTL_SECONDS', 300, int),
            heartbeat_seconds=get_env_var('HEARTBEAT_SECONDS', 30, int),

            # Limits
            chat_history_limit=get_env_var('CHAT_HISTORY_LIMIT', 100, int),
            max_chat_length=get_env_var('MAX_CHAT_LENGTH', 200, int),
            max_player_name_length=get_env_var('MAX_PLAYER_NAME_LENGTH', 20, int),
            max_submission_bytes=get_env_var('MAX_SUBMISSION_BYTES', 10 * 1024 * 1024, int),
            room_code_length=get_env_var('ROOM_CODE_LENGTH', 6, int),

            # Rate Limiting settings
            max_events_per_second=get_env_var('MAX_EVENTS_PER_SECOND', 10, int),
            max_events_per_minute=get_env_var('MAX_EVENTS_PER_MINUTE', 100, int),
            rate_limit_block_seconds=get_env_var('RATE_LIMIT_BLOCK_SECONDS', 60, int),

            # File paths
            cards_file=get_env_var('CARDS_FILE', ''),
            templates_dir=get_env_var('TEMPLATES_DIR', 'static/templates'),

            # Gunicorn settings
            worker_connections=get_env_var('WORKER_CONNECTIONS', 1000, int),
            timeout=get_env_var('TIMEOUT', 30, int),
            keepalive=get_env_var('KEEPALIVE', 2, int),
            log_level=get_env_var('LOG_LEVEL', 'info'),

            environment=environment
        )

        for key, value in self._env_overrides.items():
            if hasattr(config, key):
                setattr(config, key, value)

        self._config = config
        self._logger.info(f"Configuration loaded for environment: {environment.value}")
        return config

    def load_from_dict(self, config_dict: Dict[str, Any]) -> AppConfig:
        """
        Load configuration from dictionary (useful for testing).

        Args:
            config_dict: Dictionary of configuration values

        Returns:
            Configured AppConfig instance
        """
        config_dict = dict(config_dict)
        if 'environment' in config_dict and isinstance(config_dict['environment'], str):
            config_dict['environment'] = Environment(config_dict['environment'])

        self._config = AppConfig(**config_dict)
        return self._config

    def override_setting(self, key: str, value: Any) -> 'ConfigurationFactory':
        """
        Override a specific configuration setting.

        Args:
            key: Configuration key to override
            value: New value for the setting

        Returns:
            Self for method chaining
        """
        self._env_overrides[key] = value

        if self._config and hasattr(self._config, key):
            setattr(self._config, key, value)
            self._config._validate()

        return self

    def get_config(self) -> AppConfig:
        """
        Get the current configuration.

        Raises:
            ConfigError: If no configuration has been loaded
        """
        if self._config is None:
            raise ConfigError("Configuration not loaded. Call load_from_environment() or load_from_dict() first.")
        return self._config

    def is_loaded(self) -> bool:
        return self._config is not None

    def reset(self) -> 'ConfigurationFactory':
        """Reset the factory (useful for testing)"""
        self._config = None
        self._env_overrides.clear()
        return self

    def to_dict(self) -> Dict[str, Any]:
        """Convert current configuration to dictionary"""
        if self._config is None:
            raise ConfigError("Configuration not loaded")

        config_dict = {}
        for field_info in self._config.__dataclass_fields__.values():
            value = getattr(self._config, field_info.name)
            if isinstance(value, Environment):
                config_dict[field_info.name] = value.value
            else:
                config_dict[field_info.name] = value

        return config_dict

    def get_flask_config(self) -> Dict[str, Any]:
        """
        Get Flask-compatible configuration dictionary.

        Returns:
            Dictionary suitable for Flask app.config.update()
        """
        if self._config is None:
            raise ConfigError("Configuration not loaded")

        return {
            'SECRET_KEY': self._config.secret_key,
            'DEBUG': self._config.debug,
            'ENV': self._config.flask_env,
            'MAX_CONTENT_LENGTH': self._config.max_submission_bytes,
            'TEMPLATES_DIR': self._config.templates_dir,
        }


# Global factory instance
_config_factory = ConfigurationFactory()


def get_config() -> AppConfig:
    """Get the global application configuration"""
    return _config_factory.get_config()


def load_config(env_prefix: str = '') -> AppConfig:
    """Load configuration from environment variables"""
    return _config_factory.load_from_environment(env_prefix)


def load_config_from_dict(config_dict: Dict[str, Any]) -> AppConfig:
    """Load configuration from dictionary"""
    return _config_factory.load_from_dict(config_dict)


def override_config(key: str, value: Any) -> ConfigurationFactory:
    """Override a configuration setting"""
    return _config_factory.override_setting(key, value)


def reset_config() -> ConfigurationFactory:
    """Reset configuration (for testing)"""
    return _config_factory.reset()
