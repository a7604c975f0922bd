"""
MimClash - a multiplayer meme battle: players caption the same situation card,
vote for the funniest meme, and score by the votes they receive.
Main Flask application entry point focusing on app creation, dependency injection, and service wiring.
"""

from flask import Flask
from flask_socketio import SocketIO
import os
import logging
import atexit
import sys
import yaml

from container import configure_container
from config_factory import load_config, ConfigurationFactory
from mimclash.card_catalog import CardCatalogError
from mimclash.config.game_config import get_game_config
from mimclash.services.rate_limit_service import EventQueueManager, set_event_queue_manager

# Initialize Flask app
app = Flask(__name__)

# Load and apply configuration
app_config = load_config()
config_factory = ConfigurationFactory()
app.config.update(config_factory.get_flask_config())
get_game_config(app_config)

# In production, restrict to explicitly allowed origins from env var SOCKETIO_CORS_ALLOWED_ORIGINS (comma-separated)
allowed_origins_env = os.environ.get('SOCKETIO_CORS_ALLOWED_ORIGINS', '')
if app_config.is_production:
    _cors_allowed = [o.strip() for o in allowed_origins_env.split(',') if o.strip()]
    socketio = SocketIO(app, cors_allowed_origins=_cors_allowed or [], async_mode='eventlet',
                        max_http_buffer_size=app_config.max_submission_bytes)
else:
    # Development/testing: permissive for local workflows
    socketio = SocketIO(app, cors_allowed_origins="*", async_mode='eventlet',
                        max_http_buffer_size=app_config.max_submission_bytes)

# Configure logging
logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)

# Configure service container with dependencies
container = configure_container(socketio=socketio, config=config_factory.to_dict())

# Initialize rate limiting
set_event_queue_manager(EventQueueManager.from_config(app_config))

# Load situation cards on startup
card_catalog = container.get('CardCatalog')
try:
    card_catalog.load_cards_from_yaml()
    logger.info(f"Loaded {card_catalog.get_card_count()} situation cards from YAML")
except (FileNotFoundError, yaml.YAMLError, CardCatalogError) as e:
    logger.critical(f"FATAL: Card file validation failed, which is critical for game play. Server shutting down. Error: {e}")
    sys.exit(1)

# Register REST endpoints
from mimclash.routes.api import create_api_blueprint
api_blueprint = create_api_blueprint(
    container.get('RoomManager'), card_catalog, app_config.templates_dir
)
app.register_blueprint(api_blueprint)

# Register Socket.IO handlers
from mimclash.handlers.socket_handlers import register_socket_handlers
register_socket_handlers(socketio)

# Room heartbeat (tests drive heartbeats by hand)
if not (app_config.is_testing or os.environ.get('TESTING') == '1'):
    container.get('HeartbeatService').start()


def cleanup_on_exit():
    """Stop the heartbeat and cancel pending phase timers on application exit."""
    logger.info("Shutting down MimClash server...")
    if container.has_service('HeartbeatService'):
        container.get('HeartbeatService').stop()
    configured = container.has_service('PhaseScheduler')
    if configured:
        container.get('PhaseScheduler').shutdown()


atexit.register(cleanup_on_exit)

if __name__ == '__main__':
    logger.info(f"Starting MimClash server on {app_config.host}:{app_config.port}")
    try:
        socketio.run(app, host=app_config.host, port=app_config.port, debug=app_config.debug)
    except KeyboardInterrupt:
        logger.info("Received interrupt signal")
    finally:
        cleanup_on_exit()
