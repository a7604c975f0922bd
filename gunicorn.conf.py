"""
Gunicorn configuration for MimClash application.
Optimized for Socket.IO with eventlet workers.
"""

import sys
import logging
import yaml
from mimclash.card_catalog import CardCatalog, CardCatalogError


def on_starting(server):
    """
    Server hook that runs when the master process is starting.
    Validates the situation card catalog before workers are forked; if it is
    broken the server does not start.
    """
    logger = logging.getLogger(__name__)
    logger.info("Validating card catalog before starting workers...")
    try:
        card_catalog = CardCatalog(app_config.cards_file or None)
        card_catalog.load_cards_from_yaml()
        if card_catalog.get_card_count() == 0:
            raise CardCatalogError("Card file is empty or contains no cards.")
        logger.info(f"Successfully validated and loaded {card_catalog.get_card_count()} cards.")
    except (FileNotFoundError, yaml.YAMLError, CardCatalogError) as e:
        logger.critical(f"FATAL: Card file validation failed. Server shutting down. Error: {e}")
        sys.exit(1)


from config_factory import load_config

# Load configuration (renamed to avoid conflicts with gunicorn's internal 'config')
app_config = load_config()

# Server socket
bind = f"{app_config.host}:{app_config.port}"
backlog = 2048

# Worker processes
workers = 1  # Must be 1: rooms and timers live in process memory
worker_class = "eventlet"
worker_connections = app_config.worker_connections
timeout = app_config.timeout
keepalive = app_config.keepalive

# Logging
accesslog = "-"
errorlog = "-"
loglevel = app_config.log_level
access_log_format = '%(h)s %(l)s %(u)s %(t)s "%(r)s" %(s)s %(b)s "%(f)s" "%(a)s"'

# Process naming
proc_name = "mimclash"

# Server mechanics
preload_app = False  # Don't preload for Socket.IO
daemon = False
pidfile = None
user = None
group = None
tmp_upload_dir = None

# SSL (for production)
keyfile = None
certfile = None
