"""
REST API endpoints for the MimClash application.
"""

import logging
import os

from flask import Blueprint, jsonify

logger = logging.getLogger(__name__)

TEMPLATE_EXTENSIONS = ('.jpg', '.jpeg', '.png', '.gif', '.webp')


def create_api_blueprint(room_manager, card_catalog, templates_dir):
    """Create the API Blueprint bound to the given services."""
    api = Blueprint('api', __name__)

    @api.route('/health')
    def health():
        return jsonify({'status': 'ok', 'rooms': room_manager.get_room_count()})

    @api.route('/api/categories')
    def categories():
        """Card categories with their cards, for the settings screen."""
        return jsonify({'categories': card_catalog.get_categories()})

    @api.route('/api/templates')
    def templates():
        """List the meme template images the editor can start from."""
        if not os.path.isdir(templates_dir):
            logger.warning(f'Templates directory not found: {templates_dir}')
            return jsonify({'templates': []})

        files = sorted(
            name for name in os.listdir(templates_dir)
            if name.lower().endswith(TEMPLATE_EXTENSIONS)
        )
        return jsonify({'templates': files})

    return api
