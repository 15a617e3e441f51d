"""
Cool cell scheduler API package.
Split into smaller modules by entity for maintainability.
"""

from flask import Blueprint, current_app

from models.exceptions import CoolCellError
from utils.api_response import api_error, api_success

# Create the API blueprint
api_bp = Blueprint('api', __name__)


@api_bp.errorhandler(CoolCellError)
def handle_scheduler_error(error):
    """Render scheduler errors with their code and structured details."""
    return api_error(error.message, status=error.status_code, **error.to_dict())


@api_bp.route('/health')
def health_check():
    """
    Health check endpoint (no authentication required).

    Returns:
        JSON with status and version
    """
    return api_success(data={
        'status': 'ok',
        'version': current_app.config.get('APP_VERSION', '1.0.0'),
        'app': current_app.config.get('APP_NAME', 'Koelcelplanning')
    })


# Import and register routes from submodules
from blueprints.api import availability
from blueprints.api import cells
from blueprints.api import day_blocks
from blueprints.api import reservations

# Register all route functions on the blueprint
availability.register_routes(api_bp)
cells.register_routes(api_bp)
day_blocks.register_routes(api_bp)
reservations.register_routes(api_bp)
