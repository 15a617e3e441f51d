"""
Koelcelplanning - Cold-storage cell scheduler
Flask application factory and initialization
"""

import os
import click
import logging
from flask import Flask, g
from dotenv import load_dotenv

# Load environment variables
load_dotenv()

# Import configuration
from config import config

# Import extensions
from extensions import login_manager

# Import database functions
from database import close_db, init_db

from utils.api_response import IsoJSONProvider, api_error


def create_app(config_name=None):
    """
    Application factory for Flask app.

    Args:
        config_name: Configuration name ('development', 'production', 'test')

    Returns:
        Flask application instance
    """
    # Determine config
    if config_name is None:
        config_name = os.environ.get('FLASK_ENV', 'development')

    # Create Flask app
    app = Flask(__name__)

    # Load configuration
    config_class = config.get(config_name, config['default'])
    if hasattr(config_class, 'validate'):
        config_class.validate()
    app.config.from_object(config_class)

    # ISO-8601 dates in every JSON response
    app.json = IsoJSONProvider(app)
    app.json.sort_keys = app.config.get('JSON_SORT_KEYS', False)

    # Initialize extensions
    initialize_extensions(app)

    # Register blueprints
    register_blueprints(app)

    # Register error handlers
    register_error_handlers(app)

    # Register CLI commands
    register_cli_commands(app)

    # Register teardown handlers
    register_teardown_handlers(app)

    # Configure logging
    configure_logging(app)

    # Audit subscribers on the domain signals
    from utils.audit import register_audit_subscribers
    register_audit_subscribers()

    return app


def initialize_extensions(app):
    """Initialize Flask extensions."""
    # Initialize Flask-Login
    login_manager.init_app(app)


def register_blueprints(app):
    """Register Flask blueprints."""
    from blueprints.api import api_bp

    app.register_blueprint(api_bp, url_prefix='/api')


def register_error_handlers(app):
    """Register error handlers."""

    @app.errorhandler(404)
    def not_found_error(error):
        """Handle 404 errors."""
        return api_error('Niet gevonden', status=404, code='not_found')

    @app.errorhandler(405)
    def method_not_allowed_error(error):
        """Handle 405 errors."""
        return api_error('Methode niet toegestaan', status=405, code='method_not_allowed')

    @app.errorhandler(500)
    def internal_error(error):
        """Handle 500 errors."""
        # Rollback database on error
        db = g.get('db')
        if db:
            db.rollback()
        return api_error('Interne serverfout', status=500, code='internal_error')


def register_cli_commands(app):
    """Register Flask CLI commands."""

    @app.cli.command('init-db')
    def init_db_command():
        """Initialize database with schema and seed data."""
        click.echo('Initializing database...')
        with app.app_context():
            init_db()
        click.echo('Database initialized successfully!')

    @app.cli.command('create-cells')
    @click.argument('facility_id')
    @click.argument('prefix')
    @click.argument('count', type=int)
    def create_cells_command(facility_id, prefix, count):
        """Create a numbered batch of cells for a facility."""
        from models.cool_cell import create_cool_cell_batch
        from models.exceptions import CoolCellError

        with app.app_context():
            try:
                cells = create_cool_cell_batch(facility_id, prefix, count, created_by='cli')
            except CoolCellError as e:
                raise click.ClickException(e.message)
            for cell in cells:
                click.echo(f"{cell['id']}\t{cell['label']}")
        click.echo(f'{len(cells)} cells created for {facility_id}')

    @app.cli.command('block-day')
    @click.argument('facility_id')
    @click.argument('block_date')
    @click.argument('reason')
    def block_day_command(facility_id, block_date, reason):
        """Block a facility for one day (force majeure)."""
        from models.day_block import block_day
        from models.exceptions import CoolCellError

        with app.app_context():
            try:
                block = block_day(facility_id, block_date, reason, created_by='cli')
            except CoolCellError as e:
                raise click.ClickException(e.message)
        click.echo(f"Facility {facility_id} blocked on {block['block_date']} (block {block['id']})")


def register_teardown_handlers(app):
    """Register teardown handlers."""

    @app.teardown_appcontext
    def teardown_db(error):
        """Close database connection at end of request."""
        close_db(error)


def configure_logging(app):
    """Configure application logging."""
    if not app.debug and not app.testing:
        # Production logging
        if not os.path.exists('logs'):
            os.mkdir('logs')

        file_handler = logging.FileHandler('logs/coolcell.log')
        file_handler.setFormatter(logging.Formatter(
            '%(asctime)s %(levelname)s %(name)s: %(message)s [in %(pathname)s:%(lineno)d]'
        ))
        file_handler.setLevel(logging.INFO)
        app.logger.addHandler(file_handler)
        logging.getLogger().addHandler(file_handler)
        logging.getLogger().setLevel(logging.INFO)

        app.logger.setLevel(logging.INFO)
        app.logger.info('Koelcelplanning startup')
    else:
        # Development logging
        app.logger.setLevel(logging.DEBUG)


# Create application instance for development server
if __name__ == '__main__':
    app = create_app()
    app.run(host='0.0.0.0', debug=True)
