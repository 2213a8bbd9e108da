"""
Flask Application Factory

Builds the WSGI application: configuration, structured logging,
Flask-SQLAlchemy, Flask-Login, the injector holding the service singletons,
JSON error handlers, blueprints and CLI commands.

Example:
    from worktrack import create_app
    app = create_app('development')
    app.run(debug=True)
"""

import os
from typing import Optional

import click
from flask import Flask
from injector import Injector
from werkzeug.middleware.proxy_fix import ProxyFix

from .auth import init_auth
from .blueprints import register_blueprints
from .config import get_config
from .models import db
from .services import CatalogService, configure_services, get_service
from .utils.error_handling import register_error_handlers
from .utils.logging import configure_logging, get_logger

logger = get_logger("app")


def register_cli_commands(app: Flask) -> None:
    """Register ``flask init-db`` and ``flask seed-catalog``."""

    @app.cli.command('init-db')
    def init_db_command():
        """Create all tables."""
        db.create_all()
        click.echo("Database tables created")

    @app.cli.command('seed-catalog')
    def seed_catalog_command():
        """Insert missing system roles and permissions."""
        created = get_service(CatalogService).seed_catalog()
        click.echo(
            f"Seeded {created['roles']} roles, {created['permissions']} permissions, "
            f"{created['role_permissions']} role grants"
        )


def create_app(config_name: Optional[str] = None) -> Flask:
    """
    Flask application factory.

    Args:
        config_name: 'development', 'testing' or 'production'; defaults to
            the FLASK_CONFIG environment variable, then 'development'

    Returns:
        Configured Flask application
    """
    config_name = config_name or os.environ.get('FLASK_CONFIG', 'development')

    app = Flask(__name__)
    app.wsgi_app = ProxyFix(app.wsgi_app, x_for=1, x_proto=1, x_host=1)

    config_class = get_config(config_name)
    app.config.from_object(config_class)
    config_class.init_app(app)

    configure_logging(app)

    db.init_app(app)
    init_auth(app)
    app.injector = Injector([configure_services])

    register_error_handlers(app)
    register_blueprints(app)
    register_cli_commands(app)

    logger.info(
        "Application created",
        config=config_class.__name__,
        debug=app.debug,
        testing=app.testing,
    )
    return app
