"""
Flask Blueprint Package Initialization

Blueprint Organization:
- api_bp: authorization-aware REST endpoints, mounted under API_PREFIX
- health_bp: health check, mounted under API_PREFIX
"""

from flask import Flask

from ..utils.logging import get_logger
from .api import api_bp
from .health import health_bp

logger = get_logger("blueprints")


def register_blueprints(app: Flask) -> None:
    """Register every blueprint under the configured API prefix."""
    prefix = app.config.get('API_PREFIX', '/api/v1')
    for blueprint in (api_bp, health_bp):
        app.register_blueprint(blueprint, url_prefix=prefix)
        logger.debug("Blueprint registered", blueprint=blueprint.name, url_prefix=prefix)


__all__ = ['api_bp', 'health_bp', 'register_blueprints']
