"""
Worktrack Access Package

Authorization and data-scoping engine for the multi-tenant work-tracking
platform, packaged as a Flask application with a Service Layer.

Package Components:
- models: Flask-SQLAlchemy declarative models (membership graph, RBAC catalog,
  access level registry, work logs)
- services: permission, scope, data-scope and accessibility resolvers plus the
  scoped directory and administrative services built on them
- auth: bearer token handling and route protection decorators
- blueprints: HTTP surface
- utils: structured logging and error handling
"""

__version__ = "1.0.0"
__description__ = "Authorization and data-scoping engine for multi-tenant work tracking"

from .app import create_app

__all__ = [
    "__version__",
    "__description__",
    "create_app",
]
