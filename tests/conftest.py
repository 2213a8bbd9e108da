"""
Pytest Configuration and Fixtures

Application, database and client fixtures plus service accessors. Each test
gets a fresh application on an in-memory SQLite database whose tables are
created before and dropped after the test, so no state leaks between tests.
"""

from typing import Dict

import pytest
from sqlalchemy.exc import OperationalError
from sqlalchemy.orm import Session

from worktrack import create_app
from worktrack.auth import issue_token
from worktrack.models import User, db
from worktrack.services import (
    AccessService, AdminService, CatalogService, DataScopeService, DirectoryService,
    PermissionService, ScopeService, get_service
)


def pytest_collection_modifyitems(config, items):
    """Mark tests by directory."""
    for item in items:
        path = str(item.fspath)
        if '/unit/' in path:
            item.add_marker(pytest.mark.unit)
        elif '/integration/' in path:
            item.add_marker(pytest.mark.integration)


# =============================================================================
# APPLICATION FIXTURES
# =============================================================================

@pytest.fixture
def app():
    """Flask application with TestingConfig and freshly created tables."""
    app = create_app('testing')
    with app.app_context():
        db.create_all()
        yield app
        db.session.remove()
        db.drop_all()


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def runner(app):
    return app.test_cli_runner()


@pytest.fixture
def db_session(app):
    return db.session


# =============================================================================
# SERVICE FIXTURES
# =============================================================================

@pytest.fixture
def permission_service(app) -> PermissionService:
    return get_service(PermissionService)


@pytest.fixture
def scope_service(app) -> ScopeService:
    return get_service(ScopeService)


@pytest.fixture
def data_scope_service(app) -> DataScopeService:
    return get_service(DataScopeService)


@pytest.fixture
def access_service(app) -> AccessService:
    return get_service(AccessService)


@pytest.fixture
def directory_service(app) -> DirectoryService:
    return get_service(DirectoryService)


@pytest.fixture
def admin_service(app) -> AdminService:
    return get_service(AdminService)


@pytest.fixture
def catalog_service(app) -> CatalogService:
    return get_service(CatalogService)


# =============================================================================
# AUTHENTICATION AND FAILURE HELPERS
# =============================================================================

@pytest.fixture
def auth_headers(app):
    """Build bearer headers for a user."""

    def _auth_headers(user: User) -> Dict[str, str]:
        return {'Authorization': f'Bearer {issue_token(user.id)}'}

    return _auth_headers


@pytest.fixture
def broken_database(monkeypatch):
    """Make every ORM statement fail as if the database went away."""

    def _raise_operational_error(self, *args, **kwargs):
        raise OperationalError("SELECT", {}, Exception("database is unavailable"))

    def _break():
        monkeypatch.setattr(Session, 'execute', _raise_operational_error)

    return _break
