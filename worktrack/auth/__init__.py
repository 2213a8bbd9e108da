"""
Authentication package.

Flask-Login resolves the caller from an ``Authorization: Bearer <token>``
header on every request; there are no server-side sessions.
"""

from typing import Optional

from flask import Flask, Request, g
from flask_login import LoginManager

from ..models import User, db
from ..utils.error_handling import AuthenticationError
from ..utils.logging import bind_user
from .decorators import require_auth, require_permission, require_user_access
from .tokens import issue_token, verify_token

login_manager = LoginManager()

BEARER_PREFIX = 'Bearer '


def _active_user(user_id) -> Optional[User]:
    user = db.session.get(User, int(user_id))
    if user is None or not user.is_active:
        return None
    return user


@login_manager.user_loader
def load_user(user_id: str) -> Optional[User]:
    return _active_user(user_id)


@login_manager.request_loader
def load_user_from_request(request: Request) -> Optional[User]:
    header = request.headers.get('Authorization', '')
    if not header.startswith(BEARER_PREFIX):
        return None

    user_id = verify_token(header[len(BEARER_PREFIX):].strip())
    if user_id is None:
        return None

    user = _active_user(user_id)
    if user is not None:
        bind_user(user.id)
    return user


@login_manager.unauthorized_handler
def unauthorized():
    raise AuthenticationError("Authentication required")


def _reset_loaded_user() -> None:
    # Flask-Login caches the user on g, which outlives a request when the
    # application context is shared.
    g.pop('_login_user', None)


def init_auth(app: Flask) -> None:
    """Attach Flask-Login to the application."""
    login_manager.init_app(app)
    app.before_request(_reset_loaded_user)


__all__ = [
    'init_auth',
    'issue_token',
    'login_manager',
    'require_auth',
    'require_permission',
    'require_user_access',
    'verify_token',
]
