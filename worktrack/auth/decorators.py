"""
Flask Authorization Decorators

Route-level enforcement of the permission and accessibility checks:

    @api_bp.route('/users/<int:user_id>')
    @require_user_access('read', 'user_id')
    def get_user(user_id): ...

    @api_bp.route('/work-logs')
    @require_permission('work_logs', 'read')
    def list_work_logs(): ...

A False answer from the resolvers becomes AuthorizationError (403); a missing
identity becomes AuthenticationError (401). Persistence failures propagate
unchanged as PersistenceError (503).
"""

from functools import wraps
from typing import Callable

from flask_login import current_user

from ..services import AccessService, DirectoryService, PermissionService, get_service
from ..utils.error_handling import AuthenticationError, AuthorizationError, ValidationError


def require_auth(f: Callable) -> Callable:
    """Reject the request unless Flask-Login resolved a user."""

    @wraps(f)
    def decorated_function(*args, **kwargs):
        if not current_user.is_authenticated:
            raise AuthenticationError("Authentication required")
        return f(*args, **kwargs)

    return decorated_function


def require_permission(resource: str, action: str) -> Callable:
    """
    Require ``resource.action`` for the current user.

    Args:
        resource: Resource family, e.g. 'work_logs'
        action: Action, e.g. 'read'
    """

    def decorator(f: Callable) -> Callable:
        @wraps(f)
        @require_auth
        def decorated_function(*args, **kwargs):
            allowed = get_service(PermissionService).has_permission(current_user.id, resource, action)
            if not allowed:
                raise AuthorizationError(
                    f"Permission '{resource}.{action}' required",
                    details={'resource': resource, 'action': action},
                )
            return f(*args, **kwargs)

        return decorated_function

    return decorator


def require_user_access(action: str, param: str = 'user_id') -> Callable:
    """
    Require ``users.<action>`` and visibility of the user named by a path parameter.

    A target that does not exist is reported as 404 before access is decided.

    Args:
        action: Action on the users resource ('read', 'update', ...)
        param: View keyword argument carrying the target user id
    """

    def decorator(f: Callable) -> Callable:
        @wraps(f)
        @require_auth
        def decorated_function(*args, **kwargs):
            if param not in kwargs:
                raise ValidationError(f"Missing path parameter '{param}'")
            target_user_id = kwargs[param]
            get_service(DirectoryService).get_user(target_user_id)

            allowed = get_service(AccessService).can_access_user(current_user.id, target_user_id, action)
            if not allowed:
                raise AuthorizationError(
                    "You do not have access to this user",
                    details={'action': action, 'target_user_id': target_user_id},
                )
            return f(*args, **kwargs)

        return decorated_function

    return decorator
