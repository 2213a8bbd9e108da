"""Cross-cutting utilities: structured logging and error handling."""

from .error_handling import (
    AuthenticationError, AuthorizationError, BaseApplicationError, BusinessRuleError,
    NotFoundError, PersistenceError, ValidationError, register_error_handlers
)
from .logging import configure_logging, get_logger

__all__ = [
    'AuthenticationError',
    'AuthorizationError',
    'BaseApplicationError',
    'BusinessRuleError',
    'NotFoundError',
    'PersistenceError',
    'ValidationError',
    'register_error_handlers',
    'configure_logging',
    'get_logger',
]
