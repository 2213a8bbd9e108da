"""
Error handling and exception management utilities for Flask application.

This module provides:
- Custom exception hierarchy separating unauthenticated, forbidden,
  persistence and input failures
- Flask error handlers rendering every failure in one JSON envelope
- Retryability flag so callers can tell transient persistence failures from
  terminal denials

Integration Points:
- Application factory registers handlers through register_error_handlers()
- Service layer raises PersistenceError for every failed read
- Route decorators raise AuthenticationError / AuthorizationError
"""

import uuid
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, Optional

from flask import Flask, current_app, g, jsonify
from werkzeug.exceptions import HTTPException

from .logging import get_logger

logger = get_logger("error_handler")


class ErrorCategory(Enum):
    """Error categories for classification and handling."""
    VALIDATION = "validation"
    AUTHENTICATION = "authentication"
    AUTHORIZATION = "authorization"
    NOT_FOUND = "not_found"
    BUSINESS_RULE = "business_rule"
    PERSISTENCE = "persistence"
    SYSTEM = "system"


# ==================== CUSTOM EXCEPTION HIERARCHY ====================

class BaseApplicationError(Exception):
    """
    Base exception class for all application-specific errors.

    Carries the HTTP status the error maps to, a stable error code, whether a
    caller may retry, and a correlation id for log lookup.
    """

    status_code = 500
    category = ErrorCategory.SYSTEM
    retryable = False
    default_message = "An error occurred while processing your request"

    def __init__(self, message: Optional[str] = None, error_code: Optional[str] = None,
                 details: Optional[Dict[str, Any]] = None,
                 original_error: Optional[Exception] = None):
        self.message = message or self.default_message
        super().__init__(self.message)
        self.error_code = error_code or self.__class__.__name__
        self.details = details or {}
        self.original_error = original_error
        self.correlation_id = str(uuid.uuid4())
        self.timestamp = datetime.now(timezone.utc)

    def to_dict(self) -> Dict[str, Any]:
        """Convert exception to dictionary format for logging."""
        return {
            'error_code': self.error_code,
            'message': self.message,
            'category': self.category.value,
            'status_code': self.status_code,
            'retryable': self.retryable,
            'correlation_id': self.correlation_id,
            'timestamp': self.timestamp.isoformat(),
            'details': self.details,
            'original_error': repr(self.original_error) if self.original_error else None,
        }


class ValidationError(BaseApplicationError):
    """Raised when input validation fails."""
    status_code = 400
    category = ErrorCategory.VALIDATION
    default_message = "Please check your input and try again"


class AuthenticationError(BaseApplicationError):
    """Raised when no caller identity is available."""
    status_code = 401
    category = ErrorCategory.AUTHENTICATION
    default_message = "Authentication required"


class AuthorizationError(BaseApplicationError):
    """Raised by routing when a permission or accessibility check returns False."""
    status_code = 403
    category = ErrorCategory.AUTHORIZATION
    default_message = "You don't have permission to access this resource"


class NotFoundError(BaseApplicationError):
    """Raised when a referenced record does not exist."""
    status_code = 404
    category = ErrorCategory.NOT_FOUND
    default_message = "Resource not found"


class BusinessRuleError(BaseApplicationError):
    """Raised when a protected catalog entry would be modified."""
    status_code = 422
    category = ErrorCategory.BUSINESS_RULE
    default_message = "Business rule validation failed"


class PersistenceError(BaseApplicationError):
    """
    Raised when a read or write against the persistence layer fails.

    Never interpreted as allow or deny; callers may retry.
    """
    status_code = 503
    category = ErrorCategory.PERSISTENCE
    retryable = True
    default_message = "A database error occurred. Please try again later"


# ==================== FLASK INTEGRATION ====================

def _error_body(message: str, status_code: int, error_code: str, retryable: bool,
                correlation_id: str, details: Any = None) -> Dict[str, Any]:
    body = {
        'success': False,
        'message': message,
        'error': {
            'code': error_code,
            'status': status_code,
            'retryable': retryable,
            'correlation_id': correlation_id,
        },
    }
    if details:
        body['error']['details'] = details
    return body


def _handle_application_error(error: BaseApplicationError):
    log = logger.error if error.status_code >= 500 else logger.warning
    log(f"Application error: {error.error_code}", **error.to_dict())

    details = error.details if current_app.debug or error.status_code < 500 else None
    correlation_id = getattr(g, 'correlation_id', None) or error.correlation_id
    return jsonify(_error_body(
        error.message, error.status_code, error.error_code, error.retryable,
        correlation_id, details,
    )), error.status_code


def _handle_http_error(error: HTTPException):
    correlation_id = getattr(g, 'correlation_id', None) or str(uuid.uuid4())
    return jsonify(_error_body(
        error.description or error.name, error.code, f'HTTP_{error.code}', False, correlation_id,
    )), error.code


def _handle_unexpected_error(error: Exception):
    correlation_id = getattr(g, 'correlation_id', None) or str(uuid.uuid4())
    logger.critical(
        "Unhandled exception",
        error_type=type(error).__name__,
        error_message=str(error),
        correlation_id=correlation_id,
        exc_info=True,
    )
    return jsonify(_error_body(
        'An unexpected error occurred. Please try again later.', 500, 'INTERNAL_ERROR',
        False, correlation_id,
    )), 500


def register_error_handlers(app: Flask) -> None:
    """Register JSON error handlers with the application factory."""
    app.register_error_handler(BaseApplicationError, _handle_application_error)
    app.register_error_handler(HTTPException, _handle_http_error)
    if not app.testing:
        app.register_error_handler(Exception, _handle_unexpected_error)
