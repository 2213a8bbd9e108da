"""
Structured Logging Utilities for Flask Application

Configures structlog for the application factory and binds per-request
context (request id, correlation id, authenticated user) through
structlog.contextvars so every log line emitted while serving a request
carries it.

Key Features:
- Structured JSON logging with Python structlog library
- Pretty console output in development
- Request correlation through the X-Correlation-ID header
- Standard library logging routed through the same level
"""

import logging
import sys
import uuid
from enum import Enum
from typing import Any, Dict, Optional

import structlog
from flask import Flask, g, request

CORRELATION_HEADER = 'X-Correlation-ID'


class LogCategory(Enum):
    """Log categories for routing and filtering."""
    APPLICATION = "application"
    SECURITY = "security"
    AUTHORIZATION = "authorization"
    DATABASE = "database"
    INFRASTRUCTURE = "infrastructure"


def _resolve_level(level_name: str) -> int:
    level = logging.getLevelName(str(level_name).upper())
    return level if isinstance(level, int) else logging.INFO


def configure_structlog(level_name: str = 'INFO', log_format: str = 'json') -> None:
    """
    Configure structlog processors.

    Args:
        level_name: Minimum level name (DEBUG, INFO, ...)
        log_format: 'json' for production output, 'console' for development
    """
    shared_processors = [
        structlog.contextvars.merge_contextvars,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.add_log_level,
        structlog.processors.StackInfoRenderer(),
        structlog.dev.set_exc_info,
    ]

    if log_format == 'console':
        processors = shared_processors + [structlog.dev.ConsoleRenderer(colors=False)]
    else:
        processors = shared_processors + [
            structlog.processors.format_exc_info,
            structlog.processors.JSONRenderer(),
        ]

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.make_filtering_bound_logger(_resolve_level(level_name)),
        logger_factory=structlog.PrintLoggerFactory(sys.stdout),
        cache_logger_on_first_use=False,
    )


def _bind_request_context() -> None:
    """Set up logging context for each Flask request."""
    g.request_id = str(uuid.uuid4())
    g.correlation_id = request.headers.get(CORRELATION_HEADER) or g.request_id

    structlog.contextvars.clear_contextvars()
    structlog.contextvars.bind_contextvars(
        request_id=g.request_id,
        correlation_id=g.correlation_id,
        method=request.method,
        path=request.path,
    )


def _clear_request_context(exception=None) -> None:
    structlog.contextvars.clear_contextvars()


def _echo_correlation_id(response):
    correlation_id = getattr(g, 'correlation_id', None)
    if correlation_id:
        response.headers[CORRELATION_HEADER] = correlation_id
    return response


def bind_user(user_id: Optional[int]) -> None:
    """Attach the authenticated user id to the request's log context."""
    g.user_id = user_id
    structlog.contextvars.bind_contextvars(user_id=user_id)


def get_logger(name: str = "worktrack") -> structlog.stdlib.BoundLogger:
    """Get a named structured logger."""
    return structlog.get_logger(name)


def log_authorization_decision(user_id: Any, resource: str, action: str, allowed: bool,
                               details: Optional[Dict[str, Any]] = None) -> None:
    """Emit an authorization outcome; denials are logged at info, grants at debug."""
    logger = get_logger("authorization")
    payload = {
        'category': LogCategory.AUTHORIZATION.value,
        'user_id': user_id,
        'resource': resource,
        'action': action,
        'allowed': allowed,
        **(details or {}),
    }
    if allowed:
        logger.debug("Authorization granted", **payload)
    else:
        logger.info("Authorization denied", **payload)


def configure_logging(app: Flask) -> None:
    """
    Initialize structured logging for the Flask application factory.

    Args:
        app: Flask application instance
    """
    level_name = app.config.get('LOG_LEVEL', 'INFO')
    configure_structlog(level_name, app.config.get('LOG_FORMAT', 'json'))

    root_logger = logging.getLogger()
    if not any(getattr(h, '_worktrack', False) for h in root_logger.handlers):
        handler = logging.StreamHandler(sys.stdout)
        handler.setFormatter(logging.Formatter('%(asctime)s - %(name)s - %(levelname)s - %(message)s'))
        handler._worktrack = True
        root_logger.addHandler(handler)
    root_logger.setLevel(_resolve_level(level_name))

    app.before_request(_bind_request_context)
    app.after_request(_echo_correlation_id)
    app.teardown_request(_clear_request_context)

    get_logger(LogCategory.INFRASTRUCTURE.value).info(
        "Structured logging initialized",
        level=level_name,
        format=app.config.get('LOG_FORMAT', 'json'),
    )
