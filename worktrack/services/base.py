"""
Base Service Layer Implementation

Foundational base class for every service. Provides the Flask-SQLAlchemy
session, the persistence-failure translation every resolver relies on, the
transaction boundary used by administrative writes, and the identity guard
that refuses to evaluate anything for an anonymous caller.

Key Features:
- Service Layer pattern with injector-managed singletons
- SQLAlchemyError → PersistenceError translation (never allow, never deny)
- Transaction boundary control with rollback on failure
"""

from contextlib import contextmanager
from functools import wraps
from typing import Any, Callable, Optional, Type, TypeVar

import structlog
from flask import current_app, has_app_context
from flask_sqlalchemy import SQLAlchemy
from injector import inject
from sqlalchemy.exc import SQLAlchemyError

from ..utils.error_handling import AuthenticationError, BaseApplicationError, PersistenceError

T = TypeVar("T")
ServiceType = TypeVar("ServiceType", bound="BaseService")

logger = structlog.get_logger("services")


def propagate_persistence_errors(func: Callable[..., T]) -> Callable[..., T]:
    """
    Decorator translating SQLAlchemy failures into PersistenceError.

    The failed session is rolled back so the caller's next attempt starts
    from a clean transaction.
    """

    @wraps(func)
    def wrapper(self, *args, **kwargs) -> T:
        try:
            return func(self, *args, **kwargs)
        except SQLAlchemyError as e:
            self.logger.error(
                "Persistence failure",
                operation=func.__name__,
                error_type=type(e).__name__,
                error=str(e),
            )
            self.session.rollback()
            raise PersistenceError(
                f"Persistence failure in {self.__class__.__name__}.{func.__name__}",
                details={'operation': func.__name__},
                original_error=e,
            ) from e

    return wrapper


def require_identity(user_id: Any, parameter: str = 'user_id') -> None:
    """Refuse to evaluate for an anonymous caller."""
    if user_id is None:
        raise AuthenticationError(
            "No caller identity available",
            details={'parameter': parameter},
        )


class BaseService:
    """
    Base class for all business logic services.

    Services are constructed by the injector with the Flask-SQLAlchemy
    instance and hold no per-request state: every call reads through the
    scoped session of the current application context.
    """

    @inject
    def __init__(self, db: SQLAlchemy):
        """
        Initialize base service with Flask-SQLAlchemy database instance.

        Args:
            db: Flask-SQLAlchemy database instance for session management
        """
        self.db = db
        self.logger = structlog.get_logger(self.__class__.__module__)

    @property
    def session(self):
        """Current SQLAlchemy session of the application context."""
        return self.db.session

    @contextmanager
    def transaction_boundary(self):
        """
        Context manager committing on success and rolling back on failure.

        Application errors raised inside the block propagate unchanged; raw
        SQLAlchemy failures surface as PersistenceError.
        """
        try:
            yield self.session
            self.session.commit()
        except BaseApplicationError:
            self.session.rollback()
            raise
        except SQLAlchemyError as e:
            self.logger.error("Rolling back transaction", error=str(e))
            self.session.rollback()
            raise PersistenceError("Transaction failed", original_error=e) from e

    def compose_service(self, service_class: Type[ServiceType]) -> ServiceType:
        """
        Resolve a collaborating service through the application's injector.

        Outside an application context the collaborator is built directly on
        the same database handle.
        """
        if has_app_context() and hasattr(current_app, 'injector'):
            return current_app.injector.get(service_class)
        return service_class(self.db)


def get_service(service_class: Type[ServiceType], app: Optional[Any] = None) -> ServiceType:
    """
    Retrieve a service singleton from the application's injector.

    Args:
        service_class: Service class to resolve
        app: Flask application, defaults to current_app

    Returns:
        Service instance
    """
    app = app or current_app
    return app.injector.get(service_class)
