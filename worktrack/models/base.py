"""
Base Model Classes and Mixin Utilities for Flask-SQLAlchemy

Foundational model architecture shared by every entity in the system: the
global Flask-SQLAlchemy instance, the timestamp mixin and the serialization
helpers used by the HTTP layer.

Key Components:
- db: Flask-SQLAlchemy instance, bound to the application by the factory
- TimestampMixin: created_at / updated_at tracking
- BaseModel: abstract declarative base with to_dict() serialization
"""

import enum
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from flask_sqlalchemy import SQLAlchemy
from sqlalchemy import Column, DateTime
from sqlalchemy.ext.declarative import declared_attr
from sqlalchemy.orm import class_mapper

# Global SQLAlchemy instance (initialized by the application factory)
db = SQLAlchemy()


def utcnow() -> datetime:
    """Timezone-aware current UTC time."""
    return datetime.now(timezone.utc)


class TimestampMixin:
    """
    Mixin providing created_at / updated_at columns.

    Usage:
        class Team(BaseModel, TimestampMixin):
            __tablename__ = 'teams'
    """

    @declared_attr
    def created_at(cls):
        """Timestamp when the record was created."""
        return Column(DateTime(timezone=True), default=utcnow, nullable=False)

    @declared_attr
    def updated_at(cls):
        """Timestamp when the record was last updated."""
        return Column(DateTime(timezone=True), default=utcnow, onupdate=utcnow, nullable=False)


class BaseModel(db.Model):
    """
    Base model class providing common functionality for all models.

    Mark as abstract so SQLAlchemy doesn't create a table for this class.
    """

    __abstract__ = True

    def to_dict(self, exclude_fields: Optional[List[str]] = None) -> Dict[str, Any]:
        """
        Convert model instance to dictionary for JSON serialization.

        Only column attributes are serialized; relationships are left to the
        caller so that serialization never triggers unbounded lazy loads.

        Args:
            exclude_fields: Column names to leave out of the output

        Returns:
            Dictionary representation of the model
        """
        exclude_fields = exclude_fields or []
        result = {}

        for column in class_mapper(self.__class__).columns:
            if column.key in exclude_fields:
                continue
            result[column.key] = self._serialize_value(getattr(self, column.key, None))

        return result

    @staticmethod
    def _serialize_value(value: Any) -> Any:
        if isinstance(value, datetime):
            return value.isoformat()
        if isinstance(value, enum.Enum):
            return value.value
        return value

    def __repr__(self):
        return f"<{self.__class__.__name__} {getattr(self, 'id', None)}>"
