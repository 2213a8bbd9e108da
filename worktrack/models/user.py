"""
User Model

Users belong to zero or one organization, report to zero or one manager and
hold team/project memberships, role assignments, direct permission grants and
access levels. Flask-Login integration comes from UserMixin.
"""

from typing import Any, Dict

from flask_login import UserMixin
from sqlalchemy import Boolean, Column, ForeignKey, Integer, String
from sqlalchemy.orm import relationship, validates

from .base import BaseModel, TimestampMixin


class User(BaseModel, TimestampMixin, UserMixin):
    """
    Platform user.

    Attributes:
        id: Primary key
        email: Unique login e-mail
        first_name / last_name / display_name: Naming fields
        organization_id: Tenant the user belongs to (optional)
        manager_id: Self-referential reporting line (optional)
        is_active: Status flag; inactive users cannot authenticate
    """

    __tablename__ = 'users'

    id = Column(Integer, primary_key=True)
    email = Column(String(255), unique=True, nullable=False, index=True)
    first_name = Column(String(100), nullable=True)
    last_name = Column(String(100), nullable=True)
    display_name = Column(String(200), nullable=True)
    title = Column(String(100), nullable=True)
    organization_id = Column(
        Integer, ForeignKey('organizations.id', ondelete='SET NULL'), nullable=True, index=True
    )
    manager_id = Column(Integer, ForeignKey('users.id', ondelete='SET NULL'), nullable=True)
    is_active = Column(Boolean, default=True, nullable=False)

    organization = relationship('Organization', back_populates='users')
    manager = relationship('User', remote_side=[id], back_populates='subordinates')
    subordinates = relationship('User', back_populates='manager')

    team_memberships = relationship(
        'TeamMember', back_populates='user', cascade='all, delete-orphan'
    )
    project_memberships = relationship(
        'ProjectMember', back_populates='user', cascade='all, delete-orphan'
    )
    role_assignments = relationship(
        'UserRole', back_populates='user', cascade='all, delete-orphan'
    )
    permission_grants = relationship(
        'UserPermission', back_populates='user', cascade='all, delete-orphan'
    )
    access_levels = relationship(
        'UserAccessLevel', back_populates='user', cascade='all, delete-orphan'
    )
    work_logs = relationship('WorkLog', foreign_keys='WorkLog.user_id', back_populates='user')

    @validates('email')
    def validate_email(self, key, email):
        if not email or '@' not in email:
            raise ValueError("A valid e-mail address is required")
        return email.strip().lower()

    @property
    def full_name(self) -> str:
        if self.display_name:
            return self.display_name
        return ' '.join(part for part in (self.first_name, self.last_name) if part) or self.email

    def to_dict(self, exclude_fields=None) -> Dict[str, Any]:
        result = super().to_dict(exclude_fields=exclude_fields)
        result['full_name'] = self.full_name
        return result
