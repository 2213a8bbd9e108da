"""
Flask-SQLAlchemy model registry.

Importing this package registers every mapped class on the shared ``db``
metadata so that ``db.create_all()`` and relationship string lookups resolve.
"""

from .base import BaseModel, TimestampMixin, db, utcnow
from .organization import (
    MEMBERSHIP_ROLES, Organization, Project, ProjectMember, ProjectTeam, Team,
    TeamMember
)
from .rbac import (
    ADMIN, PRIVILEGED_ROLE_NAMES, SUPER_ADMIN, AccessLevel, Permission, Role,
    RolePermission, UserAccessLevel, UserPermission, UserRole
)
from .user import User
from .work_log import WorkLog

__all__ = [
    'db',
    'utcnow',
    'BaseModel',
    'TimestampMixin',
    'Organization',
    'Team',
    'Project',
    'TeamMember',
    'ProjectMember',
    'ProjectTeam',
    'MEMBERSHIP_ROLES',
    'User',
    'WorkLog',
    'ADMIN',
    'SUPER_ADMIN',
    'PRIVILEGED_ROLE_NAMES',
    'AccessLevel',
    'Permission',
    'Role',
    'RolePermission',
    'UserRole',
    'UserPermission',
    'UserAccessLevel',
]
