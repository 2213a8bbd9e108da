"""
Role-Based Access Control (RBAC) Models

Authorization catalog and per-user grants, implemented as Flask-SQLAlchemy
declarative classes. Provides many-to-many relationships between roles and
permissions through an association object, plus the user-side records the
resolvers read on every request.

The RBAC system supports:
- Granular permission management with (resource, action) identity
- Named role bundles with active status and system protection
- Direct per-user permission grants that bypass roles
- Per-user visibility access levels (INDIVIDUAL, TEAM, PROJECT, FULL_ACCESS)
- Two privileged role names that implicitly hold every permission
"""

import enum

from sqlalchemy import (
    Boolean, Column, DateTime, Enum, ForeignKey, Index, Integer, String,
    UniqueConstraint
)
from sqlalchemy.orm import relationship, validates

from .base import BaseModel, TimestampMixin, utcnow

SUPER_ADMIN = 'SUPER_ADMIN'
ADMIN = 'ADMIN'

# Holding an active assignment to an active role with one of these names
# bypasses the catalog entirely.
PRIVILEGED_ROLE_NAMES = frozenset({SUPER_ADMIN, ADMIN})


class AccessLevel(enum.Enum):
    """Visibility tiers a user can hold. ORGANIZATION is an alias of FULL_ACCESS."""
    INDIVIDUAL = 'INDIVIDUAL'
    TEAM = 'TEAM'
    PROJECT = 'PROJECT'
    FULL_ACCESS = 'FULL_ACCESS'
    ORGANIZATION = 'ORGANIZATION'


class Permission(BaseModel, TimestampMixin):
    """
    Permission identified by a (resource, action) pair.

    Attributes:
        id: Primary key
        name: Unique ``resource.action`` name
        resource: Resource family (e.g. 'users', 'work_logs')
        action: Action (e.g. 'read', 'assign_role')
        display_name: Human-readable label
        description: Human-readable description
        is_system: System permissions cannot be edited or deleted

    Database Indexes:
        - Unique constraint on (resource, action)
        - Unique index on name
    """

    __tablename__ = 'permissions'

    id = Column(Integer, primary_key=True)
    name = Column(String(100), unique=True, nullable=False, index=True)
    resource = Column(String(50), nullable=False, index=True)
    action = Column(String(50), nullable=False)
    display_name = Column(String(200), nullable=True)
    description = Column(String(500), nullable=True)
    is_system = Column(Boolean, default=False, nullable=False)

    role_grants = relationship(
        'RolePermission', back_populates='permission', cascade='all, delete-orphan'
    )

    __table_args__ = (
        UniqueConstraint('resource', 'action', name='uq_permission_resource_action'),
    )

    @validates('resource', 'action')
    def validate_identifier(self, key, value):
        """Resource and action are lowercase identifiers."""
        if not value or not value.strip():
            raise ValueError(f"Permission {key} cannot be empty")
        value = value.strip().lower()
        if len(value) > 50:
            raise ValueError(f"Permission {key} cannot exceed 50 characters")
        if not value.replace('_', '').isalnum():
            raise ValueError(
                f"Permission {key} can only contain alphanumeric characters and underscores"
            )
        return value

    @classmethod
    def create_permission(cls, resource: str, action: str, display_name: str = None,
                          description: str = None, is_system: bool = False) -> 'Permission':
        """
        Factory method to create a permission with the resource.action naming convention.

        Args:
            resource: Resource name (e.g. 'users')
            action: Action name (e.g. 'read')
            display_name: Optional label
            description: Optional description
            is_system: Whether the permission is protected

        Returns:
            New Permission instance
        """
        resource = resource.strip().lower()
        action = action.strip().lower()
        return cls(
            name=f"{resource}.{action}",
            resource=resource,
            action=action,
            display_name=display_name or f"{action.replace('_', ' ').title()} {resource.replace('_', ' ').title()}",
            description=description or f"Permission to {action} {resource}",
            is_system=is_system,
        )

    @property
    def key(self) -> str:
        return f"{self.resource}.{self.action}"

    def __repr__(self):
        return f"<Permission {self.key} (ID: {self.id})>"


class Role(BaseModel, TimestampMixin):
    """
    Named bundle of permissions.

    Attributes:
        id: Primary key
        name: Unique role name (e.g. 'MANAGER')
        display_name: Human-readable label
        description: Human-readable description
        is_system: System roles cannot be deactivated or deleted
        is_active: Inactive roles grant nothing
    """

    __tablename__ = 'roles'

    id = Column(Integer, primary_key=True)
    name = Column(String(100), unique=True, nullable=False, index=True)
    display_name = Column(String(200), nullable=True)
    description = Column(String(500), nullable=True)
    is_system = Column(Boolean, default=False, nullable=False)
    is_active = Column(Boolean, default=True, nullable=False, index=True)

    permission_grants = relationship(
        'RolePermission', back_populates='role', cascade='all, delete-orphan'
    )
    assignments = relationship('UserRole', back_populates='role', cascade='all, delete-orphan')

    @validates('name')
    def validate_name(self, key, name):
        """Validate role name format and constraints"""
        if not name or len(name.strip()) == 0:
            raise ValueError("Role name cannot be empty")
        if len(name) > 100:
            raise ValueError("Role name cannot exceed 100 characters")
        if not name.replace('_', '').replace('-', '').isalnum():
            raise ValueError("Role name can only contain alphanumeric characters, hyphens, and underscores")
        return name.strip().upper()

    @property
    def is_privileged(self) -> bool:
        return self.name in PRIVILEGED_ROLE_NAMES

    @property
    def permissions(self):
        return [grant.permission for grant in self.permission_grants]

    def __repr__(self):
        return f"<Role {self.name} (ID: {self.id}, Active: {self.is_active})>"


class RolePermission(BaseModel):
    """Association object linking a role to one permission."""

    __tablename__ = 'role_permissions'

    id = Column(Integer, primary_key=True)
    role_id = Column(Integer, ForeignKey('roles.id', ondelete='CASCADE'), nullable=False)
    permission_id = Column(Integer, ForeignKey('permissions.id', ondelete='CASCADE'), nullable=False)
    granted_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)

    role = relationship('Role', back_populates='permission_grants')
    permission = relationship('Permission', back_populates='role_grants')

    __table_args__ = (
        UniqueConstraint('role_id', 'permission_id', name='uq_role_permission_grant'),
        Index('idx_role_permissions_permission_id', 'permission_id'),
    )


class UserRole(BaseModel):
    """Assignment of a role to a user."""

    __tablename__ = 'user_roles'

    id = Column(Integer, primary_key=True)
    user_id = Column(Integer, ForeignKey('users.id', ondelete='CASCADE'), nullable=False)
    role_id = Column(Integer, ForeignKey('roles.id', ondelete='CASCADE'), nullable=False)
    is_active = Column(Boolean, default=True, nullable=False)
    granted_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)

    user = relationship('User', back_populates='role_assignments')
    role = relationship('Role', back_populates='assignments')

    __table_args__ = (
        UniqueConstraint('user_id', 'role_id', name='uq_user_role_assignment'),
        Index('idx_user_roles_user_active', 'user_id', 'is_active'),
    )


class UserPermission(BaseModel):
    """Direct grant of a single permission to a user, independent of roles."""

    __tablename__ = 'user_permissions'

    id = Column(Integer, primary_key=True)
    user_id = Column(Integer, ForeignKey('users.id', ondelete='CASCADE'), nullable=False)
    permission_id = Column(Integer, ForeignKey('permissions.id', ondelete='CASCADE'), nullable=False)
    is_active = Column(Boolean, default=True, nullable=False)
    granted_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)

    user = relationship('User', back_populates='permission_grants')
    permission = relationship('Permission')

    __table_args__ = (
        UniqueConstraint('user_id', 'permission_id', name='uq_user_permission_grant'),
        Index('idx_user_permissions_user_active', 'user_id', 'is_active'),
    )


class UserAccessLevel(BaseModel):
    """One visibility level held by a user. A user may hold several."""

    __tablename__ = 'user_access_levels'

    id = Column(Integer, primary_key=True)
    user_id = Column(Integer, ForeignKey('users.id', ondelete='CASCADE'), nullable=False, index=True)
    level = Column(Enum(AccessLevel, name='access_level', native_enum=False), nullable=False)

    user = relationship('User', back_populates='access_levels')

    __table_args__ = (
        UniqueConstraint('user_id', 'level', name='uq_user_access_level'),
    )


__all__ = [
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
