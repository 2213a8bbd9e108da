"""
Administrative Grant Management

Write-side operations on the role/permission catalog and on per-user grants.
The resolvers never write; everything that changes what a user may do or see
goes through this service inside a transaction boundary.

Key Features:
- Role assignment replaces the user's existing assignments
- Direct permission grant/revoke
- Access-level replacement
- Role and permission maintenance with system-entry protection
"""

from typing import Any, Dict, Iterable, List, Optional

from sqlalchemy import delete, func, select

from ..models import (
    AccessLevel, Permission, Role, RolePermission, User, UserAccessLevel,
    UserPermission, UserRole, utcnow
)
from ..utils.error_handling import BusinessRuleError, NotFoundError, ValidationError
from .base import BaseService

ROLE_UPDATABLE_FIELDS = ('display_name', 'description', 'is_active')
PERMISSION_UPDATABLE_FIELDS = ('resource', 'action', 'display_name', 'description')


def parse_access_levels(values: Iterable[Any]) -> List[AccessLevel]:
    """Accept enum members or their names; reject anything else."""
    levels = []
    for value in values:
        if isinstance(value, AccessLevel):
            levels.append(value)
            continue
        try:
            levels.append(AccessLevel(str(value).strip().upper()))
        except ValueError:
            raise ValidationError(
                f"Unknown access level: {value}",
                details={'allowed': [level.value for level in AccessLevel]},
            )
    return levels


class AdminService(BaseService):
    """Catalog and grant maintenance."""

    def _get_or_404(self, model, record_id: int, label: str):
        record = self.session.get(model, record_id)
        if record is None:
            raise NotFoundError(f"{label} not found", details={f"{label.lower()}_id": record_id})
        return record

    # ==================== USER GRANTS ====================

    def assign_role(self, user_id: int, role_id: int) -> UserRole:
        """
        Make ``role_id`` the user's only role.

        Every existing assignment of the user is removed first.
        """
        with self.transaction_boundary():
            self._get_or_404(User, user_id, 'User')
            role = self._get_or_404(Role, role_id, 'Role')
            if not role.is_active:
                raise BusinessRuleError(
                    "Cannot assign an inactive role", details={'role_id': role_id}
                )

            self.session.execute(delete(UserRole).where(UserRole.user_id == user_id))
            assignment = UserRole(user_id=user_id, role_id=role_id, is_active=True, granted_at=utcnow())
            self.session.add(assignment)

        self.logger.info("Role assigned", user_id=user_id, role=role.name)
        return assignment

    def remove_role(self, user_id: int, role_id: int) -> None:
        with self.transaction_boundary():
            self._get_or_404(User, user_id, 'User')
            self._get_or_404(Role, role_id, 'Role')
            assignment = self.session.execute(
                select(UserRole).where(UserRole.user_id == user_id, UserRole.role_id == role_id)
            ).scalar_one_or_none()
            if assignment is None:
                raise NotFoundError(
                    "Role is not assigned to this user",
                    details={'user_id': user_id, 'role_id': role_id},
                )
            self.session.delete(assignment)

        self.logger.info("Role removed", user_id=user_id, role_id=role_id)

    def grant_permission(self, user_id: int, permission_id: int) -> UserPermission:
        """Grant one permission directly; reactivates a previously revoked grant."""
        with self.transaction_boundary():
            self._get_or_404(User, user_id, 'User')
            self._get_or_404(Permission, permission_id, 'Permission')
            grant = self.session.execute(
                select(UserPermission).where(
                    UserPermission.user_id == user_id,
                    UserPermission.permission_id == permission_id,
                )
            ).scalar_one_or_none()
            if grant is None:
                grant = UserPermission(user_id=user_id, permission_id=permission_id)
                self.session.add(grant)
            grant.is_active = True
            grant.granted_at = utcnow()

        self.logger.info("Permission granted", user_id=user_id, permission_id=permission_id)
        return grant

    def revoke_permission(self, user_id: int, permission_id: int) -> None:
        with self.transaction_boundary():
            grant = self.session.execute(
                select(UserPermission).where(
                    UserPermission.user_id == user_id,
                    UserPermission.permission_id == permission_id,
                    UserPermission.is_active.is_(True),
                )
            ).scalar_one_or_none()
            if grant is None:
                raise NotFoundError(
                    "Permission is not granted to this user",
                    details={'user_id': user_id, 'permission_id': permission_id},
                )
            grant.is_active = False

        self.logger.info("Permission revoked", user_id=user_id, permission_id=permission_id)

    def set_access_levels(self, user_id: int, levels: Iterable[Any]) -> List[AccessLevel]:
        """
        Replace the user's access-level set.

        INDIVIDUAL may be stored but changes nothing; every user always sees
        themselves.
        """
        parsed = sorted(set(parse_access_levels(levels)), key=lambda level: level.value)
        with self.transaction_boundary():
            self._get_or_404(User, user_id, 'User')
            self.session.execute(delete(UserAccessLevel).where(UserAccessLevel.user_id == user_id))
            for level in parsed:
                self.session.add(UserAccessLevel(user_id=user_id, level=level))

        self.logger.info("Access levels replaced", user_id=user_id, levels=[l.value for l in parsed])
        return parsed

    # ==================== ROLES ====================

    def create_role(self, name: str, display_name: Optional[str] = None,
                    description: Optional[str] = None,
                    permission_ids: Optional[List[int]] = None) -> Role:
        with self.transaction_boundary():
            try:
                role = Role(name=name, display_name=display_name, description=description)
            except ValueError as e:
                raise ValidationError(str(e), details={'field': 'name'})

            exists = self.session.execute(select(Role.id).where(Role.name == role.name)).first()
            if exists is not None:
                raise ValidationError(f"Role {role.name} already exists", details={'field': 'name'})

            self.session.add(role)
            self.session.flush()
            self._replace_role_permissions(role, permission_ids or [])

        self.logger.info("Role created", role=role.name)
        return role

    def update_role(self, role_id: int, data: Dict[str, Any]) -> Role:
        """
        Update mutable role fields.

        Raises:
            BusinessRuleError: deactivating a system role or clearing its
                system flag
        """
        with self.transaction_boundary():
            role = self._get_or_404(Role, role_id, 'Role')
            if role.is_system:
                if data.get('is_system') is False:
                    raise BusinessRuleError("Cannot modify system roles", details={'role_id': role_id})
                if data.get('is_active') is False:
                    raise BusinessRuleError("Cannot deactivate system roles", details={'role_id': role_id})

            for field in ROLE_UPDATABLE_FIELDS:
                if field in data:
                    setattr(role, field, data[field])
            if 'permission_ids' in data:
                self._replace_role_permissions(role, data['permission_ids'] or [])

        self.logger.info("Role updated", role=role.name, fields=sorted(data))
        return role

    def delete_role(self, role_id: int) -> None:
        with self.transaction_boundary():
            role = self._get_or_404(Role, role_id, 'Role')
            if role.is_system:
                raise BusinessRuleError("Cannot delete system roles", details={'role_id': role_id})

            assigned = self.session.execute(
                select(func.count(UserRole.id)).where(UserRole.role_id == role_id)
            ).scalar()
            if assigned:
                raise BusinessRuleError(
                    "Cannot delete role that is assigned to users",
                    details={'role_id': role_id, 'assignments': assigned},
                )
            self.session.delete(role)

        self.logger.info("Role deleted", role_id=role_id)

    def _replace_role_permissions(self, role: Role, permission_ids: List[int]) -> None:
        permission_ids = list(dict.fromkeys(permission_ids))
        permissions = []
        if permission_ids:
            permissions = list(self.session.execute(
                select(Permission).where(Permission.id.in_(permission_ids))
            ).scalars())
        if len(permissions) != len(permission_ids):
            raise ValidationError(
                "One or more permissions not found",
                details={'permission_ids': permission_ids},
            )

        self.session.execute(delete(RolePermission).where(RolePermission.role_id == role.id))
        for permission in permissions:
            self.session.add(RolePermission(role_id=role.id, permission_id=permission.id))

    # ==================== PERMISSIONS ====================

    def create_permission(self, resource: str, action: str, display_name: Optional[str] = None,
                          description: Optional[str] = None) -> Permission:
        with self.transaction_boundary():
            try:
                permission = Permission.create_permission(resource, action, display_name, description)
            except (ValueError, AttributeError) as e:
                raise ValidationError(str(e), details={'resource': resource, 'action': action})
            self._ensure_unique_permission(permission.resource, permission.action)
            self.session.add(permission)

        self.logger.info("Permission created", permission=permission.key)
        return permission

    def update_permission(self, permission_id: int, data: Dict[str, Any]) -> Permission:
        with self.transaction_boundary():
            permission = self._get_or_404(Permission, permission_id, 'Permission')
            if permission.is_system:
                raise BusinessRuleError(
                    "Cannot modify system permissions", details={'permission_id': permission_id}
                )

            try:
                for field in PERMISSION_UPDATABLE_FIELDS:
                    if field in data:
                        setattr(permission, field, data[field])
            except ValueError as e:
                raise ValidationError(str(e))

            if 'resource' in data or 'action' in data:
                self._ensure_unique_permission(permission.resource, permission.action, permission.id)
                permission.name = permission.key

        self.logger.info("Permission updated", permission=permission.key)
        return permission

    def delete_permission(self, permission_id: int) -> None:
        with self.transaction_boundary():
            permission = self._get_or_404(Permission, permission_id, 'Permission')
            if permission.is_system:
                raise BusinessRuleError(
                    "Cannot delete system permissions", details={'permission_id': permission_id}
                )

            in_roles = self.session.execute(
                select(func.count(RolePermission.id)).where(RolePermission.permission_id == permission_id)
            ).scalar()
            if in_roles:
                raise BusinessRuleError(
                    "Cannot delete permission that is assigned to roles",
                    details={'permission_id': permission_id},
                )
            in_users = self.session.execute(
                select(func.count(UserPermission.id)).where(UserPermission.permission_id == permission_id)
            ).scalar()
            if in_users:
                raise BusinessRuleError(
                    "Cannot delete permission that is assigned to users",
                    details={'permission_id': permission_id},
                )
            self.session.delete(permission)

        self.logger.info("Permission deleted", permission_id=permission_id)

    def _ensure_unique_permission(self, resource: str, action: str,
                                  exclude_id: Optional[int] = None) -> None:
        stmt = select(Permission.id).where(Permission.resource == resource, Permission.action == action)
        if exclude_id is not None:
            stmt = stmt.where(Permission.id != exclude_id)
        with self.session.no_autoflush:
            duplicate = self.session.execute(stmt).first()
        if duplicate is not None:
            raise ValidationError(
                f"Permission for resource '{resource}' and action '{action}' already exists",
                details={'resource': resource, 'action': action},
            )
