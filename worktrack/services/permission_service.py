"""
Permission Resolver

Answers "can user U perform action A on resource type R" from the role and
permission catalog. Resolution order:

1. An active assignment to an active privileged role (SUPER_ADMIN, ADMIN)
   allows immediately, without consulting the catalog.
2. An active direct UserPermission for (resource, action) allows.
3. An active UserRole on an active Role whose bundle contains
   (resource, action) allows.

Steps 2 and 3 are additive: either path alone is enough and neither path can
revoke what the other grants.
"""

from typing import List, Optional, Set

from sqlalchemy import select

from ..models import (
    PRIVILEGED_ROLE_NAMES, Permission, Role, RolePermission, UserPermission, UserRole
)
from ..utils.logging import log_authorization_decision
from .base import BaseService, propagate_persistence_errors, require_identity


def _normalize(value: str) -> str:
    return value.strip().lower() if value else value


def permission_key(resource: str, action: str) -> str:
    return f"{resource}.{action}"


class PermissionService(BaseService):
    """Role/permission catalog evaluation with the privileged-role bypass."""

    def _active_assignments(self, user_id: int):
        """UserRole joined to Role, both active, for one user."""
        return (
            select(UserRole)
            .join(Role, Role.id == UserRole.role_id)
            .where(
                UserRole.user_id == user_id,
                UserRole.is_active.is_(True),
                Role.is_active.is_(True),
            )
        )

    @propagate_persistence_errors
    def is_privileged(self, user_id: int) -> bool:
        """
        Shared administrative bypass check.

        Returns:
            True when the user holds an active assignment to an active role
            named SUPER_ADMIN or ADMIN.
        """
        require_identity(user_id)
        stmt = (
            self._active_assignments(user_id)
            .where(Role.name.in_(PRIVILEGED_ROLE_NAMES))
            .with_only_columns(UserRole.id)
            .limit(1)
        )
        return self.session.execute(stmt).first() is not None

    @propagate_persistence_errors
    def has_direct_permission(self, user_id: int, resource: str, action: str) -> bool:
        require_identity(user_id)
        stmt = (
            select(UserPermission.id)
            .join(Permission, Permission.id == UserPermission.permission_id)
            .where(
                UserPermission.user_id == user_id,
                UserPermission.is_active.is_(True),
                Permission.resource == _normalize(resource),
                Permission.action == _normalize(action),
            )
            .limit(1)
        )
        return self.session.execute(stmt).first() is not None

    @propagate_persistence_errors
    def has_role_permission(self, user_id: int, resource: str, action: str) -> bool:
        require_identity(user_id)
        stmt = (
            self._active_assignments(user_id)
            .join(RolePermission, RolePermission.role_id == Role.id)
            .join(Permission, Permission.id == RolePermission.permission_id)
            .where(
                Permission.resource == _normalize(resource),
                Permission.action == _normalize(action),
            )
            .with_only_columns(UserRole.id)
            .limit(1)
        )
        return self.session.execute(stmt).first() is not None

    def has_permission(self, user_id: int, resource: str, action: str) -> bool:
        """
        Check whether a user may perform an action on a resource family.

        Args:
            user_id: Caller id; None raises AuthenticationError
            resource: Resource family, e.g. 'users'
            action: Action, e.g. 'read'

        Returns:
            True when any grant path allows the action

        Raises:
            AuthenticationError: user_id is None
            PersistenceError: a catalog read failed
        """
        require_identity(user_id)

        if self.is_privileged(user_id):
            log_authorization_decision(user_id, resource, action, True, {'path': 'privileged_role'})
            return True

        if self.has_direct_permission(user_id, resource, action):
            log_authorization_decision(user_id, resource, action, True, {'path': 'direct_grant'})
            return True

        allowed = self.has_role_permission(user_id, resource, action)
        log_authorization_decision(
            user_id, resource, action, allowed, {'path': 'role_grant' if allowed else None}
        )
        return allowed

    @propagate_persistence_errors
    def _catalog_keys(self, resource: Optional[str] = None) -> Set[str]:
        stmt = select(Permission.resource, Permission.action)
        if resource is not None:
            stmt = stmt.where(Permission.resource == _normalize(resource))
        return {permission_key(r, a) for r, a in self.session.execute(stmt)}

    @propagate_persistence_errors
    def _granted_keys(self, user_id: int, resource: Optional[str] = None) -> Set[str]:
        direct = (
            select(Permission.resource, Permission.action)
            .join(UserPermission, UserPermission.permission_id == Permission.id)
            .where(UserPermission.user_id == user_id, UserPermission.is_active.is_(True))
        )
        via_roles = (
            self._active_assignments(user_id)
            .join(RolePermission, RolePermission.role_id == Role.id)
            .join(Permission, Permission.id == RolePermission.permission_id)
            .with_only_columns(Permission.resource, Permission.action)
        )
        if resource is not None:
            direct = direct.where(Permission.resource == _normalize(resource))
            via_roles = via_roles.where(Permission.resource == _normalize(resource))

        keys = {permission_key(r, a) for r, a in self.session.execute(direct)}
        keys.update(permission_key(r, a) for r, a in self.session.execute(via_roles))
        return keys

    def list_permissions(self, user_id: int) -> Set[str]:
        """
        Enumerate every ``resource.action`` the user holds.

        Privileged users enumerate the entire catalog instead of their grants.
        """
        require_identity(user_id)
        if self.is_privileged(user_id):
            return self._catalog_keys()
        return self._granted_keys(user_id)

    def list_permissions_for_resource(self, user_id: int, resource: str) -> Set[str]:
        """Same union as list_permissions, restricted to one resource family."""
        require_identity(user_id)
        if self.is_privileged(user_id):
            return self._catalog_keys(resource)
        return self._granted_keys(user_id, resource)

    @propagate_persistence_errors
    def get_active_roles(self, user_id: int) -> List[Role]:
        """Active roles held through active assignments, oldest grant first."""
        require_identity(user_id)
        stmt = (
            self._active_assignments(user_id)
            .with_only_columns(Role)
            .order_by(UserRole.granted_at, UserRole.id)
        )
        return list(self.session.execute(stmt).scalars())

    @propagate_persistence_errors
    def get_primary_role(self, user_id: int) -> Optional[Role]:
        """
        The active role of the first active assignment, ordered by grant time.

        Users holding several roles get a deterministic answer; the choice is
        only used for display and never for authorization.
        """
        require_identity(user_id)
        stmt = (
            self._active_assignments(user_id)
            .with_only_columns(Role)
            .order_by(UserRole.granted_at, UserRole.id)
            .limit(1)
        )
        return self.session.execute(stmt).scalars().first()
