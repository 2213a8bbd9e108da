"""
System Catalog Seeding

Creates the system roles and the system permission catalog. Safe to run any
number of times: existing rows are left as they are and only missing roles,
permissions and role grants are added.
"""

from typing import Dict, List, Tuple

from sqlalchemy import select

from ..models import ADMIN, SUPER_ADMIN, Permission, Role, RolePermission
from .base import BaseService

CRUD_ACTIONS = ('create', 'read', 'update', 'delete')

CRUD_RESOURCES = (
    'users',
    'roles',
    'permissions',
    'organizations',
    'projects',
    'teams',
    'time_sessions',
    'work_logs',
    'analytics',
    'settings',
)

EXTRA_PERMISSIONS = (
    ('users', 'assign_role'),
    ('users', 'remove_role'),
    ('users', 'assign_manager'),
    ('users', 'remove_manager'),
    ('roles', 'manage'),
    ('permissions', 'manage'),
)

SYSTEM_ROLES = (
    (SUPER_ADMIN, 'Super Administrator', 'Full system access with all permissions'),
    (ADMIN, 'Administrator', 'Organization-level administrator'),
    ('MANAGER', 'Manager', 'Team and project manager'),
    ('EMPLOYEE', 'Employee', 'Regular employee with basic access'),
)

# SUPER_ADMIN receives the whole catalog. ADMIN needs no bundle since the
# privileged bypass already grants it everything.
ROLE_BUNDLES: Dict[str, Tuple[str, ...]] = {
    'MANAGER': (
        'users.read', 'users.update', 'users.assign_manager',
        'teams.read', 'teams.update',
        'projects.read', 'projects.update',
        'work_logs.read', 'work_logs.update',
        'time_sessions.read',
        'analytics.read',
    ),
    'EMPLOYEE': (
        'users.read',
        'teams.read',
        'projects.read',
        'work_logs.create', 'work_logs.read', 'work_logs.update', 'work_logs.delete',
        'time_sessions.create', 'time_sessions.read', 'time_sessions.update',
    ),
}


def system_permission_keys() -> List[Tuple[str, str]]:
    keys = [(resource, action) for resource in CRUD_RESOURCES for action in CRUD_ACTIONS]
    keys.extend(EXTRA_PERMISSIONS)
    return keys


class CatalogService(BaseService):
    """Idempotent seeding of system roles and permissions."""

    def seed_catalog(self) -> Dict[str, int]:
        """
        Insert missing system roles, permissions and bundles.

        Returns:
            Counts of rows created per kind
        """
        created = {'roles': 0, 'permissions': 0, 'role_permissions': 0}

        with self.transaction_boundary():
            roles = {role.name: role for role in self.session.execute(select(Role)).scalars()}
            for name, display_name, description in SYSTEM_ROLES:
                if name not in roles:
                    role = Role(
                        name=name, display_name=display_name, description=description,
                        is_system=True, is_active=True,
                    )
                    self.session.add(role)
                    roles[name] = role
                    created['roles'] += 1

            permissions = {
                permission.key: permission
                for permission in self.session.execute(select(Permission)).scalars()
            }
            for resource, action in system_permission_keys():
                key = f"{resource}.{action}"
                if key not in permissions:
                    permission = Permission.create_permission(resource, action, is_system=True)
                    self.session.add(permission)
                    permissions[key] = permission
                    created['permissions'] += 1

            self.session.flush()

            existing_grants = {
                (role_id, permission_id)
                for role_id, permission_id in self.session.execute(
                    select(RolePermission.role_id, RolePermission.permission_id)
                )
            }

            bundles = dict(ROLE_BUNDLES)
            bundles[SUPER_ADMIN] = tuple(permissions)
            for role_name, keys in bundles.items():
                role = roles[role_name]
                for key in keys:
                    permission = permissions[key]
                    if (role.id, permission.id) in existing_grants:
                        continue
                    self.session.add(RolePermission(role_id=role.id, permission_id=permission.id))
                    existing_grants.add((role.id, permission.id))
                    created['role_permissions'] += 1

        self.logger.info("System catalog seeded", **created)
        return created
