"""Tests for system catalog seeding."""

from sqlalchemy import func, select

from worktrack.models import Permission, Role, db
from worktrack.services.catalog import CRUD_RESOURCES, EXTRA_PERMISSIONS, SYSTEM_ROLES


def count(model):
    return db.session.execute(select(func.count(model.id))).scalar()


def test_seed_creates_roles_and_permissions(catalog_service):
    created = catalog_service.seed_catalog()

    assert created['roles'] == len(SYSTEM_ROLES)
    assert created['permissions'] == len(CRUD_RESOURCES) * 4 + len(EXTRA_PERMISSIONS)
    assert count(Role) == 4
    assert all(role.is_system for role in db.session.execute(select(Role)).scalars())


def test_super_admin_bundles_whole_catalog(catalog_service):
    catalog_service.seed_catalog()

    super_admin = db.session.execute(select(Role).where(Role.name == 'SUPER_ADMIN')).scalar_one()
    assert len(super_admin.permissions) == count(Permission)


def test_seed_is_idempotent(catalog_service):
    catalog_service.seed_catalog()
    roles, permissions = count(Role), count(Permission)

    created = catalog_service.seed_catalog()

    assert created == {'roles': 0, 'permissions': 0, 'role_permissions': 0}
    assert (count(Role), count(Permission)) == (roles, permissions)


def test_seed_catalog_command(runner):
    result = runner.invoke(args=['seed-catalog'])

    assert result.exit_code == 0
    assert 'Seeded 4 roles' in result.output
