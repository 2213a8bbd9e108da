"""Tests for the permission resolver."""

import pytest

from tests.factories import (
    RoleFactory, UserFactory, assign, grant, make_privileged, permission_for, role_with
)
from worktrack.services.catalog import system_permission_keys
from worktrack.utils.error_handling import AuthenticationError, PersistenceError


@pytest.fixture
def seeded(catalog_service):
    catalog_service.seed_catalog()


class TestPrivilegedBypass:

    @pytest.mark.parametrize('role_name', ['SUPER_ADMIN', 'ADMIN'])
    def test_privileged_role_holds_every_catalog_permission(self, seeded, permission_service, role_name):
        user = UserFactory()
        make_privileged(user, role_name)

        assert permission_service.is_privileged(user.id)
        for resource, action in system_permission_keys():
            assert permission_service.has_permission(user.id, resource, action)

    def test_bypass_does_not_need_catalog_entries(self, permission_service):
        user = UserFactory()
        make_privileged(user, 'ADMIN')

        assert permission_service.has_permission(user.id, 'reports', 'export')

    def test_privileged_listing_enumerates_whole_catalog(self, seeded, permission_service):
        user = UserFactory()
        make_privileged(user)

        expected = {f"{r}.{a}" for r, a in system_permission_keys()}
        assert permission_service.list_permissions(user.id) == expected
        assert permission_service.list_permissions_for_resource(user.id, 'roles') == {
            'roles.create', 'roles.read', 'roles.update', 'roles.delete', 'roles.manage'
        }

    def test_inactive_privileged_role_grants_nothing(self, seeded, permission_service):
        user = UserFactory()
        make_privileged(user, 'ADMIN', role_active=False)

        assert not permission_service.is_privileged(user.id)
        assert not permission_service.has_permission(user.id, 'users', 'read')

    def test_inactive_privileged_assignment_grants_nothing(self, seeded, permission_service):
        user = UserFactory()
        make_privileged(user, assignment_active=False)

        assert not permission_service.is_privileged(user.id)
        assert permission_service.list_permissions(user.id) == set()


class TestGrantPaths:

    def test_user_without_grants_is_denied_everything(self, seeded, permission_service):
        user = UserFactory()

        for resource, action in system_permission_keys():
            assert not permission_service.has_permission(user.id, resource, action)
        assert permission_service.list_permissions(user.id) == set()

    def test_direct_grant_allows(self, permission_service):
        user = UserFactory()
        grant(user, 'work_logs.read')

        assert permission_service.has_permission(user.id, 'work_logs', 'read')
        assert not permission_service.has_permission(user.id, 'work_logs', 'delete')

    def test_role_grant_allows(self, permission_service):
        user = UserFactory()
        assign(user, role_with('teams.read', 'teams.update'))

        assert permission_service.has_permission(user.id, 'teams', 'update')
        assert not permission_service.has_permission(user.id, 'teams', 'delete')

    def test_paths_are_additive(self, permission_service):
        user = UserFactory()
        direct = grant(user, 'projects.read')
        assign(user, role_with('projects.read'))

        assert permission_service.has_permission(user.id, 'projects', 'read')

        direct.is_active = False
        permission_service.session.commit()
        assert permission_service.has_permission(user.id, 'projects', 'read')

    def test_inactive_role_grants_nothing(self, permission_service):
        user = UserFactory()
        assign(user, role_with('users.read', is_active=False))

        assert not permission_service.has_permission(user.id, 'users', 'read')

    def test_inactive_assignment_grants_nothing(self, permission_service):
        user = UserFactory()
        assign(user, role_with('users.read'), is_active=False)

        assert not permission_service.has_permission(user.id, 'users', 'read')

    def test_inactive_direct_grant_is_ignored(self, permission_service):
        user = UserFactory()
        grant(user, 'users.read', is_active=False)

        assert not permission_service.has_permission(user.id, 'users', 'read')

    def test_active_role_without_permissions_is_valid(self, permission_service):
        user = UserFactory()
        assign(user, RoleFactory())

        assert not permission_service.has_permission(user.id, 'users', 'read')
        assert permission_service.list_permissions(user.id) == set()

    def test_lookup_is_case_insensitive(self, permission_service):
        user = UserFactory()
        grant(user, 'users.read')

        assert permission_service.has_permission(user.id, 'Users', 'READ')


class TestListing:

    def test_listing_is_union_of_both_paths(self, permission_service):
        user = UserFactory()
        grant(user, 'users.read')
        assign(user, role_with('teams.read', 'users.update'))

        assert permission_service.list_permissions(user.id) == {
            'users.read', 'teams.read', 'users.update'
        }

    def test_listing_for_resource_filters(self, permission_service):
        user = UserFactory()
        grant(user, 'users.read')
        assign(user, role_with('teams.read', 'users.update'))
        permission_for('users', 'delete')

        assert permission_service.list_permissions_for_resource(user.id, 'users') == {
            'users.read', 'users.update'
        }


class TestPrimaryRole:

    def test_first_active_assignment_wins(self, permission_service):
        user = UserFactory()
        first = RoleFactory(name='MANAGER')
        second = RoleFactory(name='EMPLOYEE')
        assign(user, first)
        assign(user, second)

        assert permission_service.get_primary_role(user.id).id == first.id
        assert [r.name for r in permission_service.get_active_roles(user.id)] == ['MANAGER', 'EMPLOYEE']

    def test_inactive_role_is_skipped(self, permission_service):
        user = UserFactory()
        assign(user, RoleFactory(name='RETIRED', is_active=False))
        current = RoleFactory(name='EMPLOYEE')
        assign(user, current)

        assert permission_service.get_primary_role(user.id).id == current.id

    def test_no_role(self, permission_service):
        assert permission_service.get_primary_role(UserFactory().id) is None


class TestFailures:

    def test_missing_identity_is_rejected(self, permission_service):
        with pytest.raises(AuthenticationError):
            permission_service.has_permission(None, 'users', 'read')
        with pytest.raises(AuthenticationError):
            permission_service.list_permissions(None)

    def test_persistence_failure_propagates(self, permission_service, broken_database):
        user = UserFactory()
        grant(user, 'users.read')
        user_id = user.id
        broken_database()

        with pytest.raises(PersistenceError) as exc_info:
            permission_service.has_permission(user_id, 'users', 'read')

        assert exc_info.value.retryable is True
        assert exc_info.value.status_code == 503
