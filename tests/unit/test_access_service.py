"""Tests for the user accessibility check and record access."""

import pytest

from tests.factories import (
    OrganizationFactory, ProjectFactory, ProjectMemberFactory, TeamFactory,
    TeamMemberFactory, UserFactory, WorkLogFactory, give_levels, grant, make_privileged
)
from worktrack.models import AccessLevel
from worktrack.utils.error_handling import AuthenticationError


@pytest.fixture
def organization():
    return OrganizationFactory()


@pytest.fixture
def reader(organization):
    user = UserFactory(organization=organization)
    grant(user, 'users.read')
    return user


class TestPermissionGate:

    def test_missing_permission_denies_even_self(self, access_service, organization):
        user = UserFactory(organization=organization)
        give_levels(user, [AccessLevel.FULL_ACCESS])

        assert not access_service.can_access_user(user.id, user.id, 'read')

    def test_gate_is_per_action(self, access_service, reader):
        assert access_service.can_access_user(reader.id, reader.id, 'read')
        assert not access_service.can_access_user(reader.id, reader.id, 'delete')


class TestScopes:

    def test_individual_allows_self_only(self, access_service, reader, organization):
        other = UserFactory(organization=organization)

        assert access_service.can_access_user(reader.id, reader.id, 'read')
        assert not access_service.can_access_user(reader.id, other.id, 'read')

    def test_team_allows_shared_active_team(self, access_service, reader, organization):
        teammate = UserFactory(organization=organization)
        team = TeamFactory(organization=organization)
        TeamMemberFactory(team=team, user=reader)
        TeamMemberFactory(team=team, user=teammate)
        give_levels(reader, [AccessLevel.TEAM])

        assert access_service.can_access_user(reader.id, teammate.id, 'read')

    def test_team_requires_both_memberships_active(self, access_service, reader, organization):
        former = UserFactory(organization=organization)
        team = TeamFactory(organization=organization)
        TeamMemberFactory(team=team, user=reader)
        TeamMemberFactory(team=team, user=former, is_active=False)
        give_levels(reader, [AccessLevel.TEAM])

        assert not access_service.can_access_user(reader.id, former.id, 'read')

    def test_inactive_team_is_not_shared(self, access_service, reader, organization):
        teammate = UserFactory(organization=organization)
        disbanded = TeamFactory(organization=organization, is_active=False)
        TeamMemberFactory(team=disbanded, user=reader)
        TeamMemberFactory(team=disbanded, user=teammate)
        give_levels(reader, [AccessLevel.TEAM])

        assert not access_service.can_access_user(reader.id, teammate.id, 'read')

    def test_inactive_project_is_not_shared(self, access_service, reader, organization):
        colleague = UserFactory(organization=organization)
        archived = ProjectFactory(organization=organization, is_active=False)
        ProjectMemberFactory(project=archived, user=reader)
        ProjectMemberFactory(project=archived, user=colleague)
        give_levels(reader, [AccessLevel.PROJECT])

        assert not access_service.can_access_user(reader.id, colleague.id, 'read')

    def test_shared_team_without_team_scope_is_denied(self, access_service, reader, organization):
        teammate = UserFactory(organization=organization)
        team = TeamFactory(organization=organization)
        TeamMemberFactory(team=team, user=reader)
        TeamMemberFactory(team=team, user=teammate)

        assert not access_service.can_access_user(reader.id, teammate.id, 'read')

    def test_project_allows_shared_project(self, access_service, reader, organization):
        colleague = UserFactory(organization=organization)
        project = ProjectFactory(organization=organization)
        ProjectMemberFactory(project=project, user=reader)
        ProjectMemberFactory(project=project, user=colleague)
        give_levels(reader, [AccessLevel.PROJECT])

        assert access_service.can_access_user(reader.id, colleague.id, 'read')

    def test_project_scope_includes_teammates(self, access_service, reader, organization):
        teammate = UserFactory(organization=organization)
        team = TeamFactory(organization=organization)
        TeamMemberFactory(team=team, user=reader)
        TeamMemberFactory(team=team, user=teammate)
        give_levels(reader, [AccessLevel.PROJECT])

        assert access_service.can_access_user(reader.id, teammate.id, 'read')

    def test_full_access_within_organization(self, access_service, reader, organization):
        colleague = UserFactory(organization=organization)
        outsider = UserFactory()
        give_levels(reader, [AccessLevel.FULL_ACCESS])

        assert access_service.can_access_user(reader.id, colleague.id, 'read')
        assert not access_service.can_access_user(reader.id, outsider.id, 'read')

    def test_privileged_user(self, access_service, organization):
        admin = UserFactory(organization=organization)
        make_privileged(admin, 'ADMIN')
        colleague = UserFactory(organization=organization)

        assert access_service.can_access_user(admin.id, colleague.id, 'delete')

    def test_missing_identity(self, access_service):
        with pytest.raises(AuthenticationError):
            access_service.can_access_user(None, 1, 'read')


class TestRecordAccess:

    def test_work_log_inside_and_outside_scope(self, access_service, organization):
        me = UserFactory(organization=organization)
        project = ProjectFactory(organization=organization)
        ProjectMemberFactory(project=project, user=me)
        give_levels(me, [AccessLevel.PROJECT])
        inside = WorkLogFactory(project=project)
        outside = WorkLogFactory()

        assert access_service.can_access_record(me.id, 'work-log', inside.id)
        assert not access_service.can_access_record(me.id, 'work-log', outside.id)
        assert not access_service.can_access_record(me.id, 'work-log', 999999)

    def test_user_record_defaults_to_self(self, access_service, organization):
        me = UserFactory(organization=organization)
        other = UserFactory(organization=organization)

        assert access_service.can_access_record(me.id, 'user', me.id)
        assert not access_service.can_access_record(me.id, 'user', other.id)
