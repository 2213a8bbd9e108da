"""Tests for the scope predicate builder."""

import pytest
from sqlalchemy import select

from tests.factories import (
    OrganizationFactory, ProjectFactory, ProjectMemberFactory, ProjectTeamFactory,
    TeamFactory, TeamMemberFactory, UserFactory, WorkLogFactory, give_levels,
    make_privileged
)
from worktrack.models import AccessLevel, Project, Team, User, WorkLog, db
from worktrack.services.data_scope_service import ResourceType
from worktrack.utils.error_handling import AuthenticationError, ValidationError

MODELS = {
    ResourceType.USER: User,
    ResourceType.TEAM: Team,
    ResourceType.PROJECT: Project,
    ResourceType.WORK_LOG: WorkLog,
}


def visible(data_scope_service, user_id, resource_type):
    model = MODELS[ResourceType(resource_type)]
    predicate = data_scope_service.build_scope_filter(user_id, resource_type)
    return set(db.session.execute(select(model.id).where(predicate)).scalars())


@pytest.fixture
def team_world():
    """
    Organization with two teams.

    U, U2 and U3 share team T; U4 is alone in T2; U5 was in T but left.
    """
    organization = OrganizationFactory()
    team = TeamFactory(organization=organization)
    other_team = TeamFactory(organization=organization)
    users = {name: UserFactory(organization=organization) for name in ('U', 'U2', 'U3', 'U4', 'U5')}

    for name in ('U', 'U2', 'U3'):
        TeamMemberFactory(team=team, user=users[name])
    TeamMemberFactory(team=other_team, user=users['U4'])
    TeamMemberFactory(team=team, user=users['U5'], is_active=False)

    linked_project = ProjectFactory(organization=organization)
    unlinked_project = ProjectFactory(organization=organization)
    ProjectTeamFactory(project=linked_project, team=team)

    logs = {
        name: WorkLogFactory(user=users[name], project=unlinked_project)
        for name in ('U', 'U2', 'U4', 'U5')
    }
    return {
        'organization': organization,
        'team': team,
        'other_team': other_team,
        'users': users,
        'linked_project': linked_project,
        'unlinked_project': unlinked_project,
        'logs': logs,
    }


class TestNoGrants:

    def test_user_sees_only_self(self, data_scope_service, team_world):
        me = team_world['users']['U']

        assert visible(data_scope_service, me.id, ResourceType.USER) == {me.id}

    @pytest.mark.parametrize('resource_type', [ResourceType.TEAM, ResourceType.PROJECT, ResourceType.WORK_LOG])
    def test_other_resources_match_nothing(self, data_scope_service, team_world, resource_type):
        me = team_world['users']['U']

        assert visible(data_scope_service, me.id, resource_type) == set()


class TestTeamScope:

    def test_users_visible_to_team_member(self, data_scope_service, team_world):
        users = team_world['users']
        give_levels(users['U'], [AccessLevel.TEAM])

        assert visible(data_scope_service, users['U'].id, ResourceType.USER) == {
            users['U'].id, users['U2'].id, users['U3'].id
        }

    def test_teams(self, data_scope_service, team_world):
        me = team_world['users']['U']
        give_levels(me, [AccessLevel.TEAM])

        assert visible(data_scope_service, me.id, ResourceType.TEAM) == {team_world['team'].id}

    def test_work_logs_owned_by_teammates(self, data_scope_service, team_world):
        users, logs = team_world['users'], team_world['logs']
        give_levels(users['U'], [AccessLevel.TEAM])

        assert visible(data_scope_service, users['U'].id, ResourceType.WORK_LOG) == {
            logs['U'].id, logs['U2'].id
        }

    def test_projects_linked_to_team(self, data_scope_service, team_world):
        me = team_world['users']['U']
        give_levels(me, [AccessLevel.TEAM])

        assert visible(data_scope_service, me.id, ResourceType.PROJECT) == {
            team_world['linked_project'].id
        }

    def test_inactive_membership_of_caller_grants_nothing(self, data_scope_service, team_world):
        leaver = team_world['users']['U5']
        give_levels(leaver, [AccessLevel.TEAM])

        assert visible(data_scope_service, leaver.id, ResourceType.USER) == {leaver.id}
        assert visible(data_scope_service, leaver.id, ResourceType.TEAM) == set()

    def test_inactive_team_grants_nothing(self, data_scope_service):
        organization = OrganizationFactory()
        me = UserFactory(organization=organization)
        teammate = UserFactory(organization=organization)
        disbanded = TeamFactory(organization=organization, is_active=False)
        TeamMemberFactory(team=disbanded, user=me)
        TeamMemberFactory(team=disbanded, user=teammate)
        WorkLogFactory(user=teammate)
        give_levels(me, [AccessLevel.TEAM])

        assert visible(data_scope_service, me.id, ResourceType.USER) == {me.id}
        assert visible(data_scope_service, me.id, ResourceType.TEAM) == set()
        assert visible(data_scope_service, me.id, ResourceType.WORK_LOG) == set()

    def test_predicate_is_idempotent(self, data_scope_service, team_world):
        me = team_world['users']['U']
        give_levels(me, [AccessLevel.TEAM])

        first = visible(data_scope_service, me.id, ResourceType.USER)
        second = visible(data_scope_service, me.id, ResourceType.USER)

        assert first == second


class TestProjectScope:

    def test_project_scope_covers_projects_members_and_teammates(self, data_scope_service, team_world):
        users = team_world['users']
        me = users['U']
        project = ProjectFactory(organization=team_world['organization'])
        collaborator = UserFactory(organization=team_world['organization'])
        ProjectMemberFactory(project=project, user=me)
        ProjectMemberFactory(project=project, user=collaborator)
        give_levels(me, [AccessLevel.PROJECT])

        assert visible(data_scope_service, me.id, ResourceType.USER) == {
            me.id, users['U2'].id, users['U3'].id, collaborator.id
        }
        assert visible(data_scope_service, me.id, ResourceType.PROJECT) == {
            project.id, team_world['linked_project'].id
        }

    def test_work_logs_on_member_projects(self, data_scope_service):
        me = UserFactory()
        project = ProjectFactory(organization=me.organization)
        ProjectMemberFactory(project=project, user=me)
        stranger = UserFactory(organization=me.organization)
        on_project = WorkLogFactory(user=stranger, project=project)
        WorkLogFactory(user=stranger, project=ProjectFactory(organization=me.organization))
        give_levels(me, [AccessLevel.PROJECT])

        assert visible(data_scope_service, me.id, ResourceType.WORK_LOG) == {on_project.id}

    def test_inactive_project_grants_nothing(self, data_scope_service):
        me = UserFactory()
        archived = ProjectFactory(organization=me.organization, is_active=False)
        colleague = UserFactory(organization=me.organization)
        ProjectMemberFactory(project=archived, user=me)
        ProjectMemberFactory(project=archived, user=colleague)
        WorkLogFactory(user=colleague, project=archived)
        give_levels(me, [AccessLevel.PROJECT])

        assert visible(data_scope_service, me.id, ResourceType.USER) == {me.id}
        assert visible(data_scope_service, me.id, ResourceType.PROJECT) == set()
        assert visible(data_scope_service, me.id, ResourceType.WORK_LOG) == set()


class TestFullAccess:

    def test_projects_restricted_to_own_organization(self, data_scope_service):
        organization = OrganizationFactory()
        me = UserFactory(organization=organization)
        own = {ProjectFactory(organization=organization).id for _ in range(3)}
        ProjectFactory(organization=OrganizationFactory())
        give_levels(me, [AccessLevel.FULL_ACCESS])

        assert visible(data_scope_service, me.id, ResourceType.PROJECT) == own

    def test_work_logs_through_project_organization(self, data_scope_service):
        organization = OrganizationFactory()
        me = UserFactory(organization=organization)
        inside = WorkLogFactory(project=ProjectFactory(organization=organization))
        WorkLogFactory(project=ProjectFactory(organization=OrganizationFactory()))
        give_levels(me, [AccessLevel.ORGANIZATION])

        assert visible(data_scope_service, me.id, ResourceType.WORK_LOG) == {inside.id}

    def test_users_and_teams_of_organization(self, data_scope_service):
        organization = OrganizationFactory()
        me = UserFactory(organization=organization)
        colleague = UserFactory(organization=organization)
        UserFactory()
        team = TeamFactory(organization=organization)
        TeamFactory()
        give_levels(me, [AccessLevel.FULL_ACCESS])

        assert visible(data_scope_service, me.id, ResourceType.USER) == {me.id, colleague.id}
        assert visible(data_scope_service, me.id, ResourceType.TEAM) == {team.id}

    def test_without_organization_falls_back(self, data_scope_service):
        me = UserFactory(organization=None)
        ProjectFactory()
        UserFactory()
        give_levels(me, [AccessLevel.FULL_ACCESS])

        assert visible(data_scope_service, me.id, ResourceType.USER) == {me.id}
        assert visible(data_scope_service, me.id, ResourceType.PROJECT) == set()

    def test_privileged_users_see_their_organization(self, data_scope_service):
        organization = OrganizationFactory()
        admin = UserFactory(organization=organization)
        member = UserFactory(organization=organization)
        UserFactory()
        make_privileged(admin)

        assert visible(data_scope_service, admin.id, ResourceType.USER) == {admin.id, member.id}


class TestArguments:

    def test_string_resource_types_are_accepted(self, data_scope_service):
        me = UserFactory()

        assert visible(data_scope_service, me.id, 'user') == {me.id}
        assert visible(data_scope_service, me.id, 'work-log') == set()

    def test_unknown_resource_type(self, data_scope_service):
        with pytest.raises(ValidationError):
            data_scope_service.build_scope_filter(UserFactory().id, 'invoice')

    def test_missing_identity(self, data_scope_service):
        with pytest.raises(AuthenticationError):
            data_scope_service.build_scope_filter(None, ResourceType.USER)

    def test_scoped_select(self, data_scope_service):
        me = UserFactory()
        UserFactory()

        rows = db.session.execute(data_scope_service.scoped_select(me.id, ResourceType.USER)).scalars().all()

        assert [row.id for row in rows] == [me.id]
