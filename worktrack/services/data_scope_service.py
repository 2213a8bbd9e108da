"""
Predicate Builder

Turns an AccessScope into a SQLAlchemy boolean clause that list queries AND
into their own filters:

    stmt = select(WorkLog).where(
        data_scope.build_scope_filter(user_id, ResourceType.WORK_LOG),
        WorkLog.is_billable.is_(True),
    )

Each ResourceType has one ScopePath describing how that model relates to the
organization, to team membership and to project membership. The builder walks
the scope flags and asks the path for the matching clause, so adding a
resource type means adding a path, not another branch per level.

Resolution:
- full access: restrict to the caller's organization. Without an organization,
  ``user`` sees self only and everything else matches nothing.
- otherwise OR together: self (``user`` only), team-derived and
  project-derived clauses.
- no clause at all: self only for ``user``, match-nothing for the rest.
"""

import enum
from typing import List, Optional, Type, Union

from sqlalchemy import false, or_, select
from sqlalchemy.sql.elements import ColumnElement

from ..models import (
    Project, ProjectMember, ProjectTeam, Team, TeamMember, User, WorkLog, db
)
from ..utils.error_handling import ValidationError
from .base import BaseService, propagate_persistence_errors, require_identity
from .scope_service import AccessScope, ScopeService


class ResourceType(enum.Enum):
    USER = 'user'
    TEAM = 'team'
    PROJECT = 'project'
    WORK_LOG = 'work-log'


def match_nothing() -> ColumnElement:
    return false()


def _team_member_ids(team_ids: List[int]):
    return select(TeamMember.user_id).where(
        TeamMember.team_id.in_(team_ids),
        TeamMember.is_active.is_(True),
    )


def _project_member_ids(project_ids: List[int]):
    return select(ProjectMember.user_id).where(
        ProjectMember.project_id.in_(project_ids),
        ProjectMember.is_active.is_(True),
    )


class ScopePath:
    """How one model is reached from an organization, a team set or a project set."""

    model: Type[db.Model] = None

    def organization_clause(self, organization_id: int) -> ColumnElement:
        return self.model.organization_id == organization_id

    def self_clause(self, user_id: int) -> Optional[ColumnElement]:
        return None

    def team_clause(self, team_ids: List[int]) -> Optional[ColumnElement]:
        return None

    def project_clause(self, project_ids: List[int]) -> Optional[ColumnElement]:
        return None

    def fallback(self, user_id: int) -> ColumnElement:
        return match_nothing()


class UserPath(ScopePath):
    model = User

    def self_clause(self, user_id):
        return User.id == user_id

    def team_clause(self, team_ids):
        return User.id.in_(_team_member_ids(team_ids))

    def project_clause(self, project_ids):
        return User.id.in_(_project_member_ids(project_ids))

    def fallback(self, user_id):
        return self.self_clause(user_id)


class TeamPath(ScopePath):
    model = Team

    def team_clause(self, team_ids):
        return Team.id.in_(team_ids)


class ProjectPath(ScopePath):
    model = Project

    def team_clause(self, team_ids):
        linked = select(ProjectTeam.project_id).where(ProjectTeam.team_id.in_(team_ids))
        return Project.id.in_(linked)

    def project_clause(self, project_ids):
        return Project.id.in_(project_ids)


class WorkLogPath(ScopePath):
    # Work logs carry no organization column; the tenant comes from the project.
    model = WorkLog

    def organization_clause(self, organization_id):
        return WorkLog.project.has(Project.organization_id == organization_id)

    def team_clause(self, team_ids):
        return WorkLog.user_id.in_(_team_member_ids(team_ids))

    def project_clause(self, project_ids):
        return WorkLog.project_id.in_(project_ids)


SCOPE_PATHS = {
    ResourceType.USER: UserPath(),
    ResourceType.TEAM: TeamPath(),
    ResourceType.PROJECT: ProjectPath(),
    ResourceType.WORK_LOG: WorkLogPath(),
}


def coerce_resource_type(resource_type: Union[str, ResourceType]) -> ResourceType:
    if isinstance(resource_type, ResourceType):
        return resource_type
    try:
        return ResourceType(resource_type)
    except ValueError:
        raise ValidationError(
            f"Unknown resource type: {resource_type}",
            details={'allowed': [r.value for r in ResourceType]},
        )


class DataScopeService(BaseService):
    """Builds per-resource visibility predicates from the caller's AccessScope."""

    @property
    def scope_service(self) -> ScopeService:
        return self.compose_service(ScopeService)

    @propagate_persistence_errors
    def get_team_ids(self, user_id: int) -> List[int]:
        """Active teams the user is an active member of."""
        stmt = (
            select(TeamMember.team_id)
            .join(Team, Team.id == TeamMember.team_id)
            .where(
                TeamMember.user_id == user_id,
                TeamMember.is_active.is_(True),
                Team.is_active.is_(True),
            )
            .order_by(TeamMember.team_id)
        )
        return list(self.session.execute(stmt).scalars())

    @propagate_persistence_errors
    def get_project_ids(self, user_id: int) -> List[int]:
        """Active projects the user is an active member of."""
        stmt = (
            select(ProjectMember.project_id)
            .join(Project, Project.id == ProjectMember.project_id)
            .where(
                ProjectMember.user_id == user_id,
                ProjectMember.is_active.is_(True),
                Project.is_active.is_(True),
            )
            .order_by(ProjectMember.project_id)
        )
        return list(self.session.execute(stmt).scalars())

    def build_scope_filter(self, user_id: int,
                           resource_type: Union[str, ResourceType]) -> ColumnElement:
        """
        Build the visibility predicate for a resource type.

        Args:
            user_id: Caller id
            resource_type: ResourceType member or its value ('user', 'team',
                'project', 'work-log')

        Returns:
            Boolean clause over the resource's model. Never unrestricted.

        Raises:
            AuthenticationError: user_id is None
            ValidationError: unknown resource type
            PersistenceError: a read failed
        """
        require_identity(user_id)
        resource_type = coerce_resource_type(resource_type)
        scope = self.scope_service.resolve_scope(user_id)
        return self.build_filter_for_scope(scope, resource_type)

    def build_filter_for_scope(self, scope: AccessScope,
                               resource_type: ResourceType) -> ColumnElement:
        path = SCOPE_PATHS[resource_type]

        if scope.full_access:
            if scope.organization_id is not None:
                return path.organization_clause(scope.organization_id)
            self.logger.warning(
                "Full access without organization, degrading to self only",
                user_id=scope.user_id,
                resource_type=resource_type.value,
            )
            return path.fallback(scope.user_id)

        clauses = []
        if scope.individual:
            clause = path.self_clause(scope.user_id)
            if clause is not None:
                clauses.append(clause)

        if scope.team:
            team_ids = self.get_team_ids(scope.user_id)
            if team_ids:
                clause = path.team_clause(team_ids)
                if clause is not None:
                    clauses.append(clause)

        if scope.project:
            project_ids = self.get_project_ids(scope.user_id)
            if project_ids:
                clause = path.project_clause(project_ids)
                if clause is not None:
                    clauses.append(clause)

        if not clauses:
            return path.fallback(scope.user_id)
        if len(clauses) == 1:
            return clauses[0]
        return or_(*clauses)

    def scoped_select(self, user_id: int, resource_type: Union[str, ResourceType]):
        """``select(model)`` already restricted to what the user may see."""
        resource_type = coerce_resource_type(resource_type)
        model = SCOPE_PATHS[resource_type].model
        return select(model).where(self.build_scope_filter(user_id, resource_type))
