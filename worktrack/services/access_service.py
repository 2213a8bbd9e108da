"""
Accessibility Check

Single-target counterpart of the predicate builder, used once an id is
already in hand (detail, update and delete endpoints).
"""

from typing import Optional, Union

from sqlalchemy import and_, select
from sqlalchemy.orm import aliased

from ..models import Project, ProjectMember, Team, TeamMember, User
from ..utils.logging import log_authorization_decision
from .base import BaseService, propagate_persistence_errors, require_identity
from .data_scope_service import SCOPE_PATHS, DataScopeService, ResourceType, coerce_resource_type
from .permission_service import PermissionService
from .scope_service import ScopeService


class AccessService(BaseService):
    """Decides whether a requester may act on one specific user or record."""

    @property
    def permission_service(self) -> PermissionService:
        return self.compose_service(PermissionService)

    @property
    def scope_service(self) -> ScopeService:
        return self.compose_service(ScopeService)

    @property
    def data_scope_service(self) -> DataScopeService:
        return self.compose_service(DataScopeService)

    @propagate_persistence_errors
    def share_active_team(self, user_id: int, other_user_id: int) -> bool:
        mine = aliased(TeamMember)
        theirs = aliased(TeamMember)
        stmt = (
            select(mine.id)
            .join(theirs, theirs.team_id == mine.team_id)
            .join(Team, Team.id == mine.team_id)
            .where(
                Team.is_active.is_(True),
                mine.user_id == user_id,
                mine.is_active.is_(True),
                theirs.user_id == other_user_id,
                theirs.is_active.is_(True),
            )
            .limit(1)
        )
        return self.session.execute(stmt).first() is not None

    @propagate_persistence_errors
    def share_active_project(self, user_id: int, other_user_id: int) -> bool:
        mine = aliased(ProjectMember)
        theirs = aliased(ProjectMember)
        stmt = (
            select(mine.id)
            .join(theirs, theirs.project_id == mine.project_id)
            .join(Project, Project.id == mine.project_id)
            .where(
                Project.is_active.is_(True),
                mine.user_id == user_id,
                mine.is_active.is_(True),
                theirs.user_id == other_user_id,
                theirs.is_active.is_(True),
            )
            .limit(1)
        )
        return self.session.execute(stmt).first() is not None

    @propagate_persistence_errors
    def in_organization(self, user_id: int, organization_id: Optional[int]) -> bool:
        """Full access never crosses tenants; callers without a tenant reach nobody this way."""
        if organization_id is None:
            return False
        stmt = select(User.id).where(User.id == user_id, User.organization_id == organization_id)
        return self.session.execute(stmt).first() is not None

    def can_access_user(self, requester_id: int, target_user_id: int, action: str) -> bool:
        """
        Check whether requester may perform ``users.<action>`` on one target user.

        The ``users.<action>`` permission gates everything: without it the
        answer is False whatever the scope. With it, the scope flags are tried
        from widest to narrowest.

        Raises:
            AuthenticationError: requester_id is None
            PersistenceError: a read failed
        """
        require_identity(requester_id, 'requester_id')

        if not self.permission_service.has_permission(requester_id, 'users', action):
            return False

        scope = self.scope_service.resolve_scope(requester_id)
        if scope.full_access and self.in_organization(target_user_id, scope.organization_id):
            allowed, reason = True, 'full_access'
        elif scope.individual and requester_id == target_user_id:
            allowed, reason = True, 'self'
        elif scope.team and self.share_active_team(requester_id, target_user_id):
            allowed, reason = True, 'shared_team'
        elif scope.project and self.share_active_project(requester_id, target_user_id):
            allowed, reason = True, 'shared_project'
        else:
            allowed, reason = False, 'out_of_scope'

        log_authorization_decision(
            requester_id, 'users', action, allowed,
            {'target_user_id': target_user_id, 'reason': reason},
        )
        return allowed

    @propagate_persistence_errors
    def can_access_record(self, user_id: int, resource_type: Union[str, ResourceType],
                          record_id: int) -> bool:
        """True when the record exists and falls inside the user's scope filter."""
        require_identity(user_id)
        resource_type = coerce_resource_type(resource_type)
        model = SCOPE_PATHS[resource_type].model
        stmt = (
            select(model.id)
            .where(and_(
                self.data_scope_service.build_scope_filter(user_id, resource_type),
                model.id == record_id,
            ))
            .limit(1)
        )
        return self.session.execute(stmt).first() is not None
