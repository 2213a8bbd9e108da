"""
Scope Resolver

Collapses a user's access-level set into four visibility flags. The
privileged-role bypass is checked once here and surfaced on the returned
AccessScope so nothing downstream needs to know role names.
"""

from dataclasses import asdict, dataclass
from typing import Any, Dict, Optional, Set

from sqlalchemy import select

from ..models import AccessLevel, User, UserAccessLevel
from .base import BaseService, propagate_persistence_errors, require_identity
from .permission_service import PermissionService

FULL_ACCESS_LEVELS = frozenset({AccessLevel.FULL_ACCESS, AccessLevel.ORGANIZATION})


@dataclass(frozen=True)
class AccessScope:
    """
    Resolved visibility of one user.

    ``individual`` is always True. ``team`` is implied by ``project``.
    ``organization_id`` bounds ``full_access``; None means the user has no
    tenant and full access degrades to self-only visibility.
    """

    user_id: int
    full_access: bool = False
    project: bool = False
    team: bool = False
    individual: bool = True
    privileged: bool = False
    organization_id: Optional[int] = None

    @classmethod
    def for_privileged(cls, user_id: int, organization_id: Optional[int]) -> 'AccessScope':
        return cls(
            user_id=user_id,
            full_access=True,
            project=True,
            team=True,
            individual=True,
            privileged=True,
            organization_id=organization_id,
        )

    @classmethod
    def from_levels(cls, user_id: int, levels: Set[AccessLevel],
                    organization_id: Optional[int]) -> 'AccessScope':
        project = AccessLevel.PROJECT in levels
        return cls(
            user_id=user_id,
            full_access=bool(levels & FULL_ACCESS_LEVELS),
            project=project,
            team=AccessLevel.TEAM in levels or project,
            individual=True,
            privileged=False,
            organization_id=organization_id,
        )

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


class ScopeService(BaseService):
    """Reads access levels and the caller's tenant to build an AccessScope."""

    @property
    def permission_service(self) -> PermissionService:
        return self.compose_service(PermissionService)

    @propagate_persistence_errors
    def get_access_levels(self, user_id: int) -> Set[AccessLevel]:
        require_identity(user_id)
        stmt = select(UserAccessLevel.level).where(UserAccessLevel.user_id == user_id)
        return set(self.session.execute(stmt).scalars())

    @propagate_persistence_errors
    def get_organization_id(self, user_id: int) -> Optional[int]:
        require_identity(user_id)
        stmt = select(User.organization_id).where(User.id == user_id)
        return self.session.execute(stmt).scalar()

    def resolve_scope(self, user_id: int) -> AccessScope:
        """
        Resolve the visibility flags of a user.

        Args:
            user_id: Caller id

        Returns:
            AccessScope; the privileged variant when the user holds an active
            SUPER_ADMIN or ADMIN role

        Raises:
            AuthenticationError: user_id is None
            PersistenceError: a read failed
        """
        require_identity(user_id)
        organization_id = self.get_organization_id(user_id)

        if self.permission_service.is_privileged(user_id):
            scope = AccessScope.for_privileged(user_id, organization_id)
        else:
            scope = AccessScope.from_levels(
                user_id, self.get_access_levels(user_id), organization_id
            )

        self.logger.debug(
            "Scope resolved",
            user_id=user_id,
            full_access=scope.full_access,
            project=scope.project,
            team=scope.team,
            privileged=scope.privileged,
        )
        return scope
