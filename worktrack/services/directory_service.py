"""
Scoped Directory Queries

List and detail reads for users, teams, projects and work logs. Every query
here is built on DataScopeService.scoped_select(), so business filters only
ever narrow what the caller is already allowed to see.
"""

from datetime import datetime
from typing import Any, Dict, Optional

from flask import current_app
from sqlalchemy import and_, func, or_, select

from ..models import Project, Team, User, WorkLog
from ..utils.error_handling import AuthorizationError, NotFoundError
from .base import BaseService, propagate_persistence_errors, require_identity
from .data_scope_service import DataScopeService, ResourceType

SECONDS_PER_HOUR = 3600


def _hours(seconds: Optional[int]) -> float:
    return round((seconds or 0) / SECONDS_PER_HOUR, 2)


class DirectoryService(BaseService):
    """Scoped list, detail and analytics reads."""

    @property
    def data_scope_service(self) -> DataScopeService:
        return self.compose_service(DataScopeService)

    def _page_bounds(self, page: Optional[int], per_page: Optional[int]):
        default_size = current_app.config.get('DEFAULT_PAGE_SIZE', 20)
        max_size = current_app.config.get('MAX_PAGE_SIZE', 100)
        page = max(int(page or 1), 1)
        per_page = min(max(int(per_page or default_size), 1), max_size)
        return page, per_page

    def _paginate(self, stmt, page: Optional[int], per_page: Optional[int]) -> Dict[str, Any]:
        page, per_page = self._page_bounds(page, per_page)
        pagination = self.db.paginate(stmt, page=page, per_page=per_page, error_out=False, count=True)
        return {
            'items': list(pagination.items),
            'meta': {
                'total': pagination.total,
                'page': page,
                'limit': per_page,
                'total_pages': pagination.pages,
            },
        }

    @propagate_persistence_errors
    def list_users(self, user_id: int, search: Optional[str] = None,
                   team_id: Optional[int] = None, is_active: Optional[bool] = None,
                   page: Optional[int] = None, per_page: Optional[int] = None) -> Dict[str, Any]:
        require_identity(user_id)
        stmt = self.data_scope_service.scoped_select(user_id, ResourceType.USER)

        if search:
            pattern = f"%{search}%"
            stmt = stmt.where(or_(
                User.email.ilike(pattern),
                User.first_name.ilike(pattern),
                User.last_name.ilike(pattern),
                User.display_name.ilike(pattern),
            ))
        if team_id is not None:
            stmt = stmt.where(User.team_memberships.any(team_id=team_id, is_active=True))
        if is_active is not None:
            stmt = stmt.where(User.is_active.is_(is_active))

        return self._paginate(stmt.order_by(User.last_name, User.first_name, User.id), page, per_page)

    @propagate_persistence_errors
    def get_user(self, user_id: int) -> User:
        """Load a user by id; access is decided by the caller beforehand."""
        user = self.session.get(User, user_id)
        if user is None:
            raise NotFoundError(f"User {user_id} not found", details={'user_id': user_id})
        return user

    @propagate_persistence_errors
    def list_teams(self, user_id: int, search: Optional[str] = None,
                   page: Optional[int] = None, per_page: Optional[int] = None) -> Dict[str, Any]:
        require_identity(user_id)
        stmt = self.data_scope_service.scoped_select(user_id, ResourceType.TEAM)
        if search:
            stmt = stmt.where(Team.name.ilike(f"%{search}%"))
        return self._paginate(stmt.order_by(Team.name, Team.id), page, per_page)

    @propagate_persistence_errors
    def list_projects(self, user_id: int, search: Optional[str] = None,
                      is_active: Optional[bool] = None,
                      page: Optional[int] = None, per_page: Optional[int] = None) -> Dict[str, Any]:
        require_identity(user_id)
        stmt = self.data_scope_service.scoped_select(user_id, ResourceType.PROJECT)
        if search:
            pattern = f"%{search}%"
            stmt = stmt.where(or_(Project.name.ilike(pattern), Project.code.ilike(pattern)))
        if is_active is not None:
            stmt = stmt.where(Project.is_active.is_(is_active))
        return self._paginate(stmt.order_by(Project.name, Project.id), page, per_page)

    def _work_log_filters(self, project_id=None, owner_id=None, start_date=None,
                          end_date=None, is_billable=None, search=None):
        filters = []
        if project_id is not None:
            filters.append(WorkLog.project_id == project_id)
        if owner_id is not None:
            filters.append(WorkLog.user_id == owner_id)
        if start_date is not None:
            filters.append(WorkLog.start_time >= start_date)
        if end_date is not None:
            filters.append(WorkLog.end_time <= end_date)
        if is_billable is not None:
            filters.append(WorkLog.is_billable.is_(is_billable))
        if search:
            pattern = f"%{search}%"
            filters.append(or_(
                WorkLog.description.ilike(pattern),
                WorkLog.user.has(or_(User.first_name.ilike(pattern), User.last_name.ilike(pattern))),
                WorkLog.project.has(Project.name.ilike(pattern)),
            ))
        return filters

    @propagate_persistence_errors
    def list_work_logs(self, user_id: int, project_id: Optional[int] = None,
                       owner_id: Optional[int] = None, start_date: Optional[datetime] = None,
                       end_date: Optional[datetime] = None, is_billable: Optional[bool] = None,
                       search: Optional[str] = None, page: Optional[int] = None,
                       per_page: Optional[int] = None) -> Dict[str, Any]:
        """
        Work logs visible to the caller, newest first.

        Business filters are ANDed with the scope predicate; ``owner_id``
        narrows to one user's logs and cannot widen past the scope.
        """
        require_identity(user_id)
        stmt = self.data_scope_service.scoped_select(user_id, ResourceType.WORK_LOG)
        stmt = stmt.where(*self._work_log_filters(
            project_id, owner_id, start_date, end_date, is_billable, search
        ))
        return self._paginate(stmt.order_by(WorkLog.start_time.desc(), WorkLog.id.desc()), page, per_page)

    @propagate_persistence_errors
    def get_work_log(self, user_id: int, work_log_id: int) -> WorkLog:
        """
        Load one work log the caller may see.

        Raises:
            NotFoundError: no work log with that id
            AuthorizationError: it exists but lies outside the caller's scope
        """
        require_identity(user_id)
        work_log = self.session.get(WorkLog, work_log_id)
        if work_log is None:
            raise NotFoundError(f"Work log {work_log_id} not found", details={'work_log_id': work_log_id})

        in_scope = select(WorkLog.id).where(and_(
            self.data_scope_service.build_scope_filter(user_id, ResourceType.WORK_LOG),
            WorkLog.id == work_log_id,
        ))
        if self.session.execute(in_scope).first() is None:
            raise AuthorizationError(
                "You do not have access to this work log",
                details={'work_log_id': work_log_id},
            )
        return work_log

    @propagate_persistence_errors
    def work_log_analytics(self, user_id: int, project_id: Optional[int] = None,
                           start_date: Optional[datetime] = None,
                           end_date: Optional[datetime] = None) -> Dict[str, Any]:
        """
        Aggregate hours over the work logs visible to the caller.

        Returns:
            Dictionary with total_hours, total_billable_hours, total_work_logs
            and per-project project_stats (hours rounded to two decimals)
        """
        require_identity(user_id)
        conditions = [self.data_scope_service.build_scope_filter(user_id, ResourceType.WORK_LOG)]
        conditions.extend(self._work_log_filters(
            project_id=project_id, start_date=start_date, end_date=end_date
        ))

        totals = self.session.execute(
            select(
                func.coalesce(func.sum(WorkLog.duration), 0),
                func.count(WorkLog.id),
            ).where(*conditions)
        ).one()
        billable = self.session.execute(
            select(func.coalesce(func.sum(WorkLog.duration), 0))
            .where(*conditions, WorkLog.is_billable.is_(True))
        ).scalar()

        per_project = self.session.execute(
            select(
                Project.id,
                Project.name,
                Project.code,
                func.coalesce(func.sum(WorkLog.duration), 0),
                func.count(WorkLog.id),
            )
            .select_from(WorkLog)
            .join(Project, Project.id == WorkLog.project_id)
            .where(*conditions)
            .group_by(Project.id, Project.name, Project.code)
            .order_by(Project.name)
        ).all()

        return {
            'total_hours': _hours(totals[0]),
            'total_billable_hours': _hours(billable),
            'total_work_logs': totals[1],
            'project_stats': [
                {
                    'project_id': pid,
                    'project_name': name,
                    'project_code': code,
                    'hours': _hours(seconds),
                    'work_logs': count,
                }
                for pid, name, code, seconds, count in per_project
            ],
        }
