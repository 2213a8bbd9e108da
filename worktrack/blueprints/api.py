"""
REST API Blueprint

JSON endpoints over the authorization engine. Every route declares the
(resource, action) it needs with require_permission, or the target user it
acts on with require_user_access; list routes then read through the scoped
DirectoryService so results never exceed the caller's visibility.

Response envelope:
    {"success": true, "message": ..., "timestamp": ..., "data": ..., "meta": ...}
Errors use the envelope rendered by utils.error_handling.
"""

from datetime import datetime, timezone
from typing import Any, Dict, Tuple

from flask import Blueprint, g, jsonify
from flask_login import current_user

from ..auth import require_auth, require_permission, require_user_access
from ..services import (
    AccessService, AdminService, DirectoryService, PermissionService, ScopeService,
    get_service
)
from .schemas import (
    AccessLevelsSchema, AnalyticsQuerySchema, AssignRoleSchema, PermissionQuerySchema,
    ProjectQuerySchema, TeamQuerySchema, UserQuerySchema, WorkLogQuerySchema,
    validate_request_data
)

api_bp = Blueprint('api', __name__)


def create_success_response(data: Any = None, message: str = "Operation successful",
                            status_code: int = 200, **kwargs) -> Tuple[Any, int]:
    response_data = {
        'success': True,
        'message': message,
        'timestamp': datetime.now(timezone.utc).isoformat(),
        **kwargs,
    }
    if data is not None:
        response_data['data'] = data
    return jsonify(response_data), status_code


def _page_response(page: Dict[str, Any], message: str):
    return create_success_response(
        [item.to_dict() for item in page['items']], message, meta=page['meta']
    )


# =============================================================================
# CALLER
# =============================================================================

@api_bp.route('/me/permissions', methods=['GET'])
@require_auth
def my_permissions():
    """Permissions, roles and privileged flag of the caller."""
    permission_service = get_service(PermissionService)
    primary_role = permission_service.get_primary_role(current_user.id)
    return create_success_response({
        'user_id': current_user.id,
        'privileged': permission_service.is_privileged(current_user.id),
        'permissions': sorted(permission_service.list_permissions(current_user.id)),
        'roles': [role.name for role in permission_service.get_active_roles(current_user.id)],
        'primary_role': primary_role.name if primary_role else None,
    }, "Permissions retrieved")


@api_bp.route('/me/scope', methods=['GET'])
@require_auth
def my_scope():
    scope = get_service(ScopeService).resolve_scope(current_user.id)
    return create_success_response(scope.to_dict(), "Scope resolved")


# =============================================================================
# USERS
# =============================================================================

@api_bp.route('/users', methods=['GET'])
@require_permission('users', 'read')
@validate_request_data(UserQuerySchema, location='args')
def list_users():
    page = get_service(DirectoryService).list_users(current_user.id, **g.validated_data)
    return _page_response(page, "Users retrieved")


@api_bp.route('/users/<int:user_id>', methods=['GET'])
@require_user_access('read', 'user_id')
def get_user(user_id: int):
    user = get_service(DirectoryService).get_user(user_id)
    return create_success_response(user.to_dict(), "User retrieved")


@api_bp.route('/users/<int:user_id>/permissions', methods=['GET'])
@require_user_access('read', 'user_id')
@validate_request_data(PermissionQuerySchema, location='args')
def get_user_permissions(user_id: int):
    permission_service = get_service(PermissionService)
    get_service(DirectoryService).get_user(user_id)

    resource = g.validated_data.get('resource')
    if resource:
        permissions = permission_service.list_permissions_for_resource(user_id, resource)
    else:
        permissions = permission_service.list_permissions(user_id)

    return create_success_response({
        'user_id': user_id,
        'resource': resource,
        'permissions': sorted(permissions),
    }, "Permissions retrieved")


@api_bp.route('/users/<int:user_id>/roles', methods=['POST'])
@require_user_access('assign_role', 'user_id')
@validate_request_data(AssignRoleSchema)
def assign_role(user_id: int):
    assignment = get_service(AdminService).assign_role(user_id, g.validated_data['role_id'])
    return create_success_response(assignment.to_dict(), "Role assigned", status_code=201)


@api_bp.route('/users/<int:user_id>/roles/<int:role_id>', methods=['DELETE'])
@require_user_access('remove_role', 'user_id')
def remove_role(user_id: int, role_id: int):
    get_service(AdminService).remove_role(user_id, role_id)
    return create_success_response(message="Role removed")


@api_bp.route('/users/<int:user_id>/access-levels', methods=['PUT'])
@require_permission('permissions', 'manage')
@require_user_access('update', 'user_id')
@validate_request_data(AccessLevelsSchema)
def set_access_levels(user_id: int):
    levels = get_service(AdminService).set_access_levels(user_id, g.validated_data['levels'])
    return create_success_response({
        'user_id': user_id,
        'levels': [level.value for level in levels],
    }, "Access levels updated")


# =============================================================================
# TEAMS AND PROJECTS
# =============================================================================

@api_bp.route('/teams', methods=['GET'])
@require_permission('teams', 'read')
@validate_request_data(TeamQuerySchema, location='args')
def list_teams():
    page = get_service(DirectoryService).list_teams(current_user.id, **g.validated_data)
    return _page_response(page, "Teams retrieved")


@api_bp.route('/projects', methods=['GET'])
@require_permission('projects', 'read')
@validate_request_data(ProjectQuerySchema, location='args')
def list_projects():
    page = get_service(DirectoryService).list_projects(current_user.id, **g.validated_data)
    return _page_response(page, "Projects retrieved")


# =============================================================================
# WORK LOGS
# =============================================================================

@api_bp.route('/work-logs', methods=['GET'])
@require_permission('work_logs', 'read')
@validate_request_data(WorkLogQuerySchema, location='args')
def list_work_logs():
    filters = dict(g.validated_data)
    filters['owner_id'] = filters.pop('user_id', None)
    page = get_service(DirectoryService).list_work_logs(current_user.id, **filters)
    return _page_response(page, "Work logs retrieved")


@api_bp.route('/work-logs/analytics', methods=['GET'])
@require_permission('analytics', 'read')
@validate_request_data(AnalyticsQuerySchema, location='args')
def work_log_analytics():
    analytics = get_service(DirectoryService).work_log_analytics(current_user.id, **g.validated_data)
    return create_success_response(analytics, "Analytics computed")


@api_bp.route('/work-logs/<int:work_log_id>', methods=['GET'])
@require_permission('work_logs', 'read')
def get_work_log(work_log_id: int):
    work_log = get_service(DirectoryService).get_work_log(current_user.id, work_log_id)
    return create_success_response(work_log.to_dict(), "Work log retrieved")


@api_bp.route('/work-logs/<int:work_log_id>/access', methods=['GET'])
@require_permission('work_logs', 'read')
def work_log_access(work_log_id: int):
    """Whether the caller's scope covers one work log, without loading it."""
    allowed = get_service(AccessService).can_access_record(current_user.id, 'work-log', work_log_id)
    return create_success_response({'work_log_id': work_log_id, 'accessible': allowed})
