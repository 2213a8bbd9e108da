"""
Service layer.

Every service is bound as an injector singleton by configure_services() and
retrieved in views with get_service().
"""

from flask_sqlalchemy import SQLAlchemy
from injector import Binder, singleton

from ..models import db
from .access_service import AccessService
from .admin_service import AdminService
from .base import BaseService, get_service
from .catalog import CatalogService
from .data_scope_service import DataScopeService, ResourceType
from .directory_service import DirectoryService
from .permission_service import PermissionService
from .scope_service import AccessScope, ScopeService

SERVICE_CLASSES = (
    PermissionService,
    ScopeService,
    DataScopeService,
    AccessService,
    DirectoryService,
    AdminService,
    CatalogService,
)


def configure_services(binder: Binder) -> None:
    """Injector module binding the database handle and all services."""
    binder.bind(SQLAlchemy, to=db, scope=singleton)
    for service_class in SERVICE_CLASSES:
        binder.bind(service_class, scope=singleton)


__all__ = [
    'AccessScope',
    'AccessService',
    'AdminService',
    'BaseService',
    'CatalogService',
    'DataScopeService',
    'DirectoryService',
    'PermissionService',
    'ResourceType',
    'ScopeService',
    'configure_services',
    'get_service',
]
