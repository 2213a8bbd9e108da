"""
Marshmallow schemas for request validation.

Query-string schemas coerce strings into typed values; body schemas validate
JSON payloads of the administrative endpoints. Validated data is placed on
``g.validated_data`` by validate_request_data().
"""

from functools import wraps

from flask import g, request
from marshmallow import EXCLUDE, Schema, fields, validate
from marshmallow import ValidationError as SchemaValidationError

from ..models import AccessLevel
from ..utils.error_handling import ValidationError


class PaginationSchema(Schema):
    """Pagination parameters shared by list endpoints."""

    class Meta:
        unknown = EXCLUDE

    page = fields.Int(load_default=1, validate=validate.Range(min=1))
    per_page = fields.Int(load_default=None, validate=validate.Range(min=1))


class UserQuerySchema(PaginationSchema):
    search = fields.Str(load_default=None, validate=validate.Length(max=200))
    team_id = fields.Int(load_default=None)
    is_active = fields.Bool(load_default=None)


class TeamQuerySchema(PaginationSchema):
    search = fields.Str(load_default=None, validate=validate.Length(max=200))


class ProjectQuerySchema(PaginationSchema):
    search = fields.Str(load_default=None, validate=validate.Length(max=200))
    is_active = fields.Bool(load_default=None)


class WorkLogQuerySchema(PaginationSchema):
    project_id = fields.Int(load_default=None)
    user_id = fields.Int(load_default=None)
    start_date = fields.DateTime(load_default=None)
    end_date = fields.DateTime(load_default=None)
    is_billable = fields.Bool(load_default=None)
    search = fields.Str(load_default=None, validate=validate.Length(max=200))


class AnalyticsQuerySchema(Schema):
    class Meta:
        unknown = EXCLUDE

    project_id = fields.Int(load_default=None)
    start_date = fields.DateTime(load_default=None)
    end_date = fields.DateTime(load_default=None)


class PermissionQuerySchema(Schema):
    class Meta:
        unknown = EXCLUDE

    resource = fields.Str(load_default=None, validate=validate.Length(min=1, max=50))


class AssignRoleSchema(Schema):
    role_id = fields.Int(required=True)


class AccessLevelsSchema(Schema):
    levels = fields.List(
        fields.Str(validate=validate.OneOf([level.value for level in AccessLevel])),
        required=True,
    )


def validate_request_data(schema_class, location: str = 'json'):
    """
    Validate request data with a Marshmallow schema.

    Args:
        schema_class: Schema to load with
        location: 'json' for the body, 'args' for the query string

    Raises:
        ValidationError: with the schema messages as details
    """

    def decorator(func):
        @wraps(func)
        def wrapper(*args, **kwargs):
            if location == 'json':
                raw_data = request.get_json(silent=True) or {}
            else:
                raw_data = request.args.to_dict()

            try:
                g.validated_data = schema_class().load(raw_data)
            except SchemaValidationError as e:
                raise ValidationError("Validation failed", details=e.messages)

            return func(*args, **kwargs)

        return wrapper

    return decorator
