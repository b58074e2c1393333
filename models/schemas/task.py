from datetime import timezone

from marshmallow import EXCLUDE, Schema, fields, post_load, pre_load, validate, validates_schema, ValidationError

from models.schemas.common import strip_strings, utf8_text
from models.task import PRIORITIES, PRIORITY_MEDIUM


def _naive_utc(value):
    if value is not None and value.tzinfo is not None:
        return value.astimezone(timezone.utc).replace(tzinfo=None)
    return value


class TaskCreateSchema(Schema):
    class Meta:
        unknown = EXCLUDE

    title = fields.String(required=True, validate=[validate.Length(min=1, max=255), utf8_text])
    description = fields.String(load_default=None, allow_none=True, validate=utf8_text)
    due_date = fields.DateTime(load_default=None, allow_none=True)
    priority = fields.Integer(
        load_default=PRIORITY_MEDIUM,
        validate=validate.OneOf(PRIORITIES, error="priority must be 1 (low), 2 (medium) or 3 (high)"),
    )
    project_id = fields.String(load_default=None, allow_none=True, validate=utf8_text)

    @pre_load
    def strip(self, data, **kwargs):
        return strip_strings(data, ("title", "description", "project_id"))

    @post_load
    def to_utc(self, data, **kwargs):
        # stored as naive UTC like every other timestamp column
        if "due_date" in data:
            data["due_date"] = _naive_utc(data["due_date"])
        if data.get("project_id") == "":
            data["project_id"] = None
        return data


class TaskUpdateSchema(TaskCreateSchema):
    # all optional, validated if present
    title = fields.String(validate=[validate.Length(min=1, max=255), utf8_text])
    description = fields.String(allow_none=True, validate=utf8_text)
    due_date = fields.DateTime(allow_none=True)
    priority = fields.Integer(
        validate=validate.OneOf(PRIORITIES, error="priority must be 1 (low), 2 (medium) or 3 (high)"),
    )
    completed = fields.Boolean()
    project_id = fields.String(allow_none=True, validate=utf8_text)

    @validates_schema
    def not_empty(self, data, **kwargs):
        if not data:
            raise ValidationError("no update fields provided")


class TaskOutSchema(Schema):
    id = fields.String()
    project_id = fields.String(allow_none=True)
    title = fields.String()
    description = fields.String(allow_none=True)
    due_date = fields.DateTime(allow_none=True)
    priority = fields.Integer()
    completed = fields.Boolean()
    created_at = fields.DateTime()
    updated_at = fields.DateTime()
