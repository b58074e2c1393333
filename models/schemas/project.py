from marshmallow import EXCLUDE, Schema, fields, pre_load, validate, validates_schema, ValidationError

from models.schemas.common import strip_strings, utf8_text


class ProjectCreateSchema(Schema):
    class Meta:
        unknown = EXCLUDE

    name = fields.String(required=True, validate=[validate.Length(min=1, max=100), utf8_text])
    description = fields.String(load_default=None, allow_none=True, validate=utf8_text)

    @pre_load
    def strip(self, data, **kwargs):
        return strip_strings(data, ("name", "description"))


class ProjectUpdateSchema(ProjectCreateSchema):
    name = fields.String(validate=[validate.Length(min=1, max=100), utf8_text])
    description = fields.String(allow_none=True, validate=utf8_text)

    @validates_schema
    def not_empty(self, data, **kwargs):
        if not data:
            raise ValidationError("no update fields provided")


class ProjectOutSchema(Schema):
    id = fields.String()
    name = fields.String()
    description = fields.String(allow_none=True)
    task_count = fields.Integer(dump_default=0)
    created_at = fields.DateTime()
    updated_at = fields.DateTime()
