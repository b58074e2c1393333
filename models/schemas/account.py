from marshmallow import EXCLUDE, Schema, fields, pre_load, validate, validates, ValidationError

from models.account_store import normalize_email
from models.schemas.common import utf8_text


class RegisterSchema(Schema):
    class Meta:
        unknown = EXCLUDE

    email = fields.Email(required=True, validate=utf8_text)
    password = fields.String(required=True, load_only=True, validate=utf8_text)
    name = fields.String(
        load_default=None,
        allow_none=True,
        validate=[validate.Length(max=100), utf8_text],
    )

    @pre_load
    def normalize(self, data, **kwargs):
        if isinstance(data, dict):
            data = dict(data)
            if "email" in data:
                data["email"] = normalize_email(data["email"])
            if isinstance(data.get("name"), str):
                data["name"] = data["name"].strip() or None
        return data

    @validates("password")
    def validate_password(self, value, **kwargs):
        if len(value) < 8:
            raise ValidationError("Password must be at least 8 characters long.")


class LoginSchema(Schema):
    # no UTF-8 screening here: a bad password must fail as invalid credentials
    class Meta:
        unknown = EXCLUDE

    email = fields.String(required=True)
    password = fields.String(required=True, load_only=True)
    refresh_in_body = fields.Boolean(load_default=False)

    @pre_load
    def normalize(self, data, **kwargs):
        if isinstance(data, dict) and "email" in data:
            data = dict(data)
            data["email"] = normalize_email(data["email"])
        return data


class RefreshTokenSchema(Schema):
    """Body of /auth/refresh and /auth/logout for clients without cookies."""

    class Meta:
        unknown = EXCLUDE

    refresh_token = fields.String(load_default=None, allow_none=True, validate=utf8_text)


class AccountOutSchema(Schema):
    id = fields.String(allow_none=False)
    email = fields.String(allow_none=False)
    name = fields.String(allow_none=True)
    created_at = fields.DateTime()
