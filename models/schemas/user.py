from marshmallow import EXCLUDE, Schema, fields, validate


class RegisterSchema(Schema):
    email = fields.Email(required=True)
    password = fields.String(
        required=True,
        load_only=True,
        validate=validate.Length(min=8, error="Password must be at least 8 characters"),
    )


class LoginSchema(Schema):
    email = fields.Email(required=True)
    password = fields.String(
        required=True,
        load_only=True,
        validate=validate.Length(min=1, error="Password is required"),
    )


class RefreshSchema(Schema):
    refresh_token = fields.String(
        required=True,
        validate=validate.Length(min=10, error="Refresh token is required"),
    )


class UserRecordSchema(Schema):
    """Shape every session store accepts in create_user()."""

    class Meta:
        unknown = EXCLUDE

    email = fields.Email(required=True)
    hashed_password = fields.String(required=True)
    role = fields.String(load_default="user")
