from marshmallow import EXCLUDE, Schema, fields, pre_load, validates_schema, ValidationError


def _norm_identity(v):
    return v.strip().lower() if isinstance(v, str) else v


class _InputSchema(Schema):
    class Meta:
        unknown = EXCLUDE


class RegisterSchema(_InputSchema):
    # Emptiness after trimming is checked by the auth service
    full_name = fields.String(required=True, data_key="fullName")
    email = fields.Email(required=True)
    username = fields.String(required=True)
    password = fields.String(required=True, load_only=True)
    # Remote image URLs for JSON clients; multipart clients send files instead
    avatar = fields.Url(load_default=None, allow_none=True, require_tld=False, schemes={"http", "https"})
    cover_image = fields.Url(
        load_default=None, allow_none=True, require_tld=False, schemes={"http", "https"}, data_key="coverImage"
    )

    @pre_load
    def normalize(self, data, **kwargs):
        data = dict(data)
        for key in ("email", "username"):
            if key in data:
                data[key] = _norm_identity(data[key])
        return data


class LoginSchema(_InputSchema):
    username = fields.String(load_default=None, allow_none=True)
    email = fields.String(load_default=None, allow_none=True)
    password = fields.String(required=True, load_only=True)

    @pre_load
    def normalize(self, data, **kwargs):
        data = dict(data)
        for key in ("email", "username"):
            if key in data:
                data[key] = _norm_identity(data[key])
        return data

    @validates_schema
    def validate_identity(self, data, **kwargs):
        if not data.get("username") and not data.get("email"):
            raise ValidationError("username or email is required", "username")


class RefreshSchema(_InputSchema):
    refresh_token = fields.String(load_default=None, allow_none=True, data_key="refreshToken")


class ChangePasswordSchema(_InputSchema):
    old_password = fields.String(required=True, load_only=True, data_key="oldPassword")
    new_password = fields.String(required=True, load_only=True, data_key="newPassword")


class UserOutSchema(Schema):
    """Sanitized user: never includes password_hash or refresh_token."""
    id = fields.String()
    username = fields.String()
    email = fields.String()
    full_name = fields.String(data_key="fullName")
    avatar = fields.String(attribute="avatar_url")
    cover_image = fields.String(attribute="cover_image_url", data_key="coverImage")
    created_at = fields.DateTime(data_key="createdAt")
    updated_at = fields.DateTime(data_key="updatedAt")
