from marshmallow import Schema, fields, pre_load, validate


def _norm_email(v):
    return v.strip().lower() if isinstance(v, str) else v


class UserCredentialsSchema(Schema):
    """Body of POST /api/users, PUT /api/users and POST /api/login."""

    email = fields.Email(required=True)
    password = fields.String(required=True, load_only=True, validate=validate.Length(min=1))

    @pre_load
    def normalize(self, data, **kwargs):
        if isinstance(data, dict) and "email" in data:
            data = dict(data, email=_norm_email(data["email"]))
        return data


class UserOutSchema(Schema):
    id = fields.String()
    email = fields.String()
    is_premium = fields.Boolean()
    created_at = fields.DateTime()
    updated_at = fields.DateTime()


class LoginOutSchema(UserOutSchema):
    token = fields.String()
    refresh_token = fields.String()
