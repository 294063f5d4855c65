from marshmallow import Schema, fields, validate


class YapCreateSchema(Schema):
    body = fields.String(required=True, validate=validate.Length(min=1))


class YapOutSchema(Schema):
    id = fields.String(dump_only=True)
    body = fields.String()
    user_id = fields.String()
    created_at = fields.DateTime(dump_only=True)
    updated_at = fields.DateTime(dump_only=True)
