from marshmallow import Schema, fields


class WebhookDataSchema(Schema):
    user_id = fields.UUID(required=True)


class WebhookSchema(Schema):
    """Payment provider callback: {"event": "...", "data": {"user_id": "..."}}."""

    event = fields.String(required=True)
    data = fields.Nested(WebhookDataSchema, required=True)
