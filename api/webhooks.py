from __future__ import annotations

import logging

from flask import Blueprint, request, abort, current_app

from models.user import User
from models.schemas.webhook import WebhookSchema
from utils.decorators import api_key_required

logger = logging.getLogger(__name__)

bp = Blueprint("webhooks", __name__)

webhook_schema = WebhookSchema()

UPGRADE_EVENT = "user.upgraded"


@bp.post("/polka/webhooks")
@api_key_required()
def payment_webhook():
    """
    Payment provider callback; upgrades a user to premium
    ---
    tags:
      - Webhooks
    security:
      - ApiKey: []
    consumes:
      - application/json
    parameters:
      - in: body
        name: body
        schema:
          type: object
          properties:
            event: { type: string, example: user.upgraded }
            data:
              type: object
              properties:
                user_id: { type: string }
    responses:
      204: { description: Processed or ignored }
      401: { description: Bad API key }
      404: { description: Unknown user }
    """
    payload = request.get_json(silent=True) or {}
    data = webhook_schema.load(payload)
    if data["event"] != UPGRADE_EVENT:
        return ("", 204)

    storage = current_app.extensions["storage"]
    user = storage.get(User, str(data["data"]["user_id"]))
    if user is None:
        abort(404)
    user.is_premium = True
    storage.save()
    logger.info("user id=%s upgraded to premium", user.id)
    return ("", 204)
