"""
Authentication blueprint:
- POST /api/login    -> access token + refresh token
- POST /api/refresh  -> new access token (refresh token in the Bearer header)
- POST /api/revoke   -> revoke the refresh token in the Bearer header

Refresh tokens are opaque strings tracked in the refresh_tokens table; they
are not rotated on refresh. Access tokens are HS256 JWTs validated without
any store lookup.
"""
from __future__ import annotations

from flask import Blueprint, request, jsonify

from models.schemas.user import UserCredentialsSchema, LoginOutSchema
from utils.decorators import session_manager

bp = Blueprint("auth", __name__)

user_login_schema = UserCredentialsSchema()
login_out_schema = LoginOutSchema()


@bp.post("/login")
def login():
    """
    Login: return the user with an access token and a refresh token
    ---
    tags:
      - Auth
    consumes:
      - application/json
    parameters:
      -  in: body
         name: body
         schema:
           type: object
           properties:
             email: { type: string }
             password: { type: string }
    responses:
      200:
        description: OK (returns tokens)
      400:
        description: Incorrect email or password
    """
    payload = request.get_json(silent=True) or {}
    data = user_login_schema.load(payload)

    pair = session_manager().login(data["email"], data["password"])
    body = login_out_schema.dump(
        {
            "id": pair.user.id,
            "email": pair.user.email,
            "is_premium": pair.user.is_premium,
            "created_at": pair.user.created_at,
            "updated_at": pair.user.updated_at,
            "token": pair.access_token,
            "refresh_token": pair.refresh_token,
        }
    )
    return jsonify(body), 200


@bp.post("/refresh")
def refresh():
    """
    Exchange a refresh token for a new access token
    ---
    tags:
      - Auth
    security:
      - Bearer: []
    responses:
      200:
        description: OK
        schema:
          type: object
          properties:
            token: { type: string }
      401:
        description: Refresh token revoked or expired
      404:
        description: Unknown refresh token
    """
    manager = session_manager()
    token = manager.bearer_token(request.headers)
    return jsonify({"token": manager.refresh(token)}), 200


@bp.post("/revoke")
def revoke():
    """
    Revoke a refresh token (idempotent)
    ---
    tags:
      - Auth
    security:
      - Bearer: []
    responses:
      204:
        description: Revoked
      404:
        description: Unknown refresh token
    """
    manager = session_manager()
    manager.revoke(manager.bearer_token(request.headers))
    return ("", 204)
