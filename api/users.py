from __future__ import annotations

from flask import Blueprint, request, jsonify, g, abort, current_app

from models.user import User
from models.schemas.user import UserCredentialsSchema, UserOutSchema
from utils.decorators import jwt_required, session_manager

bp = Blueprint("users", __name__)

user_credentials_schema = UserCredentialsSchema()
user_out_schema = UserOutSchema()


@bp.post("/users")
def create_user():
    """
    Register a new user
    ---
    tags:
      - Users
    consumes:
      - application/json
    parameters:
      - in: body
        name: body
        schema:
          type: object
          properties:
            email: { type: string }
            password: { type: string }
    responses:
      201:
        description: Created
      409:
        description: Email already registered
      422:
        description: Validation error
    """
    payload = request.get_json(silent=True) or {}
    data = user_credentials_schema.load(payload)
    user = session_manager().create_account(data["email"], data["password"])
    return jsonify(user_out_schema.dump(user)), 201


@bp.put("/users")
@jwt_required()
def update_user():
    """
    Change the caller's email and password
    ---
    tags:
      - Users
    security:
      - Bearer: []
    consumes:
      - application/json
    parameters:
      - in: body
        name: body
        schema:
          type: object
          properties:
            email: { type: string }
            password: { type: string }
    responses:
      200:
        description: Updated user
      401:
        description: Unauthorized
    """
    payload = request.get_json(silent=True) or {}
    data = user_credentials_schema.load(payload)
    user = session_manager().change_credentials(g.current_user_id, data["email"], data["password"])
    return jsonify(user_out_schema.dump(user)), 200


@bp.post("/users/sessions/revoke")
@jwt_required()
def revoke_all_sessions():
    """
    Revoke every refresh token of the caller (log out everywhere)
    ---
    tags:
      - Users
    security:
      - Bearer: []
    responses:
      200:
        description: Number of refresh tokens revoked
    """
    revoked = session_manager().revoke_all(g.current_user_id)
    return jsonify({"revoked": revoked}), 200


@bp.post("/reset")
def reset_users():
    """
    Delete every user (dev platform only)
    ---
    tags:
      - Users
    responses:
      200:
        description: All users deleted
      403:
        description: Not a dev platform
    """
    if current_app.config.get("PLATFORM") != "dev":
        abort(403, description="Reset is only allowed in dev environment")
    storage = current_app.extensions["storage"]
    session = storage.get_session()
    deleted = session.query(User).delete()
    storage.save()
    return jsonify({"deleted": deleted}), 200
