from __future__ import annotations

import uuid

from flask import Blueprint, request, jsonify, g, abort, current_app

from models.yap import Yap, MAX_YAP_LENGTH
from models.schemas.yap import YapCreateSchema, YapOutSchema
from models.schemas.common import clean_body
from utils.decorators import jwt_required
from utils.errors import Forbidden

bp = Blueprint("yaps", __name__)

yap_create_schema = YapCreateSchema()
yap_out_schema = YapOutSchema()
yaps_out_schema = YapOutSchema(many=True)


def _storage():
    return current_app.extensions["storage"]


def _get_yap_or_404(yap_id: str) -> Yap:
    try:
        uuid.UUID(yap_id)
    except ValueError:
        abort(404)
    yap = _storage().get(Yap, yap_id)
    if yap is None:
        abort(404)
    return yap


@bp.post("/yaps")
@jwt_required()
def create_yap():
    """
    Post a yap as the authenticated user
    ---
    tags:
      - Yaps
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
            body: { type: string }
    responses:
      201:
        description: Created
      400:
        description: Yap is too long
      401:
        description: Unauthorized
    """
    payload = request.get_json(silent=True) or {}
    data = yap_create_schema.load(payload)
    if len(data["body"]) > MAX_YAP_LENGTH:
        abort(400, description="Yap is too long")

    yap = Yap(body=clean_body(data["body"]), user_id=g.current_user_id)
    storage = _storage()
    storage.new(yap)
    storage.save()
    return jsonify(yap_out_schema.dump(yap)), 201


@bp.get("/yaps")
def list_yaps():
    """
    List yaps, oldest first
    ---
    tags:
      - Yaps
    parameters:
      - in: query
        name: author_id
        type: string
        required: false
      - in: query
        name: sort
        type: string
        enum: [asc, desc]
        required: false
    responses:
      200: { description: OK }
    """
    sort = request.args.get("sort", "asc").lower()
    if sort not in ("asc", "desc"):
        abort(400, description="sort must be 'asc' or 'desc'")

    query = _storage().get_session().query(Yap)
    author_id = request.args.get("author_id")
    if author_id:
        query = query.filter(Yap.user_id == author_id)
    order = Yap.created_at.desc() if sort == "desc" else Yap.created_at.asc()
    return jsonify(yaps_out_schema.dump(query.order_by(order).all())), 200


@bp.get("/yaps/<yap_id>")
def get_yap(yap_id: str):
    """
    Get a single yap
    ---
    tags:
      - Yaps
    parameters:
      - in: path
        name: yap_id
        type: string
        required: true
    responses:
      200: { description: OK }
      404: { description: Not found }
    """
    return jsonify(yap_out_schema.dump(_get_yap_or_404(yap_id))), 200


@bp.delete("/yaps/<yap_id>")
@jwt_required()
def delete_yap(yap_id: str):
    """
    Delete one of your own yaps
    ---
    tags:
      - Yaps
    security:
      - Bearer: []
    parameters:
      - in: path
        name: yap_id
        type: string
        required: true
    responses:
      204: { description: Deleted }
      403: { description: Not the author }
      404: { description: Not found }
    """
    yap = _get_yap_or_404(yap_id)
    if yap.user_id != g.current_user_id:
        raise Forbidden("not the author of this yap")
    storage = _storage()
    storage.delete(yap)
    storage.save()
    return ("", 204)
