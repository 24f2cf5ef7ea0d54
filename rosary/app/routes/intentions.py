"""
routes/intentions.py — Prayer intention route handlers.

Endpoints (base url_prefix=/api/v1/intentions):
  POST   /intentions          → 201  create (private or shared with a group)
  GET    /intentions          → 200  caller's intentions, newest first
  PATCH  /intentions/:id      → 200  partial update (author only)
  DELETE /intentions/:id      → 200  delete (author only)

A group's shared intentions are listed under GET /groups/:id/intentions.
"""

from __future__ import annotations

from flask import Blueprint, g, jsonify, request

from rosary.app.extensions import db
from rosary.app.middleware.auth_middleware import require_auth
from rosary.app.schemas.intention_schema import CreateIntentionSchema, UpdateIntentionSchema
from rosary.app.services import intention_service

intentions_bp = Blueprint("intentions", __name__)


@intentions_bp.route("/", methods=["POST"])
@require_auth
def create_intention():
    data = CreateIntentionSchema().load(request.get_json(force=True) or {})
    result = intention_service.create_intention(
        author_id=g.user_id,
        text=data["text"],
        is_shared_with_group=data["is_shared_with_group"],
        shared_with_group_id=data["shared_with_group_id"],
        session=db.session,
    )
    db.session.commit()
    return jsonify({"data": result, "warnings": []}), 201


@intentions_bp.route("/", methods=["GET"])
@require_auth
def list_my_intentions():
    result = intention_service.list_my_intentions(user_id=g.user_id, session=db.session)
    return jsonify({"data": result, "warnings": []}), 200


@intentions_bp.route("/<int:intention_id>", methods=["PATCH"])
@require_auth
def update_intention(intention_id: int):
    """PATCH /intentions/:id — Only the fields present in the body change."""
    changes = UpdateIntentionSchema().load(request.get_json(force=True) or {})
    result = intention_service.update_intention(
        intention_id=intention_id,
        caller_id=g.user_id,
        changes=changes,
        session=db.session,
    )
    db.session.commit()
    return jsonify({"data": result, "warnings": []}), 200


@intentions_bp.route("/<int:intention_id>", methods=["DELETE"])
@require_auth
def delete_intention(intention_id: int):
    intention_service.delete_intention(
        intention_id=intention_id,
        caller_id=g.user_id,
        session=db.session,
    )
    db.session.commit()
    return jsonify({
        "data": {"deleted": True, "intention_id": intention_id},
        "warnings": [],
    }), 200
