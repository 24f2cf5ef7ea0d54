"""
routes/groups.py — Group and membership management route handlers.

Layer rules:
  - Parse, validate, call ONE service, commit, return envelope.
  - No business logic. No DB queries. No bare SQL.

Endpoints (base url_prefix=/api/v1/groups):
  POST   /groups                        → 201  create group (admin)
  GET    /groups                        → 200  list groups the caller manages
  GET    /groups/:id                    → 200  group + members with mysteries (manager)
  POST   /groups/:id/members            → 201  add member (manager)
  DELETE /groups/:id/members/:uid       → 200  remove member (manager)
  GET    /groups/:id/intentions         → 200  shared intentions (member or manager)
"""

from __future__ import annotations

from flask import Blueprint, current_app, g, jsonify, request

from rosary.app.extensions import db
from rosary.app.middleware.auth_middleware import require_auth
from rosary.app.schemas.group_schema import AddMemberSchema, CreateGroupSchema
from rosary.app.services import group_service, intention_service

groups_bp = Blueprint("groups", __name__)


@groups_bp.route("/", methods=["POST"])
@require_auth
def create_group():
    """POST /groups — Create a new group, optionally naming its zelator. Admin only."""
    data = CreateGroupSchema().load(request.get_json(force=True) or {})
    result = group_service.create_group(
        caller_id=g.user_id,
        name=data["name"],
        description=data["description"],
        zelator_user_id=data["zelator_user_id"],
        session=db.session,
    )
    db.session.commit()
    return jsonify({"data": result, "warnings": []}), 201


@groups_bp.route("/", methods=["GET"])
@require_auth
def list_groups():
    """GET /groups — Groups the caller manages."""
    result = group_service.list_groups(caller_id=g.user_id, session=db.session)
    return jsonify({"data": result, "warnings": []}), 200


@groups_bp.route("/<int:group_id>", methods=["GET"])
@require_auth
def get_group(group_id: int):
    """GET /groups/:id — Group details with each member's mystery. Manager only."""
    result = group_service.get_group(
        group_id=group_id,
        caller_id=g.user_id,
        session=db.session,
    )
    return jsonify({"data": result, "warnings": []}), 200


@groups_bp.route("/<int:group_id>/members", methods=["POST"])
@require_auth
def add_member(group_id: int):
    """POST /groups/:id/members — Add a user to the group. Manager only."""
    data = AddMemberSchema().load(request.get_json(force=True) or {})
    result = group_service.add_member(
        group_id=group_id,
        caller_id=g.user_id,
        target_user_id=data["user_id"],
        session=db.session,
        max_members=current_app.config["MAX_GROUP_MEMBERS"],
    )
    db.session.commit()
    return jsonify({"data": result, "warnings": []}), 201


@groups_bp.route("/<int:group_id>/members/<int:target_uid>", methods=["DELETE"])
@require_auth
def remove_member(group_id: int, target_uid: int):
    """DELETE /groups/:id/members/:uid — Remove a member and their history. Manager only."""
    group_service.remove_member(
        group_id=group_id,
        caller_id=g.user_id,
        target_user_id=target_uid,
        session=db.session,
    )
    db.session.commit()
    return jsonify({
        "data": {
            "removed": True,
            "group_id": group_id,
            "user_id": target_uid,
        },
        "warnings": [],
    }), 200


@groups_bp.route("/<int:group_id>/intentions", methods=["GET"])
@require_auth
def list_shared_intentions(group_id: int):
    """GET /groups/:id/intentions — Intentions members shared with this group."""
    result = intention_service.list_shared_for_group(
        group_id=group_id,
        caller_id=g.user_id,
        session=db.session,
    )
    return jsonify({"data": result, "warnings": []}), 200
