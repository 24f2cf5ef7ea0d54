"""
routes/memberships.py — Member-facing mystery endpoints.

Endpoints (base url_prefix=/api/v1/memberships):
  GET    /memberships                 → 200  caller's memberships + current mystery
  POST   /memberships/:id/confirm     → 200  confirm the current mystery (owner only)
  GET    /memberships/:id/history     → 200  assignment history, newest first
"""

from __future__ import annotations

from flask import Blueprint, g, jsonify

from rosary.app.extensions import db
from rosary.app.middleware.auth_middleware import require_auth
from rosary.app.services import membership_service

memberships_bp = Blueprint("memberships", __name__)


@memberships_bp.route("/", methods=["GET"])
@require_auth
def list_my_memberships():
    result = membership_service.list_my_memberships(user_id=g.user_id, session=db.session)
    return jsonify({"data": result, "warnings": []}), 200


@memberships_bp.route("/<int:membership_id>/confirm", methods=["POST"])
@require_auth
def confirm_mystery(membership_id: int):
    """POST /memberships/:id/confirm — Sets mystery_confirmed_at; never reassigns."""
    result = membership_service.confirm_mystery(
        membership_id=membership_id,
        caller_id=g.user_id,
        session=db.session,
    )
    db.session.commit()
    return jsonify({"data": result, "warnings": []}), 200


@memberships_bp.route("/<int:membership_id>/history", methods=["GET"])
@require_auth
def get_history(membership_id: int):
    result = membership_service.get_history(
        membership_id=membership_id,
        caller_id=g.user_id,
        session=db.session,
    )
    return jsonify({"data": result, "warnings": []}), 200
