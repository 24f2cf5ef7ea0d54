"""
routes/admin.py — Administrative actions: manual rotations and role changes.

Manual rotations are fire-and-forget. The handler checks who is asking (and,
for a single group, that the group exists), hands the rotation to the
RotationScheduler and answers 202 straight away. The batch outcome is only
visible in the logs and, for full rotations, in /admin/rotations/status: a
request that was accepted may still end with every member failing, or be
skipped because every group was already rotated today.

Endpoints (base url_prefix=/api/v1/admin):
  POST   /admin/rotations                 → 202  rotate every group (admin)
  POST   /admin/groups/:id/rotations      → 202  rotate one group (manager)
  GET    /admin/rotations/status          → 200  recent full rotations (admin)
  PATCH  /admin/users/:id/role            → 200  set MEMBER / ZELATOR (admin)
"""

from __future__ import annotations

import logging

from flask import Blueprint, current_app, g, jsonify, request

from rosary.app.extensions import db
from rosary.app.middleware.auth_middleware import require_auth
from rosary.app.schemas.auth_schema import UpdateRoleSchema
from rosary.app.services import auth_service, group_service, rotation_run_service

logger = logging.getLogger(__name__)

admin_bp = Blueprint("admin", __name__)


def _rotation_scheduler():
    return current_app.extensions["rotation_scheduler"]


@admin_bp.route("/rotations", methods=["POST"])
@require_auth
def trigger_rotation():
    """POST /admin/rotations — Start a rotation of every group. Admin only."""
    group_service.require_admin(g.user_id, db.session)
    logger.info("User %s triggered a rotation of all groups.", g.user_id)
    _rotation_scheduler().submit_rotation()
    return jsonify({
        "data": {"status": "accepted", "scope": "all"},
        "warnings": [],
    }), 202


@admin_bp.route("/groups/<int:group_id>/rotations", methods=["POST"])
@require_auth
def trigger_group_rotation(group_id: int):
    """POST /admin/groups/:id/rotations — Start a rotation of one group. Manager only."""
    group = group_service.get_group_or_404(group_id, db.session)
    group_service.require_manager(group, g.user_id, db.session)
    logger.info("User %s triggered a rotation of group %s.", g.user_id, group_id)
    _rotation_scheduler().submit_rotation(group_id)
    return jsonify({
        "data": {"status": "accepted", "scope": "group", "group_id": group_id},
        "warnings": [],
    }), 202


@admin_bp.route("/rotations/status", methods=["GET"])
@require_auth
def rotation_status():
    """GET /admin/rotations/status — Recent scheduled runs and the next expected one."""
    group_service.require_admin(g.user_id, db.session)
    scheduler = _rotation_scheduler()
    return jsonify({
        "data": {
            "scheduler_running": scheduler.running,
            "mode": scheduler.mode,
            "last_rotation_date": (
                scheduler.last_rotation_date.isoformat()
                if scheduler.last_rotation_date else None
            ),
            "next_rotation_at": scheduler.next_run_time().isoformat(),
            "runs": rotation_run_service.list_recent_runs(db.session),
        },
        "warnings": [],
    }), 200


@admin_bp.route("/users/<int:user_id>/role", methods=["PATCH"])
@require_auth
def update_user_role(user_id: int):
    """PATCH /admin/users/:id/role — Make a user a MEMBER or a ZELATOR. Admin only."""
    data = UpdateRoleSchema().load(request.get_json(force=True) or {})
    result = auth_service.update_user_role(
        caller_id=g.user_id,
        target_user_id=user_id,
        new_role=data["role"],
        session=db.session,
    )
    db.session.commit()
    return jsonify({"data": result, "warnings": []}), 200
