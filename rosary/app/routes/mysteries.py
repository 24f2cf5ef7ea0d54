"""
routes/mysteries.py — Read-only access to the mystery catalog.

Endpoints (base url_prefix=/api/v1/mysteries):
  GET    /mysteries               → 200  all twenty mysteries, catalog order
  GET    /mysteries?group=Light   → 200  the mysteries of one group
  GET    /mysteries/:id           → 200  one mystery (404 MYSTERY_NOT_FOUND)

The group filter accepts the group label ("Joyful", "Light", "Sorrowful",
"Glorious") or its name ("LUMINOUS"), case-insensitively.
"""

from __future__ import annotations

from flask import Blueprint, jsonify, request

from rosary.app.errors import AppError, ErrorCode
from rosary.app.middleware.auth_middleware import require_auth
from rosary.app.services.catalog import DEFAULT_CATALOG, MysteryGroup

mysteries_bp = Blueprint("mysteries", __name__)


def _parse_group(raw: str) -> MysteryGroup:
    wanted = raw.strip().lower()
    for group in MysteryGroup:
        if wanted in (group.value.lower(), group.name.lower()):
            return group
    raise AppError(
        ErrorCode.INVALID_FIELD,
        f"Unknown mystery group '{raw}'. "
        f"Use one of: {', '.join(g.value for g in MysteryGroup)}.",
        400,
        field="group",
    )


@mysteries_bp.route("/", methods=["GET"])
@require_auth
def list_mysteries():
    group = request.args.get("group")
    if group:
        mysteries = DEFAULT_CATALOG.by_group(_parse_group(group))
    else:
        mysteries = list(DEFAULT_CATALOG)
    return jsonify({
        "data": [m.to_dict() for m in mysteries],
        "warnings": [],
    }), 200


@mysteries_bp.route("/<string:mystery_id>", methods=["GET"])
@require_auth
def get_mystery(mystery_id: str):
    mystery = DEFAULT_CATALOG.lookup(mystery_id)
    if mystery is None:
        raise AppError(
            ErrorCode.MYSTERY_NOT_FOUND,
            f"Mystery '{mystery_id}' does not exist.",
            404,
        )
    return jsonify({"data": mystery.to_dict(), "warnings": []}), 200
