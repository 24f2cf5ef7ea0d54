"""
routes/auth.py — Authentication route handlers.

Layer rules:
  - Parse request body
  - Validate with the appropriate schema (raises ValidationError on bad input)
  - Call exactly ONE service function
  - Commit the DB session
  - Return the standard response envelope: {"data": {...}, "warnings": []}

Endpoints (base url_prefix=/api/v1/auth):
  POST   /auth/register  → 201
  POST   /auth/login     → 200
  GET    /auth/me        → 200
  POST   /auth/password  → 200  change own password
"""

from __future__ import annotations

from flask import Blueprint, g, jsonify, request

from rosary.app.extensions import db
from rosary.app.middleware.auth_middleware import require_auth
from rosary.app.schemas.auth_schema import ChangePasswordSchema, LoginSchema, RegisterSchema
from rosary.app.services import auth_service

auth_bp = Blueprint("auth", __name__)


@auth_bp.route("/register", methods=["POST"])
def register():
    """POST /auth/register — Create a MEMBER account; return an access token."""
    data = RegisterSchema().load(request.get_json(force=True) or {})
    result = auth_service.register_user(
        email=data["email"],
        name=data["name"],
        password=data["password"],
        session=db.session,
    )
    db.session.commit()
    return jsonify({"data": result, "warnings": []}), 201


@auth_bp.route("/login", methods=["POST"])
def login():
    """POST /auth/login — Authenticate; return an access token."""
    data = LoginSchema().load(request.get_json(force=True) or {})
    result = auth_service.login_user(
        email=data["email"],
        password=data["password"],
        session=db.session,
    )
    return jsonify({"data": result, "warnings": []}), 200


@auth_bp.route("/me", methods=["GET"])
@require_auth
def me():
    """GET /auth/me — Profile of the authenticated user."""
    result = auth_service.get_current_user(user_id=g.user_id, session=db.session)
    return jsonify({"data": result, "warnings": []}), 200


@auth_bp.route("/password", methods=["POST"])
@require_auth
def change_password():
    """POST /auth/password — Change the caller's password; issued tokens stay valid."""
    data = ChangePasswordSchema().load(request.get_json(force=True) or {})
    auth_service.change_password(
        user_id=g.user_id,
        current_password=data["current_password"],
        new_password=data["new_password"],
        session=db.session,
    )
    db.session.commit()
    return jsonify({"data": {"password_changed": True}, "warnings": []}), 200
