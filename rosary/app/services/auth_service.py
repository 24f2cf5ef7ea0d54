"""
services/auth_service.py — Authentication business logic.

Responsibilities:
  - User registration and credential validation
  - JWT access token creation (HS256)
  - Password hashing (bcrypt) and verification
  - Password changes (current password required)
  - Role changes (admin only)

Layer rules:
  - No imports from routes or schemas
  - No use of flask.request, flask.g, or HTTP status codes
  - current_app.config is used ONLY to read the JWT secret, token TTL and
    bcrypt cost; JWT secrets must not be read from env directly in a way
    that bypasses Flask config validation.

Token design:
  - Access token: JWT, HS256, sub = user_id (str), role claim for clients.
    The role claim is informational: authorization always re-reads the
    role from the database.

Password storage:
  - Hashed with bcrypt (cost factor from config BCRYPT_LOG_ROUNDS, default 12)
  - Raw password is never stored, never logged
"""

from __future__ import annotations

import logging
import secrets
from datetime import datetime, timezone

import bcrypt
import jwt
from flask import current_app
from sqlalchemy import select
from sqlalchemy.orm import Session

from rosary.app.errors import AppError, ErrorCode
from rosary.app.models.user import User, UserRole

logger = logging.getLogger(__name__)

ASSIGNABLE_ROLES = (UserRole.MEMBER, UserRole.ZELATOR)


# ── Private helpers ────────────────────────────────────────────────────────

def _create_access_token(user: User) -> str:
    """
    Creates a signed JWT access token.
    Payload: sub (user_id as str), role, iat, exp, jti.
    """
    now = datetime.now(timezone.utc)
    expiry = now + current_app.config["JWT_ACCESS_TOKEN_EXPIRES"]
    payload = {
        "sub": str(user.id),
        "role": user.role,
        "iat": now,
        "exp": expiry,
        # Guarantees each issued token is unique even if generated in the same second.
        "jti": secrets.token_hex(8),
    }
    return jwt.encode(
        payload,
        current_app.config["JWT_SECRET_KEY"],
        algorithm=current_app.config.get("JWT_ALGORITHM", "HS256"),
    )


def _hash_password(password: str) -> str:
    rounds = current_app.config.get("BCRYPT_LOG_ROUNDS", 12)
    return bcrypt.hashpw(
        password.encode("utf-8"),
        bcrypt.gensalt(rounds=rounds),
    ).decode("utf-8")


def _build_user_dict(user: User) -> dict:
    """Serialises a User to a plain dict. No business logic."""
    return {
        "id": user.id,
        "email": user.email,
        "name": user.name,
        "role": user.role,
        "created_at": user.created_at.isoformat() if user.created_at else None,
    }


def _get_user_or_404(user_id: int, session: Session) -> User:
    user = session.get(User, user_id)
    if user is None:
        raise AppError(
            ErrorCode.USER_NOT_FOUND,
            f"User {user_id} not found.",
            404,
        )
    return user


# ── Public service functions ───────────────────────────────────────────────

def create_user(
        email: str,
        name: str,
        password: str,
        session: Session,
        role: str = UserRole.MEMBER,
) -> User:
    """
    Creates a user with a bcrypt password hash.

    Raises:
      AppError(DUPLICATE_EMAIL, 409) — email already registered

    Returns: the flushed User.
    """
    email = email.strip().lower()
    existing = session.execute(
        select(User).where(User.email == email)
    ).scalar_one_or_none()
    if existing is not None:
        raise AppError(
            ErrorCode.DUPLICATE_EMAIL,
            f"The email address '{email}' is already registered.",
            409,
            field="email",
        )

    user = User(
        email=email,
        name=name.strip(),
        password_hash=_hash_password(password),
        role=role,
    )
    session.add(user)
    session.flush()  # populate user.id and created_at before the token is built
    session.refresh(user)
    return user


def register_user(
        email: str,
        name: str,
        password: str,
        session: Session,
) -> dict:
    """
    Creates a new MEMBER account and issues an access token.

    Returns: {"user": {...}, "access_token": "..."}
    """
    user = create_user(email, name, password, session)
    logger.info("Registered user %s.", user.id)
    return {
        "user": _build_user_dict(user),
        "access_token": _create_access_token(user),
    }


def login_user(
        email: str,
        password: str,
        session: Session,
) -> dict:
    """
    Validates credentials and issues a new access token.

    Raises:
      AppError(INVALID_CREDENTIALS, 401) — email not found or password wrong.
      Uses the same error for both to avoid account enumeration.

    Returns: {"user": {...}, "access_token": "..."}
    """
    user = session.execute(
        select(User).where(User.email == email.strip().lower())
    ).scalar_one_or_none()

    # bcrypt.checkpw compares in constant time.
    if user is None or not bcrypt.checkpw(
            password.encode("utf-8"),
            user.password_hash.encode("utf-8"),
    ):
        raise AppError(
            ErrorCode.INVALID_CREDENTIALS,
            "The email or password is incorrect.",
            401,
        )

    return {
        "user": _build_user_dict(user),
        "access_token": _create_access_token(user),
    }


def get_current_user(user_id: int, session: Session) -> dict:
    """
    Returns the profile of the currently authenticated user.

    Raises:
      AppError(USER_NOT_FOUND, 404) — user_id from JWT no longer exists in DB.
    """
    return _build_user_dict(_get_user_or_404(user_id, session))


def update_user_role(
        caller_id: int,
        target_user_id: int,
        new_role: str,
        session: Session,
) -> dict:
    """
    Changes another user's role to MEMBER or ZELATOR. Admin only.

    Raises:
      AppError(FORBIDDEN, 403)      — caller is not an admin, targets themself,
                                      or targets another admin
      AppError(INVALID_ROLE, 400)   — new_role is not assignable
      AppError(USER_NOT_FOUND, 404) — target does not exist
    """
    caller = _get_user_or_404(caller_id, session)
    if caller.role != UserRole.ADMIN:
        raise AppError(ErrorCode.FORBIDDEN, "Administrator role required.", 403)

    new_role = new_role.upper()
    if new_role not in ASSIGNABLE_ROLES:
        raise AppError(
            ErrorCode.INVALID_ROLE,
            f"Role must be one of: {', '.join(ASSIGNABLE_ROLES)}.",
            400,
            field="role",
        )

    target = _get_user_or_404(target_user_id, session)
    if target.id == caller.id:
        raise AppError(
            ErrorCode.FORBIDDEN,
            "Administrators cannot change their own role.",
            403,
        )
    if target.role == UserRole.ADMIN:
        raise AppError(
            ErrorCode.FORBIDDEN,
            "The role of another administrator cannot be changed.",
            403,
        )

    target.role = new_role
    session.flush()
    logger.info("User %s changed role of user %s to %s.", caller_id, target_user_id, new_role)
    return _build_user_dict(target)


def change_password(
        user_id: int,
        current_password: str,
        new_password: str,
        session: Session,
) -> None:
    """
    Replaces the caller's password after checking the current one.

    Raises:
      AppError(USER_NOT_FOUND, 404)      — user_id from JWT no longer exists
      AppError(INVALID_CREDENTIALS, 401) — current_password is wrong
      AppError(INVALID_FIELD, 400)       — new_password equals the current one
    """
    user = _get_user_or_404(user_id, session)

    if not bcrypt.checkpw(
            current_password.encode("utf-8"),
            user.password_hash.encode("utf-8"),
    ):
        raise AppError(
            ErrorCode.INVALID_CREDENTIALS,
            "The current password is incorrect.",
            401,
            field="current_password",
        )

    if new_password == current_password:
        raise AppError(
            ErrorCode.INVALID_FIELD,
            "The new password must differ from the current one.",
            400,
            field="new_password",
        )

    user.password_hash = _hash_password(new_password)
    session.flush()
    logger.info("User %s changed their password.", user_id)
