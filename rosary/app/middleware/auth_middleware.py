"""
middleware/auth_middleware.py — Bearer-token authentication for the API.

@require_auth reads "Authorization: Bearer <jwt>", verifies it with
JWT_SECRET_KEY and stores the caller's id in flask.g.user_id. Any failure is
a 401 AppError:

  TOKEN_MISSING  — no Authorization header
  TOKEN_INVALID  — wrong scheme, bad signature, malformed or missing sub
  TOKEN_EXPIRED  — signature fine, exp in the past

403 decisions are not made here. The role claim travels in the token for
clients' convenience only; services look the role up in the database.
"""

from __future__ import annotations

import functools
from typing import Callable

import jwt
from flask import current_app, g, request

from rosary.app.errors import AppError, ErrorCode


def require_auth(f: Callable) -> Callable:
    """Route decorator: authenticate, then call the view with g.user_id set."""
    @functools.wraps(f)
    def decorated(*args, **kwargs):
        g.user_id = decode_access_token(_bearer_token())
        return f(*args, **kwargs)

    return decorated


def _bearer_token() -> str:
    header = request.headers.get("Authorization", "")
    if not header:
        raise AppError(
            ErrorCode.TOKEN_MISSING,
            "Authentication required. Provide a Bearer token in the Authorization header.",
            401,
        )

    scheme, _, token = header.partition(" ")
    token = token.strip()
    if scheme.lower() != "bearer" or not token or " " in token:
        raise AppError(
            ErrorCode.TOKEN_INVALID,
            "Authorization header must be in the format: Bearer <token>.",
            401,
        )
    return token


def decode_access_token(token: str) -> int:
    """
    Verifies an access token and returns the user id from its sub claim.

    Raises AppError (401) when the token is expired, forged or malformed.
    """
    try:
        payload = jwt.decode(
            token,
            current_app.config["JWT_SECRET_KEY"],
            algorithms=[current_app.config.get("JWT_ALGORITHM", "HS256")],
            options={"require": ["sub", "exp"]},
        )
    except jwt.ExpiredSignatureError:
        raise AppError(
            ErrorCode.TOKEN_EXPIRED,
            "The access token has expired. Log in again to obtain a new one.",
            401,
        )
    except jwt.InvalidTokenError:
        raise AppError(
            ErrorCode.TOKEN_INVALID,
            "The access token is invalid or has been tampered with.",
            401,
        )

    try:
        return int(payload["sub"])
    except (TypeError, ValueError):
        raise AppError(
            ErrorCode.TOKEN_INVALID,
            "The 'sub' claim in the access token is not a valid user ID.",
            401,
        )
