"""
schemas/auth_schema.py — Marshmallow schemas for authentication and role endpoints.

Validation responsibility:
  - This file: field types, lengths, formats.
  - services/auth_service.py: DUPLICATE_EMAIL (requires a DB lookup) and
    role authorization.

IMPORTANT: All schemas inherit from marshmallow.Schema directly.
           Do NOT use ma.Schema — it requires an active Flask app context
           and breaks unit tests. See extensions.py.
"""

from __future__ import annotations

from marshmallow import Schema, ValidationError, fields, validate


def _validate_password_strength(value: str) -> None:
    """Min 8 chars, at least one letter and one digit."""
    if len(value) < 8:
        raise ValidationError("Password must be at least 8 characters long.")
    if not any(c.isalpha() for c in value):
        raise ValidationError("Password must contain at least one letter.")
    if not any(c.isdigit() for c in value):
        raise ValidationError("Password must contain at least one digit.")


def _validate_non_empty_after_trim(value: str) -> None:
    if not value.strip():
        raise ValidationError("This field must not be blank or contain only whitespace.")


class RegisterSchema(Schema):
    """
    POST /auth/register

    Field rules:
      email    : valid email format, max 255 chars
      name     : 1–100 chars, not blank
      password : min 8 chars, at least one letter and one digit
    """

    email = fields.Email(
        required=True,
        validate=validate.Length(max=255),
    )

    name = fields.Str(
        required=True,
        validate=[
            validate.Length(
                min=1,
                max=100,
                error="Name must be between 1 and 100 characters.",
            ),
            _validate_non_empty_after_trim,
        ],
    )

    password = fields.Str(
        required=True,
        load_only=True,
        validate=_validate_password_strength,
    )


class LoginSchema(Schema):
    """
    POST /auth/login

    Credential correctness is checked in auth_service.py (INVALID_CREDENTIALS, 401).
    """

    email = fields.Str(required=True)
    password = fields.Str(required=True, load_only=True)


class UpdateRoleSchema(Schema):
    """
    PATCH /admin/users/:id/role

    Whether the role may be assigned (MEMBER / ZELATOR only) is decided in
    auth_service.py so that the error carries the INVALID_ROLE code.
    """

    role = fields.Str(required=True)


class ChangePasswordSchema(Schema):
    """
    POST /auth/password

    Whether current_password is right, and whether new_password differs from
    it, is checked in auth_service.py.
    """

    current_password = fields.Str(required=True, load_only=True)
    new_password = fields.Str(
        required=True,
        load_only=True,
        validate=_validate_password_strength,
    )
