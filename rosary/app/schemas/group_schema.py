"""
schemas/group_schema.py — Marshmallow schemas for group and membership endpoints.

Validation responsibility:
  - This file: field types, string lengths, non-empty checks (including trim).
  - services/group_service.py:
      - FORBIDDEN (caller must be an admin / the group's zelator)
      - USER_NOT_FOUND, GROUP_NOT_FOUND (require DB lookups)
      - ALREADY_MEMBER, GROUP_FULL (require DB lookups)

IMPORTANT: Inherits from marshmallow.Schema directly — never ma.Schema.
"""

from __future__ import annotations

from marshmallow import Schema, ValidationError, fields, validate


# validate.Length(min=1) alone allows whitespace-only strings like "   ".
# This validator strips first, mirroring the DB CHECK(LENGTH(TRIM(name)) > 0).

def _validate_non_empty_after_trim(value: str) -> None:
    if not value.strip():
        raise ValidationError("This field must not be blank or contain only whitespace.")


class CreateGroupSchema(Schema):
    """
    POST /groups

    name            — non-empty after trim, max 100 chars
    description     — optional free text, max 1000 chars
    zelator_user_id — optional positive integer; existence checked in the service
    """

    name = fields.Str(
        required=True,
        validate=[
            validate.Length(
                min=1,
                max=100,
                error="Group name must be between 1 and 100 characters.",
            ),
            _validate_non_empty_after_trim,
        ],
    )

    description = fields.Str(
        load_default=None,
        allow_none=True,
        validate=validate.Length(max=1000),
    )

    zelator_user_id = fields.Int(
        load_default=None,
        allow_none=True,
        strict=True,
        validate=validate.Range(min=1, error="zelator_user_id must be a positive integer."),
    )


class AddMemberSchema(Schema):
    """
    POST /groups/:id/members

    Only the user_id field is accepted; the service enforces authorization,
    existence, uniqueness and the group size limit.
    """

    user_id = fields.Int(
        required=True,
        strict=True,  # rejects floats like 1.0
        validate=validate.Range(
            min=1,
            error="user_id must be a positive integer.",
        ),
    )
