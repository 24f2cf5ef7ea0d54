"""
schemas/intention_schema.py — Marshmallow schemas for prayer intention endpoints.

Validation responsibility:
  - This file: text length and blankness, sharing flag / group id shape.
  - services/intention_service.py:
      - INTENTION_NOT_FOUND, GROUP_NOT_FOUND (require DB lookups)
      - FORBIDDEN (owner only; sharing needs membership or management)
      - sharing an intention that has no group yet (depends on stored state)

IMPORTANT: Inherits from marshmallow.Schema directly — never ma.Schema.
"""

from __future__ import annotations

from marshmallow import Schema, ValidationError, fields, validate, validates_schema

INTENTION_TEXT_MAX_LENGTH = 1000


def _validate_non_empty_after_trim(value: str) -> None:
    if not value.strip():
        raise ValidationError("This field must not be blank or contain only whitespace.")


def _text_field(**kwargs) -> fields.Str:
    return fields.Str(
        validate=[
            validate.Length(
                min=1,
                max=INTENTION_TEXT_MAX_LENGTH,
                error=f"Intention text must be between 1 and {INTENTION_TEXT_MAX_LENGTH} characters.",
            ),
            _validate_non_empty_after_trim,
        ],
        **kwargs,
    )


def _group_id_field(**kwargs) -> fields.Int:
    return fields.Int(
        allow_none=True,
        strict=True,
        validate=validate.Range(min=1, error="shared_with_group_id must be a positive integer."),
        **kwargs,
    )


class CreateIntentionSchema(Schema):
    """
    POST /intentions

    text                 — non-empty after trim, max 1000 chars
    is_shared_with_group — optional, default false
    shared_with_group_id — required when is_shared_with_group is true,
                           ignored otherwise
    """

    text = _text_field(required=True)
    is_shared_with_group = fields.Bool(load_default=False)
    shared_with_group_id = _group_id_field(load_default=None)

    @validates_schema
    def validate_sharing(self, data: dict, **kwargs) -> None:
        if data.get("is_shared_with_group") and data.get("shared_with_group_id") is None:
            raise ValidationError(
                {
                    "shared_with_group_id": [
                        "shared_with_group_id is required when is_shared_with_group is true."
                    ],
                }
            )


class UpdateIntentionSchema(Schema):
    """
    PATCH /intentions/:id

    Every field is optional, but at least one must be sent. Absent fields are
    left untouched; is_shared_with_group=false makes the intention private.
    """

    text = _text_field(required=False)
    is_shared_with_group = fields.Bool(required=False)
    shared_with_group_id = _group_id_field(required=False)

    @validates_schema
    def validate_not_empty(self, data: dict, **kwargs) -> None:
        if not data:
            raise ValidationError("No fields to update.")
