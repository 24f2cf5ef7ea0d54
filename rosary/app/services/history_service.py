"""
services/history_service.py — Reads and writes the mystery assignment history.

Two write rules hold for every assignment:
  1. A history row is appended.
  2. Membership.current_assigned_mystery moves to the new mystery and
     Membership.mystery_confirmed_at is reset to None.
Both happen in record_assignment() and are flushed together. Nothing here
commits: the caller owns the unit of work, so either both writes reach the
database or neither does.

Layer rules:
  - No Flask imports. Pure Python with a SQLAlchemy session parameter.
"""

from __future__ import annotations

from datetime import datetime

from sqlalchemy import select
from sqlalchemy.orm import Session

from rosary.app.errors import AppError, ErrorCode
from rosary.app.models.membership import Membership
from rosary.app.models.mystery_history import AssignedMysteryHistory


def recent_mystery_ids(membership_id: int, limit: int, session: Session) -> list[str]:
    """
    Returns up to `limit` mystery ids assigned to the membership, most recent
    first. A membership with no history yields an empty list.
    """
    if limit <= 0:
        return []

    stmt = (
        select(AssignedMysteryHistory.mystery_id)
        .where(AssignedMysteryHistory.membership_id == membership_id)
        .order_by(
            AssignedMysteryHistory.assigned_at.desc(),
            AssignedMysteryHistory.id.desc(),
        )
        .limit(limit)
    )
    return list(session.execute(stmt).scalars().all())


def list_history(membership_id: int, session: Session) -> list[AssignedMysteryHistory]:
    """All history rows for the membership, newest first."""
    stmt = (
        select(AssignedMysteryHistory)
        .where(AssignedMysteryHistory.membership_id == membership_id)
        .order_by(
            AssignedMysteryHistory.assigned_at.desc(),
            AssignedMysteryHistory.id.desc(),
        )
    )
    return list(session.execute(stmt).scalars().all())


def record_assignment(
        membership_id: int,
        mystery_id: str,
        month: int,
        year: int,
        assigned_at: datetime,
        session: Session,
) -> AssignedMysteryHistory:
    """
    Appends a history row and points the membership at the new mystery.

    Raises:
      AppError(MEMBERSHIP_NOT_FOUND, 404) — the membership no longer exists
        (for example it was removed while a rotation was running).

    Returns: the new AssignedMysteryHistory row (flushed, not committed).
    """
    membership = session.get(Membership, membership_id)
    if membership is None:
        raise AppError(
            ErrorCode.MEMBERSHIP_NOT_FOUND,
            f"Membership {membership_id} does not exist.",
            404,
        )

    entry = AssignedMysteryHistory(
        membership_id=membership_id,
        mystery_id=mystery_id,
        assigned_month=month,
        assigned_year=year,
        assigned_at=assigned_at,
    )
    session.add(entry)

    membership.current_assigned_mystery = mystery_id
    membership.mystery_confirmed_at = None

    session.flush()
    return entry
