"""
services/membership_service.py — Member-facing reads and the confirmation action.

Confirmation only ever writes mystery_confirmed_at. It never moves
current_assigned_mystery, so confirming twice in one cycle just refreshes the
timestamp. A fresh assignment (history_service.record_assignment) is the only
thing that clears it again.

Authorization rules:
  - List own memberships:  any authenticated user
  - Confirm:               the owning member only
  - History:               the owning member, the group's zelator, or an ADMIN

Layer rules:
  - No Flask imports. Pure Python with a SQLAlchemy session parameter.
  - Commits are the route's responsibility — only flush here.
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone

from sqlalchemy import select
from sqlalchemy.orm import Session

from rosary.app.errors import AppError, ErrorCode
from rosary.app.models.membership import Membership
from rosary.app.models.mystery_history import AssignedMysteryHistory
from rosary.app.services import history_service
from rosary.app.services.catalog import DEFAULT_CATALOG, MysteryCatalog
from rosary.app.services.group_service import can_manage_group

logger = logging.getLogger(__name__)


def _get_membership_or_404(membership_id: int, session: Session) -> Membership:
    membership = session.get(Membership, membership_id)
    if membership is None:
        raise AppError(
            ErrorCode.MEMBERSHIP_NOT_FOUND,
            f"Membership {membership_id} does not exist.",
            404,
        )
    return membership


def _mystery_details(mystery_id: str | None, catalog: MysteryCatalog) -> dict | None:
    """Catalog entry as a dict; ids missing from the catalog get a placeholder."""
    if mystery_id is None:
        return None
    mystery = catalog.lookup(mystery_id)
    if mystery is None:
        logger.error("Mystery id %r is not in the catalog.", mystery_id)
        return {
            "id": mystery_id,
            "group": None,
            "name": f"Unknown mystery ({mystery_id})",
            "contemplation": "",
            "image_ref": None,
        }
    return mystery.to_dict()


def _build_membership_dict(membership: Membership, catalog: MysteryCatalog) -> dict:
    return {
        "id": membership.id,
        "user_id": membership.user_id,
        "group_id": membership.group_id,
        "group_name": membership.group.name if membership.group else None,
        "order_index": membership.order_index,
        "current_assigned_mystery": membership.current_assigned_mystery,
        "mystery": _mystery_details(membership.current_assigned_mystery, catalog),
        "mystery_confirmed_at": (
            membership.mystery_confirmed_at.isoformat()
            if membership.mystery_confirmed_at else None
        ),
        "created_at": membership.created_at.isoformat() if membership.created_at else None,
        "updated_at": membership.updated_at.isoformat() if membership.updated_at else None,
    }


def _build_history_dict(entry: AssignedMysteryHistory, catalog: MysteryCatalog) -> dict:
    return {
        "id": entry.id,
        "membership_id": entry.membership_id,
        "mystery_id": entry.mystery_id,
        "assigned_month": entry.assigned_month,
        "assigned_year": entry.assigned_year,
        "assigned_at": entry.assigned_at.isoformat(),
        "mystery": _mystery_details(entry.mystery_id, catalog),
    }


# ── Public service functions ───────────────────────────────────────────────

def list_my_memberships(
        user_id: int,
        session: Session,
        catalog: MysteryCatalog = DEFAULT_CATALOG,
) -> list[dict]:
    """The caller's memberships with their current mystery and confirmation state."""
    stmt = (
        select(Membership)
        .where(Membership.user_id == user_id)
        .order_by(Membership.created_at.asc(), Membership.id.asc())
    )
    memberships = session.execute(stmt).scalars().all()
    return [_build_membership_dict(m, catalog) for m in memberships]


def confirm_mystery(
        membership_id: int,
        caller_id: int,
        session: Session,
        now: datetime | None = None,
        catalog: MysteryCatalog = DEFAULT_CATALOG,
) -> dict:
    """
    Records that the member has received their current mystery.

    Raises:
      AppError(MEMBERSHIP_NOT_FOUND, 404) — membership does not exist
      AppError(FORBIDDEN, 403)            — caller does not own the membership
      AppError(NO_MYSTERY_ASSIGNED, 422)  — nothing has been assigned yet
    """
    membership = _get_membership_or_404(membership_id, session)

    if membership.user_id != caller_id:
        raise AppError(
            ErrorCode.FORBIDDEN,
            "You may only confirm the mystery of your own membership.",
            403,
        )

    if membership.current_assigned_mystery is None:
        raise AppError(
            ErrorCode.NO_MYSTERY_ASSIGNED,
            "There is no assigned mystery to confirm.",
            422,
        )

    membership.mystery_confirmed_at = now if now is not None else datetime.now(timezone.utc)
    session.flush()

    logger.info(
        "Membership %s confirmed mystery %s.",
        membership_id,
        membership.current_assigned_mystery,
    )
    return _build_membership_dict(membership, catalog)


def get_history(
        membership_id: int,
        caller_id: int,
        session: Session,
        catalog: MysteryCatalog = DEFAULT_CATALOG,
) -> dict:
    """
    Every assignment of the membership, newest first, with catalog details.

    Raises:
      AppError(MEMBERSHIP_NOT_FOUND, 404) — membership does not exist
      AppError(FORBIDDEN, 403)            — caller is neither the member nor a manager
    """
    membership = _get_membership_or_404(membership_id, session)

    if membership.user_id != caller_id and not can_manage_group(
            membership.group, caller_id, session,
    ):
        raise AppError(
            ErrorCode.FORBIDDEN,
            "You are not allowed to view this membership's history.",
            403,
        )

    entries = history_service.list_history(membership_id, session)
    return {
        "membership_id": membership.id,
        "group_id": membership.group_id,
        "group_name": membership.group.name if membership.group else None,
        "history": [_build_history_dict(e, catalog) for e in entries],
    }
