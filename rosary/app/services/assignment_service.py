"""
services/assignment_service.py — Picks and persists the next mystery for one member.

Selection rule:
  The member's HISTORY_LENGTH_TO_AVOID most recent mysteries are excluded and
  the new mystery is drawn uniformly at random from what remains. If nothing
  remains (only possible with a catalog no larger than the window) the whole
  catalog is used instead and a warning is logged.

Unit of work:
  Unlike request-scoped services, this function commits. Every member is its
  own transaction so one member's failure cannot undo another member's
  assignment. On failure the session is rolled back and None is returned;
  nothing is raised to the caller.
"""

from __future__ import annotations

import logging
import random
from datetime import datetime, timezone, tzinfo

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from rosary.app.errors import AppError
from rosary.app.services import history_service
from rosary.app.services.catalog import DEFAULT_CATALOG, Mystery, MysteryCatalog, pick_random_from

logger = logging.getLogger(__name__)

HISTORY_LENGTH_TO_AVOID = 5


def select_mystery(
        recent_ids: list[str],
        catalog: MysteryCatalog = DEFAULT_CATALOG,
        rng: random.Random | None = None,
) -> Mystery | None:
    """
    Chooses a mystery not in `recent_ids`, falling back to the whole catalog.

    Returns None only when the catalog is empty.
    """
    available = catalog.excluding(recent_ids)
    if available:
        return pick_random_from(available, rng=rng)

    logger.warning(
        "No mystery outside the last %d assignments (catalog size %d); "
        "picking from the full catalog.",
        len(recent_ids),
        len(catalog),
    )
    return pick_random_from(catalog.mysteries, rng=rng)


def assign_new_mystery(
        membership_id: int,
        session: Session,
        catalog: MysteryCatalog = DEFAULT_CATALOG,
        window: int = HISTORY_LENGTH_TO_AVOID,
        rng: random.Random | None = None,
        now: datetime | None = None,
        tz: tzinfo | None = None,
) -> Mystery | None:
    """
    Assigns a new mystery to the membership and records it in the history.

    Args:
        window: how many recent assignments to avoid.
        now:    assignment timestamp; defaults to the current UTC time.
        tz:     zone in which assigned_month / assigned_year are computed.
                A rotation at 01:00 local time on the 1st is still the
                previous month in UTC, so callers pass the configured zone.

    Returns: the assigned Mystery, or None if nothing could be assigned.
    """
    if now is None:
        now = datetime.now(timezone.utc)
    local_now = now.astimezone(tz) if tz is not None else now

    try:
        recent_ids = history_service.recent_mystery_ids(membership_id, window, session)
        mystery = select_mystery(recent_ids, catalog=catalog, rng=rng)
        if mystery is None:
            logger.error(
                "Cannot assign a mystery to membership %s: the catalog is empty.",
                membership_id,
            )
            return None

        history_service.record_assignment(
            membership_id=membership_id,
            mystery_id=mystery.id,
            month=local_now.month,
            year=local_now.year,
            assigned_at=now,
            session=session,
        )
        session.commit()
    except (SQLAlchemyError, AppError):
        session.rollback()
        logger.exception("Failed to assign a mystery to membership %s.", membership_id)
        return None

    logger.debug("Membership %s assigned mystery %s.", membership_id, mystery.id)
    return mystery
