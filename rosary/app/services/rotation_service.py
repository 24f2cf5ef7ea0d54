"""
services/rotation_service.py — Rotates mysteries across a group or across every group.

Each membership is handed to assignment_service.assign_new_mystery() on its
own. A failing member is counted and logged; the loop carries on. No lock is
held across a run: two overlapping runs can both assign the same member, in
which case the later write wins and the history keeps both rows.

Worklists are loaded as plain ids because assign_new_mystery() commits after
every member, which expires any ORM objects loaded beforehand.
"""

from __future__ import annotations

import logging
import random
from dataclasses import dataclass
from datetime import datetime, tzinfo

from sqlalchemy import select
from sqlalchemy.orm import Session

from rosary.app.models.membership import Membership
from rosary.app.services import assignment_service
from rosary.app.services.catalog import DEFAULT_CATALOG, MysteryCatalog

logger = logging.getLogger(__name__)


@dataclass
class RotationResult:
    success_count: int = 0
    failure_count: int = 0

    @property
    def total(self) -> int:
        return self.success_count + self.failure_count


def _rotate(
        membership_ids: list[int],
        session: Session,
        catalog: MysteryCatalog,
        window: int,
        rng: random.Random | None,
        now: datetime | None,
        tz: tzinfo | None,
) -> RotationResult:
    result = RotationResult()

    for membership_id in membership_ids:
        try:
            mystery = assignment_service.assign_new_mystery(
                membership_id,
                session,
                catalog=catalog,
                window=window,
                rng=rng,
                now=now,
                tz=tz,
            )
        except Exception:
            # assign_new_mystery() already contains persistence errors; this
            # is anything else, and it still must not end the batch.
            session.rollback()
            logger.exception("Unexpected error rotating membership %s.", membership_id)
            mystery = None

        if mystery is None:
            result.failure_count += 1
        else:
            result.success_count += 1

    return result


def rotate_all_members_of_group(
        group_id: int,
        session: Session,
        catalog: MysteryCatalog = DEFAULT_CATALOG,
        window: int = assignment_service.HISTORY_LENGTH_TO_AVOID,
        rng: random.Random | None = None,
        now: datetime | None = None,
        tz: tzinfo | None = None,
) -> RotationResult:
    """Assigns a new mystery to every member of one group."""
    logger.info("Rotating mysteries for group %s.", group_id)

    stmt = (
        select(Membership.id)
        .where(Membership.group_id == group_id)
        .order_by(Membership.order_index.asc(), Membership.id.asc())
    )
    membership_ids = list(session.execute(stmt).scalars().all())
    # End the read transaction before the per-member ones begin.
    session.commit()

    result = _rotate(membership_ids, session, catalog, window, rng, now, tz)
    logger.info(
        "Group %s rotation finished for %d members: %d succeeded, %d failed.",
        group_id,
        result.total,
        result.success_count,
        result.failure_count,
    )
    return result


def rotate_all_groups(
        session: Session,
        catalog: MysteryCatalog = DEFAULT_CATALOG,
        window: int = assignment_service.HISTORY_LENGTH_TO_AVOID,
        rng: random.Random | None = None,
        now: datetime | None = None,
        tz: tzinfo | None = None,
) -> RotationResult:
    """Assigns a new mystery to every membership in the system, as one flat worklist."""
    logger.info("Rotating mysteries for all groups.")

    stmt = (
        select(Membership.id)
        .order_by(
            Membership.group_id.asc(),
            Membership.order_index.asc(),
            Membership.id.asc(),
        )
    )
    membership_ids = list(session.execute(stmt).scalars().all())
    session.commit()

    result = _rotate(membership_ids, session, catalog, window, rng, now, tz)
    logger.info(
        "Rotation of all groups finished for %d members: %d succeeded, %d failed.",
        result.total,
        result.success_count,
        result.failure_count,
    )
    return result
