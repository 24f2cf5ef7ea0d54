"""
services/rotation_run_service.py — Bookkeeping for the daily rotation's idempotency key.

A full rotation, scheduled or manual, first claims its run key (the local
date) by inserting a RotationRun row. The UNIQUE constraint on run_key makes the claim atomic
across threads and processes: whoever inserts first runs, everyone else sees
IntegrityError and skips. A run that blows up releases its claim so a later
tick on the same day may try again. A process that dies mid-run cannot release
anything, so an unfinished claim older than the stale age is taken over by the
next claimant instead of blocking the day for good.

These functions commit, because they run on the scheduler thread outside any
request.
"""

from __future__ import annotations

import logging
from datetime import datetime, timedelta, timezone

from sqlalchemy import delete, select, update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from rosary.app.models.rotation_run import RotationRun

logger = logging.getLogger(__name__)


def _as_utc(value: datetime) -> datetime:
    # SQLite hands back naive datetimes; everything stored here is UTC.
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def _take_over_stale_claim(
        run_key: str,
        started_at: datetime,
        stale_after: timedelta,
        session: Session,
) -> bool:
    existing = session.execute(
        select(RotationRun).where(RotationRun.run_key == run_key)
    ).scalar_one_or_none()
    if existing is None or existing.finished_at is not None:
        return False

    claimed_at = existing.started_at
    if _as_utc(started_at) - _as_utc(claimed_at) < stale_after:
        return False

    logger.warning(
        "Rotation %s was claimed at %s and never finished; taking the claim over.",
        run_key,
        claimed_at.isoformat(),
    )
    # Compare-and-set on started_at: of two processes taking over the same
    # stale claim, only one updates the row.
    taken = session.execute(
        update(RotationRun)
        .where(
            RotationRun.id == existing.id,
            RotationRun.finished_at.is_(None),
            RotationRun.started_at == claimed_at,
        )
        .values(started_at=started_at)
        .execution_options(synchronize_session=False)
    ).rowcount == 1
    session.commit()
    return taken


def claim_run(
        run_key: str,
        started_at: datetime,
        session: Session,
        stale_after: timedelta | None = None,
) -> bool:
    """
    Inserts the RotationRun row for `run_key`.

    With `stale_after`, an existing claim that is still unfinished and was
    made at least that long before `started_at` is taken over.

    Returns: True if this caller now owns the run, False if it was already claimed.
    """
    session.add(RotationRun(run_key=run_key, started_at=started_at))
    try:
        session.commit()
        return True
    except IntegrityError:
        session.rollback()

    if stale_after is not None and _take_over_stale_claim(
            run_key, started_at, stale_after, session,
    ):
        return True

    logger.info("Rotation %s was already claimed; skipping.", run_key)
    return False


def release_run(run_key: str, session: Session) -> None:
    """Deletes an unfinished claim so the run key can be claimed again."""
    session.rollback()
    try:
        session.execute(
            delete(RotationRun).where(
                RotationRun.run_key == run_key,
                RotationRun.finished_at.is_(None),
            )
        )
        session.commit()
    except SQLAlchemyError:
        session.rollback()
        logger.exception("Could not release rotation claim %s.", run_key)


def finish_run(
        run_key: str,
        finished_at: datetime,
        success_count: int,
        failure_count: int,
        session: Session,
) -> None:
    """Stores the outcome of a claimed run. A failure here does not undo the rotation."""
    try:
        run = session.execute(
            select(RotationRun).where(RotationRun.run_key == run_key)
        ).scalar_one_or_none()
        if run is None:
            logger.warning("Rotation claim %s disappeared before it finished.", run_key)
            return
        run.finished_at = finished_at
        run.success_count = success_count
        run.failure_count = failure_count
        session.commit()
    except SQLAlchemyError:
        session.rollback()
        logger.exception("Could not record the outcome of rotation %s.", run_key)


def list_recent_runs(session: Session, limit: int = 12) -> list[dict]:
    """The most recent runs, newest first, serialised for the status endpoint."""
    stmt = (
        select(RotationRun)
        .order_by(RotationRun.started_at.desc(), RotationRun.id.desc())
        .limit(limit)
    )
    return [
        {
            "run_key": run.run_key,
            "started_at": run.started_at.isoformat(),
            "finished_at": run.finished_at.isoformat() if run.finished_at else None,
            "success_count": run.success_count,
            "failure_count": run.failure_count,
        }
        for run in session.execute(stmt).scalars().all()
    ]
