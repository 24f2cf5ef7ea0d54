"""
scheduler.py — Background trigger for the monthly mystery rotation.

One RotationScheduler per app, stored in app.extensions["rotation_scheduler"].

Tick sources (APScheduler BackgroundScheduler, in ROTATION_TIMEZONE):
  primary  — CronTrigger built from ROTATION_CRON ("0 1 * * 0": Sundays 01:00)
  fallback — IntervalTrigger every ROTATION_POLL_INTERVAL_SECONDS, armed only
             when the cron expression is invalid or the cron job cannot be added

Every tick runs check_and_run():
  Idle → Check  not the first Sunday of the month → log, back to Idle
        → Run   duplicate-run guard, then rotate_all_groups()
        → Idle  whatever happened; exceptions are logged, never raised

Duplicate-run guard, keyed on the local calendar date. It covers every full
rotation, scheduled or manual (rotate_now() without a group):
  - last_rotation_date, under a lock, for tick sources inside this process
  - a RotationRun row with a UNIQUE run_key, for other processes
A single-group rotation is not a full rotation and is never guarded.

submit() is the fire-and-forget path used by the admin endpoints. The work
becomes a one-off job on the scheduler's thread pool when the scheduler is
running, and on a job-less worker BackgroundScheduler (started on first use)
otherwise. ROTATION_RUN_INLINE runs it on the caller's thread instead (tests).
"""

from __future__ import annotations

import logging
import threading
from datetime import date, datetime, timedelta, timezone
from typing import Any, Callable
from zoneinfo import ZoneInfo

from apscheduler.schedulers.background import BackgroundScheduler
from apscheduler.schedulers.base import BaseScheduler
from apscheduler.schedulers.blocking import BlockingScheduler
from apscheduler.triggers.cron import CronTrigger
from apscheduler.triggers.interval import IntervalTrigger
from flask import Flask

from rosary.app.errors import ScheduleConfigError
from rosary.app.extensions import db
from rosary.app.services import rotation_run_service, rotation_service
from rosary.app.services.catalog import DEFAULT_CATALOG, MysteryCatalog
from rosary.app.services.rotation_service import RotationResult
from rosary.app.services.schedule_service import (
    get_next_rotation_time,
    is_today_first_sunday_of_month,
    local_today,
    parse_cron,
)

logger = logging.getLogger(__name__)

CRON_JOB_ID = "mystery-rotation-cron"
POLL_JOB_ID = "mystery-rotation-poll"

MODE_CRON = "cron"
MODE_POLL = "poll"


def build_cron_trigger(expression: str, tz: ZoneInfo) -> CronTrigger:
    """
    Turns a crontab expression into a CronTrigger in zone `tz`.

    Raises ScheduleConfigError for malformed expressions and for field values
    CronTrigger rejects.
    """
    kwargs = parse_cron(expression)
    try:
        return CronTrigger(timezone=tz, **kwargs)
    except ValueError as exc:
        raise ScheduleConfigError(
            f"Recurrence expression {expression!r} is not valid: {exc}"
        ) from exc


class RotationScheduler:

    def __init__(
            self,
            app: Flask | None = None,
            catalog: MysteryCatalog = DEFAULT_CATALOG,
    ) -> None:
        self.catalog = catalog
        self.last_rotation_date: date | None = None
        self.mode: str | None = None
        self._app: Flask | None = None
        self._scheduler: BaseScheduler | None = None
        self._worker: BackgroundScheduler | None = None
        self._lock = threading.Lock()
        self._worker_lock = threading.Lock()
        if app is not None:
            self.init_app(app)

    def init_app(self, app: Flask) -> None:
        self._app = app
        app.extensions["rotation_scheduler"] = self

    # ── Configuration ──────────────────────────────────────────────────────

    @property
    def tz(self) -> ZoneInfo:
        return ZoneInfo(self._app.config["ROTATION_TIMEZONE"])

    @property
    def window(self) -> int:
        return self._app.config["ROTATION_HISTORY_WINDOW"]

    @property
    def stale_claim_after(self) -> timedelta:
        return timedelta(seconds=self._app.config.get("ROTATION_STALE_CLAIM_SECONDS", 3600))

    @property
    def running(self) -> bool:
        return self._scheduler is not None and self._scheduler.running

    # ── Lifecycle ──────────────────────────────────────────────────────────

    def arm(self, scheduler: BaseScheduler) -> str:
        """
        Adds the rotation tick to `scheduler`: the cron job when ROTATION_CRON
        is valid, the polling job otherwise.

        Returns: MODE_CRON or MODE_POLL.
        """
        expression = self._app.config["ROTATION_CRON"]
        try:
            trigger = build_cron_trigger(expression, self.tz)
            scheduler.add_job(
                self._tick,
                trigger=trigger,
                id=CRON_JOB_ID,
                name="Monthly mystery rotation",
                replace_existing=True,
                coalesce=True,
                max_instances=1,
                misfire_grace_time=3600,
            )
            self.mode = MODE_CRON
        except Exception as exc:
            logger.critical(
                "Cannot schedule mystery rotation with %r (%s); "
                "falling back to polling every %s seconds.",
                expression,
                exc,
                self._app.config["ROTATION_POLL_INTERVAL_SECONDS"],
            )
            scheduler.add_job(
                self._tick,
                trigger=IntervalTrigger(
                    seconds=self._app.config["ROTATION_POLL_INTERVAL_SECONDS"],
                    timezone=self.tz,
                ),
                id=POLL_JOB_ID,
                name="Mystery rotation poll",
                replace_existing=True,
                coalesce=True,
                max_instances=1,
            )
            self.mode = MODE_POLL

        logger.info("Mystery rotation scheduler armed in %s mode.", self.mode)
        return self.mode

    def start(self, blocking: bool = False) -> None:
        """
        Starts the scheduler. With blocking=True this call does not return
        until the process is interrupted (used by `flask run-scheduler`).
        """
        if self.running:
            return
        scheduler_cls = BlockingScheduler if blocking else BackgroundScheduler
        self._scheduler = scheduler_cls(timezone=self.tz)
        self.arm(self._scheduler)
        logger.info("Starting mystery rotation scheduler (%s).", self._app.config["ROTATION_TIMEZONE"])
        self._scheduler.start()

    def shutdown(self, wait: bool = False) -> None:
        if self.running:
            self._scheduler.shutdown(wait=wait)
        self._scheduler = None
        with self._worker_lock:
            if self._worker is not None and self._worker.running:
                self._worker.shutdown(wait=wait)
            self._worker = None

    def next_run_time(self, now: datetime | None = None) -> datetime:
        """When the next rotation is expected, in the configured zone."""
        return get_next_rotation_time(self.tz, now)

    # ── Ticks ──────────────────────────────────────────────────────────────

    def _tick(self) -> None:
        with self._app.app_context():
            self.check_and_run()

    def check_and_run(self, now: datetime | None = None) -> RotationResult | None:
        """
        One pass of the trigger state machine. Requires an app context.

        Returns: the RotationResult when a rotation ran, otherwise None.
        """
        if now is None:
            now = datetime.now(timezone.utc)

        if not is_today_first_sunday_of_month(self.tz, now):
            logger.info(
                "%s is not the first Sunday of the month; no rotation.",
                local_today(self.tz, now),
            )
            return None

        return self._rotate_once_today(now, "Scheduled")

    def _rotate_once_today(self, now: datetime, kind: str) -> RotationResult | None:
        """
        Rotates every group unless a full rotation already ran on the local
        date of `now`. Exceptions are logged, never raised.
        """
        tz = self.tz
        today = local_today(tz, now)

        with self._lock:
            if self.last_rotation_date == today:
                logger.info("Mysteries were already rotated on %s; skipping.", today)
                return None

            run_key = today.isoformat()
            try:
                claimed = rotation_run_service.claim_run(
                    run_key, now, db.session, stale_after=self.stale_claim_after,
                )
            except Exception:
                db.session.rollback()
                logger.exception("Could not claim rotation %s.", run_key)
                return None

            if not claimed:
                self.last_rotation_date = today
                return None

            try:
                result = rotation_service.rotate_all_groups(
                    db.session,
                    catalog=self.catalog,
                    window=self.window,
                    now=now,
                    tz=tz,
                )
            except Exception:
                logger.exception("%s mystery rotation for %s failed.", kind, run_key)
                rotation_run_service.release_run(run_key, db.session)
                return None

            rotation_run_service.finish_run(
                run_key,
                datetime.now(timezone.utc),
                result.success_count,
                result.failure_count,
                db.session,
            )
            self.last_rotation_date = today

        logger.info(
            "%s rotation %s complete: %d succeeded, %d failed.",
            kind,
            run_key,
            result.success_count,
            result.failure_count,
        )
        return result

    # ── Manual rotations ───────────────────────────────────────────────────

    def rotate_now(
            self,
            group_id: int | None = None,
            now: datetime | None = None,
    ) -> RotationResult | None:
        """
        Rotates one group, or every group when group_id is None. Requires an
        app context.

        Neither form waits for the first Sunday. Rotating every group goes
        through the duplicate-run guard: it returns None when a full rotation
        already ran today, and a scheduled tick later that day skips.
        """
        if now is None:
            now = datetime.now(timezone.utc)
        if group_id is None:
            return self._rotate_once_today(now, "Manual")
        return rotation_service.rotate_all_members_of_group(
            group_id,
            db.session,
            catalog=self.catalog,
            window=self.window,
            now=now,
            tz=self.tz,
        )

    def submit_rotation(self, group_id: int | None = None) -> None:
        """Fire-and-forget rotate_now(); the caller only learns that it was accepted."""
        self.submit(self.rotate_now, group_id)

    # ── Fire-and-forget ────────────────────────────────────────────────────

    def submit(self, func: Callable[..., Any], *args: Any, **kwargs: Any) -> None:
        """
        Runs `func(*args, **kwargs)` inside a fresh app context without
        reporting its outcome to the caller.
        """
        if self._app.config.get("ROTATION_RUN_INLINE"):
            self._run_in_app_context(func, *args, **kwargs)
            return

        target = self._scheduler if self.running else self._worker_scheduler()
        target.add_job(
            self._run_in_app_context,
            args=(func, *args),
            kwargs=kwargs,
            misfire_grace_time=None,
        )

    def _worker_scheduler(self) -> BackgroundScheduler:
        """A BackgroundScheduler with no jobs armed, started on first use."""
        with self._worker_lock:
            if self._worker is None or not self._worker.running:
                self._worker = BackgroundScheduler(timezone=self.tz)
                self._worker.start()
                logger.info("Started worker thread pool for submitted rotations.")
            return self._worker

    def _run_in_app_context(self, func: Callable[..., Any], *args: Any, **kwargs: Any) -> None:
        with self._app.app_context():
            try:
                func(*args, **kwargs)
            except Exception:
                db.session.rollback()
                logger.exception("Background task %s failed.", getattr(func, "__name__", func))
