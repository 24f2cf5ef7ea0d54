"""
models/rotation_run.py — One row per full rotation that was started.

run_key is the idempotency key of full rotations (the local calendar date,
"YYYY-MM-DD"). The UNIQUE constraint is what keeps two processes, or a
scheduled tick and a manual trigger, from rotating twice on the same day.
finished_at stays NULL while the run is in flight.
"""

from __future__ import annotations

from datetime import datetime

from sqlalchemy import DateTime, Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from rosary.app.extensions import db


class RotationRun(db.Model):
    __tablename__ = "rotation_runs"

    id: Mapped[int] = mapped_column(primary_key=True)

    run_key: Mapped[str] = mapped_column(
        String(32),
        nullable=False,
        unique=True,
    )

    started_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
    )

    finished_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
    )

    success_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    failure_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    def __repr__(self) -> str:  # pragma: no cover
        return f"<RotationRun run_key={self.run_key!r} finished_at={self.finished_at}>"
