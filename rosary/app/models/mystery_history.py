"""
models/mystery_history.py — Append-only log of mystery assignments.

One row per successful assignment, written in the same transaction that
moves Membership.current_assigned_mystery. Rows are never updated; they are
removed only when the owning membership is deleted.
"""

from __future__ import annotations

from datetime import datetime

from sqlalchemy import CheckConstraint, DateTime, ForeignKey, Index, Integer, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from rosary.app.extensions import db


class AssignedMysteryHistory(db.Model):
    __tablename__ = "assigned_mystery_history"

    __table_args__ = (
        CheckConstraint(
            "assigned_month BETWEEN 1 AND 12",
            name="ck_history_month_range",
        ),
        # Serves "N most recent rows for a membership".
        Index("idx_history_membership_assigned", "membership_id", "assigned_at"),
    )

    id: Mapped[int] = mapped_column(primary_key=True)

    membership_id: Mapped[int] = mapped_column(
        ForeignKey("memberships.id", ondelete="CASCADE"),
        nullable=False,
    )

    mystery_id: Mapped[str] = mapped_column(
        String(50),
        nullable=False,
    )

    assigned_month: Mapped[int] = mapped_column(Integer, nullable=False)

    assigned_year: Mapped[int] = mapped_column(Integer, nullable=False)

    assigned_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
    )

    # ── Relationships ──────────────────────────────────────────────────────

    membership: Mapped["Membership"] = relationship(  # noqa: F821
        "Membership",
        back_populates="history",
    )

    def __repr__(self) -> str:  # pragma: no cover
        return (
            f"<AssignedMysteryHistory id={self.id} "
            f"membership_id={self.membership_id} "
            f"mystery_id={self.mystery_id!r} "
            f"{self.assigned_year}-{self.assigned_month:02d}>"
        )
