"""
models/membership.py — Membership junction table definition.

No business logic. No imports from services or routes.

A membership carries the rotation state of one user in one group:
  current_assigned_mystery — catalog id of the mystery for this cycle (or None)
  mystery_confirmed_at     — None from the moment a mystery is assigned until
                             the member confirms it
  order_index              — stable position inside the group, used to order
                             rotation worklists and member listings

FK policy: user_id and group_id both ON DELETE CASCADE — the membership is
owned by the (user, group) pair and its history is owned by the membership.
"""

from __future__ import annotations

from datetime import datetime

from sqlalchemy import DateTime, ForeignKey, Integer, String, UniqueConstraint, func
from sqlalchemy.orm import Mapped, mapped_column, relationship

from rosary.app.extensions import db


class Membership(db.Model):
    __tablename__ = "memberships"

    __table_args__ = (
        # A user can only belong to a group once.
        UniqueConstraint("user_id", "group_id", name="uq_memberships_user_group"),
    )

    id: Mapped[int] = mapped_column(primary_key=True)

    user_id: Mapped[int] = mapped_column(
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    group_id: Mapped[int] = mapped_column(
        ForeignKey("groups.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    current_assigned_mystery: Mapped[str | None] = mapped_column(
        String(50),
        nullable=True,
    )

    mystery_confirmed_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
    )

    order_index: Mapped[int] = mapped_column(
        Integer,
        nullable=False,
        default=0,
    )

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        server_default=func.now(),
    )

    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        server_default=func.now(),
        onupdate=func.now(),
    )

    # ── Relationships ──────────────────────────────────────────────────────

    user: Mapped["User"] = relationship(  # noqa: F821
        "User",
        back_populates="memberships",
    )

    group: Mapped["Group"] = relationship(  # noqa: F821
        "Group",
        back_populates="memberships",
    )

    history: Mapped[list["AssignedMysteryHistory"]] = relationship(  # noqa: F821
        "AssignedMysteryHistory",
        back_populates="membership",
        cascade="all, delete-orphan",
        order_by="AssignedMysteryHistory.assigned_at.desc()",
    )

    def __repr__(self) -> str:  # pragma: no cover
        return (
            f"<Membership id={self.id} "
            f"user_id={self.user_id} "
            f"group_id={self.group_id} "
            f"mystery={self.current_assigned_mystery!r}>"
        )
