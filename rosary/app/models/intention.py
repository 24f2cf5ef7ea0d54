"""
models/intention.py — PrayerIntention table definition.

No business logic. No imports from services or routes.

An intention is private to its author until it is shared with one group:
  shared_with_group_id — None while private; the group whose members may read it

FK policy:
  author_user_id       → CASCADE  (intentions belong to their author)
  shared_with_group_id → SET NULL (deleting a group makes its intentions private)
"""

from __future__ import annotations

from datetime import datetime

from sqlalchemy import CheckConstraint, DateTime, ForeignKey, Text, func
from sqlalchemy.orm import Mapped, mapped_column, relationship

from rosary.app.extensions import db


class PrayerIntention(db.Model):
    __tablename__ = "prayer_intentions"

    __table_args__ = (
        CheckConstraint(
            "LENGTH(TRIM(text)) > 0",
            name="ck_intentions_text_nonempty",
        ),
    )

    id: Mapped[int] = mapped_column(primary_key=True)

    author_user_id: Mapped[int] = mapped_column(
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    text: Mapped[str] = mapped_column(
        Text,
        nullable=False,
    )

    shared_with_group_id: Mapped[int | None] = mapped_column(
        ForeignKey("groups.id", ondelete="SET NULL"),
        nullable=True,
        index=True,
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

    author: Mapped["User"] = relationship(  # noqa: F821
        "User",
        back_populates="intentions",
    )

    shared_with_group: Mapped["Group | None"] = relationship(  # noqa: F821
        "Group",
    )

    @property
    def is_shared_with_group(self) -> bool:
        return self.shared_with_group_id is not None

    def __repr__(self) -> str:  # pragma: no cover
        return (
            f"<PrayerIntention id={self.id} "
            f"author_user_id={self.author_user_id} "
            f"shared_with_group_id={self.shared_with_group_id}>"
        )
