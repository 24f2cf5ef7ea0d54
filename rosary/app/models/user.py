"""
models/user.py — User table definition.

No business logic. No imports from services or routes.

Roles:
  ADMIN    — manages users and groups, triggers rotations for everyone
  ZELATOR  — manages the groups they lead
  MEMBER   — prays; confirms their own assigned mystery
"""

from __future__ import annotations

from datetime import datetime

from sqlalchemy import CheckConstraint, DateTime, String, func
from sqlalchemy.orm import Mapped, mapped_column, relationship

from rosary.app.extensions import db


class UserRole:
    ADMIN   = "ADMIN"
    ZELATOR = "ZELATOR"
    MEMBER  = "MEMBER"

    ALL = (ADMIN, ZELATOR, MEMBER)


class User(db.Model):
    __tablename__ = "users"

    __table_args__ = (
        CheckConstraint(
            "LENGTH(TRIM(name)) > 0",
            name="ck_users_name_nonempty",
        ),
        CheckConstraint(
            "email LIKE '%@%'",
            name="ck_users_email_format",
        ),
        CheckConstraint(
            "role IN ('ADMIN', 'ZELATOR', 'MEMBER')",
            name="ck_users_role_valid",
        ),
    )

    id: Mapped[int] = mapped_column(primary_key=True)

    email: Mapped[str] = mapped_column(
        String(255),
        nullable=False,
        unique=True,
    )

    name: Mapped[str] = mapped_column(
        String(100),
        nullable=False,
    )

    password_hash: Mapped[str] = mapped_column(
        String(255),
        nullable=False,
    )

    role: Mapped[str] = mapped_column(
        String(20),
        nullable=False,
        default=UserRole.MEMBER,
        server_default=UserRole.MEMBER,
    )

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        server_default=func.now(),
    )

    # ── Relationships ──────────────────────────────────────────────────────

    memberships: Mapped[list["Membership"]] = relationship(  # noqa: F821
        "Membership",
        back_populates="user",
        cascade="all, delete-orphan",
    )

    intentions: Mapped[list["PrayerIntention"]] = relationship(  # noqa: F821
        "PrayerIntention",
        back_populates="author",
        cascade="all, delete-orphan",
    )

    def __repr__(self) -> str:  # pragma: no cover
        return f"<User id={self.id} email={self.email!r} role={self.role}>"
