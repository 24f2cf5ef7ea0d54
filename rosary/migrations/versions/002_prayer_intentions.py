"""Prayer intentions: private to their author or shared with one group.

Revision: 002_prayer_intentions
Revises:  001_initial_schema
Created:  2026-10-19

ON DELETE policies:
  prayer_intentions.author_user_id       → CASCADE
  prayer_intentions.shared_with_group_id → SET NULL (the intention becomes private)
"""

from __future__ import annotations

import sqlalchemy as sa
from alembic import op

# ── Alembic revision identifiers ──────────────────────────────────────────
revision: str = "002_prayer_intentions"
down_revision: str | None = "001_initial_schema"
branch_labels: tuple | None = None
depends_on: tuple | None = None


def upgrade() -> None:
    op.create_table(
        "prayer_intentions",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column(
            "author_user_id",
            sa.Integer(),
            sa.ForeignKey("users.id", ondelete="CASCADE", name="fk_intentions_author"),
            nullable=False,
        ),
        sa.Column("text", sa.Text(), nullable=False),
        sa.Column(
            "shared_with_group_id",
            sa.Integer(),
            sa.ForeignKey("groups.id", ondelete="SET NULL", name="fk_intentions_group"),
            nullable=True,
        ),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.text("NOW()"),
        ),
        sa.Column(
            "updated_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.text("NOW()"),
        ),
        sa.PrimaryKeyConstraint("id", name="pk_prayer_intentions"),
        sa.CheckConstraint("LENGTH(TRIM(text)) > 0", name="ck_intentions_text_nonempty"),
    )
    op.create_index(
        "ix_prayer_intentions_author_user_id", "prayer_intentions", ["author_user_id"],
    )
    op.create_index(
        "ix_prayer_intentions_shared_with_group_id",
        "prayer_intentions",
        ["shared_with_group_id"],
    )


def downgrade() -> None:
    op.drop_index("ix_prayer_intentions_shared_with_group_id", table_name="prayer_intentions")
    op.drop_index("ix_prayer_intentions_author_user_id", table_name="prayer_intentions")
    op.drop_table("prayer_intentions")
