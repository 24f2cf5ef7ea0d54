"""Initial schema: users, groups, memberships, mystery history, rotation runs.

Revision: 001_initial_schema
Created:  2026-10-19

Append-only: never edit this file once it has been applied to a database.
Schema changes go into a new revision.

Creation order follows the FKs:
  users → groups → memberships → assigned_mystery_history, then rotation_runs

ON DELETE policies:
  groups.zelator_user_id                  → SET NULL (a group outlives its leader)
  memberships.user_id / group_id          → CASCADE
  assigned_mystery_history.membership_id  → CASCADE  (history belongs to the membership)
"""

from __future__ import annotations

import sqlalchemy as sa
from alembic import op

# ── Alembic revision identifiers ──────────────────────────────────────────
revision: str = "001_initial_schema"
down_revision: str | None = None
branch_labels: tuple | None = None
depends_on: tuple | None = None


def upgrade() -> None:
    # ── users ──────────────────────────────────────────────────────────────
    op.create_table(
        "users",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("email", sa.String(255), nullable=False),
        sa.Column("name", sa.String(100), nullable=False),
        sa.Column("password_hash", sa.String(255), nullable=False),
        sa.Column(
            "role",
            sa.String(20),
            nullable=False,
            server_default="MEMBER",
        ),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.text("NOW()"),
        ),
        sa.PrimaryKeyConstraint("id", name="pk_users"),
        sa.UniqueConstraint("email", name="uq_users_email"),
        sa.CheckConstraint("LENGTH(TRIM(name)) > 0", name="ck_users_name_nonempty"),
        sa.CheckConstraint("email LIKE '%@%'", name="ck_users_email_format"),
        sa.CheckConstraint(
            "role IN ('ADMIN', 'ZELATOR', 'MEMBER')",
            name="ck_users_role_valid",
        ),
    )

    # ── groups ─────────────────────────────────────────────────────────────
    op.create_table(
        "groups",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("name", sa.String(100), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column(
            "zelator_user_id",
            sa.Integer(),
            sa.ForeignKey("users.id", ondelete="SET NULL", name="fk_groups_zelator"),
            nullable=True,
        ),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.text("NOW()"),
        ),
        sa.PrimaryKeyConstraint("id", name="pk_groups"),
        sa.CheckConstraint("LENGTH(TRIM(name)) > 0", name="ck_groups_name_nonempty"),
    )
    op.create_index("ix_groups_zelator_user_id", "groups", ["zelator_user_id"])

    # ── memberships ────────────────────────────────────────────────────────
    op.create_table(
        "memberships",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column(
            "user_id",
            sa.Integer(),
            sa.ForeignKey("users.id", ondelete="CASCADE", name="fk_memberships_user"),
            nullable=False,
        ),
        sa.Column(
            "group_id",
            sa.Integer(),
            sa.ForeignKey("groups.id", ondelete="CASCADE", name="fk_memberships_group"),
            nullable=False,
        ),
        sa.Column("current_assigned_mystery", sa.String(50), nullable=True),
        sa.Column("mystery_confirmed_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("order_index", sa.Integer(), nullable=False, server_default="0"),
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
        sa.PrimaryKeyConstraint("id", name="pk_memberships"),
        sa.UniqueConstraint("user_id", "group_id", name="uq_memberships_user_group"),
    )
    op.create_index("ix_memberships_user_id", "memberships", ["user_id"])
    op.create_index("ix_memberships_group_id", "memberships", ["group_id"])

    # ── assigned_mystery_history ───────────────────────────────────────────
    op.create_table(
        "assigned_mystery_history",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column(
            "membership_id",
            sa.Integer(),
            sa.ForeignKey(
                "memberships.id", ondelete="CASCADE", name="fk_history_membership",
            ),
            nullable=False,
        ),
        sa.Column("mystery_id", sa.String(50), nullable=False),
        sa.Column("assigned_month", sa.Integer(), nullable=False),
        sa.Column("assigned_year", sa.Integer(), nullable=False),
        sa.Column("assigned_at", sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint("id", name="pk_assigned_mystery_history"),
        sa.CheckConstraint(
            "assigned_month BETWEEN 1 AND 12",
            name="ck_history_month_range",
        ),
    )
    op.create_index(
        "idx_history_membership_assigned",
        "assigned_mystery_history",
        ["membership_id", "assigned_at"],
    )

    # ── rotation_runs ──────────────────────────────────────────────────────
    op.create_table(
        "rotation_runs",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("run_key", sa.String(32), nullable=False),
        sa.Column("started_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("finished_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("success_count", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("failure_count", sa.Integer(), nullable=False, server_default="0"),
        sa.PrimaryKeyConstraint("id", name="pk_rotation_runs"),
        sa.UniqueConstraint("run_key", name="uq_rotation_runs_run_key"),
    )


def downgrade() -> None:
    op.drop_table("rotation_runs")
    op.drop_index("idx_history_membership_assigned", table_name="assigned_mystery_history")
    op.drop_table("assigned_mystery_history")
    op.drop_index("ix_memberships_group_id", table_name="memberships")
    op.drop_index("ix_memberships_user_id", table_name="memberships")
    op.drop_table("memberships")
    op.drop_index("ix_groups_zelator_user_id", table_name="groups")
    op.drop_table("groups")
    op.drop_table("users")
