"""Create privilege catalog, grants, usage ledger and usage history tables.

Revision ID: 3f6c1b2a9d40
Revises:
Create Date: 2026-10-19 09:00:00.000000

"""

import sqlalchemy as sa

from alembic import op

# revision identifiers, used by Alembic.
revision = "3f6c1b2a9d40"
down_revision = None
branch_labels = None
depends_on = None


def _timestamps() -> list[sa.Column]:
    return [
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("modified_at", sa.DateTime(timezone=True), nullable=False),
    ]


def _audit() -> list[sa.Column]:
    return [
        sa.Column("created_by", sa.String(255), nullable=True),
        sa.Column("modified_by", sa.String(255), nullable=True),
    ]


def upgrade():
    """Create the privilege tables.

    ``subscription`` mirrors the table of the subscription lifecycle service and
    is only created here so the service can run against its own database.
    """
    op.create_table(
        "subscription",
        sa.Column("id", sa.Uuid(), primary_key=True),
        sa.Column("plan_id", sa.Uuid(), nullable=False),
        sa.Column("status", sa.String(32), nullable=False),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("is_deleted", sa.Boolean(), nullable=False, server_default=sa.false()),
        *_timestamps(),
        if_not_exists=True,
    )

    op.create_table(
        "privilege",
        sa.Column("id", sa.Uuid(), primary_key=True),
        sa.Column("name", sa.String(100), nullable=False),
        sa.Column("description", sa.String(500), nullable=True),
        sa.Column("privilege_type", sa.String(50), nullable=True),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("is_deleted", sa.Boolean(), nullable=False, server_default=sa.false()),
        *_timestamps(),
        *_audit(),
    )
    op.create_index("ix_privilege_name", "privilege", ["name"])
    op.create_index(
        "uq_privilege_name_live",
        "privilege",
        ["name"],
        unique=True,
        postgresql_where=sa.text("NOT is_deleted"),
        sqlite_where=sa.text("NOT is_deleted"),
    )

    op.create_table(
        "plan_privilege",
        sa.Column("id", sa.Uuid(), primary_key=True),
        sa.Column("plan_id", sa.Uuid(), nullable=False),
        sa.Column("privilege_id", sa.Uuid(), nullable=False),
        sa.Column("value", sa.Integer(), nullable=False),
        sa.Column("period_months", sa.Integer(), nullable=False, server_default="1"),
        sa.Column("description", sa.String(500), nullable=True),
        sa.Column("effective_date", sa.DateTime(timezone=True), nullable=True),
        sa.Column("expiration_date", sa.DateTime(timezone=True), nullable=True),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
        # Time-based limits (NULL = not enforced)
        sa.Column("daily_limit", sa.Integer(), nullable=True),
        sa.Column("weekly_limit", sa.Integer(), nullable=True),
        sa.Column("monthly_limit", sa.Integer(), nullable=True),
        *_timestamps(),
        *_audit(),
        sa.ForeignKeyConstraint(["privilege_id"], ["privilege.id"], ondelete="CASCADE"),
    )
    op.create_index("idx_plan_privilege_plan", "plan_privilege", ["plan_id"])

    op.create_table(
        "privilege_usage",
        sa.Column("id", sa.Uuid(), primary_key=True),
        sa.Column("subscription_id", sa.Uuid(), nullable=False),
        sa.Column("plan_privilege_id", sa.Uuid(), nullable=False),
        sa.Column("used_value", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("allowed_value", sa.Integer(), nullable=False),
        sa.Column("period_start", sa.DateTime(timezone=True), nullable=False),
        sa.Column("period_end", sa.DateTime(timezone=True), nullable=False),
        sa.Column("last_used_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("reset_at", sa.DateTime(timezone=True), nullable=True),
        *_timestamps(),
        sa.ForeignKeyConstraint(
            ["plan_privilege_id"], ["plan_privilege.id"], ondelete="CASCADE"
        ),
        sa.UniqueConstraint(
            "subscription_id", "plan_privilege_id", name="uq_privilege_usage_subscription_grant"
        ),
        sa.CheckConstraint("used_value >= 0", name="ck_privilege_usage_used_non_negative"),
    )
    # Reset sweep scans by period end
    op.create_index("ix_privilege_usage_period_end", "privilege_usage", ["period_end"])

    op.create_table(
        "privilege_usage_history",
        sa.Column("id", sa.Uuid(), primary_key=True),
        sa.Column("privilege_usage_id", sa.Uuid(), nullable=False),
        sa.Column("amount", sa.Integer(), nullable=False),
        sa.Column("used_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("day_bucket", sa.String(10), nullable=False),
        sa.Column("week_bucket", sa.String(8), nullable=False),
        sa.Column("month_bucket", sa.String(7), nullable=False),
        sa.Column("note", sa.String(500), nullable=True),
        sa.Column("created_by", sa.String(255), nullable=True),
        *_timestamps(),
        sa.ForeignKeyConstraint(
            ["privilege_usage_id"], ["privilege_usage.id"], ondelete="CASCADE"
        ),
    )
    # Window sums are equality lookups on (entry, bucket)
    op.create_index(
        "idx_usage_history_day", "privilege_usage_history", ["privilege_usage_id", "day_bucket"]
    )
    op.create_index(
        "idx_usage_history_week", "privilege_usage_history", ["privilege_usage_id", "week_bucket"]
    )
    op.create_index(
        "idx_usage_history_month",
        "privilege_usage_history",
        ["privilege_usage_id", "month_bucket"],
    )
    op.create_index(
        "idx_usage_history_used_at", "privilege_usage_history", ["privilege_usage_id", "used_at"]
    )


def downgrade():
    """Drop the privilege tables. ``subscription`` is left in place."""
    op.drop_table("privilege_usage_history")
    op.drop_table("privilege_usage")
    op.drop_table("plan_privilege")
    op.drop_table("privilege")
