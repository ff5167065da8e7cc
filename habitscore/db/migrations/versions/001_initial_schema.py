"""Create users, habits, scoring schemes, weekly aggregates and daily records.

Revision ID: 001
Revises:
Create Date: 2026-10-19
"""

from collections.abc import Sequence

import sqlalchemy as sa
from alembic import op
from sqlalchemy.dialects import postgresql

revision: str = "001"
down_revision: str | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None

_pk = sa.BigInteger().with_variant(sa.Integer(), "sqlite")
_json = sa.JSON().with_variant(postgresql.JSONB(), "postgresql")


def upgrade() -> None:
    op.create_table(
        "users",
        sa.Column("id", _pk, primary_key=True, autoincrement=True),
        sa.Column("external_id", sa.String(), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
    )
    op.create_index(op.f("ix_users_external_id"), "users", ["external_id"], unique=True)

    op.create_table(
        "habits",
        sa.Column("id", _pk, primary_key=True, autoincrement=True),
        sa.Column("owner_id", sa.BigInteger(), sa.ForeignKey("users.id"), nullable=False),
        sa.Column("name", sa.String(200), nullable=False),
        sa.Column("value_kind", sa.String(), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
    )
    op.create_index(op.f("ix_habits_owner_id"), "habits", ["owner_id"])

    op.create_table(
        "scoring_schemes",
        sa.Column("id", _pk, primary_key=True, autoincrement=True),
        sa.Column("owner_id", sa.BigInteger(), sa.ForeignKey("users.id"), nullable=False),
        sa.Column("name", sa.String(200), nullable=False),
        sa.Column("is_active", sa.Boolean(), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
    )
    op.create_index(op.f("ix_scoring_schemes_owner_id"), "scoring_schemes", ["owner_id"])

    op.create_table(
        "scored_habit_rules",
        sa.Column("id", _pk, primary_key=True, autoincrement=True),
        sa.Column(
            "scheme_id",
            sa.BigInteger(),
            sa.ForeignKey("scoring_schemes.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column(
            "habit_id",
            sa.BigInteger(),
            sa.ForeignKey("habits.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("weight", sa.Float(), nullable=False),
        sa.Column("target_frequency", sa.Integer(), nullable=False),
        sa.Column("scoring_kind", sa.String(), nullable=False),
        sa.UniqueConstraint("scheme_id", "habit_id", name="uq_rule_scheme_habit"),
        sa.CheckConstraint("weight > 0", name="ck_rule_weight_positive"),
        sa.CheckConstraint("target_frequency >= 1", name="ck_rule_target_positive"),
    )
    op.create_index(op.f("ix_scored_habit_rules_scheme_id"), "scored_habit_rules", ["scheme_id"])

    op.create_table(
        "weekly_aggregates",
        sa.Column("id", _pk, primary_key=True, autoincrement=True),
        sa.Column("owner_id", sa.BigInteger(), sa.ForeignKey("users.id"), nullable=False),
        sa.Column("week_start", sa.Date(), nullable=False),
        sa.Column(
            "scheme_id", sa.BigInteger(), sa.ForeignKey("scoring_schemes.id"), nullable=False
        ),
        sa.Column("score", sa.Float(), nullable=True),
        sa.Column("score_breakdown", _json, nullable=False),
        sa.Column("scored_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.UniqueConstraint("owner_id", "week_start", name="uq_weekly_owner_week"),
        sa.CheckConstraint(
            "score IS NULL OR (score >= 0 AND score <= 100)", name="ck_weekly_score_range"
        ),
    )
    op.create_index(op.f("ix_weekly_aggregates_owner_id"), "weekly_aggregates", ["owner_id"])

    op.create_table(
        "daily_records",
        sa.Column("id", _pk, primary_key=True, autoincrement=True),
        sa.Column("owner_id", sa.BigInteger(), sa.ForeignKey("users.id"), nullable=False),
        sa.Column("date", sa.Date(), nullable=False),
        sa.Column(
            "weekly_aggregate_id",
            sa.BigInteger(),
            sa.ForeignKey("weekly_aggregates.id", ondelete="SET NULL"),
            nullable=True,
        ),
        sa.Column("notes", sa.Text(), nullable=True),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
        sa.UniqueConstraint("owner_id", "date", name="uq_daily_owner_date"),
    )
    op.create_index(op.f("ix_daily_records_owner_id"), "daily_records", ["owner_id"])
    op.create_index(
        op.f("ix_daily_records_weekly_aggregate_id"), "daily_records", ["weekly_aggregate_id"]
    )

    op.create_table(
        "habit_entries",
        sa.Column("id", _pk, primary_key=True, autoincrement=True),
        sa.Column(
            "daily_record_id",
            sa.BigInteger(),
            sa.ForeignKey("daily_records.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column(
            "habit_id",
            sa.BigInteger(),
            sa.ForeignKey("habits.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("completed", sa.Boolean(), nullable=True),
        sa.Column("value", sa.Float(), nullable=True),
        sa.UniqueConstraint("daily_record_id", "habit_id", name="uq_entry_record_habit"),
    )
    op.create_index(op.f("ix_habit_entries_daily_record_id"), "habit_entries", ["daily_record_id"])


def downgrade() -> None:
    op.drop_index(op.f("ix_habit_entries_daily_record_id"), table_name="habit_entries")
    op.drop_table("habit_entries")
    op.drop_index(op.f("ix_daily_records_weekly_aggregate_id"), table_name="daily_records")
    op.drop_index(op.f("ix_daily_records_owner_id"), table_name="daily_records")
    op.drop_table("daily_records")
    op.drop_index(op.f("ix_weekly_aggregates_owner_id"), table_name="weekly_aggregates")
    op.drop_table("weekly_aggregates")
    op.drop_index(op.f("ix_scored_habit_rules_scheme_id"), table_name="scored_habit_rules")
    op.drop_table("scored_habit_rules")
    op.drop_index(op.f("ix_scoring_schemes_owner_id"), table_name="scoring_schemes")
    op.drop_table("scoring_schemes")
    op.drop_index(op.f("ix_habits_owner_id"), table_name="habits")
    op.drop_table("habits")
    op.drop_index(op.f("ix_users_external_id"), table_name="users")
    op.drop_table("users")
