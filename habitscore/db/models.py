"""SQLAlchemy ORM models for habits, scoring schemes and weekly aggregates."""

import datetime as dt

from sqlalchemy import (
    JSON,
    BigInteger,
    Boolean,
    CheckConstraint,
    Date,
    DateTime,
    Float,
    ForeignKey,
    Integer,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, relationship

# SQLite only autoincrements INTEGER PRIMARY KEY columns
BigIntPK = BigInteger().with_variant(Integer(), "sqlite")
JSONDict = JSON().with_variant(JSONB(), "postgresql")


def _utcnow() -> dt.datetime:
    return dt.datetime.now(dt.UTC)


class Base(DeclarativeBase):
    pass


class User(Base):
    __tablename__ = "users"

    id: Mapped[int] = mapped_column(BigIntPK, primary_key=True, autoincrement=True)
    external_id: Mapped[str] = mapped_column(String, unique=True, index=True)
    created_at: Mapped[dt.datetime] = mapped_column(DateTime(timezone=True), default=_utcnow)


class Habit(Base):
    __tablename__ = "habits"

    id: Mapped[int] = mapped_column(BigIntPK, primary_key=True, autoincrement=True)
    owner_id: Mapped[int] = mapped_column(ForeignKey("users.id"), index=True)
    name: Mapped[str] = mapped_column(String(200))
    value_kind: Mapped[str] = mapped_column(String, default="boolean")
    created_at: Mapped[dt.datetime] = mapped_column(DateTime(timezone=True), default=_utcnow)


class ScoringScheme(Base):
    __tablename__ = "scoring_schemes"

    id: Mapped[int] = mapped_column(BigIntPK, primary_key=True, autoincrement=True)
    owner_id: Mapped[int] = mapped_column(ForeignKey("users.id"), index=True)
    name: Mapped[str] = mapped_column(String(200))
    is_active: Mapped[bool] = mapped_column(Boolean, default=False)
    created_at: Mapped[dt.datetime] = mapped_column(DateTime(timezone=True), default=_utcnow)

    rules: Mapped[list["ScoredHabitRule"]] = relationship(
        back_populates="scheme",
        cascade="all, delete-orphan",
        order_by="ScoredHabitRule.id",
    )


class ScoredHabitRule(Base):
    __tablename__ = "scored_habit_rules"

    id: Mapped[int] = mapped_column(BigIntPK, primary_key=True, autoincrement=True)
    scheme_id: Mapped[int] = mapped_column(
        ForeignKey("scoring_schemes.id", ondelete="CASCADE"), index=True
    )
    habit_id: Mapped[int] = mapped_column(ForeignKey("habits.id", ondelete="CASCADE"))
    weight: Mapped[float] = mapped_column(Float)
    target_frequency: Mapped[int] = mapped_column(Integer, default=1)
    scoring_kind: Mapped[str] = mapped_column(String, default="linear_positive_capped")

    scheme: Mapped[ScoringScheme] = relationship(back_populates="rules")
    habit: Mapped[Habit] = relationship()

    __table_args__ = (
        UniqueConstraint("scheme_id", "habit_id", name="uq_rule_scheme_habit"),
        CheckConstraint("weight > 0", name="ck_rule_weight_positive"),
        CheckConstraint("target_frequency >= 1", name="ck_rule_target_positive"),
    )


class WeeklyAggregate(Base):
    __tablename__ = "weekly_aggregates"

    id: Mapped[int] = mapped_column(BigIntPK, primary_key=True, autoincrement=True)
    owner_id: Mapped[int] = mapped_column(ForeignKey("users.id"), index=True)
    week_start: Mapped[dt.date] = mapped_column(Date)
    scheme_id: Mapped[int] = mapped_column(ForeignKey("scoring_schemes.id"))
    score: Mapped[float | None] = mapped_column(Float, nullable=True)
    score_breakdown: Mapped[dict] = mapped_column(JSONDict, default=dict)
    scored_at: Mapped[dt.datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    created_at: Mapped[dt.datetime] = mapped_column(DateTime(timezone=True), default=_utcnow)

    scheme: Mapped[ScoringScheme] = relationship()

    __table_args__ = (
        UniqueConstraint("owner_id", "week_start", name="uq_weekly_owner_week"),
        CheckConstraint(
            "score IS NULL OR (score >= 0 AND score <= 100)", name="ck_weekly_score_range"
        ),
    )


class DailyRecord(Base):
    __tablename__ = "daily_records"

    id: Mapped[int] = mapped_column(BigIntPK, primary_key=True, autoincrement=True)
    owner_id: Mapped[int] = mapped_column(ForeignKey("users.id"), index=True)
    date: Mapped[dt.date] = mapped_column(Date)
    weekly_aggregate_id: Mapped[int | None] = mapped_column(
        ForeignKey("weekly_aggregates.id", ondelete="SET NULL"), index=True, nullable=True
    )
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)
    updated_at: Mapped[dt.datetime] = mapped_column(
        DateTime(timezone=True), default=_utcnow, onupdate=_utcnow
    )

    entries: Mapped[list["HabitEntry"]] = relationship(
        back_populates="record",
        cascade="all, delete-orphan",
        passive_deletes=True,
        order_by="HabitEntry.id",
    )

    __table_args__ = (UniqueConstraint("owner_id", "date", name="uq_daily_owner_date"),)


class HabitEntry(Base):
    __tablename__ = "habit_entries"

    id: Mapped[int] = mapped_column(BigIntPK, primary_key=True, autoincrement=True)
    daily_record_id: Mapped[int] = mapped_column(
        ForeignKey("daily_records.id", ondelete="CASCADE"), index=True
    )
    habit_id: Mapped[int] = mapped_column(ForeignKey("habits.id", ondelete="CASCADE"))
    completed: Mapped[bool | None] = mapped_column(Boolean, nullable=True)
    value: Mapped[float | None] = mapped_column(Float, nullable=True)

    record: Mapped[DailyRecord] = relationship(back_populates="entries")

    __table_args__ = (UniqueConstraint("daily_record_id", "habit_id", name="uq_entry_record_habit"),)
