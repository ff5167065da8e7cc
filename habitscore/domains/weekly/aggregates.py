"""Weekly aggregate lifecycle: idempotent creation and score recomputation.

A weekly aggregate is the per-owner, per-week row that binds the week to a
scoring scheme and caches the week's score. Rows are created lazily by
``ensure`` and only ever rescored through ``recompute``. Both operations run
inside the caller's transaction so a daily-record write and the score it
implies become visible together.
"""

from datetime import UTC, date, datetime

import structlog
from sqlalchemy import and_, or_, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from habitscore.db.database import dialect_insert
from habitscore.db.models import (
    DailyRecord,
    ScoredHabitRule,
    ScoringScheme,
    WeeklyAggregate,
)
from habitscore.domains.schemes.service import SchemeService
from habitscore.domains.scoring.calculator import WeeklyScoreCalculator
from habitscore.domains.scoring.models import DayRecordInput, ScoringRule, WeeklyScores
from habitscore.shared.dates import is_week_start, recent_week_starts, week_end_of, week_start_of
from habitscore.shared.errors import InternalError, NotFoundError, ValidationError

from .models import WeekScorePoint

logger = structlog.get_logger()


class WeeklyAggregateManager:
    """Creates, loads and rescores weekly aggregates."""

    def __init__(
        self,
        calculator: WeeklyScoreCalculator | None = None,
        schemes: SchemeService | None = None,
    ) -> None:
        self._calculator = calculator or WeeklyScoreCalculator()
        self._schemes = schemes or SchemeService()

    async def ensure(
        self,
        session: AsyncSession,
        owner_id: int,
        any_date: date,
        scheme_id: int,
    ) -> WeeklyAggregate:
        """Return the aggregate for the week containing ``any_date``, creating it if absent.

        ``scheme_id`` only seeds a new row; an existing aggregate is returned
        unchanged. Concurrent callers for the same week converge on the
        single row admitted by the (owner, week_start) unique key.
        """
        week_start = week_start_of(any_date)

        existing = await self.find_for_week(session, owner_id, week_start)
        if existing is not None:
            return existing

        await self._schemes.get_owned(session, owner_id, scheme_id)
        created = await self._insert_if_absent(session, owner_id, week_start, scheme_id)

        aggregate = await self.find_for_week(session, owner_id, week_start)
        if aggregate is None:
            raise InternalError(
                f"Weekly aggregate for {week_start.isoformat()} missing after insert"
            )

        if created:
            logger.info(
                "weekly_aggregate_created",
                owner_id=owner_id,
                week_start=week_start.isoformat(),
                scheme_id=scheme_id,
                aggregate_id=aggregate.id,
            )
        else:
            logger.info(
                "weekly_aggregate_concurrent_create",
                owner_id=owner_id,
                week_start=week_start.isoformat(),
                aggregate_id=aggregate.id,
            )
        return aggregate

    async def recompute(self, session: AsyncSession, aggregate_id: int) -> float:
        """Rescore the aggregate from freshly loaded rules and records and persist the total."""
        aggregate = await session.get(WeeklyAggregate, aggregate_id, populate_existing=True)
        if aggregate is None:
            raise NotFoundError(f"Weekly aggregate {aggregate_id} not found")

        rules = await self._load_rules(session, aggregate.scheme_id)
        records = await self._load_week_records(session, aggregate.owner_id, aggregate.week_start)

        scores: WeeklyScores = self._calculator.score(
            [ScoringRule.model_validate(r) for r in rules],
            [DayRecordInput.model_validate(r) for r in records],
        )

        aggregate.score = scores.total
        aggregate.score_breakdown = scores.model_dump(mode="json")
        aggregate.scored_at = datetime.now(UTC)
        await session.flush()

        logger.info(
            "weekly_score_recomputed",
            aggregate_id=aggregate.id,
            owner_id=aggregate.owner_id,
            week_start=aggregate.week_start.isoformat(),
            scheme_id=aggregate.scheme_id,
            rule_count=len(rules),
            record_count=len(records),
            score=scores.total,
        )
        return scores.total

    async def recompute_for_scheme(self, session: AsyncSession, scheme_id: int) -> int:
        """Rescore every week bound to ``scheme_id``. Returns the number of weeks rescored.

        Rule edits change what a scheme's weeks are worth, so callers run this
        in the same transaction as the edit.
        """
        stmt = (
            select(WeeklyAggregate.id)
            .where(WeeklyAggregate.scheme_id == scheme_id)
            .order_by(WeeklyAggregate.week_start)
        )
        aggregate_ids = list((await session.execute(stmt)).scalars().all())
        for aggregate_id in aggregate_ids:
            await self.recompute(session, aggregate_id)

        if aggregate_ids:
            logger.info("scheme_weeks_rescored", scheme_id=scheme_id, weeks=len(aggregate_ids))
        return len(aggregate_ids)

    async def find_for_week(
        self, session: AsyncSession, owner_id: int, week_start: date
    ) -> WeeklyAggregate | None:
        """Load the week's aggregate with its bound scheme and rules, or None."""
        stmt = (
            select(WeeklyAggregate)
            .where(WeeklyAggregate.owner_id == owner_id, WeeklyAggregate.week_start == week_start)
            .options(
                selectinload(WeeklyAggregate.scheme)
                .selectinload(ScoringScheme.rules)
                .selectinload(ScoredHabitRule.habit)
            )
            .execution_options(populate_existing=True)
        )
        return (await session.execute(stmt)).scalar_one_or_none()

    async def get_for_week(
        self, session: AsyncSession, owner_id: int, week_start: date
    ) -> WeeklyAggregate:
        if not is_week_start(week_start):
            raise ValidationError(f"week_start must be a Monday, got {week_start.isoformat()}")
        aggregate = await self.find_for_week(session, owner_id, week_start)
        if aggregate is None:
            raise NotFoundError(f"Weekly aggregate for {week_start.isoformat()} not found")
        return aggregate

    async def member_record_ids(self, session: AsyncSession, aggregate: WeeklyAggregate) -> list[int]:
        """Ids of daily records belonging to the aggregate.

        A record belongs when it links to the aggregate, or when it is
        unlinked and dated inside the aggregate's week.
        """
        stmt = select(DailyRecord.id).where(
            DailyRecord.owner_id == aggregate.owner_id,
            or_(
                DailyRecord.weekly_aggregate_id == aggregate.id,
                and_(
                    DailyRecord.weekly_aggregate_id.is_(None),
                    DailyRecord.date.between(
                        aggregate.week_start, week_end_of(aggregate.week_start)
                    ),
                ),
            ),
        )
        return list((await session.execute(stmt)).scalars().all())

    async def history(
        self, session: AsyncSession, owner_id: int, today: date, weeks: int
    ) -> list[WeekScorePoint]:
        """Persisted scores for the last ``weeks`` weeks, oldest first.

        Weeks without an aggregate score 0. Aggregates that were never
        scored are recomputed before being reported.
        """
        week_starts = recent_week_starts(today, weeks)
        in_window = (
            WeeklyAggregate.owner_id == owner_id,
            WeeklyAggregate.week_start.between(week_starts[0], week_starts[-1]),
        )

        unscored = await session.execute(
            select(WeeklyAggregate.id).where(*in_window, WeeklyAggregate.score.is_(None))
        )
        for aggregate_id in unscored.scalars().all():
            await self.recompute(session, aggregate_id)

        stmt = (
            select(WeeklyAggregate)
            .where(*in_window)
            .options(selectinload(WeeklyAggregate.scheme))
            .execution_options(populate_existing=True)
        )
        rows = list((await session.execute(stmt)).scalars().all())

        by_week = {row.week_start: row for row in rows}
        points: list[WeekScorePoint] = []
        for week_start in week_starts:
            row = by_week.get(week_start)
            if row is None:
                points.append(WeekScorePoint(week_start=week_start))
                continue
            points.append(
                WeekScorePoint(
                    week_start=week_start,
                    score=row.score or 0.0,
                    scheme_name=row.scheme.name if row.scheme else "",
                    has_aggregate=True,
                )
            )
        return points

    async def _insert_if_absent(
        self, session: AsyncSession, owner_id: int, week_start: date, scheme_id: int
    ) -> bool:
        """Insert the week row unless the unique key already holds one. True if inserted."""
        insert = dialect_insert(session)
        stmt = (
            insert(WeeklyAggregate)
            .values(owner_id=owner_id, week_start=week_start, scheme_id=scheme_id, score=None)
            .on_conflict_do_nothing(index_elements=["owner_id", "week_start"])
        )
        result = await session.execute(stmt)
        return result.rowcount == 1

    async def _load_rules(self, session: AsyncSession, scheme_id: int) -> list[ScoredHabitRule]:
        stmt = (
            select(ScoredHabitRule)
            .where(ScoredHabitRule.scheme_id == scheme_id)
            .options(selectinload(ScoredHabitRule.habit))
            .order_by(ScoredHabitRule.id)
            .execution_options(populate_existing=True)
        )
        return list((await session.execute(stmt)).scalars().all())

    async def _load_week_records(
        self, session: AsyncSession, owner_id: int, week_start: date
    ) -> list[DailyRecord]:
        stmt = (
            select(DailyRecord)
            .where(
                DailyRecord.owner_id == owner_id,
                DailyRecord.date.between(week_start, week_end_of(week_start)),
            )
            .options(selectinload(DailyRecord.entries))
            .order_by(DailyRecord.date)
            .execution_options(populate_existing=True)
        )
        return list((await session.execute(stmt)).scalars().all())
