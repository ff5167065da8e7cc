"""Daily record upserts and the weekly link maintenance built on them.

Writing a day is always followed by rescoring its week. ``upsert`` performs
ensure, write and recompute against one session so the caller can commit
them as a single transaction.
"""

from collections import defaultdict
from datetime import date

import structlog
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from habitscore.db.database import dialect_insert
from habitscore.db.models import DailyRecord, Habit, HabitEntry, WeeklyAggregate
from habitscore.domains.schemes.service import SchemeService
from habitscore.domains.scoring.models import ValueKind
from habitscore.shared.errors import InternalError, NotFoundError, ValidationError

from .aggregates import WeeklyAggregateManager
from .models import BackfillReport, DailyRecordUpsertRequest, EntryUpsert

logger = structlog.get_logger()


def _check_value_kind(habit: Habit, entry: EntryUpsert) -> None:
    if habit.value_kind == ValueKind.BOOLEAN and entry.value is not None:
        raise ValidationError(f"Habit {habit.id} is boolean; send 'completed', not 'value'")
    if habit.value_kind == ValueKind.NUMERIC and entry.completed is not None:
        raise ValidationError(f"Habit {habit.id} is numeric; send 'value', not 'completed'")


class DailyRecordService:
    def __init__(
        self,
        aggregates: WeeklyAggregateManager | None = None,
        schemes: SchemeService | None = None,
    ) -> None:
        self._schemes = schemes or SchemeService()
        self._aggregates = aggregates or WeeklyAggregateManager(schemes=self._schemes)

    async def upsert(
        self,
        session: AsyncSession,
        owner_id: int,
        request: DailyRecordUpsertRequest,
    ) -> tuple[DailyRecord, WeeklyAggregate]:
        """Write one day's notes and habit entries, then rescore the week.

        Entries not mentioned in the request are left untouched. The week's
        aggregate is created on first write, seeded with ``request.scheme_id``
        or, when absent, the owner's active (else newest) scheme.
        """
        habits = await self._load_habits(session, owner_id, [e.habit_id for e in request.entries])
        for entry in request.entries:
            _check_value_kind(habits[entry.habit_id], entry)

        scheme_id = request.scheme_id
        if scheme_id is None:
            scheme_id = (await self._schemes.resolve_seed(session, owner_id)).id

        aggregate = await self._aggregates.ensure(session, owner_id, request.date, scheme_id)

        # Concurrent writers for the same day converge on one row through the
        # (owner, date) and (record, habit) unique keys.
        await self._insert_record_if_absent(session, owner_id, request.date)
        record = await self._find_record(session, owner_id, request.date)
        if record is None:
            raise InternalError(f"Daily record for {request.date.isoformat()} missing after insert")

        record.notes = request.notes
        record.weekly_aggregate_id = aggregate.id
        await session.flush()
        await self._upsert_entries(session, record.id, request.entries)

        score = await self._aggregates.recompute(session, aggregate.id)
        logger.info(
            "daily_record_upserted",
            owner_id=owner_id,
            date=request.date.isoformat(),
            record_id=record.id,
            entry_count=len(request.entries),
            aggregate_id=aggregate.id,
            score=score,
        )

        record = await self.get_record(session, owner_id, request.date)
        aggregate = await self._aggregates.get_for_week(session, owner_id, aggregate.week_start)
        return record, aggregate

    async def get_record(self, session: AsyncSession, owner_id: int, day: date) -> DailyRecord:
        record = await self._find_record(session, owner_id, day)
        if record is None:
            raise NotFoundError(f"No daily record for {day.isoformat()}")
        return record

    async def backfill_links(self, session: AsyncSession, dry_run: bool = False) -> BackfillReport:
        """Link every unlinked daily record to its week's aggregate and rescore touched weeks.

        Missing aggregates are created with the owner's seed scheme. Owners
        without any scheme are skipped.
        """
        stmt = (
            select(DailyRecord)
            .where(DailyRecord.weekly_aggregate_id.is_(None))
            .order_by(DailyRecord.owner_id, DailyRecord.date)
        )
        unlinked = list((await session.execute(stmt)).scalars().all())
        report = BackfillReport(unlinked_records=len(unlinked), dry_run=dry_run)
        if dry_run or not unlinked:
            return report

        by_owner: dict[int, list[DailyRecord]] = defaultdict(list)
        for record in unlinked:
            by_owner[record.owner_id].append(record)

        touched: set[int] = set()
        for owner_id, records in by_owner.items():
            try:
                seed = await self._schemes.resolve_seed(session, owner_id)
            except NotFoundError:
                logger.warning("backfill_owner_skipped", owner_id=owner_id, records=len(records))
                report.skipped_owners.append(owner_id)
                continue

            for record in records:
                aggregate = await self._aggregates.ensure(session, owner_id, record.date, seed.id)
                record.weekly_aggregate_id = aggregate.id
                touched.add(aggregate.id)
                report.linked_records += 1
            await session.flush()

        for aggregate_id in sorted(touched):
            await self._aggregates.recompute(session, aggregate_id)
        report.recomputed_weeks = len(touched)

        logger.info(
            "backfill_complete",
            unlinked=report.unlinked_records,
            linked=report.linked_records,
            recomputed_weeks=report.recomputed_weeks,
            skipped_owners=report.skipped_owners,
        )
        return report

    async def _insert_record_if_absent(
        self, session: AsyncSession, owner_id: int, day: date
    ) -> bool:
        """Insert the day's row unless the unique key already holds one. True if inserted."""
        insert = dialect_insert(session)
        stmt = (
            insert(DailyRecord)
            .values(owner_id=owner_id, date=day)
            .on_conflict_do_nothing(index_elements=["owner_id", "date"])
        )
        result = await session.execute(stmt)
        return result.rowcount == 1

    async def _upsert_entries(
        self, session: AsyncSession, record_id: int, entries: list[EntryUpsert]
    ) -> None:
        insert = dialect_insert(session)
        for item in entries:
            stmt = insert(HabitEntry).values(
                daily_record_id=record_id,
                habit_id=item.habit_id,
                completed=item.completed,
                value=item.value,
            )
            stmt = stmt.on_conflict_do_update(
                index_elements=["daily_record_id", "habit_id"],
                set_={"completed": stmt.excluded.completed, "value": stmt.excluded.value},
            )
            await session.execute(stmt)

    async def _find_record(
        self, session: AsyncSession, owner_id: int, day: date
    ) -> DailyRecord | None:
        stmt = (
            select(DailyRecord)
            .where(DailyRecord.owner_id == owner_id, DailyRecord.date == day)
            .options(selectinload(DailyRecord.entries))
            .execution_options(populate_existing=True)
        )
        return (await session.execute(stmt)).scalar_one_or_none()

    async def _load_habits(
        self, session: AsyncSession, owner_id: int, habit_ids: list[int]
    ) -> dict[int, Habit]:
        if not habit_ids:
            return {}
        stmt = select(Habit).where(Habit.owner_id == owner_id, Habit.id.in_(habit_ids))
        habits = {h.id: h for h in (await session.execute(stmt)).scalars().all()}
        missing = sorted(set(habit_ids) - habits.keys())
        if missing:
            raise NotFoundError(f"Habit(s) not found: {', '.join(str(h) for h in missing)}")
        return habits
