"""Rebinding a week to a different scoring scheme.

Daily records logged under one scheme are meaningless under another, so a
week that already holds records can only be rebound when the caller
explicitly confirms their deletion. Deletion, rebinding and rescoring run in
the caller's transaction: either all of them land or none do.
"""

from datetime import date

import structlog
from sqlalchemy import delete
from sqlalchemy.ext.asyncio import AsyncSession

from habitscore.db.models import DailyRecord, HabitEntry, WeeklyAggregate
from habitscore.domains.schemes.service import SchemeService
from habitscore.shared.errors import NeedsConfirmationError

from .aggregates import WeeklyAggregateManager

logger = structlog.get_logger()


class SchemeChangeCoordinator:
    def __init__(
        self,
        aggregates: WeeklyAggregateManager | None = None,
        schemes: SchemeService | None = None,
    ) -> None:
        self._schemes = schemes or SchemeService()
        self._aggregates = aggregates or WeeklyAggregateManager(schemes=self._schemes)

    async def change_scheme(
        self,
        session: AsyncSession,
        owner_id: int,
        week_start: date,
        new_scheme_id: int,
        confirm_delete: bool = False,
    ) -> WeeklyAggregate:
        """Bind the week starting ``week_start`` to ``new_scheme_id`` and rescore it.

        Raises:
            NotFoundError: the scheme is not owned by ``owner_id`` or the week
                has no aggregate.
            NeedsConfirmationError: the week holds daily records and
                ``confirm_delete`` is false. Nothing is modified.
        """
        await self._schemes.get_owned(session, owner_id, new_scheme_id)
        aggregate = await self._aggregates.get_for_week(session, owner_id, week_start)
        previous_scheme_id = aggregate.scheme_id

        record_ids = await self._aggregates.member_record_ids(session, aggregate)
        if record_ids and not confirm_delete:
            logger.info(
                "scheme_change_needs_confirmation",
                owner_id=owner_id,
                week_start=week_start.isoformat(),
                aggregate_id=aggregate.id,
                record_count=len(record_ids),
            )
            raise NeedsConfirmationError(
                f"{len(record_ids)} daily record(s) exist for the week of "
                f"{week_start.isoformat()}; confirm deletion to change scheme"
            )

        if record_ids:
            await session.execute(
                delete(HabitEntry).where(HabitEntry.daily_record_id.in_(record_ids))
            )
            await session.execute(delete(DailyRecord).where(DailyRecord.id.in_(record_ids)))

        aggregate.scheme_id = new_scheme_id
        await session.flush()

        score = await self._aggregates.recompute(session, aggregate.id)

        logger.info(
            "weekly_scheme_changed",
            owner_id=owner_id,
            week_start=week_start.isoformat(),
            aggregate_id=aggregate.id,
            previous_scheme_id=previous_scheme_id,
            scheme_id=new_scheme_id,
            deleted_records=len(record_ids),
            score=score,
        )
        return await self._aggregates.get_for_week(session, owner_id, week_start)
