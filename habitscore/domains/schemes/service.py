"""Scoring scheme management.

Schemes are owned by a user. At most one scheme per owner carries the
active marker; activation is a single UPDATE that sets the target and
clears every other scheme of the owner in the same statement.
"""

import structlog
from sqlalchemy import case, func, select, update
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from habitscore.db.models import Habit, ScoredHabitRule, ScoringScheme, WeeklyAggregate
from habitscore.shared.errors import ConflictError, NotFoundError

from .models import RuleCreateRequest, RuleUpdateRequest, SchemeCreateRequest

logger = structlog.get_logger()


def _with_rules(stmt):
    return stmt.options(
        selectinload(ScoringScheme.rules).selectinload(ScoredHabitRule.habit)
    ).execution_options(populate_existing=True)


class SchemeService:
    async def get_owned(
        self, session: AsyncSession, owner_id: int, scheme_id: int, with_rules: bool = False
    ) -> ScoringScheme:
        """Load a scheme owned by ``owner_id`` or raise NotFoundError."""
        stmt = select(ScoringScheme).where(
            ScoringScheme.id == scheme_id, ScoringScheme.owner_id == owner_id
        )
        if with_rules:
            stmt = _with_rules(stmt)
        scheme = (await session.execute(stmt)).scalar_one_or_none()
        if scheme is None:
            raise NotFoundError(f"Scoring scheme {scheme_id} not found")
        return scheme

    async def list_for_owner(self, session: AsyncSession, owner_id: int) -> list[ScoringScheme]:
        stmt = _with_rules(
            select(ScoringScheme)
            .where(ScoringScheme.owner_id == owner_id)
            .order_by(ScoringScheme.created_at, ScoringScheme.id)
        )
        return list((await session.execute(stmt)).scalars().all())

    async def get_active(self, session: AsyncSession, owner_id: int) -> ScoringScheme | None:
        stmt = select(ScoringScheme).where(
            ScoringScheme.owner_id == owner_id, ScoringScheme.is_active.is_(True)
        )
        return (await session.execute(stmt)).scalars().first()

    async def resolve_seed(self, session: AsyncSession, owner_id: int) -> ScoringScheme:
        """Scheme used to seed a new week: the active one, else the newest."""
        stmt = (
            select(ScoringScheme)
            .where(ScoringScheme.owner_id == owner_id)
            .order_by(
                ScoringScheme.is_active.desc(),
                ScoringScheme.created_at.desc(),
                ScoringScheme.id.desc(),
            )
            .limit(1)
        )
        scheme = (await session.execute(stmt)).scalar_one_or_none()
        if scheme is None:
            raise NotFoundError("No scoring schemes for user")
        return scheme

    async def create(
        self, session: AsyncSession, owner_id: int, request: SchemeCreateRequest
    ) -> ScoringScheme:
        scheme = ScoringScheme(owner_id=owner_id, name=request.name, is_active=False)
        session.add(scheme)
        await session.flush()
        if request.is_active:
            await self.set_active(session, owner_id, scheme.id)
        logger.info("scoring_scheme_created", owner_id=owner_id, scheme_id=scheme.id)
        return await self.get_owned(session, owner_id, scheme.id, with_rules=True)

    async def set_active(self, session: AsyncSession, owner_id: int, scheme_id: int) -> ScoringScheme:
        """Mark ``scheme_id`` active and clear the marker on the owner's other schemes."""
        await self.get_owned(session, owner_id, scheme_id)
        await session.execute(
            update(ScoringScheme)
            .where(ScoringScheme.owner_id == owner_id)
            .values(is_active=case((ScoringScheme.id == scheme_id, True), else_=False))
            .execution_options(synchronize_session=False)
        )
        logger.info("scoring_scheme_activated", owner_id=owner_id, scheme_id=scheme_id)
        return await self.get_owned(session, owner_id, scheme_id, with_rules=True)

    async def delete(self, session: AsyncSession, owner_id: int, scheme_id: int) -> None:
        scheme = await self.get_owned(session, owner_id, scheme_id, with_rules=True)
        if scheme.is_active:
            raise ConflictError("Cannot delete the active scoring scheme", code="SCHEME_ACTIVE")
        bound_weeks = (
            await session.execute(
                select(func.count())
                .select_from(WeeklyAggregate)
                .where(WeeklyAggregate.scheme_id == scheme_id)
            )
        ).scalar_one()
        if bound_weeks:
            raise ConflictError(
                f"Scoring scheme {scheme_id} is bound to {bound_weeks} week(s)",
                code="SCHEME_IN_USE",
            )
        await session.delete(scheme)
        await session.flush()
        logger.info("scoring_scheme_deleted", owner_id=owner_id, scheme_id=scheme_id)

    async def add_rule(
        self,
        session: AsyncSession,
        owner_id: int,
        scheme_id: int,
        request: RuleCreateRequest,
    ) -> ScoredHabitRule:
        await self.get_owned(session, owner_id, scheme_id)
        habit = (
            await session.execute(
                select(Habit).where(Habit.id == request.habit_id, Habit.owner_id == owner_id)
            )
        ).scalar_one_or_none()
        if habit is None:
            raise NotFoundError(f"Habit {request.habit_id} not found")

        duplicate = (
            await session.execute(
                select(ScoredHabitRule.id).where(
                    ScoredHabitRule.scheme_id == scheme_id,
                    ScoredHabitRule.habit_id == request.habit_id,
                )
            )
        ).scalar_one_or_none()
        if duplicate is not None:
            raise ConflictError(
                f"Habit {request.habit_id} is already scored in scheme {scheme_id}",
                code="RULE_EXISTS",
            )

        rule = ScoredHabitRule(
            scheme_id=scheme_id,
            habit_id=request.habit_id,
            weight=request.weight,
            target_frequency=request.target_frequency,
            scoring_kind=request.scoring_kind.value,
        )
        session.add(rule)
        await session.flush()
        logger.info(
            "scored_habit_rule_added",
            scheme_id=scheme_id,
            habit_id=request.habit_id,
            weight=request.weight,
        )
        return await self._get_rule(session, owner_id, scheme_id, rule.id)

    async def update_rule(
        self,
        session: AsyncSession,
        owner_id: int,
        scheme_id: int,
        rule_id: int,
        request: RuleUpdateRequest,
    ) -> ScoredHabitRule:
        rule = await self._get_rule(session, owner_id, scheme_id, rule_id)
        if request.weight is not None:
            rule.weight = request.weight
        if request.target_frequency is not None:
            rule.target_frequency = request.target_frequency
        if request.scoring_kind is not None:
            rule.scoring_kind = request.scoring_kind.value
        await session.flush()
        logger.info(
            "scored_habit_rule_updated",
            scheme_id=scheme_id,
            rule_id=rule_id,
            habit_id=rule.habit_id,
            weight=rule.weight,
            target_frequency=rule.target_frequency,
        )
        return rule

    async def remove_rule(
        self, session: AsyncSession, owner_id: int, scheme_id: int, rule_id: int
    ) -> None:
        rule = await self._get_rule(session, owner_id, scheme_id, rule_id)
        await session.delete(rule)
        await session.flush()
        logger.info("scored_habit_rule_removed", scheme_id=scheme_id, rule_id=rule_id)

    async def _get_rule(
        self, session: AsyncSession, owner_id: int, scheme_id: int, rule_id: int
    ) -> ScoredHabitRule:
        stmt = (
            select(ScoredHabitRule)
            .join(ScoringScheme, ScoredHabitRule.scheme_id == ScoringScheme.id)
            .where(
                ScoredHabitRule.id == rule_id,
                ScoredHabitRule.scheme_id == scheme_id,
                ScoringScheme.owner_id == owner_id,
            )
            .options(selectinload(ScoredHabitRule.habit))
        )
        rule = (await session.execute(stmt)).scalar_one_or_none()
        if rule is None:
            raise NotFoundError(f"Scored habit rule {rule_id} not found")
        return rule
