"""Weekly aggregate endpoints: ensure, recompute, scheme change and score history."""

from datetime import UTC, date, datetime

import structlog
from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from habitscore.api.identity import get_owner_id
from habitscore.config import settings
from habitscore.db.database import get_session, transaction
from habitscore.db.models import ScoringScheme, WeeklyAggregate
from habitscore.domains.schemes.service import SchemeService
from habitscore.domains.weekly.aggregates import WeeklyAggregateManager
from habitscore.domains.weekly.models import (
    ChangeSchemeRequest,
    EnsureWeekRequest,
    RecomputeRequest,
    WeeklyAggregateView,
)
from habitscore.domains.weekly.scheme_change import SchemeChangeCoordinator

logger = structlog.get_logger()
router = APIRouter(prefix="/api/v1/weekly", tags=["weekly"])

_schemes = SchemeService()
_aggregates = WeeklyAggregateManager(schemes=_schemes)
_coordinator = SchemeChangeCoordinator(aggregates=_aggregates, schemes=_schemes)


def _aggregate_payload(aggregate: WeeklyAggregate, active: ScoringScheme | None) -> dict:
    # The week's bound scheme governs its score; the active scheme only seeds
    # new weeks. Both are returned so the caller decides which one to display.
    return {
        "weekly_aggregate": WeeklyAggregateView.model_validate(aggregate).model_dump(mode="json"),
        "active_scheme_id": active.id if active else None,
    }


@router.post("/ensure")
async def ensure_week(
    request: EnsureWeekRequest,
    owner_id: int = Depends(get_owner_id),  # noqa: B008
    session: AsyncSession = Depends(get_session),  # noqa: B008
) -> dict:
    """Return the aggregate for the week containing ``date``, creating it if needed."""
    async with transaction(session):
        scheme_id = request.scheme_id
        if scheme_id is None:
            scheme_id = (await _schemes.resolve_seed(session, owner_id)).id
        aggregate = await _aggregates.ensure(session, owner_id, request.date, scheme_id)
        active = await _schemes.get_active(session, owner_id)
    return _aggregate_payload(aggregate, active)


@router.post("/recompute")
async def recompute_week(
    request: RecomputeRequest,
    owner_id: int = Depends(get_owner_id),  # noqa: B008
    session: AsyncSession = Depends(get_session),  # noqa: B008
) -> dict:
    """Rescore a week. Weeks without an aggregate are left alone."""
    async with transaction(session):
        aggregate = await _aggregates.find_for_week(session, owner_id, request.week_start)
        if aggregate is None:
            return {"week_start": request.week_start.isoformat(), "updated": False, "score": None}
        score = await _aggregates.recompute(session, aggregate.id)
    return {"week_start": request.week_start.isoformat(), "updated": True, "score": score}


@router.post("/change-scheme")
async def change_scheme(
    request: ChangeSchemeRequest,
    owner_id: int = Depends(get_owner_id),  # noqa: B008
    session: AsyncSession = Depends(get_session),  # noqa: B008
) -> dict:
    """Rebind a week to another scheme. Answers 409 NEEDS_CONFIRMATION when records exist."""
    async with transaction(session):
        aggregate = await _coordinator.change_scheme(
            session,
            owner_id,
            request.week_start,
            request.scheme_id,
            confirm_delete=request.confirm_delete,
        )
        active = await _schemes.get_active(session, owner_id)
    return _aggregate_payload(aggregate, active)


@router.get("/scores")
async def weekly_scores(
    owner_id: int = Depends(get_owner_id),  # noqa: B008
    session: AsyncSession = Depends(get_session),  # noqa: B008
    weeks: int = Query(default=settings.history_weeks, ge=1, le=104),
) -> dict:
    """Score per week for the most recent ``weeks`` weeks, oldest first."""
    today = datetime.now(UTC).date()
    async with transaction(session):
        points = await _aggregates.history(session, owner_id, today, weeks)
    return {"items": [p.model_dump(mode="json") for p in points], "weeks": weeks}


@router.get("/{week_start}")
async def get_week(
    week_start: date,
    owner_id: int = Depends(get_owner_id),  # noqa: B008
    session: AsyncSession = Depends(get_session),  # noqa: B008
) -> dict:
    """The week's aggregate with its bound scheme, rules and cached score breakdown."""
    async with transaction(session):
        aggregate = await _aggregates.get_for_week(session, owner_id, week_start)
        active = await _schemes.get_active(session, owner_id)
    return _aggregate_payload(aggregate, active)
