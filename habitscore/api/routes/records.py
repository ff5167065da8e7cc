"""Daily record endpoints. Every write rescores the affected week."""

from datetime import date

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from habitscore.api.identity import get_owner_id
from habitscore.db.database import get_session, transaction
from habitscore.domains.weekly.daily_records import DailyRecordService
from habitscore.domains.weekly.models import (
    DailyRecordUpsertRequest,
    DailyRecordView,
    WeeklyAggregateView,
)

router = APIRouter(prefix="/api/v1/records", tags=["records"])

_records = DailyRecordService()


@router.post("")
async def upsert_record(
    request: DailyRecordUpsertRequest,
    owner_id: int = Depends(get_owner_id),  # noqa: B008
    session: AsyncSession = Depends(get_session),  # noqa: B008
) -> dict:
    async with transaction(session):
        record, aggregate = await _records.upsert(session, owner_id, request)
    return {
        "record": DailyRecordView.model_validate(record).model_dump(mode="json"),
        "weekly_aggregate": WeeklyAggregateView.model_validate(aggregate).model_dump(mode="json"),
    }


@router.get("/{day}")
async def get_record(
    day: date,
    owner_id: int = Depends(get_owner_id),  # noqa: B008
    session: AsyncSession = Depends(get_session),  # noqa: B008
) -> dict:
    async with transaction(session):
        record = await _records.get_record(session, owner_id, day)
    return DailyRecordView.model_validate(record).model_dump(mode="json")
