"""Weekly aggregate lifecycle domain."""

from .aggregates import WeeklyAggregateManager
from .daily_records import DailyRecordService
from .models import (
    BackfillReport,
    ChangeSchemeRequest,
    DailyRecordUpsertRequest,
    DailyRecordView,
    EnsureWeekRequest,
    EntryUpsert,
    RecomputeRequest,
    WeeklyAggregateView,
    WeekScorePoint,
)
from .scheme_change import SchemeChangeCoordinator

__all__ = [
    "BackfillReport",
    "ChangeSchemeRequest",
    "DailyRecordService",
    "DailyRecordUpsertRequest",
    "DailyRecordView",
    "EnsureWeekRequest",
    "EntryUpsert",
    "RecomputeRequest",
    "SchemeChangeCoordinator",
    "WeekScorePoint",
    "WeeklyAggregateManager",
    "WeeklyAggregateView",
]
