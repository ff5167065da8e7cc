"""Request and response models for weekly aggregates and daily records."""

import datetime as dt
from typing import Annotated

from pydantic import (
    AfterValidator,
    BaseModel,
    ConfigDict,
    Field,
    field_validator,
    model_validator,
)

from habitscore.domains.schemes.models import SchemeView
from habitscore.shared.dates import is_week_start


def _require_monday(value: dt.date) -> dt.date:
    if not is_week_start(value):
        raise ValueError(f"week_start must be a Monday, got {value.isoformat()} ({value:%A})")
    return value


MondayDate = Annotated[dt.date, AfterValidator(_require_monday)]


# --- Request Models ---


class EnsureWeekRequest(BaseModel):
    date: dt.date
    # Only seeds a new week; ignored when the week already exists
    scheme_id: int | None = None


class RecomputeRequest(BaseModel):
    week_start: MondayDate


class ChangeSchemeRequest(BaseModel):
    week_start: MondayDate
    scheme_id: int
    confirm_delete: bool = False


class EntryUpsert(BaseModel):
    habit_id: int
    completed: bool | None = None
    value: float | None = None

    @model_validator(mode="after")
    def _one_of_completed_or_value(self) -> "EntryUpsert":
        if (self.completed is None) == (self.value is None):
            raise ValueError(
                f"entry for habit {self.habit_id} must set exactly one of completed or value"
            )
        return self


class DailyRecordUpsertRequest(BaseModel):
    date: dt.date
    notes: str | None = None
    entries: list[EntryUpsert] = Field(default_factory=list)
    scheme_id: int | None = None

    @field_validator("entries")
    @classmethod
    def _unique_habits(cls, entries: list[EntryUpsert]) -> list[EntryUpsert]:
        seen: set[int] = set()
        for entry in entries:
            if entry.habit_id in seen:
                raise ValueError(f"duplicate entry for habit {entry.habit_id}")
            seen.add(entry.habit_id)
        return entries


# --- Response Models ---


class HabitEntryView(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    habit_id: int
    completed: bool | None = None
    value: float | None = None


class DailyRecordView(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    date: dt.date
    notes: str | None = None
    weekly_aggregate_id: int | None = None
    entries: list[HabitEntryView] = Field(default_factory=list)


class WeeklyAggregateView(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    week_start: dt.date
    scheme_id: int
    score: float | None = None
    score_breakdown: dict = Field(default_factory=dict)
    scored_at: dt.datetime | None = None
    scheme: SchemeView | None = None


class WeekScorePoint(BaseModel):
    week_start: dt.date
    score: float = 0.0
    scheme_name: str = ""
    has_aggregate: bool = False


class BackfillReport(BaseModel):
    unlinked_records: int = 0
    linked_records: int = 0
    recomputed_weeks: int = 0
    skipped_owners: list[int] = Field(default_factory=list)
    dry_run: bool = False
