"""Pydantic models for the weekly scoring domain."""

from enum import StrEnum

from pydantic import BaseModel, ConfigDict, Field

# --- Enums ---


class ValueKind(StrEnum):
    BOOLEAN = "boolean"
    NUMERIC = "numeric"


class ScoringKind(StrEnum):
    # Only mode implemented by the calculator; others are reserved
    LINEAR_POSITIVE_CAPPED = "linear_positive_capped"


# --- Calculator inputs ---


class HabitRef(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str = ""


class ScoringRule(BaseModel):
    """One habit's weight and weekly target within a scheme."""

    model_config = ConfigDict(from_attributes=True)

    habit_id: int
    weight: float
    target_frequency: int = 1
    scoring_kind: ScoringKind = ScoringKind.LINEAR_POSITIVE_CAPPED
    habit: HabitRef | None = None


class EntryInput(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    habit_id: int
    completed: bool | None = None
    value: float | None = None


class DayRecordInput(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    entries: list[EntryInput] = Field(default_factory=list)


# --- Calculator output ---


class HabitScore(BaseModel):
    habit_id: int
    habit_name: str
    weekly_completions: int
    target: int
    score_max: float
    ratio: float = Field(ge=0, le=1)
    weekly_score: float
    points_per_completion: float


class WeeklyScores(BaseModel):
    per_habit: list[HabitScore] = Field(default_factory=list)
    total: float = Field(ge=0, default=0.0)
    max_among_habits: float = 0.0
    scoring_version: str = "weekly-linear-v1"

    def by_habit(self) -> dict[int, HabitScore]:
        return {hs.habit_id: hs for hs in self.per_habit}
