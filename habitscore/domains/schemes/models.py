"""Request and response models for scoring scheme management."""

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field

from habitscore.domains.scoring.models import HabitRef, ScoringKind


class SchemeCreateRequest(BaseModel):
    name: str = Field(min_length=1, max_length=200)
    is_active: bool = False


class RuleCreateRequest(BaseModel):
    habit_id: int
    weight: float = Field(gt=0)
    target_frequency: int = Field(default=1, ge=1)
    scoring_kind: ScoringKind = ScoringKind.LINEAR_POSITIVE_CAPPED


class RuleUpdateRequest(BaseModel):
    weight: float | None = Field(default=None, gt=0)
    target_frequency: int | None = Field(default=None, ge=1)
    scoring_kind: ScoringKind | None = None


class RuleView(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    habit_id: int
    weight: float
    target_frequency: int
    scoring_kind: ScoringKind
    habit: HabitRef | None = None


class SchemeView(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str
    is_active: bool
    created_at: datetime | None = None
    rules: list[RuleView] = Field(default_factory=list)
