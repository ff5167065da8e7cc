"""Weekly scoring domain."""

from .calculator import WeeklyScoreCalculator, score_max, weekly_completions
from .config import ScoringConfig, default_config
from .models import (
    DayRecordInput,
    EntryInput,
    HabitRef,
    HabitScore,
    ScoringKind,
    ScoringRule,
    ValueKind,
    WeeklyScores,
)

__all__ = [
    "DayRecordInput",
    "EntryInput",
    "HabitRef",
    "HabitScore",
    "ScoringConfig",
    "ScoringKind",
    "ScoringRule",
    "ValueKind",
    "WeeklyScoreCalculator",
    "WeeklyScores",
    "default_config",
    "score_max",
    "weekly_completions",
]
