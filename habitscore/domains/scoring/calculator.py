"""Weekly score calculator.

Turns a scheme's weighted habit rules and one week of daily records into
per-habit and total scores. Each rule owns a share of the 100-point total
proportional to its weight (``score_max``); the rule earns that share in
proportion to completions against its weekly target, capped at the target.

The calculator is pure: no I/O, no clock, no mutation of its inputs.
"""

from collections.abc import Iterable, Sequence

from .config import ScoringConfig, default_config
from .models import DayRecordInput, HabitScore, ScoringRule, WeeklyScores


def _clamp(value: float, lo: float, hi: float) -> float:
    return max(lo, min(hi, value))


def score_max(rule: ScoringRule, rules: Sequence[ScoringRule], ceiling: float = 100.0) -> float:
    """Share of the total this rule can earn. 0 when the scheme's weights sum to 0."""
    total_weight = sum(r.weight for r in rules)
    if total_weight == 0:
        return 0.0
    return rule.weight / total_weight * ceiling


def weekly_completions(records: Iterable[DayRecordInput], habit_id: int) -> int:
    """Count days whose entry for ``habit_id`` is explicitly completed.

    Numeric values are not counted. A day without an entry counts as not
    completed.
    """
    count = 0
    for record in records:
        if any(e.habit_id == habit_id and e.completed is True for e in record.entries):
            count += 1
    return count


class WeeklyScoreCalculator:
    """Computes weekly scores under the linear, capped scoring mode."""

    def __init__(self, config: ScoringConfig | None = None) -> None:
        self._config = config or default_config

    def score(
        self,
        rules: Sequence[ScoringRule],
        week_records: Sequence[DayRecordInput],
    ) -> WeeklyScores:
        cfg = self._config

        if not rules:
            return WeeklyScores(scoring_version=cfg.scoring_version)

        per_habit: list[HabitScore] = []
        for rule in rules:
            completions = weekly_completions(week_records, rule.habit_id)
            target = max(rule.target_frequency or cfg.min_target, cfg.min_target)
            cap = score_max(rule, rules, cfg.score_ceiling)
            ratio = min(completions / target, 1.0)

            per_habit.append(
                HabitScore(
                    habit_id=rule.habit_id,
                    habit_name=rule.habit.name if rule.habit else "",
                    weekly_completions=completions,
                    target=target,
                    score_max=cap,
                    ratio=ratio,
                    weekly_score=ratio * cap,
                    points_per_completion=cap / target,
                )
            )

        total = sum(hs.weekly_score for hs in per_habit)

        return WeeklyScores(
            per_habit=per_habit,
            # Shares sum to the ceiling; clamp only guards float drift
            total=_clamp(total, 0.0, cfg.score_ceiling),
            max_among_habits=max((hs.score_max for hs in per_habit), default=0.0),
            scoring_version=cfg.scoring_version,
        )
