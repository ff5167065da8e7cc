"""Unit tests for the weekly score calculator."""

import pytest

from habitscore.domains.scoring import (
    DayRecordInput,
    EntryInput,
    HabitRef,
    ScoringConfig,
    ScoringRule,
    WeeklyScoreCalculator,
    score_max,
    weekly_completions,
)


def _rule(habit_id: int, weight: float, target: int = 1, name: str = "") -> ScoringRule:
    return ScoringRule(
        habit_id=habit_id,
        weight=weight,
        target_frequency=target,
        habit=HabitRef(id=habit_id, name=name or f"habit-{habit_id}"),
    )


def _week(completions: dict[int, int], days: int = 7) -> list[DayRecordInput]:
    """Days where habit ``h`` is completed on the first ``completions[h]`` days."""
    return [
        DayRecordInput(
            entries=[
                EntryInput(habit_id=h, completed=day < count) for h, count in completions.items()
            ]
        )
        for day in range(days)
    ]


@pytest.fixture
def calculator() -> WeeklyScoreCalculator:
    return WeeklyScoreCalculator()


class TestScoreMax:
    def test_shares_proportional_to_weight(self):
        rules = [_rule(1, 30), _rule(2, 70)]
        assert score_max(rules[0], rules) == pytest.approx(30.0)
        assert score_max(rules[1], rules) == pytest.approx(70.0)

    def test_shares_sum_to_ceiling(self):
        rules = [_rule(1, 3), _rule(2, 5), _rule(3, 11)]
        assert sum(score_max(r, rules) for r in rules) == pytest.approx(100.0)

    def test_zero_total_weight(self):
        rules = [_rule(1, 0), _rule(2, 0)]
        assert score_max(rules[0], rules) == 0.0


class TestWeeklyCompletions:
    def test_counts_only_explicit_completions(self):
        records = [
            DayRecordInput(entries=[EntryInput(habit_id=1, completed=True)]),
            DayRecordInput(entries=[EntryInput(habit_id=1, completed=False)]),
            DayRecordInput(entries=[EntryInput(habit_id=1, completed=None)]),
            DayRecordInput(entries=[]),
        ]
        assert weekly_completions(records, 1) == 1

    def test_numeric_values_not_counted(self):
        records = [DayRecordInput(entries=[EntryInput(habit_id=1, value=5.0)])]
        assert weekly_completions(records, 1) == 0


class TestWeeklyScoreCalculator:
    def test_mixed_targets(self, calculator):
        rules = [_rule(1, 30, target=3), _rule(2, 70, target=7)]
        result = calculator.score(rules, _week({1: 3, 2: 0}))

        by_habit = result.by_habit()
        assert by_habit[1].score_max == pytest.approx(30.0)
        assert by_habit[2].score_max == pytest.approx(70.0)
        assert by_habit[2].weekly_score == 0.0
        assert result.total == pytest.approx(30.0)

    def test_partial_completion(self, calculator):
        rules = [_rule(1, 10, target=2), _rule(2, 10, target=4)]
        result = calculator.score(rules, _week({1: 1, 2: 0}))

        habit = result.by_habit()[1]
        assert habit.score_max == pytest.approx(50.0)
        assert habit.ratio == pytest.approx(0.5)
        assert habit.weekly_score == pytest.approx(25.0)
        assert habit.points_per_completion == pytest.approx(25.0)
        assert result.total == pytest.approx(25.0)

    def test_empty_rules(self, calculator):
        result = calculator.score([], _week({1: 7}))
        assert result.total == 0.0
        assert result.per_habit == []
        assert result.max_among_habits == 0.0

    def test_zero_total_weight(self, calculator):
        rules = [_rule(1, 0, target=1), _rule(2, 0, target=2)]
        result = calculator.score(rules, _week({1: 7, 2: 7}))
        assert result.total == 0.0
        assert all(h.weekly_score == 0.0 for h in result.per_habit)

    def test_completions_above_target_are_capped(self, calculator):
        rules = [_rule(1, 1, target=2)]
        result = calculator.score(rules, _week({1: 6}))
        assert result.per_habit[0].weekly_completions == 6
        assert result.per_habit[0].ratio == 1.0
        assert result.total == pytest.approx(100.0)

    def test_full_week_reaches_ceiling(self, calculator):
        rules = [_rule(1, 1, target=7), _rule(2, 2, target=7), _rule(3, 4, target=7)]
        result = calculator.score(rules, _week({1: 7, 2: 7, 3: 7}))
        assert result.total == pytest.approx(100.0)
        assert 0.0 <= result.total <= 100.0

    def test_missing_entries_count_as_not_completed(self, calculator):
        rules = [_rule(1, 1, target=2), _rule(2, 1, target=2)]
        records = [DayRecordInput(entries=[EntryInput(habit_id=1, completed=True)])]
        result = calculator.score(rules, records)
        assert result.by_habit()[2].weekly_completions == 0
        assert result.total == pytest.approx(25.0)

    def test_target_below_floor_uses_min_target(self):
        calculator = WeeklyScoreCalculator(ScoringConfig(min_target=2))
        rules = [_rule(1, 1, target=1)]
        result = calculator.score(rules, _week({1: 1}))
        assert result.per_habit[0].target == 2
        assert result.total == pytest.approx(50.0)

    def test_idempotent_and_input_untouched(self, calculator):
        rules = [_rule(1, 30, target=3), _rule(2, 70, target=7)]
        records = _week({1: 2, 2: 5})
        snapshot = [r.model_copy(deep=True) for r in records]

        first = calculator.score(rules, records)
        second = calculator.score(rules, records)

        assert first == second
        assert records == snapshot

    def test_habit_names_and_version_reported(self, calculator):
        rules = [_rule(1, 1, target=1, name="reading")]
        result = calculator.score(rules, _week({1: 1}))
        assert result.per_habit[0].habit_name == "reading"
        assert result.scoring_version == "weekly-linear-v1"
        assert result.max_among_habits == pytest.approx(100.0)


class TestScoringConfig:
    def test_defaults(self):
        config = ScoringConfig()
        assert config.score_ceiling == 100.0
        assert config.min_target == 1

    def test_from_env(self, monkeypatch):
        monkeypatch.setenv("SCORING_MIN_TARGET", "3")
        monkeypatch.setenv("SCORING_VERSION", "weekly-linear-v2")
        config = ScoringConfig.from_env()
        assert config.min_target == 3
        assert config.scoring_version == "weekly-linear-v2"

    def test_rejects_invalid_values(self, monkeypatch):
        with pytest.raises(ValueError):
            ScoringConfig(score_ceiling=0)
        monkeypatch.setenv("SCORING_MIN_TARGET", "0")
        with pytest.raises(ValueError):
            ScoringConfig.from_env()
