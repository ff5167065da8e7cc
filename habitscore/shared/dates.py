"""Monday-aligned week helpers."""

from datetime import date, timedelta

DAYS_PER_WEEK = 7


def week_start_of(day: date) -> date:
    """Return the Monday on or before ``day``."""
    return day - timedelta(days=day.weekday())


def week_end_of(week_start: date) -> date:
    """Last day (Sunday) of the week starting at ``week_start``."""
    return week_start + timedelta(days=DAYS_PER_WEEK - 1)


def is_week_start(day: date) -> bool:
    return day.weekday() == 0


def recent_week_starts(today: date, weeks: int) -> list[date]:
    """Mondays of the last ``weeks`` weeks, oldest first, ending with this week."""
    current = week_start_of(today)
    return [current - timedelta(weeks=offset) for offset in range(weeks - 1, -1, -1)]
