"""Goal aggregates."""

from typing import Iterable

from src.models.app_data import Goal, GoalCategory


def goals_in_category(goals: Iterable[Goal], category: GoalCategory) -> list[Goal]:
    return [g for g in goals if g.category == category]


def completion_rate(goals: Iterable[Goal]) -> float:
    """Share of goals that are done, 0.0 for an empty list."""
    goals = list(goals)
    if not goals:
        return 0.0
    return sum(1 for g in goals if g.is_done) / len(goals)
