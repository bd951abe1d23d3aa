"""
Cadence Planner: Strategy Composition.

Strategies refine an already valid schedule (compaction, rebalancing)
without re-running the backtracking search. A strategy returns a new
schedule, or None when it has nothing to change.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Protocol

from src.core.constraints import satisfies_all
from src.data.models import Action, Activity, Repeatable, Schedule
from src.data.ranges import DateTimeRange

logger = logging.getLogger(__name__)


class Strategy(Protocol):
    """Abstract refinement step over a schedule."""

    def apply(self, schedule: Schedule) -> Schedule | None: ...


@dataclass
class FixedPoint:
    """Apply `strategy` until the schedule stops changing.

    Stops when the strategy declines (returns None) or returns a schedule
    structurally equal to its input. Always returns a schedule.
    `max_rounds` guards against strategies that never converge.
    """

    strategy: Strategy
    max_rounds: int = 1000

    def apply(self, schedule: Schedule) -> Schedule | None:
        current = schedule
        for _ in range(self.max_rounds):
            refined = self.strategy.apply(current.copy())
            if refined is None or refined == current:
                return current
            current = refined
        logger.warning("FixedPoint stopped after %d rounds without converging", self.max_rounds)
        return current


@dataclass
class Pair:
    """Run `first`, then `second` on its result; None if either declines."""

    first: Strategy
    second: Strategy

    def apply(self, schedule: Schedule) -> Schedule | None:
        intermediate = self.first.apply(schedule)
        if intermediate is None:
            return None
        return self.second.apply(intermediate)


class MergeAdjacent:
    """Merge one pair of touching blocks of a repeatable activity.

    Back-to-back blocks (one ends exactly when the next starts) become a
    single block, provided the merged block still satisfies the activity's
    constraints. Habits are never merged: that would change their
    occurrence count. Wrap in FixedPoint to merge everything.
    """

    def __init__(self, activities: list[Activity]) -> None:
        self._activities = {
            a.id: a for a in activities if isinstance(a.kind, Repeatable)
        }

    def apply(self, schedule: Schedule) -> Schedule | None:
        for activity_id, actions in schedule.actions.items():
            activity = self._activities.get(activity_id)
            if activity is None:
                continue
            for i in range(len(actions) - 1):
                first, second = actions[i], actions[i + 1]
                if first.end != second.start:
                    continue
                merged = Action(
                    range=DateTimeRange(first.start, second.end),
                    activity_id=activity_id,
                )
                others = actions[:i] + actions[i + 2:]
                if not satisfies_all(activity.constraints, merged, others):
                    continue

                result = schedule.copy()
                result.actions[activity_id] = actions[:i] + [merged] + actions[i + 2:]
                logger.debug(
                    "Merged %s and %s for '%s'",
                    first.range, second.range, activity.description,
                )
                return result
        return None
