"""
Cadence Planner: Usage/Goal Register.

Answers "is activity X meeting its goal at moment M?". Usage is
accumulated into buckets per time unit, counted from a fixed epoch.
Minutes to weeks are fixed-length buckets; months and years follow the
calendar, so every moment in the same calendar month shares a bucket no
matter how many days the month has.

Registers are independent of any Schedule: they grow only when real
occurrences are committed. A register is single-writer; callers that add
from several threads must serialize access themselves.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import TYPE_CHECKING, Iterable

from src.data.models import Action, Activity, ActivityId, Goal, GoalId, TimeUnit

if TYPE_CHECKING:
    from src.ports.usage_port import UsageStore

logger = logging.getLogger(__name__)

_FIXED_LENGTHS: dict[TimeUnit, timedelta] = {
    TimeUnit.MINUTES: timedelta(minutes=1),
    TimeUnit.HOURS: timedelta(hours=1),
    TimeUnit.DAYS: timedelta(days=1),
    TimeUnit.WEEKS: timedelta(weeks=1),
}


@dataclass
class UsageRegister:
    """Append-only usage buckets for one (activity, goal) pair."""

    epoch: datetime
    buckets: dict[TimeUnit, dict[int, int]] = field(default_factory=dict)

    def index(self, moment: datetime, unit: TimeUnit) -> int:
        """Bucket index of `moment` for `unit`, relative to the epoch.

        Raises ValueError for moments before the epoch.
        """
        if moment < self.epoch:
            raise ValueError(f"{moment.isoformat()} is before the register epoch")

        if unit in _FIXED_LENGTHS:
            return (moment - self.epoch) // _FIXED_LENGTHS[unit]
        if unit is TimeUnit.MONTHS:
            return 12 * (moment.year - self.epoch.year) + (moment.month - self.epoch.month)
        return moment.year - self.epoch.year

    def add(self, moment: datetime, unit: TimeUnit, quantity: int) -> None:
        i = self.index(moment, unit)
        per_unit = self.buckets.setdefault(unit, {})
        per_unit[i] = per_unit.get(i, 0) + quantity

    def get(self, moment: datetime, unit: TimeUnit) -> int | None:
        """Accumulated quantity in the bucket of `moment`, or None if empty."""
        return self.buckets.get(unit, {}).get(self.index(moment, unit))

    def is_meeting(self, goal: Goal, moment: datetime) -> bool:
        """True iff the bucket of `moment` lies within [at_least, ideal].

        False when nothing has been recorded in that bucket yet. Raises
        ValueError when `moment` precedes the epoch, like `index`.
        """
        value = self.get(moment, goal.unit)
        if value is None:
            return False
        at_least = goal.at_least.quantity if goal.at_least is not None else 0
        return at_least <= value <= goal.ideal.quantity


def is_meeting_all(
    entries: Iterable[tuple[Activity, Goal, UsageRegister]], moment: datetime
) -> bool:
    """True iff every (activity, goal, register) triple meets its goal."""
    return all(register.is_meeting(goal, moment) for _, goal, register in entries)


class GoalKeeper:
    """Owns one usage register per (activity, goal) pair.

    Committed actions are added to the register of the activity's goal and,
    when a store is configured, written through to it.
    """

    def __init__(self, epoch: datetime, store: UsageStore | None = None) -> None:
        self._epoch = epoch
        self._store = store
        self._registers: dict[tuple[ActivityId, GoalId], UsageRegister] = {}

    def register_for(self, activity: Activity, goal: Goal) -> UsageRegister:
        """Return the register of (activity, goal), loading or creating it."""
        key = (activity.id, goal.id)
        if key not in self._registers:
            if self._store is not None:
                register = self._store.load_register(activity.id, goal.id, self._epoch)
            else:
                register = UsageRegister(epoch=self._epoch)
            self._registers[key] = register
        return self._registers[key]

    def commit(self, activity: Activity, action: Action, quantity: int = 1) -> None:
        """Record a real occurrence of `activity` against its goal.

        Activities without a goal are not tracked.
        """
        goal = activity.goal
        if goal is None:
            logger.debug("'%s' has no goal, usage not tracked", activity.description)
            return

        register = self.register_for(activity, goal)
        register.add(action.start, goal.unit, quantity)
        if self._store is not None:
            self._store.add_usage(activity.id, goal.id, action.start, goal.unit, quantity)
        logger.debug(
            "Committed %d to '%s' at %s (%s)",
            quantity, activity.description, action.start.isoformat(), goal.unit.name,
        )

    def entries(
        self, activities: Iterable[Activity]
    ) -> list[tuple[Activity, Goal, UsageRegister]]:
        """(activity, goal, register) triples for every goal-carrying activity."""
        return [
            (a, a.goal, self._registers.get((a.id, a.goal.id)))
            for a in activities
            if a.goal is not None
        ]

    def is_meeting_all(self, activities: Iterable[Activity], moment: datetime) -> bool:
        """True iff every goal-carrying activity meets its goal at `moment`.

        Activities without a goal are ignored; a goal with no register yet
        is not being met.
        """
        entries = self.entries(activities)
        if any(register is None for _, _, register in entries):
            return False
        return is_meeting_all(entries, moment)
