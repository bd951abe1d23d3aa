"""Placement constraints.

A constraint is a pure predicate over a candidate action and the actions
already placed for the same activity. An activity may carry several;
a candidate is accepted only if all of them hold.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime, time, timedelta
from typing import Iterable, Protocol

from src.data.models import Action, Weekday
from src.data.ranges import TimeRange


class Constraint(Protocol):
    """Abstract constraint interface used by the scheduler."""

    def is_satisfied(self, candidate: Action, placed: list[Action]) -> bool: ...


@dataclass(frozen=True)
class TimeSlot:
    """Placement must fall within a clock window on a specific weekday."""

    weekday: Weekday
    window: TimeRange

    def is_satisfied(self, candidate: Action, placed: list[Action]) -> bool:
        start, end = candidate.start, candidate.end
        if Weekday.of(start.date()) != self.weekday or end.date() != start.date():
            return False
        return self.window.start <= start.time() and end.time() <= self.window.end


@dataclass(frozen=True)
class MinimumSession:
    """Every placed action must individually last at least `duration`."""

    duration: timedelta

    def is_satisfied(self, candidate: Action, placed: list[Action]) -> bool:
        return candidate.duration() >= self.duration


@dataclass(frozen=True)
class TimeOfDay:
    """Placement must start exactly at `time` and last exactly `duration`."""

    time: time
    duration: timedelta

    def is_satisfied(self, candidate: Action, placed: list[Action]) -> bool:
        return (
            candidate.start.time() == self.time
            and candidate.duration() == self.duration
        )


def satisfies_all(
    constraints: Iterable[Constraint], candidate: Action, placed: list[Action]
) -> bool:
    """Logical AND of every constraint (True when there are none)."""
    return all(c.is_satisfied(candidate, placed) for c in constraints)


def pinned_starts(constraints: Iterable[Constraint], day: date) -> list[datetime]:
    """Start moments on `day` that a TimeOfDay constraint pins.

    The scheduler tries these even when they fall off its slot grid.
    """
    return sorted(
        {datetime.combine(day, c.time) for c in constraints if isinstance(c, TimeOfDay)}
    )


def pinned_durations(constraints: Iterable[Constraint]) -> list[timedelta]:
    """Block lengths a TimeOfDay constraint pins, longest first."""
    return sorted(
        {c.duration for c in constraints if isinstance(c, TimeOfDay)}, reverse=True
    )
