"""
Cadence Planner: Interval Algebra.

Half-open [start, end) ranges over clock times, datetimes and dates.
Everything above this module (materializer, scheduler, audit) reasons
about time through these value types.

No I/O: this module only transforms data.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime, time, timedelta
from typing import Iterable, Iterator

from src.errors import InvalidRange


@dataclass(frozen=True, order=True)
class _Range:
    """Shared half-open range behaviour; subclasses fix the bound type."""

    start: object
    end: object

    def __post_init__(self) -> None:
        if not self.start < self.end:
            raise InvalidRange(self.start, self.end)

    def overlaps(self, other: _Range) -> bool:
        """True iff the two ranges share at least one instant."""
        return max(self.start, other.start) < min(self.end, other.end)

    def contains(self, other: _Range) -> bool:
        """True iff `other` lies entirely within this range (reflexive)."""
        return self.start <= other.start and self.end >= other.end


@dataclass(frozen=True, order=True)
class TimeRange(_Range):
    """A clock-time window within a single day, e.g. 07:00-22:00."""

    start: time
    end: time

    def duration(self) -> timedelta:
        anchor = date(2000, 1, 3)  # arbitrary date for time math
        return datetime.combine(anchor, self.end) - datetime.combine(anchor, self.start)

    def shift_to(self, new_start: time) -> TimeRange:
        anchor = date(2000, 1, 3)
        new_end = datetime.combine(anchor, new_start) + self.duration()
        if new_end.date() != anchor:
            raise InvalidRange(new_start, new_end.time())
        return TimeRange(new_start, new_end.time())

    @classmethod
    def parse(cls, start: str, end: str) -> TimeRange:
        """Build from two "HH:MM" strings."""
        return cls(
            datetime.strptime(start, "%H:%M").time(),
            datetime.strptime(end, "%H:%M").time(),
        )

    def __str__(self) -> str:
        return f"{self.start:%H:%M}-{self.end:%H:%M}"


@dataclass(frozen=True, order=True)
class DateTimeRange(_Range):
    """A concrete span of time, e.g. 2023-01-16 07:00 to 2023-01-16 07:15."""

    start: datetime
    end: datetime

    @classmethod
    def on(cls, day: date, window: TimeRange) -> DateTimeRange:
        """Pair a date with a clock window."""
        return cls(datetime.combine(day, window.start), datetime.combine(day, window.end))

    @classmethod
    def starting_at(cls, start: datetime, duration: timedelta) -> DateTimeRange:
        return cls(start, start + duration)

    def duration(self) -> timedelta:
        return self.end - self.start

    def shift_to(self, new_start: datetime) -> DateTimeRange:
        return DateTimeRange(new_start, new_start + self.duration())

    def intersection(self, other: DateTimeRange) -> DateTimeRange | None:
        """Return the shared span, or None if the ranges don't overlap."""
        if not self.overlaps(other):
            return None
        return DateTimeRange(max(self.start, other.start), min(self.end, other.end))

    def __str__(self) -> str:
        if self.start.date() == self.end.date():
            return f"{self.start:%Y-%m-%d %H:%M}-{self.end:%H:%M}"
        return f"{self.start:%Y-%m-%d %H:%M} to {self.end:%Y-%m-%d %H:%M}"


@dataclass(frozen=True, order=True)
class DateRange(_Range):
    """A span of whole days; `end` is the first day NOT included."""

    start: date
    end: date

    def duration(self) -> timedelta:
        return self.end - self.start

    def shift_to(self, new_start: date) -> DateRange:
        return DateRange(new_start, new_start + self.duration())

    def days(self) -> Iterator[date]:
        """Iterate every date in the range, in order."""
        d = self.start
        while d < self.end:
            yield d
            d += timedelta(days=1)

    def to_datetime_range(self) -> DateTimeRange:
        """Midnight of `start` up to midnight of `end`."""
        return DateTimeRange(
            datetime.combine(self.start, time.min),
            datetime.combine(self.end, time.min),
        )

    def __str__(self) -> str:
        return f"{self.start.isoformat()}..{self.end.isoformat()}"


def subtract(
    window: DateTimeRange, blockers: Iterable[DateTimeRange]
) -> list[DateTimeRange]:
    """Return the free parts of `window` after removing every blocker.

    The result is sorted chronologically and contains no empty ranges.
    """
    free: list[DateTimeRange] = []
    cursor = window.start
    for b in sorted(b for b in blockers if b.overlaps(window)):
        if b.start > cursor:
            free.append(DateTimeRange(cursor, b.start))
        cursor = max(cursor, b.end)
        if cursor >= window.end:
            return free
    if cursor < window.end:
        free.append(DateTimeRange(cursor, window.end))
    return free
