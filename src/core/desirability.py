"""
Cadence Planner: Desirability Materializer.

A user ranks the hours of each weekday by how willing they are to spend
them (rank 0 = most desirable). Materializing that weekly map over a
cycle turns it into concrete, chronologically sorted datetime windows
per rank, which is what the scheduler actually searches.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Callable, Iterator

from src.data.models import Cycle, Weekday
from src.data.ranges import DateTimeRange, TimeRange
from src.errors import MissingDesirability

logger = logging.getLogger(__name__)

# weekday -> rank buckets (index 0 = most desirable) of disjoint clock windows
WeeklyDesirabilityMap = dict[Weekday, list[list[TimeRange]]]

WeekdayFilter = Callable[[Weekday], bool]

_WEEKENDS = frozenset({Weekday.SATURDAY, Weekday.SUNDAY})


def all_days(weekday: Weekday) -> bool:
    return True


def weekdays(weekday: Weekday) -> bool:
    return weekday not in _WEEKENDS


def weekends(weekday: Weekday) -> bool:
    return weekday in _WEEKENDS


@dataclass
class DesirabilityIndex:
    """Concrete candidate windows grouped by rank, each rank sorted in time."""

    ranks: list[list[DateTimeRange]] = field(default_factory=list)

    def candidates(self) -> Iterator[tuple[int, DateTimeRange]]:
        """Yield (rank, window) pairs: rank 0 first, chronological within a rank."""
        for rank, windows in enumerate(self.ranks):
            for window in windows:
                yield rank, window

    def __len__(self) -> int:
        return sum(len(windows) for windows in self.ranks)


def default_weekly_map(
    day_start: str | None = None,
    day_end: str | None = None,
) -> WeeklyDesirabilityMap:
    """Every weekday equally desirable between day_start and day_end.

    Defaults come from settings (07:00-22:00 out of the box).
    """
    if day_start is None or day_end is None:
        from src.config import settings

        day_start = day_start or settings.DAY_START
        day_end = day_end or settings.DAY_END

    window = TimeRange.parse(day_start, day_end)
    return {weekday: [[window]] for weekday in Weekday}


def materialize(
    weekly: WeeklyDesirabilityMap,
    cycle: Cycle,
    include: WeekdayFilter = all_days,
) -> DesirabilityIndex:
    """Materialize a weekly map over every included day of the cycle.

    Raises:
        MissingDesirability: an included weekday has no entry in `weekly`.
    """
    ranks: list[list[DateTimeRange]] = []
    for day in cycle.days():
        weekday = Weekday.of(day)
        if not include(weekday):
            continue
        if weekday not in weekly:
            raise MissingDesirability(weekday.name.capitalize())

        for rank, time_ranges in enumerate(weekly[weekday]):
            while len(ranks) <= rank:
                ranks.append([])
            ranks[rank].extend(DateTimeRange.on(day, tr) for tr in time_ranges)

    for windows in ranks:
        windows.sort()

    logger.debug(
        "Materialized %d windows in %d ranks over %s",
        sum(len(w) for w in ranks), len(ranks), cycle,
    )
    return DesirabilityIndex(ranks=ranks)


def all_in_cycle(cycle: Cycle, weekly: WeeklyDesirabilityMap) -> DesirabilityIndex:
    return materialize(weekly, cycle, all_days)


def weekdays_in_cycle(cycle: Cycle, weekly: WeeklyDesirabilityMap) -> DesirabilityIndex:
    return materialize(weekly, cycle, weekdays)


def weekends_in_cycle(cycle: Cycle, weekly: WeeklyDesirabilityMap) -> DesirabilityIndex:
    return materialize(weekly, cycle, weekends)
