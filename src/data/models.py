"""
Cadence Planner: Data Models.

Activities (habits and repeatables), the cycles they are planned into,
the actions the scheduler places, and the goals usage is measured against.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime, timedelta
from enum import Enum, IntEnum
from typing import TYPE_CHECKING, Iterator, Union
from uuid import UUID, uuid4

from src.data.ranges import DateRange, DateTimeRange
from src.errors import GoalUnitMismatch, NoCycleConfigured, UnitMismatch

if TYPE_CHECKING:
    from src.core.constraints import Constraint
    from src.core.desirability import DesirabilityIndex


# ---------------------------------------------------------------------------
# Time units and periods
# ---------------------------------------------------------------------------


class TimeUnit(IntEnum):
    """Granularity of a period, ordered from finest to coarsest."""

    MINUTES = 1
    HOURS = 2
    DAYS = 3
    WEEKS = 4
    MONTHS = 5
    YEARS = 6


@dataclass(frozen=True)
class Period:
    """A quantity of some time unit, e.g. 3 per WEEKS."""

    quantity: int
    unit: TimeUnit

    def __post_init__(self) -> None:
        if self.quantity < 0:
            raise ValueError(f"Period quantity must not be negative: {self.quantity}")

    def same_unit(self, other: Period) -> None:
        """Raise UnitMismatch unless both periods use the same unit."""
        if self.unit != other.unit:
            raise UnitMismatch(
                f"Cannot combine {self.unit.name} with {other.unit.name}"
            )

    def __lt__(self, other: Period) -> bool:
        self.same_unit(other)
        return self.quantity < other.quantity

    def __le__(self, other: Period) -> bool:
        self.same_unit(other)
        return self.quantity <= other.quantity

    def __gt__(self, other: Period) -> bool:
        self.same_unit(other)
        return self.quantity > other.quantity

    def __ge__(self, other: Period) -> bool:
        self.same_unit(other)
        return self.quantity >= other.quantity


@dataclass(frozen=True)
class GoalId:
    value: UUID = field(default_factory=uuid4)


@dataclass(frozen=True)
class Goal:
    """A target usage range for an activity.

    Both `at_least` and `ideal` must be in the same time unit; the unit
    also selects the usage bucket the goal is evaluated against.
    """

    ideal: Period
    at_least: Period | None = None
    id: GoalId = field(default_factory=GoalId)

    def __post_init__(self) -> None:
        if self.at_least is not None and self.at_least.unit != self.ideal.unit:
            raise GoalUnitMismatch(
                f"Goal at_least is in {self.at_least.unit.name} "
                f"but ideal is in {self.ideal.unit.name}"
            )

    @property
    def unit(self) -> TimeUnit:
        return self.ideal.unit


# ---------------------------------------------------------------------------
# Calendar
# ---------------------------------------------------------------------------


class Weekday(IntEnum):
    """Day of week, numbered like date.weekday()."""

    MONDAY = 0
    TUESDAY = 1
    WEDNESDAY = 2
    THURSDAY = 3
    FRIDAY = 4
    SATURDAY = 5
    SUNDAY = 6

    @classmethod
    def of(cls, day: date) -> Weekday:
        return cls(day.weekday())


@dataclass(frozen=True)
class Cycle:
    """One bounded planning horizon."""

    range: DateRange

    @classmethod
    def from_duration(cls, start: date, duration: timedelta) -> Cycle:
        """Build a cycle of `duration` whole days starting at `start`."""
        return cls(DateRange(start, start + timedelta(days=duration.days)))

    @property
    def start(self) -> date:
        return self.range.start

    @property
    def end(self) -> date:
        return self.range.end

    def days(self) -> Iterator[date]:
        return self.range.days()

    def contains(self, moment: date | datetime) -> bool:
        if isinstance(moment, datetime):
            moment = moment.date()
        return self.range.start <= moment < self.range.end

    def bounds(self) -> DateTimeRange:
        return self.range.to_datetime_range()

    def __str__(self) -> str:
        return f"cycle {self.range}"


@dataclass
class Cycles:
    """Configured planning horizons plus globally excluded break periods."""

    cycles: list[Cycle] = field(default_factory=list)
    breaks: list[DateRange] = field(default_factory=list)

    def first(self) -> Cycle:
        if not self.cycles:
            raise NoCycleConfigured("No cycles are configured")
        return min(self.cycles, key=lambda c: c.start)

    def current(self, on: date) -> Cycle:
        """Return the cycle covering `on`."""
        for cycle in self.cycles:
            if cycle.contains(on):
                return cycle
        raise NoCycleConfigured(f"No cycle covers {on.isoformat()}")


# ---------------------------------------------------------------------------
# Activities
# ---------------------------------------------------------------------------


class Interval(Enum):
    """Scope in which occurrence counts and duration budgets reset."""

    WEEKLY = "weekly"
    DAILY = "daily"
    PER_CYCLE = "per_cycle"


@dataclass
class Habit:
    """A fixed number of fixed-length occurrences per interval.

    e.g. "clean the litter box, 15 minutes, once a day".
    """

    duration: timedelta
    times: int
    interval: Interval
    desirability: DesirabilityIndex

    def __post_init__(self) -> None:
        if self.duration <= timedelta(0):
            raise ValueError("Habit duration must be positive")
        if self.times < 1:
            raise ValueError("Habit must occur at least once per interval")


@dataclass
class Repeatable:
    """A flexible cumulative duration per interval.

    e.g. "study, at least 5h, ideally 7h, at most 10h a day".
    """

    desirable: timedelta
    interval: Interval
    desirability: DesirabilityIndex
    minimum: timedelta | None = None
    maximum: timedelta | None = None

    def __post_init__(self) -> None:
        if self.desirable <= timedelta(0):
            raise ValueError("Repeatable desirable duration must be positive")
        if self.minimum is not None and self.minimum > self.desirable:
            raise ValueError("Repeatable minimum exceeds desirable duration")
        if self.maximum is not None and self.maximum < self.desirable:
            raise ValueError("Repeatable maximum is below desirable duration")


Kind = Union[Habit, Repeatable]


@dataclass(frozen=True)
class ActivityId:
    value: UUID = field(default_factory=uuid4)

    def __str__(self) -> str:
        return str(self.value)[:8]


@dataclass(eq=False)
class Activity:
    """Something the user wants done regularly ("stuff").

    Identity is the id alone: two activities with the same id are the same
    activity even if their parameters differ.
    """

    description: str
    kind: Kind
    constraints: list[Constraint] = field(default_factory=list)
    goal: Goal | None = None
    id: ActivityId = field(default_factory=ActivityId)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Activity):
            return NotImplemented
        return self.id == other.id

    def __hash__(self) -> int:
        return hash(self.id)


# ---------------------------------------------------------------------------
# Scheduling output
# ---------------------------------------------------------------------------


@dataclass(frozen=True, order=True)
class Action:
    """One concrete placed occurrence of an activity."""

    range: DateTimeRange
    activity_id: ActivityId = field(compare=False)

    @property
    def start(self) -> datetime:
        return self.range.start

    @property
    def end(self) -> datetime:
        return self.range.end

    def duration(self) -> timedelta:
        return self.range.duration()

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Action):
            return NotImplemented
        return self.range == other.range and self.activity_id == other.activity_id

    def __hash__(self) -> int:
        return hash((self.range, self.activity_id))


@dataclass
class Schedule:
    """A cycle plus the ordered actions placed for each activity."""

    cycle: Cycle
    actions: dict[ActivityId, list[Action]] = field(default_factory=dict)
    warnings: list[str] = field(default_factory=list, compare=False)

    def for_activity(self, activity_id: ActivityId) -> list[Action]:
        return self.actions.get(activity_id, [])

    def all_actions(self) -> list[Action]:
        """Every action in the schedule, chronologically."""
        return sorted(a for acts in self.actions.values() for a in acts)

    def total_duration(self, activity_id: ActivityId) -> timedelta:
        return sum((a.duration() for a in self.for_activity(activity_id)), timedelta(0))

    def copy(self) -> Schedule:
        return Schedule(
            cycle=self.cycle,
            actions={aid: list(acts) for aid, acts in self.actions.items()},
            warnings=list(self.warnings),
        )
