"""
Cadence Planner: Backtracking Scheduler.

Places every activity of a cycle into concrete, non-overlapping actions.
The search is depth-first and desirability-greedy: activities are taken
in the order the caller supplies them, candidate windows are tried rank 0
first and chronologically within a rank, and when an activity can't be
placed the search undoes the most recent placement and tries its next
candidate.

The search runs on an explicit stack with an undo log, so large activity
lists never hit the interpreter's recursion limit, and it is bounded by a
step/time budget. No I/O: this module only transforms data.
"""

from __future__ import annotations

import logging
import time as _time
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Iterable, Iterator

from src.core.constraints import pinned_durations, pinned_starts, satisfies_all
from src.data.models import (
    Action,
    Activity,
    ActivityId,
    Cycle,
    Habit,
    Interval,
    Repeatable,
    Schedule,
)
from src.data.ranges import DateRange, DateTimeRange, subtract
from src.errors import InfeasibleActivity, NoValidSolutionFound, SearchBudgetExceeded

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Budget
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class SearchBudget:
    """Upper bound on one search: candidates examined and/or seconds spent.

    None disables that limit.
    """

    max_steps: int | None = None
    max_seconds: float | None = None

    @classmethod
    def from_settings(cls) -> SearchBudget:
        from src.config import settings

        return cls(
            max_steps=settings.SEARCH_MAX_STEPS,
            max_seconds=settings.SEARCH_MAX_SECONDS or None,
        )


# ---------------------------------------------------------------------------
# Placement tasks
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class Scope:
    """One reset window of an activity's interval, clipped to the cycle."""

    label: str
    bounds: DateTimeRange

    def __str__(self) -> str:
        return self.label


@dataclass(frozen=True)
class _Task:
    """One placement decision: a habit occurrence or a repeatable's budget."""

    activity: Activity
    scope: Scope
    occurrence: int = 0


def interval_scopes(cycle: Cycle, interval: Interval) -> list[Scope]:
    """Split the cycle into the reset windows of `interval`.

    Weekly scopes are consecutive 7-day chunks counted from the cycle start;
    the last one may be shorter.
    """
    if interval is Interval.PER_CYCLE:
        return [Scope(str(cycle), cycle.bounds())]

    if interval is Interval.DAILY:
        return [
            Scope(day.isoformat(), DateRange(day, day + timedelta(days=1)).to_datetime_range())
            for day in cycle.days()
        ]

    scopes: list[Scope] = []
    d = cycle.start
    while d < cycle.end:
        chunk_end = min(d + timedelta(weeks=1), cycle.end)
        scopes.append(Scope(f"week of {d.isoformat()}", DateRange(d, chunk_end).to_datetime_range()))
        d = chunk_end
    return scopes


def has_availability(
    activity: Activity, scope: Scope, breaks: list[DateTimeRange]
) -> bool:
    """True if the activity has any candidate time in the scope outside breaks."""
    for _, window in activity.kind.desirability.candidates():
        clipped = window.intersection(scope.bounds)
        if clipped is not None and subtract(clipped, breaks):
            return True
    return False


def _expand(
    cycle: Cycle, activities: list[Activity], breaks: list[DateTimeRange]
) -> list[_Task]:
    """Turn the ordered activity list into an ordered list of placement tasks."""
    tasks: list[_Task] = []
    for activity in activities:
        kind = activity.kind
        for scope in interval_scopes(cycle, kind.interval):
            if not has_availability(activity, scope, breaks):
                logger.debug("'%s' has no availability in %s, skipping", activity.description, scope)
                continue
            if isinstance(kind, Habit):
                tasks.extend(_Task(activity, scope, i) for i in range(kind.times))
            else:
                tasks.append(_Task(activity, scope))
    return tasks


# ---------------------------------------------------------------------------
# Branch state
# ---------------------------------------------------------------------------


@dataclass
class _Placement:
    actions: list[Action]
    warning: str | None = None


@dataclass
class _Workspace:
    """Mutable state of the current search branch, with an undo log."""

    cycle: Cycle
    breaks: list[DateTimeRange]
    log: list[_Placement] = field(default_factory=list)
    committed: list[Action] = field(default_factory=list)
    by_activity: dict[ActivityId, list[Action]] = field(default_factory=dict)

    @property
    def depth(self) -> int:
        return len(self.log)

    def place(self, placement: _Placement) -> None:
        self.log.append(placement)
        for action in placement.actions:
            self.committed.append(action)
            self.by_activity.setdefault(action.activity_id, []).append(action)

    def undo(self) -> None:
        placement = self.log.pop()
        for action in reversed(placement.actions):
            self.committed.pop()
            self.by_activity[action.activity_id].pop()

    def placed_for(self, activity_id: ActivityId) -> list[Action]:
        return list(self.by_activity.get(activity_id, []))

    def free_gaps(self, window: DateTimeRange) -> list[DateTimeRange]:
        """Parts of `window` not covered by a break or a committed action."""
        blockers = self.breaks + [a.range for a in self.committed]
        return subtract(window, blockers)

    def to_schedule(self, activities: list[Activity]) -> Schedule:
        actions = {a.id: sorted(self.by_activity.get(a.id, [])) for a in activities}
        warnings = [p.warning for p in self.log if p.warning]
        return Schedule(cycle=self.cycle, actions=actions, warnings=warnings)


# ---------------------------------------------------------------------------
# Candidate generation
# ---------------------------------------------------------------------------


def _ordered_gaps(task: _Task, ws: _Workspace, earliest: datetime) -> Iterator[DateTimeRange]:
    """Free gaps inside the task's scope, rank-first then chronological.

    A gap already yielded for a better rank is not yielded again.
    """
    seen: list[DateTimeRange] = []
    for _, window in task.activity.kind.desirability.candidates():
        clipped = window.intersection(task.scope.bounds)
        if clipped is None or clipped.end <= earliest:
            continue
        if clipped.start < earliest:
            clipped = DateTimeRange(earliest, clipped.end)
        for gap in ws.free_gaps(clipped):
            for fresh in subtract(gap, seen):
                seen.append(fresh)
                yield fresh


def _start_times(
    gap: DateTimeRange, duration: timedelta, step: timedelta, pinned: list[datetime]
) -> list[datetime]:
    starts = set()
    t = gap.start
    while t + duration <= gap.end:
        starts.add(t)
        t += step
    starts.update(p for p in pinned if gap.start <= p and p + duration <= gap.end)
    return sorted(starts)


def _habit_candidates(
    task: _Task, ws: _Workspace, step: timedelta
) -> Iterator[_Placement]:
    activity = task.activity
    habit: Habit = activity.kind
    placed = ws.placed_for(activity.id)

    # Occurrences within a scope are placed in chronological order
    earliest = task.scope.bounds.start
    if task.occurrence > 0 and placed:
        earliest = max(earliest, placed[-1].end)

    tried: set[datetime] = set()
    for gap in _ordered_gaps(task, ws, earliest):
        pinned = pinned_starts(activity.constraints, gap.start.date())
        for start in _start_times(gap, habit.duration, step, pinned):
            if start in tried:
                continue
            tried.add(start)
            action = Action(
                range=DateTimeRange.starting_at(start, habit.duration),
                activity_id=activity.id,
            )
            if satisfies_all(activity.constraints, action, placed):
                yield _Placement([action])


def _block_lengths(
    longest: timedelta, step: timedelta, pinned: list[timedelta]
) -> list[timedelta]:
    lengths = {longest}
    length = longest - step
    while length > timedelta(0):
        lengths.add(length)
        length -= step
    lengths.update(d for d in pinned if d < longest)
    return sorted(lengths, reverse=True)


def _fit_block(
    activity: Activity,
    gap: DateTimeRange,
    remaining: timedelta,
    placed: list[Action],
    step: timedelta,
) -> Action | None:
    """Earliest block inside `gap` that satisfies every constraint.

    Starts are tried on the slot grid plus pinned starts; at each start the
    longest block up to `remaining` is tried first, then shorter ones.
    """
    pinned = pinned_starts(activity.constraints, gap.start.date())
    durations = pinned_durations(activity.constraints)
    for start in _start_times(gap, timedelta(0), step, pinned):
        if start >= gap.end:
            break
        longest = min(remaining, gap.end - start)
        for length in _block_lengths(longest, step, durations):
            action = Action(
                range=DateTimeRange.starting_at(start, length),
                activity_id=activity.id,
            )
            if satisfies_all(activity.constraints, action, placed):
                return action
    return None


def _fill(
    activity: Activity,
    gaps: list[DateTimeRange],
    target: timedelta,
    placed: list[Action],
    step: timedelta,
) -> list[Action]:
    """Greedily fill gaps in order with contiguous blocks up to `target`."""
    blocks: list[Action] = []
    remaining = target
    for gap in gaps:
        cursor = gap.start
        while remaining > timedelta(0) and cursor < gap.end:
            block = _fit_block(
                activity, DateTimeRange(cursor, gap.end), remaining, placed + blocks, step,
            )
            if block is None:
                break
            blocks.append(block)
            remaining -= block.duration()
            cursor = block.end
        if remaining <= timedelta(0):
            break
    return blocks


def _shifted_gaps(
    activity: Activity, gaps: list[DateTimeRange], step: timedelta
) -> Iterator[list[DateTimeRange]]:
    """`gaps` with its earliest usable moment moved along the slot grid.

    The first list yielded is `gaps` unchanged. Each later one drops a longer
    prefix, so backtracking can push a plan away from the time a later
    activity needs.
    """
    yield gaps
    for i, gap in enumerate(gaps):
        pinned = pinned_starts(activity.constraints, gap.start.date())
        for start in _start_times(gap, timedelta(0), step, pinned):
            if start >= gap.end:
                break
            if i == 0 and start == gap.start:
                continue
            yield [DateTimeRange(start, gap.end)] + gaps[i + 1:]


def _repeatable_candidates(
    task: _Task, ws: _Workspace, step: timedelta
) -> Iterator[_Placement]:
    """Plans for one repeatable scope: reach `desirable`, else degrade to `minimum`.

    Without a minimum, a best-effort total short of `desirable` is still a
    valid plan; it carries a warning instead of failing. For each target the
    greedy fill comes first, then fills starting later in the scope.
    """
    activity = task.activity
    rep: Repeatable = activity.kind
    placed = ws.placed_for(activity.id)
    gaps = list(_ordered_gaps(task, ws, task.scope.bounds.start))
    capacity = sum((g.duration() for g in gaps), timedelta(0))
    floor = rep.minimum if rep.minimum is not None else timedelta(0)

    targets = [min(rep.desirable, capacity)]
    if rep.minimum is not None and rep.minimum < targets[0]:
        targets.append(rep.minimum)

    tried: set[tuple[Action, ...]] = set()
    for target in targets:
        if target < floor:
            continue
        for shifted in _shifted_gaps(activity, gaps, step):
            blocks = _fill(activity, shifted, target, placed, step)
            total = sum((b.duration() for b in blocks), timedelta(0))
            key = tuple(sorted(blocks))
            if total < floor or key in tried:
                continue
            tried.add(key)

            warning = None
            if total < rep.desirable:
                warning = (
                    f"'{activity.description}' got {total} of desirable "
                    f"{rep.desirable} in {task.scope}"
                )
            yield _Placement(blocks, warning)


def _candidates(task: _Task, ws: _Workspace, step: timedelta) -> Iterator[_Placement]:
    if isinstance(task.activity.kind, Habit):
        return _habit_candidates(task, ws, step)
    return _repeatable_candidates(task, ws, step)


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------


def schedule(
    cycle: Cycle,
    activities: list[Activity],
    breaks: Iterable[DateRange] = (),
    budget: SearchBudget | None = None,
) -> Schedule:
    """Plan every activity into the cycle without overlaps.

    Args:
        cycle: The planning horizon.
        activities: Activities in priority order; the engine never reorders them.
        breaks: Date ranges excluded from all availability.
        budget: Search bound; defaults to the configured one.

    Returns:
        A Schedule holding, per activity, its chronologically ordered actions.

    Raises:
        NoValidSolutionFound: every branch was exhausted. Chained to the
            InfeasibleActivity of the deepest placement that failed.
        SearchBudgetExceeded: the budget ran out first.
    """
    if budget is None:
        budget = SearchBudget.from_settings()

    from src.config import settings

    step = timedelta(minutes=settings.SLOT_STEP_MINUTES)
    break_ranges = sorted(b.to_datetime_range() for b in breaks)
    activities = list(activities)

    tasks = _expand(cycle, activities, break_ranges)
    ws = _Workspace(cycle=cycle, breaks=break_ranges)
    logger.info(
        "Scheduling %d activities (%d placements) into %s",
        len(activities), len(tasks), cycle,
    )
    if not tasks:
        return ws.to_schedule(activities)

    started = _time.monotonic()
    steps = 0
    deepest_failure = -1
    stack: list[Iterator[_Placement]] = [_candidates(tasks[0], ws, step)]

    while stack:
        level = len(stack) - 1
        if ws.depth > level:
            ws.undo()

        placement = next(stack[-1], None)
        if placement is None:
            stack.pop()
            deepest_failure = max(deepest_failure, level)
            task = tasks[level]
            logger.debug(
                "Backtracking: no candidate left for '%s' in %s",
                task.activity.description, task.scope,
            )
            continue

        steps += 1
        elapsed = _time.monotonic() - started
        if (budget.max_steps is not None and steps > budget.max_steps) or (
            budget.max_seconds is not None and elapsed > budget.max_seconds
        ):
            logger.warning("Search budget exceeded after %d steps", steps)
            raise SearchBudgetExceeded(steps, elapsed)

        ws.place(placement)
        if level + 1 == len(tasks):
            result = ws.to_schedule(activities)
            for warning in result.warnings:
                logger.warning("Best-effort placement: %s", warning)
            logger.info(
                "Scheduled %d actions in %d steps", len(ws.committed), steps,
            )
            return result
        stack.append(_candidates(tasks[level + 1], ws, step))

    failed = tasks[deepest_failure]
    logger.info(
        "No valid schedule after %d steps; deepest failure: '%s' in %s",
        steps, failed.activity.description, failed.scope,
    )
    raise NoValidSolutionFound() from InfeasibleActivity(
        failed.activity.description, failed.scope
    )
