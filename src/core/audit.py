"""Schedule audit: re-checks a finished schedule.

Produces one check item per rule. Required items that fail are errors
(the schedule is invalid); optional items that fail are warnings, e.g. a
repeatable activity that stayed within its bounds but short of its
desirable duration.

No I/O: this module only transforms data.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import timedelta
from typing import Iterable

from src.core.constraints import satisfies_all
from src.core.scheduler import has_availability, interval_scopes
from src.data.models import Activity, Habit, Schedule
from src.data.ranges import DateRange


@dataclass
class CheckItem:
    """Outcome of one audit rule."""

    description: str
    required: bool
    ok: bool
    reason: str = ""


def has_errors(items: Iterable[CheckItem]) -> bool:
    return any(item.required and not item.ok for item in items)


def has_warnings(items: Iterable[CheckItem]) -> bool:
    return any(not item.required and not item.ok for item in items)


def _no_overlaps(schedule: Schedule) -> CheckItem:
    ordered = schedule.all_actions()
    for prev, nxt in zip(ordered, ordered[1:]):
        if prev.range.overlaps(nxt.range):
            return CheckItem(
                "No overlapping actions", required=True, ok=False,
                reason=f"{prev.range} overlaps {nxt.range}",
            )
    return CheckItem("No overlapping actions", required=True, ok=True)


def _inside_cycle(schedule: Schedule) -> CheckItem:
    bounds = schedule.cycle.bounds()
    outside = [a for a in schedule.all_actions() if not bounds.contains(a.range)]
    if outside:
        return CheckItem(
            "All actions inside the cycle", required=True, ok=False,
            reason=f"{outside[0].range} is outside {schedule.cycle}",
        )
    return CheckItem("All actions inside the cycle", required=True, ok=True)


def _outside_breaks(schedule: Schedule, breaks: list[DateRange]) -> CheckItem:
    for b in breaks:
        span = b.to_datetime_range()
        for action in schedule.all_actions():
            if action.range.overlaps(span):
                return CheckItem(
                    "No action during a break", required=True, ok=False,
                    reason=f"{action.range} falls in break {b}",
                )
    return CheckItem("No action during a break", required=True, ok=True)


def _quantities(
    schedule: Schedule, activity: Activity, breaks: list[DateRange]
) -> list[CheckItem]:
    kind = activity.kind
    actions = schedule.for_activity(activity.id)
    break_spans = [b.to_datetime_range() for b in breaks]
    items: list[CheckItem] = []

    for scope in interval_scopes(schedule.cycle, kind.interval):
        in_scope = [a for a in actions if scope.bounds.contains(a.range)]
        available = has_availability(activity, scope, break_spans)

        if isinstance(kind, Habit):
            expected = kind.times if available else 0
            if len(in_scope) != expected:
                items.append(CheckItem(
                    f"'{activity.description}' occurrences in {scope}", required=True,
                    ok=False, reason=f"{len(in_scope)} placed, {expected} required",
                ))
            continue

        if not available:
            continue
        total = sum((a.duration() for a in in_scope), timedelta(0))
        floor = kind.minimum or timedelta(0)
        if total < floor or (kind.maximum is not None and total > kind.maximum):
            items.append(CheckItem(
                f"'{activity.description}' duration in {scope}", required=True,
                ok=False, reason=f"{total} outside [{floor}, {kind.maximum or 'inf'}]",
            ))
        elif total < kind.desirable:
            items.append(CheckItem(
                f"'{activity.description}' desirable duration in {scope}", required=False,
                ok=False, reason=f"{total} of {kind.desirable}",
            ))

    if not items:
        items.append(CheckItem(f"'{activity.description}' quantity", required=True, ok=True))
    return items


def _constraints(schedule: Schedule, activity: Activity) -> CheckItem:
    actions = schedule.for_activity(activity.id)
    for i, action in enumerate(actions):
        if not satisfies_all(activity.constraints, action, actions[:i]):
            return CheckItem(
                f"'{activity.description}' constraints", required=True, ok=False,
                reason=f"{action.range} violates a constraint",
            )
    return CheckItem(f"'{activity.description}' constraints", required=True, ok=True)


def audit(
    schedule: Schedule,
    activities: list[Activity],
    breaks: Iterable[DateRange] = (),
) -> list[CheckItem]:
    """Check a schedule against every validity rule."""
    breaks = list(breaks)
    items = [
        _no_overlaps(schedule),
        _inside_cycle(schedule),
        _outside_breaks(schedule, breaks),
    ]
    for activity in activities:
        items.extend(_quantities(schedule, activity, breaks))
        items.append(_constraints(schedule, activity))
    return items
