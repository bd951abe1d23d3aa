"""Planner error taxonomy.

Construction errors fail fast (they are also ValueErrors). Scheduling
errors only reach the caller once the whole search space is exhausted
or the search budget runs out.
"""

from __future__ import annotations


class PlannerError(Exception):
    """Base class for every error raised by the planner."""


class InvalidRange(PlannerError, ValueError):
    """Raised when a range is built with start >= end."""

    def __init__(self, start: object, end: object) -> None:
        super().__init__(f"Invalid range: start {start} is not before end {end}")
        self.start = start
        self.end = end


class UnitMismatch(PlannerError, ValueError):
    """Raised when two Periods with different time units are combined."""


class GoalUnitMismatch(UnitMismatch):
    """Raised when a Goal's at_least and ideal use different time units."""


class MissingDesirability(PlannerError):
    """The weekly desirability map has no entry for an included weekday."""

    def __init__(self, weekday: object) -> None:
        super().__init__(f"No desirability configured for {weekday}")
        self.weekday = weekday


class NoCycleConfigured(PlannerError):
    """No cycle is configured (or none covers the requested date)."""


class SchedulingError(PlannerError):
    """Base class for search failures."""


class InfeasibleActivity(SchedulingError):
    """One activity could not be placed within one of its interval scopes."""

    def __init__(self, description: str, scope: object) -> None:
        super().__init__(f"Could not place '{description}' within {scope}")
        self.description = description
        self.scope = scope


class NoValidSolutionFound(SchedulingError):
    """The entire search space was exhausted without a valid schedule."""

    def __init__(self, message: str = "We couldn't find a valid solution for your criteria.") -> None:
        super().__init__(message)


class SearchBudgetExceeded(SchedulingError):
    """The step or time budget ran out before the search resolved."""

    def __init__(self, steps: int, elapsed_seconds: float) -> None:
        super().__init__(
            f"Search budget exceeded after {steps} steps ({elapsed_seconds:.2f}s)"
        )
        self.steps = steps
        self.elapsed_seconds = elapsed_seconds
