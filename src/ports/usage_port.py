"""Usage port: abstract interface for persisting committed usage.

Goal tracking depends on this protocol, never on a specific store.
"""

from __future__ import annotations

from datetime import datetime
from typing import TYPE_CHECKING, Protocol

if TYPE_CHECKING:
    from src.core.goal_tracker import UsageRegister
    from src.data.models import ActivityId, GoalId, TimeUnit


class UsageStore(Protocol):
    """Abstract usage store used by the goal keeper."""

    def add_usage(
        self,
        activity_id: ActivityId,
        goal_id: GoalId,
        moment: datetime,
        unit: TimeUnit,
        quantity: int,
    ) -> None: ...

    def load_register(
        self, activity_id: ActivityId, goal_id: GoalId, epoch: datetime
    ) -> UsageRegister: ...
