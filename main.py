"""
Cadence Planner: Entry Point.

`python main.py` plans a sample week (a daily habit and a weekday study
budget) and logs the resulting schedule.
"""

import logging
from datetime import date, timedelta

from src.config import settings

logging.basicConfig(
    level=settings.LOG_LEVEL,
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
)

from src.core.audit import audit, has_errors
from src.core.desirability import all_in_cycle, default_weekly_map, weekdays_in_cycle
from src.core.scheduler import schedule
from src.core.strategies import FixedPoint, MergeAdjacent
from src.data.models import Activity, Cycle, Habit, Interval, Repeatable
from src.errors import SchedulingError

logger = logging.getLogger("main")


def main() -> None:
    today = date.today()
    next_monday = today + timedelta(days=(7 - today.weekday()) % 7 or 7)
    cycle = Cycle.from_duration(next_monday, timedelta(weeks=1))
    weekly = default_weekly_map()

    activities = [
        Activity(
            description="Clean the litter box",
            kind=Habit(
                duration=timedelta(minutes=15),
                times=1,
                interval=Interval.DAILY,
                desirability=all_in_cycle(cycle, weekly),
            ),
        ),
        Activity(
            description="Study",
            kind=Repeatable(
                desirable=timedelta(hours=7),
                minimum=timedelta(hours=5),
                maximum=timedelta(hours=10),
                interval=Interval.DAILY,
                desirability=weekdays_in_cycle(cycle, weekly),
            ),
        ),
    ]

    try:
        planned = schedule(cycle, activities)
    except SchedulingError as exc:
        logger.error("Planning failed: %s", exc)
        raise SystemExit(1) from exc

    planned = FixedPoint(MergeAdjacent(activities)).apply(planned)
    for activity in activities:
        for action in planned.for_activity(activity.id):
            logger.info("%-22s %s", activity.description, action.range)

    if has_errors(audit(planned, activities)):
        logger.error("Audit found problems in the planned schedule")
        raise SystemExit(1)


if __name__ == "__main__":
    main()
