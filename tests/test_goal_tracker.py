"""Tests for src.core.goal_tracker: usage buckets and goal checks."""

from datetime import datetime, timedelta

import pytest

from src.core.desirability import DesirabilityIndex
from src.core.goal_tracker import GoalKeeper, UsageRegister, is_meeting_all
from src.data.models import Action, Activity, Goal, Habit, Interval, Period, TimeUnit
from src.data.ranges import DateTimeRange

EPOCH = datetime(2024, 1, 15, 0, 0)


def _activity(goal=None, name="Run"):
    return Activity(
        description=name,
        kind=Habit(
            duration=timedelta(minutes=30),
            times=1,
            interval=Interval.DAILY,
            desirability=DesirabilityIndex(),
        ),
        goal=goal,
    )


def _action(activity, start):
    return Action(range=DateTimeRange.starting_at(start, timedelta(minutes=30)), activity_id=activity.id)


class TestIndex:
    def test_fixed_length_units(self):
        reg = UsageRegister(epoch=EPOCH)
        moment = EPOCH + timedelta(days=9, hours=5, minutes=7)
        assert reg.index(moment, TimeUnit.MINUTES) == 9 * 24 * 60 + 5 * 60 + 7
        assert reg.index(moment, TimeUnit.HOURS) == 9 * 24 + 5
        assert reg.index(moment, TimeUnit.DAYS) == 9
        assert reg.index(moment, TimeUnit.WEEKS) == 1

    def test_months_same_calendar_month(self):
        reg = UsageRegister(epoch=datetime(2024, 1, 1))
        a = datetime(2024, 2, 1, 8)
        b = datetime(2024, 2, 29, 8)  # 28 days later, leap day
        assert reg.index(a, TimeUnit.MONTHS) == reg.index(b, TimeUnit.MONTHS) == 1

    def test_months_straddling_boundary(self):
        reg = UsageRegister(epoch=datetime(2024, 1, 1))
        a = datetime(2024, 2, 28, 8)
        b = datetime(2024, 3, 2, 8)
        assert reg.index(a, TimeUnit.MONTHS) != reg.index(b, TimeUnit.MONTHS)

    def test_months_across_years(self):
        reg = UsageRegister(epoch=datetime(2023, 11, 20))
        assert reg.index(datetime(2023, 11, 30), TimeUnit.MONTHS) == 0
        assert reg.index(datetime(2024, 1, 2), TimeUnit.MONTHS) == 2

    def test_years_follow_calendar(self):
        reg = UsageRegister(epoch=datetime(2023, 12, 31))
        assert reg.index(datetime(2024, 1, 1), TimeUnit.YEARS) == 1
        assert reg.index(datetime(2023, 12, 31, 23), TimeUnit.YEARS) == 0

    def test_before_epoch_rejected(self):
        reg = UsageRegister(epoch=EPOCH)
        with pytest.raises(ValueError):
            reg.index(EPOCH - timedelta(minutes=1), TimeUnit.DAYS)


class TestAddAndGet:
    def test_accumulates_in_same_bucket(self):
        reg = UsageRegister(epoch=EPOCH)
        reg.add(EPOCH + timedelta(hours=1), TimeUnit.DAYS, 2)
        reg.add(EPOCH + timedelta(hours=20), TimeUnit.DAYS, 3)
        assert reg.get(EPOCH + timedelta(hours=12), TimeUnit.DAYS) == 5

    def test_units_are_independent(self):
        reg = UsageRegister(epoch=EPOCH)
        reg.add(EPOCH, TimeUnit.DAYS, 1)
        assert reg.get(EPOCH, TimeUnit.WEEKS) is None

    def test_empty_bucket(self):
        reg = UsageRegister(epoch=EPOCH)
        reg.add(EPOCH, TimeUnit.DAYS, 1)
        assert reg.get(EPOCH + timedelta(days=1), TimeUnit.DAYS) is None


class TestIsMeeting:
    goal = Goal(ideal=Period(5, TimeUnit.WEEKS), at_least=Period(3, TimeUnit.WEEKS))

    def test_within_range(self):
        reg = UsageRegister(epoch=EPOCH)
        reg.add(EPOCH + timedelta(days=1), TimeUnit.WEEKS, 4)
        assert reg.is_meeting(self.goal, EPOCH + timedelta(days=2)) is True

    def test_below_at_least(self):
        reg = UsageRegister(epoch=EPOCH)
        reg.add(EPOCH, TimeUnit.WEEKS, 2)
        assert reg.is_meeting(self.goal, EPOCH) is False

    def test_above_ideal(self):
        reg = UsageRegister(epoch=EPOCH)
        reg.add(EPOCH, TimeUnit.WEEKS, 6)
        assert reg.is_meeting(self.goal, EPOCH) is False

    def test_no_bucket_yet(self):
        assert UsageRegister(epoch=EPOCH).is_meeting(self.goal, EPOCH) is False

    def test_before_epoch_rejected(self):
        with pytest.raises(ValueError):
            UsageRegister(epoch=EPOCH).is_meeting(self.goal, EPOCH - timedelta(days=1))

    def test_at_least_defaults_to_zero(self):
        goal = Goal(ideal=Period(2, TimeUnit.DAYS))
        reg = UsageRegister(epoch=EPOCH)
        reg.add(EPOCH, TimeUnit.DAYS, 0)
        assert reg.is_meeting(goal, EPOCH) is True

    def test_evaluated_in_goal_unit(self):
        reg = UsageRegister(epoch=EPOCH)
        reg.add(EPOCH, TimeUnit.DAYS, 4)
        assert reg.is_meeting(self.goal, EPOCH) is False


class TestIsMeetingAll:
    def test_all_met(self):
        goal = Goal(ideal=Period(1, TimeUnit.DAYS))
        a, b = _activity(goal), _activity(goal)
        ra, rb = UsageRegister(epoch=EPOCH), UsageRegister(epoch=EPOCH)
        ra.add(EPOCH, TimeUnit.DAYS, 1)
        rb.add(EPOCH, TimeUnit.DAYS, 1)
        assert is_meeting_all([(a, goal, ra), (b, goal, rb)], EPOCH) is True

    def test_one_missing(self):
        goal = Goal(ideal=Period(1, TimeUnit.DAYS))
        a, b = _activity(goal), _activity(goal)
        ra, rb = UsageRegister(epoch=EPOCH), UsageRegister(epoch=EPOCH)
        ra.add(EPOCH, TimeUnit.DAYS, 1)
        assert is_meeting_all([(a, goal, ra), (b, goal, rb)], EPOCH) is False

    def test_empty(self):
        assert is_meeting_all([], EPOCH) is True


class TestGoalKeeper:
    def test_commit_and_check(self):
        goal = Goal(ideal=Period(2, TimeUnit.DAYS), at_least=Period(1, TimeUnit.DAYS))
        run = _activity(goal)
        keeper = GoalKeeper(epoch=EPOCH)
        moment = EPOCH + timedelta(days=3, hours=7)

        assert keeper.is_meeting_all([run], moment) is False
        keeper.commit(run, _action(run, moment))
        assert keeper.is_meeting_all([run], moment) is True
        keeper.commit(run, _action(run, moment + timedelta(hours=2)))
        keeper.commit(run, _action(run, moment + timedelta(hours=4)))
        assert keeper.is_meeting_all([run], moment) is False

    def test_goal_less_activities_ignored(self):
        goal = Goal(ideal=Period(1, TimeUnit.DAYS))
        run = _activity(goal)
        chill = _activity(name="Chill")
        keeper = GoalKeeper(epoch=EPOCH)
        keeper.commit(run, _action(run, EPOCH))
        keeper.commit(chill, _action(chill, EPOCH))
        assert keeper.is_meeting_all([run, chill], EPOCH) is True
        assert [a for a, _, _ in keeper.entries([run, chill])] == [run]

    def test_custom_quantity(self):
        goal = Goal(ideal=Period(90, TimeUnit.WEEKS), at_least=Period(60, TimeUnit.WEEKS))
        run = _activity(goal)
        keeper = GoalKeeper(epoch=EPOCH)
        keeper.commit(run, _action(run, EPOCH), quantity=30)
        keeper.commit(run, _action(run, EPOCH + timedelta(days=2)), quantity=45)
        assert keeper.register_for(run, goal).get(EPOCH, TimeUnit.WEEKS) == 75
        assert keeper.is_meeting_all([run], EPOCH + timedelta(days=6)) is True

    def test_writes_through_to_store(self, usage_db):
        goal = Goal(ideal=Period(3, TimeUnit.DAYS))
        run = _activity(goal)
        keeper = GoalKeeper(epoch=EPOCH, store=usage_db)
        keeper.commit(run, _action(run, EPOCH + timedelta(hours=8)))

        reloaded = GoalKeeper(epoch=EPOCH, store=usage_db)
        assert reloaded.register_for(run, goal).get(EPOCH, TimeUnit.DAYS) == 1
