"""Tests for src.data.db: UsageDB SQLite persistence."""

from datetime import datetime

from src.data.db import UsageDB
from src.data.models import ActivityId, GoalId, TimeUnit

EPOCH = datetime(2024, 1, 1)


def test_add_and_list_usage(usage_db):
    aid, gid = ActivityId(), GoalId()
    usage_db.add_usage(aid, gid, datetime(2024, 1, 2, 8, 30), TimeUnit.DAYS, 1)
    usage_db.add_usage(aid, gid, datetime(2024, 1, 3, 9, 0), TimeUnit.DAYS, 2)

    rows = usage_db.list_usage(aid, gid)
    assert rows == [
        (datetime(2024, 1, 2, 8, 30), TimeUnit.DAYS, 1),
        (datetime(2024, 1, 3, 9, 0), TimeUnit.DAYS, 2),
    ]


def test_list_usage_scoped_to_pair(usage_db):
    aid, gid = ActivityId(), GoalId()
    usage_db.add_usage(aid, gid, datetime(2024, 1, 2), TimeUnit.DAYS, 1)
    usage_db.add_usage(ActivityId(), gid, datetime(2024, 1, 2), TimeUnit.DAYS, 5)
    usage_db.add_usage(aid, GoalId(), datetime(2024, 1, 2), TimeUnit.DAYS, 7)

    assert len(usage_db.list_usage(aid, gid)) == 1


def test_load_register_replays_rows(usage_db):
    aid, gid = ActivityId(), GoalId()
    usage_db.add_usage(aid, gid, datetime(2024, 2, 1), TimeUnit.MONTHS, 3)
    usage_db.add_usage(aid, gid, datetime(2024, 2, 29), TimeUnit.MONTHS, 4)

    register = usage_db.load_register(aid, gid, EPOCH)
    assert register.epoch == EPOCH
    assert register.get(datetime(2024, 2, 10), TimeUnit.MONTHS) == 7


def test_load_register_skips_rows_before_epoch(usage_db):
    aid, gid = ActivityId(), GoalId()
    usage_db.add_usage(aid, gid, datetime(2023, 12, 31), TimeUnit.DAYS, 9)
    usage_db.add_usage(aid, gid, datetime(2024, 1, 1, 10), TimeUnit.DAYS, 1)

    register = usage_db.load_register(aid, gid, EPOCH)
    assert register.get(EPOCH, TimeUnit.DAYS) == 1


def test_unknown_pair_gives_empty_register(usage_db):
    register = usage_db.load_register(ActivityId(), GoalId(), EPOCH)
    assert register.buckets == {}


def test_persists_across_instances(tmp_path):
    path = str(tmp_path / "nested" / "usage.db")
    aid, gid = ActivityId(), GoalId()
    UsageDB(db_path=path).add_usage(aid, gid, datetime(2024, 1, 5), TimeUnit.WEEKS, 2)
    assert UsageDB(db_path=path).list_usage(aid, gid) == [
        (datetime(2024, 1, 5), TimeUnit.WEEKS, 2),
    ]
