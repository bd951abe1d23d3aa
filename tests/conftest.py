"""Shared test fixtures and configuration.

Sets up environment variables before any src import so src.config loads
predictable defaults, and provides common cycles and desirability maps.
"""

import os

# Patch env vars BEFORE any src imports
os.environ.setdefault("SEARCH_MAX_STEPS", "200000")
os.environ.setdefault("SEARCH_MAX_SECONDS", "0")
os.environ.setdefault("SLOT_STEP_MINUTES", "15")
os.environ.setdefault("DAY_START", "07:00")
os.environ.setdefault("DAY_END", "22:00")
os.environ.setdefault("DATABASE_PATH", ":memory:")

from datetime import date, timedelta

import pytest


@pytest.fixture
def week_cycle():
    """Mon 2023-01-16 .. Sun 2023-01-22."""
    from src.data.models import Cycle
    return Cycle.from_duration(date(2023, 1, 16), timedelta(weeks=1))


@pytest.fixture
def two_week_cycle():
    """Mon 2023-01-16 .. Sun 2023-01-29."""
    from src.data.models import Cycle
    return Cycle.from_duration(date(2023, 1, 16), timedelta(weeks=2))


@pytest.fixture
def weekly_map():
    """Every weekday 07:00-22:00 at rank 0."""
    from src.core.desirability import default_weekly_map
    return default_weekly_map("07:00", "22:00")


@pytest.fixture
def usage_db(tmp_path):
    """Return a UsageDB instance backed by a temp file."""
    from src.data.db import UsageDB
    return UsageDB(db_path=str(tmp_path / "test_usage.db"))
