"""
Cadence Planner: centralized configuration.

Loads all settings from .env and validates them.
Every engine default (search budget, slot grid, default day window)
comes from here.
"""

from __future__ import annotations

import os
import sys
from pathlib import Path

from dotenv import load_dotenv
from pydantic import BaseModel, ValidationError, field_validator

# Load .env from project root (two levels up from src/config.py)
_ENV_PATH = Path(__file__).resolve().parent.parent / ".env"
load_dotenv(_ENV_PATH)


class Settings(BaseModel):
    """Planner settings loaded from environment variables."""

    # Search budget for a single schedule() call
    SEARCH_MAX_STEPS: int = 200_000
    SEARCH_MAX_SECONDS: float = 10.0   # 0 means no wall-clock limit

    # Grid on which candidate start times are tried
    SLOT_STEP_MINUTES: int = 15

    # Default desirability window, every weekday
    DAY_START: str = "07:00"
    DAY_END: str = "22:00"

    # SQLite usage log
    DATABASE_PATH: str = "data/usage.db"

    LOG_LEVEL: str = "INFO"

    @field_validator("SEARCH_MAX_STEPS", "SLOT_STEP_MINUTES", mode="before")
    @classmethod
    def parse_positive_int(cls, v: str | int) -> int:
        value = int(v)
        if value <= 0:
            raise ValueError(f"must be positive, got {value}")
        return value

    @field_validator("SEARCH_MAX_SECONDS", mode="before")
    @classmethod
    def parse_seconds(cls, v: str | float) -> float:
        value = float(v)
        if value < 0:
            raise ValueError(f"must not be negative, got {value}")
        return value

    @field_validator("DAY_START", "DAY_END")
    @classmethod
    def parse_hhmm(cls, v: str) -> str:
        hour, minute = map(int, v.split(":"))
        if not (0 <= hour <= 23 and 0 <= minute <= 59):
            raise ValueError(f"Hour/minute out of range: {v!r}")
        return f"{hour:02d}:{minute:02d}"

    @field_validator("LOG_LEVEL")
    @classmethod
    def parse_level(cls, v: str) -> str:
        return v.strip().upper()


def _load_settings() -> Settings:
    """Load settings from environment, exiting on invalid values."""
    try:
        return Settings(
            SEARCH_MAX_STEPS=os.getenv("SEARCH_MAX_STEPS", "200000"),
            SEARCH_MAX_SECONDS=os.getenv("SEARCH_MAX_SECONDS", "10"),
            SLOT_STEP_MINUTES=os.getenv("SLOT_STEP_MINUTES", "15"),
            DAY_START=os.getenv("DAY_START", "07:00"),
            DAY_END=os.getenv("DAY_END", "22:00"),
            DATABASE_PATH=os.getenv("DATABASE_PATH", "data/usage.db"),
            LOG_LEVEL=os.getenv("LOG_LEVEL", "INFO"),
        )
    except ValidationError as exc:
        print(f"ERROR: invalid planner settings in .env:\n{exc}", file=sys.stderr)
        sys.exit(1)


# Singleton, imported by all other modules as:
#   from src.config import settings
settings = _load_settings()
