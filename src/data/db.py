"""
Cadence Planner: Usage Database.

Committed usage persists in SQLite so goal registers survive restarts.
Each row is one add() call; replaying the rows rebuilds a register.
"""

from __future__ import annotations

import logging
import sqlite3
from datetime import datetime
from pathlib import Path

from src.core.goal_tracker import UsageRegister
from src.data.models import ActivityId, GoalId, TimeUnit

logger = logging.getLogger(__name__)


class UsageDB:
    """SQLite-backed storage for committed usage."""

    def __init__(self, db_path: str | None = None) -> None:
        if db_path is None:
            from src.config import settings
            db_path = settings.DATABASE_PATH

        self._db_path = db_path
        Path(db_path).parent.mkdir(parents=True, exist_ok=True)
        self._init_db()

    def _connect(self) -> sqlite3.Connection:
        conn = sqlite3.connect(self._db_path)
        conn.row_factory = sqlite3.Row
        return conn

    def _init_db(self) -> None:
        """Create the usage table if it doesn't exist."""
        with self._connect() as conn:
            conn.execute("""
                CREATE TABLE IF NOT EXISTS usage (
                    id          INTEGER PRIMARY KEY AUTOINCREMENT,
                    activity_id TEXT    NOT NULL,
                    goal_id     TEXT    NOT NULL,
                    moment      TEXT    NOT NULL,
                    unit        TEXT    NOT NULL,
                    quantity    INTEGER NOT NULL
                )
            """)
            conn.execute("""
                CREATE INDEX IF NOT EXISTS idx_usage_pair
                    ON usage (activity_id, goal_id)
            """)
        logger.debug("Usage table initialized at %s", self._db_path)

    def add_usage(
        self,
        activity_id: ActivityId,
        goal_id: GoalId,
        moment: datetime,
        unit: TimeUnit,
        quantity: int,
    ) -> None:
        with self._connect() as conn:
            conn.execute(
                """
                INSERT INTO usage (activity_id, goal_id, moment, unit, quantity)
                VALUES (?, ?, ?, ?, ?)
                """,
                (
                    str(activity_id.value), str(goal_id.value),
                    moment.isoformat(), unit.name, quantity,
                ),
            )

    def list_usage(
        self, activity_id: ActivityId, goal_id: GoalId
    ) -> list[tuple[datetime, TimeUnit, int]]:
        """All usage rows for a pair, in insertion order."""
        with self._connect() as conn:
            rows = conn.execute(
                """
                SELECT moment, unit, quantity FROM usage
                WHERE activity_id = ? AND goal_id = ?
                ORDER BY id
                """,
                (str(activity_id.value), str(goal_id.value)),
            ).fetchall()
        return [
            (datetime.fromisoformat(row["moment"]), TimeUnit[row["unit"]], row["quantity"])
            for row in rows
        ]

    def load_register(
        self, activity_id: ActivityId, goal_id: GoalId, epoch: datetime
    ) -> UsageRegister:
        """Rebuild a register by replaying stored usage from `epoch` on."""
        register = UsageRegister(epoch=epoch)
        skipped = 0
        for moment, unit, quantity in self.list_usage(activity_id, goal_id):
            if moment < epoch:
                skipped += 1
                continue
            register.add(moment, unit, quantity)
        if skipped:
            logger.info("Skipped %d usage rows before epoch %s", skipped, epoch.isoformat())
        return register
