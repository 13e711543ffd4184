from __future__ import annotations

import asyncio
import logging
from pathlib import Path

import aiosqlite

from neurocore.storage._activity_ops import ActivityOpsMixin
from neurocore.storage._combo_ops import ComboOpsMixin
from neurocore.storage._profile_ops import ProfileOpsMixin
from neurocore.storage._snapshot_ops import SnapshotOpsMixin

logger = logging.getLogger(__name__)


class NeuroStore(ActivityOpsMixin, ProfileOpsMixin, ComboOpsMixin, SnapshotOpsMixin):
    """Single access point to the engine's SQLite store.

    Operations live in mixins:
    - ActivityOpsMixin  — append-only activity_records, windowed counts/sums
    - ProfileOpsMixin   — user_profiles, skill_states, baselines
    - ComboOpsMixin     — combo_hashes history for anti-repetition
    - SnapshotOpsMixin  — daily score_snapshots
    """

    def __init__(self, db_path: str | Path = "data/neurocore.db") -> None:
        self.db_path = Path(db_path)
        self.db_path.parent.mkdir(parents=True, exist_ok=True)
        self._initialized = False
        self._init_lock = asyncio.Lock()
        self._conn: aiosqlite.Connection | None = None
        self._conn_lock = asyncio.Lock()

    async def _get_conn(self) -> aiosqlite.Connection:
        if self._conn is None:
            async with self._conn_lock:
                if self._conn is None:
                    self._conn = await aiosqlite.connect(str(self.db_path))
                    self._conn.row_factory = aiosqlite.Row
        return self._conn

    async def close(self) -> None:
        if self._conn is not None:
            await self._conn.close()
            self._conn = None
            self._initialized = False

    async def _ensure_initialized(self) -> None:
        if self._initialized:
            return

        async with self._init_lock:
            if self._initialized:
                return

            conn = await self._get_conn()
            await conn.executescript(
                """
                CREATE TABLE IF NOT EXISTS user_profiles (
                    user_id TEXT PRIMARY KEY,
                    plan_id TEXT NOT NULL DEFAULT 'expert',
                    chrono_age REAL,
                    training_capacity REAL,
                    education TEXT,
                    work_type TEXT
                );

                CREATE TABLE IF NOT EXISTS skill_states (
                    user_id TEXT PRIMARY KEY,
                    ae REAL NOT NULL,
                    ra REAL NOT NULL,
                    ct REAL NOT NULL,
                    in_skill REAL NOT NULL,
                    updated_at TEXT NOT NULL
                );

                CREATE TABLE IF NOT EXISTS activity_records (
                    id TEXT PRIMARY KEY,
                    user_id TEXT NOT NULL,
                    timestamp TEXT NOT NULL,
                    kind TEXT NOT NULL,
                    system_type TEXT,
                    skill TEXT,
                    game_type TEXT,
                    subtype TEXT,
                    exercise_id TEXT,
                    score REAL,
                    xp REAL NOT NULL DEFAULT 0,
                    duration_minutes REAL NOT NULL DEFAULT 0,
                    weight REAL NOT NULL DEFAULT 1.0,
                    status TEXT NOT NULL DEFAULT 'completed',
                    difficulty TEXT,
                    dedupe_key TEXT
                );

                CREATE UNIQUE INDEX IF NOT EXISTS idx_activity_dedupe
                    ON activity_records(dedupe_key)
                    WHERE dedupe_key IS NOT NULL;

                CREATE INDEX IF NOT EXISTS idx_activity_user_ts
                    ON activity_records(user_id, timestamp);

                CREATE INDEX IF NOT EXISTS idx_activity_user_kind_ts
                    ON activity_records(user_id, kind, timestamp);

                CREATE TABLE IF NOT EXISTS baselines (
                    user_id TEXT PRIMARY KEY,
                    baseline_score REAL NOT NULL,
                    baseline_rq REAL,
                    chrono_age REAL NOT NULL,
                    is_calibrated INTEGER NOT NULL DEFAULT 0,
                    calibration_days INTEGER NOT NULL DEFAULT 0,
                    captured_at TEXT NOT NULL
                );

                CREATE TABLE IF NOT EXISTS combo_hashes (
                    id TEXT PRIMARY KEY,
                    user_id TEXT NOT NULL,
                    game_name TEXT NOT NULL,
                    combo_hash TEXT NOT NULL,
                    difficulty TEXT NOT NULL,
                    quality_score REAL,
                    params_json TEXT,
                    fallback_used INTEGER NOT NULL DEFAULT 0,
                    duplicates_rejected INTEGER NOT NULL DEFAULT 0,
                    created_at TEXT NOT NULL
                );

                CREATE INDEX IF NOT EXISTS idx_combo_user_game_created
                    ON combo_hashes(user_id, game_name, created_at DESC);

                CREATE TABLE IF NOT EXISTS score_snapshots (
                    user_id TEXT NOT NULL,
                    date TEXT NOT NULL,
                    network_index REAL NOT NULL,
                    reasoning_quality REAL NOT NULL,
                    cognitive_performance REAL NOT NULL,
                    cognitive_age REAL,
                    decay_applied INTEGER NOT NULL DEFAULT 0,
                    regression_risk TEXT NOT NULL DEFAULT 'low',
                    PRIMARY KEY (user_id, date)
                );
                """
            )
            await conn.commit()
            self._initialized = True
            logger.debug("NeuroStore initialized at %s", self.db_path)
