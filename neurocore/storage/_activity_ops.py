"""Append-only activity_records operations for NeuroStore (mixin)."""

from __future__ import annotations

import sqlite3
from pathlib import Path
from typing import Protocol

import aiosqlite

from neurocore.models import ActivityRecord, CountLimit, InsertOutcome

_INSERT_SQL = """
INSERT INTO activity_records (
    id, user_id, timestamp, kind, system_type, skill, game_type,
    subtype, exercise_id, score, xp, duration_minutes, weight,
    status, difficulty, dedupe_key
)
VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
"""


def _insert_params(record: ActivityRecord) -> tuple:
    return (
        record.id,
        record.user_id,
        record.timestamp,
        record.kind,
        record.system_type,
        record.skill,
        record.game_type,
        record.subtype,
        record.exercise_id,
        record.score,
        record.xp,
        record.duration_minutes,
        record.weight,
        record.status,
        record.difficulty,
        record.dedupe_key,
    )


class _NeuroStoreLike(Protocol):
    db_path: Path

    async def _ensure_initialized(self) -> None: ...
    async def _get_conn(self) -> aiosqlite.Connection: ...


def _filters(
    user_id: str,
    start: str | None,
    end: str | None,
    kind: str | None,
    system_type: str | None,
    game_type: str | None = None,
    subtype: str | None = None,
    completed_only: bool = False,
) -> tuple[str, list]:
    clauses = ["user_id = ?"]
    params: list = [user_id]
    if start is not None:
        clauses.append("timestamp >= ?")
        params.append(start)
    if end is not None:
        clauses.append("timestamp < ?")
        params.append(end)
    if kind is not None:
        clauses.append("kind = ?")
        params.append(kind)
    if system_type is not None:
        clauses.append("system_type = ?")
        params.append(system_type)
    if game_type is not None:
        clauses.append("game_type = ?")
        params.append(game_type)
    if subtype is not None:
        clauses.append("subtype = ?")
        params.append(subtype)
    if completed_only:
        clauses.append("status = 'completed'")
    return " AND ".join(clauses), params


class ActivityOpsMixin:
    """activity_records: insert, list, count, sum, last-activity lookups."""

    async def insert_activity(self: _NeuroStoreLike, record: ActivityRecord) -> bool:
        """Insert *record*; ``False`` when its dedupe key already exists."""
        await self._ensure_initialized()
        conn = await self._get_conn()
        try:
            await conn.execute(_INSERT_SQL, _insert_params(record))
        except sqlite3.IntegrityError:
            await conn.rollback()
            return False
        await conn.commit()
        return True

    async def insert_activity_within_limits(
        self: _NeuroStoreLike, record: ActivityRecord, limits: list[CountLimit]
    ) -> InsertOutcome:
        """Insert *record* only while every limit still has room.

        Runs on its own connection inside ``BEGIN IMMEDIATE``, so the count
        and the insert are atomic against every other writer of the file,
        in this process or another.
        """
        await self._ensure_initialized()
        async with aiosqlite.connect(str(self.db_path), isolation_level=None) as conn:
            await conn.execute("BEGIN IMMEDIATE")
            try:
                for limit in limits:
                    where, params = _filters(
                        record.user_id,
                        limit.start,
                        limit.end,
                        "game-session",
                        limit.system_type,
                        limit.game_type,
                        completed_only=True,
                    )
                    cursor = await conn.execute(
                        f"SELECT COUNT(*) FROM activity_records WHERE {where}", params
                    )
                    row = await cursor.fetchone()
                    if row and int(row[0]) >= limit.limit:
                        await conn.execute("ROLLBACK")
                        return "capped"
                try:
                    await conn.execute(_INSERT_SQL, _insert_params(record))
                except sqlite3.IntegrityError:
                    await conn.execute("ROLLBACK")
                    return "duplicate"
                await conn.execute("COMMIT")
            except Exception:
                if conn.in_transaction:
                    await conn.execute("ROLLBACK")
                raise
        return "inserted"

    async def get_activity_by_dedupe_key(self: _NeuroStoreLike, dedupe_key: str) -> ActivityRecord | None:
        await self._ensure_initialized()
        conn = await self._get_conn()
        cursor = await conn.execute(
            "SELECT * FROM activity_records WHERE dedupe_key = ?",
            (dedupe_key,),
        )
        row = await cursor.fetchone()
        return ActivityRecord.from_row(row) if row else None

    async def list_activity(
        self: _NeuroStoreLike,
        user_id: str,
        *,
        start: str | None = None,
        end: str | None = None,
        kind: str | None = None,
        system_type: str | None = None,
        limit: int | None = None,
    ) -> list[ActivityRecord]:
        """Records in ``[start, end)``, oldest first."""
        await self._ensure_initialized()
        conn = await self._get_conn()
        where, params = _filters(user_id, start, end, kind, system_type)
        sql = f"SELECT * FROM activity_records WHERE {where} ORDER BY timestamp ASC"
        if limit is not None:
            sql = (
                f"SELECT * FROM (SELECT * FROM activity_records WHERE {where} "
                "ORDER BY timestamp DESC LIMIT ?) ORDER BY timestamp ASC"
            )
            params.append(limit)
        cursor = await conn.execute(sql, params)
        rows = await cursor.fetchall()
        return [ActivityRecord.from_row(row) for row in rows]

    async def count_activity(
        self: _NeuroStoreLike,
        user_id: str,
        *,
        start: str | None = None,
        end: str | None = None,
        kind: str | None = None,
        system_type: str | None = None,
        game_type: str | None = None,
        subtype: str | None = None,
        completed_only: bool = True,
    ) -> int:
        await self._ensure_initialized()
        conn = await self._get_conn()
        where, params = _filters(
            user_id, start, end, kind, system_type, game_type, subtype, completed_only
        )
        cursor = await conn.execute(f"SELECT COUNT(*) FROM activity_records WHERE {where}", params)
        row = await cursor.fetchone()
        return int(row[0]) if row else 0

    async def sum_activity(
        self: _NeuroStoreLike,
        user_id: str,
        expression: str,
        *,
        start: str | None = None,
        end: str | None = None,
        kind: str | None = None,
        system_type: str | None = None,
        subtype: str | None = None,
    ) -> float:
        """Sum of ``xp``, ``duration_minutes`` or ``weighted_minutes``."""
        columns = {
            "xp": "xp",
            "duration_minutes": "duration_minutes",
            "weighted_minutes": "duration_minutes * weight",
        }
        if expression not in columns:
            raise ValueError(f"unsupported sum expression: {expression}")
        await self._ensure_initialized()
        conn = await self._get_conn()
        where, params = _filters(
            user_id, start, end, kind, system_type, subtype=subtype, completed_only=True
        )
        cursor = await conn.execute(
            f"SELECT COALESCE(SUM({columns[expression]}), 0) FROM activity_records WHERE {where}",
            params,
        )
        row = await cursor.fetchone()
        return float(row[0]) if row else 0.0

    async def get_last_activity_at(
        self: _NeuroStoreLike,
        user_id: str,
        *,
        kind: str | None = None,
        system_type: str | None = None,
        min_xp: float | None = None,
    ) -> str | None:
        """ISO timestamp of the user's latest completed matching record."""
        await self._ensure_initialized()
        conn = await self._get_conn()
        where, params = _filters(user_id, None, None, kind, system_type, completed_only=True)
        if min_xp is not None:
            where += " AND xp > ?"
            params.append(min_xp)
        cursor = await conn.execute(
            f"SELECT MAX(timestamp) FROM activity_records WHERE {where}",
            params,
        )
        row = await cursor.fetchone()
        return row[0] if row and row[0] else None

    async def get_all_user_ids(self: _NeuroStoreLike) -> list[str]:
        """Every user with a profile or at least one activity record."""
        await self._ensure_initialized()
        conn = await self._get_conn()
        cursor = await conn.execute(
            """
            SELECT user_id FROM activity_records
            UNION
            SELECT user_id FROM user_profiles
            ORDER BY user_id
            """
        )
        rows = await cursor.fetchall()
        return [row[0] for row in rows]
