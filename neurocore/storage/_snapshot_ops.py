"""Daily score snapshot operations for NeuroStore (mixin)."""

from __future__ import annotations

from typing import Protocol

import aiosqlite

from neurocore.models import DerivedScoreSnapshot


class _NeuroStoreLike(Protocol):
    async def _ensure_initialized(self) -> None: ...
    async def _get_conn(self) -> aiosqlite.Connection: ...


def _row_to_snapshot(row: aiosqlite.Row) -> DerivedScoreSnapshot:
    data = dict(row)
    data["decay_applied"] = bool(data["decay_applied"])
    return DerivedScoreSnapshot.from_dict(data)


class SnapshotOpsMixin:
    """score_snapshots: one row per (user, date), latest write wins."""

    async def save_snapshot(self: _NeuroStoreLike, snapshot: DerivedScoreSnapshot) -> None:
        await self._ensure_initialized()
        conn = await self._get_conn()
        await conn.execute(
            """
            INSERT OR REPLACE INTO score_snapshots (
                user_id, date, network_index, reasoning_quality,
                cognitive_performance, cognitive_age, decay_applied, regression_risk
            )
            VALUES (?, ?, ?, ?, ?, ?, ?, ?)
            """,
            (
                snapshot.user_id,
                snapshot.date,
                snapshot.network_index,
                snapshot.reasoning_quality,
                snapshot.cognitive_performance,
                snapshot.cognitive_age,
                1 if snapshot.decay_applied else 0,
                snapshot.regression_risk,
            ),
        )
        await conn.commit()

    async def get_snapshot(self: _NeuroStoreLike, user_id: str, date: str) -> DerivedScoreSnapshot | None:
        await self._ensure_initialized()
        conn = await self._get_conn()
        cursor = await conn.execute(
            "SELECT * FROM score_snapshots WHERE user_id = ? AND date = ?",
            (user_id, date),
        )
        row = await cursor.fetchone()
        return _row_to_snapshot(row) if row else None

    async def list_snapshots(
        self: _NeuroStoreLike,
        user_id: str,
        *,
        since: str | None = None,
        limit: int = 400,
    ) -> list[DerivedScoreSnapshot]:
        """Snapshots on or after *since* (ISO date), oldest first."""
        await self._ensure_initialized()
        conn = await self._get_conn()
        sql = "SELECT * FROM score_snapshots WHERE user_id = ?"
        params: list = [user_id]
        if since is not None:
            sql += " AND date >= ?"
            params.append(since)
        sql += " ORDER BY date DESC LIMIT ?"
        params.append(limit)
        cursor = await conn.execute(sql, params)
        rows = await cursor.fetchall()
        return [_row_to_snapshot(row) for row in reversed(rows)]
