"""Combo-hash history operations for NeuroStore (mixin)."""

from __future__ import annotations

import json
from typing import Protocol

import aiosqlite

from neurocore.defaults import COMBO_HISTORY_KEEP
from neurocore.models import ComboHashRecord


class _NeuroStoreLike(Protocol):
    async def _ensure_initialized(self) -> None: ...
    async def _get_conn(self) -> aiosqlite.Connection: ...


def _row_to_combo(row: aiosqlite.Row) -> ComboHashRecord:
    params_json = row["params_json"]
    return ComboHashRecord(
        id=row["id"],
        user_id=row["user_id"],
        game_name=row["game_name"],
        combo_hash=row["combo_hash"],
        difficulty=row["difficulty"],
        quality_score=row["quality_score"],
        params=json.loads(params_json) if params_json else None,
        fallback_used=bool(row["fallback_used"]),
        duplicates_rejected=row["duplicates_rejected"],
        created_at=row["created_at"],
    )


class ComboOpsMixin:
    """combo_hashes: append, recent-N per (user, game), bounded retention."""

    async def insert_combo_hash(self: _NeuroStoreLike, record: ComboHashRecord) -> None:
        await self._ensure_initialized()
        conn = await self._get_conn()
        await conn.execute(
            """
            INSERT INTO combo_hashes (
                id, user_id, game_name, combo_hash, difficulty, quality_score,
                params_json, fallback_used, duplicates_rejected, created_at
            )
            VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
            """,
            (
                record.id,
                record.user_id,
                record.game_name,
                record.combo_hash,
                record.difficulty,
                record.quality_score,
                json.dumps(record.params, sort_keys=True) if record.params is not None else None,
                1 if record.fallback_used else 0,
                record.duplicates_rejected,
                record.created_at,
            ),
        )
        await conn.execute(
            """
            DELETE FROM combo_hashes
            WHERE user_id = ? AND game_name = ?
              AND id NOT IN (
                  SELECT id FROM combo_hashes
                  WHERE user_id = ? AND game_name = ?
                  ORDER BY created_at DESC
                  LIMIT ?
              )
            """,
            (record.user_id, record.game_name, record.user_id, record.game_name, COMBO_HISTORY_KEEP),
        )
        await conn.commit()

    async def get_recent_combos(
        self: _NeuroStoreLike,
        user_id: str,
        game_name: str,
        *,
        since: str | None = None,
        limit: int = 10,
    ) -> list[ComboHashRecord]:
        """Most recent first."""
        await self._ensure_initialized()
        conn = await self._get_conn()
        sql = "SELECT * FROM combo_hashes WHERE user_id = ? AND game_name = ?"
        params: list = [user_id, game_name]
        if since is not None:
            sql += " AND created_at >= ?"
            params.append(since)
        sql += " ORDER BY created_at DESC LIMIT ?"
        params.append(limit)
        cursor = await conn.execute(sql, params)
        rows = await cursor.fetchall()
        return [_row_to_combo(row) for row in rows]
