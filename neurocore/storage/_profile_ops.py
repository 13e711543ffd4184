"""Profile, skill-state and baseline operations for NeuroStore (mixin)."""

from __future__ import annotations

from typing import Protocol

import aiosqlite

from neurocore.models import Baseline, SkillState, UserProfile


class _NeuroStoreLike(Protocol):
    async def _ensure_initialized(self) -> None: ...
    async def _get_conn(self) -> aiosqlite.Connection: ...


class ProfileOpsMixin:
    """user_profiles, skill_states and baselines: one row per user each."""

    async def get_profile(self: _NeuroStoreLike, user_id: str) -> UserProfile | None:
        await self._ensure_initialized()
        conn = await self._get_conn()
        cursor = await conn.execute("SELECT * FROM user_profiles WHERE user_id = ?", (user_id,))
        row = await cursor.fetchone()
        if row is None:
            return None
        return UserProfile(
            user_id=row["user_id"],
            plan_id=row["plan_id"],
            chrono_age=row["chrono_age"],
            training_capacity=row["training_capacity"],
            education=row["education"],
            work_type=row["work_type"],
        )

    async def save_profile(self: _NeuroStoreLike, profile: UserProfile) -> None:
        await self._ensure_initialized()
        conn = await self._get_conn()
        await conn.execute(
            """
            INSERT INTO user_profiles (
                user_id, plan_id, chrono_age, training_capacity, education, work_type
            )
            VALUES (?, ?, ?, ?, ?, ?)
            ON CONFLICT(user_id) DO UPDATE SET
                plan_id = excluded.plan_id,
                chrono_age = excluded.chrono_age,
                training_capacity = excluded.training_capacity,
                education = excluded.education,
                work_type = excluded.work_type
            """,
            (
                profile.user_id,
                profile.plan_id,
                profile.chrono_age,
                profile.training_capacity,
                profile.education,
                profile.work_type,
            ),
        )
        await conn.commit()

    async def get_skill_state(self: _NeuroStoreLike, user_id: str) -> SkillState | None:
        await self._ensure_initialized()
        conn = await self._get_conn()
        cursor = await conn.execute("SELECT * FROM skill_states WHERE user_id = ?", (user_id,))
        row = await cursor.fetchone()
        if row is None:
            return None
        return SkillState(
            user_id=row["user_id"],
            ae=row["ae"],
            ra=row["ra"],
            ct=row["ct"],
            insight=row["in_skill"],
            updated_at=row["updated_at"],
        )

    async def save_skill_state(self: _NeuroStoreLike, state: SkillState) -> None:
        await self._ensure_initialized()
        conn = await self._get_conn()
        await conn.execute(
            """
            INSERT OR REPLACE INTO skill_states (user_id, ae, ra, ct, in_skill, updated_at)
            VALUES (?, ?, ?, ?, ?, ?)
            """,
            (state.user_id, state.ae, state.ra, state.ct, state.insight, state.updated_at),
        )
        await conn.commit()

    async def get_baseline(self: _NeuroStoreLike, user_id: str) -> Baseline | None:
        await self._ensure_initialized()
        conn = await self._get_conn()
        cursor = await conn.execute("SELECT * FROM baselines WHERE user_id = ?", (user_id,))
        row = await cursor.fetchone()
        if row is None:
            return None
        return Baseline(
            user_id=row["user_id"],
            baseline_score=row["baseline_score"],
            baseline_rq=row["baseline_rq"],
            chrono_age=row["chrono_age"],
            is_calibrated=bool(row["is_calibrated"]),
            calibration_days=row["calibration_days"],
            captured_at=row["captured_at"],
        )

    async def save_baseline(self: _NeuroStoreLike, baseline: Baseline) -> None:
        await self._ensure_initialized()
        conn = await self._get_conn()
        await conn.execute(
            """
            INSERT OR REPLACE INTO baselines (
                user_id, baseline_score, baseline_rq, chrono_age,
                is_calibrated, calibration_days, captured_at
            )
            VALUES (?, ?, ?, ?, ?, ?, ?)
            """,
            (
                baseline.user_id,
                baseline.baseline_score,
                baseline.baseline_rq,
                baseline.chrono_age,
                1 if baseline.is_calibrated else 0,
                baseline.calibration_days,
                baseline.captured_at,
            ),
        )
        await conn.commit()
