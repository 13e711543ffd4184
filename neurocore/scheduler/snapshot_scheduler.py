"""SnapshotScheduler — APScheduler jobs that persist derived scores.

Two recurring jobs run for every known user:

* **daily_snapshot** — every ``SNAPSHOT_INTERVAL_HOURS`` (24 by default),
  stores the user's DerivedScoreSnapshot for the current day.
* **weekly_training_capacity** — every 7 days, advances Training Capacity
  from the week's XP and recovery.

Runs on ``AsyncIOScheduler`` inside the caller's event loop.

Usage::

    scheduler = SnapshotScheduler(engine)
    scheduler.start()
    await scheduler.stop()
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from config import SNAPSHOT_INTERVAL_HOURS

if TYPE_CHECKING:
    from neurocore.engine import CognitiveEngine

logger = logging.getLogger(__name__)

TRAINING_CAPACITY_INTERVAL_HOURS = 168    # 7 days


class SnapshotScheduler:
    """Schedules periodic snapshot and training-capacity passes.

    Parameters
    ----------
    engine:
        The :class:`~neurocore.engine.CognitiveEngine` to compute with.
    snapshot_hours:
        Interval (hours) between snapshot passes.
    capacity_hours:
        Interval (hours) between training-capacity updates.
    """

    def __init__(
        self,
        engine: CognitiveEngine,
        *,
        snapshot_hours: int = SNAPSHOT_INTERVAL_HOURS,
        capacity_hours: int = TRAINING_CAPACITY_INTERVAL_HOURS,
    ) -> None:
        self._engine = engine
        self._snapshot_hours = snapshot_hours
        self._capacity_hours = capacity_hours
        self._scheduler = None
        self._started = False

    def start(self) -> None:
        if self._started:
            logger.warning("SnapshotScheduler already started")
            return

        try:
            from apscheduler.schedulers.asyncio import AsyncIOScheduler
            from apscheduler.triggers.interval import IntervalTrigger
        except ImportError as exc:
            logger.error("APScheduler is required for SnapshotScheduler")
            raise ImportError("apscheduler is required. pip install apscheduler") from exc

        self._scheduler = AsyncIOScheduler()
        self._scheduler.add_job(
            self._run_snapshots,
            trigger=IntervalTrigger(hours=self._snapshot_hours),
            id="daily_snapshot",
            name="Score snapshot (daily)",
            replace_existing=True,
        )
        self._scheduler.add_job(
            self._run_training_capacity,
            trigger=IntervalTrigger(hours=self._capacity_hours),
            id="weekly_training_capacity",
            name="Training capacity update (weekly)",
            replace_existing=True,
        )
        self._scheduler.start()
        self._started = True
        logger.info(
            "SnapshotScheduler started: snapshot=%dh, capacity=%dh",
            self._snapshot_hours,
            self._capacity_hours,
        )

    async def stop(self) -> None:
        if self._scheduler is not None:
            self._scheduler.shutdown(wait=False)
            self._started = False
            logger.info("SnapshotScheduler stopped")

    @property
    def is_running(self) -> bool:
        return self._started

    def get_jobs(self) -> list[dict]:
        if self._scheduler is None:
            return []
        return [
            {
                "id": job.id,
                "name": job.name,
                "next_run_time": str(job.next_run_time),
            }
            for job in self._scheduler.get_jobs()
        ]

    async def _run_snapshots(self) -> None:
        logger.info("SnapshotScheduler: starting snapshot pass")
        for user_id in await self._engine.store.get_all_user_ids():
            try:
                await self._engine.persist_snapshot(user_id)
            except Exception as exc:
                logger.warning("Snapshot failed for user=%s: %s", user_id, exc)

    async def _run_training_capacity(self) -> None:
        logger.info("SnapshotScheduler: starting training capacity pass")
        for user_id in await self._engine.store.get_all_user_ids():
            try:
                await self._engine.update_training_capacity(user_id)
            except Exception as exc:
                logger.warning("Training capacity update failed for user=%s: %s", user_id, exc)

    # ── Manual trigger (CLI / tests) ─────────────────────────────

    async def run_all_now(self, user_id: str | None = None) -> dict:
        """Persist a snapshot immediately for one or all users."""
        user_ids = [user_id] if user_id else await self._engine.store.get_all_user_ids()
        results: dict[str, dict] = {}
        for uid in user_ids:
            try:
                snapshot = await self._engine.persist_snapshot(uid)
                results[uid] = snapshot.to_dict()
            except Exception as exc:
                logger.warning("Snapshot failed for user=%s: %s", uid, exc)
                results[uid] = {"error": str(exc)}
        return results
