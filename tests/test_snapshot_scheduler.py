"""Tests for SnapshotScheduler — APScheduler-based score snapshot cron."""

import asyncio

from neurocore.engine import CognitiveEngine
from neurocore.scheduler import SnapshotScheduler
from neurocore.storage.store import NeuroStore


def test_snapshot_scheduler_starts_and_stops(tmp_path):
    async def scenario() -> None:
        store = NeuroStore(tmp_path / "test.db")
        try:
            scheduler = SnapshotScheduler(CognitiveEngine(store), snapshot_hours=24, capacity_hours=168)
            scheduler.start()
            assert scheduler.is_running

            job_ids = {j["id"] for j in scheduler.get_jobs()}
            assert job_ids == {"daily_snapshot", "weekly_training_capacity"}

            await scheduler.stop()
            assert not scheduler.is_running
        finally:
            await store.close()

    asyncio.run(scenario())


def test_snapshot_scheduler_double_start_warns(tmp_path):
    async def scenario() -> None:
        store = NeuroStore(tmp_path / "test.db")
        try:
            scheduler = SnapshotScheduler(CognitiveEngine(store))
            scheduler.start()
            scheduler.start()
            assert scheduler.is_running
            await scheduler.stop()
        finally:
            await store.close()

    asyncio.run(scenario())


def test_run_all_now_empty_db(tmp_path):
    async def scenario() -> None:
        store = NeuroStore(tmp_path / "test.db")
        try:
            scheduler = SnapshotScheduler(CognitiveEngine(store))
            assert scheduler.get_jobs() == []
            assert await scheduler.run_all_now() == {}
        finally:
            await store.close()

    asyncio.run(scenario())


def test_run_all_now_persists_every_user(tmp_path):
    async def scenario() -> None:
        store = NeuroStore(tmp_path / "test.db")
        try:
            engine = CognitiveEngine(store)
            await engine.ensure_user("u1", plan_id="light", chrono_age=35)
            await engine.recorder.record_recovery_session("u2", 40)

            results = await SnapshotScheduler(engine).run_all_now()
            assert set(results) == {"u1", "u2"}
            assert "error" not in results["u1"]
            assert results["u1"]["user_id"] == "u1"

            stored = await store.list_snapshots("u2")
            assert len(stored) == 1
            assert stored[0].to_dict() == results["u2"]
        finally:
            await store.close()

    asyncio.run(scenario())


def test_training_capacity_pass_updates_profiles(tmp_path):
    async def scenario() -> None:
        store = NeuroStore(tmp_path / "test.db")
        try:
            engine = CognitiveEngine(store)
            await engine.ensure_user("u1", plan_id="expert")
            await SnapshotScheduler(engine)._run_training_capacity()
            profile = await store.get_profile("u1")
            assert profile.training_capacity is not None
            assert 30.0 <= profile.training_capacity <= 160.0
        finally:
            await store.close()

    asyncio.run(scenario())
