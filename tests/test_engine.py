import asyncio
from datetime import datetime, timedelta, timezone

from neurocore.engine import CognitiveEngine
from neurocore.storage.store import NeuroStore

NOW = datetime(2026, 5, 6, 12, 0, tzinfo=timezone.utc)


def test_dashboard_for_a_new_user(tmp_path):
    async def scenario() -> None:
        store = NeuroStore(tmp_path / "engine.db")
        try:
            engine = CognitiveEngine(store, default_plan="light")
            board = await engine.dashboard("newcomer", NOW)
            assert board.plan.id == "light"
            assert board.skills.s1 == 50.0
            assert 0.0 <= board.network_index <= 100.0
            assert 0.0 <= board.rq.value <= 100.0
            assert board.mode in {"RECOVERY_MODE", "LOW_BANDWIDTH_MODE", "FULL_CAPACITY_MODE"}
            assert not board.baseline.is_calibrated
            assert board.skill_decay == 0.0

            data = board.to_dict()
            assert data["plan"] == "light"
            assert set(data["decay"]) == {"applied", "skill", "network", "readiness"}
        finally:
            await store.close()

    asyncio.run(scenario())


def test_load_aggregates_reads_rolling_week(tmp_path):
    async def scenario() -> None:
        store = NeuroStore(tmp_path / "engine.db")
        engine = CognitiveEngine(store)
        try:
            rec = engine.recorder
            await rec.record_game_session("u1", "S2-CT", 64.0, 20.0, now=NOW - timedelta(days=2))
            await rec.record_game_session("u1", "S2-CT", 58.0, 15.0, now=NOW - timedelta(days=10))
            await rec.record_recovery_session("u1", 30, kind="detox", now=NOW)
            await rec.record_recovery_session("u1", 20, kind="walk", now=NOW - timedelta(days=1))
            await rec.record_content_completion("u1", "article", content_id="a1", now=NOW - timedelta(hours=3))

            agg = await engine.load_aggregates("u1", NOW)
            assert agg.weekly_game_xp == 20.0
            assert agg.weekly_detox_minutes == 30.0
            assert agg.weekly_walk_minutes == 20.0
            assert agg.s2_scores == [58.0, 64.0]
            assert [t.content_type for t in agg.tasks] == ["article"]
            assert agg.custom_weighted_minutes is None

            await rec.record_custom_session("u1", 30, difficulty=1, focus=1, now=NOW)
            agg = await engine.load_aggregates("u1", NOW)
            assert agg.custom_weighted_minutes == 24.0
            assert [t.content_type for t in agg.tasks] == ["article"]
        finally:
            await store.close()

    asyncio.run(scenario())


def test_skill_decay_is_not_persisted(tmp_path):
    async def scenario() -> None:
        store = NeuroStore(tmp_path / "engine.db")
        engine = CognitiveEngine(store)
        try:
            await engine.recorder.record_game_session("u1", "S2-CT", 70.0, 20.0, now=NOW - timedelta(days=40))
            board = await engine.dashboard("u1", NOW)
            assert board.skill_decay == 1.0
            assert board.decay_applied
            assert board.skills.ct == 59.0
            assert board.skills.ae == 49.0
            assert (await store.get_skill_state("u1")).ct == 60.0
        finally:
            await store.close()

    asyncio.run(scenario())


def test_persist_snapshot_roundtrip(tmp_path):
    async def scenario() -> None:
        store = NeuroStore(tmp_path / "engine.db")
        engine = CognitiveEngine(store)
        try:
            await engine.ensure_user("u1", plan_id="expert", chrono_age=38)
            await engine.recorder.record_recovery_session("u1", 60, now=NOW)
            snapshot = await engine.persist_snapshot("u1", NOW)
            assert snapshot.date == "2026-05-06"
            assert await store.get_snapshot("u1", "2026-05-06") == snapshot
            assert snapshot.cognitive_age is not None
            assert 23.0 <= snapshot.cognitive_age <= 53.0

            # second pass on the same day replaces the row
            await engine.persist_snapshot("u1", NOW + timedelta(hours=1))
            assert len(await store.list_snapshots("u1")) == 1
        finally:
            await store.close()

    asyncio.run(scenario())


def test_gates_and_difficulty_through_the_engine(tmp_path):
    async def scenario() -> None:
        store = NeuroStore(tmp_path / "engine.db")
        engine = CognitiveEngine(store)
        try:
            await engine.ensure_user("u1", plan_id="superhuman")
            decisions = await engine.evaluate_games("u1", NOW)
            assert set(decisions) == {"S1-AE", "S1-RA", "S2-CT", "S2-IN"}

            content = await engine.evaluate_content("u1", NOW)
            assert len(content.all_items) == len(engine.catalog)

            advice = await engine.advise_difficulty("u1", NOW)
            assert advice.recommended not in advice.locked

            assert await engine.training_capacity("u1") == 50.0
            updated = await engine.update_training_capacity("u1", NOW)
            assert (await store.get_profile("u1")).training_capacity == updated
        finally:
            await store.close()

    asyncio.run(scenario())


def test_snapshot_date_is_the_utc_day(tmp_path):
    async def scenario() -> None:
        store = NeuroStore(tmp_path / "engine.db")
        engine = CognitiveEngine(store)
        try:
            local = datetime(2026, 5, 7, 1, 0, tzinfo=timezone(timedelta(hours=2)))
            snapshot = await engine.persist_snapshot("u1", local)
            assert snapshot.date == "2026-05-06"
        finally:
            await store.close()

    asyncio.run(scenario())
