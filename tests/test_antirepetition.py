import asyncio
import sqlite3
from datetime import datetime, timedelta, timezone
from typing import Any, cast

import pytest

from neurocore.antirepetition.engine import (
    AntiRepetitionEngine,
    ComboParams,
    combo_hash,
    is_near_duplicate,
    similarity,
    validate_combo,
)
from neurocore.models import ComboHashRecord
from neurocore.storage.store import NeuroStore

NOW = datetime(2026, 4, 8, 10, 0, tzinfo=timezone.utc)


def _params(stimuli=("a", "b", "c", "d"), difficulty="easy", tempo=800.0, rule=None) -> ComboParams:
    return ComboParams(
        stimulus_ids=list(stimuli),
        difficulty=difficulty,
        distractor_set=["x"],
        temporal_params={"tempo_ms": tempo},
        rule_params=rule or {},
    )


def _record(params: ComboParams, created_at: datetime) -> ComboHashRecord:
    return ComboHashRecord(
        user_id="u1",
        game_name="S1-AE",
        combo_hash=combo_hash(params),
        difficulty=params.difficulty,
        params=params.to_dict(),
        created_at=created_at.isoformat(),
    )


def test_combo_hash_is_order_independent():
    first = combo_hash(_params(("a", "b", "c", "d")))
    second = combo_hash(_params(("d", "c", "b", "a")))
    assert first == second
    assert first.startswith("E")
    assert len(first) == 17
    assert combo_hash(_params(difficulty="hard")) != first


def test_similarity_rule():
    base = _params()
    assert similarity(base, _params(tempo=820.0)) == pytest.approx(1.0)
    assert is_near_duplicate(base, _params(tempo=820.0))
    other = ComboParams(["e", "f", "g", "h"], "easy", ["y"], {"tempo_ms": 1200.0}, {"mode": "b"})
    assert similarity(base, other) == 0.0
    assert not is_near_duplicate(base, _params(difficulty="hard"))
    assert is_near_duplicate(base, _params(tempo=1200.0), threshold=0.8)
    assert not is_near_duplicate(base, _params(tempo=1200.0), threshold=0.9)


def test_validate_combo_reasons():
    yesterday = NOW - timedelta(days=1)
    target = _params()
    others = [
        _record(ComboParams([f"s{i}", f"t{i}"], "easy", [], {}, {"n": i}), yesterday)
        for i in range(2)
    ]
    recent = [*others, _record(target, yesterday)]

    assert validate_combo(combo_hash(target), target, recent, "S1", NOW) == "recent_session"
    assert validate_combo(combo_hash(target), target, recent, "S2", NOW) == "near_duplicate"

    today = [_record(target, NOW - timedelta(hours=1))]
    assert validate_combo(combo_hash(target), target, today, "S2", NOW) == "exact_duplicate_today"

    fresh = _params(("p", "q", "r", "s"), tempo=1500.0, rule={"mode": "z"})
    assert validate_combo(combo_hash(fresh), fresh, recent, "S1", NOW) is None


def test_same_signature_twice_falls_back(tmp_path):
    async def scenario() -> None:
        store = NeuroStore(tmp_path / "combos.db")
        engine = AntiRepetitionEngine(store)
        try:
            calls: list[int] = []

            def generator(attempt: int) -> dict:
                calls.append(attempt)
                return {"stimuli": ["a", "b", "c"]}

            def params_of(session: dict) -> ComboParams:
                return ComboParams(session["stimuli"], "medium")

            first = await engine.generate_session("u1", "S2-CT", "S2", generator, params_of, now=NOW)
            assert first.state == "accepted"
            assert not first.fallback_used
            assert first.duplicates_rejected == 0

            second = await engine.generate_session("u1", "S2-CT", "S2", generator, params_of, now=NOW)
            assert second.duplicates_rejected >= 1
            assert second.fallback_used
            assert second.state == "fallback-accepted"
            assert second.duplicates_rejected == engine.max_attempts
            assert second.combo_hash == first.combo_hash
            assert len(calls) == 1 + engine.max_attempts

            history = await store.get_recent_combos("u1", "S2-CT")
            assert len(history) == 2
            assert history[0].fallback_used or history[1].fallback_used
        finally:
            await store.close()

    asyncio.run(scenario())


def test_regenerates_until_fresh(tmp_path):
    async def scenario() -> None:
        store = NeuroStore(tmp_path / "combos.db")
        engine = AntiRepetitionEngine(store)
        try:
            def generator(attempt: int) -> list[str]:
                return ["a", "b"] if attempt == 0 else [f"n{attempt}", "m"]

            def params_of(session: list[str]) -> ComboParams:
                return ComboParams(session, "easy")

            await engine.generate_session("u1", "S1-RA", "S1", lambda _: ["a", "b"], params_of, now=NOW)
            result = await engine.generate_session("u1", "S1-RA", "S1", generator, params_of, now=NOW)
            assert result.state == "accepted"
            assert result.session == ["n1", "m"]
            assert result.duplicates_rejected == 1
            assert result.rejections == ["exact_duplicate_today"]
        finally:
            await store.close()

    asyncio.run(scenario())


class _BrokenComboStore:
    def __init__(self) -> None:
        self.insert_calls = 0

    async def get_recent_combos(self, user_id, game_name, *, since=None, limit=10):
        return []

    async def insert_combo_hash(self, record):
        self.insert_calls += 1
        raise sqlite3.OperationalError("database is locked")


def test_record_failure_does_not_fail_session():
    async def scenario() -> None:
        store = _BrokenComboStore()
        engine = AntiRepetitionEngine(cast(Any, store))
        result = await engine.generate_session(
            "u1",
            "S1-AE",
            "S1",
            lambda attempt: ["a"],
            lambda session: ComboParams(session, "easy"),
            now=NOW,
        )
        assert result.state == "accepted"
        assert store.insert_calls == 3

    asyncio.run(scenario())


class _ClosedComboStore(_BrokenComboStore):
    async def insert_combo_hash(self, record):
        self.insert_calls += 1
        raise ValueError("Connection closed")


def test_unexpected_record_error_is_logged_not_raised(caplog):
    async def scenario() -> None:
        store = _ClosedComboStore()
        engine = AntiRepetitionEngine(cast(Any, store))
        result = await engine.generate_session(
            "u1",
            "S2-IN",
            "S2",
            lambda attempt: ["a", "b"],
            lambda session: ComboParams(session, "hard"),
            now=NOW,
        )
        assert result.state == "accepted"
        assert store.insert_calls == 1

    with caplog.at_level("WARNING", logger="neurocore.antirepetition.engine"):
        asyncio.run(scenario())
    assert "Connection closed" in caplog.text


def test_combo_created_at_is_stored_in_utc(tmp_path):
    async def scenario() -> None:
        store = NeuroStore(tmp_path / "combos.db")
        engine = AntiRepetitionEngine(store)
        try:
            local = datetime(2026, 4, 8, 1, 0, tzinfo=timezone(timedelta(hours=2)))
            await engine.generate_session(
                "u1", "S1-AE", "S1", lambda _: ["a"], lambda s: ComboParams(s, "easy"), now=local
            )
            [stored] = await store.get_recent_combos("u1", "S1-AE")
            assert stored.created_at == "2026-04-07T23:00:00+00:00"
        finally:
            await store.close()

    asyncio.run(scenario())
