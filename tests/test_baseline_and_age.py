import asyncio
from datetime import date, datetime, timedelta, timezone

import pytest

from neurocore.baseline.calibrator import (
    BaselineCalibrator,
    compute_baseline,
    demographic_baseline,
    effective_baseline_score,
)
from neurocore.decay.cognitive_age import compute_cognitive_age, rq_multiplier
from neurocore.models import ActivityRecord, Baseline
from neurocore.scoring.daily import DailyPerformance, daily_performance_series
from neurocore.storage.store import NeuroStore

START = date(2026, 1, 1)


def _series(values: list[float], start: date = START) -> list[DailyPerformance]:
    return [
        DailyPerformance(day=start + timedelta(days=i), average=v, skills_played=2)
        for i, v in enumerate(values)
    ]


def _game(user_id: str, skill_game: str, score: float, at: datetime) -> ActivityRecord:
    skill = {"S1-AE": "AE", "S1-RA": "RA", "S2-CT": "CT", "S2-IN": "IN"}[skill_game]
    return ActivityRecord(
        user_id=user_id,
        kind="game-session",
        timestamp=at.isoformat(),
        system_type="S2" if skill_game.startswith("S2") else "S1",
        skill=skill,
        game_type=skill_game,
        score=score,
        xp=10,
    )


def test_daily_series_needs_two_skills_per_day():
    day = datetime(2026, 2, 2, 9, tzinfo=timezone.utc)
    records = [
        _game("u1", "S1-AE", 60, day),
        _game("u1", "S1-AE", 80, day + timedelta(hours=1)),
        _game("u1", "S2-CT", 50, day + timedelta(hours=2)),
        _game("u1", "S1-AE", 90, day + timedelta(days=1)),
    ]
    series = daily_performance_series(records)
    assert [d.average for d in series] == [60.0, None]
    assert series[0].skills_played == 2


def test_baseline_status_by_days_with_data():
    assert compute_baseline("u1", _series([60.0] * 5)).status == "not_enough_data"

    calibrating = compute_baseline("u1", _series([60.0] * 10))
    assert calibrating.status == "calibrating"
    assert calibrating.baseline is not None
    assert not calibrating.baseline.is_calibrated

    # only the first 21 days count
    calibrated = compute_baseline("u1", _series([60.0] * 21 + [90.0] * 9), chrono_age=35)
    assert calibrated.status == "calibrated"
    assert calibrated.baseline.baseline_score == 60.0
    assert calibrated.baseline.calibration_days == 21
    assert calibrated.baseline.chrono_age == 35


def test_demographic_prior_and_effective_baseline():
    assert demographic_baseline(28, "phd", "technical") == 55.0
    assert demographic_baseline(70, "high_school", None) == 47.0
    assert demographic_baseline(None) == 50.0

    calibrated = Baseline("u1", baseline_score=60.0, baseline_rq=None, chrono_age=30, is_calibrated=True)
    assert effective_baseline_score(calibrated) == 60.0
    assert effective_baseline_score(calibrated, 55.0) == pytest.approx(58.5)
    uncalibrated = Baseline("u1", baseline_score=80.0, baseline_rq=None, chrono_age=30, is_calibrated=False)
    assert effective_baseline_score(uncalibrated, 55.0) == 50.0


def test_rq_multiplier_range():
    assert rq_multiplier(None) == 0.85
    assert rq_multiplier(0) == 0.85
    assert rq_multiplier(100) == 1.0


def test_cognitive_age_live_path_uses_neutral_constant():
    result = compute_cognitive_age(
        [],
        today=START,
        current_performance=70.0,
        chrono_age=30.0,
        rq=None,
    )
    # 30 - (70 - 50) / 10 * 0.85
    assert result.age == pytest.approx(28.3)
    assert not result.is_calibrated
    assert result.regression.penalty_years == 0.0


def test_cognitive_age_calibrated_path_uses_long_term_performance():
    series = _series([70.0] * 30)
    baseline = Baseline("u1", baseline_score=50.0, baseline_rq=None, chrono_age=40.0, is_calibrated=True)
    result = compute_cognitive_age(
        series,
        today=START + timedelta(days=29),
        current_performance=20.0,
        baseline=baseline,
        rq=100.0,
        sessions_30d=42,
    )
    assert result.is_calibrated
    assert result.chrono_age == 40.0
    assert result.age == pytest.approx(38.0)
    assert result.engagement_index == 1.0
    assert result.to_dict()["delta_years"] == -2.0


def test_cognitive_age_adds_regression_penalty_when_calibrated():
    series = _series([30.0] * 25)
    baseline = Baseline("u1", baseline_score=50.0, baseline_rq=None, chrono_age=30.0, is_calibrated=True)
    result = compute_cognitive_age(
        series,
        today=START + timedelta(days=24),
        current_performance=30.0,
        baseline=baseline,
        rq=100.0,
    )
    # 30 - (30 - 50) / 10 + 1 year penalty
    assert result.regression.risk == "high"
    assert result.age == pytest.approx(33.0)


def test_regression_threshold_uses_the_raw_baseline():
    series = _series([44.0] * 25)
    baseline = Baseline("u1", baseline_score=50.0, baseline_rq=None, chrono_age=30.0, is_calibrated=True)
    result = compute_cognitive_age(
        series,
        today=START + timedelta(days=24),
        current_performance=44.0,
        baseline=baseline,
        rq=100.0,
        demographic=70.0,
    )
    # blended zero point is 56, but regression is judged against 50 - 10
    assert result.regression.threshold == 40.0
    assert result.regression.risk == "low"
    assert result.improvement == pytest.approx(44.0 - 56.0)


def test_calibrator_stores_baseline_once_calibrated(tmp_path):
    async def scenario() -> None:
        store = NeuroStore(tmp_path / "baseline.db")
        calibrator = BaselineCalibrator(store)
        now = datetime(2026, 3, 1, 12, tzinfo=timezone.utc)
        try:
            for i in range(1, 22):
                day = now - timedelta(days=i)
                await store.insert_activity(_game("u1", "S1-AE", 60, day))
                await store.insert_activity(_game("u1", "S2-CT", 70, day + timedelta(minutes=5)))

            result = await calibrator.evaluate("u1", now, chrono_age=33)
            assert result.status == "calibrated"
            assert result.baseline.baseline_score == 65.0

            stored = await store.get_baseline("u1")
            assert stored is not None
            assert stored.is_calibrated
            assert stored.chrono_age == 33

            await store.insert_activity(_game("u1", "S1-RA", 10, now - timedelta(hours=1)))
            again = await calibrator.evaluate("u1", now)
            assert again.baseline.baseline_score == 65.0
        finally:
            await store.close()

    asyncio.run(scenario())


def test_calibrator_reports_not_enough_data(tmp_path):
    async def scenario() -> None:
        store = NeuroStore(tmp_path / "empty.db")
        try:
            result = await BaselineCalibrator(store).evaluate("nobody", datetime.now(timezone.utc))
            assert result.status == "not_enough_data"
            assert result.baseline is None
            assert await store.get_baseline("nobody") is None
        finally:
            await store.close()

    asyncio.run(scenario())


def test_recalibrate_overwrites_the_stored_baseline(tmp_path):
    async def scenario() -> None:
        store = NeuroStore(tmp_path / "baseline.db")
        calibrator = BaselineCalibrator(store)
        now = datetime(2026, 3, 1, 12, tzinfo=timezone.utc)
        try:
            for i in range(1, 22):
                day = now - timedelta(days=i)
                await store.insert_activity(_game("u1", "S1-AE", 60, day))
                await store.insert_activity(_game("u1", "S2-CT", 70, day + timedelta(minutes=5)))
            assert (await calibrator.evaluate("u1", now, chrono_age=33)).baseline.baseline_score == 65.0

            # older history imported after calibration
            for i in range(22, 31):
                day = now - timedelta(days=i)
                await store.insert_activity(_game("u1", "S1-AE", 40, day))
                await store.insert_activity(_game("u1", "S2-CT", 40, day + timedelta(minutes=5)))
            assert (await calibrator.evaluate("u1", now)).baseline.baseline_score == 65.0

            result = await calibrator.recalibrate("u1", now)
            assert result.status == "calibrated"
            # 9 days at 40 and 12 days at 65
            assert result.baseline.baseline_score == pytest.approx(54.29)
            assert result.days_with_data == 30

            stored = await store.get_baseline("u1")
            assert stored.baseline_score == pytest.approx(54.29)
            assert stored.chrono_age == 33
            assert stored.captured_at == now.isoformat()
        finally:
            await store.close()

    asyncio.run(scenario())
