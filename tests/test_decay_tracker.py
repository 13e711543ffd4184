from datetime import date, datetime, timedelta, timezone

from neurocore.decay.tracker import (
    apply_rq_decay,
    consecutive_low_recovery_days,
    evaluate_regression,
    network_decay,
    pace_of_aging,
    readiness_decay,
    rolling_average,
    rq_decay_points,
    rq_inactive_days,
    skill_decay_points,
)
from neurocore.defaults import REGRESSION_PENALTY_CAP_YEARS
from neurocore.scoring.daily import DailyPerformance

START = date(2026, 1, 1)


def _series(averages: list[float | None], start: date = START) -> list[DailyPerformance]:
    return [
        DailyPerformance(day=start + timedelta(days=i), average=value, skills_played=4)
        for i, value in enumerate(averages)
    ]


def test_rq_decay_grace_period_and_weekly_steps():
    assert rq_decay_points(None) == 0.0
    assert rq_decay_points(13) == 0.0
    assert rq_decay_points(14) == 2.0
    assert rq_decay_points(20) == 2.0
    assert rq_decay_points(21) == 4.0


def test_rq_never_falls_below_s2_core_minus_ten():
    for s2_core in (10.0, 35.0, 60.0, 100.0):
        for days in (0, 14, 30, 100, 1000):
            result = apply_rq_decay(base_rq=s2_core, s2_core=s2_core, inactive_days=days)
            assert result.value >= s2_core - 10
    low = apply_rq_decay(base_rq=4.0, s2_core=5.0, inactive_days=400)
    assert low.value == 0.0


def test_rq_inactivity_uses_latest_of_game_and_task():
    now = datetime(2026, 3, 1, tzinfo=timezone.utc)
    assert rq_inactive_days(None, None, now) is None
    days = rq_inactive_days(now - timedelta(days=20), now - timedelta(days=3), now)
    assert days == 3


def test_regression_streak_on_dip_and_recovery():
    # baseline 60 -> threshold 50; 5 good, 16 low, 1 good, 8 low
    averages = [62.0] * 5 + [45.0] * 16 + [58.0] + [48.0] * 8
    assert len(averages) == 30

    streaks = [evaluate_regression(_series(averages[: i + 1]), 60.0).streak for i in range(30)]
    assert streaks[:5] == [0] * 5
    assert streaks[5:21] == list(range(1, 17))
    assert streaks[21] == 0
    assert streaks[22:] == list(range(1, 9))

    peak = evaluate_regression(_series(averages[:21]), 60.0)
    assert peak.risk == "medium"
    assert peak.warning
    assert peak.days_to_regression == 5

    final = evaluate_regression(_series(averages), 60.0)
    assert final.risk == "low"
    assert final.penalty_years == 0.0


def test_days_without_average_do_not_touch_streak():
    averages = [40.0, None, 40.0, None, None, 40.0]
    state = evaluate_regression(_series(averages), 60.0)
    assert state.streak == 3


def test_regression_penalty_once_per_month_and_capped():
    # ten months of continuous regression
    state = evaluate_regression(_series([30.0] * 310), 60.0)
    assert state.risk == "high"
    assert state.penalty_years == REGRESSION_PENALTY_CAP_YEARS

    one_month = evaluate_regression(_series([30.0] * 28), 60.0)
    assert one_month.penalty_years == 1.0


def test_regression_is_replayable_from_history():
    averages = [45.0] * 25
    full = evaluate_regression(_series(averages), 60.0)
    again = evaluate_regression(list(reversed(_series(averages))), 60.0)
    assert full == again


def test_rolling_average_needs_enough_values():
    series = _series([60.0] * 5)
    today = START + timedelta(days=4)
    assert rolling_average(series, today, 7) == 60.0
    assert rolling_average(series, today, 30) is None


def test_pace_of_aging_bands():
    assert pace_of_aging(None, 50.0).band == "stable"
    assert pace_of_aging(55.0, 50.0).band == "aging slower"
    assert pace_of_aging(45.0, 50.0).band == "aging faster"
    assert pace_of_aging(50.5, 50.0).band == "stable"


def test_skill_decay_steps():
    assert skill_decay_points(None) == 0.0
    assert skill_decay_points(29) == 0.0
    assert skill_decay_points(30) == 1.0
    assert skill_decay_points(45) == 2.0
    assert skill_decay_points(200) == 3.0


def test_readiness_and_network_decay_caps():
    assert consecutive_low_recovery_days([50.0, 30.0, 20.0, 10.0]) == 3
    assert readiness_decay(2) == 0.0
    assert readiness_decay(3) == 5.0
    assert readiness_decay(5) == 9.0
    assert readiness_decay(20) == 15.0
    assert readiness_decay(5, applied_this_week=12.0) == 3.0

    assert network_decay(30.0, 10) == 10.0
    assert network_decay(60.0, 3) == 0.0
    assert network_decay(30.0, None, applied_this_week=8.0) == 2.0
