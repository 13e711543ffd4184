"""DecayAndRegressionTracker — inactivity decay, regression streaks, pace.

Every function here is re-evaluated from raw history: there are no hidden
counters, so replaying the daily series after a missed update gives exactly
the streak and penalty a continuous daily evaluation would have produced.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime, timedelta

from neurocore.defaults import (
    NETWORK_DECAY_MAX_WEEKLY,
    NETWORK_LOW_RECOVERY_DECAY,
    NETWORK_NO_TRAINING_DAYS,
    NETWORK_NO_TRAINING_DECAY,
    LOW_RECOVERY_THRESHOLD,
    PACE_FASTER_ABOVE,
    PACE_POINTS_PER_UNIT,
    PACE_RANGE,
    PACE_SLOWER_BELOW,
    READINESS_DECAY_INITIAL_POINTS,
    READINESS_DECAY_MAX_WEEKLY,
    READINESS_DECAY_PER_DAY_POINTS,
    READINESS_DECAY_TRIGGER_DAYS,
    REGRESSION_DROP_POINTS,
    REGRESSION_HIGH_DAYS,
    REGRESSION_MEDIUM_DAYS,
    REGRESSION_PENALTY_CAP_YEARS,
    REGRESSION_PENALTY_YEARS,
    ROLLING_MIN_VALUES_CAP,
    ROLLING_MIN_VALUES_DIVISOR,
    RQ_DECAY_FLOOR_OFFSET,
    RQ_DECAY_GRACE_DAYS,
    RQ_DECAY_POINTS_PER_WEEK,
    SKILL_DECAY_BASE_POINTS,
    SKILL_DECAY_INTERVAL_DAYS,
    SKILL_DECAY_INTERVAL_POINTS,
    SKILL_DECAY_MAX_POINTS,
    SKILL_DECAY_THRESHOLD_DAYS,
)
from neurocore.models import RegressionRisk
from neurocore.scoring.daily import DailyPerformance
from neurocore.utils.math import clamp, mean, round1
from neurocore.windows import days_between


# ── RQ inactivity decay ──────────────────────────────────────────


@dataclass(slots=True)
class RQDecayResult:
    value: float
    base: float
    decay: float
    floor: float
    inactive_days: int | None

    @property
    def is_decaying(self) -> bool:
        return self.decay > 0

    def to_dict(self) -> dict:
        return {
            "value": round1(self.value),
            "base": round1(self.base),
            "decay": self.decay,
            "floor": round1(self.floor),
            "inactive_days": self.inactive_days,
            "is_decaying": self.is_decaying,
        }


def rq_inactive_days(
    last_s2_game_at: datetime | None,
    last_task_at: datetime | None,
    now: datetime,
) -> int | None:
    """Days since the latest S2 game or content task; ``None`` if neither ever happened."""
    moments = [m for m in (last_s2_game_at, last_task_at) if m is not None]
    if not moments:
        return None
    return days_between(max(moments), now)


def rq_decay_points(inactive_days: int | None) -> float:
    if inactive_days is None or inactive_days < RQ_DECAY_GRACE_DAYS:
        return 0.0
    weeks = (inactive_days - RQ_DECAY_GRACE_DAYS) // 7 + 1
    return RQ_DECAY_POINTS_PER_WEEK * weeks


def rq_floor(s2_core: float) -> float:
    return max(0.0, s2_core - RQ_DECAY_FLOOR_OFFSET)


def apply_rq_decay(base_rq: float, s2_core: float, inactive_days: int | None) -> RQDecayResult:
    """Subtract inactivity decay, then re-apply the ``S2_Core - 10`` floor."""
    decay = rq_decay_points(inactive_days)
    floor = rq_floor(s2_core)
    value = clamp(base_rq - decay, floor, 100.0)
    return RQDecayResult(
        value=round1(value),
        base=base_rq,
        decay=decay,
        floor=floor,
        inactive_days=inactive_days,
    )


# ── Regression streak & penalty ──────────────────────────────────


@dataclass(slots=True)
class RegressionState:
    streak: int
    risk: RegressionRisk
    penalty_years: float
    threshold: float | None
    last_penalty_day: date | None = None

    @property
    def days_to_regression(self) -> int | None:
        """Days left before the high-risk streak when a warning is due."""
        if REGRESSION_MEDIUM_DAYS <= self.streak < REGRESSION_HIGH_DAYS:
            return REGRESSION_HIGH_DAYS - self.streak
        return None

    @property
    def warning(self) -> bool:
        return self.days_to_regression is not None

    def to_dict(self) -> dict:
        return {
            "streak": self.streak,
            "risk": self.risk,
            "penalty_years": self.penalty_years,
            "threshold": round1(self.threshold) if self.threshold is not None else None,
            "warning": self.warning,
            "days_to_regression": self.days_to_regression,
            "last_penalty_day": self.last_penalty_day.isoformat() if self.last_penalty_day else None,
        }


def regression_risk(streak: int) -> RegressionRisk:
    if streak >= REGRESSION_HIGH_DAYS:
        return "high"
    if streak >= REGRESSION_MEDIUM_DAYS:
        return "medium"
    return "low"


def evaluate_regression(series: list[DailyPerformance], baseline_score: float | None) -> RegressionState:
    """Replay the daily series against ``baseline - 10``.

    Days without an average neither extend nor break the streak.  The
    penalty grows by one year on a high-risk day at most once per calendar
    month and never beyond ``REGRESSION_PENALTY_CAP_YEARS``.
    """
    if baseline_score is None:
        return RegressionState(streak=0, risk="low", penalty_years=0.0, threshold=None)

    threshold = baseline_score - REGRESSION_DROP_POINTS
    streak = 0
    penalty = 0.0
    last_penalty: date | None = None

    for day in sorted(series, key=lambda d: d.day):
        if day.average is None:
            continue
        if day.average <= threshold:
            streak += 1
        else:
            streak = 0
            continue

        if streak >= REGRESSION_HIGH_DAYS and penalty < REGRESSION_PENALTY_CAP_YEARS:
            same_month = (
                last_penalty is not None
                and (last_penalty.year, last_penalty.month) == (day.day.year, day.day.month)
            )
            if not same_month:
                penalty = min(REGRESSION_PENALTY_CAP_YEARS, penalty + REGRESSION_PENALTY_YEARS)
                last_penalty = day.day

    return RegressionState(
        streak=streak,
        risk=regression_risk(streak),
        penalty_years=penalty,
        threshold=threshold,
        last_penalty_day=last_penalty,
    )


# ── Rolling performance & pace of aging ──────────────────────────


def rolling_average(series: list[DailyPerformance], today: date, days: int) -> float | None:
    """Mean daily average over the last *days* days ending *today*.

    Needs ``min(10, days // 3)`` valid values (at least one), else ``None``.
    """
    start = today - timedelta(days=days - 1)
    values = [d.average for d in series if d.average is not None and start <= d.day <= today]
    required = max(1, min(ROLLING_MIN_VALUES_CAP, days // ROLLING_MIN_VALUES_DIVISOR))
    if len(values) < required:
        return None
    return mean(values)


@dataclass(slots=True)
class PaceOfAging:
    value: float
    band: str

    def to_dict(self) -> dict:
        return {"value": round(self.value, 2), "band": self.band}


def pace_band(value: float) -> str:
    if value < PACE_SLOWER_BELOW:
        return "aging slower"
    if value > PACE_FASTER_ABOVE:
        return "aging faster"
    return "stable"


def pace_of_aging(perf_30d: float | None, perf_180d: float | None) -> PaceOfAging:
    """1.0 means stable; improving recent performance pushes it below 1."""
    if perf_30d is None or perf_180d is None:
        return PaceOfAging(value=1.0, band="stable")
    low, high = PACE_RANGE
    value = clamp(1 - (perf_30d - perf_180d) / PACE_POINTS_PER_UNIT, low, high)
    return PaceOfAging(value=value, band=pace_band(value))


# ── Skill / readiness / network decay ────────────────────────────


def skill_decay_points(days_since_last_xp: int | None) -> float:
    if days_since_last_xp is None or days_since_last_xp < SKILL_DECAY_THRESHOLD_DAYS:
        return 0.0
    intervals = (days_since_last_xp - SKILL_DECAY_THRESHOLD_DAYS) // SKILL_DECAY_INTERVAL_DAYS
    return min(SKILL_DECAY_MAX_POINTS, SKILL_DECAY_BASE_POINTS + intervals * SKILL_DECAY_INTERVAL_POINTS)


def consecutive_low_recovery_days(daily_recovery: list[float]) -> int:
    """Trailing run of days (oldest first input) below the low-recovery line."""
    run = 0
    for value in reversed(daily_recovery):
        if value >= LOW_RECOVERY_THRESHOLD:
            break
        run += 1
    return run


def readiness_decay(consecutive_low_rec_days: int, applied_this_week: float = 0.0) -> float:
    remaining = READINESS_DECAY_MAX_WEEKLY - applied_this_week
    if remaining <= 0 or consecutive_low_rec_days < READINESS_DECAY_TRIGGER_DAYS:
        return 0.0
    extra_days = consecutive_low_rec_days - READINESS_DECAY_TRIGGER_DAYS
    total = READINESS_DECAY_INITIAL_POINTS + extra_days * READINESS_DECAY_PER_DAY_POINTS
    return min(total, remaining)


def network_decay(recovery: float, days_since_training: int | None, applied_this_week: float = 0.0) -> float:
    remaining = NETWORK_DECAY_MAX_WEEKLY - applied_this_week
    if remaining <= 0:
        return 0.0
    decay = 0.0
    if recovery < LOW_RECOVERY_THRESHOLD:
        decay += NETWORK_LOW_RECOVERY_DECAY
    if days_since_training is not None and days_since_training >= NETWORK_NO_TRAINING_DAYS:
        decay += NETWORK_NO_TRAINING_DECAY
    return min(decay, remaining)
