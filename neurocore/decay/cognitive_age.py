"""Cognitive Age: chronological age shifted by performance against baseline.

Two paths:

* **calibrated** — improvement is the 180-day performance (falling back to
  90 and 30 days, then today's value) minus the effective baseline; the
  accumulated regression penalty is added on top.
* **live / uncalibrated** — improvement is today's performance minus the
  neutral population constant, so new users see an age from day one.

Both are scaled by the RQ multiplier and bounded to ``chrono ± 15`` years.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date

from neurocore.baseline.calibrator import effective_baseline_score
from neurocore.decay.tracker import (
    PaceOfAging,
    RegressionState,
    evaluate_regression,
    pace_of_aging,
    rolling_average,
)
from neurocore.defaults import (
    BASELINE_DEFAULT_CHRONO_AGE,
    BASELINE_NEUTRAL_SCORE,
    COGNITIVE_AGE_MAX_OFFSET_YEARS,
    COGNITIVE_AGE_POINTS_PER_YEAR,
    ENGAGEMENT_SESSIONS_TARGET_30D,
    RQ_MULTIPLIER_MIN,
    RQ_MULTIPLIER_SPAN,
)
from neurocore.models import Baseline
from neurocore.scoring.daily import DailyPerformance
from neurocore.utils.math import clamp, round1


@dataclass(slots=True)
class CognitiveAgeResult:
    age: float
    chrono_age: float
    is_calibrated: bool
    improvement: float
    rq_multiplier: float
    pace: PaceOfAging
    regression: RegressionState
    engagement_index: float
    perf_30d: float | None = None
    perf_180d: float | None = None

    @property
    def delta_years(self) -> float:
        return round1(self.age - self.chrono_age)

    def to_dict(self) -> dict:
        return {
            "age": round1(self.age),
            "chrono_age": self.chrono_age,
            "delta_years": self.delta_years,
            "is_calibrated": self.is_calibrated,
            "improvement": round1(self.improvement),
            "rq_multiplier": round(self.rq_multiplier, 3),
            "pace": self.pace.to_dict(),
            "regression": self.regression.to_dict(),
            "engagement_index": round(self.engagement_index, 2),
            "perf_30d": round1(self.perf_30d) if self.perf_30d is not None else None,
            "perf_180d": round1(self.perf_180d) if self.perf_180d is not None else None,
        }


def rq_multiplier(rq: float | None) -> float:
    if rq is None:
        return RQ_MULTIPLIER_MIN
    return clamp(RQ_MULTIPLIER_MIN + RQ_MULTIPLIER_SPAN * rq / 100, RQ_MULTIPLIER_MIN, 1.0)


def engagement_index(sessions_30d: int) -> float:
    return clamp(sessions_30d / ENGAGEMENT_SESSIONS_TARGET_30D, 0.0, 1.0)


def compute_cognitive_age(
    series: list[DailyPerformance],
    *,
    today: date,
    current_performance: float,
    baseline: Baseline | None = None,
    chrono_age: float | None = None,
    rq: float | None = None,
    sessions_30d: int = 0,
    demographic: float | None = None,
) -> CognitiveAgeResult:
    if chrono_age is None:
        chrono_age = baseline.chrono_age if baseline is not None else BASELINE_DEFAULT_CHRONO_AGE

    calibrated = baseline is not None and baseline.is_calibrated
    perf_30 = rolling_average(series, today, 30)
    perf_90 = rolling_average(series, today, 90)
    perf_180 = rolling_average(series, today, 180)
    mult = rq_multiplier(rq)

    if calibrated:
        reference = effective_baseline_score(baseline, demographic)
        long_term = next(
            (p for p in (perf_180, perf_90, perf_30) if p is not None),
            current_performance,
        )
        improvement = long_term - reference
        regression = evaluate_regression(series, baseline.baseline_score)
    else:
        improvement = current_performance - BASELINE_NEUTRAL_SCORE
        regression = evaluate_regression(series, None)

    raw_age = (
        chrono_age
        - improvement / COGNITIVE_AGE_POINTS_PER_YEAR * mult
        + regression.penalty_years
    )
    age = clamp(
        raw_age,
        chrono_age - COGNITIVE_AGE_MAX_OFFSET_YEARS,
        chrono_age + COGNITIVE_AGE_MAX_OFFSET_YEARS,
    )
    return CognitiveAgeResult(
        age=round1(age),
        chrono_age=chrono_age,
        is_calibrated=calibrated,
        improvement=improvement,
        rq_multiplier=mult,
        pace=pace_of_aging(perf_30, perf_180),
        regression=regression,
        engagement_index=engagement_index(sessions_30d),
        perf_30d=perf_30,
        perf_180d=perf_180,
    )
