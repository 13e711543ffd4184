"""BaselineCalibrator — the per-user zero point for aging and regression.

The baseline is the mean 4-skill daily average (and mean RQ) over the first
21 days that carry data.  Below 7 days nothing is reported; between 7 and
21 a provisional, uncalibrated baseline is exposed for display only.
Cognitive Age keeps using the neutral population constant until the
baseline is calibrated.

A calibrated baseline is stored once and only recomputed by
:meth:`BaselineCalibrator.recalibrate`.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date, datetime, timedelta
from typing import TYPE_CHECKING, Literal

from neurocore.defaults import (
    BASELINE_CALIBRATED_SHARE,
    BASELINE_CALIBRATION_DAYS,
    BASELINE_DEFAULT_CHRONO_AGE,
    BASELINE_MIN_DAYS,
    BASELINE_NEUTRAL_SCORE,
    DEMOGRAPHIC_AGE_ADJUSTMENT_OLDER,
    DEMOGRAPHIC_AGE_ADJUSTMENTS,
    DEMOGRAPHIC_CENTER,
    DEMOGRAPHIC_EDUCATION_ADJUSTMENTS,
    DEMOGRAPHIC_RANGE,
    DEMOGRAPHIC_WORK_BONUS,
    DEMOGRAPHIC_WORK_BONUS_TYPES,
)
from neurocore.models import Baseline
from neurocore.scoring.daily import DailyPerformance, daily_performance_series, days_with_data
from neurocore.utils.math import clamp, mean
from neurocore.utils.retry import with_retry
from neurocore.windows import as_utc

if TYPE_CHECKING:
    from neurocore.storage.store import NeuroStore

logger = logging.getLogger(__name__)

BaselineStatus = Literal["not_enough_data", "calibrating", "calibrated"]

# Calibration reads at most this much history.
_HISTORY_DAYS = 365


@dataclass(slots=True)
class BaselineResult:
    status: BaselineStatus
    days_with_data: int
    baseline: Baseline | None

    @property
    def is_calibrated(self) -> bool:
        return self.status == "calibrated"

    def to_dict(self) -> dict:
        return {
            "status": self.status,
            "days_with_data": self.days_with_data,
            "days_required": BASELINE_CALIBRATION_DAYS,
            "baseline": self.baseline.to_dict() if self.baseline else None,
        }


def compute_baseline(
    user_id: str,
    series: list[DailyPerformance],
    chrono_age: float | None = None,
) -> BaselineResult:
    days = days_with_data(series)
    n = len(days)
    if n < BASELINE_MIN_DAYS:
        return BaselineResult(status="not_enough_data", days_with_data=n, baseline=None)

    window = days[:BASELINE_CALIBRATION_DAYS]
    score = mean(d.average for d in window if d.average is not None)
    rq = mean(d.rq for d in window if d.rq is not None)
    calibrated = n >= BASELINE_CALIBRATION_DAYS
    baseline = Baseline(
        user_id=user_id,
        baseline_score=round(score if score is not None else BASELINE_NEUTRAL_SCORE, 2),
        baseline_rq=round(rq, 2) if rq is not None else None,
        chrono_age=chrono_age if chrono_age is not None else BASELINE_DEFAULT_CHRONO_AGE,
        is_calibrated=calibrated,
        calibration_days=len(window),
    )
    return BaselineResult(
        status="calibrated" if calibrated else "calibrating",
        days_with_data=n,
        baseline=baseline,
    )


def demographic_baseline(
    age: float | None,
    education: str | None = None,
    work_type: str | None = None,
) -> float:
    """Population prior for the baseline, bounded to a narrow band around 50."""
    value = DEMOGRAPHIC_CENTER
    if age is not None:
        for limit, adjustment in DEMOGRAPHIC_AGE_ADJUSTMENTS:
            if age <= limit:
                value += adjustment
                break
        else:
            value += DEMOGRAPHIC_AGE_ADJUSTMENT_OLDER
    if education:
        value += DEMOGRAPHIC_EDUCATION_ADJUSTMENTS.get(education.lower(), 0.0)
    if work_type and work_type.lower() in DEMOGRAPHIC_WORK_BONUS_TYPES:
        value += DEMOGRAPHIC_WORK_BONUS
    low, high = DEMOGRAPHIC_RANGE
    return clamp(value, low, high)


def effective_baseline_score(baseline: Baseline | None, demographic: float | None = None) -> float:
    """Zero point used by Cognitive Age.

    Uncalibrated users get the neutral constant.  A calibrated baseline is
    blended 70/30 with the demographic prior when one is known.
    """
    if baseline is None or not baseline.is_calibrated:
        return BASELINE_NEUTRAL_SCORE
    if demographic is None:
        return baseline.baseline_score
    return (
        BASELINE_CALIBRATED_SHARE * baseline.baseline_score
        + (1 - BASELINE_CALIBRATED_SHARE) * demographic
    )


class BaselineCalibrator:
    """Loads history from the store and persists the calibrated baseline."""

    def __init__(self, store: NeuroStore) -> None:
        self.store = store

    async def history(self, user_id: str, now: datetime) -> list[DailyPerformance]:
        since = as_utc(now) - timedelta(days=_HISTORY_DAYS)
        records = await self.store.list_activity(
            user_id, start=since.isoformat(), kind="game-session"
        )
        snapshots = await self.store.list_snapshots(user_id, since=since.date().isoformat())
        rq_by_day = {date.fromisoformat(s.date): s.reasoning_quality for s in snapshots}
        return daily_performance_series(records, rq_by_day)

    async def evaluate(self, user_id: str, now: datetime, chrono_age: float | None = None) -> BaselineResult:
        """Stored calibrated baseline if present, else compute (and store once calibrated)."""
        stored = await self.store.get_baseline(user_id)
        if stored is not None and stored.is_calibrated:
            return BaselineResult(
                status="calibrated",
                days_with_data=stored.calibration_days,
                baseline=stored,
            )

        result = compute_baseline(user_id, await self.history(user_id, now), chrono_age)
        if result.is_calibrated and result.baseline is not None:
            await self._save(result.baseline)
            logger.info(
                "Baseline calibrated user=%s score=%.1f days=%d",
                user_id,
                result.baseline.baseline_score,
                result.days_with_data,
            )
        return result

    async def recalibrate(self, user_id: str, now: datetime, chrono_age: float | None = None) -> BaselineResult:
        """Recompute from full history and overwrite whatever is stored."""
        stored = await self.store.get_baseline(user_id)
        if chrono_age is None and stored is not None:
            chrono_age = stored.chrono_age
        result = compute_baseline(user_id, await self.history(user_id, now), chrono_age)
        if result.baseline is not None:
            result.baseline.captured_at = as_utc(now).isoformat()
            await self._save(result.baseline)
        return result

    async def _save(self, baseline: Baseline) -> None:
        await with_retry(lambda: self.store.save_baseline(baseline), name="save_baseline")
