"""Per-day 4-skill performance series built from raw activity records.

The series is the common input of baseline calibration, regression
streaks and Cognitive Age; it is always rebuilt from ActivityRecord rows so
that recomputation gives the same result as continuous daily evaluation.
"""

from __future__ import annotations

from collections import defaultdict
from collections.abc import Iterable
from dataclasses import dataclass
from datetime import date

from neurocore.defaults import BASELINE_MIN_SKILLS_PER_DAY
from neurocore.models import ActivityRecord
from neurocore.utils.math import mean


@dataclass(slots=True)
class DailyPerformance:
    day: date
    average: float | None
    skills_played: int = 0
    rq: float | None = None


def daily_performance_series(
    records: Iterable[ActivityRecord],
    rq_by_day: dict[date, float] | None = None,
) -> list[DailyPerformance]:
    """Group completed game sessions by UTC day, oldest first.

    A day's average is the mean of its per-skill mean scores and is only
    set when at least two of AE/RA/CT/IN were played that day.
    """
    per_day: dict[date, dict[str, list[float]]] = defaultdict(lambda: defaultdict(list))
    for record in records:
        if record.kind != "game-session" or record.status != "completed":
            continue
        if record.skill is None or record.score is None:
            continue
        per_day[record.at.date()][record.skill].append(float(record.score))

    rq_by_day = rq_by_day or {}
    days = sorted(set(per_day) | set(rq_by_day))
    series: list[DailyPerformance] = []
    for day in days:
        skill_means = [m for m in (mean(v) for v in per_day.get(day, {}).values()) if m is not None]
        average = mean(skill_means) if len(skill_means) >= BASELINE_MIN_SKILLS_PER_DAY else None
        series.append(
            DailyPerformance(
                day=day,
                average=average,
                skills_played=len(skill_means),
                rq=rq_by_day.get(day),
            )
        )
    return series


def days_with_data(series: list[DailyPerformance]) -> list[DailyPerformance]:
    return [d for d in series if d.average is not None]
