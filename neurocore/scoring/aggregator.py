"""ScoreAggregator — composite indices from skills and activity aggregates.

Everything here is pure: the same inputs always give the same outputs and
nothing touches the store.  Each sub-score is clamped on its own before it
is combined, so one runaway term cannot drag a composite out of [0, 100].

Missing inputs are resolved once, at this boundary, through
:data:`FALLBACK_POLICY` rather than being defaulted at every call site.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timedelta

from neurocore.defaults import (
    BASELINE_NEUTRAL_SCORE,
    NETWORK_LEVEL_FLOOR,
    NETWORK_LEVELS,
    NETWORK_WEIGHT_ENGAGEMENT,
    NETWORK_WEIGHT_PERFORMANCE,
    NETWORK_WEIGHT_RECOVERY,
    PHYSIO_HRV_RANGE_MS,
    PHYSIO_RESTING_HR_RANGE,
    PHYSIO_SLEEP_DURATION_SHARE,
    PHYSIO_SLEEP_EFFICIENCY_RANGE,
    PHYSIO_SLEEP_MINUTES_RANGE,
    PHYSIO_WEIGHT_HRV,
    PHYSIO_WEIGHT_RESTING_HR,
    PHYSIO_WEIGHT_SLEEP,
    READINESS_COGNITIVE_WEIGHTS,
    READINESS_PHYSIO_SHARE,
    READINESS_WEIGHT_AE,
    READINESS_WEIGHT_REC,
    READINESS_WEIGHT_S2,
    RQ_CONSISTENCY_MIN_SAMPLES,
    RQ_CONSISTENCY_NEUTRAL,
    RQ_CONSISTENCY_STD_SCALE,
    RQ_CONSISTENCY_WINDOW,
    RQ_CUSTOM_MINUTES_FOR_FULL,
    RQ_CUSTOM_SHARE,
    RQ_TASK_EXTRA_ITEM_FACTOR,
    RQ_TASK_FULL_ITEMS,
    RQ_TASK_POINTS_PER_ITEM,
    RQ_TASK_RECENCY_FLOOR,
    RQ_TASK_RECENCY_STEP,
    RQ_TASK_WEIGHTS,
    RQ_TASK_WINDOW_DAYS,
    RQ_WEIGHT_CONSISTENCY,
    RQ_WEIGHT_PRIMING,
    RQ_WEIGHT_S2_CORE,
    SHARPNESS_REC_BASE,
    SHARPNESS_REC_SPAN,
    SHARPNESS_WEIGHT_S1,
    SHARPNESS_WEIGHT_S2,
    WALK_RECOVERY_FACTOR,
)
from neurocore.models import SkillState
from neurocore.plans import PlanConfig
from neurocore.utils.math import checked_clamp, clamp, pstdev, round1

# Documented fallback for every optional metric consumed by the aggregator.
FALLBACK_POLICY: dict[str, float] = {
    "weekly_game_xp": 0.0,
    "weekly_detox_minutes": 0.0,
    "weekly_walk_minutes": 0.0,
    "baseline_score": BASELINE_NEUTRAL_SCORE,
    "s2_consistency": RQ_CONSISTENCY_NEUTRAL,
    "task_priming": 0.0,
}


def resolve(name: str, value: float | None) -> float:
    """Return *value* or the documented fallback for metric *name*."""
    if value is None:
        return FALLBACK_POLICY[name]
    return float(value)


@dataclass(slots=True)
class TaskCompletion:
    content_type: str
    completed_at: datetime


@dataclass(slots=True)
class ActivityAggregates:
    """Windowed sums read from ActivityRecord; ``None`` means unknown."""

    weekly_game_xp: float | None = None
    weekly_detox_minutes: float | None = None
    weekly_walk_minutes: float | None = None
    s2_scores: list[float] = field(default_factory=list)
    tasks: list[TaskCompletion] = field(default_factory=list)
    custom_weighted_minutes: float | None = None
    physio_score: float | None = None


@dataclass(slots=True)
class NetworkIndexResult:
    total: float
    cognitive_performance: float
    behavioral_engagement: float
    recovery_factor: float
    dual_process_balance: float

    @property
    def level(self) -> str:
        return network_level(self.total)

    def to_dict(self) -> dict:
        return {
            "total": round1(self.total),
            "level": self.level,
            "cognitive_performance": round1(self.cognitive_performance),
            "behavioral_engagement": round1(self.behavioral_engagement),
            "recovery_factor": round1(self.recovery_factor),
            "dual_process_balance": round1(self.dual_process_balance),
        }


@dataclass(slots=True)
class ReasoningQualityParts:
    """Undecayed RQ and its three components."""

    s2_core: float
    s2_consistency: float
    task_priming: float
    base: float

    def to_dict(self) -> dict:
        return {
            "s2_core": round1(self.s2_core),
            "s2_consistency": round1(self.s2_consistency),
            "task_priming": round1(self.task_priming),
            "base": round1(self.base),
        }


@dataclass(slots=True)
class TodayMetrics:
    recovery: float
    sharpness: float
    readiness: float
    s1: float
    s2: float
    physio_score: float | None = None

    @property
    def has_wearable(self) -> bool:
        return self.physio_score is not None

    def to_dict(self) -> dict:
        return {
            "recovery": round1(self.recovery),
            "sharpness": round1(self.sharpness),
            "readiness": round1(self.readiness),
            "s1": round1(self.s1),
            "s2": round1(self.s2),
            "has_wearable": self.has_wearable,
        }


@dataclass(slots=True)
class AggregateScores:
    network: NetworkIndexResult
    reasoning: ReasoningQualityParts
    today: TodayMetrics

    @property
    def cognitive_performance(self) -> float:
        return self.network.cognitive_performance


# ── Network Index ────────────────────────────────────────────────


def cognitive_performance(skills: SkillState) -> float:
    """Mean of AE, RA, CT, IN and S2."""
    raw = (skills.ae + skills.ra + skills.ct + skills.insight + skills.s2) / 5
    return checked_clamp("cognitive_performance", raw)


def behavioral_engagement(weekly_game_xp: float | None, xp_target_week: float) -> float:
    if xp_target_week <= 0:
        return 0.0
    xp = max(0.0, resolve("weekly_game_xp", weekly_game_xp))
    return min(100.0, xp / xp_target_week * 100)


def recovery_factor(
    weekly_detox_minutes: float | None,
    weekly_walk_minutes: float | None,
    recovery_target_minutes: float,
) -> float:
    """Weekly recovery minutes against the plan target; walks count half."""
    if recovery_target_minutes <= 0:
        return 0.0
    minutes = (
        resolve("weekly_detox_minutes", weekly_detox_minutes)
        + WALK_RECOVERY_FACTOR * resolve("weekly_walk_minutes", weekly_walk_minutes)
    )
    return round1(min(100.0, max(0.0, minutes) / recovery_target_minutes * 100))


def dual_process_balance(skills: SkillState) -> float:
    return clamp(100 - abs(skills.s1 - skills.s2))


def network_index(skills: SkillState, aggregates: ActivityAggregates, plan: PlanConfig) -> NetworkIndexResult:
    cp = cognitive_performance(skills)
    be = clamp(behavioral_engagement(aggregates.weekly_game_xp, plan.xp_target_week))
    rec = clamp(
        recovery_factor(
            aggregates.weekly_detox_minutes,
            aggregates.weekly_walk_minutes,
            plan.recovery_target_minutes,
        )
    )
    total = (
        NETWORK_WEIGHT_PERFORMANCE * cp
        + NETWORK_WEIGHT_ENGAGEMENT * be
        + NETWORK_WEIGHT_RECOVERY * rec
    )
    return NetworkIndexResult(
        total=round1(checked_clamp("network_index", total)),
        cognitive_performance=round1(cp),
        behavioral_engagement=round1(be),
        recovery_factor=round1(rec),
        dual_process_balance=round1(dual_process_balance(skills)),
    )


def network_level(score: float) -> str:
    for threshold, label in NETWORK_LEVELS:
        if score >= threshold:
            return label
    return NETWORK_LEVEL_FLOOR


# ── Reasoning Quality ────────────────────────────────────────────


def s2_consistency(scores: list[float]) -> float:
    """100 minus the normalised spread of the last ten S2 scores.

    Fewer than five scores yields the neutral constant regardless of values.
    """
    if len(scores) < RQ_CONSISTENCY_MIN_SAMPLES:
        return RQ_CONSISTENCY_NEUTRAL
    recent = [float(s) for s in scores[-RQ_CONSISTENCY_WINDOW:]]
    normalized = clamp(pstdev(recent) / RQ_CONSISTENCY_STD_SCALE * 100)
    return clamp(100 - normalized)


def task_contribution(content_type: str, completed_at: datetime, now: datetime) -> float:
    base = RQ_TASK_WEIGHTS.get(content_type, RQ_TASK_WEIGHTS["podcast"])
    days_ago = max(0, (now - completed_at) // timedelta(days=1))
    recency = max(RQ_TASK_RECENCY_FLOOR, 1 - days_ago * RQ_TASK_RECENCY_STEP)
    return round1(base * recency)


def completions_priming(tasks: list[TaskCompletion], now: datetime) -> float:
    window_start = now - timedelta(days=RQ_TASK_WINDOW_DAYS)
    recent = [
        t for t in tasks
        if window_start <= t.completed_at <= now and t.content_type in RQ_TASK_WEIGHTS
    ]
    if not recent:
        return 0.0
    total = sum(task_contribution(t.content_type, t.completed_at, now) for t in recent)
    n = len(recent)
    effective = min(n, RQ_TASK_FULL_ITEMS) + max(0, n - RQ_TASK_FULL_ITEMS) * RQ_TASK_EXTRA_ITEM_FACTOR
    return clamp(min(total, effective * RQ_TASK_POINTS_PER_ITEM))


def custom_session_score(weighted_minutes: float) -> float:
    return clamp(max(0.0, weighted_minutes) / RQ_CUSTOM_MINUTES_FOR_FULL * 100)


def task_priming(
    tasks: list[TaskCompletion],
    now: datetime,
    custom_weighted_minutes: float | None = None,
) -> float:
    """Completion priming, blended 50/50 with custom sessions when supplied."""
    completions = completions_priming(tasks, now)
    if custom_weighted_minutes is None:
        return completions
    custom = custom_session_score(custom_weighted_minutes)
    return clamp((1 - RQ_CUSTOM_SHARE) * completions + RQ_CUSTOM_SHARE * custom)


def reasoning_quality_parts(
    skills: SkillState,
    s2_scores: list[float],
    tasks: list[TaskCompletion],
    now: datetime,
    custom_weighted_minutes: float | None = None,
) -> ReasoningQualityParts:
    core = clamp(skills.s2)
    consistency = s2_consistency(s2_scores)
    priming = task_priming(tasks, now, custom_weighted_minutes)
    base = (
        RQ_WEIGHT_S2_CORE * core
        + RQ_WEIGHT_CONSISTENCY * consistency
        + RQ_WEIGHT_PRIMING * priming
    )
    return ReasoningQualityParts(
        s2_core=core,
        s2_consistency=consistency,
        task_priming=priming,
        base=checked_clamp("reasoning_quality", base),
    )


# ── Today metrics ────────────────────────────────────────────────


def sharpness(skills: SkillState, recovery: float) -> float:
    base = SHARPNESS_WEIGHT_S1 * skills.s1 + SHARPNESS_WEIGHT_S2 * skills.s2
    modulated = base * (SHARPNESS_REC_BASE + SHARPNESS_REC_SPAN * clamp(recovery) / 100)
    return round1(checked_clamp("sharpness", modulated))


def physio_component(
    hrv_ms: float | None,
    resting_hr: float | None,
    sleep_minutes: float | None,
    sleep_efficiency: float | None,
) -> float | None:
    """Wearable score 0-100, or ``None`` when any signal is missing."""
    if hrv_ms is None or resting_hr is None or sleep_minutes is None or sleep_efficiency is None:
        return None

    def _scale(value: float, bounds: tuple[float, float]) -> float:
        low, high = bounds
        return (clamp(value, low, high) - low) / (high - low) * 100

    hrv = _scale(hrv_ms, PHYSIO_HRV_RANGE_MS)
    rhr = 100 - _scale(resting_hr, PHYSIO_RESTING_HR_RANGE)
    efficiency = sleep_efficiency / 100 if sleep_efficiency > 1 else sleep_efficiency
    sleep = (
        PHYSIO_SLEEP_DURATION_SHARE * _scale(sleep_minutes, PHYSIO_SLEEP_MINUTES_RANGE)
        + (1 - PHYSIO_SLEEP_DURATION_SHARE) * _scale(efficiency, PHYSIO_SLEEP_EFFICIENCY_RANGE)
    )
    return PHYSIO_WEIGHT_HRV * hrv + PHYSIO_WEIGHT_RESTING_HR * rhr + PHYSIO_WEIGHT_SLEEP * sleep


def readiness(skills: SkillState, recovery: float, physio_score: float | None = None) -> float:
    if physio_score is None:
        raw = (
            READINESS_WEIGHT_REC * clamp(recovery)
            + READINESS_WEIGHT_S2 * skills.s2
            + READINESS_WEIGHT_AE * skills.ae
        )
        return round1(checked_clamp("readiness", raw))

    w_ct, w_ae, w_in, w_s2, w_s1 = READINESS_COGNITIVE_WEIGHTS
    cognitive = (
        w_ct * skills.ct
        + w_ae * skills.ae
        + w_in * skills.insight
        + w_s2 * skills.s2
        + w_s1 * skills.s1
    )
    raw = READINESS_PHYSIO_SHARE * clamp(physio_score) + (1 - READINESS_PHYSIO_SHARE) * cognitive
    return round1(checked_clamp("readiness", raw))


def today_metrics(skills: SkillState, aggregates: ActivityAggregates, plan: PlanConfig) -> TodayMetrics:
    rec = recovery_factor(
        aggregates.weekly_detox_minutes,
        aggregates.weekly_walk_minutes,
        plan.recovery_target_minutes,
    )
    return TodayMetrics(
        recovery=rec,
        sharpness=sharpness(skills, rec),
        readiness=readiness(skills, rec, aggregates.physio_score),
        s1=skills.s1,
        s2=skills.s2,
        physio_score=aggregates.physio_score,
    )


def aggregate(
    skills: SkillState,
    aggregates: ActivityAggregates,
    plan: PlanConfig,
    now: datetime,
) -> AggregateScores:
    return AggregateScores(
        network=network_index(skills, aggregates, plan),
        reasoning=reasoning_quality_parts(
            skills,
            aggregates.s2_scores,
            aggregates.tasks,
            now,
            aggregates.custom_weighted_minutes,
        ),
        today=today_metrics(skills, aggregates, plan),
    )
