"""EligibilityGate — which games and content a user may access today.

Games: fixed caps first, then the plan's recovery override for slow games,
then per-game metric thresholds in check order.  The first failing check
supplies the reason code; every withheld decision carries one.

Content is never blocked: items are ranked and marked ``suggested`` from
the global mode, per-demand thresholds and the daily/weekly reading limits.

Both evaluators are pure: identical inputs give identical decisions.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Literal

from neurocore.defaults import (
    CONTENT_DEMAND_PENALTY,
    CONTENT_DEMAND_THRESHOLDS,
    CONTENT_FIT_BUFFER_CENTER,
    CONTENT_FIT_BUFFER_WEIGHT,
    CONTENT_MAX_BOOK_SESSIONS_PER_WEEK,
    CONTENT_MAX_READINGS_PER_DAY,
    CONTENT_SUGGESTED_TOP_N,
    LOW_BANDWIDTH_MODE_BELOW,
    RECOVERY_MODE_BELOW,
    S1_AE_MAX_SHARPNESS,
    S1_AE_MIN_RECOVERY,
    S1_DAILY_CAP,
    S1_RA_MIN_READINESS,
    S1_RA_MIN_RECOVERY,
    S2_CAPACITY_WEIGHT_READINESS,
    S2_CAPACITY_WEIGHT_SHARPNESS,
    S2_CT_MIN_READINESS,
    S2_CT_MIN_RECOVERY,
    S2_CT_MIN_SHARPNESS,
    S2_DAILY_CAP,
    S2_IN_MIN_RECOVERY,
    S2_IN_MIN_SHARPNESS,
    S2_IN_READINESS_RANGE,
)
from neurocore.gating.catalog import ContentItem
from neurocore.gating.reasons import (
    ContentReasonCode,
    GameReasonCode,
    describe_content_reason,
    describe_game_reason,
    unlock_actions,
)
from neurocore.models import GameType
from neurocore.plans import PlanConfig

GlobalMode = Literal["RECOVERY_MODE", "LOW_BANDWIDTH_MODE", "FULL_CAPACITY_MODE"]

GameStatus = Literal["enabled", "withheld", "protection"]

GAME_TYPES: tuple[GameType, ...] = ("S1-AE", "S1-RA", "S2-CT", "S2-IN")


@dataclass(slots=True, frozen=True)
class GatingMetrics:
    recovery: float
    sharpness: float
    readiness: float

    @property
    def s1_buffer(self) -> float:
        return self.recovery

    @property
    def s2_capacity(self) -> float:
        return float(
            round(
                S2_CAPACITY_WEIGHT_SHARPNESS * self.sharpness
                + S2_CAPACITY_WEIGHT_READINESS * self.readiness
            )
        )


@dataclass(slots=True, frozen=True)
class GameCaps:
    """Usage counts for the current day/week, recomputed from raw records."""

    s1_daily_used: int = 0
    s2_daily_used: int = 0
    s2_weekly_used: int = 0
    insight_weekly_used: int = 0


@dataclass(slots=True, frozen=True)
class ThresholdCheck:
    metric: str
    current: float
    required: float

    def to_dict(self) -> dict:
        return {"metric": self.metric, "current": self.current, "required": self.required}


@dataclass(slots=True)
class GameDecision:
    game_type: GameType
    status: GameStatus
    reason_code: GameReasonCode | None = None
    details: ThresholdCheck | None = None
    failed_checks: list[ThresholdCheck] = field(default_factory=list)
    unlock_actions: list[str] = field(default_factory=list)

    @property
    def enabled(self) -> bool:
        return self.status == "enabled"

    @property
    def reason(self) -> str | None:
        if self.reason_code is None:
            return None
        current = self.details.current if self.details else None
        required = self.details.required if self.details else None
        return describe_game_reason(self.reason_code, current, required)

    def to_dict(self) -> dict:
        return {
            "game_type": self.game_type,
            "status": self.status,
            "reason_code": self.reason_code,
            "reason": self.reason,
            "details": self.details.to_dict() if self.details else None,
            "failed_checks": [c.to_dict() for c in self.failed_checks],
            "unlock_actions": list(self.unlock_actions),
        }


def global_mode(metrics: GatingMetrics) -> GlobalMode:
    if metrics.s1_buffer < RECOVERY_MODE_BELOW:
        return "RECOVERY_MODE"
    if metrics.s2_capacity < LOW_BANDWIDTH_MODE_BELOW:
        return "LOW_BANDWIDTH_MODE"
    return "FULL_CAPACITY_MODE"


def game_type_from_area(area: str | None, mode: str | None) -> GameType:
    """Map a gym area and thinking mode (fast/slow) to a game type."""
    area = (area or "reasoning").lower()
    mode = (mode or "slow").lower()
    if mode == "fast":
        return "S1-RA" if area == "creativity" else "S1-AE"
    if area in {"creativity", "insight"}:
        return "S2-IN"
    return "S2-CT"


# ── Games ────────────────────────────────────────────────────────


def _cap_failure(game_type: GameType, caps: GameCaps, plan: PlanConfig) -> tuple[GameReasonCode, ThresholdCheck] | None:
    if game_type.startswith("S1"):
        if caps.s1_daily_used >= S1_DAILY_CAP:
            return "cap-reached-daily-S1", ThresholdCheck("S1 daily", caps.s1_daily_used, S1_DAILY_CAP)
        return None

    if caps.s2_daily_used >= S2_DAILY_CAP:
        return "cap-reached-daily-S2", ThresholdCheck("S2 daily", caps.s2_daily_used, S2_DAILY_CAP)
    if caps.s2_weekly_used >= plan.s2_max_per_week:
        return "cap-reached-weekly-S2", ThresholdCheck("S2 weekly", caps.s2_weekly_used, plan.s2_max_per_week)
    if game_type == "S2-IN" and caps.insight_weekly_used >= plan.insight_max_per_week:
        return (
            "cap-reached-weekly-insight",
            ThresholdCheck("Insight weekly", caps.insight_weekly_used, plan.insight_max_per_week),
        )
    return None


def _metric_checks(game_type: GameType, m: GatingMetrics, plan: PlanConfig) -> list[tuple[GameReasonCode, ThresholdCheck]]:
    """Failed metric checks, in evaluation order."""
    failed: list[tuple[GameReasonCode, ThresholdCheck]] = []
    mod = plan.s2_threshold_modifier

    if game_type == "S1-AE":
        if m.recovery < S1_AE_MIN_RECOVERY:
            failed.append(("recovery-too-low", ThresholdCheck("Recovery", m.recovery, S1_AE_MIN_RECOVERY)))
        if m.sharpness > S1_AE_MAX_SHARPNESS:
            failed.append(("sharpness-too-high", ThresholdCheck("Sharpness", m.sharpness, S1_AE_MAX_SHARPNESS)))

    elif game_type == "S1-RA":
        if m.recovery < S1_RA_MIN_RECOVERY:
            failed.append(("recovery-too-low", ThresholdCheck("Recovery", m.recovery, S1_RA_MIN_RECOVERY)))
        if m.readiness < S1_RA_MIN_READINESS:
            failed.append(("readiness-too-low", ThresholdCheck("Readiness", m.readiness, S1_RA_MIN_READINESS)))

    elif game_type == "S2-CT":
        min_sharpness = S2_CT_MIN_SHARPNESS + mod
        min_readiness = S2_CT_MIN_READINESS + mod
        min_recovery = max(S2_CT_MIN_RECOVERY, plan.require_rec_for_s2)
        if m.sharpness < min_sharpness:
            failed.append(("sharpness-too-low", ThresholdCheck("Sharpness", m.sharpness, min_sharpness)))
        if m.readiness < min_readiness:
            failed.append(("readiness-too-low", ThresholdCheck("Readiness", m.readiness, min_readiness)))
        if m.recovery < min_recovery:
            failed.append(("recovery-too-low", ThresholdCheck("Recovery", m.recovery, min_recovery)))

    else:
        min_sharpness = S2_IN_MIN_SHARPNESS + mod
        min_recovery = max(S2_IN_MIN_RECOVERY, plan.require_rec_for_s2)
        low_ready, high_ready = S2_IN_READINESS_RANGE
        if m.sharpness < min_sharpness:
            failed.append(("sharpness-too-low", ThresholdCheck("Sharpness", m.sharpness, min_sharpness)))
        if m.recovery < min_recovery:
            failed.append(("recovery-too-low", ThresholdCheck("Recovery", m.recovery, min_recovery)))
        if m.readiness < low_ready:
            failed.append(("readiness-too-low", ThresholdCheck("Readiness", m.readiness, low_ready)))
        if m.readiness > high_ready:
            failed.append(("readiness-out-of-range", ThresholdCheck("Readiness", m.readiness, high_ready)))

    return failed


def evaluate_game(game_type: GameType, metrics: GatingMetrics, caps: GameCaps, plan: PlanConfig) -> GameDecision:
    """Decide one game type: caps > plan recovery override > metric thresholds."""
    failed = _metric_checks(game_type, metrics, plan)
    failed_checks = [check for _, check in failed]
    actions: list[str] = []
    for code, _ in failed:
        for action in unlock_actions(game_type, code):
            if action not in actions:
                actions.append(action)

    cap = _cap_failure(game_type, caps, plan)
    if cap is not None:
        code, check = cap
        return GameDecision(game_type, "protection", code, check, failed_checks, actions)

    if (
        game_type.startswith("S2")
        and plan.demands_s2_recovery
        and metrics.recovery < plan.require_rec_for_s2
    ):
        check = ThresholdCheck("Recovery", metrics.recovery, plan.require_rec_for_s2)
        actions = list(unlock_actions(game_type, "superhuman-recovery-required"))
        return GameDecision(game_type, "protection", "superhuman-recovery-required", check, failed_checks, actions)

    if failed:
        code, check = failed[0]
        return GameDecision(game_type, "withheld", code, check, failed_checks, actions)

    return GameDecision(game_type, "enabled")


def evaluate_games(metrics: GatingMetrics, caps: GameCaps, plan: PlanConfig) -> dict[str, GameDecision]:
    return {game_type: evaluate_game(game_type, metrics, caps, plan) for game_type in GAME_TYPES}


# ── Content ──────────────────────────────────────────────────────


@dataclass(slots=True, frozen=True)
class ContentCounts:
    readings_today: int = 0
    book_sessions_week: int = 0


@dataclass(slots=True)
class ContentDecision:
    item: ContentItem
    suggested: bool
    fit_score: float
    reason_code: ContentReasonCode | None = None
    enabled: bool = True

    @property
    def reason(self) -> str | None:
        if self.reason_code is None:
            return None
        return describe_content_reason(self.reason_code, self.item.demand)

    def to_dict(self) -> dict:
        return {
            "id": self.item.id,
            "title": self.item.title,
            "content_type": self.item.content_type,
            "demand": self.item.demand,
            "enabled": self.enabled,
            "suggested": self.suggested,
            "fit_score": round(self.fit_score, 1),
            "reason_code": self.reason_code,
            "reason": self.reason,
        }


@dataclass(slots=True)
class ContentGateResult:
    mode: GlobalMode
    s1_buffer: float
    s2_capacity: float
    suggested: list[ContentDecision]
    not_suggested: list[ContentDecision]

    @property
    def all_items(self) -> list[ContentDecision]:
        return self.suggested + self.not_suggested

    def to_dict(self) -> dict:
        return {
            "mode": self.mode,
            "s1_buffer": self.s1_buffer,
            "s2_capacity": self.s2_capacity,
            "suggested": [d.to_dict() for d in self.suggested[:CONTENT_SUGGESTED_TOP_N]],
            "not_suggested": [d.to_dict() for d in self.not_suggested],
        }


def fit_score(item: ContentItem, metrics: GatingMetrics) -> float:
    penalty = CONTENT_DEMAND_PENALTY[item.demand]
    return (metrics.s2_capacity - penalty) + CONTENT_FIT_BUFFER_WEIGHT * (
        metrics.s1_buffer - CONTENT_FIT_BUFFER_CENTER
    )


def _suggestion(
    item: ContentItem,
    metrics: GatingMetrics,
    mode: GlobalMode,
    counts: ContentCounts,
) -> tuple[bool, ContentReasonCode | None]:
    if item.is_reading and counts.readings_today >= CONTENT_MAX_READINGS_PER_DAY:
        return False, "daily-reading-limit"
    if item.content_type == "book" and counts.book_sessions_week >= CONTENT_MAX_BOOK_SESSIONS_PER_WEEK:
        return False, "weekly-book-limit"

    if mode == "RECOVERY_MODE":
        if item.demand == "LOW":
            return True, "recovery-support"
        return False, "recovery-mode-light-only"

    if mode == "LOW_BANDWIDTH_MODE":
        if item.demand in ("LOW", "MEDIUM"):
            return True, None
        return False, "low-bandwidth-mode"

    min_buffer, min_capacity, min_sharpness = CONTENT_DEMAND_THRESHOLDS[item.demand]
    if metrics.s1_buffer < min_buffer:
        return False, "below-recovery-for-demand"
    if metrics.s2_capacity < min_capacity:
        return False, "below-capacity-for-demand"
    if min_sharpness is not None and metrics.sharpness < min_sharpness:
        return False, "below-sharpness-for-demand"
    return True, None


def evaluate_content(
    items: list[ContentItem] | tuple[ContentItem, ...],
    metrics: GatingMetrics,
    counts: ContentCounts | None = None,
) -> ContentGateResult:
    """Rank every item; all stay enabled, suggested ones sort by fit score.

    Unknown counts are treated as zero.
    """
    counts = counts or ContentCounts()
    mode = global_mode(metrics)
    suggested: list[ContentDecision] = []
    not_suggested: list[ContentDecision] = []
    for item in items:
        is_suggested, code = _suggestion(item, metrics, mode, counts)
        decision = ContentDecision(item, is_suggested, fit_score(item, metrics), code)
        (suggested if is_suggested else not_suggested).append(decision)

    # id as tie-breaker keeps ordering deterministic
    suggested.sort(key=lambda d: (-d.fit_score, d.item.id))
    not_suggested.sort(key=lambda d: (-d.fit_score, d.item.id))
    return ContentGateResult(
        mode=mode,
        s1_buffer=metrics.s1_buffer,
        s2_capacity=metrics.s2_capacity,
        suggested=suggested,
        not_suggested=not_suggested,
    )
