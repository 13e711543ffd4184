"""DifficultyAdvisor — Easy/Medium/Hard suggestion under hard load locks.

Locks are evaluated first and always win: Medium locked implies Hard
locked.  The soft suggestion comes from a per-plan strategy and is then
downgraded to the highest unlocked tier at or below it.

Training Capacity (TC) sizes the optimal weekly load window
``[0.60·TC, 0.85·TC]`` and is itself updated weekly from the XP earned.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Callable, Literal

from neurocore.defaults import (
    HARD_LOCK_READINESS_BELOW,
    HARD_LOCK_RECOVERY_BELOW,
    MEDIUM_LOCK_RECOVERY_BELOW,
    TC_DECAY_PER_WEEK,
    TC_FLOOR,
    TC_GROWTH_ALPHA,
    TC_INACTIVITY_THRESHOLD_DAYS,
    TC_INITIAL_PLAN_SHARE,
    TC_OPTIMAL_MAX_PERCENT,
    TC_OPTIMAL_MIN_PERCENT,
    TC_RECOVERY_MULT_BASE,
    TC_RECOVERY_MULT_RANGE,
    TC_RECOVERY_MULT_SLOPE,
)
from neurocore.gating.reasons import DifficultyLockReason, describe_lock
from neurocore.models import SkillState
from neurocore.plans import PlanConfig
from neurocore.utils.math import clamp

logger = logging.getLogger(__name__)

Difficulty = Literal["easy", "medium", "hard"]
DifficultyStatus = Literal["enabled", "recommended", "locked"]

TIERS: tuple[Difficulty, ...] = ("easy", "medium", "hard")

SAFETY_LABEL = "Light mode enabled for safety"


@dataclass(slots=True, frozen=True)
class DifficultyInput:
    recovery: float
    sharpness: float
    readiness: float
    weekly_xp: float
    training_capacity: float

    @property
    def opt_min(self) -> float:
        return self.training_capacity * TC_OPTIMAL_MIN_PERCENT

    @property
    def opt_max(self) -> float:
        return self.training_capacity * TC_OPTIMAL_MAX_PERCENT


@dataclass(slots=True)
class DifficultyOption:
    difficulty: Difficulty
    status: DifficultyStatus
    lock_reason: DifficultyLockReason | None = None

    def to_dict(self) -> dict:
        data: dict = {"difficulty": self.difficulty, "status": self.status}
        if self.lock_reason is not None:
            data["lock_reason"] = {"code": self.lock_reason, "message": describe_lock(self.lock_reason)}
        return data


@dataclass(slots=True)
class DifficultyAdvice:
    recommended: Difficulty
    suggested: Difficulty
    options: list[DifficultyOption] = field(default_factory=list)
    safety_mode_active: bool = False
    opt_min: float = 0.0
    opt_max: float = 0.0

    @property
    def locked(self) -> list[Difficulty]:
        return [o.difficulty for o in self.options if o.status == "locked"]

    @property
    def safety_label(self) -> str | None:
        return SAFETY_LABEL if self.safety_mode_active else None

    def to_dict(self) -> dict:
        return {
            "recommended": self.recommended,
            "options": [o.to_dict() for o in self.options],
            "safety_mode_active": self.safety_mode_active,
            "safety_label": self.safety_label,
            "opt_min": round(self.opt_min, 1),
            "opt_max": round(self.opt_max, 1),
        }


# ── Locks ────────────────────────────────────────────────────────


def hard_lock_reason(inp: DifficultyInput) -> DifficultyLockReason | None:
    if inp.recovery < HARD_LOCK_RECOVERY_BELOW:
        return "REC_TOO_LOW"
    if inp.weekly_xp > inp.opt_max:
        return "LOAD_TOO_HIGH"
    if inp.readiness < HARD_LOCK_READINESS_BELOW:
        return "READINESS_TOO_LOW"
    return None


def medium_lock_reason(inp: DifficultyInput) -> DifficultyLockReason | None:
    if inp.recovery < MEDIUM_LOCK_RECOVERY_BELOW:
        return "REC_VERY_LOW"
    if inp.weekly_xp > inp.training_capacity:
        return "LOAD_EXCEEDS_TC"
    return None


# ── Plan strategies ──────────────────────────────────────────────


def conservative_strategy(inp: DifficultyInput) -> Difficulty:
    if inp.recovery >= 60 and inp.sharpness >= 60 and inp.weekly_xp <= inp.opt_max:
        return "medium"
    return "easy"


def balanced_strategy(inp: DifficultyInput) -> Difficulty:
    """Easy unless the metrics clearly land in the Hard or Medium band."""
    if inp.recovery < 45 or inp.weekly_xp < inp.opt_min or inp.sharpness < 55:
        return "easy"
    if (
        inp.recovery >= 70
        and inp.weekly_xp <= inp.opt_max
        and inp.sharpness >= 70
        and inp.readiness >= 60
    ):
        return "hard"
    if (
        45 <= inp.recovery < 70
        and inp.opt_min <= inp.weekly_xp <= inp.opt_max
        and 55 <= inp.sharpness < 70
    ):
        return "medium"
    # ambiguous ranges fall back to easy
    return "easy"


def aggressive_strategy(inp: DifficultyInput) -> Difficulty:
    if (
        inp.recovery >= 65
        and inp.weekly_xp <= inp.opt_max
        and inp.sharpness >= 65
        and inp.readiness >= 55
    ):
        return "hard"
    if inp.recovery < 40:
        return "easy"
    return "medium"


STRATEGIES: dict[str, Callable[[DifficultyInput], Difficulty]] = {
    "light": conservative_strategy,
    "expert": balanced_strategy,
    "superhuman": aggressive_strategy,
}


def suggest(inp: DifficultyInput, plan_id: str) -> Difficulty:
    strategy = STRATEGIES.get(plan_id)
    if strategy is None:
        logger.warning("No difficulty strategy for plan %r, using balanced", plan_id)
        strategy = balanced_strategy
    return strategy(inp)


def advise(inp: DifficultyInput, plan: PlanConfig) -> DifficultyAdvice:
    medium_reason = medium_lock_reason(inp)
    hard_reason = medium_reason or hard_lock_reason(inp)
    locks: dict[Difficulty, DifficultyLockReason | None] = {
        "easy": None,
        "medium": medium_reason,
        "hard": hard_reason,
    }

    suggested = suggest(inp, plan.id)
    recommended = suggested
    while locks[recommended] is not None:
        recommended = TIERS[TIERS.index(recommended) - 1]

    options = []
    for tier in TIERS:
        reason = locks[tier]
        if reason is not None:
            status: DifficultyStatus = "locked"
        elif tier == recommended:
            status = "recommended"
        else:
            status = "enabled"
        options.append(DifficultyOption(tier, status, reason))

    return DifficultyAdvice(
        recommended=recommended,
        suggested=suggested,
        options=options,
        safety_mode_active=medium_reason is not None,
        opt_min=inp.opt_min,
        opt_max=inp.opt_max,
    )


# ── Training Capacity ────────────────────────────────────────────


def initial_training_capacity(skills: SkillState, plan_cap: float) -> float:
    start = round((skills.s1 + skills.s2) / 2)
    return clamp(float(start), TC_FLOOR, max(TC_FLOOR, plan_cap * TC_INITIAL_PLAN_SHARE))


def recovery_multiplier(avg_recovery: float) -> float:
    low, high = TC_RECOVERY_MULT_RANGE
    return clamp(TC_RECOVERY_MULT_BASE + TC_RECOVERY_MULT_SLOPE * avg_recovery, low, high)


def update_training_capacity(
    tc: float,
    weekly_xp: float,
    avg_recovery: float,
    days_since_xp: int | None,
    plan_cap: float,
) -> float:
    """One weekly TC step: growth from load scaled by recovery, minus idle decay."""
    growth = TC_GROWTH_ALPHA * min(weekly_xp, plan_cap) * recovery_multiplier(avg_recovery)
    decay = TC_DECAY_PER_WEEK if days_since_xp is not None and days_since_xp >= TC_INACTIVITY_THRESHOLD_DAYS else 0.0
    return round(clamp(tc + growth - decay, TC_FLOOR, plan_cap), 1)
