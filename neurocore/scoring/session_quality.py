from __future__ import annotations

from dataclasses import dataclass

from neurocore.defaults import (
    RQ_CUSTOM_WEIGHT_BASE,
    RQ_CUSTOM_WEIGHT_SPAN,
    S2_CONSISTENCY_DELTA_HIGH,
    S2_CONSISTENCY_DELTA_LOW,
    S2_CONSISTENCY_HIGH,
    S2_CONSISTENCY_MID,
    S2_QUALITY_WEIGHT_ACCURACY,
    S2_QUALITY_WEIGHT_COHERENCE,
    S2_QUALITY_WEIGHT_CONSISTENCY,
    SCORE_MAX,
    SKILL_XP_FACTOR,
)
from neurocore.utils.math import clamp, round1


@dataclass(slots=True)
class S2SessionQuality:
    score: float
    consistency_delta: float

    def to_dict(self) -> dict:
        return {"score": round1(self.score), "consistency_delta": self.consistency_delta}


def s2_session_quality(accuracy: float, consistency: float, coherence: float) -> S2SessionQuality:
    """Quality of one slow-reasoning session from 0-1 component ratios."""
    accuracy = clamp(accuracy, 0.0, 1.0)
    consistency = clamp(consistency, 0.0, 1.0)
    coherence = clamp(coherence, 0.0, 1.0)
    raw = (
        S2_QUALITY_WEIGHT_ACCURACY * accuracy
        + S2_QUALITY_WEIGHT_CONSISTENCY * consistency
        + S2_QUALITY_WEIGHT_COHERENCE * coherence
    )
    if consistency >= S2_CONSISTENCY_HIGH:
        delta = S2_CONSISTENCY_DELTA_HIGH
    elif consistency >= S2_CONSISTENCY_MID:
        delta = 0.0
    else:
        delta = S2_CONSISTENCY_DELTA_LOW
    return S2SessionQuality(score=clamp(raw * 100), consistency_delta=delta)


def skill_gain(xp: float) -> float:
    """Skill points routed to a game's skill for *xp* awarded."""
    return max(0.0, xp) * SKILL_XP_FACTOR


def apply_skill_gain(current: float, xp: float) -> float:
    return min(SCORE_MAX, current + skill_gain(xp))


def custom_session_weight(difficulty: float, focus: float) -> float:
    """Weight of a self-reported session from 1-5 difficulty and focus ratings."""
    avg = (clamp(difficulty, 1.0, 5.0) + clamp(focus, 1.0, 5.0)) / 2
    return round(RQ_CUSTOM_WEIGHT_BASE + (avg - 1) / 4 * RQ_CUSTOM_WEIGHT_SPAN, 2)
