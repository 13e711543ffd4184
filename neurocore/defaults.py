"""Centralised business constants for the scoring & gating engine.

Thresholds and weights are fixed product rules, not user settings.  They
are collected here so every module imports the same named value and tests
can refer to them by name instead of repeating literals.
"""

from __future__ import annotations

# ── Score rounding (neurocore/models.py) ─────────────────────────
SCORE_DECIMALS: int = 1
SCORE_MIN: float = 0.0
SCORE_MAX: float = 100.0

# ── Network Index (neurocore/scoring/aggregator.py) ──────────────
NETWORK_WEIGHT_PERFORMANCE: float = 0.50
NETWORK_WEIGHT_ENGAGEMENT: float = 0.30
NETWORK_WEIGHT_RECOVERY: float = 0.20
NETWORK_LEVELS: tuple[tuple[float, str], ...] = (
    (80.0, "elite"),
    (65.0, "high"),
    (50.0, "moderate"),
    (35.0, "developing"),
)
NETWORK_LEVEL_FLOOR: str = "early"
WALK_RECOVERY_FACTOR: float = 0.5

# ── Today metrics (neurocore/scoring/aggregator.py) ──────────────
SHARPNESS_WEIGHT_S1: float = 0.6
SHARPNESS_WEIGHT_S2: float = 0.4
SHARPNESS_REC_BASE: float = 0.75
SHARPNESS_REC_SPAN: float = 0.25
READINESS_WEIGHT_REC: float = 0.35
READINESS_WEIGHT_S2: float = 0.35
READINESS_WEIGHT_AE: float = 0.30
READINESS_PHYSIO_SHARE: float = 0.5
# CT, AE, IN, S2, S1 weights of the cognitive component when a wearable is present
READINESS_COGNITIVE_WEIGHTS: tuple[float, float, float, float, float] = (0.30, 0.25, 0.20, 0.15, 0.10)

# ── Wearable physiology (neurocore/scoring/aggregator.py) ────────
PHYSIO_HRV_RANGE_MS: tuple[float, float] = (20.0, 120.0)
PHYSIO_RESTING_HR_RANGE: tuple[float, float] = (45.0, 90.0)
PHYSIO_SLEEP_MINUTES_RANGE: tuple[float, float] = (300.0, 540.0)
PHYSIO_SLEEP_EFFICIENCY_RANGE: tuple[float, float] = (0.70, 0.98)
PHYSIO_WEIGHT_HRV: float = 0.4
PHYSIO_WEIGHT_RESTING_HR: float = 0.2
PHYSIO_WEIGHT_SLEEP: float = 0.4
PHYSIO_SLEEP_DURATION_SHARE: float = 0.6

# ── Reasoning Quality (neurocore/scoring/aggregator.py) ──────────
RQ_WEIGHT_S2_CORE: float = 0.50
RQ_WEIGHT_CONSISTENCY: float = 0.30
RQ_WEIGHT_PRIMING: float = 0.20
RQ_CONSISTENCY_MIN_SAMPLES: int = 5
RQ_CONSISTENCY_WINDOW: int = 10
RQ_CONSISTENCY_NEUTRAL: float = 50.0
RQ_CONSISTENCY_STD_SCALE: float = 50.0
RQ_TASK_WEIGHTS: dict[str, float] = {"podcast": 12.0, "article": 15.0, "book": 20.0}
RQ_TASK_WINDOW_DAYS: int = 7
RQ_TASK_RECENCY_STEP: float = 0.1
RQ_TASK_RECENCY_FLOOR: float = 0.3
RQ_TASK_FULL_ITEMS: int = 5
RQ_TASK_EXTRA_ITEM_FACTOR: float = 0.5
RQ_TASK_POINTS_PER_ITEM: float = 20.0
RQ_CUSTOM_MINUTES_FOR_FULL: float = 60.0
RQ_CUSTOM_SHARE: float = 0.5
RQ_CUSTOM_WEIGHT_BASE: float = 0.8
RQ_CUSTOM_WEIGHT_SPAN: float = 0.8

# ── RQ → Cognitive Age multiplier (neurocore/decay/cognitive_age.py)
RQ_MULTIPLIER_MIN: float = 0.85
RQ_MULTIPLIER_SPAN: float = 0.15

# ── S2 session quality (neurocore/scoring/session_quality.py) ────
S2_QUALITY_WEIGHT_ACCURACY: float = 0.5
S2_QUALITY_WEIGHT_CONSISTENCY: float = 0.3
S2_QUALITY_WEIGHT_COHERENCE: float = 0.2
S2_CONSISTENCY_HIGH: float = 0.70
S2_CONSISTENCY_MID: float = 0.50
S2_CONSISTENCY_DELTA_HIGH: float = 2.0
S2_CONSISTENCY_DELTA_LOW: float = -1.0
SKILL_XP_FACTOR: float = 0.5

# ── Baseline (neurocore/baseline/calibrator.py) ──────────────────
BASELINE_CALIBRATION_DAYS: int = 21
BASELINE_MIN_DAYS: int = 7
BASELINE_MIN_SKILLS_PER_DAY: int = 2
BASELINE_NEUTRAL_SCORE: float = 50.0
BASELINE_DEFAULT_CHRONO_AGE: float = 30.0
DEMOGRAPHIC_CENTER: float = 50.0
DEMOGRAPHIC_RANGE: tuple[float, float] = (44.0, 56.0)
DEMOGRAPHIC_AGE_ADJUSTMENTS: tuple[tuple[float, float], ...] = ((30, 2.0), (40, 1.0), (55, 0.0))
DEMOGRAPHIC_AGE_ADJUSTMENT_OLDER: float = -2.0
DEMOGRAPHIC_EDUCATION_ADJUSTMENTS: dict[str, float] = {
    "high_school": -1.0,
    "bachelor": 0.0,
    "master": 1.0,
    "phd": 2.0,
}
DEMOGRAPHIC_WORK_BONUS_TYPES: frozenset[str] = frozenset({"technical", "student", "knowledge"})
DEMOGRAPHIC_WORK_BONUS: float = 1.0
BASELINE_CALIBRATED_SHARE: float = 0.7

# ── RQ decay (neurocore/decay/tracker.py) ────────────────────────
RQ_DECAY_GRACE_DAYS: int = 14
RQ_DECAY_POINTS_PER_WEEK: float = 2.0
RQ_DECAY_FLOOR_OFFSET: float = 10.0

# ── Regression & pace of aging (neurocore/decay/tracker.py) ──────
REGRESSION_DROP_POINTS: float = 10.0
REGRESSION_MEDIUM_DAYS: int = 14
REGRESSION_HIGH_DAYS: int = 21
REGRESSION_PENALTY_YEARS: float = 1.0
REGRESSION_PENALTY_CAP_YEARS: float = 5.0
PACE_SLOWER_BELOW: float = 0.9
PACE_FASTER_ABOVE: float = 1.1
PACE_RANGE: tuple[float, float] = (0.5, 2.5)
PACE_POINTS_PER_UNIT: float = 10.0

# ── Cognitive Age (neurocore/decay/cognitive_age.py) ─────────────
COGNITIVE_AGE_POINTS_PER_YEAR: float = 10.0
COGNITIVE_AGE_MAX_OFFSET_YEARS: float = 15.0
ROLLING_MIN_VALUES_CAP: int = 10
ROLLING_MIN_VALUES_DIVISOR: int = 3
ENGAGEMENT_SESSIONS_TARGET_30D: float = 21.0

# ── Skill / readiness / network decay (neurocore/decay/tracker.py)
SKILL_DECAY_THRESHOLD_DAYS: int = 30
SKILL_DECAY_INTERVAL_DAYS: int = 15
SKILL_DECAY_BASE_POINTS: float = 1.0
SKILL_DECAY_INTERVAL_POINTS: float = 1.0
SKILL_DECAY_MAX_POINTS: float = 3.0
LOW_RECOVERY_THRESHOLD: float = 40.0
READINESS_DECAY_TRIGGER_DAYS: int = 3
READINESS_DECAY_INITIAL_POINTS: float = 5.0
READINESS_DECAY_PER_DAY_POINTS: float = 2.0
READINESS_DECAY_MAX_WEEKLY: float = 15.0
NETWORK_LOW_RECOVERY_DECAY: float = 5.0
NETWORK_NO_TRAINING_DAYS: int = 7
NETWORK_NO_TRAINING_DECAY: float = 5.0
NETWORK_DECAY_MAX_WEEKLY: float = 10.0

# ── Eligibility modes (neurocore/gating/eligibility.py) ──────────
RECOVERY_MODE_BELOW: float = 45.0
LOW_BANDWIDTH_MODE_BELOW: float = 55.0
S2_CAPACITY_WEIGHT_SHARPNESS: float = 0.6
S2_CAPACITY_WEIGHT_READINESS: float = 0.4

# ── Games caps & thresholds (neurocore/gating/eligibility.py) ────
S1_DAILY_CAP: int = 3
S2_DAILY_CAP: int = 1
S1_AE_MIN_RECOVERY: float = 45.0
S1_AE_MAX_SHARPNESS: float = 75.0
S1_RA_MIN_RECOVERY: float = 50.0
S1_RA_MIN_READINESS: float = 45.0
S2_CT_MIN_SHARPNESS: float = 65.0
S2_CT_MIN_READINESS: float = 60.0
S2_CT_MIN_RECOVERY: float = 50.0
S2_IN_MIN_SHARPNESS: float = 60.0
S2_IN_MIN_RECOVERY: float = 55.0
S2_IN_READINESS_RANGE: tuple[float, float] = (50.0, 70.0)

# ── Content suggestion (neurocore/gating/eligibility.py) ─────────
CONTENT_DEMAND_PENALTY: dict[str, float] = {
    "LOW": 5.0,
    "MEDIUM": 12.0,
    "HIGH": 18.0,
    "VERY_HIGH": 28.0,
}
# s1Buffer, s2Capacity, sharpness (None = not checked)
CONTENT_DEMAND_THRESHOLDS: dict[str, tuple[float, float, float | None]] = {
    "LOW": (50.0, 50.0, None),
    "MEDIUM": (48.0, 60.0, None),
    "HIGH": (50.0, 68.0, None),
    "VERY_HIGH": (55.0, 75.0, 70.0),
}
CONTENT_FIT_BUFFER_WEIGHT: float = 0.35
CONTENT_FIT_BUFFER_CENTER: float = 50.0
CONTENT_SUGGESTED_TOP_N: int = 3
CONTENT_MAX_READINGS_PER_DAY: int = 1
CONTENT_MAX_BOOK_SESSIONS_PER_WEEK: int = 3

# ── Difficulty (neurocore/gating/difficulty.py) ──────────────────
TC_OPTIMAL_MIN_PERCENT: float = 0.60
TC_OPTIMAL_MAX_PERCENT: float = 0.85
HARD_LOCK_RECOVERY_BELOW: float = 55.0
HARD_LOCK_READINESS_BELOW: float = 45.0
MEDIUM_LOCK_RECOVERY_BELOW: float = 40.0
TC_FLOOR: float = 30.0
TC_INITIAL_PLAN_SHARE: float = 0.6
TC_GROWTH_ALPHA: float = 0.06
TC_RECOVERY_MULT_BASE: float = 0.6
TC_RECOVERY_MULT_SLOPE: float = 0.006
TC_RECOVERY_MULT_RANGE: tuple[float, float] = (0.6, 1.2)
TC_INACTIVITY_THRESHOLD_DAYS: int = 7
TC_DECAY_PER_WEEK: float = 3.0

# ── Anti-repetition (neurocore/antirepetition/engine.py) ─────────
EXCLUSION_WINDOW_SESSIONS: dict[str, int] = {"S1": 3, "S2": 2}
EXCLUSION_WINDOW_DAYS: int = 7
RECENT_COMBOS_LIMIT: int = 10
COMBO_HISTORY_KEEP: int = 50
MAX_GENERATION_ATTEMPTS: int = 10
NEAR_DUPLICATE_SIMILARITY_THRESHOLD: float = 0.75
SIMILARITY_WEIGHT_STIMULUS: float = 0.45
SIMILARITY_WEIGHT_DISTRACTOR: float = 0.20
SIMILARITY_WEIGHT_TEMPORAL: float = 0.15
SIMILARITY_WEIGHT_RULE: float = 0.20
TEMPORAL_MATCH_TOLERANCE: float = 0.10
