from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Literal
from uuid import uuid4

from neurocore.defaults import SCORE_DECIMALS


SystemType = Literal["S1", "S2"]

GameType = Literal["S1-AE", "S1-RA", "S2-CT", "S2-IN"]

Skill = Literal["AE", "RA", "CT", "IN"]

ActivityKind = Literal["game-session", "content-completion", "recovery-session"]

# content completions: podcast/article/book/custom; recovery sessions: detox/walk
ActivitySubtype = Literal["podcast", "article", "book", "custom", "detox", "walk"]

SessionStatus = Literal["completed", "aborted"]

RegressionRisk = Literal["low", "medium", "high"]

GAME_SKILL: dict[str, Skill] = {
    "S1-AE": "AE",
    "S1-RA": "RA",
    "S2-CT": "CT",
    "S2-IN": "IN",
}


def utc_now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def parse_ts(value: str | datetime) -> datetime:
    """Parse an ISO timestamp; naive values are taken as UTC."""
    dt = value if isinstance(value, datetime) else datetime.fromisoformat(value)
    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


def system_of(game_type: str) -> SystemType:
    return "S2" if game_type.startswith("S2") else "S1"


def _round_score(value: float | None) -> float | None:
    if value is None:
        return None
    return round(float(value), SCORE_DECIMALS)


@dataclass(slots=True)
class SkillState:
    """Persistent per-user skill values, each in [0, 100]."""

    user_id: str
    ae: float = 50.0
    ra: float = 50.0
    ct: float = 50.0
    insight: float = 50.0
    updated_at: str = field(default_factory=utc_now_iso)

    @property
    def s1(self) -> float:
        return (self.ae + self.ra) / 2

    @property
    def s2(self) -> float:
        return (self.ct + self.insight) / 2

    @property
    def performance(self) -> float:
        """Mean of the four base skills."""
        return (self.ae + self.ra + self.ct + self.insight) / 4

    def get(self, skill: Skill) -> float:
        return {"AE": self.ae, "RA": self.ra, "CT": self.ct, "IN": self.insight}[skill]

    def with_skill(self, skill: Skill, value: float) -> SkillState:
        values = {"AE": self.ae, "RA": self.ra, "CT": self.ct, "IN": self.insight}
        values[skill] = value
        return SkillState(
            user_id=self.user_id,
            ae=values["AE"],
            ra=values["RA"],
            ct=values["CT"],
            insight=values["IN"],
            updated_at=utc_now_iso(),
        )

    def to_dict(self) -> dict:
        return {
            "AE": _round_score(self.ae),
            "RA": _round_score(self.ra),
            "CT": _round_score(self.ct),
            "IN": _round_score(self.insight),
            "S1": _round_score(self.s1),
            "S2": _round_score(self.s2),
        }


@dataclass(slots=True)
class ActivityRecord:
    user_id: str
    kind: ActivityKind
    timestamp: str = field(default_factory=utc_now_iso)
    system_type: SystemType | None = None
    skill: Skill | None = None
    game_type: GameType | None = None
    subtype: ActivitySubtype | None = None
    exercise_id: str | None = None
    score: float | None = None
    xp: float = 0.0
    duration_minutes: float = 0.0
    weight: float = 1.0
    status: SessionStatus = "completed"
    difficulty: str | None = None
    dedupe_key: str | None = None
    id: str = field(default_factory=lambda: str(uuid4()))

    @property
    def at(self) -> datetime:
        return parse_ts(self.timestamp)

    @classmethod
    def from_row(cls, row: Any) -> ActivityRecord:
        data = dict(row)
        return cls(
            id=data["id"],
            user_id=data["user_id"],
            kind=data["kind"],
            timestamp=data["timestamp"],
            system_type=data.get("system_type"),
            skill=data.get("skill"),
            game_type=data.get("game_type"),
            subtype=data.get("subtype"),
            exercise_id=data.get("exercise_id"),
            score=data.get("score"),
            xp=float(data.get("xp") or 0.0),
            duration_minutes=float(data.get("duration_minutes") or 0.0),
            weight=float(data.get("weight") or 1.0),
            status=data.get("status") or "completed",
            difficulty=data.get("difficulty"),
            dedupe_key=data.get("dedupe_key"),
        )


@dataclass(slots=True, frozen=True)
class CountLimit:
    """At most *limit* completed game sessions in ``[start, end)``."""

    start: str
    end: str
    limit: int
    system_type: SystemType | None = None
    game_type: GameType | None = None


InsertOutcome = Literal["inserted", "duplicate", "capped"]


@dataclass(slots=True)
class Baseline:
    user_id: str
    baseline_score: float
    baseline_rq: float | None
    chrono_age: float
    is_calibrated: bool
    calibration_days: int = 0
    captured_at: str = field(default_factory=utc_now_iso)

    def to_dict(self) -> dict:
        return {
            "baseline_score": _round_score(self.baseline_score),
            "baseline_rq": _round_score(self.baseline_rq),
            "chrono_age": self.chrono_age,
            "is_calibrated": self.is_calibrated,
            "calibration_days": self.calibration_days,
            "captured_at": self.captured_at,
        }


@dataclass(slots=True)
class ComboHashRecord:
    user_id: str
    game_name: str
    combo_hash: str
    difficulty: str
    quality_score: float | None = None
    params: dict | None = None
    fallback_used: bool = False
    duplicates_rejected: int = 0
    created_at: str = field(default_factory=utc_now_iso)
    id: str = field(default_factory=lambda: str(uuid4()))


@dataclass(slots=True)
class UserProfile:
    user_id: str
    plan_id: str = "expert"
    chrono_age: float | None = None
    training_capacity: float | None = None
    education: str | None = None
    work_type: str | None = None


@dataclass(slots=True)
class DerivedScoreSnapshot:
    """One row per user per day; values are stored at one decimal."""

    user_id: str
    date: str
    network_index: float
    reasoning_quality: float
    cognitive_performance: float
    cognitive_age: float | None = None
    decay_applied: bool = False
    regression_risk: RegressionRisk = "low"

    def __post_init__(self) -> None:
        self.network_index = _round_score(self.network_index)
        self.reasoning_quality = _round_score(self.reasoning_quality)
        self.cognitive_performance = _round_score(self.cognitive_performance)
        self.cognitive_age = _round_score(self.cognitive_age)

    def to_dict(self) -> dict:
        return {
            "user_id": self.user_id,
            "date": self.date,
            "network_index": self.network_index,
            "reasoning_quality": self.reasoning_quality,
            "cognitive_performance": self.cognitive_performance,
            "cognitive_age": self.cognitive_age,
            "decay_applied": self.decay_applied,
            "regression_risk": self.regression_risk,
        }

    @classmethod
    def from_dict(cls, data: dict) -> DerivedScoreSnapshot:
        return cls(
            user_id=data["user_id"],
            date=data["date"],
            network_index=float(data["network_index"]),
            reasoning_quality=float(data["reasoning_quality"]),
            cognitive_performance=float(data["cognitive_performance"]),
            cognitive_age=(
                float(data["cognitive_age"]) if data.get("cognitive_age") is not None else None
            ),
            decay_applied=bool(data.get("decay_applied", False)),
            regression_risk=data.get("regression_risk") or "low",
        )
