"""AntiRepetitionEngine — keep freshly generated game sessions from repeating.

Each candidate session is reduced to canonical :class:`ComboParams` and a
stable hash.  A candidate is rejected when its hash was already played
today, appears among the last few sessions of the same system, or when its
parameters are nearly identical to a recent combination.  Rejected
candidates are regenerated up to ``max_attempts`` times; after that the
first candidate is accepted with ``fallback_used=True`` so gameplay is
never blocked.

Accepted combos are recorded through ``with_retry``.  Recording failures
are logged and swallowed: the session has already been handed out.
"""

from __future__ import annotations

import hashlib
import json
import logging
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Generic, Literal, TypeVar

from neurocore.defaults import (
    EXCLUSION_WINDOW_DAYS,
    EXCLUSION_WINDOW_SESSIONS,
    MAX_GENERATION_ATTEMPTS,
    NEAR_DUPLICATE_SIMILARITY_THRESHOLD,
    RECENT_COMBOS_LIMIT,
    SIMILARITY_WEIGHT_DISTRACTOR,
    SIMILARITY_WEIGHT_RULE,
    SIMILARITY_WEIGHT_STIMULUS,
    SIMILARITY_WEIGHT_TEMPORAL,
    TEMPORAL_MATCH_TOLERANCE,
)
from neurocore.errors import StoreUnavailableError
from neurocore.models import ComboHashRecord, SystemType, parse_ts
from neurocore.utils.math import jaccard
from neurocore.utils.retry import with_retry
from neurocore.windows import as_utc, utc_now

logger = logging.getLogger(__name__)

S = TypeVar("S")

GenerationState = Literal["generating", "checking", "accepted", "regenerate", "fallback-accepted"]

RejectionReason = Literal["exact_duplicate_today", "recent_session", "near_duplicate"]


@dataclass(slots=True)
class ComboParams:
    """Salient parameters of one generated session."""

    stimulus_ids: list[str]
    difficulty: str
    distractor_set: list[str] = field(default_factory=list)
    temporal_params: dict[str, float] = field(default_factory=dict)
    rule_params: dict = field(default_factory=dict)

    def to_dict(self) -> dict:
        return {
            "stimulus_ids": sorted(self.stimulus_ids),
            "difficulty": self.difficulty,
            "distractor_set": sorted(self.distractor_set),
            "temporal_params": dict(sorted(self.temporal_params.items())),
            "rule_params": self.rule_params,
        }

    @classmethod
    def from_dict(cls, data: dict) -> ComboParams:
        return cls(
            stimulus_ids=list(data.get("stimulus_ids") or []),
            difficulty=str(data.get("difficulty") or ""),
            distractor_set=list(data.get("distractor_set") or []),
            temporal_params=dict(data.get("temporal_params") or {}),
            rule_params=dict(data.get("rule_params") or {}),
        )


def combo_hash(params: ComboParams) -> str:
    """Order-independent signature: difficulty initial + 16 hex chars of sha256."""
    temporal = ",".join(f"{k}:{v}" for k, v in sorted(params.temporal_params.items()))
    parts = [
        params.difficulty,
        *sorted(params.stimulus_ids),
        "D:" + ",".join(sorted(params.distractor_set)),
        "T:" + temporal,
        "R:" + json.dumps(params.rule_params, sort_keys=True),
    ]
    digest = hashlib.sha256("|".join(parts).encode("utf-8")).hexdigest()[:16]
    prefix = params.difficulty[:1].upper() or "X"
    return f"{prefix}{digest}"


# ── Similarity ───────────────────────────────────────────────────


def _set_similarity(a: list[str], b: list[str]) -> float:
    if not a and not b:
        return 1.0
    return jaccard(a, b)


def _temporal_similarity(a: dict[str, float], b: dict[str, float]) -> float:
    keys = set(a) | set(b)
    if not keys:
        return 1.0
    matched = 0
    for key in keys:
        if key not in a or key not in b:
            continue
        left, right = float(a[key]), float(b[key])
        scale = max(abs(left), abs(right))
        if scale == 0 or abs(left - right) / scale <= TEMPORAL_MATCH_TOLERANCE:
            matched += 1
    return matched / len(keys)


def similarity(a: ComboParams, b: ComboParams) -> float:
    """Weighted 0..1 similarity of two parameter sets of the same game."""
    rule = 1.0 if json.dumps(a.rule_params, sort_keys=True) == json.dumps(b.rule_params, sort_keys=True) else 0.0
    return (
        SIMILARITY_WEIGHT_STIMULUS * _set_similarity(a.stimulus_ids, b.stimulus_ids)
        + SIMILARITY_WEIGHT_DISTRACTOR * _set_similarity(a.distractor_set, b.distractor_set)
        + SIMILARITY_WEIGHT_TEMPORAL * _temporal_similarity(a.temporal_params, b.temporal_params)
        + SIMILARITY_WEIGHT_RULE * rule
    )


def is_near_duplicate(
    params: ComboParams,
    previous: ComboParams,
    threshold: float = NEAR_DUPLICATE_SIMILARITY_THRESHOLD,
) -> bool:
    if params.difficulty != previous.difficulty:
        return False
    return similarity(params, previous) >= threshold


def validate_combo(
    candidate_hash: str,
    params: ComboParams | None,
    recent: list[ComboHashRecord],
    system_type: SystemType,
    now: datetime,
    *,
    similarity_threshold: float = NEAR_DUPLICATE_SIMILARITY_THRESHOLD,
) -> RejectionReason | None:
    """Why the candidate must be regenerated, or ``None`` if it is fresh.

    *recent* is ordered most recent first.
    """
    today = now.date()
    for record in recent:
        if record.combo_hash == candidate_hash and parse_ts(record.created_at).date() == today:
            return "exact_duplicate_today"

    window = EXCLUSION_WINDOW_SESSIONS.get(system_type, 3)
    if any(record.combo_hash == candidate_hash for record in recent[:window]):
        return "recent_session"

    if params is not None:
        for record in recent:
            if record.params is None:
                continue
            if is_near_duplicate(params, ComboParams.from_dict(record.params), similarity_threshold):
                return "near_duplicate"
    return None


# ── Engine ───────────────────────────────────────────────────────


@dataclass(slots=True)
class SessionGenerationResult(Generic[S]):
    session: S
    combo_hash: str
    fallback_used: bool
    duplicates_rejected: int
    state: GenerationState
    rejections: list[RejectionReason] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "combo_hash": self.combo_hash,
            "fallback_used": self.fallback_used,
            "duplicates_rejected": self.duplicates_rejected,
            "state": self.state,
            "rejections": list(self.rejections),
        }


class AntiRepetitionEngine:
    def __init__(
        self,
        store,
        *,
        max_attempts: int = MAX_GENERATION_ATTEMPTS,
        similarity_threshold: float = NEAR_DUPLICATE_SIMILARITY_THRESHOLD,
    ) -> None:
        self._store = store
        self.max_attempts = max(1, max_attempts)
        self.similarity_threshold = similarity_threshold

    async def recent_combos(self, user_id: str, game_name: str, now: datetime) -> list[ComboHashRecord]:
        since = (as_utc(now) - timedelta(days=EXCLUSION_WINDOW_DAYS)).isoformat()
        try:
            return await with_retry(
                lambda: self._store.get_recent_combos(
                    user_id, game_name, since=since, limit=RECENT_COMBOS_LIMIT
                ),
                name="get_recent_combos",
            )
        except StoreUnavailableError as exc:
            logger.warning("Combo history unavailable for %s/%s, checking without it: %s", user_id, game_name, exc)
            return []

    async def generate_session(
        self,
        user_id: str,
        game_name: str,
        system_type: SystemType,
        generator: Callable[[int], S],
        params_of: Callable[[S], ComboParams],
        *,
        now: datetime | None = None,
        quality_score: float | None = None,
    ) -> SessionGenerationResult[S]:
        """Generate until a fresh combination is found or attempts run out.

        ``generator`` receives the zero-based attempt number.
        """
        now = as_utc(now or utc_now())
        recent = await self.recent_combos(user_id, game_name, now)

        first: tuple[S, ComboParams, str] | None = None
        rejections: list[RejectionReason] = []
        result: SessionGenerationResult[S] | None = None

        for attempt in range(self.max_attempts):
            # generating
            session = generator(attempt)
            params = params_of(session)
            candidate_hash = combo_hash(params)
            if first is None:
                first = (session, params, candidate_hash)

            # checking
            reason = validate_combo(
                candidate_hash,
                params,
                recent,
                system_type,
                now,
                similarity_threshold=self.similarity_threshold,
            )
            if reason is None:
                result = SessionGenerationResult(
                    session=session,
                    combo_hash=candidate_hash,
                    fallback_used=False,
                    duplicates_rejected=len(rejections),
                    state="accepted",
                    rejections=rejections,
                )
                accepted_params = params
                break
            # regenerate
            rejections.append(reason)
            logger.debug("Combo %s rejected for %s/%s: %s", candidate_hash, user_id, game_name, reason)

        if result is None:
            assert first is not None
            session, accepted_params, candidate_hash = first
            logger.warning(
                "No fresh combo for %s/%s after %d attempts, accepting first candidate",
                user_id,
                game_name,
                self.max_attempts,
            )
            result = SessionGenerationResult(
                session=session,
                combo_hash=candidate_hash,
                fallback_used=True,
                duplicates_rejected=len(rejections),
                state="fallback-accepted",
                rejections=rejections,
            )

        await self.record(
            ComboHashRecord(
                user_id=user_id,
                game_name=game_name,
                combo_hash=result.combo_hash,
                difficulty=accepted_params.difficulty,
                quality_score=quality_score,
                params=accepted_params.to_dict(),
                fallback_used=result.fallback_used,
                duplicates_rejected=result.duplicates_rejected,
                created_at=now.isoformat(),
            )
        )
        return result

    async def record(self, record: ComboHashRecord) -> bool:
        """Persist an accepted combo; any failure is logged and returns False."""
        try:
            await with_retry(lambda: self._store.insert_combo_hash(record), name="insert_combo_hash")
        except Exception as exc:
            logger.warning("Combo hash %s not recorded for %s: %s", record.combo_hash, record.user_id, exc)
            return False
        return True
