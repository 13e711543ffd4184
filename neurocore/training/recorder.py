"""SessionRecorder — the write path for games, content and recovery.

Each record is inserted through ``with_retry``.  A game session carrying
an ``exercise_id`` is deduplicated per (user, exercise, ISO week) so a
retried request never awards XP twice.  Completed games route
``xp * 0.5`` skill points to the game's skill; aborted games are stored
for history only.  With insert guards a completed game is written only
while its caps still have room; otherwise the result is ``capped``.
Terminal store failures surface as :class:`StoreUnavailableError`.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime

from neurocore.models import (
    GAME_SKILL,
    ActivityRecord,
    CountLimit,
    GameType,
    SessionStatus,
    SkillState,
    system_of,
)
from neurocore.scoring.session_quality import (
    S2SessionQuality,
    apply_skill_gain,
    custom_session_weight,
    s2_session_quality,
)
from neurocore.storage.store import NeuroStore
from neurocore.utils.retry import with_retry
from neurocore.windows import as_utc, utc_now, week_start

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class RecordResult:
    record: ActivityRecord
    duplicate: bool = False
    capped: bool = False
    skills: SkillState | None = None
    quality: S2SessionQuality | None = None

    def to_dict(self) -> dict:
        return {
            "id": self.record.id,
            "kind": self.record.kind,
            "game_type": self.record.game_type,
            "subtype": self.record.subtype,
            "xp": self.record.xp,
            "status": self.record.status,
            "duplicate": self.duplicate,
            "capped": self.capped,
            "skills": self.skills.to_dict() if self.skills else None,
            "quality": self.quality.to_dict() if self.quality else None,
        }


def dedupe_key(user_id: str, exercise_id: str, at: datetime) -> str:
    return f"{user_id}:{exercise_id}:{week_start(at).isoformat()}"


class SessionRecorder:
    def __init__(self, store: NeuroStore) -> None:
        self._store = store

    async def _insert(self, record: ActivityRecord, limits: list[CountLimit] | None = None) -> RecordResult:
        if limits:
            outcome = await with_retry(
                lambda: self._store.insert_activity_within_limits(record, limits),
                name="insert_activity_within_limits",
            )
            if outcome == "capped":
                logger.info("%s for %s not recorded: cap reached", record.game_type, record.user_id)
                return RecordResult(record=record, capped=True)
            inserted = outcome == "inserted"
        else:
            inserted = await with_retry(lambda: self._store.insert_activity(record), name="insert_activity")
        if inserted:
            return RecordResult(record=record)

        existing = None
        if record.dedupe_key:
            existing = await with_retry(
                lambda: self._store.get_activity_by_dedupe_key(record.dedupe_key),
                name="get_activity_by_dedupe_key",
            )
        logger.info("Duplicate %s for %s ignored (key=%s)", record.kind, record.user_id, record.dedupe_key)
        return RecordResult(record=existing or record, duplicate=True)

    async def record_game_session(
        self,
        user_id: str,
        game_type: GameType,
        score: float,
        xp: float,
        *,
        duration_minutes: float = 0.0,
        exercise_id: str | None = None,
        status: SessionStatus = "completed",
        difficulty: str | None = None,
        accuracy: float | None = None,
        consistency: float | None = None,
        coherence: float | None = None,
        limits: list[CountLimit] | None = None,
        now: datetime | None = None,
    ) -> RecordResult:
        """Record one game session.

        For slow games, ``accuracy``, ``consistency`` and ``coherence`` (0-1)
        replace *score* with the weighted session quality.  *limits* are
        checked atomically with the insert of a completed session.
        """
        now = as_utc(now or utc_now())
        quality = None
        if accuracy is not None or consistency is not None or coherence is not None:
            if system_of(game_type) != "S2":
                raise ValueError(f"session quality inputs apply to S2 games only, not {game_type}")
            quality = s2_session_quality(accuracy or 0.0, consistency or 0.0, coherence or 0.0)
            score = quality.score
        if exercise_id:
            key = dedupe_key(user_id, exercise_id, now)
            existing = await with_retry(
                lambda: self._store.get_activity_by_dedupe_key(key),
                name="get_activity_by_dedupe_key",
            )
            if existing is not None:
                logger.info("Session %s already recorded for %s this week", exercise_id, user_id)
                return RecordResult(record=existing, duplicate=True)
        else:
            key = None

        record = ActivityRecord(
            user_id=user_id,
            kind="game-session",
            timestamp=now.isoformat(),
            system_type=system_of(game_type),
            skill=GAME_SKILL[game_type],
            game_type=game_type,
            exercise_id=exercise_id,
            score=score,
            xp=max(0.0, xp) if status == "completed" else 0.0,
            duration_minutes=duration_minutes,
            status=status,
            difficulty=difficulty,
            dedupe_key=key,
        )
        result = await self._insert(record, limits if status == "completed" else None)
        if result.duplicate or result.capped:
            return result
        result.quality = quality
        if status != "completed" or record.xp <= 0:
            return result

        result.skills = await self._award_skill(user_id, game_type, record.xp)
        logger.info("Recorded %s for %s: +%.0f XP", game_type, user_id, record.xp)
        return result

    async def _award_skill(self, user_id: str, game_type: GameType, xp: float) -> SkillState:
        skill = GAME_SKILL[game_type]
        current = await with_retry(lambda: self._store.get_skill_state(user_id), name="get_skill_state")
        current = current or SkillState(user_id=user_id)
        updated = current.with_skill(skill, apply_skill_gain(current.get(skill), xp))
        await with_retry(lambda: self._store.save_skill_state(updated), name="save_skill_state")
        return updated

    async def record_content_completion(
        self,
        user_id: str,
        content_type: str,
        *,
        content_id: str | None = None,
        duration_minutes: float = 0.0,
        now: datetime | None = None,
    ) -> RecordResult:
        now = as_utc(now or utc_now())
        record = ActivityRecord(
            user_id=user_id,
            kind="content-completion",
            timestamp=now.isoformat(),
            system_type="S2",
            subtype=content_type,
            exercise_id=content_id,
            duration_minutes=duration_minutes,
            # one completion per item and day
            dedupe_key=f"{user_id}:{content_id}:{now.date().isoformat()}" if content_id else None,
        )
        return await self._insert(record)

    async def record_recovery_session(
        self,
        user_id: str,
        minutes: float,
        *,
        kind: str = "detox",
        now: datetime | None = None,
    ) -> RecordResult:
        if kind not in ("detox", "walk"):
            raise ValueError(f"unknown recovery kind: {kind}")
        now = as_utc(now or utc_now())
        record = ActivityRecord(
            user_id=user_id,
            kind="recovery-session",
            timestamp=now.isoformat(),
            subtype=kind,
            duration_minutes=max(0.0, minutes),
        )
        return await self._insert(record)

    async def record_custom_session(
        self,
        user_id: str,
        minutes: float,
        *,
        difficulty: int,
        focus: int,
        now: datetime | None = None,
    ) -> RecordResult:
        """Self-reported deep-work session weighted by difficulty and focus."""
        now = as_utc(now or utc_now())
        record = ActivityRecord(
            user_id=user_id,
            kind="content-completion",
            timestamp=now.isoformat(),
            system_type="S2",
            subtype="custom",
            duration_minutes=max(0.0, minutes),
            weight=custom_session_weight(difficulty, focus),
        )
        return await self._insert(record)
