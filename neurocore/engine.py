"""CognitiveEngine — wires the store to the pure scorers and gates.

The engine is the only place that reads from the store for scoring: it
turns raw activity rows into :class:`ActivityAggregates` and daily series,
then hands them to the pure functions in ``scoring``, ``decay`` and
``gating``.  Cap counts for games are re-read through :class:`QuotaService`
on every gating call.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from datetime import datetime, timedelta

from config import DEFAULT_PLAN
from neurocore.antirepetition.engine import AntiRepetitionEngine
from neurocore.baseline.calibrator import BaselineCalibrator, BaselineResult, demographic_baseline
from neurocore.decay.cognitive_age import CognitiveAgeResult, compute_cognitive_age
from neurocore.decay.tracker import (
    RQDecayResult,
    apply_rq_decay,
    consecutive_low_recovery_days,
    network_decay,
    readiness_decay,
    rq_inactive_days,
    skill_decay_points,
)
from neurocore.defaults import RQ_CONSISTENCY_WINDOW, RQ_TASK_WINDOW_DAYS
from neurocore.gating.catalog import DEFAULT_CATALOG, ContentItem
from neurocore.gating.difficulty import (
    DifficultyAdvice,
    DifficultyInput,
    advise,
    initial_training_capacity,
    update_training_capacity,
)
from neurocore.gating.eligibility import (
    ContentGateResult,
    GameDecision,
    GatingMetrics,
    GlobalMode,
    evaluate_content,
    evaluate_game,
    evaluate_games,
    global_mode,
)
from neurocore.models import (
    DerivedScoreSnapshot,
    GameType,
    SkillState,
    UserProfile,
    parse_ts,
)
from neurocore.plans import PlanConfig, get_plan
from neurocore.scoring.aggregator import (
    ActivityAggregates,
    AggregateScores,
    TaskCompletion,
    aggregate,
    recovery_factor,
)
from neurocore.scoring.daily import daily_performance_series
from neurocore.storage.quota import QuotaService
from neurocore.storage.store import NeuroStore
from neurocore.training.recorder import RecordResult, SessionRecorder
from neurocore.utils.math import clamp, mean, round1
from neurocore.utils.retry import with_retry
from neurocore.windows import as_utc, days_between, last_n_days, start_of_day, utc_now

logger = logging.getLogger(__name__)

_TASK_TYPES = ("podcast", "article", "book")
# Daily recovery is reconstructed for this many trailing days.
_RECOVERY_HISTORY_DAYS = 7
_AGE_HISTORY_DAYS = 180


@dataclass(slots=True)
class Dashboard:
    user_id: str
    plan: PlanConfig
    skills: SkillState
    scores: AggregateScores
    rq: RQDecayResult
    baseline: BaselineResult
    cognitive_age: CognitiveAgeResult
    mode: GlobalMode
    skill_decay: float = 0.0
    network_decay: float = 0.0
    readiness_decay: float = 0.0

    @property
    def network_index(self) -> float:
        return self.scores.network.total

    @property
    def decay_applied(self) -> bool:
        return (
            self.rq.is_decaying
            or self.skill_decay > 0
            or self.network_decay > 0
            or self.readiness_decay > 0
        )

    def snapshot(self, day: str) -> DerivedScoreSnapshot:
        return DerivedScoreSnapshot(
            user_id=self.user_id,
            date=day,
            network_index=self.network_index,
            reasoning_quality=self.rq.value,
            cognitive_performance=self.scores.cognitive_performance,
            cognitive_age=self.cognitive_age.age,
            decay_applied=self.decay_applied,
            regression_risk=self.cognitive_age.regression.risk,
        )

    def to_dict(self) -> dict:
        return {
            "user_id": self.user_id,
            "plan": self.plan.id,
            "mode": self.mode,
            "skills": self.skills.to_dict(),
            "network_index": self.scores.network.to_dict(),
            "reasoning_quality": self.rq.to_dict(),
            "rq_parts": self.scores.reasoning.to_dict(),
            "today": self.scores.today.to_dict(),
            "baseline": self.baseline.to_dict(),
            "cognitive_age": self.cognitive_age.to_dict(),
            "decay": {
                "applied": self.decay_applied,
                "skill": self.skill_decay,
                "network": self.network_decay,
                "readiness": self.readiness_decay,
            },
        }


class CognitiveEngine:
    def __init__(
        self,
        store: NeuroStore,
        *,
        default_plan: str = DEFAULT_PLAN,
        catalog: tuple[ContentItem, ...] = DEFAULT_CATALOG,
        anti_repetition: AntiRepetitionEngine | None = None,
    ) -> None:
        self.store = store
        self.default_plan = default_plan
        self.catalog = catalog
        self.quota = QuotaService(store)
        self.recorder = SessionRecorder(store)
        self.calibrator = BaselineCalibrator(store)
        self.anti_repetition = anti_repetition or AntiRepetitionEngine(store)
        self._user_locks: dict[str, asyncio.Lock] = {}

    # ── Users ────────────────────────────────────────────────────

    async def ensure_user(
        self,
        user_id: str,
        *,
        plan_id: str | None = None,
        chrono_age: float | None = None,
    ) -> UserProfile:
        profile = await self.store.get_profile(user_id)
        if profile is not None and plan_id is None and chrono_age is None:
            return profile

        profile = profile or UserProfile(user_id=user_id, plan_id=self.default_plan)
        if plan_id is not None:
            profile.plan_id = get_plan(plan_id).id
        if chrono_age is not None:
            profile.chrono_age = chrono_age
        await with_retry(lambda: self.store.save_profile(profile), name="save_profile")
        logger.info("Profile saved for %s (plan=%s)", user_id, profile.plan_id)
        return profile

    async def _context(self, user_id: str) -> tuple[UserProfile, PlanConfig, SkillState]:
        profile = await self.store.get_profile(user_id) or UserProfile(user_id=user_id, plan_id=self.default_plan)
        skills = await self.store.get_skill_state(user_id) or SkillState(user_id=user_id)
        return profile, get_plan(profile.plan_id), skills

    # ── Reads ────────────────────────────────────────────────────

    async def load_aggregates(
        self,
        user_id: str,
        now: datetime,
        physio_score: float | None = None,
    ) -> ActivityAggregates:
        week = last_n_days(now, 7)
        game_xp = await self.store.sum_activity(
            user_id, "xp", start=week.start_iso, end=week.end_iso, kind="game-session"
        )
        detox = await self.store.sum_activity(
            user_id, "duration_minutes", start=week.start_iso, end=week.end_iso,
            kind="recovery-session", subtype="detox",
        )
        walk = await self.store.sum_activity(
            user_id, "duration_minutes", start=week.start_iso, end=week.end_iso,
            kind="recovery-session", subtype="walk",
        )

        s2_records = await self.store.list_activity(
            user_id, kind="game-session", system_type="S2", limit=RQ_CONSISTENCY_WINDOW * 2
        )
        s2_scores = [
            float(r.score)
            for r in s2_records
            if r.status == "completed" and r.score is not None
        ][-RQ_CONSISTENCY_WINDOW:]

        task_window = last_n_days(now, RQ_TASK_WINDOW_DAYS, align_to_day=False)
        content = await self.store.list_activity(
            user_id, start=task_window.start_iso, end=task_window.end_iso, kind="content-completion"
        )
        tasks = [TaskCompletion(r.subtype, r.at) for r in content if r.subtype in _TASK_TYPES]
        custom = [r for r in content if r.subtype == "custom" and r.status == "completed"]
        custom_minutes = sum(r.duration_minutes * r.weight for r in custom) if custom else None

        return ActivityAggregates(
            weekly_game_xp=game_xp,
            weekly_detox_minutes=detox,
            weekly_walk_minutes=walk,
            s2_scores=s2_scores,
            tasks=tasks,
            custom_weighted_minutes=custom_minutes,
            physio_score=physio_score,
        )

    async def daily_recovery(self, user_id: str, now: datetime, plan: PlanConfig) -> list[float]:
        """Recovery score at the end of each of the last few days, oldest first."""
        today = start_of_day(now)
        first = today - timedelta(days=_RECOVERY_HISTORY_DAYS + 6)
        records = await self.store.list_activity(user_id, start=first.isoformat(), kind="recovery-session")
        values: list[float] = []
        for offset in range(_RECOVERY_HISTORY_DAYS - 1, -1, -1):
            end = today + timedelta(days=1 - offset)
            start = end - timedelta(days=7)
            window = [r for r in records if start <= r.at < end]
            detox = sum(r.duration_minutes for r in window if r.subtype == "detox")
            walk = sum(r.duration_minutes for r in window if r.subtype == "walk")
            values.append(recovery_factor(detox, walk, plan.recovery_target_minutes))
        return values

    async def _days_since(self, user_id: str, now: datetime, **filters) -> int | None:
        last = await self.store.get_last_activity_at(user_id, **filters)
        return days_between(parse_ts(last), now) if last else None

    # ── Scores ───────────────────────────────────────────────────

    async def dashboard(
        self,
        user_id: str,
        now: datetime | None = None,
        *,
        physio_score: float | None = None,
    ) -> Dashboard:
        now = as_utc(now or utc_now())
        profile, plan, stored_skills = await self._context(user_id)

        skill_decay = skill_decay_points(
            await self._days_since(user_id, now, kind="game-session", min_xp=0)
        )
        skills = stored_skills
        if skill_decay > 0:
            skills = SkillState(
                user_id=user_id,
                ae=clamp(stored_skills.ae - skill_decay),
                ra=clamp(stored_skills.ra - skill_decay),
                ct=clamp(stored_skills.ct - skill_decay),
                insight=clamp(stored_skills.insight - skill_decay),
                updated_at=stored_skills.updated_at,
            )

        aggregates = await self.load_aggregates(user_id, now, physio_score)
        scores = aggregate(skills, aggregates, plan, now)

        last_s2 = await self.store.get_last_activity_at(user_id, kind="game-session", system_type="S2")
        last_task = await self.store.get_last_activity_at(user_id, kind="content-completion")
        rq = apply_rq_decay(
            scores.reasoning.base,
            scores.reasoning.s2_core,
            rq_inactive_days(
                parse_ts(last_s2) if last_s2 else None,
                parse_ts(last_task) if last_task else None,
                now,
            ),
        )

        low_days = consecutive_low_recovery_days(await self.daily_recovery(user_id, now, plan))
        ready_decay = readiness_decay(low_days)
        if ready_decay > 0:
            scores.today.readiness = round1(clamp(scores.today.readiness - ready_decay))

        net_decay = network_decay(
            scores.today.recovery,
            await self._days_since(user_id, now, kind="game-session"),
        )
        if net_decay > 0:
            scores.network.total = round1(clamp(scores.network.total - net_decay))

        baseline = await self.calibrator.evaluate(user_id, now, profile.chrono_age)
        since = now - timedelta(days=_AGE_HISTORY_DAYS)
        records = await self.store.list_activity(user_id, start=since.isoformat(), kind="game-session")
        sessions_30d = await self.store.count_activity(
            user_id, start=last_n_days(now, 30).start_iso, kind="game-session"
        )
        demographic = None
        if profile.chrono_age is not None or profile.education or profile.work_type:
            demographic = demographic_baseline(profile.chrono_age, profile.education, profile.work_type)

        age = compute_cognitive_age(
            daily_performance_series(records),
            today=now.date(),
            current_performance=scores.cognitive_performance,
            baseline=baseline.baseline if baseline.is_calibrated else None,
            chrono_age=profile.chrono_age,
            rq=rq.value,
            sessions_30d=sessions_30d,
            demographic=demographic,
        )

        metrics = GatingMetrics(scores.today.recovery, scores.today.sharpness, scores.today.readiness)
        return Dashboard(
            user_id=user_id,
            plan=plan,
            skills=skills,
            scores=scores,
            rq=rq,
            baseline=baseline,
            cognitive_age=age,
            mode=global_mode(metrics),
            skill_decay=skill_decay,
            network_decay=net_decay,
            readiness_decay=ready_decay,
        )

    async def persist_snapshot(self, user_id: str, now: datetime | None = None) -> DerivedScoreSnapshot:
        now = as_utc(now or utc_now())
        board = await self.dashboard(user_id, now)
        snapshot = board.snapshot(now.date().isoformat())
        await with_retry(lambda: self.store.save_snapshot(snapshot), name="save_snapshot")
        logger.info(
            "Snapshot %s for %s: network=%.1f rq=%.1f age=%s",
            snapshot.date,
            user_id,
            snapshot.network_index,
            snapshot.reasoning_quality,
            snapshot.cognitive_age,
        )
        return snapshot

    # ── Gates ────────────────────────────────────────────────────

    async def gating_metrics(self, user_id: str, now: datetime) -> tuple[GatingMetrics, PlanConfig]:
        board = await self.dashboard(user_id, now)
        today = board.scores.today
        return GatingMetrics(today.recovery, today.sharpness, today.readiness), board.plan

    async def evaluate_games(self, user_id: str, now: datetime | None = None) -> dict[str, GameDecision]:
        now = as_utc(now or utc_now())
        metrics, plan = await self.gating_metrics(user_id, now)
        caps = await self.quota.game_caps(user_id, now)
        return evaluate_games(metrics, caps, plan)

    async def evaluate_content(self, user_id: str, now: datetime | None = None) -> ContentGateResult:
        now = as_utc(now or utc_now())
        metrics, _ = await self.gating_metrics(user_id, now)
        counts = await self.quota.content_counts(user_id, now)
        return evaluate_content(self.catalog, metrics, counts)

    async def training_capacity(self, user_id: str) -> float:
        profile, plan, skills = await self._context(user_id)
        if profile.training_capacity is not None:
            return profile.training_capacity
        return initial_training_capacity(skills, plan.tc_cap)

    async def advise_difficulty(self, user_id: str, now: datetime | None = None) -> DifficultyAdvice:
        now = as_utc(now or utc_now())
        board = await self.dashboard(user_id, now)
        today = board.scores.today
        week = last_n_days(now, 7)
        weekly_xp = await self.store.sum_activity(
            user_id, "xp", start=week.start_iso, end=week.end_iso, kind="game-session"
        )
        inp = DifficultyInput(
            recovery=today.recovery,
            sharpness=today.sharpness,
            readiness=today.readiness,
            weekly_xp=weekly_xp,
            training_capacity=await self.training_capacity(user_id),
        )
        return advise(inp, board.plan)

    async def update_training_capacity(self, user_id: str, now: datetime | None = None) -> float:
        """Weekly TC step from the last 7 days of XP and recovery."""
        now = as_utc(now or utc_now())
        profile, plan, _ = await self._context(user_id)
        current = await self.training_capacity(user_id)
        week = last_n_days(now, 7)
        weekly_xp = await self.store.sum_activity(
            user_id, "xp", start=week.start_iso, end=week.end_iso, kind="game-session"
        )
        avg_recovery = mean(await self.daily_recovery(user_id, now, plan)) or 0.0
        days_idle = await self._days_since(user_id, now, kind="game-session", min_xp=0)
        profile.training_capacity = update_training_capacity(current, weekly_xp, avg_recovery, days_idle, plan.tc_cap)
        await with_retry(lambda: self.store.save_profile(profile), name="save_profile")
        logger.info("Training capacity for %s: %.1f -> %.1f", user_id, current, profile.training_capacity)
        return profile.training_capacity

    # ── Writes ───────────────────────────────────────────────────

    async def play_game(
        self,
        user_id: str,
        game_type: GameType,
        score: float,
        xp: float,
        *,
        now: datetime | None = None,
        **session,
    ) -> tuple[GameDecision, RecordResult | None]:
        """Gate with fresh caps, then record the session if it is enabled.

        Calls for one user are serialized here; the insert itself re-checks
        the caps in the store, which also covers writers on other processes.
        """
        now = as_utc(now or utc_now())
        async with self._user_lock(user_id):
            metrics, plan = await self.gating_metrics(user_id, now)
            caps = await self.quota.game_caps(user_id, now)
            decision = evaluate_game(game_type, metrics, caps, plan)
            if not decision.enabled:
                logger.info("%s withheld for %s: %s", game_type, user_id, decision.reason_code)
                return decision, None

            limits = self.quota.game_limits(game_type, plan, now)
            result = await self.recorder.record_game_session(
                user_id, game_type, score, xp, now=now, limits=limits, **session
            )
            if not result.capped:
                return decision, result

            # another writer took the last slot between our read and the insert
            caps = await self.quota.game_caps(user_id, now)
            decision = evaluate_game(game_type, metrics, caps, plan)
            logger.info("%s capped at insert for %s: %s", game_type, user_id, decision.reason_code)
            return decision, None

    def _user_lock(self, user_id: str) -> asyncio.Lock:
        lock = self._user_locks.get(user_id)
        if lock is None:
            lock = self._user_locks[user_id] = asyncio.Lock()
        return lock
