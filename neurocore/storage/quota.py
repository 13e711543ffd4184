"""QuotaService — day/week usage counts read fresh from activity_records.

Nothing is cached between calls: two devices recording sessions for the
same user always see each other's writes at the next gating decision.
"""

from __future__ import annotations

import logging
import sqlite3
from datetime import datetime

from neurocore.defaults import S1_DAILY_CAP, S2_DAILY_CAP
from neurocore.errors import StoreUnavailableError
from neurocore.gating.eligibility import ContentCounts, GameCaps
from neurocore.models import CountLimit, GameType
from neurocore.plans import PlanConfig
from neurocore.storage.store import NeuroStore
from neurocore.utils.retry import with_retry
from neurocore.windows import today_window, utc_now, week_window

logger = logging.getLogger(__name__)


class QuotaService:
    def __init__(self, store: NeuroStore) -> None:
        self._store = store

    async def _count(self, user_id: str, name: str, **filters) -> int:
        return await with_retry(
            lambda: self._store.count_activity(user_id, kind="game-session", **filters),
            name=name,
        )

    async def game_caps(self, user_id: str, now: datetime | None = None) -> GameCaps:
        """Completed game sessions today / this week.

        Raises :class:`StoreUnavailableError`: a hard cap is never guessed.
        """
        now = now or utc_now()
        today = today_window(now)
        week = week_window(now)
        return GameCaps(
            s1_daily_used=await self._count(
                user_id, "count_s1_today", start=today.start_iso, end=today.end_iso, system_type="S1"
            ),
            s2_daily_used=await self._count(
                user_id, "count_s2_today", start=today.start_iso, end=today.end_iso, system_type="S2"
            ),
            s2_weekly_used=await self._count(
                user_id, "count_s2_week", start=week.start_iso, end=week.end_iso, system_type="S2"
            ),
            insight_weekly_used=await self._count(
                user_id, "count_insight_week", start=week.start_iso, end=week.end_iso, game_type="S2-IN"
            ),
        )

    def game_limits(self, game_type: GameType, plan: PlanConfig, now: datetime | None = None) -> list[CountLimit]:
        """The caps a new *game_type* session must fit under, as insert guards."""
        now = now or utc_now()
        today = today_window(now)
        if game_type.startswith("S1"):
            return [CountLimit(today.start_iso, today.end_iso, S1_DAILY_CAP, system_type="S1")]
        week = week_window(now)
        limits = [
            CountLimit(today.start_iso, today.end_iso, S2_DAILY_CAP, system_type="S2"),
            CountLimit(week.start_iso, week.end_iso, plan.s2_max_per_week, system_type="S2"),
        ]
        if game_type == "S2-IN":
            limits.append(CountLimit(week.start_iso, week.end_iso, plan.insight_max_per_week, game_type="S2-IN"))
        return limits

    async def content_counts(self, user_id: str, now: datetime | None = None) -> ContentCounts:
        """Readings today and book sessions this week; zeros when unreadable."""
        now = now or utc_now()
        today = today_window(now)
        week = week_window(now)
        try:
            articles = await self._store.count_activity(
                user_id, start=today.start_iso, end=today.end_iso, kind="content-completion", subtype="article"
            )
            books_today = await self._store.count_activity(
                user_id, start=today.start_iso, end=today.end_iso, kind="content-completion", subtype="book"
            )
            books_week = await self._store.count_activity(
                user_id, start=week.start_iso, end=week.end_iso, kind="content-completion", subtype="book"
            )
        except (StoreUnavailableError, sqlite3.Error, OSError) as exc:
            logger.warning("Content counts unavailable for %s, treating as zero: %s", user_id, exc)
            return ContentCounts()
        return ContentCounts(readings_today=articles + books_today, book_sessions_week=books_week)
