"""Day / week / N-day window boundaries.

All windows are half-open ``[start, end)`` in UTC.  ``now`` is always passed
in explicitly so callers (and tests) control the clock.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime, time, timedelta, timezone

__all__ = [
    "Window",
    "as_utc",
    "start_of_day",
    "today_window",
    "week_window",
    "week_start",
    "last_n_days",
    "days_between",
    "utc_now",
]


@dataclass(slots=True, frozen=True)
class Window:
    start: datetime
    end: datetime

    def contains(self, moment: datetime) -> bool:
        return self.start <= moment < self.end

    @property
    def start_iso(self) -> str:
        return self.start.isoformat()

    @property
    def end_iso(self) -> str:
        return self.end.isoformat()


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def as_utc(moment: datetime) -> datetime:
    """*moment* in UTC; naive values are taken to already be UTC."""
    if moment.tzinfo is None:
        return moment.replace(tzinfo=timezone.utc)
    return moment.astimezone(timezone.utc)


def start_of_day(moment: datetime) -> datetime:
    moment = as_utc(moment)
    return datetime.combine(moment.date(), time.min, tzinfo=timezone.utc)


def today_window(now: datetime) -> Window:
    start = start_of_day(now)
    return Window(start, start + timedelta(days=1))


def week_start(day: date | datetime) -> date:
    """Monday of the ISO week containing *day*."""
    if isinstance(day, datetime):
        day = as_utc(day).date()
    return day - timedelta(days=day.weekday())


def week_window(now: datetime) -> Window:
    """Current calendar week, Monday 00:00 up to next Monday."""
    start = datetime.combine(week_start(now), time.min, tzinfo=timezone.utc)
    return Window(start, start + timedelta(days=7))


def last_n_days(now: datetime, days: int, *, align_to_day: bool = True) -> Window:
    """Rolling window covering today and the ``days - 1`` days before it.

    With ``align_to_day=False`` the window is exactly ``days * 24h`` ending now.
    """
    now = as_utc(now)
    if not align_to_day:
        return Window(now - timedelta(days=days), now)
    end = start_of_day(now) + timedelta(days=1)
    return Window(end - timedelta(days=days), end)


def days_between(earlier: datetime, later: datetime) -> int:
    """Whole days elapsed from *earlier* to *later* (never negative)."""
    delta = as_utc(later) - as_utc(earlier)
    return max(0, delta.days)
