# src/focus_timeline/stats.py

"""
Per-day focus history.

One DailyStats per calendar day; new sessions are merged into the day they
ended on. Days are resolved in the caller's timezone so "today" matches the
user's wall clock, not UTC.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import UTC, date, datetime, timedelta, tzinfo
from typing import Any, Iterable


@dataclass(slots=True, frozen=True)
class DailyStats:
    day: date
    total_focused_seconds: float
    total_wasted_seconds: float
    sessions_count: int

    def to_dict(self) -> dict[str, Any]:
        return {
            "date": self.day.isoformat(),
            "total_focused_seconds": self.total_focused_seconds,
            "total_wasted_seconds": self.total_wasted_seconds,
            "sessions_count": self.sessions_count,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> DailyStats:
        return cls(
            day=date.fromisoformat(str(data["date"])[:10]),
            total_focused_seconds=float(data.get("total_focused_seconds") or 0.0),
            total_wasted_seconds=float(data.get("total_wasted_seconds") or 0.0),
            sessions_count=int(data.get("sessions_count") or 0),
        )


@dataclass(slots=True, frozen=True)
class StatsTotals:
    total_focused_seconds: float
    total_wasted_seconds: float
    sessions_count: int


def day_of(ts: float, tz: tzinfo | None = None) -> date:
    """Calendar day of an epoch timestamp in `tz` (UTC when omitted)."""
    return datetime.fromtimestamp(ts, tz or UTC).date()


def update_history(history: list[DailyStats], session: DailyStats) -> list[DailyStats]:
    """
    Merge one session into the history.

    If the session's day already exists, its totals are increased; otherwise the
    day is appended. Returns a new list; the input is not modified.
    """
    out = list(history)
    for i, existing in enumerate(out):
        if existing.day == session.day:
            out[i] = DailyStats(
                day=existing.day,
                total_focused_seconds=existing.total_focused_seconds + session.total_focused_seconds,
                total_wasted_seconds=existing.total_wasted_seconds + session.total_wasted_seconds,
                sessions_count=existing.sessions_count + session.sessions_count,
            )
            return out
    out.append(session)
    return out


def aggregate(history: Iterable[DailyStats]) -> StatsTotals:
    focused = 0.0
    wasted = 0.0
    sessions = 0
    for d in history:
        focused += d.total_focused_seconds
        wasted += d.total_wasted_seconds
        sessions += d.sessions_count
    return StatsTotals(total_focused_seconds=focused, total_wasted_seconds=wasted, sessions_count=sessions)


def current_streak(history: Iterable[DailyStats], today: date) -> int:
    """
    Consecutive days with at least one session, counting back from today.

    A streak is still alive if the latest active day is yesterday.
    """
    days = {d.day for d in history if d.sessions_count > 0}
    if not days:
        return 0

    if today in days:
        cursor = today
    elif (today - timedelta(days=1)) in days:
        cursor = today - timedelta(days=1)
    else:
        return 0

    streak = 0
    while cursor in days:
        streak += 1
        cursor -= timedelta(days=1)
    return streak


def weekly_growth(current_week_focused: float, previous_week_focused: float) -> int:
    """Percent change vs. the previous week (100 when starting from zero)."""
    if previous_week_focused == 0:
        return 100 if current_week_focused > 0 else 0
    growth = (current_week_focused - previous_week_focused) / previous_week_focused
    return int(growth * 100)
