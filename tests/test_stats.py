# tests/test_stats.py

from __future__ import annotations

from datetime import date, timedelta, timezone

from focus_timeline.stats import DailyStats, aggregate, current_streak, day_of, update_history, weekly_growth

from .fakes import T0


def _day(d: date, focused: float = 60.0, sessions: int = 1) -> DailyStats:
    return DailyStats(day=d, total_focused_seconds=focused, total_wasted_seconds=0.0, sessions_count=sessions)


def test_update_history_merges_same_day_and_appends_new_day() -> None:
    d1 = date(2026, 3, 9)
    d2 = date(2026, 3, 10)
    history = [_day(d1)]

    merged = update_history(history, _day(d1, focused=30))
    assert merged == [DailyStats(d1, 90.0, 0.0, 2)]
    assert history == [_day(d1)]

    grown = update_history(merged, _day(d2))
    assert [d.day for d in grown] == [d1, d2]


def test_aggregate_totals() -> None:
    totals = aggregate([_day(date(2026, 3, 9), 100, 2), _day(date(2026, 3, 10), 50, 1)])
    assert totals.total_focused_seconds == 150
    assert totals.sessions_count == 3


def test_current_streak() -> None:
    today = date(2026, 3, 10)
    history = [_day(today - timedelta(days=i)) for i in range(3)]
    assert current_streak(history, today) == 3

    assert current_streak(history[1:], today) == 2
    assert current_streak([_day(today - timedelta(days=3))], today) == 0
    assert current_streak([_day(today, sessions=0)], today) == 0
    assert current_streak([], today) == 0


def test_weekly_growth() -> None:
    assert weekly_growth(150, 100) == 50
    assert weekly_growth(50, 100) == -50
    assert weekly_growth(10, 0) == 100
    assert weekly_growth(0, 0) == 0


def test_day_of_respects_timezone() -> None:
    # T0 is 12:00 UTC; 14 hours ahead is already the next calendar day.
    assert day_of(T0) == date(2026, 3, 10)
    assert day_of(T0, timezone(timedelta(hours=14))) == date(2026, 3, 11)


def test_daily_stats_dict_round_trip() -> None:
    d = DailyStats(date(2026, 3, 10), 120.0, 5.0, 2)
    assert d.to_dict()["date"] == "2026-03-10"
    assert DailyStats.from_dict(d.to_dict()) == d
