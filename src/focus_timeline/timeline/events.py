# src/focus_timeline/timeline/events.py

"""UI events produced by the scheduler. Plain values; rendering is someone else's job."""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(slots=True, frozen=True)
class Victory:
    task_name: str
    focused_minutes: int


@dataclass(slots=True, frozen=True)
class Retreat:
    task_name: str
    wasted_minutes: int


@dataclass(slots=True, frozen=True)
class RestComplete:
    node_id: str
    up_next_title: str | None = None


@dataclass(slots=True, frozen=True)
class RestSuggested:
    reason: str
    target_node_id: str | None = None


@dataclass(slots=True, frozen=True)
class IncompleteExit:
    task_name: str
    focused_seconds: float
    remaining_seconds: float | None


TimelineEvent = Victory | Retreat | RestComplete | RestSuggested | IncompleteExit


def describe(event: TimelineEvent) -> str:
    """One-line text for console connectors."""
    if isinstance(event, Victory):
        return f"Victory: {event.task_name} (+{event.focused_minutes} min focused)"
    if isinstance(event, Retreat):
        return f"Retreat / distraction: {event.task_name} (wasted +{event.wasted_minutes} min)"
    if isinstance(event, RestComplete):
        tail = f" Up next: {event.up_next_title}" if event.up_next_title else ""
        return f"Rest complete.{tail}"
    if isinstance(event, RestSuggested):
        return f"Time for a rest? {event.reason}"
    if isinstance(event, IncompleteExit):
        remaining = event.remaining_seconds or 0.0
        return (
            f"Left early: {event.task_name} "
            f"({int(event.focused_seconds // 60)} min done, {int(remaining // 60)} min left)"
        )
    return str(event)
