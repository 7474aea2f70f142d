# src/focus_timeline/session/models.py

from __future__ import annotations

import uuid
from dataclasses import dataclass, field
from enum import StrEnum
from typing import Any


class SessionState(StrEnum):
    """
    Engine state tag.

    Notes:
    - victory / retreat are terminal for the task: they must be consumed
      (start a new task, start a rest, or reset) before another start.
    """

    IDLE = "idle"
    FIGHTING = "fighting"
    PAUSED = "paused"
    FROZEN = "frozen"
    RESTING = "resting"
    VICTORY = "victory"
    RETREAT = "retreat"

    @classmethod
    def from_raw(cls, raw: str | None) -> SessionState:
        if not raw:
            return cls.IDLE
        try:
            return cls(raw)
        except Exception:
            return cls.IDLE

    @property
    def is_terminal(self) -> bool:
        return self in (SessionState.VICTORY, SessionState.RETREAT)

    @property
    def is_active(self) -> bool:
        """A task is in flight (fighting, paused or frozen)."""
        return self in (SessionState.FIGHTING, SessionState.PAUSED, SessionState.FROZEN)


class TaskStyle(StrEnum):
    FOCUS = "focus"
    PASSIVE = "passive"

    @classmethod
    def from_raw(cls, raw: str | None) -> TaskStyle:
        if not raw:
            return cls.FOCUS
        try:
            return cls(raw)
        except Exception:
            return cls.FOCUS


class Outcome(StrEnum):
    COMPLETED = "completed"
    INCOMPLETE = "incomplete"


class EndReason(StrEnum):
    VICTORY = "victory"
    INCOMPLETE_EXIT = "incompleteExit"
    # Undo-start never emits a result; the tag exists for callers that log exits.
    ABANDONED_WITHIN_GRACE = "abandonedWithinGrace"


def new_id() -> str:
    return uuid.uuid4().hex


@dataclass(slots=True)
class Task:
    """A unit of work with a time budget (the "boss" of a session)."""

    name: str
    budget_seconds: float
    style: TaskStyle = TaskStyle.FOCUS
    category: str = "work"
    template_id: str | None = None
    id: str = field(default_factory=new_id)

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "budget_seconds": float(self.budget_seconds),
            "style": self.style.value,
            "category": self.category,
            "template_id": self.template_id,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Task:
        return cls(
            id=str(data.get("id") or new_id()),
            name=str(data.get("name") or ""),
            budget_seconds=float(data.get("budget_seconds") or 0.0),
            style=TaskStyle.from_raw(data.get("style")),
            category=str(data.get("category") or "work"),
            template_id=data.get("template_id"),
        )


@dataclass(slots=True, frozen=True)
class FreezeRecord:
    """One freeze interval. ended_at stays None while the freeze is open."""

    started_at: float
    task_name: str | None
    ended_at: float | None = None
    duration_seconds: float = 0.0

    @property
    def is_open(self) -> bool:
        return self.ended_at is None

    def closed(self, ended_at: float) -> FreezeRecord:
        return FreezeRecord(
            started_at=self.started_at,
            task_name=self.task_name,
            ended_at=ended_at,
            duration_seconds=max(0.0, ended_at - self.started_at),
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "started_at": self.started_at,
            "ended_at": self.ended_at,
            "duration_seconds": self.duration_seconds,
            "task_name": self.task_name,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> FreezeRecord:
        started = float(data.get("started_at") or 0.0)
        raw_end = data.get("ended_at")
        ended = float(raw_end) if raw_end is not None else None
        return cls(
            started_at=started,
            task_name=data.get("task_name"),
            ended_at=ended,
            duration_seconds=float(data.get("duration_seconds") or 0.0),
        )


@dataclass(slots=True, frozen=True)
class SessionResult:
    """
    Emitted once when a session ends (victory or incomplete exit).

    This is the only value the scheduler consumes from the engine.
    remaining_seconds is only set for incomplete results.
    """

    task: Task
    outcome: Outcome
    focused_seconds: float
    wasted_seconds: float
    end_reason: EndReason
    ended_at: float
    remaining_seconds: float | None = None

    @property
    def task_name(self) -> str:
        return self.task.name
