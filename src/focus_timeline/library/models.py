# src/focus_timeline/library/models.py

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import UTC, datetime, timedelta, tzinfo
from enum import StrEnum
from typing import Any

from ..session.models import TaskStyle, new_id


class DeadlineStatus(StrEnum):
    """
    Library entry deadline status.

    Notes:
    - active -> expired happens at most once; nothing moves an entry back.
    - archived entries are never bucketed or expired.
    """

    ACTIVE = "active"
    EXPIRED = "expired"
    ARCHIVED = "archived"

    @classmethod
    def from_raw(cls, raw: str | None) -> DeadlineStatus:
        if not raw:
            return cls.ACTIVE
        try:
            return cls(raw)
        except Exception:
            return cls.ACTIVE


@dataclass(slots=True)
class CardTemplate:
    """A reusable task definition that can be placed onto the timeline."""

    title: str
    default_duration_seconds: float = 1500.0
    style: TaskStyle = TaskStyle.FOCUS
    category: str = "work"
    deadline_window_days: int | None = None
    deadline_at: float | None = None
    tags: list[str] = field(default_factory=list)
    id: str = field(default_factory=new_id)

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "title": self.title,
            "default_duration_seconds": self.default_duration_seconds,
            "style": self.style.value,
            "category": self.category,
            "deadline_window_days": self.deadline_window_days,
            "deadline_at": self.deadline_at,
            "tags": list(self.tags),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> CardTemplate:
        window = data.get("deadline_window_days")
        deadline_at = data.get("deadline_at")
        return cls(
            id=str(data.get("id") or new_id()),
            title=str(data.get("title") or ""),
            default_duration_seconds=float(data.get("default_duration_seconds") or 1500.0),
            style=TaskStyle.from_raw(data.get("style")),
            category=str(data.get("category") or "work"),
            deadline_window_days=int(window) if window is not None else None,
            deadline_at=float(deadline_at) if deadline_at is not None else None,
            tags=[str(t) for t in (data.get("tags") or [])],
        )


@dataclass(slots=True)
class LibraryEntry:
    """A template waiting in the unscheduled pool."""

    template_id: str
    added_at: float
    deadline_status: DeadlineStatus = DeadlineStatus.ACTIVE

    def to_dict(self) -> dict[str, Any]:
        return {
            "template_id": self.template_id,
            "added_at": self.added_at,
            "deadline_status": self.deadline_status.value,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> LibraryEntry:
        return cls(
            template_id=str(data["template_id"]),
            added_at=float(data.get("added_at") or 0.0),
            deadline_status=DeadlineStatus.from_raw(data.get("deadline_status")),
        )


def effective_deadline(template: CardTemplate, entry: LibraryEntry, tz: tzinfo | None = None) -> float | None:
    """
    Absolute deadline of an entry.

    deadline_at wins; otherwise added_at + deadline_window_days (calendar days in tz).
    None when the template has no deadline.
    """
    if template.deadline_at is not None:
        return template.deadline_at
    if template.deadline_window_days is None:
        return None
    added = datetime.fromtimestamp(entry.added_at, tz or UTC)
    return (added + timedelta(days=template.deadline_window_days)).timestamp()
