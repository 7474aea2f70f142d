# src/focus_timeline/session/snapshot.py

"""
Restorable form of the session engine.

Decoding is absent-safe: every field other than the state tag may be missing
(older saves) or malformed, and falls back to the idle baseline. Unknown state
tags decode as idle.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any

from ..stats import DailyStats
from .models import FreezeRecord, SessionState, Task

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class SessionSnapshot:
    task: Task | None
    state: SessionState
    start_timestamp: float | None
    elapsed_before_last_save: float
    wasted_time: float
    is_immune: bool
    immunity_count: int
    distraction_start_timestamp: float | None = None
    freeze_tokens_used: int | None = None
    freeze_history: list[FreezeRecord] | None = None
    freeze_start_timestamp: float | None = None
    total_focused_today: float | None = None
    history: list[DailyStats] | None = None
    # Opaque extension block (e.g. stamina); carried through untouched.
    extensions: dict[str, Any] | None = None
    frozen_seconds: float | None = None
    rest_duration_seconds: float | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "task": self.task.to_dict() if self.task is not None else None,
            "state": self.state.value,
            "start_timestamp": self.start_timestamp,
            "elapsed_before_last_save": self.elapsed_before_last_save,
            "wasted_time": self.wasted_time,
            "is_immune": self.is_immune,
            "immunity_count": self.immunity_count,
            "distraction_start_timestamp": self.distraction_start_timestamp,
            "freeze_tokens_used": self.freeze_tokens_used,
            "freeze_history": (
                [r.to_dict() for r in self.freeze_history] if self.freeze_history is not None else None
            ),
            "freeze_start_timestamp": self.freeze_start_timestamp,
            "total_focused_today": self.total_focused_today,
            "history": [d.to_dict() for d in self.history] if self.history is not None else None,
            "extensions": self.extensions,
            "frozen_seconds": self.frozen_seconds,
            "rest_duration_seconds": self.rest_duration_seconds,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> SessionSnapshot:
        task_raw = data.get("task")
        task = Task.from_dict(task_raw) if isinstance(task_raw, dict) else None

        freeze_history: list[FreezeRecord] | None = None
        raw_fh = data.get("freeze_history")
        if isinstance(raw_fh, list):
            freeze_history = [FreezeRecord.from_dict(r) for r in raw_fh if isinstance(r, dict)]

        history: list[DailyStats] | None = None
        raw_hist = data.get("history")
        if isinstance(raw_hist, list):
            history = []
            for item in raw_hist:
                if not isinstance(item, dict):
                    continue
                try:
                    history.append(DailyStats.from_dict(item))
                except (KeyError, ValueError):
                    logger.warning("Skipping malformed history entry: %r", item)

        ext = data.get("extensions")

        return cls(
            task=task,
            state=SessionState.from_raw(data.get("state")),
            start_timestamp=_opt_float(data.get("start_timestamp")),
            elapsed_before_last_save=_opt_float(data.get("elapsed_before_last_save")) or 0.0,
            wasted_time=_opt_float(data.get("wasted_time")) or 0.0,
            is_immune=bool(data.get("is_immune", False)),
            immunity_count=_opt_int(data.get("immunity_count", 1)) or 0,
            distraction_start_timestamp=_opt_float(data.get("distraction_start_timestamp")),
            freeze_tokens_used=_opt_int(data.get("freeze_tokens_used")),
            freeze_history=freeze_history,
            freeze_start_timestamp=_opt_float(data.get("freeze_start_timestamp")),
            total_focused_today=_opt_float(data.get("total_focused_today")),
            history=history,
            extensions=ext if isinstance(ext, dict) else None,
            frozen_seconds=_opt_float(data.get("frozen_seconds")),
            rest_duration_seconds=_opt_float(data.get("rest_duration_seconds")),
        )


def _opt_float(v: Any) -> float | None:
    if v is None:
        return None
    try:
        return float(v)
    except (TypeError, ValueError):
        return None


def _opt_int(v: Any) -> int | None:
    if v is None:
        return None
    try:
        return int(v)
    except (TypeError, ValueError):
        return None
