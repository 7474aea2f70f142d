# src/focus_timeline/session/engine.py

"""
Session engine.

A synchronous state machine over one active task. Every operation takes an
explicit `now` (epoch seconds) so behavior is deterministic.

Time accounting:
- elapsed is recomputed from absolute timestamps on every call:
      elapsed = (now - start) - wasted - frozen - pending_distraction
  so repeated or irregular ticks never drift or double count.
- while paused/frozen the elapsed value is banked in elapsed_before_last_save;
  resume folds the paused interval into wasted_time, resume_from_freeze folds
  the frozen interval into frozen_seconds, and elapsed continues from the bank.

Invalid transitions are ignored (logged at DEBUG). freeze() is the only call
that reports failure, via its boolean result.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import replace

from ..stats import DailyStats
from .exit_policy import allows_undo_start
from .models import (
    EndReason,
    FreezeRecord,
    Outcome,
    SessionResult,
    SessionState,
    Task,
    TaskStyle,
)
from .snapshot import SessionSnapshot

logger = logging.getLogger(__name__)

SessionListener = Callable[[SessionResult], None]

DEFAULT_FREEZE_TOKENS = 3
DEFAULT_DISTRACTION_GRACE_SECONDS = 10.0

# reconcile(): absences shorter than this are ignored, longer than the limit end the session.
RECONCILE_GRACE_SECONDS = 30.0
RECONCILE_ABANDON_SECONDS = 300.0

_STARTABLE = (SessionState.IDLE, SessionState.VICTORY, SessionState.RETREAT)


class SessionEngine:
    def __init__(
        self,
        *,
        freeze_token_budget: int = DEFAULT_FREEZE_TOKENS,
        distraction_grace_seconds: float = DEFAULT_DISTRACTION_GRACE_SECONDS,
    ) -> None:
        if freeze_token_budget <= 0:
            raise ValueError("freeze_token_budget must be positive")

        self.freeze_token_budget = int(freeze_token_budget)
        self.distraction_grace_seconds = max(0.0, float(distraction_grace_seconds))

        self.state = SessionState.IDLE
        self.task: Task | None = None
        self.start_timestamp: float | None = None
        self.elapsed_before_last_save = 0.0
        self.wasted_time = 0.0
        self.frozen_seconds = 0.0
        self.is_immune = False
        self.immunity_count = 1
        self.distraction_start_timestamp: float | None = None
        self.freeze_start_timestamp: float | None = None
        self.rest_duration_seconds: float | None = None

        # Daily budget/log: survive start(), cleared by reset_day().
        self.freeze_tokens_used = 0
        self.freeze_history: list[FreezeRecord] = []
        self.total_focused_today = 0.0

        # Opaque block carried through snapshots untouched.
        self.extensions: dict | None = None

        self._listeners: list[SessionListener] = []

    # ---- listeners ----

    def subscribe(self, listener: SessionListener) -> None:
        self._listeners.append(listener)

    def unsubscribe(self, listener: SessionListener) -> None:
        try:
            self._listeners.remove(listener)
        except ValueError:
            pass

    def _emit(self, result: SessionResult) -> SessionResult:
        self.total_focused_today += result.focused_seconds
        logger.info(
            "Session ended task=%r outcome=%s focused=%.1fs wasted=%.1fs",
            result.task.name,
            result.outcome.value,
            result.focused_seconds,
            result.wasted_seconds,
        )
        for listener in list(self._listeners):
            try:
                listener(result)
            except Exception:
                logger.exception("Session listener failed for task=%r", result.task.name)
        return result

    # ---- read-only views ----

    @property
    def freeze_tokens_remaining(self) -> int:
        return max(0, self.freeze_token_budget - self.freeze_tokens_used)

    def _raw_elapsed(self, now: float) -> float:
        """Unclamped focused time while fighting."""
        if self.start_timestamp is None:
            return self.elapsed_before_last_save
        pending = 0.0
        if self.distraction_start_timestamp is not None:
            pending = max(0.0, now - self.distraction_start_timestamp)
        return (now - self.start_timestamp) - self.wasted_time - self.frozen_seconds - pending

    def elapsed_at(self, now: float) -> float:
        """
        Focused seconds of the current task at `now`.

        Clamped to [0, budget] for focus tasks (passive tasks have no ceiling).
        Paused, frozen and terminal states report the banked value.
        """
        if self.task is None:
            return 0.0
        if self.state == SessionState.FIGHTING:
            elapsed = self._raw_elapsed(now)
        else:
            elapsed = self.elapsed_before_last_save
        return self._clamp(elapsed)

    def remaining_seconds(self, now: float) -> float | None:
        """Budget left for the current task (the "hp" shown to the user)."""
        if self.task is None:
            return None
        return max(0.0, self.task.budget_seconds - self.elapsed_at(now))

    def session_elapsed(self, now: float) -> float | None:
        """Elapsed seconds fed to the exit policy; None when no task is in flight."""
        if not self.state.is_active:
            return None
        return self.elapsed_at(now)

    def can_undo_start(self, now: float) -> bool:
        return allows_undo_start(self.session_elapsed(now))

    def focused_today(self, now: float) -> float:
        """Daily total including the live progress of an in-flight task."""
        total = self.total_focused_today
        if self.state.is_active:
            total += self.elapsed_at(now)
        return total

    def rest_remaining(self, now: float) -> float | None:
        if self.state != SessionState.RESTING or self.start_timestamp is None:
            return None
        duration = self.rest_duration_seconds or 0.0
        return max(0.0, duration - (now - self.start_timestamp))

    def _clamp(self, elapsed: float) -> float:
        elapsed = max(0.0, elapsed)
        if self.task is not None and self.task.style == TaskStyle.FOCUS:
            elapsed = min(elapsed, self.task.budget_seconds)
        return elapsed

    def _ignored(self, op: str) -> None:
        logger.debug("Ignoring %s in state=%s", op, self.state.value)

    # ---- lifecycle ----

    def _clear_accounting(self) -> None:
        self.start_timestamp = None
        self.elapsed_before_last_save = 0.0
        self.wasted_time = 0.0
        self.frozen_seconds = 0.0
        self.is_immune = False
        self.immunity_count = 1
        self.distraction_start_timestamp = None
        self.freeze_start_timestamp = None
        self.rest_duration_seconds = None

    def start(self, task: Task, now: float) -> None:
        if self.state not in _STARTABLE:
            self._ignored("start")
            return
        if task.budget_seconds < 0:
            raise ValueError("budget_seconds must be >= 0")

        self._clear_accounting()
        self.task = task
        self.start_timestamp = now
        self.state = SessionState.FIGHTING
        logger.info("Session started task=%r budget=%.0fs at=%.3f", task.name, task.budget_seconds, now)

    def reset(self) -> None:
        """Consume a terminal state back to idle."""
        if not self.state.is_terminal:
            self._ignored("reset")
            return
        self._clear_accounting()
        self.task = None
        self.state = SessionState.IDLE
        logger.debug("Terminal state consumed; engine idle")

    def reset_day(self) -> None:
        """Start a new day: restore the freeze budget and clear daily totals."""
        self.freeze_tokens_used = 0
        self.freeze_history = []
        self.total_focused_today = 0.0
        logger.info("Daily counters reset")

    def tick(self, now: float) -> SessionResult | None:
        if self.state != SessionState.FIGHTING or self.task is None:
            return None

        task = self.task
        # Passive tasks never time out; they end via complete_passive_task().
        if task.style == TaskStyle.PASSIVE:
            return None

        if self.elapsed_at(now) < task.budget_seconds:
            return None

        self._finalize_distraction(now)
        self.elapsed_before_last_save = task.budget_seconds
        self.state = SessionState.VICTORY
        return self._emit(
            SessionResult(
                task=task,
                outcome=Outcome.COMPLETED,
                focused_seconds=task.budget_seconds,
                wasted_seconds=self.wasted_time,
                end_reason=EndReason.VICTORY,
                ended_at=now,
            )
        )

    def pause(self, now: float) -> None:
        if self.state != SessionState.FIGHTING:
            self._ignored("pause")
            return
        self._finalize_distraction(now)
        self.elapsed_before_last_save = self._raw_elapsed(now)
        self.state = SessionState.PAUSED
        logger.info("Paused at elapsed=%.1fs", self.elapsed_before_last_save)

    def resume(self, now: float) -> None:
        if self.state != SessionState.PAUSED:
            self._ignored("resume")
            return
        self.wasted_time += self._paused_gap(now)
        self.state = SessionState.FIGHTING
        logger.info("Resumed at=%.3f wasted=%.1fs", now, self.wasted_time)

    def _paused_gap(self, now: float) -> float:
        # The banked value was taken with the same formula at pause time, so the
        # difference is exactly the wall-clock time spent paused.
        if self.start_timestamp is None:
            return 0.0
        live = (now - self.start_timestamp) - self.wasted_time - self.frozen_seconds
        return max(0.0, live - self.elapsed_before_last_save)

    def freeze(self, now: float) -> bool:
        if self.state != SessionState.FIGHTING or self.task is None:
            self._ignored("freeze")
            return False
        if self.task.style != TaskStyle.FOCUS:
            logger.debug("Freeze refused: passive task")
            return False
        if self.freeze_tokens_used >= self.freeze_token_budget:
            logger.info("Freeze refused: no tokens left (used=%s)", self.freeze_tokens_used)
            return False

        self._finalize_distraction(now)
        self.elapsed_before_last_save = self._raw_elapsed(now)
        self.freeze_start_timestamp = now
        self.freeze_tokens_used += 1
        self.freeze_history.append(FreezeRecord(started_at=now, task_name=self.task.name))
        self.state = SessionState.FROZEN
        logger.info("Frozen at=%.3f tokens_left=%s", now, self.freeze_tokens_remaining)
        return True

    def resume_from_freeze(self, now: float) -> None:
        if self.state != SessionState.FROZEN:
            self._ignored("resume_from_freeze")
            return
        self._close_freeze(now)
        self.state = SessionState.FIGHTING
        logger.info("Resumed from freeze at=%.3f frozen_total=%.1fs", now, self.frozen_seconds)

    def _close_freeze(self, now: float) -> None:
        if self.freeze_start_timestamp is not None:
            self.frozen_seconds += max(0.0, now - self.freeze_start_timestamp)
            for i in range(len(self.freeze_history) - 1, -1, -1):
                if self.freeze_history[i].is_open:
                    self.freeze_history[i] = self.freeze_history[i].closed(now)
                    break
        self.freeze_start_timestamp = None

    def retreat(self, now: float) -> SessionResult | None:
        if not self.state.is_active or self.task is None:
            self._ignored("retreat")
            return None

        task = self.task
        if self.state == SessionState.FIGHTING:
            self._finalize_distraction(now)
        elif self.state == SessionState.FROZEN:
            self._close_freeze(now)

        focused = self.elapsed_at(now)
        self.elapsed_before_last_save = focused
        self.state = SessionState.RETREAT
        return self._emit(
            SessionResult(
                task=task,
                outcome=Outcome.INCOMPLETE,
                focused_seconds=focused,
                wasted_seconds=self.wasted_time,
                end_reason=EndReason.INCOMPLETE_EXIT,
                ended_at=now,
                remaining_seconds=max(0.0, task.budget_seconds - focused),
            )
        )

    def abort_session(self, now: float) -> None:
        """Undo start: drop the session without a result while inside the grace window."""
        if not self.state.is_active:
            self._ignored("abort_session")
            return
        elapsed = self.elapsed_at(now)
        if not allows_undo_start(elapsed):
            logger.debug("Undo-start refused: elapsed=%.1fs", elapsed)
            return

        if self.state == SessionState.FROZEN:
            self._close_freeze(now)
        name = self.task.name if self.task else None
        self._clear_accounting()
        self.task = None
        self.state = SessionState.IDLE
        logger.info("Session aborted (no record) task=%r", name)

    def complete_passive_task(self, now: float) -> SessionResult | None:
        if self.state != SessionState.FIGHTING or self.task is None:
            self._ignored("complete_passive_task")
            return None
        if self.task.style != TaskStyle.PASSIVE:
            logger.debug("complete_passive_task ignored for focus task")
            return None

        self._finalize_distraction(now)
        focused = self.elapsed_at(now)
        self.elapsed_before_last_save = focused
        self.state = SessionState.VICTORY
        return self._emit(
            SessionResult(
                task=self.task,
                outcome=Outcome.COMPLETED,
                focused_seconds=focused,
                wasted_seconds=self.wasted_time,
                end_reason=EndReason.VICTORY,
                ended_at=now,
            )
        )

    def force_complete(self, now: float) -> SessionResult | None:
        """Debug helper: credit the full budget immediately."""
        if self.state != SessionState.FIGHTING or self.task is None:
            self._ignored("force_complete")
            return None
        self._finalize_distraction(now)
        self.elapsed_before_last_save = self.task.budget_seconds
        self.state = SessionState.VICTORY
        return self._emit(
            SessionResult(
                task=self.task,
                outcome=Outcome.COMPLETED,
                focused_seconds=self.task.budget_seconds,
                wasted_seconds=self.wasted_time,
                end_reason=EndReason.VICTORY,
                ended_at=now,
            )
        )

    # ---- rest ----

    def start_rest(self, duration_seconds: float, now: float) -> None:
        if self.state not in _STARTABLE:
            self._ignored("start_rest")
            return
        if duration_seconds < 0:
            raise ValueError("duration_seconds must be >= 0")
        self._clear_accounting()
        self.task = None
        self.start_timestamp = now
        self.rest_duration_seconds = float(duration_seconds)
        self.state = SessionState.RESTING
        logger.info("Rest started duration=%.0fs", duration_seconds)

    def end_rest(self) -> None:
        if self.state != SessionState.RESTING:
            self._ignored("end_rest")
            return
        self._clear_accounting()
        self.state = SessionState.IDLE
        logger.info("Rest finished")

    # ---- distraction / immunity ----

    def grant_immunity(self) -> None:
        if self.immunity_count <= 0:
            return
        self.immunity_count -= 1
        self.is_immune = True
        logger.info("Immunity granted remaining=%s", self.immunity_count)

    def handle_backgrounding(self, now: float) -> None:
        if self.state != SessionState.FIGHTING:
            return
        if self.is_immune:
            logger.debug("Backgrounded with immunity; progress continues")
            return
        if self.distraction_start_timestamp is None:
            self.distraction_start_timestamp = now
            logger.debug("Backgrounded; distraction started at=%.3f", now)

    def handle_foregrounding(self, now: float) -> None:
        if self.state != SessionState.FIGHTING:
            return
        if self.is_immune:
            self.is_immune = False
            logger.debug("Foregrounded; immunity consumed")
            return
        start = self.distraction_start_timestamp
        if start is None:
            return
        distracted = max(0.0, now - start)
        if distracted >= self.distraction_grace_seconds:
            self.wasted_time += distracted
            logger.info("Distraction counted as wasted: %.1fs", distracted)
        else:
            logger.debug("Distraction within grace: %.1fs", distracted)
        self.distraction_start_timestamp = None

    def _finalize_distraction(self, now: float) -> None:
        if self.distraction_start_timestamp is not None:
            self.wasted_time += max(0.0, now - self.distraction_start_timestamp)
            self.distraction_start_timestamp = None

    def reconcile(self, last_seen_at: float, now: float) -> SessionResult | None:
        """Account for time the process was not running while a task was in flight."""
        if self.state != SessionState.FIGHTING:
            return None

        # An open distraction is charged up to last_seen_at; the gap covers the rest.
        self._finalize_distraction(last_seen_at)
        gap = max(0.0, now - last_seen_at)
        if self.is_immune:
            self.is_immune = False
            logger.info("Absence of %.0fs covered by immunity", gap)
            return None
        if gap < RECONCILE_GRACE_SECONDS:
            logger.debug("Absence of %.0fs within grace", gap)
            return None
        if gap > RECONCILE_ABANDON_SECONDS:
            logger.info("Absence of %.0fs; ending session", gap)
            # The absence itself is not focus time.
            self.wasted_time += gap
            return self.retreat(now)

        self.wasted_time += gap
        logger.info("Absence of %.0fs counted as wasted", gap)
        return None

    # ---- persistence ----

    def snapshot(self, *, history: list[DailyStats] | None = None) -> SessionSnapshot:
        return SessionSnapshot(
            task=replace(self.task) if self.task is not None else None,
            state=self.state,
            start_timestamp=self.start_timestamp,
            elapsed_before_last_save=self.elapsed_before_last_save,
            wasted_time=self.wasted_time,
            is_immune=self.is_immune,
            immunity_count=self.immunity_count,
            distraction_start_timestamp=self.distraction_start_timestamp,
            freeze_tokens_used=self.freeze_tokens_used,
            freeze_history=list(self.freeze_history),
            freeze_start_timestamp=self.freeze_start_timestamp,
            total_focused_today=self.total_focused_today,
            history=list(history) if history is not None else None,
            extensions=dict(self.extensions) if self.extensions is not None else None,
            frozen_seconds=self.frozen_seconds,
            rest_duration_seconds=self.rest_duration_seconds,
        )

    def restore(self, snapshot: SessionSnapshot) -> None:
        self.task = snapshot.task
        self.state = snapshot.state
        if self.task is None and self.state not in (SessionState.IDLE, SessionState.RESTING):
            logger.warning("Snapshot state=%s without a task; restoring as idle", self.state.value)
            self.state = SessionState.IDLE

        self.start_timestamp = snapshot.start_timestamp
        self.elapsed_before_last_save = snapshot.elapsed_before_last_save
        self.wasted_time = snapshot.wasted_time
        self.frozen_seconds = snapshot.frozen_seconds or 0.0
        self.is_immune = snapshot.is_immune
        self.immunity_count = snapshot.immunity_count
        self.distraction_start_timestamp = snapshot.distraction_start_timestamp
        self.freeze_tokens_used = snapshot.freeze_tokens_used or 0
        self.freeze_history = list(snapshot.freeze_history or [])
        self.freeze_start_timestamp = (
            snapshot.freeze_start_timestamp if self.state == SessionState.FROZEN else None
        )
        self.total_focused_today = snapshot.total_focused_today or 0.0
        self.rest_duration_seconds = snapshot.rest_duration_seconds
        self.extensions = snapshot.extensions
        logger.info("Engine restored state=%s task=%r", self.state.value, self.task.name if self.task else None)
