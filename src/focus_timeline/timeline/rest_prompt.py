# src/focus_timeline/timeline/rest_prompt.py

from __future__ import annotations

import logging
from dataclasses import dataclass

logger = logging.getLogger(__name__)

DEFAULT_REST_PROMPT_SECONDS = 50 * 60.0


@dataclass(slots=True, frozen=True)
class RestSuggestion:
    focused_seconds: float
    threshold_seconds: float


class RestPromptService:
    """Suggests a rest once accumulated focus crosses the threshold."""

    def __init__(self, threshold_seconds: float = DEFAULT_REST_PROMPT_SECONDS) -> None:
        if threshold_seconds <= 0:
            raise ValueError("threshold_seconds must be positive")
        self.threshold_seconds = float(threshold_seconds)
        self._focused_since_reset = 0.0
        self._suggested = False

    @property
    def focused_since_reset(self) -> float:
        return self._focused_since_reset

    def record_focus(self, seconds: float) -> RestSuggestion | None:
        """Add focused time; returns a suggestion the first time the threshold is reached."""
        if seconds <= 0:
            return None
        self._focused_since_reset += seconds
        if self._suggested or self._focused_since_reset < self.threshold_seconds:
            return None
        self._suggested = True
        logger.info("Rest suggested after %.0fs of focus", self._focused_since_reset)
        return RestSuggestion(
            focused_seconds=self._focused_since_reset,
            threshold_seconds=self.threshold_seconds,
        )

    @property
    def has_pending_suggestion(self) -> bool:
        return self._suggested

    def reset_after_continue(self) -> None:
        """User declined the rest: start counting again."""
        self._reset()

    def reset_after_rest(self) -> None:
        self._reset()

    def _reset(self) -> None:
        self._focused_since_reset = 0.0
        self._suggested = False
