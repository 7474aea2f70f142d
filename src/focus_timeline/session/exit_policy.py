# src/focus_timeline/session/exit_policy.py

from __future__ import annotations

from enum import StrEnum

UNDO_START_WINDOW_SECONDS = 60.0


class ExitOption(StrEnum):
    UNDO_START = "undo_start"
    END_AND_RECORD = "end_and_record"
    KEEP_FOCUSING = "keep_focusing"


def allows_undo_start(elapsed_seconds: float | None) -> bool:
    """Undo-start is allowed up to and including the 60th second."""
    if elapsed_seconds is None:
        return False
    return elapsed_seconds <= UNDO_START_WINDOW_SECONDS


def exit_options(elapsed_seconds: float | None) -> list[ExitOption]:
    options: list[ExitOption] = []
    if allows_undo_start(elapsed_seconds):
        options.append(ExitOption.UNDO_START)
    options.append(ExitOption.END_AND_RECORD)
    options.append(ExitOption.KEEP_FOCUSING)
    return options
