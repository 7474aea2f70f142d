# src/focus_timeline/session/ticker.py

from __future__ import annotations

"""
Tick driver.

A small polling loop that feeds wall-clock timestamps into a SessionEngine.
The engine recomputes elapsed from absolute timestamps, so the cadence does not
matter for correctness: late, early or repeated ticks all converge on the same
state. This only decides how quickly a victory is noticed.

To stop the driver, cancel the coroutine/task.
"""

import asyncio
import contextlib
import logging
import time
from collections.abc import Callable
from typing import ContextManager

from .engine import SessionEngine
from .models import SessionResult, SessionState

logger = logging.getLogger(__name__)

Clock = Callable[[], float]
ResultHandler = Callable[[SessionResult], None]


async def run_session_ticker(
        engine: SessionEngine,
        *,
        clock: Clock = time.time,
        interval_seconds: float = 1.0,
        on_result: ResultHandler | None = None,
        lock: ContextManager | None = None,
) -> None:
    """
    Every interval_seconds:
    - read the clock
    - call engine.tick(now) while a task is being fought
    - hand any emitted SessionResult to on_result

    `lock` (e.g. a threading.RLock) is held around each tick when the engine is
    shared with another thread. Failures in on_result are logged and the loop
    keeps running.
    """
    sleep_s = max(0.01, float(interval_seconds))
    guard = lock if lock is not None else contextlib.nullcontext()

    while True:
        result: SessionResult | None = None
        with guard:
            if engine.state == SessionState.FIGHTING:
                now = clock()
                try:
                    result = engine.tick(now)
                except Exception:
                    logger.exception("engine.tick failed at=%.3f", now)

            if result is not None:
                logger.info("Ticker observed session end task=%r", result.task.name)
                if on_result is not None:
                    try:
                        on_result(result)
                    except Exception:
                        logger.exception("on_result handler failed task=%r", result.task.name)

        await asyncio.sleep(sleep_s)
