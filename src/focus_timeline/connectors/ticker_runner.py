# src/focus_timeline/connectors/ticker_runner.py

from __future__ import annotations

import asyncio
import contextlib
import logging
import threading
from collections.abc import Callable
from dataclasses import dataclass

from ..core.state import AppState
from ..session.models import SessionResult
from ..session.ticker import run_session_ticker

logger = logging.getLogger(__name__)


@dataclass
class TickerBackgroundRunner:
    thread: threading.Thread
    loop: asyncio.AbstractEventLoop
    task: asyncio.Task

    def stop(self) -> None:
        try:
            self.loop.call_soon_threadsafe(self.task.cancel)
        except Exception:
            logger.debug("Failed to signal ticker stop.", exc_info=True)

    def join(self, timeout: float | None = None) -> None:
        self.thread.join(timeout=timeout)


def start_ticker_in_background(
    state: AppState,
    on_result: Callable[[SessionResult], None] | None = None,
) -> TickerBackgroundRunner | None:
    """
    Drive engine.tick from a background thread with its own event loop,
    so the blocking console REPL keeps the main thread.
    """
    ready = threading.Event()
    holder: dict[str, object] = {}
    interval = float(getattr(state.settings, "tick_interval_seconds", 1.0))

    def runner() -> None:
        loop = asyncio.new_event_loop()
        asyncio.set_event_loop(loop)
        task = loop.create_task(
            run_session_ticker(
                state.engine,
                clock=state.clock,
                interval_seconds=interval,
                on_result=on_result,
                lock=state.lock,
            )
        )

        holder["loop"] = loop
        holder["task"] = task
        ready.set()

        try:
            loop.run_until_complete(task)
        except asyncio.CancelledError:
            logger.info("Session ticker cancelled.")
        except Exception:
            logger.exception("Session ticker crashed.")
        finally:
            with contextlib.suppress(Exception):
                loop.close()

    t = threading.Thread(target=runner, name="session-ticker", daemon=True)
    t.start()

    ready.wait(timeout=5.0)
    loop = holder.get("loop")
    task = holder.get("task")

    if not isinstance(loop, asyncio.AbstractEventLoop) or not isinstance(task, asyncio.Task):
        logger.error("Ticker thread did not initialize properly.")
        return None

    logger.info("Session ticker started (interval=%.2fs).", interval)
    return TickerBackgroundRunner(thread=t, loop=loop, task=task)
