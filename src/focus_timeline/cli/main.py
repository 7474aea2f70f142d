# src/focus_timeline/cli/main.py

"""
CLI entrypoint.

Initializes logging, builds AppState, restores the saved state, then runs:
- the session ticker in a background thread,
- the console REPL in the main thread (optional).
"""

from __future__ import annotations

import logging
import signal
import threading

from ..cli.bootstrap import create_initial_state, load_state, save_state
from ..config import get_settings
from ..connectors.console_connector import print_notices, run_console_loop
from ..connectors.ticker_runner import start_ticker_in_background
from ..logging_setup import setup_logging

logger = logging.getLogger(__name__)


def _shutdown(state) -> None:
    """Best-effort shutdown (no exceptions should escape)."""
    try:
        with state.lock:
            save_state(state)
    except Exception:
        logger.exception("Failed to save state.")


def main() -> None:
    settings = get_settings()

    level_name = str(getattr(settings, "log_level", "INFO")).upper()
    console_level = getattr(logging, level_name, logging.INFO)

    log_dir = getattr(settings, "data_dir", ".local/focus")
    setup_logging(log_dir=log_dir, console_level=console_level)

    logger.info("Starting %s...", getattr(settings, "app_name", "focus-timeline"))

    # Reuse the same settings object.
    state = create_initial_state(settings=settings)
    load_state(state)

    def _on_result(_result) -> None:
        # Results are already routed to the scheduler by the engine listener.
        save_state(state)
        if settings.console_enabled:
            print_notices(state)

    ticker = start_ticker_in_background(state, on_result=_on_result)

    stop_main = threading.Event()

    def _handle_signal(signum, _frame) -> None:
        logger.info("Signal %s received, shutting down...", signum)
        stop_main.set()

    try:
        signal.signal(signal.SIGTERM, _handle_signal)
    except (ValueError, OSError, AttributeError):
        logger.debug("SIGTERM handler not installed.", exc_info=True)

    try:
        if settings.console_enabled:
            run_console_loop(state)
            stop_main.set()
        else:
            logger.info("Console disabled. Ticker only. Press Ctrl+C to stop.")
            try:
                stop_main.wait()
            except KeyboardInterrupt:
                logger.info("KeyboardInterrupt, shutting down...")
    finally:
        if ticker is not None:
            ticker.stop()
            ticker.join(timeout=5.0)

        _shutdown(state)
        logger.info("Bye.")


if __name__ == "__main__":
    main()
