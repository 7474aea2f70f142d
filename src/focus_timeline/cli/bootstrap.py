# src/focus_timeline/cli/bootstrap.py

"""
CLI bootstrap helpers.

This module is the "composition root":
- loads settings once,
- ensures local (gitignored) directories exist,
- wires engine, scheduler, catalog and library into AppState,
- forwards session results from the engine to the scheduler,
- persists the whole app state as one JSON file (atomic write).
"""

from __future__ import annotations

import contextlib
import json
import logging
import os
from datetime import UTC, tzinfo
from pathlib import Path
from typing import Any
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from ..config import get_settings
from ..core.state import AppState
from ..library.bucketer import DeadlineBucketer
from ..library.models import CardTemplate, LibraryEntry
from ..library.store import LibraryStore, TemplateCatalog
from ..session.engine import SessionEngine
from ..session.models import SessionResult, SessionState
from ..session.snapshot import SessionSnapshot
from ..stats import day_of
from ..timeline.events import describe
from ..timeline.models import DaySession
from ..timeline.rest_prompt import RestPromptService
from ..timeline.scheduler import TimelineScheduler

logger = logging.getLogger(__name__)

STATE_FORMAT_VERSION = 1


def _ensure_local_dirs(settings) -> None:
    Path(settings.data_dir).mkdir(parents=True, exist_ok=True)
    Path(settings.state_path).parent.mkdir(parents=True, exist_ok=True)


def resolve_timezone(name: str | None) -> tzinfo:
    if not name or name.upper() == "UTC":
        return UTC
    try:
        return ZoneInfo(name)
    except (ZoneInfoNotFoundError, ValueError):
        logger.warning("Unknown timezone %r, falling back to UTC", name)
        return UTC


def handle_session_result(state: AppState, result: SessionResult) -> None:
    """Engine listener: attribute the result to the active node and queue UI notices."""
    node_id = state.active_node_id
    if node_id is None:
        logger.warning("Session result without an active node task=%r", result.task_name)
        return
    events = state.scheduler.on_session_result(result, node_id)
    state.active_node_id = None
    state.notices.extend(describe(e) for e in events)


def create_initial_state(*, settings=None) -> AppState:
    """
    Create AppState from the provided settings.

    If settings is None, falls back to get_settings().
    """
    if settings is None:
        settings = get_settings()

    _ensure_local_dirs(settings)
    tz = resolve_timezone(getattr(settings, "timezone", "UTC"))

    catalog = TemplateCatalog()
    library = LibraryStore(catalog, DeadlineBucketer(settings.deadline_bucket_days, tz=tz))
    scheduler = TimelineScheduler(
        catalog,
        library,
        placement_mode=settings.placement_mode,
        rest_prompt=RestPromptService(settings.rest_prompt_threshold_seconds),
        tz=tz,
        retreat_banner_min_wasted_seconds=settings.retreat_banner_min_wasted_seconds,
    )
    engine = SessionEngine(
        freeze_token_budget=settings.freeze_token_budget,
        distraction_grace_seconds=settings.distraction_grace_seconds,
    )

    state = AppState(
        settings=settings,
        engine=engine,
        scheduler=scheduler,
        catalog=catalog,
        library=library,
        tz=tz,
    )
    engine.subscribe(lambda result: handle_session_result(state, result))
    return state


def dump_state(state: AppState, now: float) -> dict[str, Any]:
    return {
        "version": STATE_FORMAT_VERSION,
        "saved_at": now,
        "active_node_id": state.active_node_id,
        "engine": state.engine.snapshot(history=state.scheduler.history).to_dict(),
        "timeline": state.scheduler.session.to_dict(),
        "templates": state.catalog.to_list(),
        "library": [e.to_dict() for e in state.library.entries()],
    }


def _decode_templates(raw_list: Any) -> list[CardTemplate]:
    staged = TemplateCatalog()
    for raw in raw_list or []:
        if not isinstance(raw, dict):
            continue
        try:
            staged.add(CardTemplate.from_dict(raw))
        except (TypeError, ValueError):
            logger.warning("Skipping malformed template: %r", raw)
    return staged.all()


def apply_state(state: AppState, data: dict[str, Any], now: float) -> None:
    """
    Restore a dumped state, then account for the time the app was closed.

    Every part is decoded before anything is assigned, so a decode error
    leaves `state` untouched.
    """
    templates = _decode_templates(data.get("templates"))
    entries = [LibraryEntry.from_dict(raw) for raw in (data.get("library") or []) if isinstance(raw, dict)]

    timeline_raw = data.get("timeline")
    timeline = DaySession.from_dict(timeline_raw) if isinstance(timeline_raw, dict) else None

    snap_raw = data.get("engine")
    snapshot = SessionSnapshot.from_dict(snap_raw) if isinstance(snap_raw, dict) else None

    active = data.get("active_node_id")
    saved_at = data.get("saved_at")

    for template in templates:
        state.catalog.add(template)
    state.library.restore(entries)
    if timeline is not None:
        state.scheduler.session = timeline
    state.active_node_id = str(active) if active else None

    if snapshot is not None:
        state.engine.restore(snapshot)
        state.scheduler.history = list(snapshot.history or [])

    if isinstance(saved_at, (int, float)):
        if day_of(float(saved_at), state.tz) != day_of(now, state.tz):
            state.engine.reset_day()
        if state.engine.state == SessionState.FIGHTING:
            state.engine.reconcile(float(saved_at), now)

    state.library.refresh_deadline_statuses(now)


def load_state(state: AppState) -> bool:
    """Load persisted state (best-effort). Returns True when something was restored."""
    path = Path(state.settings.state_path)
    if not path.exists():
        return False
    try:
        data = json.loads(path.read_text("utf-8"))
        if not isinstance(data, dict):
            logger.warning("Ignoring state file with unexpected shape: %s", path)
            return False
        apply_state(state, data, state.now())
        logger.info(
            "Loaded state: %d nodes, %d library entries from %s",
            len(state.scheduler.session),
            len(state.library),
            path,
        )
        return True
    except Exception:
        logger.exception("Failed to load state from %s", path)
        return False


def save_state(state: AppState) -> bool:
    path = Path(state.settings.state_path)
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        tmp = path.with_suffix(".tmp")
        tmp.write_text(json.dumps(dump_state(state, state.now()), ensure_ascii=False, indent=2), "utf-8")
        os.replace(tmp, path)
        with contextlib.suppress(Exception):
            os.chmod(path, 0o600)
        logger.info("Saved state to %s", path)
        return True
    except Exception:
        logger.exception("Failed to save state to %s", path)
        return False
