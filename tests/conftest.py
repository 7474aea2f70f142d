# tests/conftest.py

from __future__ import annotations

from pathlib import Path
from types import SimpleNamespace

import pytest

from focus_timeline.cli.bootstrap import create_initial_state
from focus_timeline.core.state import AppState
from focus_timeline.library.store import LibraryStore, TemplateCatalog

from .fakes import T0, FakeClock


@pytest.fixture()
def settings(tmp_path: Path) -> SimpleNamespace:
    """
    Minimal settings object compatible with bootstrap and the engines.

    We intentionally use a SimpleNamespace rather than importing real config,
    to keep unit tests isolated and deterministic.
    """
    return SimpleNamespace(
        app_name="focus-test",
        log_level="DEBUG",
        console_enabled=False,
        # Paths (tmp per test run)
        data_dir=tmp_path,
        state_path=tmp_path / "state.json",
        timezone="UTC",
        # Engine tuning
        freeze_token_budget=3,
        distraction_grace_seconds=10.0,
        tick_interval_seconds=0.01,
        # Timeline tuning
        placement_mode="append",
        rest_prompt_threshold_seconds=3000.0,
        retreat_banner_min_wasted_seconds=180.0,
        deadline_bucket_days=(1, 3, 5, 7),
    )


@pytest.fixture()
def clock() -> FakeClock:
    return FakeClock(T0)


@pytest.fixture()
def state(settings: SimpleNamespace, clock: FakeClock) -> AppState:
    """AppState wired by the real composition root, with a controllable clock."""
    st = create_initial_state(settings=settings)
    st.clock = clock
    return st


@pytest.fixture()
def catalog() -> TemplateCatalog:
    return TemplateCatalog()


@pytest.fixture()
def library(catalog: TemplateCatalog) -> LibraryStore:
    return LibraryStore(catalog)
