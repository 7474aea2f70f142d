# tests/test_config.py

from __future__ import annotations

from pathlib import Path

import pytest

from focus_timeline.config import Settings

_VARS = (
    "FOCUS_DATA_DIR",
    "FOCUS_STATE_PATH",
    "FOCUS_FREEZE_TOKENS",
    "FOCUS_PLACEMENT_MODE",
    "FOCUS_DEADLINE_BUCKETS",
    "FOCUS_CONSOLE_ENABLED",
    "FOCUS_TICK_INTERVAL",
)


@pytest.fixture()
def clean_env(monkeypatch: pytest.MonkeyPatch) -> pytest.MonkeyPatch:
    for name in _VARS:
        monkeypatch.delenv(name, raising=False)
    return monkeypatch


def test_defaults(clean_env) -> None:
    s = Settings.from_env()
    assert s.data_dir == Path(".local/focus")
    assert s.state_path == Path(".local/focus") / "state.json"
    assert s.freeze_token_budget == 3
    assert s.placement_mode == "append"
    assert s.deadline_bucket_days == (1, 3, 5, 7)
    assert s.console_enabled is True


def test_env_overrides(clean_env, tmp_path: Path) -> None:
    clean_env.setenv("FOCUS_DATA_DIR", str(tmp_path))
    clean_env.setenv("FOCUS_FREEZE_TOKENS", "5")
    clean_env.setenv("FOCUS_PLACEMENT_MODE", "PREPEND")
    clean_env.setenv("FOCUS_DEADLINE_BUCKETS", "30, 1 10,3")
    clean_env.setenv("FOCUS_CONSOLE_ENABLED", "off")

    s = Settings.from_env()
    assert s.data_dir == tmp_path
    assert s.state_path == tmp_path / "state.json"
    assert s.freeze_token_budget == 5
    assert s.placement_mode == "prepend"
    assert s.deadline_bucket_days == (1, 3, 10, 30)
    assert s.console_enabled is False


def test_malformed_values_fall_back(clean_env) -> None:
    clean_env.setenv("FOCUS_FREEZE_TOKENS", "lots")
    clean_env.setenv("FOCUS_PLACEMENT_MODE", "sideways")
    clean_env.setenv("FOCUS_DEADLINE_BUCKETS", "0 3")
    clean_env.setenv("FOCUS_TICK_INTERVAL", "0")

    s = Settings.from_env()
    assert s.freeze_token_budget == 3
    assert s.placement_mode == "append"
    assert s.deadline_bucket_days == (1, 3, 5, 7)
    assert s.tick_interval_seconds == pytest.approx(0.05)
