# src/focus_timeline/config.py

"""Centralized settings loaded from environment variables (+ optional .env).

Design goals:
- One Settings object for the whole app (normal "settings layer").
- Nothing required at import time; every value has a default.
- Engines never read the environment themselves: settings are injected.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import List

ENV_PREFIX = "FOCUS"

PLACEMENT_MODES = ("append", "prepend")


def _k(suffix: str) -> str:
    """Build env var name with the project prefix."""
    return f"{ENV_PREFIX}_{suffix}"


def _load_dotenv_if_available() -> None:
    """Load .env locally if python-dotenv is installed. Safe no-op otherwise."""
    try:
        from dotenv import load_dotenv  # type: ignore
    except Exception:
        return
    load_dotenv(override=False)


_load_dotenv_if_available()


def _env(name: str, default: str = "") -> str:
    v = os.getenv(name)
    return default if v is None else v


def _env_bool(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None:
        return default
    return raw.strip().lower() in {"1", "true", "yes", "y", "on"}


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return int(raw)
    except ValueError:
        return default


def _env_float(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return float(raw)
    except ValueError:
        return default


def _env_list(name: str, default: List[str]) -> List[str]:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return list(default)
    parts = [p.strip() for p in raw.replace(",", " ").split() if p.strip()]
    return parts


def _env_path(name: str, default: Path) -> Path:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    return Path(raw).expanduser()


def _parse_bucket_days(raw: List[str], default: tuple[int, ...]) -> tuple[int, ...]:
    try:
        days = tuple(sorted({int(p) for p in raw}))
    except ValueError:
        return default
    if not days or days[0] <= 0:
        return default
    return days


@dataclass(frozen=True, slots=True)
class Settings:
    # ---- App / logging ----
    app_name: str
    log_level: str

    # ---- Connector flags ----
    console_enabled: bool

    # ---- Local data paths (ignored by git) ----
    data_dir: Path
    state_path: Path

    # ---- Calendar ----
    timezone: str

    # ---- Session engine tuning ----
    freeze_token_budget: int
    distraction_grace_seconds: float
    tick_interval_seconds: float

    # ---- Timeline tuning ----
    placement_mode: str
    rest_prompt_threshold_seconds: float
    retreat_banner_min_wasted_seconds: float

    # ---- Library ----
    deadline_bucket_days: tuple[int, ...]

    @staticmethod
    def from_env() -> "Settings":
        app_name = _env(_k("APP_NAME"), "focus-timeline") or "focus-timeline"
        log_level = _env(_k("LOG_LEVEL"), "INFO")

        console_enabled = _env_bool(_k("CONSOLE_ENABLED"), True)

        data_dir = _env_path(_k("DATA_DIR"), Path(".local/focus"))
        state_path = _env_path(_k("STATE_PATH"), data_dir / "state.json")

        timezone = _env(_k("TIMEZONE"), "UTC").strip() or "UTC"

        freeze_token_budget = max(1, _env_int(_k("FREEZE_TOKENS"), 3))
        distraction_grace_seconds = max(0.0, _env_float(_k("DISTRACTION_GRACE_SECONDS"), 10.0))
        tick_interval_seconds = max(0.05, _env_float(_k("TICK_INTERVAL"), 1.0))

        placement_mode = _env(_k("PLACEMENT_MODE"), "append").strip().lower()
        if placement_mode not in PLACEMENT_MODES:
            placement_mode = "append"

        rest_prompt_threshold_seconds = max(1.0, _env_float(_k("REST_PROMPT_SECONDS"), 50 * 60.0))
        retreat_banner_min_wasted_seconds = max(0.0, _env_float(_k("RETREAT_BANNER_SECONDS"), 180.0))

        deadline_bucket_days = _parse_bucket_days(
            _env_list(_k("DEADLINE_BUCKETS"), ["1", "3", "5", "7"]),
            (1, 3, 5, 7),
        )

        return Settings(
            app_name=app_name,
            log_level=log_level,
            console_enabled=console_enabled,
            data_dir=data_dir,
            state_path=state_path,
            timezone=timezone,
            freeze_token_budget=freeze_token_budget,
            distraction_grace_seconds=distraction_grace_seconds,
            tick_interval_seconds=tick_interval_seconds,
            placement_mode=placement_mode,
            rest_prompt_threshold_seconds=rest_prompt_threshold_seconds,
            retreat_banner_min_wasted_seconds=retreat_banner_min_wasted_seconds,
            deadline_bucket_days=deadline_bucket_days,
        )


SETTINGS = Settings.from_env()

# ---- Optional local overrides (never committed) ----
# Prefer .env; use config_local.py only for safe overrides.
try:
    import config_local as _config_local  # type: ignore

    if hasattr(_config_local, "CONSOLE_ENABLED"):
        object.__setattr__(SETTINGS, "console_enabled", bool(_config_local.CONSOLE_ENABLED))  # type: ignore[misc]
except Exception:
    pass


def get_settings() -> Settings:
    return SETTINGS
