# config.example.py

"""
Documentation-only module (safe to commit).

The real configuration is loaded from environment variables (optionally via a local .env file).
Use:
- .env (local, gitignored)
- config_local.py (local safe overrides, gitignored)

This file exists to make the repo self-documenting even without opening .env.
"""

ENV_VARS = {
    # App / logging
    "FOCUS_APP_NAME": "App display name (default: focus-timeline).",
    "FOCUS_LOG_LEVEL": "Console logging level (default: INFO). The file log is always DEBUG.",
    # Connectors
    "FOCUS_CONSOLE_ENABLED": "Enable the console REPL (true/false, default: true).",
    # Paths (gitignored)
    "FOCUS_DATA_DIR": "Local data directory, also holds focus.log (default: .local/focus).",
    "FOCUS_STATE_PATH": "Saved app state JSON (default: <data_dir>/state.json).",
    # Calendar
    "FOCUS_TIMEZONE": "IANA timezone for day boundaries and deadlines (default: UTC).",
    # Session engine
    "FOCUS_FREEZE_TOKENS": "Freeze tokens per day (default: 3).",
    "FOCUS_DISTRACTION_GRACE_SECONDS": "Absences shorter than this are not wasted time (default: 10).",
    "FOCUS_TICK_INTERVAL": "Seconds between background ticks (default: 1.0).",
    # Timeline
    "FOCUS_PLACEMENT_MODE": "Where /plan puts a node: append or prepend (default: append).",
    "FOCUS_REST_PROMPT_SECONDS": "Focus seconds before a rest is suggested (default: 3000).",
    "FOCUS_RETREAT_BANNER_SECONDS": "Minimum wasted seconds for a retreat notice (default: 180).",
    # Library
    "FOCUS_DEADLINE_BUCKETS": "Comma/space separated day boundaries (default: 1 3 5 7).",
}
