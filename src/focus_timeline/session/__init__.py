"""
Session subsystem.

Components:
- models.py: data structures (Task, SessionState, SessionResult, FreezeRecord)
- engine.py: the timed state machine over one active task
- exit_policy.py: undo-start grace window
- snapshot.py: restorable engine state (absent-safe dict codec)
- ticker.py: asyncio loop that drives engine.tick from a clock
"""
