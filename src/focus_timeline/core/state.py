# src/focus_timeline/core/state.py

from __future__ import annotations

import threading
import time
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import tzinfo
from typing import Any

from ..library.store import LibraryStore, TemplateCatalog
from ..session.engine import SessionEngine
from ..timeline.scheduler import TimelineScheduler


@dataclass
class AppState:
    # Settings object (config.Settings or a test stand-in).
    settings: Any

    engine: SessionEngine
    scheduler: TimelineScheduler
    catalog: TemplateCatalog
    library: LibraryStore
    tz: tzinfo

    clock: Callable[[], float] = time.time

    # Node whose task the engine is running; results are attributed to it.
    active_node_id: str | None = None

    # User-facing lines produced by session results, drained by connectors.
    notices: list[str] = field(default_factory=list)

    # Serializes the console and the background ticker.
    lock: threading.RLock = field(default_factory=threading.RLock)

    def now(self) -> float:
        return self.clock()

    def drain_notices(self) -> list[str]:
        out, self.notices = self.notices, []
        return out
