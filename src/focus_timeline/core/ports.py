# src/focus_timeline/core/ports.py

from __future__ import annotations

"""
Ports (interfaces) used by the engines.

Engines depend on Protocols instead of concrete stores, so the in-memory
catalog, a persisted store or a test fake can be swapped freely.
"""

from collections.abc import Iterable
from typing import TYPE_CHECKING, Protocol

if TYPE_CHECKING:
    from ..library.models import CardTemplate, LibraryEntry
    from ..session.models import SessionResult


class TemplateRepo(Protocol):
    """Lookup of card templates by id (a plain dict satisfies this)."""

    def get(self, template_id: str) -> CardTemplate | None: ...


class LibraryRepo(Protocol):
    """The unscheduled pool the scheduler draws templates from."""

    def entry(self, template_id: str) -> LibraryEntry | None: ...

    def remove(self, template_id: str) -> bool: ...

    def entries(self) -> Iterable[LibraryEntry]: ...


class Clock(Protocol):
    def __call__(self) -> float: ...


class ResultSink(Protocol):
    """Receives terminal session results (see SessionEngine.subscribe)."""

    def __call__(self, result: SessionResult) -> None: ...
