# src/focus_timeline/library/store.py

"""
In-memory template catalog and library pool.

TemplateCatalog holds every known CardTemplate. LibraryStore holds the entries
waiting to be scheduled (at most one per template) and delegates urgency
classification to a DeadlineBucketer.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Iterator
from typing import Any

from .bucketer import BucketedEntries, DeadlineBucketer
from .models import CardTemplate, DeadlineStatus, LibraryEntry

logger = logging.getLogger(__name__)


class TemplateCatalog:
    def __init__(self, templates: Iterable[CardTemplate] = ()) -> None:
        self._templates: dict[str, CardTemplate] = {}
        for t in templates:
            self.add(t)

    def add(self, template: CardTemplate) -> CardTemplate:
        if not template.title.strip():
            raise ValueError("template title must not be empty")
        if template.default_duration_seconds < 0:
            raise ValueError("default_duration_seconds must be >= 0")
        self._templates[template.id] = template
        logger.debug("Template stored id=%s title=%r", template.id, template.title)
        return template

    def get(self, template_id: str) -> CardTemplate | None:
        return self._templates.get(template_id)

    def remove(self, template_id: str) -> bool:
        return self._templates.pop(template_id, None) is not None

    def find(self, ref: str) -> CardTemplate | None:
        """Resolve by id, id prefix or case-insensitive title."""
        if ref in self._templates:
            return self._templates[ref]
        needle = ref.strip().lower()
        for t in self._templates.values():
            if t.id.startswith(ref) or t.title.lower() == needle:
                return t
        return None

    def all(self) -> list[CardTemplate]:
        return list(self._templates.values())

    def __len__(self) -> int:
        return len(self._templates)

    def __iter__(self) -> Iterator[CardTemplate]:
        return iter(list(self._templates.values()))

    def to_list(self) -> list[dict[str, Any]]:
        return [t.to_dict() for t in self._templates.values()]


class LibraryStore:
    def __init__(self, templates: TemplateCatalog, bucketer: DeadlineBucketer | None = None) -> None:
        self.templates = templates
        self.bucketer = bucketer or DeadlineBucketer()
        self._entries: dict[str, LibraryEntry] = {}

    def add(self, template_id: str, now: float) -> LibraryEntry | None:
        """Put a template into the pool. Re-adding keeps the original entry."""
        if self.templates.get(template_id) is None:
            logger.debug("Library add ignored: unknown template_id=%s", template_id)
            return None
        existing = self._entries.get(template_id)
        if existing is not None:
            return existing
        entry = LibraryEntry(template_id=template_id, added_at=now)
        self._entries[template_id] = entry
        logger.info("Library entry added template_id=%s", template_id)
        return entry

    def remove(self, template_id: str) -> bool:
        removed = self._entries.pop(template_id, None) is not None
        if removed:
            logger.info("Library entry removed template_id=%s", template_id)
        return removed

    def archive(self, template_id: str) -> bool:
        entry = self._entries.get(template_id)
        if entry is None:
            return False
        entry.deadline_status = DeadlineStatus.ARCHIVED
        return True

    def entry(self, template_id: str) -> LibraryEntry | None:
        return self._entries.get(template_id)

    def entries(self) -> list[LibraryEntry]:
        return list(self._entries.values())

    def restore(self, entries: Iterable[LibraryEntry]) -> None:
        self._entries = {e.template_id: e for e in entries}

    def bucketed_entries(self, now: float) -> BucketedEntries:
        return self.bucketer.bucketed_entries(self.templates, self._entries.values(), now)

    def refresh_deadline_statuses(self, now: float) -> int:
        return self.bucketer.refresh_deadline_statuses(self.templates, self._entries.values(), now)

    def __len__(self) -> int:
        return len(self._entries)
