# tests/test_library_store.py

from __future__ import annotations

import pytest

from focus_timeline.library.models import CardTemplate, LibraryEntry, effective_deadline
from focus_timeline.library.store import LibraryStore, TemplateCatalog

from .fakes import T0


def test_add_requires_known_template_and_keeps_first_entry(catalog: TemplateCatalog, library: LibraryStore) -> None:
    tpl = catalog.add(CardTemplate(title="Essay", deadline_window_days=3))

    assert library.add("missing", T0) is None
    first = library.add(tpl.id, T0)
    again = library.add(tpl.id, T0 + 100)

    assert first is again
    assert first.added_at == T0
    assert len(library) == 1


def test_remove_entry(catalog: TemplateCatalog, library: LibraryStore) -> None:
    tpl = catalog.add(CardTemplate(title="Essay"))
    library.add(tpl.id, T0)

    assert library.remove(tpl.id) is True
    assert library.remove(tpl.id) is False
    assert library.entries() == []


def test_catalog_validation_and_lookup(catalog: TemplateCatalog) -> None:
    with pytest.raises(ValueError):
        catalog.add(CardTemplate(title="   "))
    with pytest.raises(ValueError):
        catalog.add(CardTemplate(title="Negative", default_duration_seconds=-5))

    tpl = catalog.add(CardTemplate(title="Morning Run"))
    assert catalog.find("morning run") is tpl
    assert catalog.find(tpl.id[:6]) is tpl
    assert catalog.find("nothing") is None


def test_effective_deadline_rules() -> None:
    entry = LibraryEntry(template_id="x", added_at=T0)
    assert effective_deadline(CardTemplate(title="none"), entry) is None
    assert effective_deadline(CardTemplate(title="rel", deadline_window_days=2), entry) == T0 + 2 * 86400
    assert effective_deadline(CardTemplate(title="abs", deadline_window_days=2, deadline_at=T0 + 5), entry) == T0 + 5


def test_template_and_entry_dict_round_trip() -> None:
    tpl = CardTemplate(title="Essay", default_duration_seconds=1200, deadline_window_days=3, tags=["school"])
    assert CardTemplate.from_dict(tpl.to_dict()) == tpl

    entry = LibraryEntry(template_id=tpl.id, added_at=T0)
    assert LibraryEntry.from_dict(entry.to_dict()) == entry
    assert LibraryEntry.from_dict({"template_id": "t", "deadline_status": "weird"}).deadline_status.value == "active"
