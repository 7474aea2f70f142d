# tests/test_timeline_scheduler.py

from __future__ import annotations

import pytest

from focus_timeline.library.models import CardTemplate
from focus_timeline.library.store import LibraryStore, TemplateCatalog
from focus_timeline.session.engine import SessionEngine
from focus_timeline.session.models import EndReason, Outcome, SessionResult, Task
from focus_timeline.timeline.events import IncompleteExit, RestComplete, RestSuggested, Retreat, Victory
from focus_timeline.timeline.models import NodeType
from focus_timeline.timeline.rest_prompt import RestPromptService
from focus_timeline.timeline.scheduler import PlacementMode, TimelineScheduler

from .fakes import T0


def _catalog(*titles: str) -> tuple[TemplateCatalog, dict[str, CardTemplate]]:
    catalog = TemplateCatalog()
    by_title = {t: catalog.add(CardTemplate(title=t, default_duration_seconds=600)) for t in titles}
    return catalog, by_title


def _titles(scheduler: TimelineScheduler) -> list[str]:
    return [n.title for n in scheduler.nodes]


def _result(
    name: str,
    outcome: Outcome,
    *,
    focused: float = 600.0,
    wasted: float = 0.0,
    ended_at: float = T0,
    remaining: float | None = None,
) -> SessionResult:
    return SessionResult(
        task=Task(name=name, budget_seconds=600),
        outcome=outcome,
        focused_seconds=focused,
        wasted_seconds=wasted,
        end_reason=EndReason.VICTORY if outcome == Outcome.COMPLETED else EndReason.INCOMPLETE_EXIT,
        ended_at=ended_at,
        remaining_seconds=remaining,
    )


# ---- placement ----


def test_place_at_start_append_keeps_both_nodes_in_order() -> None:
    catalog, t = _catalog("A", "B")
    s = TimelineScheduler(catalog)

    a = s.place_at_start(t["A"].id)
    b = s.place_at_start(t["B"].id)

    assert len(s.nodes) == 2
    assert {n.id for n in s.nodes} == {a, b}
    assert _titles(s) == ["A", "B"]
    assert s.current_node is not None and s.current_node.id == a
    assert s.node(a).is_locked is False
    assert s.node(b).is_locked is True


def test_place_at_start_prepend_puts_new_node_first_and_keeps_current() -> None:
    catalog, t = _catalog("A", "B")
    s = TimelineScheduler(catalog, placement_mode=PlacementMode.PREPEND)

    a = s.place_at_start(t["A"].id)
    b = s.place_at_start(t["B"].id)

    assert len(s.nodes) == 2
    assert {n.id for n in s.nodes} == {a, b}
    assert _titles(s) == ["B", "A"]
    assert s.current_node is not None and s.current_node.id == a
    assert s.current_index == 1


def test_queue_jump_inserts_directly_after_current() -> None:
    catalog, t = _catalog("A", "B", "C")
    s = TimelineScheduler(catalog)

    a = s.place_at_start(t["A"].id)
    s.place_at_start(t["C"].id)
    assert s.set_current_node(a)
    b = s.place_at_current(t["B"].id)

    assert _titles(s) == ["A", "B", "C"]
    assert s.current_node is not None and s.current_node.id == a
    assert s.index_of(b) == 1


def test_place_at_anchor() -> None:
    catalog, t = _catalog("A", "B", "C")
    s = TimelineScheduler(catalog)
    a = s.place_at_start(t["A"].id)
    s.place_at_start(t["C"].id)

    assert s.place_at_anchor(t["B"].id, a) is not None
    assert _titles(s) == ["A", "B", "C"]


def test_unknown_references_return_none_without_mutation() -> None:
    catalog, t = _catalog("A")
    s = TimelineScheduler(catalog)
    a = s.place_at_start(t["A"].id)

    assert s.place_at_start("missing") is None
    assert s.place_at_current("missing") is None
    assert s.place_at_anchor(t["A"].id, "no-such-node") is None
    assert s.place_at_anchor("missing", a) is None
    assert len(s.nodes) == 1


def test_placing_a_template_removes_it_from_the_library() -> None:
    catalog, t = _catalog("A")
    library = LibraryStore(catalog)
    library.add(t["A"].id, T0)
    s = TimelineScheduler(catalog, library)

    s.place_at_start(t["A"].id)
    assert library.entry(t["A"].id) is None


def test_node_carries_template_task() -> None:
    catalog = TemplateCatalog()
    tpl = catalog.add(CardTemplate(title="Report", default_duration_seconds=1500, category="study"))
    s = TimelineScheduler(catalog)
    node = s.node(s.place_at_start(tpl.id))

    assert node.type == NodeType.BATTLE
    assert node.task.budget_seconds == 1500
    assert node.task.category == "study"
    assert node.template_id == tpl.id


def test_placement_mode_from_raw() -> None:
    assert PlacementMode.from_raw(None) == PlacementMode.APPEND
    assert PlacementMode.from_raw("Prepend") == PlacementMode.PREPEND
    with pytest.raises(ValueError):
        PlacementMode.from_raw("sideways")


# ---- session results ----


def test_retreat_advances_pointer_onto_locked_node() -> None:
    catalog, t = _catalog("Focus Task", "Next Task")
    s = TimelineScheduler(catalog)
    first = s.place_at_start(t["Focus Task"].id)
    nxt = s.place_at_start(t["Next Task"].id)

    engine = SessionEngine()
    engine.start(s.current_node.task, T0)
    result = engine.retreat(T0 + 120)
    events = s.on_session_result(result, first)

    assert s.current_index == 1
    assert s.node(nxt).is_locked is True
    assert s.node(first).is_completed is False
    exits = [e for e in events if isinstance(e, IncompleteExit)]
    assert len(exits) == 1
    assert exits[0].focused_seconds == pytest.approx(120, abs=0.1)
    assert exits[0].remaining_seconds == pytest.approx(480, abs=0.1)


def test_victory_completes_node_and_unlocks_next() -> None:
    catalog, t = _catalog("A", "B")
    s = TimelineScheduler(catalog)
    a = s.place_at_start(t["A"].id)
    b = s.place_at_start(t["B"].id)

    events = s.on_session_result(_result("A", Outcome.COMPLETED), a)

    assert s.node(a).is_completed
    assert s.node(b).is_locked is False
    assert s.current_node.id == b
    assert events == [Victory(task_name="A", focused_minutes=10)]


def test_last_node_result_finishes_the_day() -> None:
    catalog, t = _catalog("A")
    s = TimelineScheduler(catalog)
    a = s.place_at_start(t["A"].id)

    s.on_session_result(_result("A", Outcome.COMPLETED), a)
    assert s.current_index is None
    assert s.is_finished
    assert s.completion_progress == 1.0


def test_placing_after_finished_day_makes_new_node_current() -> None:
    catalog, t = _catalog("A", "B")
    s = TimelineScheduler(catalog)
    a = s.place_at_start(t["A"].id)
    s.on_session_result(_result("A", Outcome.COMPLETED), a)

    b = s.place_at_start(t["B"].id)
    assert s.current_node.id == b
    assert s.node(b).is_locked is False


def test_duplicate_result_delivery_is_ignored() -> None:
    catalog, t = _catalog("A", "B", "C")
    s = TimelineScheduler(catalog)
    a = s.place_at_start(t["A"].id)
    s.place_at_start(t["B"].id)
    s.place_at_start(t["C"].id)

    result = _result("A", Outcome.COMPLETED)
    assert s.on_session_result(result, a)
    assert s.on_session_result(result, a) == []
    assert s.current_index == 1
    assert s.history[0].sessions_count == 1


def test_results_accumulate_into_one_history_day() -> None:
    catalog, t = _catalog("A", "B")
    s = TimelineScheduler(catalog)
    a = s.place_at_start(t["A"].id)
    b = s.place_at_start(t["B"].id)

    s.on_session_result(_result("A", Outcome.COMPLETED, focused=600, wasted=30, ended_at=T0), a)
    s.on_session_result(
        _result("B", Outcome.INCOMPLETE, focused=100, wasted=5, ended_at=T0 + 900, remaining=500), b
    )

    assert len(s.history) == 1
    day = s.history[0]
    assert day.total_focused_seconds == pytest.approx(700)
    assert day.total_wasted_seconds == pytest.approx(35)
    assert day.sessions_count == 2


def test_retreat_banner_only_for_significant_waste() -> None:
    catalog, t = _catalog("A", "B", "C")
    s = TimelineScheduler(catalog)
    a = s.place_at_start(t["A"].id)
    b = s.place_at_start(t["B"].id)
    s.place_at_start(t["C"].id)

    quiet = s.on_session_result(_result("A", Outcome.INCOMPLETE, focused=60, wasted=100, remaining=540), a)
    loud = s.on_session_result(
        _result("B", Outcome.INCOMPLETE, focused=60, wasted=200, ended_at=T0 + 1, remaining=540), b
    )

    assert not any(isinstance(e, Retreat) for e in quiet)
    assert Retreat(task_name="B", wasted_minutes=3) in loud


def test_rest_suggested_after_threshold_points_at_next_rest() -> None:
    catalog, t = _catalog("A", "B")
    s = TimelineScheduler(catalog, rest_prompt=RestPromptService(threshold_seconds=300))
    a = s.place_at_start(t["A"].id)
    s.place_at_start(t["B"].id)
    rest = s.place_rest(600, anchor_node_id=a)

    events = s.on_session_result(_result("A", Outcome.COMPLETED, focused=600), a)

    suggestions = [e for e in events if isinstance(e, RestSuggested)]
    assert len(suggestions) == 1
    assert suggestions[0].target_node_id == rest


def test_decline_rest_restarts_the_focus_counter() -> None:
    catalog, t = _catalog("A", "B")
    s = TimelineScheduler(catalog, rest_prompt=RestPromptService(threshold_seconds=300))
    a = s.place_at_start(t["A"].id)
    b = s.place_at_start(t["B"].id)
    assert s.decline_rest() is False

    s.on_session_result(_result("A", Outcome.COMPLETED, focused=600), a)
    assert s.decline_rest() is True
    assert s.rest_prompt.focused_since_reset == 0

    events = s.on_session_result(_result("B", Outcome.COMPLETED, focused=600), b)
    assert any(isinstance(e, RestSuggested) for e in events)


# ---- edits ----


def test_delete_current_node_promotes_next() -> None:
    catalog, t = _catalog("A", "B")
    s = TimelineScheduler(catalog)
    a = s.place_at_start(t["A"].id)
    b = s.place_at_start(t["B"].id)

    assert s.delete_node(a)
    assert s.current_node.id == b
    assert s.node(b).is_locked is False
    assert s.index_of(b) == 0


def test_delete_before_current_shifts_index() -> None:
    catalog, t = _catalog("A", "B", "C")
    s = TimelineScheduler(catalog)
    a = s.place_at_start(t["A"].id)
    b = s.place_at_start(t["B"].id)
    s.place_at_start(t["C"].id)
    s.set_current_node(b)

    s.delete_node(a)
    assert s.current_node.id == b


def test_delete_and_set_current_with_stale_id_are_noops() -> None:
    catalog, t = _catalog("A")
    s = TimelineScheduler(catalog)
    s.place_at_start(t["A"].id)

    assert s.delete_node("gone") is False
    assert s.set_current_node("gone") is False
    assert len(s.nodes) == 1
    assert s.current_index == 0


def test_set_current_node_may_target_locked_node() -> None:
    catalog, t = _catalog("A", "B")
    s = TimelineScheduler(catalog)
    s.place_at_start(t["A"].id)
    b = s.place_at_start(t["B"].id)
    assert s.node(b).is_locked

    assert s.set_current_node(b)
    assert s.current_node.id == b
    assert s.node(b).is_locked is False


def test_duplicate_node_inserts_locked_copy_after_original() -> None:
    catalog, t = _catalog("A", "B")
    s = TimelineScheduler(catalog)
    a = s.place_at_start(t["A"].id)
    s.place_at_start(t["B"].id)

    copy = s.duplicate_node(a)
    assert copy is not None and copy != a
    assert s.index_of(copy) == 1
    assert s.node(copy).is_locked
    assert s.node(copy).task.id != s.node(a).task.id
    assert _titles(s) == ["A", "A", "B"]


def test_update_node_swaps_task_in_place() -> None:
    catalog, t = _catalog("A", "B")
    s = TimelineScheduler(catalog)
    a = s.place_at_start(t["A"].id)

    assert s.update_node(a, t["B"].id)
    assert s.node(a).title == "B"
    assert s.update_node(a, "missing") is False


def test_complete_rest_advances_and_reports_up_next() -> None:
    catalog, t = _catalog("A")
    s = TimelineScheduler(catalog)
    rest = s.place_rest(300)
    s.place_at_start(t["A"].id)
    assert s.current_node.id == rest

    events = s.complete_rest(rest)
    assert events == [RestComplete(node_id=rest, up_next_title="A")]
    assert s.node(rest).is_completed
    assert s.current_node.title == "A"
    assert s.current_node.is_locked is False
    assert s.complete_rest(rest) == []


def test_place_rest_rejects_negative_duration() -> None:
    s = TimelineScheduler(TemplateCatalog())
    with pytest.raises(ValueError):
        s.place_rest(-1)


# ---- reorder ----


def _four_with_first_done() -> tuple[TimelineScheduler, dict[str, str]]:
    catalog, t = _catalog("A", "B", "C", "D")
    s = TimelineScheduler(catalog)
    ids = {name: s.place_at_start(t[name].id) for name in ("A", "B", "C", "D")}
    s.on_session_result(_result("A", Outcome.COMPLETED), ids["A"])
    return s, ids


def test_move_node_is_a_permutation_that_keeps_completion() -> None:
    s, ids = _four_with_first_done()
    before_ids = sorted(n.id for n in s.nodes)
    before_done = {n.id: n.is_completed for n in s.nodes}

    assert s.move_node(3, 0)

    assert sorted(n.id for n in s.nodes) == before_ids
    assert {n.id: n.is_completed for n in s.nodes} == before_done
    assert _titles(s) == ["D", "A", "B", "C"]
    for i, node in enumerate(s.nodes):
        assert s.index_of(node.id) == i


def test_move_node_recomputes_locks_and_keeps_current_identity() -> None:
    s, ids = _four_with_first_done()
    assert s.current_node.id == ids["B"]

    s.move_node(3, 0)

    assert s.current_node.id == ids["B"]
    assert [n.is_locked for n in s.nodes] == [False, False, True, True]


def test_move_node_out_of_range_is_ignored() -> None:
    s, _ = _four_with_first_done()
    before = _titles(s)
    assert s.move_node(0, 9) is False
    assert s.move_node(-1, 0) is False
    assert _titles(s) == before


def test_finalize_reorder_without_session_picks_first_open_node() -> None:
    s, ids = _four_with_first_done()
    s.move_node(3, 0)

    s.finalize_reorder(False, None)
    assert s.current_node.id == ids["D"]


def test_finalize_reorder_with_active_session_follows_active_node() -> None:
    s, ids = _four_with_first_done()
    s.move_node(1, 0)  # B moves to the front

    s.finalize_reorder(True, ids["B"])
    assert s.current_index == 0
    assert s.current_node.id == ids["B"]


def test_finalize_reorder_clears_current_when_everything_is_done() -> None:
    catalog, t = _catalog("A")
    s = TimelineScheduler(catalog)
    a = s.place_at_start(t["A"].id)
    s.on_session_result(_result("A", Outcome.COMPLETED), a)

    s.finalize_reorder(False, None)
    assert s.current_index is None
