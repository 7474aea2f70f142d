# src/focus_timeline/timeline/scheduler.py

from __future__ import annotations

"""
Timeline scheduler.

Owns a DaySession (ordered nodes + current pointer) and:
- turns templates into nodes (place_at_start / place_at_current / place_at_anchor),
- keeps lock flags consistent after reorders,
- consumes SessionResult values to advance the pointer and grow the history.

Lock rule (recomputed after moves and settled reorders):
- completed nodes are unlocked,
- the first non-completed node is unlocked,
- every later non-completed node is locked.

Stale ids and unknown templates are no-ops that return None/False.
"""

import logging
from dataclasses import replace
from datetime import tzinfo
from enum import StrEnum

from ..core.ports import LibraryRepo, TemplateRepo
from ..library.models import CardTemplate
from ..session.models import Outcome, SessionResult, Task, new_id
from ..stats import DailyStats, day_of, update_history
from .events import IncompleteExit, RestComplete, RestSuggested, Retreat, TimelineEvent, Victory
from .models import DaySession, NodeType, TimelineNode
from .rest_prompt import RestPromptService

logger = logging.getLogger(__name__)

DEFAULT_RETREAT_BANNER_SECONDS = 180.0


class PlacementMode(StrEnum):
    """Where place_at_start puts a node: end of the day or front of the day."""

    APPEND = "append"
    PREPEND = "prepend"

    @classmethod
    def from_raw(cls, raw: str | None) -> PlacementMode:
        if not raw:
            return cls.APPEND
        try:
            return cls(raw.strip().lower())
        except Exception:
            raise ValueError(f"unknown placement mode: {raw!r}") from None


def task_from_template(template: CardTemplate) -> Task:
    return Task(
        name=template.title,
        budget_seconds=template.default_duration_seconds,
        style=template.style,
        category=template.category,
        template_id=template.id,
    )


class TimelineScheduler:
    def __init__(
        self,
        templates: TemplateRepo,
        library: LibraryRepo | None = None,
        *,
        session: DaySession | None = None,
        placement_mode: PlacementMode | str = PlacementMode.APPEND,
        rest_prompt: RestPromptService | None = None,
        tz: tzinfo | None = None,
        retreat_banner_min_wasted_seconds: float = DEFAULT_RETREAT_BANNER_SECONDS,
    ) -> None:
        self.templates = templates
        self.library = library
        self.session = session or DaySession()
        self.placement_mode = (
            placement_mode if isinstance(placement_mode, PlacementMode) else PlacementMode.from_raw(placement_mode)
        )
        self.rest_prompt = rest_prompt or RestPromptService()
        self.tz = tz
        self.retreat_banner_min_wasted_seconds = float(retreat_banner_min_wasted_seconds)
        self.history: list[DailyStats] = []

        # (node id, ended_at) of the last consumed result; redelivery is ignored.
        self._last_result_key: tuple[str, float] | None = None

    # ---- read-only views ----

    @property
    def nodes(self) -> list[TimelineNode]:
        return self.session.nodes

    @property
    def current_index(self) -> int | None:
        return self.session.current_index

    @property
    def current_node(self) -> TimelineNode | None:
        return self.session.current_node

    @property
    def is_finished(self) -> bool:
        return len(self.session) > 0 and self.session.current_index is None

    @property
    def completion_progress(self) -> float:
        if not self.session.nodes:
            return 0.0
        done = sum(1 for n in self.session.nodes if n.is_completed)
        return done / len(self.session.nodes)

    def node(self, node_id: str) -> TimelineNode | None:
        return self.session.node(node_id)

    def index_of(self, node_id: str) -> int | None:
        return self.session.index_of(node_id)

    # ---- placement ----

    def _battle_node(self, template_id: str) -> TimelineNode | None:
        template = self.templates.get(template_id)
        if template is None:
            logger.debug("Placement ignored: unknown template_id=%s", template_id)
            return None
        return TimelineNode(type=NodeType.BATTLE, task=task_from_template(template))

    def _insert(self, index: int, node: TimelineNode) -> str:
        s = self.session
        idle_day = s.current_index is None
        s.insert(index, node)
        if idle_day:
            # Nothing is running: the new node is the next thing to do.
            node.is_locked = False
            s.current_index = s.index_of(node.id)
        else:
            node.is_locked = True

        if node.template_id is not None and self.library is not None:
            self.library.remove(node.template_id)

        logger.info("Node placed id=%s title=%r at=%s", node.id, node.title, s.index_of(node.id))
        return node.id

    def _start_index(self) -> int:
        if self.placement_mode == PlacementMode.PREPEND:
            return 0
        return len(self.session)

    def place_at_start(self, template_id: str) -> str | None:
        node = self._battle_node(template_id)
        if node is None:
            return None
        return self._insert(self._start_index(), node)

    def place_at_current(self, template_id: str) -> str | None:
        """Queue-jump: the new node runs right after the current one."""
        node = self._battle_node(template_id)
        if node is None:
            return None
        cur = self.session.current_index
        if cur is None:
            return self._insert(self._start_index(), node)
        return self._insert(cur + 1, node)

    def place_at_anchor(self, template_id: str, anchor_node_id: str) -> str | None:
        anchor = self.session.index_of(anchor_node_id)
        if anchor is None:
            logger.debug("Placement ignored: unknown anchor=%s", anchor_node_id)
            return None
        node = self._battle_node(template_id)
        if node is None:
            return None
        return self._insert(anchor + 1, node)

    def place_rest(self, duration_seconds: float, anchor_node_id: str | None = None) -> str | None:
        if duration_seconds < 0:
            raise ValueError("duration_seconds must be >= 0")
        node = TimelineNode(type=NodeType.REST, rest_seconds=float(duration_seconds))

        if anchor_node_id is not None:
            anchor = self.session.index_of(anchor_node_id)
            if anchor is None:
                return None
            return self._insert(anchor + 1, node)

        cur = self.session.current_index
        index = cur + 1 if cur is not None else len(self.session)
        return self._insert(index, node)

    # ---- edits ----

    def update_node(self, node_id: str, template_id: str) -> bool:
        """Swap the task of a pending battle node, keeping its id and position."""
        node = self.session.node(node_id)
        template = self.templates.get(template_id)
        if node is None or template is None:
            return False
        if node.type != NodeType.BATTLE or node.is_completed:
            return False
        node.task = task_from_template(template)
        logger.info("Node updated id=%s title=%r", node_id, node.title)
        return True

    def duplicate_node(self, node_id: str) -> str | None:
        i = self.session.index_of(node_id)
        if i is None:
            return None
        original = self.session.nodes[i]
        copy = TimelineNode(
            type=original.type,
            task=replace(original.task, id=new_id()) if original.task is not None else None,
            rest_seconds=original.rest_seconds,
            is_locked=True,
            is_completed=False,
        )
        self.session.insert(i + 1, copy)
        logger.info("Node duplicated id=%s copy=%s", node_id, copy.id)
        return copy.id

    def delete_node(self, node_id: str) -> bool:
        s = self.session
        i = s.index_of(node_id)
        if i is None:
            return False

        cur = s.current_index
        s.pop(i)

        if cur is None:
            s.current_index = None
        elif i < cur:
            s.current_index = cur - 1
        elif i == cur:
            # The next node slides into the current slot.
            if cur < len(s):
                s.current_index = cur
                s.nodes[cur].is_locked = False
            else:
                s.current_index = None
        else:
            s.current_index = cur

        logger.info("Node deleted id=%s", node_id)
        return True

    def set_current_node(self, node_id: str) -> bool:
        """Point at node_id, unlocking it if needed (the one path that bypasses locks)."""
        i = self.session.index_of(node_id)
        if i is None:
            return False
        self.session.current_index = i
        self.session.nodes[i].is_locked = False
        logger.info("Current node set id=%s index=%s", node_id, i)
        return True

    # ---- reorder ----

    def recompute_locks(self) -> None:
        first_open_seen = False
        for node in self.session.nodes:
            if node.is_completed:
                node.is_locked = False
            elif not first_open_seen:
                node.is_locked = False
                first_open_seen = True
            else:
                node.is_locked = True

    def move_node(self, from_index: int, to_index: int) -> bool:
        s = self.session
        n = len(s)
        if not (0 <= from_index < n and 0 <= to_index < n):
            logger.debug("move_node ignored: %s -> %s (len=%s)", from_index, to_index, n)
            return False
        if from_index == to_index:
            return True

        current = s.current_node
        s.move(from_index, to_index)
        if current is not None:
            s.current_index = s.index_of(current.id)
        self.recompute_locks()
        logger.debug("Node moved %s -> %s", from_index, to_index)
        return True

    def finalize_reorder(self, is_session_active: bool, active_node_id: str | None) -> None:
        s = self.session
        if is_session_active and active_node_id is not None:
            i = s.index_of(active_node_id)
            if i is not None:
                s.current_index = i
                return
            logger.warning("Active node %s vanished during reorder", active_node_id)

        self.recompute_locks()
        s.current_index = next(
            (i for i, node in enumerate(s.nodes) if not node.is_completed and not node.is_locked),
            None,
        )

    # ---- progression ----

    def _advance_from(self, index: int, *, unlock_next: bool) -> None:
        s = self.session
        nxt = index + 1
        if nxt < len(s):
            s.current_index = nxt
            if unlock_next:
                s.nodes[nxt].is_locked = False
        else:
            s.current_index = None

    def _next_rest_node_id(self) -> str | None:
        start = self.session.current_index
        if start is None:
            return None
        for node in self.session.nodes[start:]:
            if node.type == NodeType.REST and not node.is_completed:
                return node.id
        return None

    def on_session_result(self, result: SessionResult, active_node_id: str) -> list[TimelineEvent]:
        key = (active_node_id, result.ended_at)
        if key == self._last_result_key:
            logger.debug("Duplicate session result ignored for node=%s", active_node_id)
            return []
        self._last_result_key = key

        events: list[TimelineEvent] = []
        i = self.session.index_of(active_node_id)
        if i is None:
            logger.warning("Session result for unknown node=%s; history only", active_node_id)
        elif result.outcome == Outcome.COMPLETED:
            node = self.session.nodes[i]
            node.is_completed = True
            node.is_locked = False
            self._advance_from(i, unlock_next=True)
        else:
            self._advance_from(i, unlock_next=False)

        self.history = update_history(
            self.history,
            DailyStats(
                day=day_of(result.ended_at, self.tz),
                total_focused_seconds=result.focused_seconds,
                total_wasted_seconds=result.wasted_seconds,
                sessions_count=1,
            ),
        )

        if result.outcome == Outcome.COMPLETED:
            events.append(Victory(task_name=result.task_name, focused_minutes=int(result.focused_seconds // 60)))
        else:
            events.append(
                IncompleteExit(
                    task_name=result.task_name,
                    focused_seconds=result.focused_seconds,
                    remaining_seconds=result.remaining_seconds,
                )
            )
            if result.wasted_seconds >= self.retreat_banner_min_wasted_seconds:
                events.append(Retreat(task_name=result.task_name, wasted_minutes=int(result.wasted_seconds // 60)))

        suggestion = self.rest_prompt.record_focus(result.focused_seconds)
        if suggestion is not None:
            events.append(
                RestSuggested(
                    reason=f"Focused {int(suggestion.focused_seconds // 60)} min since the last break",
                    target_node_id=self._next_rest_node_id(),
                )
            )

        logger.info(
            "Session result consumed node=%s outcome=%s current_index=%s",
            active_node_id,
            result.outcome.value,
            self.session.current_index,
        )
        return events

    def complete_rest(self, node_id: str) -> list[TimelineEvent]:
        i = self.session.index_of(node_id)
        if i is None:
            return []
        node = self.session.nodes[i]
        if node.type != NodeType.REST or node.is_completed:
            return []

        node.is_completed = True
        node.is_locked = False
        if self.session.current_index == i:
            self._advance_from(i, unlock_next=True)
        self.rest_prompt.reset_after_rest()

        up_next = self.session.current_node
        logger.info("Rest completed id=%s", node_id)
        return [RestComplete(node_id=node_id, up_next_title=up_next.title if up_next is not None else None)]

    def decline_rest(self) -> bool:
        """Keep going after a rest suggestion. False when none was pending."""
        if not self.rest_prompt.has_pending_suggestion:
            return False
        self.rest_prompt.reset_after_continue()
        logger.info("Rest suggestion declined")
        return True
