# src/focus_timeline/timeline/models.py

from __future__ import annotations

from collections.abc import Iterator
from dataclasses import dataclass, field
from enum import StrEnum
from typing import Any

from ..session.models import Task, new_id


class NodeType(StrEnum):
    BATTLE = "battle"
    REST = "rest"
    REWARD = "reward"

    @classmethod
    def from_raw(cls, raw: str | None) -> NodeType:
        if not raw:
            return cls.BATTLE
        try:
            return cls(raw)
        except Exception:
            return cls.BATTLE


@dataclass(slots=True)
class TimelineNode:
    """
    One slot of the day.

    Notes:
    - battle nodes carry a Task, rest nodes a duration, reward nodes nothing.
    - is_completed is terminal: nothing clears it once set.
    """

    type: NodeType
    task: Task | None = None
    rest_seconds: float | None = None
    is_locked: bool = True
    is_completed: bool = False
    id: str = field(default_factory=new_id)

    @property
    def title(self) -> str:
        if self.type == NodeType.BATTLE and self.task is not None:
            return self.task.name
        if self.type == NodeType.REST:
            return f"Rest {int((self.rest_seconds or 0) // 60)}m"
        return "Reward"

    @property
    def template_id(self) -> str | None:
        return self.task.template_id if self.task is not None else None

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "type": self.type.value,
            "task": self.task.to_dict() if self.task is not None else None,
            "rest_seconds": self.rest_seconds,
            "is_locked": self.is_locked,
            "is_completed": self.is_completed,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> TimelineNode:
        task_raw = data.get("task")
        rest = data.get("rest_seconds")
        return cls(
            id=str(data.get("id") or new_id()),
            type=NodeType.from_raw(data.get("type")),
            task=Task.from_dict(task_raw) if isinstance(task_raw, dict) else None,
            rest_seconds=float(rest) if rest is not None else None,
            is_locked=bool(data.get("is_locked", True)),
            is_completed=bool(data.get("is_completed", False)),
        )


class DaySession:
    """
    Ordered node sequence plus the current pointer.

    Node ids are mapped to positions so lookups are O(1); the map is rebuilt
    after every structural change.
    """

    def __init__(self, nodes: list[TimelineNode] | None = None, current_index: int | None = None) -> None:
        self.nodes: list[TimelineNode] = list(nodes or [])
        self.current_index = current_index
        self._positions: dict[str, int] = {}
        self._reindex()

    def _reindex(self) -> None:
        self._positions = {n.id: i for i, n in enumerate(self.nodes)}
        if len(self._positions) != len(self.nodes):
            raise ValueError("duplicate node id in day session")
        if self.current_index is not None and not (0 <= self.current_index < len(self.nodes)):
            self.current_index = None

    def index_of(self, node_id: str) -> int | None:
        return self._positions.get(node_id)

    def node(self, node_id: str) -> TimelineNode | None:
        i = self._positions.get(node_id)
        return self.nodes[i] if i is not None else None

    def insert(self, index: int, node: TimelineNode) -> None:
        index = max(0, min(index, len(self.nodes)))
        self.nodes.insert(index, node)
        if self.current_index is not None and index <= self.current_index:
            self.current_index += 1
        self._reindex()

    def pop(self, index: int) -> TimelineNode:
        node = self.nodes.pop(index)
        self._reindex()
        return node

    def move(self, from_index: int, to_index: int) -> None:
        node = self.nodes.pop(from_index)
        self.nodes.insert(to_index, node)
        self._reindex()

    @property
    def current_node(self) -> TimelineNode | None:
        if self.current_index is None:
            return None
        return self.nodes[self.current_index]

    def __len__(self) -> int:
        return len(self.nodes)

    def __iter__(self) -> Iterator[TimelineNode]:
        return iter(self.nodes)

    def to_dict(self) -> dict[str, Any]:
        return {
            "nodes": [n.to_dict() for n in self.nodes],
            "current_index": self.current_index,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> DaySession:
        nodes = [TimelineNode.from_dict(n) for n in (data.get("nodes") or []) if isinstance(n, dict)]
        idx = data.get("current_index")
        return cls(nodes=nodes, current_index=int(idx) if idx is not None else None)
