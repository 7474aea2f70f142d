# src/focus_timeline/cli/commands.py

from __future__ import annotations

import inspect
import logging
from collections.abc import Callable
from typing import cast

from ..core.state import AppState
from ..library.bucketer import BucketKind
from ..library.models import CardTemplate
from ..session.models import SessionState, TaskStyle
from ..stats import aggregate, current_streak, day_of
from ..timeline.events import describe
from ..timeline.models import NodeType, TimelineNode

CommandEmitter = Callable[[str], None]
CommandHandler2 = Callable[[AppState, list[str]], str]
CommandHandler3 = Callable[[AppState, list[str], CommandEmitter | None], str]
CommandHandler = CommandHandler2 | CommandHandler3

logger = logging.getLogger(__name__)


class CommandRegistry:
    """Simple slash-command registry used by connectors (/help, /start, ...)."""

    def __init__(self) -> None:
        self._handlers: dict[str, CommandHandler] = {}
        self._help: dict[str, str] = {}

    def register(
        self,
        name: str,
        handler: CommandHandler,
        help_text: str,
        aliases: list[str] | None = None,
    ) -> None:
        aliases = aliases or []
        key = name.lower()
        self._handlers[key] = handler
        self._help[key] = help_text
        for alias in aliases:
            self._handlers[alias.lower()] = handler

    def handle(
        self,
        state: AppState,
        line: str,
        emit: CommandEmitter | None = None,
    ) -> str | None:
        """
        Handle a string like "/command args".
        Returns a reply string or None if not a command.
        """
        if not line.startswith("/"):
            return None

        parts = line[1:].split()
        if not parts:
            return "Empty command. Use /help to list available commands."

        name = parts[0].lower()
        args = parts[1:]

        handler = self._handlers.get(name)
        if not handler:
            return f"Unknown command: /{name}. Use /help to list available commands."

        try:
            nparams = len(inspect.signature(handler).parameters)
        except Exception:
            nparams = 3

        if nparams >= 3:
            h3 = cast(CommandHandler3, handler)
            return h3(state, args, emit)

        h2 = cast(CommandHandler2, handler)
        return h2(state, args)

    def build_help(self) -> str:
        lines = ["Available commands:"]
        for name, help_text in self._help.items():
            lines.append(f"  /{name} - {help_text}")
        return "\n".join(lines)


registry = CommandRegistry()


# ---- helpers ----


def _fmt_duration(seconds: float | None) -> str:
    if seconds is None:
        return "-"
    total = int(max(0.0, seconds))
    return f"{total // 60}:{total % 60:02d}"


def _with_notices(state: AppState, reply: str) -> str:
    notices = state.drain_notices()
    if not notices:
        return reply
    return "\n".join([reply, *notices])


def _resolve_node(state: AppState, ref: str) -> TimelineNode | None:
    """Node by 1-based position (as shown in /timeline) or id prefix."""
    nodes = state.scheduler.nodes
    if ref.isdigit():
        i = int(ref) - 1
        return nodes[i] if 0 <= i < len(nodes) else None
    for node in nodes:
        if node.id.startswith(ref):
            return node
    return None


def _resolve_template(state: AppState, args: list[str]) -> CardTemplate | None:
    if not args:
        return None
    return state.catalog.find(" ".join(args))


def _session_busy(state: AppState) -> bool:
    return state.engine.state.is_active or state.engine.state == SessionState.RESTING


# ---- commands ----


def cmd_help(state: AppState, args: list[str]) -> str:
    return registry.build_help()


def cmd_status(state: AppState, args: list[str]) -> str:
    now = state.now()
    engine = state.engine
    task = engine.task
    current = state.scheduler.current_node
    lines = [
        "Status:",
        f"  State: {engine.state.value}",
        f"  Task: {task.name if task else '-'}",
        f"  Remaining: {_fmt_duration(engine.remaining_seconds(now))}",
        f"  Freeze tokens left: {engine.freeze_tokens_remaining}/{engine.freeze_token_budget}",
        f"  Focused today: {_fmt_duration(engine.focused_today(now))}",
        f"  Current node: {current.title if current else '-'}",
        f"  Placement: {state.scheduler.placement_mode.value}",
    ]
    if engine.state == SessionState.RESTING:
        lines.append(f"  Rest left: {_fmt_duration(engine.rest_remaining(now))}")
    return "\n".join(lines)


def cmd_template(state: AppState, args: list[str]) -> str:
    """
    /template <minutes> <title...> [--days N] [--passive]

    Creates a template and drops it into the library.
    """
    usage = "Usage: /template <minutes> <title...> [--days N] [--passive]"
    if len(args) < 2:
        return usage

    try:
        minutes = float(args[0])
    except ValueError:
        return usage

    days: int | None = None
    style = TaskStyle.FOCUS
    title_parts: list[str] = []
    rest = args[1:]
    i = 0
    while i < len(rest):
        tok = rest[i]
        if tok == "--passive":
            style = TaskStyle.PASSIVE
        elif tok == "--days" and i + 1 < len(rest):
            try:
                days = int(rest[i + 1])
            except ValueError:
                return usage
            i += 1
        else:
            title_parts.append(tok)
        i += 1

    title = " ".join(title_parts).strip()
    if not title or minutes < 0:
        return usage

    template = state.catalog.add(
        CardTemplate(
            title=title,
            default_duration_seconds=minutes * 60.0,
            style=style,
            deadline_window_days=days,
        )
    )
    state.library.add(template.id, state.now())
    return f"Template {template.id[:8]} '{title}' added to the library."


def cmd_library(state: AppState, args: list[str]) -> str:
    now = state.now()
    expired = state.library.refresh_deadline_statuses(now)
    buckets = state.library.bucketed_entries(now)
    if len(buckets) == 0:
        return "Library is empty."

    def _line(entry) -> str:
        t = state.catalog.get(entry.template_id)
        title = t.title if t else "?"
        return f"    {entry.template_id[:8]} {title}"

    lines = ["Library:"]
    for days, entries in buckets.windows.items():
        if entries:
            lines.append(f"  <= {days}d:")
            lines.extend(_line(e) for e in entries)
    for kind, entries in (
        (BucketKind.LATER, buckets.later),
        (BucketKind.NO_DEADLINE, buckets.no_deadline),
        (BucketKind.EXPIRED, buckets.expired),
    ):
        if entries:
            lines.append(f"  {kind.value}:")
            lines.extend(_line(e) for e in entries)
    if expired:
        lines.append(f"  ({expired} entr{'y' if expired == 1 else 'ies'} just expired)")
    return "\n".join(lines)


def cmd_plan(state: AppState, args: list[str]) -> str:
    template = _resolve_template(state, args)
    if template is None:
        return "Usage: /plan <template id|title>"
    node_id = state.scheduler.place_at_start(template.id)
    return f"Planned '{template.title}' ({node_id[:8]})." if node_id else "Could not place template."


def cmd_jump(state: AppState, args: list[str]) -> str:
    template = _resolve_template(state, args)
    if template is None:
        return "Usage: /jump <template id|title>"
    node_id = state.scheduler.place_at_current(template.id)
    return f"'{template.title}' is up next." if node_id else "Could not place template."


def cmd_after(state: AppState, args: list[str]) -> str:
    if len(args) < 2:
        return "Usage: /after <node #|id> <template id|title>"
    anchor = _resolve_node(state, args[0])
    template = _resolve_template(state, args[1:])
    if anchor is None or template is None:
        return "Unknown node or template."
    node_id = state.scheduler.place_at_anchor(template.id, anchor.id)
    return f"Placed '{template.title}' after '{anchor.title}'." if node_id else "Could not place template."


def cmd_rest(state: AppState, args: list[str]) -> str:
    """/rest <minutes> [node #|id]: insert a rest node after the current (or given) node."""
    if not args:
        return "Usage: /rest <minutes> [node #|id]"
    try:
        minutes = float(args[0])
    except ValueError:
        return "Usage: /rest <minutes> [node #|id]"
    if minutes < 0:
        return "Rest duration must be >= 0."

    anchor_id: str | None = None
    if len(args) > 1:
        anchor = _resolve_node(state, args[1])
        if anchor is None:
            return "Unknown node."
        anchor_id = anchor.id

    node_id = state.scheduler.place_rest(minutes * 60.0, anchor_id)
    return f"Rest of {minutes:g} min planned." if node_id else "Could not place rest."


def cmd_timeline(state: AppState, args: list[str]) -> str:
    nodes = state.scheduler.nodes
    if not nodes:
        return "Timeline is empty. Use /plan to add a task."
    cur = state.scheduler.current_index
    lines = [f"Timeline ({int(state.scheduler.completion_progress * 100)}% done):"]
    for i, node in enumerate(nodes):
        marker = ">" if i == cur else " "
        if node.is_completed:
            flag = "done"
        elif node.is_locked:
            flag = "locked"
        else:
            flag = "open"
        extra = ""
        if node.type == NodeType.BATTLE and node.task is not None:
            extra = f" [{_fmt_duration(node.task.budget_seconds)}]"
        lines.append(f" {marker} {i + 1}. {node.title}{extra} ({flag}) {node.id[:8]}")
    return "\n".join(lines)


def cmd_move(state: AppState, args: list[str]) -> str:
    if len(args) != 2 or not all(a.isdigit() for a in args):
        return "Usage: /move <from #> <to #>"
    src, dst = int(args[0]) - 1, int(args[1]) - 1
    if not state.scheduler.move_node(src, dst):
        return "Positions out of range."
    state.scheduler.finalize_reorder(state.engine.state.is_active, state.active_node_id)
    return cmd_timeline(state, [])


def cmd_current(state: AppState, args: list[str]) -> str:
    if not args:
        return "Usage: /current <node #|id>"
    if _session_busy(state):
        return "Finish or retreat from the running session first."
    node = _resolve_node(state, args[0])
    if node is None or not state.scheduler.set_current_node(node.id):
        return "Unknown node."
    return f"Current node: {node.title}"


def cmd_delete(state: AppState, args: list[str]) -> str:
    if not args:
        return "Usage: /delete <node #|id>"
    node = _resolve_node(state, args[0])
    if node is None:
        return "Unknown node."
    if node.id == state.active_node_id and _session_busy(state):
        return "Cannot delete the node that is running."
    state.scheduler.delete_node(node.id)
    return f"Deleted '{node.title}'."


def cmd_start(state: AppState, args: list[str]) -> str:
    engine = state.engine
    if _session_busy(state):
        return f"Already {engine.state.value}."
    node = state.scheduler.current_node
    if node is None:
        return "Nothing to start. Use /plan or /current."
    if node.is_completed:
        return "Current node is already done."

    now = state.now()
    if node.type == NodeType.REST:
        engine.start_rest(node.rest_seconds or 0.0, now)
        state.active_node_id = node.id
        return f"Resting for {_fmt_duration(node.rest_seconds)}. Use /done when finished."
    if node.type != NodeType.BATTLE or node.task is None:
        return "Nothing to fight here."

    engine.start(node.task, now)
    state.active_node_id = node.id
    return f"Started '{node.task.name}' ({_fmt_duration(node.task.budget_seconds)})."


def cmd_pause(state: AppState, args: list[str]) -> str:
    if state.engine.state != SessionState.FIGHTING:
        return "Nothing to pause."
    state.engine.pause(state.now())
    return "Paused."


def cmd_resume(state: AppState, args: list[str]) -> str:
    if state.engine.state != SessionState.PAUSED:
        return "Nothing to resume."
    state.engine.resume(state.now())
    return "Resumed."


def cmd_freeze(state: AppState, args: list[str]) -> str:
    if state.engine.freeze(state.now()):
        return f"Frozen. Tokens left: {state.engine.freeze_tokens_remaining}."
    return "Freeze unavailable (needs a running focus task and a token)."


def cmd_unfreeze(state: AppState, args: list[str]) -> str:
    if state.engine.state != SessionState.FROZEN:
        return "Not frozen."
    state.engine.resume_from_freeze(state.now())
    return "Back to it."


def cmd_retreat(state: AppState, args: list[str]) -> str:
    result = state.engine.retreat(state.now())
    if result is None:
        return "No session to retreat from."
    return _with_notices(state, f"Retreated from '{result.task_name}'.")


def cmd_undo(state: AppState, args: list[str]) -> str:
    now = state.now()
    if not state.engine.can_undo_start(now):
        return "Undo is only possible in the first minute. Use /retreat."
    state.engine.abort_session(now)
    state.active_node_id = None
    return "Start undone; nothing recorded."


def cmd_done(state: AppState, args: list[str]) -> str:
    engine = state.engine
    now = state.now()

    if engine.state == SessionState.RESTING:
        node_id = state.active_node_id
        engine.end_rest()
        state.active_node_id = None
        if node_id is not None:
            state.notices.extend(_describe_all(state.scheduler.complete_rest(node_id)))
        return _with_notices(state, "Rest finished.")

    if engine.task is not None and engine.task.style == TaskStyle.PASSIVE:
        result = engine.complete_passive_task(now)
        if result is not None:
            return _with_notices(state, f"Completed '{result.task_name}'.")

    if args and args[0] == "--force":
        result = engine.force_complete(now)
        if result is not None:
            return _with_notices(state, f"Force-completed '{result.task_name}'.")

    return "Focus tasks finish when the timer runs out (or /done --force)."


def cmd_tick(state: AppState, args: list[str]) -> str:
    now = state.now()
    result = state.engine.tick(now)
    if result is not None:
        return _with_notices(state, f"'{result.task_name}' finished.")
    return f"Remaining: {_fmt_duration(state.engine.remaining_seconds(now))}"


def cmd_continue(state: AppState, args: list[str]) -> str:
    if not state.scheduler.decline_rest():
        return "No rest suggestion to decline."
    return "Keep going. Focus counter reset."

def cmd_history(state: AppState, args: list[str]) -> str:
    history = state.scheduler.history
    if not history:
        return "No history yet."
    today = day_of(state.now(), state.tz)
    totals = aggregate(history)
    lines = ["History:"]
    for d in sorted(history, key=lambda x: x.day)[-7:]:
        lines.append(
            f"  {d.day.isoformat()}: focused {_fmt_duration(d.total_focused_seconds)}, "
            f"wasted {_fmt_duration(d.total_wasted_seconds)}, sessions {d.sessions_count}"
        )
    lines.append(
        f"  Total: focused {_fmt_duration(totals.total_focused_seconds)} "
        f"over {totals.sessions_count} sessions; streak {current_streak(history, today)} day(s)"
    )
    return "\n".join(lines)


def _describe_all(events) -> list[str]:
    return [describe(e) for e in events]


registry.register("help", cmd_help, help_text="Show available commands.", aliases=["h", "?"])
registry.register("status", cmd_status, help_text="Show session state, tokens and today's focus.")
registry.register(
    "template",
    cmd_template,
    help_text="Create a template in the library: /template <min> <title> [--days N] [--passive].",
)
registry.register("library", cmd_library, help_text="Show library entries grouped by deadline.")
registry.register("plan", cmd_plan, help_text="Place a template on the timeline: /plan <template>.")
registry.register("jump", cmd_jump, help_text="Queue-jump a template right after the current node.")
registry.register("after", cmd_after, help_text="Place a template after a node: /after <node> <template>.")
registry.register("rest", cmd_rest, help_text="Plan a rest node: /rest <minutes> [node].")
registry.register("timeline", cmd_timeline, help_text="Show today's timeline.", aliases=["tl"])
registry.register("move", cmd_move, help_text="Reorder: /move <from #> <to #>.")
registry.register("current", cmd_current, help_text="Make a node current: /current <node>.")
registry.register("delete", cmd_delete, help_text="Delete a node: /delete <node>.")
registry.register("start", cmd_start, help_text="Start the current node.")
registry.register("pause", cmd_pause, help_text="Pause the running task.")
registry.register("resume", cmd_resume, help_text="Resume a paused task.")
registry.register("freeze", cmd_freeze, help_text="Spend a freeze token on an interruption.")
registry.register("unfreeze", cmd_unfreeze, help_text="Return from a freeze.")
registry.register("retreat", cmd_retreat, help_text="Abandon the running task (recorded as incomplete).")
registry.register("undo", cmd_undo, help_text="Undo a start within the first minute (no record).")
registry.register("done", cmd_done, help_text="Finish a rest or passive task: /done [--force].")
registry.register("tick", cmd_tick, help_text="Check the timer now.")
registry.register("continue", cmd_continue, help_text="Decline a rest suggestion and keep going.")
registry.register("history", cmd_history, help_text="Show daily focus history and streak.")
