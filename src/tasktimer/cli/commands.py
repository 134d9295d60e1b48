# src/tasktimer/cli/commands.py

from __future__ import annotations

import inspect
import logging
from collections.abc import Callable
from typing import cast

from .. import api
from ..core.clock import ms_between
from ..core.state import AppState
from ..errors import TrackerError, ValidationError
from ..stats.aggregator import StatisticsReport
from ..stats.periods import PERIODS
from ..storage.models import Task, TaskGroup

CommandEmitter = Callable[[str], None]
CommandHandler2 = Callable[[AppState, list[str]], str]
CommandHandler3 = Callable[[AppState, list[str], CommandEmitter | None], str]
CommandHandler = CommandHandler2 | CommandHandler3

logger = logging.getLogger(__name__)


class CommandRegistry:
    """Slash-command registry used by the console connector (/help, /start, ...)."""

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
        Tracker errors are rendered as replies, anything else propagates.
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
        except (TypeError, ValueError):
            nparams = 3

        try:
            if nparams >= 3:
                h3 = cast(CommandHandler3, handler)
                return h3(state, args, emit)
            h2 = cast(CommandHandler2, handler)
            return h2(state, args)
        except TrackerError as e:
            logger.debug("/%s failed: %s", name, e)
            return f"Error ({e.kind}): {e.message}"

    def build_help(self) -> str:
        lines = ["Available commands:"]
        for name, help_text in self._help.items():
            lines.append(f"  /{name} - {help_text}")
        return "\n".join(lines)


registry = CommandRegistry()


# ---- formatting ----


def format_duration(minutes: int) -> str:
    """75 -> '1h 15m', 60 -> '1h', 5 -> '5m'."""
    hours, mins = divmod(max(0, int(minutes)), 60)
    if hours:
        return f"{hours}h {mins}m" if mins else f"{hours}h"
    return f"{mins}m"


def format_clock(seconds: int) -> str:
    """Timer display: MM:SS, or HH:MM:SS from one hour on."""
    hours, rest = divmod(max(0, int(seconds)), 3600)
    minutes, secs = divmod(rest, 60)
    if hours:
        return f"{hours:02d}:{minutes:02d}:{secs:02d}"
    return f"{minutes:02d}:{secs:02d}"


def _short(entity_id: str) -> str:
    return entity_id[:8]


def _render_report(report: StatisticsReport) -> str:
    lines = [f"Statistics {report.start_date} .. {report.end_date}", "By group:"]
    if not report.group_statistics:
        lines.append("  (no groups)")
    for g in report.group_statistics:
        lines.append(
            f"  {g.task_group_name}: {format_duration(g.total_duration_minutes)}, "
            f"{g.total_sessions} sessions in {g.total_tasks} tasks, "
            f"{g.completion_rate:.0%} completed"
        )
    lines.append("By task:")
    if not report.task_statistics:
        lines.append("  (no tasks)")
    for t in report.task_statistics:
        lines.append(
            f"  {t.task_group_name} / {t.task_name}: {format_duration(t.total_duration_minutes)}, "
            f"{t.completed_sessions}/{t.total_sessions} completed"
        )
    return "\n".join(lines)


# ---- reference resolution (id, id prefix or name) ----


def _pick(candidates: list, ref: str, what: str):
    ref_l = ref.lower()
    exact = [c for c in candidates if c.id == ref]
    if exact:
        return exact[0]
    by_name = [c for c in candidates if c.name.lower() == ref_l]
    by_prefix = [c for c in candidates if c.id.startswith(ref_l)]
    matches = by_name or by_prefix
    if not matches:
        raise ValidationError(f"no {what} matches {ref!r}")
    if len(matches) > 1:
        raise ValidationError(f"{what} reference {ref!r} is ambiguous ({len(matches)} matches)")
    return matches[0]


def _resolve_group(state: AppState, ref: str) -> TaskGroup:
    return _pick(api.list_task_groups(state), ref, "group")


def _all_tasks(state: AppState) -> list[Task]:
    out: list[Task] = []
    for group in api.list_task_groups(state):
        out.extend(api.list_tasks_by_group(state, group.id))
    return out


def _resolve_task(state: AppState, ref: str) -> Task:
    return _pick(_all_tasks(state), ref, "task")


def _pop_minutes(args: list[str]) -> tuple[list[str], int | None]:
    """Strip a trailing '--minutes N' option."""
    if "--minutes" not in args:
        return args, None
    i = args.index("--minutes")
    if i + 1 >= len(args):
        raise ValidationError("--minutes needs a value")
    try:
        minutes = int(args[i + 1])
    except ValueError as e:
        raise ValidationError(f"--minutes expects an integer, got {args[i + 1]!r}") from e
    return args[:i] + args[i + 2 :], minutes


# ---- handlers ----


def cmd_help(state: AppState, args: list[str]) -> str:
    return registry.build_help()


def cmd_groups(state: AppState, args: list[str]) -> str:
    groups = api.list_task_groups(state)
    if not groups:
        return "No task groups yet. Create one with /group add <name>."
    lines = ["Task groups:"]
    for g in groups:
        desc = f" - {g.description}" if g.description else ""
        lines.append(f"  [{_short(g.id)}] {g.name}{desc}")
    return "\n".join(lines)


def cmd_group(state: AppState, args: list[str]) -> str:
    """
    /group add <name>
    /group rename <group> <new name>
    /group rm <group>
    """
    usage = "Usage: /group add <name> | /group rename <group> <new name> | /group rm <group>"
    if not args:
        return usage
    sub, rest = args[0].lower(), args[1:]

    if sub == "add":
        group = api.create_task_group(state, " ".join(rest))
        return f"Group created [{_short(group.id)}] {group.name}"

    if sub == "rename" and len(rest) >= 2:
        group = _resolve_group(state, rest[0])
        updated = api.update_task_group(state, group.id, name=" ".join(rest[1:]))
        return f"Group renamed: {group.name} -> {updated.name}"

    if sub in ("rm", "delete") and rest:
        group = _resolve_group(state, rest[0])
        api.delete_task_group(state, group.id)
        return f"Group deleted: {group.name} (with its tasks and sessions)"

    return usage


def cmd_tasks(state: AppState, args: list[str]) -> str:
    if not args:
        return "Usage: /tasks <group>"
    group = _resolve_group(state, args[0])
    tasks = api.list_tasks_by_group(state, group.id)
    if not tasks:
        return f"No tasks in {group.name}. Add one with /task add {group.name} <name>."
    lines = [f"Tasks in {group.name}:"]
    for t in tasks:
        mode = f"countdown {format_duration(t.duration_minutes)}" if t.is_countdown else "stopwatch"
        lines.append(f"  [{_short(t.id)}] {t.name} ({mode})")
    return "\n".join(lines)


def cmd_task(state: AppState, args: list[str]) -> str:
    """
    /task add <group> <name> [--minutes N]
    /task minutes <task> <N|off>
    /task rm <task>
    """
    usage = (
        "Usage: /task add <group> <name> [--minutes N] | "
        "/task minutes <task> <N|off> | /task rm <task>"
    )
    if not args:
        return usage
    sub, rest = args[0].lower(), args[1:]

    if sub == "add" and rest:
        rest, minutes = _pop_minutes(rest)
        if not rest:
            return usage
        group = _resolve_group(state, rest[0])
        task = api.create_task(state, group.id, " ".join(rest[1:]), duration_minutes=minutes)
        return f"Task created [{_short(task.id)}] {task.name} in {group.name}"

    if sub == "minutes" and len(rest) == 2:
        task = _resolve_task(state, rest[0])
        if rest[1].lower() == "off":
            minutes = None
        else:
            try:
                minutes = int(rest[1])
            except ValueError as e:
                raise ValidationError(f"expected minutes or 'off', got {rest[1]!r}") from e
        updated = api.update_task(state, task.id, duration_minutes=minutes)
        mode = format_duration(updated.duration_minutes) if updated.is_countdown else "stopwatch"
        return f"Task {updated.name} is now {mode}"

    if sub in ("rm", "delete") and rest:
        task = _resolve_task(state, rest[0])
        api.delete_task(state, task.id)
        return f"Task deleted: {task.name} (with its sessions)"

    return usage


def cmd_start(state: AppState, args: list[str]) -> str:
    if not args:
        return "Usage: /start <task>"
    task = _resolve_task(state, " ".join(args))
    session = api.start_session(state, task.id)
    return f"Started {task.name} at {session.start_time:%H:%M:%S} UTC [{_short(session.id)}]"


def _require_active(state: AppState):
    active = api.get_active_session(state)
    if active is None:
        raise ValidationError("no active session; use /start <task>")
    return active


def cmd_pause(state: AppState, args: list[str]) -> str:
    active = _require_active(state)
    api.pause_session(state, active.session.id)
    return f"Paused {active.task.name}."


def cmd_resume(state: AppState, args: list[str]) -> str:
    active = _require_active(state)
    api.resume_session(state, active.session.id)
    return f"Resumed {active.task.name}."


def cmd_stop(state: AppState, args: list[str], emit: CommandEmitter | None = None) -> str:
    """
    /stop            -> record the worked time
    /stop <minutes>  -> record an explicit duration

    Countdown tasks also emit a planned-vs-worked note.
    """
    active = _require_active(state)
    minutes: int | None = None
    if args:
        try:
            minutes = int(args[0])
        except ValueError as e:
            raise ValidationError(f"expected minutes, got {args[0]!r}") from e
    session = api.end_session(state, active.session.id, minutes)
    if emit is not None and active.task.is_countdown and session.end_time is not None:
        worked_ms = (
            ms_between(session.start_time, session.end_time) - session.total_paused_duration_ms
        )
        emit(
            f"{active.task.name}: planned {format_duration(active.task.duration_minutes or 0)}, "
            f"worked {format_duration(max(0, worked_ms) // 60_000)}."
        )
    return f"Stopped {active.task.name}: {format_duration(session.duration_minutes or 0)} recorded."


def cmd_active(state: AppState, args: list[str]) -> str:
    active = api.get_active_session(state)
    if active is None:
        return "No active session."
    snap = state.sessions.snapshot(active)
    status = "paused" if snap.is_paused else "running"
    line = (
        f"{active.task_group.name} / {active.task.name}: {status}, "
        f"elapsed {format_clock(snap.elapsed_seconds)}"
    )
    if snap.remaining_seconds is not None:
        line += f", remaining {format_clock(snap.remaining_seconds)}"
    return line


def cmd_stats(state: AppState, args: list[str]) -> str:
    """
    /stats                     -> today
    /stats <period>            -> today | week | fifteen_days | month
    /stats <start> <end>       -> ISO dates or instants, inclusive
    """
    if len(args) >= 2:
        report = api.get_statistics(state, args[0], args[1])
    else:
        period = args[0].lower() if args else "today"
        if period not in PERIODS:
            return f"Usage: /stats [{' | '.join(PERIODS)}] or /stats <start> <end>"
        report = state.stats.get_statistics_for_period(period)
    return _render_report(report)


registry.register("help", cmd_help, help_text="Show available commands.", aliases=["h", "?"])
registry.register("groups", cmd_groups, help_text="List task groups (newest first).")
registry.register("group", cmd_group, help_text="Manage groups: /group add | rename | rm.")
registry.register("tasks", cmd_tasks, help_text="List tasks of a group: /tasks <group>.")
registry.register("task", cmd_task, help_text="Manage tasks: /task add | minutes | rm.")
registry.register("start", cmd_start, help_text="Start a session: /start <task>.")
registry.register("pause", cmd_pause, help_text="Pause the active session.")
registry.register("resume", cmd_resume, help_text="Resume the paused session.")
registry.register("stop", cmd_stop, help_text="Stop the active session: /stop [minutes].")
registry.register("active", cmd_active, help_text="Show the active session timer.", aliases=["now"])
registry.register(
    "stats", cmd_stats, help_text="Statistics: /stats [today|week|fifteen_days|month] | <start> <end>."
)
