"""Text command surface under the `pvd` root command.

Commands are a flat table of (path, permission level, handler) routes. The
router picks the longest literal path that prefixes the input and whose
argument count matches, checks the caller's permission level, and runs the
handler. Handlers return the feedback message or raise CommandError; the
router turns both into a CommandResult.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Callable, List, Optional, Sequence, Tuple

from pvdtime.core.config import ADMIN_PERMISSION_LEVEL, STATUS_TAG
from pvdtime.core.metrics import metrics
from pvdtime.core.service import MarkerHost, PlaytimeService
from pvdtime.core.storage import StorageError
from pvdtime.models import LeaderboardRow, OnlinePlayer

logger = logging.getLogger(__name__)

ROOT = "pvd"


class CommandError(Exception):
    """User-facing command failure; the message is sent back as feedback."""


@dataclass(frozen=True)
class CommandSource:
    """Who runs a command and with which host permission level."""
    name: str
    permission_level: int = 0


@dataclass(frozen=True)
class CommandResult:
    success: bool
    message: str


@dataclass
class CommandContext:
    service: PlaytimeService
    source: CommandSource
    markers: MarkerHost
    players: List[OnlinePlayer] = field(default_factory=list)


Handler = Callable[[CommandContext, Sequence[str]], str]


@dataclass(frozen=True)
class Route:
    path: Tuple[str, ...]
    permission: int
    handler: Handler
    args: Tuple[str, ...] = ()

    @property
    def usage(self) -> str:
        return " ".join(self.path + tuple(f"<{a}>" for a in self.args))


# --- argument helpers ---

INT_MIN = -(2 ** 31)
INT_MAX = 2 ** 31 - 1

_INTEGER_RE = re.compile(r"-?[0-9]+")


def _get_int(value: Any, minimum: Optional[int] = None) -> int:
    """Parse a signed 32-bit decimal integer argument."""
    if not isinstance(value, str) or not _INTEGER_RE.fullmatch(value):
        raise CommandError(f"Invalid integer '{value}'")
    number = int(value)
    lower = INT_MIN if minimum is None else max(minimum, INT_MIN)
    if number < lower:
        raise CommandError(f"Integer must not be less than {lower}, found {number}")
    if number > INT_MAX:
        raise CommandError(f"Integer must not be more than {INT_MAX}, found {number}")
    return number


def _on_off(enabled: bool) -> str:
    return "enabled" if enabled else "disabled"


def format_board(title: str, rows: List[LeaderboardRow], empty_message: str) -> str:
    lines = [title]
    for row in rows:
        lines.append(f"- {row.name}: {row.display}")
    if not rows:
        lines.append(empty_message)
    return "\n".join(lines)


# --- read handlers ---

def handle_list(ctx: CommandContext, args: Sequence[str]) -> str:
    return format_board("All players and their time:", ctx.service.current_leaderboard(), "No player time data.")


def handle_list_active(ctx: CommandContext, args: Sequence[str]) -> str:
    return format_board(
        f"Active {STATUS_TAG} players and their time:",
        ctx.service.active_leaderboard(),
        f"No active {STATUS_TAG} players.",
    )


def handle_list_last(ctx: CommandContext, args: Sequence[str]) -> str:
    try:
        rows = ctx.service.last_week_leaderboard()
    except StorageError:
        logger.warning(
            "Failed to read last week archive",
            extra={"action_context": "command:list_last"},
            exc_info=True,
        )
        raise CommandError("Error loading data.")
    if rows is None:
        return "No data for last week."
    return format_board("Player time for last week:", rows, "No player time data.")


# --- settings handlers ---

def handle_settings(ctx: CommandContext, args: Sequence[str]) -> str:
    s = ctx.service.settings
    return (
        "Current settings:\n"
        f"- AFK mode: {_on_off(s.afk_check_enabled)}\n"
        f"- AFK time: {s.afk_time_threshold} min\n"
        f"- Required {STATUS_TAG} time: {s.required_minutes} min"
    )


def handle_afk(ctx: CommandContext, args: Sequence[str]) -> str:
    s = ctx.service.settings
    return f"AFK mode: {_on_off(s.afk_check_enabled)}\nCurrent threshold: {s.afk_time_threshold} min"


def handle_afk_work(ctx: CommandContext, args: Sequence[str]) -> str:
    ctx.service.set_afk_enabled(args[0].lower() == "on")
    return f"AFK mode: {_on_off(ctx.service.settings.afk_check_enabled)}"


def handle_afk_time(ctx: CommandContext, args: Sequence[str]) -> str:
    minutes = _get_int(args[0], minimum=1)
    ctx.service.set_afk_threshold(minutes)
    return f"AFK timer set to {minutes} min"


def handle_time(ctx: CommandContext, args: Sequence[str]) -> str:
    return f"Current {STATUS_TAG} limit: {ctx.service.settings.required_minutes} min"


def handle_time_default(ctx: CommandContext, args: Sequence[str]) -> str:
    minutes = _get_int(args[0], minimum=1)
    ctx.service.set_required_minutes(minutes, ctx.players, ctx.markers)
    return f"New {STATUS_TAG} limit: {minutes} min"


def handle_clear_player(ctx: CommandContext, args: Sequence[str]) -> str:
    name = args[0]
    if not ctx.service.clear_player(name, ctx.players, ctx.markers):
        raise CommandError(f"Player {name} not found")
    return f"Counter for {name} reset"


def handle_clear_all(ctx: CommandContext, args: Sequence[str]) -> str:
    ctx.service.clear_all(ctx.players, ctx.markers)
    return "All counters reset"


def handle_set(ctx: CommandContext, args: Sequence[str]) -> str:
    name = args[0]
    minutes = _get_int(args[1])
    ctx.service.set_player_minutes(name, minutes)
    return f"Set time for {name}: {minutes} minutes."


ADMIN = ADMIN_PERMISSION_LEVEL

ROUTES: List[Route] = [
    Route((ROOT, "list"), 0, handle_list),
    Route((ROOT, "list", "active"), 0, handle_list_active),
    Route((ROOT, "list", "last"), 0, handle_list_last),
    Route((ROOT, "settings"), ADMIN, handle_settings),
    Route((ROOT, "settings", "afk"), ADMIN, handle_afk),
    Route((ROOT, "settings", "afk", "work"), ADMIN, handle_afk_work, ("state",)),
    Route((ROOT, "settings", "afk", "time"), ADMIN, handle_afk_time, ("minutes",)),
    Route((ROOT, "settings", "time"), ADMIN, handle_time),
    Route((ROOT, "settings", "time", "default"), ADMIN, handle_time_default, ("minutes",)),
    Route((ROOT, "settings", "time", "clear"), ADMIN, handle_clear_player, ("player",)),
    Route((ROOT, "settings", "time", "clear", "all"), ADMIN, handle_clear_all),
    Route((ROOT, "settings", "time", "set"), ADMIN, handle_set, ("player", "time")),
]


class CommandRouter:
    """Dispatches text commands against a flat route table."""

    def __init__(self, routes: Optional[List[Route]] = None) -> None:
        self.routes = list(routes if routes is not None else ROUTES)

    def resolve(self, tokens: Sequence[str]) -> Tuple[Optional[Route], List[Route]]:
        """Return (matching route, literal-prefix candidates), longest path first."""
        candidates = [r for r in self.routes if tuple(tokens[: len(r.path)]) == r.path]
        candidates.sort(key=lambda r: len(r.path), reverse=True)
        for route in candidates:
            if len(tokens) - len(route.path) == len(route.args):
                return route, candidates
        return None, candidates

    def execute(self, text: str, ctx: CommandContext) -> CommandResult:
        tokens = text.strip().lstrip("/").split()
        metrics.increment_event("command.count")
        logger.info(
            "execute_command",
            extra={
                "action_type": " ".join(tokens[:3]),
                "source": ctx.source.name,
                "timestamp": datetime.now().isoformat(),
            },
        )

        route, candidates = self.resolve(tokens)
        if route is None:
            visible = [r for r in candidates if ctx.source.permission_level >= r.permission]
            if visible:
                return CommandResult(False, f"Usage: {visible[0].usage}")
            if candidates:
                return CommandResult(False, "You do not have permission to use this command.")
            return CommandResult(False, f"Unknown command: {text.strip()}")

        if ctx.source.permission_level < route.permission:
            return CommandResult(False, "You do not have permission to use this command.")

        try:
            message = route.handler(ctx, tokens[len(route.path):])
        except CommandError as exc:
            return CommandResult(False, str(exc))
        return CommandResult(True, message)


__all__ = [
    "CommandContext",
    "CommandError",
    "CommandResult",
    "CommandRouter",
    "CommandSource",
    "Route",
    "ROUTES",
    "format_board",
]
