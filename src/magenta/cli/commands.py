"""Slash-command parsing.

Pure functions, no I/O. ``parse_input`` never raises: anything that is not a
recognised command is either a chat message or ``Unknown``.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Mapping, Union

COMMAND_PREFIX = "/"


@dataclass(frozen=True)
class Exit:
    pass


@dataclass(frozen=True)
class Help:
    pass


@dataclass(frozen=True)
class Clear:
    pass


@dataclass(frozen=True)
class History:
    pass


@dataclass(frozen=True)
class Agent:
    name: str


@dataclass(frozen=True)
class Sessions:
    pass


@dataclass(frozen=True)
class Agents:
    pass


@dataclass(frozen=True)
class Unknown:
    raw: str


@dataclass(frozen=True)
class Message:
    text: str


Command = Union[Exit, Help, Clear, History, Agent, Sessions, Agents, Unknown, Message]


@dataclass(frozen=True)
class Cmd:
    command: Command


@dataclass(frozen=True)
class Msg:
    text: str


Input = Union[Cmd, Msg]

# Canonical command names. Aliases map onto these.
CANONICAL_COMMANDS = frozenset({"exit", "help", "clear", "history", "agent", "sessions", "agents"})

DEFAULT_COMMAND_ALIASES: dict[str, str] = {
    "exit": "exit",
    "quit": "exit",
    "q": "exit",
    "help": "help",
    "?": "help",
    "clear": "clear",
    "cls": "clear",
    "history": "history",
    "agent": "agent",
    "sessions": "sessions",
    "agents": "agents",
}

_NO_ARG_COMMANDS: dict[str, Command] = {
    "exit": Exit(),
    "help": Help(),
    "clear": Clear(),
    "history": History(),
    "sessions": Sessions(),
    "agents": Agents(),
}


def merge_aliases(extra: Mapping[str, str] | None = None) -> dict[str, str]:
    """Return the default alias table extended with ``extra``.

    Raises ValueError if an alias targets a name that is not a command.
    """
    merged = dict(DEFAULT_COMMAND_ALIASES)
    for alias, target in (extra or {}).items():
        canonical = str(target).strip().lower()
        if canonical not in CANONICAL_COMMANDS:
            raise ValueError(f"Command alias {alias!r} points to unknown command {target!r}")
        merged[str(alias).strip().lower().lstrip(COMMAND_PREFIX)] = canonical
    return merged


def parse_command(raw: str | None, aliases: Mapping[str, str] | None = None) -> Command | None:
    """Parse a slash command. Returns None when ``raw`` is not a command at all."""
    if raw is None or not raw.strip():
        return None
    stripped = raw.strip()
    if not stripped.startswith(COMMAND_PREFIX):
        return None

    table = aliases if aliases is not None else DEFAULT_COMMAND_ALIASES
    parts = stripped[len(COMMAND_PREFIX) :].strip().split(maxsplit=1)
    if not parts:
        return Unknown(raw)

    canonical = table.get(parts[0].lower())
    if canonical is None:
        return Unknown(raw)

    if canonical == "agent":
        if len(parts) < 2 or not parts[1].strip():
            return Unknown(raw)
        return Agent(parts[1].strip())

    return _NO_ARG_COMMANDS.get(canonical, Unknown(raw))


def parse_input(raw: str | None, aliases: Mapping[str, str] | None = None) -> Input:
    """Classify raw text as a command or a chat message."""
    if raw is None or not raw.strip():
        return Msg("")
    command = parse_command(raw, aliases)
    if command is None:
        return Msg(raw)
    return Cmd(command)


class InputParser:
    """Callable parser bound to an alias table (defaults plus configured extras)."""

    def __init__(self, aliases: Mapping[str, str] | None = None) -> None:
        self.aliases = merge_aliases(aliases)

    def __call__(self, raw: str | None) -> Input:
        return parse_input(raw, self.aliases)

    def names_for(self, canonical: str) -> list[str]:
        """All typed names that map to ``canonical``, in table order."""
        return [alias for alias, target in self.aliases.items() if target == canonical]
