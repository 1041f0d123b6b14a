"""Handles parsed slash commands for an agent session."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from ..cli.commands import (
    Agent,
    Agents,
    Clear,
    Command,
    Exit,
    Help,
    History,
    Message,
    Sessions,
    Unknown,
)
from ..cli.io_context import IOContext
from .agent import UnknownAgentError

if TYPE_CHECKING:
    from .session import AgentSession

logger = logging.getLogger(__name__)

_HISTORY_PREVIEW_CHARS = 80

_HELP_LINES: list[tuple[str, str, str]] = [
    ("exit", "", "Exit the session"),
    ("help", "", "Show this help message"),
    ("clear", "", "Clear the screen"),
    ("history", "", "Show conversation history"),
    ("agent", " <name>", "Switch to a different agent"),
    ("sessions", "", "List active sessions"),
    ("agents", "", "List available agent configurations"),
]


def _preview(text: str, limit: int = _HISTORY_PREVIEW_CHARS) -> str:
    flat = " ".join(text.split())
    if len(flat) <= limit:
        return flat
    return flat[: limit - 3] + "..."


class DefaultCommandHandler:
    def handle(self, session: AgentSession, command: Command) -> None:
        io = session.io
        if isinstance(command, Exit):
            session.request_exit()
        elif isinstance(command, Help):
            self._show_help(session, io)
        elif isinstance(command, Clear):
            # The terminal clears the screen itself before the line gets here.
            pass
        elif isinstance(command, History):
            self._show_history(session, io)
        elif isinstance(command, Agent):
            self._switch_agent(session, command.name)
        elif isinstance(command, Sessions):
            self._list_sessions(session, io)
        elif isinstance(command, Agents):
            self._list_agents(session, io)
        elif isinstance(command, Unknown):
            io.error(f"Unknown command: {command.raw}")
        elif isinstance(command, Message):
            logger.debug("Message variant reached the command handler, ignoring")
        else:
            raise TypeError(f"Unhandled command: {command!r}")

    def _show_help(self, session: AgentSession, io: IOContext) -> None:
        io.println("Available commands:")
        for canonical, args, description in _HELP_LINES:
            names = session.parser.names_for(canonical) or [canonical]
            typed = ", ".join(f"/{name}" for name in names)
            io.println(f"  {typed}{args} - {description}")

    def _show_history(self, session: AgentSession, io: IOContext) -> None:
        turns = session.agent.history.turns
        io.println("Conversation history:")
        if not turns:
            io.println("  (empty)")
            return
        for i, turn in enumerate(turns, 1):
            io.println(f"  [{i}] {turn.role}: {_preview(turn.content)}")

    def _switch_agent(self, session: AgentSession, name: str) -> None:
        if session.registry is None:
            session.io.warn("Session switching not available: no session manager")
            return
        try:
            session.registry.switch_to_agent(name)
        except UnknownAgentError as e:
            session.io.error(f"Error: {e}")

    def _list_sessions(self, session: AgentSession, io: IOContext) -> None:
        if session.registry is None:
            io.warn("Session management not available: no session manager")
            return
        current = session.registry.current_session_name()
        names = session.registry.list_active_sessions()
        io.println("Active sessions:")
        if not names:
            io.println("  (none)")
            return
        for name in names:
            marker = " *" if name == current else ""
            io.println(f"  {name}{marker}")

    def _list_agents(self, session: AgentSession, io: IOContext) -> None:
        if session.registry is None:
            io.warn("Session management not available: no session manager")
            return
        current = session.registry.current_session_name()
        io.println("Available agents:")
        for name in session.registry.list_available_agents():
            marker = " (current)" if name == current else ""
            io.println(f"  {name}{marker}")
