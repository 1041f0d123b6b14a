"""Registry of agent sessions sharing one I/O context."""

from __future__ import annotations

import asyncio
import logging
from typing import Callable

from ..cli.commands import InputParser
from ..cli.io_context import IOContext
from ..config import AgentConfig, AppConfig
from .agent import ChatAgent, UnknownAgentError
from .chat_model import ChatModel, create_chat_model
from .command_handler import DefaultCommandHandler
from .session import AgentSession

logger = logging.getLogger(__name__)

ModelFactory = Callable[[AgentConfig, AppConfig], ChatModel]

__all__ = ["ModelFactory", "SessionManager", "UnknownAgentError"]


class SessionManager:
    """Owns the I/O context and one cached session per agent.

    Switching back to an agent resumes its session, history included.
    """

    def __init__(
        self,
        config: AppConfig,
        io: IOContext,
        model_factory: ModelFactory | None = None,
        initial_agent: str | None = None,
        idle_interval: float = 0.05,
    ) -> None:
        self.config = config
        self.io = io
        self._model_factory = model_factory or create_chat_model
        self._parser = InputParser(config.commands)
        self._command_handler = DefaultCommandHandler()
        self._idle_interval = idle_interval
        self._sessions: dict[str, AgentSession] = {}
        self._current: AgentSession | None = None
        self._activate(self.get_or_create_session(initial_agent or config.app.base_agent))

    def get_or_create_session(self, name: str) -> AgentSession:
        session = self._sessions.get(name)
        if session is not None:
            return session
        agent_config = self.config.agents.get(name)
        if agent_config is None:
            raise UnknownAgentError(name)
        agent = ChatAgent(
            agent_config,
            self._model_factory(agent_config, self.config),
            stream_delay_ms=self.config.stream_delay_for(agent_config),
        )
        session = AgentSession(
            self.io,
            agent,
            parser=self._parser,
            command_handler=self._command_handler,
            registry=self,
            idle_interval=self._idle_interval,
        )
        self._sessions[name] = session
        if self._current is not None:
            # creating a session installs its filter; keep the active one in place
            self._current.attach_io(self.io)
        logger.debug("Created session for agent %s", name)
        return session

    def _cursor_for(self, agent: ChatAgent) -> str:
        if agent.name == self.config.app.base_agent:
            return self.config.app.cursor
        return f"{agent.name}> "

    def _activate(self, session: AgentSession) -> None:
        self._current = session
        session.attach_io(self.io)
        agent = session.agent
        cursor_color = agent.color if agent.color is not None else self.config.app.cursor_color
        self.io.set_cursor(self._cursor_for(agent), cursor_color)

    def switch_to_agent(self, name: str) -> AgentSession:
        session = self.get_or_create_session(name)
        if session is self._current:
            self.io.info(f"Already in session: {name}")
            return session
        self._activate(session)
        logger.info("Switched to agent %s", name)
        self.io.info(f"Switched to agent: {name}")
        return session

    def list_active_sessions(self) -> list[str]:
        return list(self._sessions)

    def list_available_agents(self) -> list[str]:
        return list(self.config.agents)

    def current_session_name(self) -> str:
        return self.current_session.name

    @property
    def current_session(self) -> AgentSession:
        if self._current is None:
            raise RuntimeError("No active session")
        return self._current

    async def run(self) -> None:
        """Drive whichever session is current until one of them exits."""
        while True:
            session = self.current_session
            if session.should_exit:
                break
            handled = await session.run_once()
            if not handled and not session.should_exit:
                await asyncio.sleep(self._idle_interval)

    async def close(self) -> None:
        for session in self._sessions.values():
            await session.close()
        self.io.close()
