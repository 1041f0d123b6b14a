"""Read -> parse -> dispatch loop for one agent."""

from __future__ import annotations

import asyncio
import enum
import logging
from typing import TYPE_CHECKING

from ..cli.commands import Cmd, InputParser
from ..cli.io_context import IOContext
from .agent import ChatAgent
from .chat_model import GenerationError
from .command_handler import DefaultCommandHandler

if TYPE_CHECKING:
    from .session_manager import SessionManager

logger = logging.getLogger(__name__)

DEFAULT_IDLE_INTERVAL = 0.05  # seconds


class SessionState(enum.Enum):
    RUNNING = "running"
    EXITING = "exiting"


class AgentSession:
    def __init__(
        self,
        io: IOContext,
        agent: ChatAgent,
        parser: InputParser | None = None,
        command_handler: DefaultCommandHandler | None = None,
        registry: SessionManager | None = None,
        idle_interval: float = DEFAULT_IDLE_INTERVAL,
    ) -> None:
        self.agent = agent
        self.parser = parser or InputParser()
        self.command_handler = command_handler or DefaultCommandHandler()
        self.registry = registry
        self.idle_interval = idle_interval
        self.state = SessionState.RUNNING
        self.io = io
        self.attach_io(io)

    @property
    def name(self) -> str:
        return self.agent.name

    @property
    def should_exit(self) -> bool:
        return self.state is SessionState.EXITING

    def request_exit(self) -> None:
        self.state = SessionState.EXITING

    def attach_io(self, io: IOContext) -> None:
        """Route this session through ``io`` and install the agent's security filter on it."""
        if io is not self.io:
            self.agent.drop_handler()
        self.io = io
        io.set_security_filter(self.agent.security.create_filter())

    async def run_once(self) -> bool:
        """Process one input unit. Returns False when there was nothing to read."""
        try:
            raw = await self.io.read()
        except OSError as e:
            logger.warning("Input failed in session %s: %s", self.name, e)
            self.io.error(f"Input error: {e}")
            return False
        if raw is None:
            return False

        parsed = self.parser(raw)
        if isinstance(parsed, Cmd):
            self.command_handler.handle(self, parsed.command)
        elif parsed.text.strip():
            await self._respond(parsed.text)
        return True

    async def _respond(self, text: str) -> None:
        history = self.agent.history
        history.add_user(text)
        handler = self.agent.response_handler(self.io)
        handler.reset()
        try:
            reply = await self.agent.model.generate(history, handler)
        except GenerationError as e:
            logger.warning("Generation failed for agent %s: %s", self.name, e)
            return
        history.add_assistant(reply)

    async def run(self) -> None:
        while self.state is SessionState.RUNNING:
            if not await self.run_once() and self.state is SessionState.RUNNING:
                await asyncio.sleep(self.idle_interval)

    async def close(self) -> None:
        self.agent.drop_handler()
        await self.agent.model.close()
