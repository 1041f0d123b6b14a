"""A configured agent: model, history, output style and security policy."""

from __future__ import annotations

from ..cli.io_context import IOContext
from ..cli.streaming import ResponseHandler
from ..cli.styles import ColorTag
from ..config import AgentConfig
from ..security.policy import SecurityManager
from .chat_model import ChatModel
from .history import ConversationHistory


class UnknownAgentError(ValueError):
    """The requested agent is not defined in the configuration."""

    def __init__(self, name: str) -> None:
        super().__init__(f"Unknown agent: {name}")
        self.name = name


class ChatAgent:
    def __init__(
        self,
        config: AgentConfig,
        model: ChatModel,
        stream_delay_ms: int = 0,
    ) -> None:
        self.config = config
        self.model = model
        self.stream_delay_ms = stream_delay_ms
        self.history = ConversationHistory()
        self.security = SecurityManager(config.security)
        self._handler: ResponseHandler | None = None
        self._handler_io: IOContext | None = None

    @property
    def name(self) -> str:
        return self.config.name

    @property
    def color(self) -> ColorTag | None:
        return self.config.color

    def response_handler(self, io: IOContext) -> ResponseHandler:
        """Return this agent's handler for ``io``, creating it on first use.

        The handler is reused across turns; a new generation resets its buffer
        on the first write.
        """
        if self._handler is None or self._handler_io is not io:
            self._handler = io.create_response_handler(self.color, self.stream_delay_ms)
            self._handler_io = io
        return self._handler

    def drop_handler(self) -> None:
        if self._handler is not None:
            self._handler.reset()
        self._handler = None
        self._handler_io = None
