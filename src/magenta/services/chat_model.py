"""Token generators that feed a response handler.

``ChatModel.generate`` drives the handler protocol: every streamed token goes
to ``handler.write`` in order, followed by exactly one of ``complete`` or
``error``. Subclasses only supply ``stream``.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any, AsyncIterator

import httpx
from openai import (
    APIConnectionError,
    APIStatusError,
    APITimeoutError,
    AsyncOpenAI,
    AuthenticationError,
    RateLimitError,
)

from ..cli.streaming import ResponseHandler
from ..config import AgentConfig, AppConfig, EndpointConfig, ModelConfig
from .history import ConversationHistory

logger = logging.getLogger(__name__)


class GenerationError(Exception):
    """A model failed to produce a response. Already shown through the handler."""


class ChatModel:
    def __init__(self, system_prompt: str = "") -> None:
        self.system_prompt = system_prompt

    def stream(self, history: ConversationHistory) -> AsyncIterator[str]:
        raise NotImplementedError

    async def generate(self, history: ConversationHistory, handler: ResponseHandler) -> str:
        """Stream a reply into ``handler`` and return the full text."""
        try:
            async for token in self.stream(history):
                if token:
                    handler.write(token)
            await handler.complete()
        except asyncio.CancelledError:
            raise
        except Exception as e:
            await handler.error(e)
            raise GenerationError(str(e)) from e
        return handler.get_buffer()

    async def close(self) -> None:
        pass


class EchoChatModel(ChatModel):
    """Offline model: replies with the last user message, word by word."""

    PREFIX = "You said: "

    async def stream(self, history: ConversationHistory) -> AsyncIterator[str]:
        last = history.last
        text = last.content if last is not None else ""
        yield self.PREFIX
        words = text.split(" ")
        for i, word in enumerate(words):
            yield word if i == len(words) - 1 else word + " "
            await asyncio.sleep(0)


class OpenAIChatModel(ChatModel):
    """Streams chat completions from any OpenAI-compatible endpoint."""

    def __init__(self, model: ModelConfig, endpoint: EndpointConfig, system_prompt: str = "") -> None:
        super().__init__(system_prompt)
        self.model = model
        self.endpoint = endpoint
        # SECURITY-REVIEW: verify=False only when verify_ssl: false is set explicitly
        self._http_client = httpx.AsyncClient(
            verify=endpoint.verify_ssl,
            timeout=httpx.Timeout(float(endpoint.timeout_seconds)),
        )
        self.client = AsyncOpenAI(
            base_url=endpoint.base_url,
            api_key=endpoint.api_key or "not-needed",
            http_client=self._http_client,
        )

    async def stream(self, history: ConversationHistory) -> AsyncIterator[str]:
        kwargs: dict[str, Any] = {
            "model": self.model.model_name,
            "messages": history.to_messages(self.system_prompt),
            "max_tokens": self.model.max_tokens,
            "stream": True,
        }
        try:
            response = await self.client.chat.completions.create(**kwargs)
            async for chunk in response:
                if not chunk.choices:
                    continue
                delta = chunk.choices[0].delta
                if delta.content:
                    yield delta.content
        except AuthenticationError as e:
            logger.error("Authentication failed for endpoint %s", self.endpoint.name)
            raise GenerationError(f"Authentication failed for endpoint '{self.endpoint.name}'") from e
        except RateLimitError as e:
            logger.warning("Rate limited by endpoint %s", self.endpoint.name)
            raise GenerationError("Rate limited, try again shortly") from e
        except APITimeoutError as e:
            logger.warning("Request to %s timed out", self.endpoint.base_url)
            raise GenerationError(f"Request timed out after {self.endpoint.timeout_seconds}s") from e
        except APIConnectionError as e:
            logger.warning("Cannot reach %s: %s", self.endpoint.base_url, e)
            raise GenerationError(f"Cannot connect to {self.endpoint.base_url}") from e
        except APIStatusError as e:
            logger.warning("Endpoint %s returned HTTP %s", self.endpoint.name, e.status_code)
            raise GenerationError(f"Model endpoint returned HTTP {e.status_code}") from e

    async def close(self) -> None:
        await self.client.close()


def create_chat_model(agent: AgentConfig, config: AppConfig) -> ChatModel:
    """Build the model an agent's configuration points at."""
    model = config.model_for(agent)
    endpoint = config.endpoint_for(model)
    if endpoint.type == "echo":
        return EchoChatModel(agent.system_prompt)
    return OpenAIChatModel(model, endpoint, agent.system_prompt)
