"""Per-session conversation history."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Iterator

USER = "user"
ASSISTANT = "assistant"
SYSTEM = "system"


@dataclass(frozen=True)
class Turn:
    role: str
    content: str


class ConversationHistory:
    """Ordered, append-only list of turns."""

    def __init__(self) -> None:
        self._turns: list[Turn] = []

    def add_user(self, content: str) -> Turn:
        return self._append(Turn(USER, content))

    def add_assistant(self, content: str) -> Turn:
        return self._append(Turn(ASSISTANT, content))

    def _append(self, turn: Turn) -> Turn:
        self._turns.append(turn)
        return turn

    @property
    def turns(self) -> tuple[Turn, ...]:
        return tuple(self._turns)

    @property
    def last(self) -> Turn | None:
        return self._turns[-1] if self._turns else None

    def to_messages(self, system_prompt: str | None = None) -> list[dict[str, Any]]:
        """Build an OpenAI-style message list, system prompt first."""
        messages: list[dict[str, Any]] = []
        if system_prompt:
            messages.append({"role": SYSTEM, "content": system_prompt})
        messages.extend({"role": t.role, "content": t.content} for t in self._turns)
        return messages

    def __len__(self) -> int:
        return len(self._turns)

    def __iter__(self) -> Iterator[Turn]:
        return iter(tuple(self._turns))
