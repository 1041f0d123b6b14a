"""In-memory I/O context for programmatic drivers and tests."""

from __future__ import annotations

from collections import deque

from ..security.filters import SecurityFilter
from .io_context import IOContext
from .styles import ColorTag, OutputStyle


class QueuedIO(IOContext):
    """Inbound and outbound FIFOs. ``read`` never blocks; colors are ignored.

    Output is recorded as the individual chunks passed to ``print``, so a
    ``println`` shows up as one chunk ending in a newline.
    """

    def __init__(self, security_filter: SecurityFilter | None = None) -> None:
        super().__init__(security_filter)
        self._inbound: deque[str] = deque()
        self._outbound: deque[str] = deque()

    def enqueue_input(self, *lines: str) -> None:
        self._inbound.extend(lines)

    @property
    def pending_input(self) -> int:
        return len(self._inbound)

    async def read(self, prompt: str | None = None) -> str | None:
        if prompt:
            self.print(prompt)
        if not self._inbound:
            return None
        return self._filter_input(self._inbound.popleft())

    def print(self, text: str, color: ColorTag | OutputStyle | None = None) -> None:
        self._outbound.append(self._filter_output(text))

    def read_output(self) -> str:
        """Drain and return everything written so far."""
        text = "".join(self._outbound)
        self._outbound.clear()
        return text

    def peek_output(self) -> str:
        return "".join(self._outbound)

    def clear_output(self) -> None:
        self._outbound.clear()

    def _close(self) -> None:
        self._inbound.clear()
