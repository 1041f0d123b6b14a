"""Common contract for the channels a session talks through.

Every read and every write passes through the context's active security
filter. Concrete contexts only implement the raw sink and source.
"""

from __future__ import annotations

import asyncio
import contextlib
from typing import Any, AsyncIterator

from ..security.filters import SecurityFilter, ToolRequest
from .streaming import ImmediateWriter, PacedWriter, ResponseHandler
from .styles import ColorTag, OutputStyle


class IOContext:
    def __init__(self, security_filter: SecurityFilter | None = None) -> None:
        self._security_filter = security_filter or SecurityFilter.identity()
        self._closed = False
        # Serializes approval prompts so two tools never ask at once.
        self.approval_lock = asyncio.Lock()
        self._responses: set[PacedWriter] = set()
        self._output_ready = asyncio.Event()
        self._output_ready.set()

    # -- security filter -------------------------------------------------

    @property
    def security_filter(self) -> SecurityFilter:
        return self._security_filter

    def set_security_filter(self, security_filter: SecurityFilter) -> None:
        self._security_filter = security_filter

    def filter_tool_request(self, request: ToolRequest) -> ToolRequest:
        return self._security_filter.tool_filter(request, self)

    def _filter_input(self, value: str) -> str:
        return self._security_filter.input_filter(value, self)

    def _filter_output(self, text: str) -> str:
        return self._security_filter.output_filter(text)

    # -- raw channel, implemented by subclasses ---------------------------

    async def read(self, prompt: str | None = None) -> str | None:
        raise NotImplementedError

    def print(self, text: str, color: ColorTag | OutputStyle | None = None) -> None:
        raise NotImplementedError

    def set_cursor(self, cursor: str, color: ColorTag | None = None) -> None:
        """Change the input prompt. Contexts without a prompt ignore this."""

    def _close(self) -> None:
        pass

    # -- derived output ----------------------------------------------------

    def println(self, text: str = "", color: ColorTag | OutputStyle | None = None) -> None:
        self.print(text + "\n", color)

    def println_styled(self, text: str, style: OutputStyle) -> None:
        self.println(text, style)

    def error(self, text: str) -> None:
        self.println_styled(text, OutputStyle.ERROR)

    def warn(self, text: str) -> None:
        self.println_styled(text, OutputStyle.WARNING)

    def info(self, text: str) -> None:
        self.println_styled(text, OutputStyle.INFO)

    def success(self, text: str) -> None:
        self.println_styled(text, OutputStyle.SUCCESS)

    def security_alert(self, text: str) -> None:
        self.println_styled(text, OutputStyle.SECURITY)

    def create_response_handler(self, color: ColorTag | None = None, delay_ms: int = 0) -> ResponseHandler:
        if delay_ms <= 0:
            return ImmediateWriter(self, color)
        return PacedWriter(self, color, delay_ms)

    # -- paced responses and approval prompts ------------------------------

    def track_response(self, writer: PacedWriter) -> None:
        self._responses.add(writer)

    def untrack_response(self, writer: PacedWriter) -> None:
        self._responses.discard(writer)

    async def wait_output_ready(self) -> None:
        """Block paced delivery while an approval prompt owns the screen."""
        await self._output_ready.wait()

    @contextlib.asynccontextmanager
    async def approval_prompt(self) -> AsyncIterator[None]:
        """Hold the approval lock with every in-flight response flushed and paused.

        Characters already queued are printed before the body runs; anything
        written while the body runs is delivered after it.
        """
        async with self.approval_lock:
            interrupted = False
            for writer in list(self._responses):
                await writer.flush()
                interrupted = interrupted or writer.delivering
            if interrupted:
                self.println()
            self._output_ready.clear()
            try:
                yield
            finally:
                self._output_ready.set()

    # -- lifecycle ---------------------------------------------------------

    @property
    def closed(self) -> bool:
        return self._closed

    def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        self._close()

    def __enter__(self) -> IOContext:
        return self

    def __exit__(self, *exc_info: Any) -> None:
        self.close()
