"""Interactive terminal I/O: prompt_toolkit for input, rich for styled output."""

from __future__ import annotations

import logging
import re
import sys
from pathlib import Path
from typing import Any, Mapping

from prompt_toolkit import PromptSession
from prompt_toolkit.formatted_text import FormattedText
from prompt_toolkit.history import FileHistory, History, InMemoryHistory
from rich.console import Console
from rich.text import Text

from ..config import DEFAULT_CURSOR
from ..security.filters import SecurityFilter
from .io_context import IOContext
from .styles import ColorTag, OutputStyle, prompt_toolkit_style, style_for, to_rich_style

logger = logging.getLogger(__name__)

EXIT_ON_EOF = "/exit"

_CLEAR_RE = re.compile(r"^/(clear|cls)(\s|$)", re.IGNORECASE)


class TerminalUnavailableError(OSError):
    """Raised when no interactive terminal can be opened."""


def _make_history(history_file: Path | None) -> History:
    if history_file is None:
        return InMemoryHistory()
    try:
        history_file.parent.mkdir(parents=True, exist_ok=True)
    except OSError as e:
        logger.warning("Cannot create history directory %s: %s", history_file.parent, e)
        return InMemoryHistory()
    return FileHistory(str(history_file))


class TerminalIO(IOContext):
    def __init__(
        self,
        security_filter: SecurityFilter | None = None,
        *,
        colors: Mapping[str, ColorTag] | None = None,
        cursor: str = DEFAULT_CURSOR,
        cursor_color: ColorTag | None = None,
        history_file: Path | None = None,
        input: Any = None,
        output: Any = None,
        console: Console | None = None,
    ) -> None:
        if input is None and not sys.stdin.isatty():
            raise TerminalUnavailableError("stdin is not an interactive terminal")
        super().__init__(security_filter)
        self._colors = dict(colors or {})
        self._cursor = cursor
        self._cursor_color = cursor_color
        self._console = console or Console(highlight=False)
        self._session: PromptSession[str] = PromptSession(
            input=input,
            output=output,
            history=_make_history(history_file),
        )

    @property
    def console(self) -> Console:
        return self._console

    @property
    def cursor(self) -> str:
        return self._cursor

    def set_cursor(self, cursor: str, color: ColorTag | None = None) -> None:
        self._cursor = cursor
        self._cursor_color = color

    def _prompt_message(self, prompt: str | None) -> Any:
        if prompt is not None:
            return prompt
        return FormattedText([(prompt_toolkit_style(self._cursor_color), self._cursor)])

    async def read(self, prompt: str | None = None) -> str | None:
        message = self._prompt_message(prompt)
        while True:
            try:
                raw = await self._session.prompt_async(message)
            except EOFError:
                return EXIT_ON_EOF
            except KeyboardInterrupt:
                continue
            if prompt is None and _CLEAR_RE.match(raw.strip()):
                self._console.clear()
                continue
            return self._filter_input(raw)

    def print(self, text: str, color: ColorTag | OutputStyle | None = None) -> None:
        filtered = self._filter_output(text)
        if isinstance(color, OutputStyle):
            style = style_for(color, self._colors)
        else:
            style = to_rich_style(color)
        self._console.print(Text(filtered, style=style or ""), end="", soft_wrap=True)

    def _close(self) -> None:
        self._console.file.flush()
