"""Composable security filters applied to every I/O event.

A filter is three independent pure functions: one over raw input, one over
outgoing text and one over tool requests. Filters hold no mutable state, so
``and_then`` composition is associative and filters can be shared freely.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from typing import TYPE_CHECKING, Callable

if TYPE_CHECKING:
    from ..cli.io_context import IOContext

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ToolRequest:
    """A sensitive action a tool wants to perform, e.g. ("shell", "ls -la")."""

    action_type: str
    payload: str


InputFilter = Callable[[str, "IOContext"], str]
OutputFilter = Callable[[str], str]
ToolFilter = Callable[[ToolRequest, "IOContext"], ToolRequest]


def _pass_input(value: str, io: IOContext) -> str:
    return value


def _pass_output(text: str) -> str:
    return text


def _pass_tool(request: ToolRequest, io: IOContext) -> ToolRequest:
    return request


@dataclass(frozen=True)
class SecurityFilter:
    input_filter: InputFilter = _pass_input
    output_filter: OutputFilter = _pass_output
    tool_filter: ToolFilter = _pass_tool

    @classmethod
    def identity(cls) -> SecurityFilter:
        return cls()

    def and_then(self, other: SecurityFilter) -> SecurityFilter:
        """Return a filter that applies ``self`` and then ``other``."""
        first, second = self, other

        def input_filter(value: str, io: IOContext) -> str:
            return second.input_filter(first.input_filter(value, io), io)

        def output_filter(text: str) -> str:
            return second.output_filter(first.output_filter(text))

        def tool_filter(request: ToolRequest, io: IOContext) -> ToolRequest:
            return second.tool_filter(first.tool_filter(request, io), io)

        return SecurityFilter(input_filter, output_filter, tool_filter)


# NUL and C0 controls except tab/newline/carriage return, plus DEL.
_CONTROL_CHARS_RE = re.compile(r"[\x00-\x08\x0b\x0c\x0e-\x1f\x7f]")

REDACTED = "[REDACTED]"


def _strip_control_chars(value: str, io: IOContext) -> str:
    return _CONTROL_CHARS_RE.sub("", value)


def sanitizing_filter() -> SecurityFilter:
    """Input filter that drops control characters from raw user input."""
    return SecurityFilter(input_filter=_strip_control_chars)


def redacting_filter(patterns: list[str]) -> SecurityFilter:
    """Output filter replacing every match of ``patterns`` with ``[REDACTED]``.

    Patterns are regular expressions; an invalid one is matched literally,
    case-insensitively. Matches that straddle two separate writes are not seen,
    so paced character-by-character output is only redacted per character.
    """
    compiled: list[re.Pattern[str]] = []
    for raw_pattern in patterns:
        try:
            compiled.append(re.compile(raw_pattern))
        except re.error:
            logger.debug("Redaction pattern %r is not a valid regex, matching literally", raw_pattern)
            compiled.append(re.compile(re.escape(raw_pattern), re.IGNORECASE))
    frozen = tuple(compiled)

    def output_filter(text: str) -> str:
        for pattern in frozen:
            text = pattern.sub(REDACTED, text)
        return text

    return SecurityFilter(output_filter=output_filter)
