"""Output styles and color-tag conversion for rich and prompt_toolkit."""

from __future__ import annotations

from enum import Enum
from typing import Mapping, Union

from rich.color import Color
from rich.errors import StyleSyntaxError
from rich.style import Style

# An ANSI 256-color index or any color string rich understands ("cyan", "#C5A059", "bold red").
ColorTag = Union[int, str]


class OutputStyle(Enum):
    PLAIN = "plain"
    ERROR = "error"
    WARNING = "warning"
    SUCCESS = "success"
    INFO = "info"
    AGENT = "agent"
    PROMPT = "prompt"
    SECURITY = "security"
    COMMAND = "command"


_DEFAULT_STYLES: dict[OutputStyle, str] = {
    OutputStyle.PLAIN: "",
    OutputStyle.ERROR: "red",
    OutputStyle.WARNING: "yellow",
    OutputStyle.SUCCESS: "green",
    OutputStyle.INFO: "cyan",
    OutputStyle.AGENT: "",
    OutputStyle.PROMPT: "bold blue",
    OutputStyle.SECURITY: "bold red",
    OutputStyle.COMMAND: "magenta",
}


def validate_color(value: object) -> ColorTag:
    """Normalize a configured color. Raises ValueError if rich cannot use it."""
    if isinstance(value, bool):
        raise ValueError(f"Invalid color: {value!r}")
    if isinstance(value, int):
        if not 0 <= value <= 255:
            raise ValueError(f"ANSI color index out of range (0-255): {value}")
        return value
    if isinstance(value, str):
        text = value.strip()
        if text.isdigit():
            return validate_color(int(text))
        try:
            Style.parse(text)
        except StyleSyntaxError as e:
            raise ValueError(f"Invalid color {value!r}: {e}") from e
        return text
    raise ValueError(f"Invalid color: {value!r}")


def to_rich_style(color: ColorTag | None) -> Style | None:
    if color is None or color == "":
        return None
    if isinstance(color, int):
        return Style(color=Color.from_ansi(color))
    return Style.parse(color)


def style_for(style: OutputStyle, overrides: Mapping[str, ColorTag] | None = None) -> Style | None:
    """Resolve an OutputStyle, letting configured overrides win."""
    if overrides and style.name in overrides:
        return to_rich_style(overrides[style.name])
    return to_rich_style(_DEFAULT_STYLES[style])


def prompt_toolkit_style(color: ColorTag | None) -> str:
    """Convert a color tag to a prompt_toolkit style string like ``fg:#5f00af bold``.

    Without a color the PROMPT default is used.
    """
    rich_style = to_rich_style(color if color is not None else _DEFAULT_STYLES[OutputStyle.PROMPT])
    if rich_style is None:
        return ""
    parts: list[str] = []
    if rich_style.color is not None and not rich_style.color.is_default:
        parts.append(f"fg:{rich_style.color.get_truecolor().hex}")
    if rich_style.bold:
        parts.append("bold")
    return " ".join(parts)
