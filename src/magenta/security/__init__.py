"""Security filters and the tool approval policy."""

from __future__ import annotations

from .filters import SecurityFilter, ToolRequest, redacting_filter, sanitizing_filter
from .policy import Decision, PolicyVerdict, SecurityManager

__all__ = [
    "Decision",
    "PolicyVerdict",
    "SecurityFilter",
    "SecurityManager",
    "ToolRequest",
    "redacting_filter",
    "sanitizing_filter",
]
