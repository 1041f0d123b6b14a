"""Blacklist / whitelist / approval-prompt policy for sensitive actions.

``evaluate`` is the pure decision; ``require_approval`` performs it against an
I/O context, prompting the user when the policy says so.
"""

from __future__ import annotations

import enum
import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING

from ..config import SecurityConfig
from .filters import SecurityFilter, ToolRequest, redacting_filter, sanitizing_filter

if TYPE_CHECKING:
    from ..cli.io_context import IOContext

security_logger = logging.getLogger("magenta.security")

APPROVAL_PROMPT = "Allow? [y/N]: "
_APPROVE_ANSWERS = ("y", "yes")


class Decision(enum.Enum):
    BLOCKED = "blocked"
    ALLOWED = "allowed"
    PROMPT = "prompt"
    DEFAULT_ALLOW = "default_allow"


@dataclass(frozen=True)
class PolicyVerdict:
    decision: Decision
    action_type: str
    payload: str
    matched_rule: str = ""

    @property
    def needs_prompt(self) -> bool:
        return self.decision is Decision.PROMPT


def _matches_whitelist(payload: str, entry: str) -> bool:
    return payload == entry or payload.startswith(entry + " ")


class SecurityManager:
    def __init__(self, config: SecurityConfig | None = None) -> None:
        self._config = config or SecurityConfig()

    @property
    def config(self) -> SecurityConfig:
        return self._config

    def evaluate(self, action_type: str, payload: str) -> PolicyVerdict:
        """Decide what to do with an action. Raises ValueError on a blank payload."""
        if payload is None or not payload.strip():
            raise ValueError("Payload must not be empty")

        for rule in self._config.blocked_commands:
            if rule and rule in payload:
                return PolicyVerdict(Decision.BLOCKED, action_type, payload, rule)

        for entry in self._config.always_allow_commands:
            if entry and _matches_whitelist(payload, entry):
                return PolicyVerdict(Decision.ALLOWED, action_type, payload, entry)

        approval_set = self._config.approval_required_for
        if approval_set is not None and action_type in approval_set:
            return PolicyVerdict(Decision.PROMPT, action_type, payload)

        return PolicyVerdict(Decision.DEFAULT_ALLOW, action_type, payload)

    async def require_approval(self, action_type: str, payload: str, io: IOContext) -> bool:
        verdict = self.evaluate(action_type, payload)

        if verdict.decision is Decision.BLOCKED:
            security_logger.warning(
                "Blocked %s action %r (rule %r)", action_type, payload, verdict.matched_rule
            )
            io.security_alert(
                f"[SECURITY] AUTOMATICALLY BLOCKED: {payload} (Matches rule: {verdict.matched_rule})"
            )
            return False

        if verdict.decision is Decision.ALLOWED:
            security_logger.info("Whitelisted %s action %r (entry %r)", action_type, payload, verdict.matched_rule)
            return True

        if verdict.decision is Decision.DEFAULT_ALLOW:
            security_logger.debug("Allowed %s action %r by default", action_type, payload)
            return True

        approved = await self._prompt(verdict, io)
        security_logger.info(
            "User %s %s action %r", "approved" if approved else "denied", action_type, payload
        )
        return approved

    async def authorize_tool(self, request: ToolRequest, io: IOContext) -> bool:
        """Run the context's tool filter, then the approval procedure on the result."""
        filtered = io.filter_tool_request(request)
        return await self.require_approval(filtered.action_type, filtered.payload, io)

    def create_filter(self) -> SecurityFilter:
        security_filter = sanitizing_filter()
        if self._config.redact_patterns:
            security_filter = security_filter.and_then(redacting_filter(self._config.redact_patterns))
        return security_filter

    async def _prompt(self, verdict: PolicyVerdict, io: IOContext) -> bool:
        async with io.approval_prompt():
            io.security_alert("[SECURITY ALERT] Agent wants to execute:")
            io.println(f"Tool:    {verdict.action_type}")
            io.println(f"Command: {verdict.payload}")
            try:
                answer = await io.read(APPROVAL_PROMPT)
            except OSError as e:
                security_logger.warning("Approval prompt failed: %s", e)
                io.error(f"Could not read approval: {e}")
                return False
        if answer is None:
            return False
        return answer.strip().lower() in _APPROVE_ANSWERS
