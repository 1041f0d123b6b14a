"""Configuration loader: YAML file with environment variable fallbacks."""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import yaml

from .cli.commands import merge_aliases
from .cli.styles import ColorTag, OutputStyle, validate_color

logger = logging.getLogger(__name__)

DEFAULT_AGENT_NAME = "assistant"
DEFAULT_CURSOR = "magenta> "
MAX_STREAM_DELAY_MS = 1000

_DEFAULT_SYSTEM_PROMPT = """\
You are Magenta, a helpful assistant working with the user in their terminal. \
Be direct and concise. Lead with the answer, not preamble. If a request needs a \
sensitive action, say what you intend to do before doing it."""


@dataclass
class SecurityConfig:
    # None means "not configured": nothing requires approval.
    approval_required_for: list[str] | None = None
    always_allow_commands: list[str] = field(default_factory=list)
    blocked_commands: list[str] = field(default_factory=list)
    redact_patterns: list[str] = field(default_factory=list)


@dataclass
class EndpointConfig:
    name: str
    type: str = "echo"  # "openai" or "echo"
    base_url: str = ""
    api_key: str = ""
    timeout_seconds: int = 60
    verify_ssl: bool = True


@dataclass
class ModelConfig:
    name: str
    model_name: str
    endpoint: str
    max_tokens: int = 1024


@dataclass
class AgentConfig:
    name: str
    model: str
    system_prompt: str = _DEFAULT_SYSTEM_PROMPT
    color: ColorTag | None = None
    stream_delay_ms: int | None = None  # None: inherit app.stream_delay_ms
    security: SecurityConfig = field(default_factory=SecurityConfig)


@dataclass
class AppSettings:
    base_agent: str = DEFAULT_AGENT_NAME
    stream_delay_ms: int = 0
    cursor: str = DEFAULT_CURSOR
    cursor_color: ColorTag | None = None
    history_file: Path | None = None


@dataclass
class AppConfig:
    app: AppSettings = field(default_factory=AppSettings)
    colors: dict[str, ColorTag] = field(default_factory=dict)
    commands: dict[str, str] = field(default_factory=dict)
    security: SecurityConfig = field(default_factory=SecurityConfig)
    endpoints: dict[str, EndpointConfig] = field(default_factory=dict)
    models: dict[str, ModelConfig] = field(default_factory=dict)
    agents: dict[str, AgentConfig] = field(default_factory=dict)

    def agent(self, name: str) -> AgentConfig:
        try:
            return self.agents[name]
        except KeyError:
            raise KeyError(f"Unknown agent: {name}") from None

    def model_for(self, agent: AgentConfig) -> ModelConfig:
        return self.models[agent.model]

    def endpoint_for(self, model: ModelConfig) -> EndpointConfig:
        return self.endpoints[model.endpoint]

    def stream_delay_for(self, agent: AgentConfig) -> int:
        if agent.stream_delay_ms is not None:
            return agent.stream_delay_ms
        return self.app.stream_delay_ms


def get_config_path() -> Path:
    env_path = os.environ.get("MAGENTA_CONFIG")
    if env_path:
        return Path(os.path.expanduser(env_path))
    return Path.home() / ".magenta" / "config.yaml"


def _as_list(raw: Any, key: str) -> list[str]:
    if raw is None:
        return []
    if not isinstance(raw, list):
        raise ValueError(f"'{key}' must be a list, got {type(raw).__name__}")
    return [str(item) for item in raw]


def _as_bool(raw: Any) -> bool:
    return str(raw).lower() not in ("false", "0", "no", "off")


def _clamp_delay(raw: Any, key: str) -> int:
    try:
        value = int(raw)
    except (ValueError, TypeError):
        raise ValueError(f"'{key}' must be an integer number of milliseconds, got {raw!r}") from None
    return max(0, min(value, MAX_STREAM_DELAY_MS))


def _parse_security(raw: Any, key: str) -> SecurityConfig:
    if raw is None:
        return SecurityConfig()
    if not isinstance(raw, dict):
        raise ValueError(f"'{key}' must be a mapping")
    approval_raw = raw.get("approval_required_for")
    return SecurityConfig(
        approval_required_for=None if approval_raw is None else _as_list(approval_raw, f"{key}.approval_required_for"),
        always_allow_commands=_as_list(raw.get("always_allow_commands"), f"{key}.always_allow_commands"),
        blocked_commands=_as_list(raw.get("blocked_commands"), f"{key}.blocked_commands"),
        redact_patterns=_as_list(raw.get("redact_patterns"), f"{key}.redact_patterns"),
    )


def _parse_colors(raw: Any) -> dict[str, ColorTag]:
    if not raw:
        return {}
    if not isinstance(raw, dict):
        raise ValueError("'colors' must be a mapping of style name to color")
    known = {style.name for style in OutputStyle}
    colors: dict[str, ColorTag] = {}
    for name, value in raw.items():
        style_name = str(name).upper()
        if style_name not in known:
            raise ValueError(f"Unknown output style in 'colors': {name!r}")
        colors[style_name] = validate_color(value)
    return colors


def _parse_endpoints(raw: Any) -> dict[str, EndpointConfig]:
    endpoints: dict[str, EndpointConfig] = {}
    for name, conf in (raw or {}).items():
        conf = conf or {}
        ep_type = str(conf.get("type", "openai")).lower()
        if ep_type not in ("openai", "echo"):
            raise ValueError(f"Endpoint '{name}' has unsupported type {ep_type!r} (expected 'openai' or 'echo')")
        base_url = conf.get("base_url") or ""
        if ep_type == "openai" and not base_url:
            raise ValueError(f"Endpoint '{name}' requires 'base_url'")
        try:
            timeout = int(conf.get("timeout_seconds", 60))
        except (ValueError, TypeError):
            timeout = 60
        endpoints[name] = EndpointConfig(
            name=name,
            type=ep_type,
            base_url=base_url,
            api_key=os.path.expandvars(str(conf.get("api_key") or "")),
            timeout_seconds=max(1, min(timeout, 600)),
            verify_ssl=_as_bool(conf.get("verify_ssl", True)),
        )
    return endpoints


def _parse_models(raw: Any, endpoints: dict[str, EndpointConfig]) -> dict[str, ModelConfig]:
    models: dict[str, ModelConfig] = {}
    for name, conf in (raw or {}).items():
        conf = conf or {}
        endpoint = conf.get("endpoint")
        if endpoint not in endpoints:
            raise ValueError(f"Model '{name}' references unknown endpoint {endpoint!r}")
        models[name] = ModelConfig(
            name=name,
            model_name=str(conf.get("model_name") or name),
            endpoint=endpoint,
            max_tokens=int(conf.get("max_tokens", 1024)),
        )
    return models


def _parse_agents(
    raw: Any,
    models: dict[str, ModelConfig],
    prompts: dict[str, str],
    default_security: SecurityConfig,
) -> dict[str, AgentConfig]:
    agents: dict[str, AgentConfig] = {}
    for name, conf in (raw or {}).items():
        conf = conf or {}
        model = conf.get("model")
        if model not in models:
            raise ValueError(f"Agent '{name}' references unknown model {model!r}")
        # system_prompt may name an entry in 'prompts' or be literal text
        prompt_raw = conf.get("system_prompt")
        if prompt_raw is None:
            system_prompt = _DEFAULT_SYSTEM_PROMPT
        else:
            system_prompt = prompts.get(str(prompt_raw), str(prompt_raw))
        color_raw = conf.get("color")
        delay_raw = conf.get("stream_delay_ms")
        security_raw = conf.get("security")
        agents[name] = AgentConfig(
            name=name,
            model=model,
            system_prompt=system_prompt,
            color=None if color_raw is None else validate_color(color_raw),
            stream_delay_ms=None if delay_raw is None else _clamp_delay(delay_raw, f"agents.{name}.stream_delay_ms"),
            security=default_security
            if security_raw is None
            else _parse_security(security_raw, f"agents.{name}.security"),
        )
    return agents


def _env_fallback_agent(
    endpoints: dict[str, EndpointConfig],
    models: dict[str, ModelConfig],
    security: SecurityConfig,
) -> AgentConfig:
    """Build the single default agent used when the config defines none."""
    base_url = os.environ.get("MAGENTA_BASE_URL", "")
    if base_url:
        endpoints.setdefault(
            "default",
            EndpointConfig(
                name="default",
                type="openai",
                base_url=base_url,
                api_key=os.environ.get("MAGENTA_API_KEY", ""),
            ),
        )
    else:
        endpoints.setdefault("default", EndpointConfig(name="default", type="echo"))
    models.setdefault(
        "default",
        ModelConfig(name="default", model_name=os.environ.get("MAGENTA_MODEL", "gpt-4o-mini"), endpoint="default"),
    )
    return AgentConfig(name=DEFAULT_AGENT_NAME, model="default", security=security)


def load_config(config_path: Path | None = None) -> AppConfig:
    raw: dict[str, Any] = {}
    path = config_path or get_config_path()

    if path.exists():
        with open(path, encoding="utf-8") as f:
            raw = yaml.safe_load(f) or {}
        if not isinstance(raw, dict):
            raise ValueError(f"Config file {path} must contain a mapping at the top level")
    else:
        logger.info("No config file at %s, using defaults", path)

    app_raw = raw.get("app") or {}
    cursor_color_raw = app_raw.get("cursor_color")
    history_raw = app_raw.get("history_file")
    app_settings = AppSettings(
        base_agent=str(app_raw.get("base_agent") or DEFAULT_AGENT_NAME),
        stream_delay_ms=_clamp_delay(
            app_raw.get("stream_delay_ms", os.environ.get("MAGENTA_STREAM_DELAY_MS", 0)), "app.stream_delay_ms"
        ),
        cursor=str(app_raw.get("cursor") or DEFAULT_CURSOR),
        cursor_color=None if cursor_color_raw is None else validate_color(cursor_color_raw),
        history_file=Path(os.path.expanduser(history_raw)) if history_raw else None,
    )

    commands_raw = raw.get("commands") or {}
    if not isinstance(commands_raw, dict):
        raise ValueError("'commands' must be a mapping of alias to command name")
    commands = {str(k): str(v) for k, v in commands_raw.items()}
    merge_aliases(commands)  # validates targets

    security = _parse_security(raw.get("security"), "security")
    endpoints = _parse_endpoints(raw.get("endpoints"))
    models = _parse_models(raw.get("models"), endpoints)
    prompts = {str(k): str(v) for k, v in (raw.get("prompts") or {}).items()}
    agents = _parse_agents(raw.get("agents"), models, prompts, security)

    if not agents:
        fallback = _env_fallback_agent(endpoints, models, security)
        agents[fallback.name] = fallback

    if app_settings.base_agent not in agents:
        if "base_agent" in app_raw:
            raise ValueError(f"app.base_agent {app_settings.base_agent!r} is not defined under 'agents'")
        app_settings.base_agent = next(iter(agents))

    return AppConfig(
        app=app_settings,
        colors=_parse_colors(raw.get("colors")),
        commands=commands,
        security=security,
        endpoints=endpoints,
        models=models,
        agents=agents,
    )
