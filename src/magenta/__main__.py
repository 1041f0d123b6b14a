"""CLI entry point for Magenta."""

from __future__ import annotations

import argparse
import asyncio
import logging
import os
import sys
from pathlib import Path

import yaml

from . import __version__
from .config import AppConfig, get_config_path, load_config

logger = logging.getLogger(__name__)


def _configure_logging(debug: bool) -> None:
    level_name = "DEBUG" if debug else os.environ.get("MAGENTA_LOG_LEVEL", "WARNING").upper()
    level = getattr(logging, level_name, logging.WARNING)
    logging.basicConfig(
        level=level,
        stream=sys.stderr,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


def _load_config_or_exit(config_path: Path) -> AppConfig:
    try:
        return load_config(config_path)
    except (ValueError, yaml.YAMLError) as e:
        logger.error("Configuration error in %s: %s", config_path, e)
        print(f"Configuration error: {e}", file=sys.stderr)
        sys.exit(1)


async def _run_session(config: AppConfig, agent: str | None) -> None:
    from .cli.terminal import TerminalIO
    from .services.session_manager import SessionManager

    io = TerminalIO(
        colors=config.colors,
        cursor=config.app.cursor,
        cursor_color=config.app.cursor_color,
        history_file=config.app.history_file,
    )
    manager = SessionManager(config, io, initial_agent=agent)
    io.info(f"Magenta {__version__} - agent: {manager.current_session_name()} (/help for commands)")
    try:
        await manager.run()
    finally:
        await manager.close()


def main(argv: list[str] | None = None) -> None:
    parser = argparse.ArgumentParser(prog="magenta", description="Magenta - interactive front-end for AI agents")
    parser.add_argument("--config", help="Path to config.yaml (default: $MAGENTA_CONFIG or ~/.magenta/config.yaml)")
    parser.add_argument("--agent", help="Agent to start with (default: app.base_agent)")
    parser.add_argument("--debug", action="store_true", help="Enable debug logging on stderr")
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    args = parser.parse_args(argv)

    _configure_logging(args.debug)

    config_path = Path(os.path.expanduser(args.config)) if args.config else get_config_path()
    config = _load_config_or_exit(config_path)

    if args.agent and args.agent not in config.agents:
        print(f"Error: unknown agent '{args.agent}'", file=sys.stderr)
        print(f"Available agents: {', '.join(config.agents)}", file=sys.stderr)
        sys.exit(1)

    try:
        asyncio.run(_run_session(config, args.agent))
    except OSError as e:
        logger.error("Cannot open terminal: %s", e)
        print(f"Error: cannot start interactive session: {e}", file=sys.stderr)
        sys.exit(1)
    except KeyboardInterrupt:
        pass


if __name__ == "__main__":
    main()
