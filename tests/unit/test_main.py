"""Tests for __main__.py: argument handling, exit codes, logging setup."""

from __future__ import annotations

import logging
from pathlib import Path
from unittest.mock import AsyncMock, patch

import pytest
import yaml

from magenta import __version__
from magenta.__main__ import _configure_logging, main


def _write_config(path: Path, data: dict) -> Path:
    config_file = path / "config.yaml"
    config_file.write_text(yaml.dump(data))
    return config_file


def _echo_config() -> dict:
    return {
        "endpoints": {"offline": {"type": "echo"}},
        "models": {"echo": {"endpoint": "offline"}},
        "agents": {"assistant": {"model": "echo"}, "coder": {"model": "echo"}},
    }


class TestMain:
    def test_version(self, capsys: pytest.CaptureFixture[str]) -> None:
        with pytest.raises(SystemExit) as exc_info:
            main(["--version"])
        assert exc_info.value.code == 0
        assert __version__ in capsys.readouterr().out

    def test_config_error_exits_1(self, tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
        cfg = _write_config(tmp_path, {"agents": {"a": {"model": "missing"}}})
        with patch("magenta.__main__.logging.basicConfig"), pytest.raises(SystemExit) as exc_info:
            main(["--config", str(cfg)])
        assert exc_info.value.code == 1
        assert "Configuration error" in capsys.readouterr().err

    def test_malformed_yaml_exits_1(self, tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
        cfg = tmp_path / "config.yaml"
        cfg.write_text("agents: [unclosed\n")
        with patch("magenta.__main__.logging.basicConfig"), pytest.raises(SystemExit) as exc_info:
            main(["--config", str(cfg)])
        assert exc_info.value.code == 1

    def test_unknown_agent_exits_1(self, tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
        cfg = _write_config(tmp_path, _echo_config())
        with patch("magenta.__main__.logging.basicConfig"), pytest.raises(SystemExit) as exc_info:
            main(["--config", str(cfg), "--agent", "ghost"])
        assert exc_info.value.code == 1
        err = capsys.readouterr().err
        assert "unknown agent 'ghost'" in err
        assert "assistant, coder" in err

    def test_no_terminal_exits_1(self, tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
        cfg = _write_config(tmp_path, _echo_config())
        with (
            patch("magenta.__main__.logging.basicConfig"),
            patch("magenta.cli.terminal.sys.stdin") as stdin,
            pytest.raises(SystemExit) as exc_info,
        ):
            stdin.isatty.return_value = False
            main(["--config", str(cfg)])
        assert exc_info.value.code == 1
        assert "cannot start interactive session" in capsys.readouterr().err

    def test_clean_run_returns(self, tmp_path: Path) -> None:
        cfg = _write_config(tmp_path, _echo_config())
        with (
            patch("magenta.__main__.logging.basicConfig"),
            patch("magenta.__main__._run_session", new_callable=AsyncMock) as mock_run,
        ):
            main(["--config", str(cfg), "--agent", "coder"])
        config, agent = mock_run.await_args[0]
        assert agent == "coder"
        assert set(config.agents) == {"assistant", "coder"}

    def test_config_from_env(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        cfg = _write_config(tmp_path, _echo_config())
        monkeypatch.setenv("MAGENTA_CONFIG", str(cfg))
        with (
            patch("magenta.__main__.logging.basicConfig"),
            patch("magenta.__main__._run_session", new_callable=AsyncMock) as mock_run,
        ):
            main([])
        config, agent = mock_run.await_args[0]
        assert agent is None
        assert "coder" in config.agents


class TestConfigureLogging:
    def test_default_warning(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.delenv("MAGENTA_LOG_LEVEL", raising=False)
        with patch("magenta.__main__.logging.basicConfig") as mock_basic:
            _configure_logging(debug=False)
        assert mock_basic.call_args[1]["level"] == logging.WARNING

    def test_debug_flag(self) -> None:
        with patch("magenta.__main__.logging.basicConfig") as mock_basic:
            _configure_logging(debug=True)
        assert mock_basic.call_args[1]["level"] == logging.DEBUG

    def test_env_level(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("MAGENTA_LOG_LEVEL", "info")
        with patch("magenta.__main__.logging.basicConfig") as mock_basic:
            _configure_logging(debug=False)
        assert mock_basic.call_args[1]["level"] == logging.INFO

    def test_bad_env_level_falls_back(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("MAGENTA_LOG_LEVEL", "chatty")
        with patch("magenta.__main__.logging.basicConfig") as mock_basic:
            _configure_logging(debug=False)
        assert mock_basic.call_args[1]["level"] == logging.WARNING
