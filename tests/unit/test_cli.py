#
# tests/unit/test_cli.py
#
"""
Tests for the command line host.
"""

import json
import logging
import sys
from pathlib import Path
from unittest.mock import AsyncMock, patch

import pytest
import click
import structlog
from click.testing import CliRunner

from speclaunch.cli.main import build_options, cli
from speclaunch.cli.utils import setup_logging_from_context
from speclaunch.config import resolve_configuration
from speclaunch.exceptions import ConfigurationError, StepExecutionError
from speclaunch.runtime import LaunchResult
from speclaunch.state import RunState
from speclaunch.telemetry import setup_logging


@pytest.fixture(autouse=True)
def restore_logging():
    """The CLI configures logging globally; undo it after each test."""
    yield
    root_logger = logging.getLogger()
    for handler in list(root_logger.handlers):
        handler.close()
        root_logger.removeHandler(handler)
    structlog.reset_defaults()


class TestMainCLI:
    """Test main CLI entry point."""

    def test_cli_help(self) -> None:
        runner = CliRunner()
        result = runner.invoke(cli, ["--help"])

        assert result.exit_code == 0
        assert "speclaunch" in result.output.lower()
        assert "run" in result.output

    def test_cli_version(self) -> None:
        runner = CliRunner()
        result = runner.invoke(cli, ["--version"])

        assert result.exit_code == 0
        assert "version" in result.output

    def test_invalid_log_level(self) -> None:
        runner = CliRunner()
        result = runner.invoke(cli, ["--log-level", "INVALID", "run", "--help"])
        assert result.exit_code != 0

    def test_run_help(self) -> None:
        runner = CliRunner()
        result = runner.invoke(cli, ["run", "--help"])

        assert result.exit_code == 0
        for option in ("--project-root", "--type", "--spec-dir", "--coverage", "--filter"):
            assert option in result.output


class TestRunCommand:
    """Tests for the `run` command, with the launch itself mocked."""

    def test_exit_code_is_propagated(self, tmp_path: Path) -> None:
        launch = AsyncMock(return_value=LaunchResult(state=RunState.SHUTTING_DOWN, exit_code=3))
        runner = CliRunner()
        with patch("speclaunch.cli.main._launch", launch):
            result = runner.invoke(cli, ["run", "-p", str(tmp_path), "-t", "integration", "-f", "legacy"])

        assert result.exit_code == 3
        options = launch.call_args.args[0]
        assert options["project"]["root_directory_path"] == str(tmp_path)
        assert options["test"]["type"] == "integration"
        assert options["test"]["spec_file_filters"] == ["legacy"]

    def test_success(self, tmp_path: Path) -> None:
        launch = AsyncMock(return_value=LaunchResult(state=RunState.SHUTTING_DOWN, exit_code=0))
        runner = CliRunner()
        with patch("speclaunch.cli.main._launch", launch):
            result = runner.invoke(cli, ["run", "-p", str(tmp_path), "--no-coverage"])

        assert result.exit_code == 0
        assert launch.call_args.args[0]["coverage"]["enabled"] is False

    def test_run_error_is_reported(self, tmp_path: Path) -> None:
        error = StepExecutionError("pre_launch", 0, "broken", RuntimeError("boom"))
        launch = AsyncMock(return_value=LaunchResult(state=RunState.SHUTTING_DOWN, exit_code=1, error=error))
        runner = CliRunner()
        with patch("speclaunch.cli.main._launch", launch):
            result = runner.invoke(cli, ["run", "-p", str(tmp_path)])

        assert result.exit_code == 1
        assert "broken" in result.output

    def test_configuration_error(self, tmp_path: Path) -> None:
        launch = AsyncMock(side_effect=ConfigurationError("Bad value", path="test.type"))
        runner = CliRunner()
        with patch("speclaunch.cli.main._launch", launch):
            result = runner.invoke(cli, ["run", "-p", str(tmp_path)])

        assert result.exit_code == 1
        assert "Configuration problem" in result.output
        assert "test.type" in result.output

    def test_missing_project_root(self, tmp_path: Path) -> None:
        runner = CliRunner()
        result = runner.invoke(cli, ["run", "-p", str(tmp_path / "nope")])
        assert result.exit_code != 0


class TestBuildOptions:
    """Tests for flag to options translation."""

    def test_coverage_left_to_environment(self, tmp_path: Path) -> None:
        options = build_options(tmp_path, "unit", None, None, None, ())

        assert options["coverage"]["enabled"] is None
        assert resolve_configuration(options, environ={}).coverage.enabled is True
        assert resolve_configuration(options, environ={"DISABLE_CODE_COVERAGE": "1"}).coverage.enabled is False

    def test_all_flags(self, tmp_path: Path) -> None:
        options = build_options(tmp_path, "system", "specs", str(tmp_path / "out"), True, ("a", "b"))
        configuration = resolve_configuration(options, environ={})

        assert configuration.test.type == "system"
        assert configuration.test.spec_dir_path == "specs"
        assert configuration.root_report_path == tmp_path / "out"
        assert configuration.coverage.enabled is True
        assert len(configuration.test.spec_file_filters) == 2


class TestLoggingSetup:
    """Tests for the structlog configuration used by the CLI."""

    def test_console_logs_go_to_stderr(self) -> None:
        setup_logging(level=logging.INFO)

        handlers = logging.getLogger().handlers
        assert len(handlers) == 1
        assert isinstance(handlers[0], logging.StreamHandler)
        assert handlers[0].stream is sys.stderr

    def test_log_file_receives_json_events(self, tmp_path: Path) -> None:
        log_file = tmp_path / "speclaunch.log"
        setup_logging(level=logging.DEBUG, log_file=str(log_file))

        structlog.get_logger("tests").info("hello", emoji_key="engine", spec_files=2)
        for handler in logging.getLogger().handlers:
            handler.flush()

        events = [json.loads(line) for line in log_file.read_text(encoding="utf-8").splitlines()]
        event = next(e for e in events if e["event"].endswith("hello"))
        assert event["level"] == "info"
        assert event["spec_files"] == 2
        assert event["event"].startswith("🧪")
        assert "emoji_key" not in event

    def test_unwritable_log_file_keeps_console(self, tmp_path: Path) -> None:
        setup_logging(level=logging.INFO, log_file=str(tmp_path / "missing" / "speclaunch.log"))

        handlers = logging.getLogger().handlers
        assert len(handlers) == 1
        assert not isinstance(handlers[0], logging.FileHandler)

    def test_level_comes_from_the_context(self) -> None:
        ctx = click.Context(cli, obj={"LOG_LEVEL": "debug", "LOG_FILE": None, "JSON_LOGS": False})

        assert setup_logging_from_context(ctx) == logging.DEBUG
        assert logging.getLogger().level == logging.DEBUG

    def test_default_level_is_warning(self) -> None:
        ctx = click.Context(cli, obj={"LOG_LEVEL": None, "LOG_FILE": None, "JSON_LOGS": False})

        assert setup_logging_from_context(ctx) == logging.WARNING

    def test_cli_options_reach_the_log_file(self, tmp_path: Path) -> None:
        log_file = tmp_path / "cli.log"
        launch = AsyncMock(return_value=LaunchResult(state=RunState.SHUTTING_DOWN, exit_code=0))
        runner = CliRunner()
        with patch("speclaunch.cli.main._launch", launch):
            result = runner.invoke(
                cli, ["--log-level", "INFO", "--log-file", str(log_file), "run", "-p", str(tmp_path)]
            )

        assert result.exit_code == 0
        for handler in logging.getLogger().handlers:
            handler.flush()
        events = [json.loads(line) for line in log_file.read_text(encoding="utf-8").splitlines()]
        assert any(e["event"].endswith("Executing 'run' command") for e in events)
