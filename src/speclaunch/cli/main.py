# src/speclaunch/cli/main.py

"""
Main CLI entry point for speclaunch using Click.
Hosts a Launcher and turns its result into the process exit code.
"""

import asyncio
from importlib.metadata import PackageNotFoundError, version
from pathlib import Path
from typing import Any

import click
import structlog

from speclaunch.cli.utils import logging_options, setup_logging_from_context
from speclaunch.config import LauncherConfigBuilder
from speclaunch.exceptions import ConfigurationError
from speclaunch.runtime import EXIT_FAILURE, LaunchResult, Launcher
from speclaunch.telemetry import StructLogger

try:
    __version__ = version("speclaunch")
except PackageNotFoundError:
    __version__ = "0.0.0-dev"

log: StructLogger = structlog.get_logger("cli.main")


@click.group(context_settings={"help_option_names": ["-h", "--help"]})
@click.version_option(__version__, "-V", "--version", package_name="speclaunch")
@logging_options
@click.pass_context
def cli(
    ctx: click.Context,
    log_level: str | None,
    log_file: str | None,
    json_logs: bool | None,
):
    """
    Speclaunch: scriptable test run orchestrator.

    Resolves the configuration, runs the lifecycle steps around the test and
    coverage engines, and exits with the run's exit code.
    Configuration precedence: CLI options > Environment Variables > Defaults,
    except for the keys the environment always overrides.
    """
    ctx.ensure_object(dict)

    ctx.obj["LOG_LEVEL"] = log_level
    ctx.obj["LOG_FILE"] = log_file
    ctx.obj["JSON_LOGS"] = bool(json_logs)

    setup_logging_from_context(ctx)
    log.debug(
        "Main CLI group initialized",
        log_level=log_level,
        log_file=log_file,
        json_logs=json_logs,
    )


def build_options(
    project_root: Path,
    test_type: str,
    spec_dir: str | None,
    reports_dir: str | None,
    coverage: bool | None,
    filters: tuple[str, ...],
) -> dict[str, Any]:
    """Translates command line flags into configure() options."""
    builder = LauncherConfigBuilder()
    builder.project_configuration().root_directory_path(str(project_root))
    builder.reports_configuration().root_directory_path(reports_dir)
    suite = builder.test_configuration().type(test_type).spec_dir_path(spec_dir)
    for spec_filter in filters:
        suite.with_spec_file_filter(spec_filter)
    if coverage is not None:
        builder.coverage_configuration().set_enabled(coverage)

    options = builder.build()
    if coverage is None:
        # Let the environment and defaults decide.
        options["coverage"]["enabled"] = None
    return options


async def _launch(options: dict[str, Any]) -> LaunchResult:
    launcher = Launcher()
    await launcher.configure(options)
    return await launcher.run()


@cli.command(name="run")
@click.option(
    "-p",
    "--project-root",
    type=click.Path(exists=True, file_okay=False, path_type=Path),
    default=Path("."),
    show_default=True,
    help="Root directory of the project under test.",
)
@click.option("-t", "--type", "test_type", default="unit", show_default=True, help="Test type (unit, integration, ...).")
@click.option("--spec-dir", default=None, help="Spec directory, relative to the project root.")
@click.option("--reports-dir", default=None, help="Root directory for every report.")
@click.option("--coverage/--no-coverage", default=None, help="Force coverage on or off.")
@click.option(
    "-f",
    "--filter",
    "filters",
    multiple=True,
    help="Regular expression; matching spec files are skipped. Repeatable.",
)
@click.pass_context
def run_command(
    ctx: click.Context,
    project_root: Path,
    test_type: str,
    spec_dir: str | None,
    reports_dir: str | None,
    coverage: bool | None,
    filters: tuple[str, ...],
):
    """Run the spec files of the project and exit with the run's exit code."""
    options = build_options(project_root, test_type, spec_dir, reports_dir, coverage, filters)
    log.info("Executing 'run' command", project_root=str(project_root), test_type=test_type)

    try:
        result = asyncio.run(_launch(options))
    except ConfigurationError as e:
        log.error("Invalid configuration", error=str(e), exc_info=True)
        click.echo(f"Error: Configuration problem:\n{e}", err=True)
        ctx.exit(EXIT_FAILURE)

    if result.error is not None:
        click.echo(f"Error: {result.error}", err=True)
    ctx.exit(result.exit_code)


if __name__ == "__main__":
    cli()

# 🖥️⚙️
