# src/speclaunch/cli/utils.py

import logging

import click
import structlog

from speclaunch.telemetry.logger import setup_logging

log = structlog.get_logger("cli.utils")

LOG_LEVEL_CHOICES = click.Choice(list(logging._nameToLevel.keys()), case_sensitive=False)


def logging_options(f):
    """Adds --log-level, --log-file and --json-logs, each with a SPECLAUNCH_* variable."""
    f = click.option(
        "-l",
        "--log-level",
        type=LOG_LEVEL_CHOICES,
        default=None,
        envvar="SPECLAUNCH_LOG_LEVEL",
        help="Set the logging level.",
    )(f)
    f = click.option(
        "--log-file",
        type=click.Path(dir_okay=False, writable=True, resolve_path=True),
        default=None,
        envvar="SPECLAUNCH_LOG_FILE",
        help="Also write JSON logs to this file.",
    )(f)
    f = click.option(
        "--json-logs",
        is_flag=True,
        default=None,
        envvar="SPECLAUNCH_JSON_LOGS",
        help="Render console logs as JSON.",
    )(f)
    return f


def setup_logging_from_context(ctx: click.Context, default_log_level: str = "WARNING") -> int:
    """
    Configures logging from the options stored on the group context and
    returns the numeric level in effect. The launcher's own output stays
    quiet below WARNING unless a level is asked for.
    """
    level_name = (ctx.obj.get("LOG_LEVEL") or default_log_level).upper()
    level = logging.getLevelName(level_name)
    if not isinstance(level, int):
        level = logging.WARNING
    log_file = ctx.obj.get("LOG_FILE")
    json_logs = bool(ctx.obj.get("JSON_LOGS"))

    setup_logging(level=level, json_logs=json_logs, log_file=log_file)
    log.debug("CLI logging initialized", level=logging.getLevelName(level), file=log_file or "console", json=json_logs)
    return level

# ⚙️🛠️
