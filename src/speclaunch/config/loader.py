#
# src/speclaunch/config/loader.py
#
"""
Resolves the launcher configuration from defaults, the environment and the
programmatic options.

Precedence, lowest to highest:
    defaults < environment < programmatic options < environment (override keys)
"""

import os
from collections.abc import Mapping
from pathlib import Path
from typing import Any

import attrs
import structlog

from speclaunch.config.env import (
    environment_defaults,
    read_environment_overrides,
)
from speclaunch.config.merge import get_path, merge_ignore_none
from speclaunch.config.models import LaunchConfiguration, default_configuration_tree
from speclaunch.config.schema import validate
from speclaunch.exceptions import ConfigurationError
from speclaunch.steps import Phase, Step
from speclaunch.telemetry import StructLogger

log: StructLogger = structlog.get_logger("config.loader")

# Keys taken from the options tree as-is; everything else is merged.
_PASSTHROUGH_KEYS = ("steps",)


@attrs.define(frozen=True, slots=True)
class ResolvedOptions:
    """Output of the resolution: the frozen configuration plus the configured steps."""

    configuration: LaunchConfiguration
    steps: dict[Phase, list[Step]] = attrs.field(factory=dict)
    raw_options: Mapping[str, Any] = attrs.field(factory=dict, repr=False)
    raw_environment: Mapping[str, str] = attrs.field(factory=dict, repr=False)


def _options_tree(options: Mapping[str, Any]) -> dict[str, Any]:
    return {key: value for key, value in options.items() if key not in _PASSTHROUGH_KEYS}


def _extract_steps(options: Mapping[str, Any]) -> dict[Phase, list[Step]]:
    steps: dict[Phase, list[Step]] = {phase: [] for phase in Phase}
    for phase in Phase:
        for value in get_path(options, f"steps.{phase.value}") or ():
            step = Step.coerce(value)
            if step is not None:
                steps[phase].append(step)
    return steps


def _absolute(path_value: str, base: Path | None = None) -> str:
    path = Path(path_value).expanduser()
    if not path.is_absolute():
        path = (base or Path.cwd()) / path
    return os.path.normpath(path)


def resolve_options(
    options: Mapping[str, Any],
    environ: Mapping[str, str] | None = None,
) -> ResolvedOptions:
    """
    Validates and merges everything, or raises ConfigurationError.

    Nothing partial is ever returned.
    """
    validate(options)
    env = read_environment_overrides(environ)

    merged = merge_ignore_none(
        default_configuration_tree(),
        environment_defaults(environ),
        env.values,
        _options_tree(options),
        env.precedence_values,
    )

    merged["project"]["root_directory_path"] = _absolute(merged["project"]["root_directory_path"])
    reports_root = get_path(merged, "reports.root_directory_path")
    if reports_root:
        merged["reports"]["root_directory_path"] = _absolute(reports_root)

    try:
        configuration = LaunchConfiguration.from_mapping(merged)
    except ConfigurationError:
        raise
    except (TypeError, ValueError) as e:
        raise ConfigurationError("Invalid configuration value", details=e) from e

    log.debug(
        "Configuration resolved",
        project_root=str(configuration.project.root_directory_path),
        test_type=configuration.test.type,
        coverage_enabled=configuration.coverage.enabled,
        env_overrides=sorted(env.raw),
        emoji_key="config",
    )
    return ResolvedOptions(
        configuration=configuration,
        steps=_extract_steps(options),
        raw_options=options,
        raw_environment=env.raw,
    )


def resolve_configuration(
    options: Mapping[str, Any],
    environ: Mapping[str, str] | None = None,
) -> LaunchConfiguration:
    """Convenience wrapper returning only the configuration."""
    return resolve_options(options, environ).configuration

# 🔼⚙️
