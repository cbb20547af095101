#
# src/speclaunch/config/env.py
#
"""
Reads configuration overrides from environment variables.

Every variable is optional. Values are validated here so that a bad
environment fails the whole resolution before anything is merged.
"""

import os
from collections.abc import Mapping
from typing import Any

import attrs
import structlog

from speclaunch.exceptions import ConfigurationError
from speclaunch.telemetry import StructLogger

log: StructLogger = structlog.get_logger("config.env")

_TRUE_VALUES = frozenset({"true", "1", "yes", "on"})
_FALSE_VALUES = frozenset({"false", "0", "no", "off"})


@attrs.define(frozen=True, slots=True)
class EnvOverride:
    """Binds one environment variable to one configuration key."""

    variable: str
    path: str
    kind: str = "str"  # "str", "bool" or "list"
    # Environment wins over programmatic options for this key.
    overrides_options: bool = False


ENV_OVERRIDES: tuple[EnvOverride, ...] = (
    EnvOverride("CONFIG_PROJECT_ROOT_DIR_PATH", "project.root_directory_path"),
    EnvOverride("CONFIG_REPORTS_ROOT_DIR_PATH", "reports.root_directory_path"),
    EnvOverride("CONFIG_COVERAGE_ENABLED", "coverage.enabled", kind="bool", overrides_options=True),
    EnvOverride("CONFIG_COVERAGE_EXCLUDES", "coverage.excludes", kind="list", overrides_options=True),
    EnvOverride("CONFIG_COVERAGE_REPORT_DIR_NAME", "coverage.report_directory", overrides_options=True),
    EnvOverride("CONFIG_TEST_TYPE", "test.type", overrides_options=True),
    EnvOverride("CONFIG_TEST_SPEC_DIR_PATH", "test.spec_dir_path", overrides_options=True),
    EnvOverride("CONFIG_TEST_ENABLE_REPORT_JUNIT", "test.reports.junit_xml", kind="bool", overrides_options=True),
    EnvOverride("CONFIG_TEST_ENABLE_REPORT_HTML", "test.reports.html", kind="bool", overrides_options=True),
)

DEVELOPER_MODE_VARIABLE = "ENABLE_DEVELOPER_MODE"
DISABLE_COVERAGE_VARIABLE = "DISABLE_CODE_COVERAGE"


def parse_bool(raw: str, variable: str, path: str) -> bool:
    """Parses a boolean-like environment value."""
    value = raw.strip().lower()
    if value in _TRUE_VALUES:
        return True
    if value in _FALSE_VALUES:
        return False
    raise ConfigurationError(
        f"Environment variable {variable} must be boolean-like, got {raw!r}", path=path
    )


def parse_list(raw: str) -> list[str] | None:
    """Splits a comma separated value, dropping blank items. Empty means unset."""
    items = [item.strip() for item in raw.split(",")]
    items = [item for item in items if item]
    return items or None


def _set_path(target: dict[str, Any], dotted_path: str, value: Any) -> None:
    *parents, leaf = dotted_path.split(".")
    current = target
    for part in parents:
        current = current.setdefault(part, {})
    current[leaf] = value


@attrs.define(frozen=True, slots=True)
class EnvironmentOverrides:
    """Validated values read from the environment, split by precedence."""

    values: dict[str, Any] = attrs.field(factory=dict)
    precedence_values: dict[str, Any] = attrs.field(factory=dict)
    raw: dict[str, str] = attrs.field(factory=dict)


def read_environment_overrides(environ: Mapping[str, str] | None = None) -> EnvironmentOverrides:
    """
    Builds override trees from the environment.

    `values` holds every recognized variable; `precedence_values` holds only
    those that must also beat programmatic options.
    """
    env = os.environ if environ is None else environ
    values: dict[str, Any] = {}
    precedence_values: dict[str, Any] = {}
    raw: dict[str, str] = {}

    for override in ENV_OVERRIDES:
        raw_value = env.get(override.variable)
        if raw_value is None:
            continue
        raw[override.variable] = raw_value

        if override.kind == "bool":
            if not raw_value.strip():
                continue
            value: Any = parse_bool(raw_value, override.variable, override.path)
        elif override.kind == "list":
            value = parse_list(raw_value)
        else:
            value = raw_value or None

        if value is None:
            continue

        _set_path(values, override.path, value)
        if override.overrides_options:
            _set_path(precedence_values, override.path, value)

    if raw:
        log.debug("Read configuration overrides from environment", variables=sorted(raw), emoji_key="config")

    return EnvironmentOverrides(values=values, precedence_values=precedence_values, raw=raw)


def environment_defaults(environ: Mapping[str, str] | None = None) -> dict[str, Any]:
    """Default values that are themselves driven by the environment."""
    env = os.environ if environ is None else environ
    return {
        "developer_mode": bool(env.get(DEVELOPER_MODE_VARIABLE)),
        "coverage": {"enabled": not env.get(DISABLE_COVERAGE_VARIABLE)},
    }

# 🔼⚙️
