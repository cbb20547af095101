#
# src/speclaunch/__init__.py
#
"""
speclaunch: an embeddable test run orchestrator.

Resolves a layered configuration, runs lifecycle steps around a test
execution engine and a coverage engine, and returns a deterministic exit code.
"""
from .config import LauncherConfigBuilder, LaunchConfiguration, merge_ignore_none
from .exceptions import (
    ConfigurationError,
    LauncherNotReadyError,
    SpecFileFilterError,
    SpeclaunchError,
    StepExecutionError,
)
from .filters import FilterDecision, filter_spec_files
from .runtime import LaunchResult, Launcher
from .state import RunState
from .steps import Phase, Step, StepExecutionContext, StepResult

__all__ = [
    "ConfigurationError",
    "FilterDecision",
    "LaunchConfiguration",
    "LaunchResult",
    "Launcher",
    "LauncherConfigBuilder",
    "LauncherNotReadyError",
    "Phase",
    "RunState",
    "SpecFileFilterError",
    "SpeclaunchError",
    "Step",
    "StepExecutionContext",
    "StepExecutionError",
    "StepResult",
    "filter_spec_files",
    "merge_ignore_none",
]

# 🔼⚙️
