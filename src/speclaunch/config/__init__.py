#
# config/__init__.py
#
"""
Configuration handling sub-package for speclaunch.

Exports the resolution functions, the configuration models and the builders.
"""

from .builders import (
    CoverageConfigBuilder,
    LauncherConfigBuilder,
    ProjectConfigBuilder,
    ReportsConfigBuilder,
    SectionConfigBuilder,
    SuiteConfigBuilder,
)
from .loader import ResolvedOptions, resolve_configuration, resolve_options
from .merge import merge_ignore_none
from .models import (
    CoverageConfig,
    LaunchConfiguration,
    ProjectConfig,
    ReportFeatures,
    ReportsConfig,
    SuiteConfig,
)

__all__ = [
    "CoverageConfig",
    "CoverageConfigBuilder",
    "LaunchConfiguration",
    "LauncherConfigBuilder",
    "ProjectConfig",
    "ProjectConfigBuilder",
    "ReportFeatures",
    "ReportsConfig",
    "ReportsConfigBuilder",
    "ResolvedOptions",
    "SectionConfigBuilder",
    "SuiteConfig",
    "SuiteConfigBuilder",
    "merge_ignore_none",
    "resolve_configuration",
    "resolve_options",
]

# 🔼⚙️
