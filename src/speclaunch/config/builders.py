#
# src/speclaunch/config/builders.py
#
"""
Fluent builders producing the options tree accepted by `Launcher.configure()`.

The root builder owns one sub-builder per configuration section. Each
sub-builder declares its `section_key`; the root aggregates them without
knowing what they contain.
"""

import copy
import re
from collections.abc import Callable, Mapping
from typing import Any, ClassVar

from speclaunch.config.models import (
    DEFAULT_COVERAGE_EXCLUDES,
    DEFAULT_COVERAGE_REPORT_DIRECTORY,
    DEFAULT_TEST_TYPE,
)
from speclaunch.steps import Phase, StepHandler


class SectionConfigBuilder:
    """Base class for the builders of one configuration section."""

    section_key: ClassVar[str]

    def __init__(self, parent: "LauncherConfigBuilder | None" = None):
        self._parent = parent
        self._configuration: dict[str, Any] = self._default_configuration()

    def _default_configuration(self) -> dict[str, Any]:
        raise NotImplementedError

    def _default(self, key: str) -> Any:
        return self._default_configuration()[key]

    def clear(self):
        """Resets the section to its defaults."""
        self._configuration = self._default_configuration()
        return self

    def parent_builder(self) -> "LauncherConfigBuilder | None":
        return self._parent

    def build(self) -> dict[str, Any]:
        return copy.deepcopy(self._configuration)


class _RootDirectoryBuilder(SectionConfigBuilder):
    def _default_configuration(self) -> dict[str, Any]:
        return {"root_directory_path": None}

    def root_directory_path(self, value: str | None = None):
        if value is None:
            self._configuration["root_directory_path"] = self._default("root_directory_path")
        elif isinstance(value, str):
            self._configuration["root_directory_path"] = value
        return self


class ProjectConfigBuilder(_RootDirectoryBuilder):
    """Builds the `project` section."""

    section_key = "project"


class ReportsConfigBuilder(_RootDirectoryBuilder):
    """Builds the `reports` section."""

    section_key = "reports"


class SuiteConfigBuilder(SectionConfigBuilder):
    """Builds the `test` section."""

    section_key = "test"

    def _default_configuration(self) -> dict[str, Any]:
        return {
            "type": DEFAULT_TEST_TYPE,
            "spec_dir_path": None,
            "spec_file_filters": [],
            "reports": {"junit_xml": True, "html": True},
            "engine_options": {},
        }

    def type(self, value: str | None = None):
        if value is None:
            self._configuration["type"] = self._default("type")
        elif isinstance(value, str):
            self._configuration["type"] = value
        return self

    def unit_test(self):
        return self.type("unit")

    def integration_test(self):
        return self.type("integration")

    def system_test(self):
        return self.type("system")

    def spec_dir_path(self, value: str | None = None):
        """Directory holding the spec files, relative to the project root."""
        if value is None:
            self._configuration["spec_dir_path"] = self._default("spec_dir_path")
        elif isinstance(value, str):
            self._configuration["spec_dir_path"] = value
        return self

    def engine_options(self, value: Mapping[str, Any] | None = None):
        """Options merged over the configuration generated for the execution engine."""
        if value is None:
            self._configuration["engine_options"] = self._default("engine_options")
        elif isinstance(value, Mapping):
            self._configuration["engine_options"] = dict(value)
        return self

    def with_spec_file_filter(self, value: str | re.Pattern[str] | Callable[[str], Any]):
        if isinstance(value, str | re.Pattern) or callable(value):
            self._configuration["spec_file_filters"].append(value)
        return self

    def enable_junit_xml(self, value: bool = True):
        self._configuration["reports"]["junit_xml"] = bool(value)
        return self

    def enable_html(self, value: bool = True):
        self._configuration["reports"]["html"] = bool(value)
        return self

    def build(self) -> dict[str, Any]:
        # Filters may be callables or compiled patterns; keep them by reference.
        built = copy.deepcopy({k: v for k, v in self._configuration.items() if k != "spec_file_filters"})
        built["spec_file_filters"] = list(self._configuration["spec_file_filters"])
        return built


class CoverageConfigBuilder(SectionConfigBuilder):
    """Builds the `coverage` section."""

    section_key = "coverage"

    def _default_configuration(self) -> dict[str, Any]:
        return {
            "enabled": True,
            "report_directory": DEFAULT_COVERAGE_REPORT_DIRECTORY,
            "excludes": list(DEFAULT_COVERAGE_EXCLUDES),
            "engine_options": {},
        }

    def enable(self):
        self._configuration["enabled"] = True
        return self

    def disable(self):
        self._configuration["enabled"] = False
        return self

    def set_enabled(self, value: Any):
        self._configuration["enabled"] = bool(value)
        return self

    def report_directory(self, value: str | None = None):
        """Directory name of the coverage report under the test report root."""
        if value is None:
            self._configuration["report_directory"] = self._default("report_directory")
        elif isinstance(value, str):
            self._configuration["report_directory"] = value
        return self

    def exclude_patterns(self, value: list[str] | str | None = None):
        if value is None:
            self._configuration["excludes"] = self._default("excludes")
        elif isinstance(value, str):
            self._configuration["excludes"] = [value]
        elif isinstance(value, list | tuple):
            self._configuration["excludes"] = [item for item in value if isinstance(item, str)]
        return self

    def add_exclude_patterns(self, value: list[str] | str):
        if isinstance(value, str):
            self._configuration["excludes"].append(value)
        elif isinstance(value, list | tuple):
            self._configuration["excludes"].extend(item for item in value if isinstance(item, str))
        return self

    def engine_options(self, value: Mapping[str, Any] | None = None):
        """Options merged over the configuration generated for the coverage engine."""
        if value is None:
            self._configuration["engine_options"] = self._default("engine_options")
        elif isinstance(value, Mapping):
            self._configuration["engine_options"] = dict(value)
        return self


class LauncherConfigBuilder:
    """
    Root builder. `build()` returns a mapping that can be passed directly to
    `Launcher.configure()`.
    """

    section_builder_classes: ClassVar[tuple[type[SectionConfigBuilder], ...]] = (
        ProjectConfigBuilder,
        ReportsConfigBuilder,
        SuiteConfigBuilder,
        CoverageConfigBuilder,
    )

    def __init__(self) -> None:
        self._configuration = self._default_configuration()
        self._section_builders: dict[str, SectionConfigBuilder] = {
            builder_class.section_key: builder_class(self)
            for builder_class in self.section_builder_classes
        }

    @staticmethod
    def _default_configuration() -> dict[str, Any]:
        return {"steps": {phase.value: [] for phase in Phase}}

    def section(self, key: str) -> SectionConfigBuilder:
        return self._section_builders[key]

    def project_configuration(self) -> ProjectConfigBuilder:
        return self._section_builders[ProjectConfigBuilder.section_key]

    def reports_configuration(self) -> ReportsConfigBuilder:
        return self._section_builders[ReportsConfigBuilder.section_key]

    def test_configuration(self) -> SuiteConfigBuilder:
        return self._section_builders[SuiteConfigBuilder.section_key]

    def coverage_configuration(self) -> CoverageConfigBuilder:
        return self._section_builders[CoverageConfigBuilder.section_key]

    def _with_step(self, phase: Phase, value: StepHandler):
        if callable(value):
            self._configuration["steps"][phase.value].append({"handler": value})
        return self

    def with_pre_launch_step(self, value: StepHandler):
        return self._with_step(Phase.PRE_LAUNCH, value)

    def with_pre_test_launch_step(self, value: StepHandler):
        return self._with_step(Phase.PRE_TEST_LAUNCH, value)

    def with_post_execution_step(self, value: StepHandler):
        return self._with_step(Phase.POST_EXECUTION, value)

    def with_clean_up_step(self, value: StepHandler):
        return self._with_step(Phase.CLEAN_UP, value)

    def clear(self):
        """Resets the root settings and every section builder."""
        self._configuration = self._default_configuration()
        for builder in self._section_builders.values():
            builder.clear()
        return self

    def build(self) -> dict[str, Any]:
        built: dict[str, Any] = {
            "steps": {phase: list(steps) for phase, steps in self._configuration["steps"].items()}
        }
        for key, builder in self._section_builders.items():
            built[key] = builder.build()
        return built

# 🔼⚙️
