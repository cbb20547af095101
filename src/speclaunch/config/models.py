#
# src/speclaunch/config/models.py
#
"""
Attrs-based data models for the resolved launcher configuration.
"""

from collections.abc import Mapping
from pathlib import Path
from types import MappingProxyType
from typing import Any

from attrs import define, field

from speclaunch.config.merge import get_path
from speclaunch.filters import SpecFileFilter, normalize_filters

DEFAULT_TEST_TYPE = "unknown"
DEFAULT_COVERAGE_REPORT_DIRECTORY = "coverage"
DEFAULT_COVERAGE_EXCLUDES: tuple[str, ...] = (
    "*/tests/*",
    "*/test/*",
    "*/.venv/*",
    "*/site-packages/*",
)


def _validate_absolute(inst: Any, attr: Any, value: Path | None) -> None:
    """Validator ensures a resolved path is absolute."""
    if value is not None and not value.is_absolute():
        raise ValueError(f"Field '{attr.name}' must be an absolute path, got {value}")


def _validate_non_empty(inst: Any, attr: Any, value: str) -> None:
    if not isinstance(value, str) or not value.strip():
        raise ValueError(f"Field '{attr.name}' must be a non-empty string, got {value!r}")


def _freeze_mapping(value: Mapping[str, Any] | None) -> Mapping[str, Any]:
    return MappingProxyType(dict(value or {}))


@define(frozen=True, slots=True)
class ProjectConfig:
    root_directory_path: Path = field(validator=_validate_absolute)


@define(frozen=True, slots=True)
class ReportsConfig:
    """`root_directory_path` is None when the default report root applies."""
    root_directory_path: Path | None = field(default=None, validator=_validate_absolute)


@define(frozen=True, slots=True)
class ReportFeatures:
    """Report formats produced by the execution engine."""
    junit_xml: bool = field(default=True)
    html: bool = field(default=True)


@define(frozen=True, slots=True)
class SuiteConfig:
    """The `test` section: what kind of tests to run and where to find them."""
    type: str = field(default=DEFAULT_TEST_TYPE, validator=_validate_non_empty)
    spec_dir_path: str | None = field(default=None)
    spec_file_filters: tuple[SpecFileFilter, ...] = field(factory=tuple, converter=tuple)
    reports: ReportFeatures = field(factory=ReportFeatures)
    engine_options: Mapping[str, Any] = field(factory=dict, converter=_freeze_mapping)


@define(frozen=True, slots=True)
class CoverageConfig:
    enabled: bool = field(default=True)
    excludes: tuple[str, ...] = field(default=DEFAULT_COVERAGE_EXCLUDES, converter=tuple)
    report_directory: str = field(default=DEFAULT_COVERAGE_REPORT_DIRECTORY, validator=_validate_non_empty)
    engine_options: Mapping[str, Any] = field(factory=dict, converter=_freeze_mapping)


@define(frozen=True, slots=True)
class LaunchConfiguration:
    """Root configuration object, frozen once the launcher is ready."""
    project: ProjectConfig = field()
    reports: ReportsConfig = field(factory=ReportsConfig)
    test: SuiteConfig = field(factory=SuiteConfig)
    coverage: CoverageConfig = field(factory=CoverageConfig)
    developer_mode: bool = field(default=False)

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> "LaunchConfiguration":
        """Builds the models from an already merged and normalized tree."""
        reports_root = get_path(data, "reports.root_directory_path")
        return cls(
            project=ProjectConfig(root_directory_path=Path(get_path(data, "project.root_directory_path"))),
            reports=ReportsConfig(root_directory_path=Path(reports_root) if reports_root else None),
            test=SuiteConfig(
                type=get_path(data, "test.type", DEFAULT_TEST_TYPE),
                spec_dir_path=get_path(data, "test.spec_dir_path"),
                spec_file_filters=normalize_filters(get_path(data, "test.spec_file_filters")),
                reports=ReportFeatures(
                    junit_xml=get_path(data, "test.reports.junit_xml", True),
                    html=get_path(data, "test.reports.html", True),
                ),
                engine_options=get_path(data, "test.engine_options"),
            ),
            coverage=CoverageConfig(
                enabled=get_path(data, "coverage.enabled", True),
                excludes=get_path(data, "coverage.excludes", DEFAULT_COVERAGE_EXCLUDES),
                report_directory=get_path(
                    data, "coverage.report_directory", DEFAULT_COVERAGE_REPORT_DIRECTORY
                ),
                engine_options=get_path(data, "coverage.engine_options"),
            ),
            developer_mode=bool(data.get("developer_mode", False)),
        )

    @property
    def root_report_path(self) -> Path:
        return self.reports.root_directory_path or (self.project.root_directory_path / "reports" / "test")

    @property
    def root_report_test_path(self) -> Path:
        return self.root_report_path / self.test.type

    @property
    def coverage_report_path(self) -> Path:
        return self.root_report_test_path / self.coverage.report_directory


def default_configuration_tree() -> dict[str, Any]:
    """Built-in defaults, lowest precedence layer of the resolution."""
    return {
        "developer_mode": False,
        "project": {"root_directory_path": None},
        "reports": {"root_directory_path": None},
        "test": {
            "type": DEFAULT_TEST_TYPE,
            "spec_dir_path": None,
            "spec_file_filters": [],
            "reports": {"junit_xml": True, "html": True},
            "engine_options": {},
        },
        "coverage": {
            "enabled": True,
            "excludes": list(DEFAULT_COVERAGE_EXCLUDES),
            "report_directory": DEFAULT_COVERAGE_REPORT_DIRECTORY,
            "engine_options": {},
        },
    }

# 🔼⚙️
