#
# tests/unit/test_config.py
#
"""
Tests for configuration resolution: merge, environment, validation, models.
"""

import functools
import re
from pathlib import Path
from typing import Any

import pytest

from speclaunch.config import LaunchConfiguration, resolve_configuration, resolve_options
from speclaunch.config.env import ENV_OVERRIDES, environment_defaults, parse_bool, parse_list, read_environment_overrides
from speclaunch.config.merge import get_path, merge_ignore_none
from speclaunch.config.models import DEFAULT_COVERAGE_EXCLUDES
from speclaunch.config.schema import LaunchOptions, validate
from speclaunch.exceptions import ConfigurationError
from speclaunch.filters import LiteralFilter, PatternFilter, PredicateFilter
from speclaunch.steps import Phase

# (variable, dotted path, value given in the options, raw environment value, resolved value)
PRECEDENCE_CASES = [
    ("CONFIG_COVERAGE_ENABLED", "coverage.enabled", False, "true", True),
    ("CONFIG_COVERAGE_EXCLUDES", "coverage.excludes", ["*/own/*"], "*/vendor/*,*/gen/*", ("*/vendor/*", "*/gen/*")),
    ("CONFIG_COVERAGE_REPORT_DIR_NAME", "coverage.report_directory", "cov", "cov-from-env", "cov-from-env"),
    ("CONFIG_TEST_TYPE", "test.type", "unit", "integration", "integration"),
    ("CONFIG_TEST_SPEC_DIR_PATH", "test.spec_dir_path", "specs", "env/specs", "env/specs"),
    ("CONFIG_TEST_ENABLE_REPORT_JUNIT", "test.reports.junit_xml", True, "false", False),
    ("CONFIG_TEST_ENABLE_REPORT_HTML", "test.reports.html", True, "0", False),
]


def _set_path(tree: dict[str, Any], path: str, value: Any) -> None:
    *parents, leaf = path.split(".")
    for key in parents:
        tree = tree.setdefault(key, {})
    tree[leaf] = value


class TestMergeIgnoreNone:
    """Tests for the deep merge used by the resolution pipeline."""

    def test_later_sources_win(self) -> None:
        assert merge_ignore_none({"a": 1, "b": 2}, {"b": 3}) == {"a": 1, "b": 3}

    def test_none_never_overwrites(self) -> None:
        merged = merge_ignore_none({"a": 1, "nested": {"x": "keep"}}, {"a": None, "nested": {"x": None}})
        assert merged == {"a": 1, "nested": {"x": "keep"}}

    def test_none_sources_are_skipped(self) -> None:
        assert merge_ignore_none(None, {"a": 1}, None) == {"a": 1}

    def test_nested_mappings_merge_key_by_key(self) -> None:
        merged = merge_ignore_none({"c": {"x": 1, "y": 2}}, {"c": {"y": 3, "z": 4}})
        assert merged == {"c": {"x": 1, "y": 3, "z": 4}}

    def test_lists_are_replaced_not_concatenated(self) -> None:
        assert merge_ignore_none({"l": [1, 2]}, {"l": [3]}) == {"l": [3]}

    def test_sources_are_not_mutated(self) -> None:
        left = {"c": {"x": 1}, "l": [1]}
        right = {"c": {"y": 2}}
        merged = merge_ignore_none(left, right)
        merged["c"]["z"] = 3
        merged["l"].append(2)

        assert left == {"c": {"x": 1}, "l": [1]}
        assert right == {"c": {"y": 2}}

    def test_get_path(self) -> None:
        data = {"a": {"b": {"c": 1}}}
        assert get_path(data, "a.b.c") == 1
        assert get_path(data, "a.x.c", "default") == "default"


class TestEnvironment:
    """Tests for environment variable overrides."""

    @pytest.mark.parametrize("raw", ["true", "TRUE", "1", "yes", "on"])
    def test_parse_bool_true(self, raw: str) -> None:
        assert parse_bool(raw, "VAR", "some.path") is True

    @pytest.mark.parametrize("raw", ["false", "0", "No", "off"])
    def test_parse_bool_false(self, raw: str) -> None:
        assert parse_bool(raw, "VAR", "some.path") is False

    def test_parse_bool_rejects_garbage(self) -> None:
        with pytest.raises(ConfigurationError) as exc_info:
            parse_bool("maybe", "CONFIG_COVERAGE_ENABLED", "coverage.enabled")
        assert exc_info.value.path == "coverage.enabled"
        assert "CONFIG_COVERAGE_ENABLED" in str(exc_info.value)

    def test_parse_list(self) -> None:
        assert parse_list("a, b ,,c") == ["a", "b", "c"]
        assert parse_list(" , ") is None

    def test_read_overrides_splits_by_precedence(self) -> None:
        overrides = read_environment_overrides(
            {
                "CONFIG_PROJECT_ROOT_DIR_PATH": "/env/root",
                "CONFIG_TEST_TYPE": "integration",
                "UNRELATED": "x",
            }
        )
        assert overrides.values == {
            "project": {"root_directory_path": "/env/root"},
            "test": {"type": "integration"},
        }
        assert overrides.precedence_values == {"test": {"type": "integration"}}
        assert sorted(overrides.raw) == ["CONFIG_PROJECT_ROOT_DIR_PATH", "CONFIG_TEST_TYPE"]

    def test_bad_boolean_fails_the_read(self) -> None:
        with pytest.raises(ConfigurationError):
            read_environment_overrides({"CONFIG_TEST_ENABLE_REPORT_HTML": "sometimes"})

    def test_environment_defaults(self) -> None:
        assert environment_defaults({}) == {"developer_mode": False, "coverage": {"enabled": True}}
        assert environment_defaults({"ENABLE_DEVELOPER_MODE": "1", "DISABLE_CODE_COVERAGE": "1"}) == {
            "developer_mode": True,
            "coverage": {"enabled": False},
        }


class TestValidation:
    """Tests for the options schema."""

    def test_minimal_options_are_valid(self, base_options, project_root: Path) -> None:
        options = validate(base_options)

        assert isinstance(options, LaunchOptions)
        assert options.project.root_directory_path == str(project_root)
        assert options.test.type == "unit"
        assert options.coverage.enabled is False
        assert options.steps is None

    def test_missing_project_root(self) -> None:
        with pytest.raises(ConfigurationError) as exc_info:
            validate({"project": {}, "test": {"type": "unit"}, "coverage": {}})
        assert exc_info.value.path == "project.root_directory_path"

    def test_missing_coverage_section(self, base_options) -> None:
        del base_options["coverage"]
        with pytest.raises(ConfigurationError) as exc_info:
            validate(base_options)
        assert exc_info.value.path == "coverage"

    def test_wrong_type_is_reported_with_path(self, base_options) -> None:
        base_options["coverage"]["enabled"] = "yes"
        with pytest.raises(ConfigurationError) as exc_info:
            validate(base_options)
        assert exc_info.value.path == "coverage.enabled"

    def test_bad_filter_item(self, base_options) -> None:
        base_options["test"]["spec_file_filters"] = ["ok", 42]
        with pytest.raises(ConfigurationError) as exc_info:
            validate(base_options)
        assert exc_info.value.path == "test.spec_file_filters"
        assert "42" in str(exc_info.value)

    def test_string_is_not_a_list(self, base_options) -> None:
        base_options["coverage"]["excludes"] = "*/tests/*"
        with pytest.raises(ConfigurationError) as exc_info:
            validate(base_options)
        assert exc_info.value.path == "coverage.excludes"

    def test_bad_step_item(self, base_options) -> None:
        base_options["steps"] = {"clean_up": [lambda context: None, {"handler": "not callable"}]}
        with pytest.raises(ConfigurationError) as exc_info:
            validate(base_options)
        assert exc_info.value.path == "steps.clean_up"

    def test_nested_section_must_be_a_mapping(self, base_options) -> None:
        base_options["test"]["reports"] = ["junit"]
        with pytest.raises(ConfigurationError) as exc_info:
            validate(base_options)
        assert exc_info.value.path == "test.reports"

    @pytest.mark.parametrize("blank", ["", "   "])
    def test_blank_project_root_is_rejected(self, base_options, blank: str) -> None:
        base_options["project"]["root_directory_path"] = blank
        with pytest.raises(ConfigurationError) as exc_info:
            validate(base_options)
        assert exc_info.value.path == "project.root_directory_path"

    def test_blank_test_type_is_rejected(self, base_options) -> None:
        base_options["test"]["type"] = ""
        with pytest.raises(ConfigurationError) as exc_info:
            validate(base_options)
        assert exc_info.value.path == "test.type"

    def test_unknown_keys_are_tolerated(self, base_options) -> None:
        base_options["something_else"] = {"anything": True}
        validate(base_options)

    def test_options_must_be_a_mapping(self) -> None:
        with pytest.raises(ConfigurationError):
            validate(["not", "a", "mapping"])


class TestResolution:
    """Tests for the full resolution pipeline."""

    def test_defaults_are_applied(self, base_options, project_root: Path) -> None:
        configuration = resolve_configuration(base_options, environ={})

        assert isinstance(configuration, LaunchConfiguration)
        assert configuration.project.root_directory_path == project_root
        assert configuration.test.type == "unit"
        assert configuration.coverage.enabled is False
        assert configuration.coverage.excludes == DEFAULT_COVERAGE_EXCLUDES
        assert configuration.test.reports.junit_xml is True
        assert configuration.root_report_path == project_root / "reports" / "test"
        assert configuration.root_report_test_path == project_root / "reports" / "test" / "unit"
        assert configuration.coverage_report_path == project_root / "reports" / "test" / "unit" / "coverage"

    def test_precedence_cases_cover_every_override_key(self) -> None:
        assert {case[0] for case in PRECEDENCE_CASES} == {o.variable for o in ENV_OVERRIDES if o.overrides_options}
        assert {o.variable for o in ENV_OVERRIDES if not o.overrides_options} == {
            "CONFIG_PROJECT_ROOT_DIR_PATH",
            "CONFIG_REPORTS_ROOT_DIR_PATH",
        }

    @pytest.mark.parametrize(("variable", "path", "option_value", "raw", "expected"), PRECEDENCE_CASES)
    def test_environment_beats_options_for_override_keys(
        self, base_options, variable: str, path: str, option_value: Any, raw: str, expected: Any
    ) -> None:
        _set_path(base_options, path, option_value)

        without_env = resolve_configuration(base_options, environ={})
        with_env = resolve_configuration(base_options, environ={variable: raw})

        assert functools.reduce(getattr, path.split("."), without_env) != expected
        assert functools.reduce(getattr, path.split("."), with_env) == expected

    def test_options_beat_environment_for_project_root(self, base_options, project_root: Path) -> None:
        configuration = resolve_configuration(
            base_options, environ={"CONFIG_PROJECT_ROOT_DIR_PATH": "/somewhere/else"}
        )
        assert configuration.project.root_directory_path == project_root

    def test_options_beat_environment_for_reports_root(self, base_options, tmp_path: Path) -> None:
        base_options["reports"] = {"root_directory_path": str(tmp_path / "from-options")}
        configuration = resolve_configuration(
            base_options, environ={"CONFIG_REPORTS_ROOT_DIR_PATH": str(tmp_path / "from-env")}
        )
        assert configuration.root_report_path == tmp_path / "from-options"

    def test_reports_root_from_environment(self, base_options, tmp_path: Path) -> None:
        reports = tmp_path / "out"
        configuration = resolve_configuration(base_options, environ={"CONFIG_REPORTS_ROOT_DIR_PATH": str(reports)})
        assert configuration.root_report_path == reports
        assert configuration.root_report_test_path == reports / "unit"

    def test_disable_code_coverage(self, base_options) -> None:
        base_options["coverage"] = {}
        assert resolve_configuration(base_options, environ={}).coverage.enabled is True
        assert resolve_configuration(base_options, environ={"DISABLE_CODE_COVERAGE": "1"}).coverage.enabled is False

    def test_relative_root_is_made_absolute(self, base_options) -> None:
        base_options["project"]["root_directory_path"] = "relative/dir"
        configuration = resolve_configuration(base_options, environ={})
        assert configuration.project.root_directory_path.is_absolute()
        assert configuration.project.root_directory_path.parts[-2:] == ("relative", "dir")

    def test_filters_are_normalized(self, base_options) -> None:
        base_options["test"]["spec_file_filters"] = ["legacy", re.compile(r"\.skip\."), lambda path: False]
        filters = resolve_configuration(base_options, environ={}).test.spec_file_filters

        assert isinstance(filters[0], LiteralFilter)
        assert isinstance(filters[1], PatternFilter)
        assert isinstance(filters[2], PredicateFilter)

    def test_invalid_filter_pattern(self, base_options) -> None:
        base_options["test"]["spec_file_filters"] = ["("]
        with pytest.raises(ConfigurationError):
            resolve_configuration(base_options, environ={})

    def test_empty_test_type_is_rejected(self, base_options) -> None:
        base_options["test"]["type"] = "  "
        with pytest.raises(ConfigurationError):
            resolve_configuration(base_options, environ={})

    def test_steps_are_extracted_per_phase(self, base_options) -> None:
        def first(context):
            pass

        def second(context):
            pass

        base_options["steps"] = {
            "pre_launch": [first, {"handler": second, "name": "named"}],
            "clean_up": [second],
        }
        resolved = resolve_options(base_options, environ={})

        assert [step.name for step in resolved.steps[Phase.PRE_LAUNCH]] == ["first", "named"]
        assert [step.handler for step in resolved.steps[Phase.CLEAN_UP]] == [second]
        assert resolved.steps[Phase.POST_EXECUTION] == []
        assert resolved.raw_options is base_options

    def test_configuration_is_frozen(self, base_options) -> None:
        configuration = resolve_configuration(base_options, environ={})
        with pytest.raises(AttributeError):
            configuration.test = None  # type: ignore[misc]
