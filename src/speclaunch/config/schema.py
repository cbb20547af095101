#
# src/speclaunch/config/schema.py
#
"""
Attrs models describing the programmatic options passed to `configure()`.

`validate()` structures the options mapping into `LaunchOptions`; the attrs
validators reject values of the wrong shape and the first failure becomes a
`ConfigurationError` carrying the dotted path of the field. Unknown keys are
tolerated and `None` counts as "not provided".
"""

import re
from collections.abc import Mapping, Sequence
from typing import Any, TypeVar

import attrs
from attrs import define, field, validators

from speclaunch.exceptions import ConfigurationError
from speclaunch.steps import Step

T = TypeVar("T")


# --- Validators ---
def _not_blank(inst: Any, attr: attrs.Attribute, value: str | None) -> None:
    if value is not None and not value.strip():
        raise ValueError(f"'{attr.name}' must not be blank", attr, value)


def _spec_file_filter(inst: Any, attr: attrs.Attribute, value: Any) -> None:
    if not (isinstance(value, str | re.Pattern) or callable(value)):
        raise TypeError(
            f"'{attr.name}' items must be strings, compiled patterns or callables (got {value!r})",
            attr,
            value,
        )


def _step(inst: Any, attr: attrs.Attribute, value: Any) -> None:
    if isinstance(value, Step) or callable(value):
        return
    if isinstance(value, Mapping) and callable(value.get("handler")):
        return
    raise TypeError(
        f"'{attr.name}' items must be callables or {{'handler': callable}} mappings (got {value!r})",
        attr,
        value,
    )


_LIST = validators.and_(
    validators.instance_of(Sequence),
    validators.not_(validators.instance_of((str, bytes)), msg="expected a list, not a string"),
)


def _list_of(member_validator: Any) -> Any:
    return validators.optional(
        validators.deep_iterable(member_validator=member_validator, iterable_validator=_LIST)
    )


def _required_string() -> Any:
    return field(validator=[validators.instance_of(str), _not_blank])


def _optional_string() -> Any:
    return field(default=None, validator=validators.optional(validators.instance_of(str)))


def _optional_bool() -> Any:
    return field(default=None, validator=validators.optional(validators.instance_of(bool)))


def _optional_mapping() -> Any:
    return field(default=None, validator=validators.optional(validators.instance_of(Mapping)))


def _section(cls: type, required: bool = False) -> Any:
    """A nested options section, structured recursively by `validate()`."""
    if required:
        return field(metadata={"section": cls})
    return field(default=None, metadata={"section": cls})


# --- Sections ---
@define(frozen=True, slots=True)
class ProjectOptions:
    root_directory_path: str = _required_string()


@define(frozen=True, slots=True)
class ReportsOptions:
    root_directory_path: str | None = _optional_string()


@define(frozen=True, slots=True)
class ReportToggles:
    junit_xml: bool | None = _optional_bool()
    html: bool | None = _optional_bool()


@define(frozen=True, slots=True)
class SuiteOptions:
    type: str = _required_string()
    spec_dir_path: str | None = _optional_string()
    spec_file_filters: Sequence[Any] | None = field(default=None, validator=_list_of(_spec_file_filter))
    reports: ReportToggles | None = _section(ReportToggles)
    engine_options: Mapping[str, Any] | None = _optional_mapping()


@define(frozen=True, slots=True)
class CoverageOptions:
    enabled: bool | None = _optional_bool()
    excludes: Sequence[str] | None = field(default=None, validator=_list_of(validators.instance_of(str)))
    report_directory: str | None = field(
        default=None, validator=validators.optional(validators.and_(validators.instance_of(str), _not_blank))
    )
    engine_options: Mapping[str, Any] | None = _optional_mapping()


@define(frozen=True, slots=True)
class StepsOptions:
    pre_launch: Sequence[Any] | None = field(default=None, validator=_list_of(_step))
    pre_test_launch: Sequence[Any] | None = field(default=None, validator=_list_of(_step))
    post_execution: Sequence[Any] | None = field(default=None, validator=_list_of(_step))
    clean_up: Sequence[Any] | None = field(default=None, validator=_list_of(_step))


@define(frozen=True, slots=True)
class LaunchOptions:
    """Typed view of a valid options mapping."""

    project: ProjectOptions = _section(ProjectOptions, required=True)
    test: SuiteOptions = _section(SuiteOptions, required=True)
    coverage: CoverageOptions = _section(CoverageOptions, required=True)
    reports: ReportsOptions | None = _section(ReportsOptions)
    steps: StepsOptions | None = _section(StepsOptions)
    developer_mode: bool | None = _optional_bool()


# --- Structuring ---
def _failed_attribute(error: Exception) -> attrs.Attribute | None:
    return next((arg for arg in error.args if isinstance(arg, attrs.Attribute)), None)


def _structure(cls: type[T], value: Any, path: str) -> T:
    label = path or "options"
    if not isinstance(value, Mapping):
        raise ConfigurationError(f"Expected a mapping, got {type(value).__name__}", path=label)

    kwargs: dict[str, Any] = {}
    for attribute in attrs.fields(cls):
        sub_path = f"{path}.{attribute.name}" if path else attribute.name
        item = value.get(attribute.name)
        if item is None:
            if attribute.default is attrs.NOTHING:
                raise ConfigurationError("Missing required value", path=sub_path)
            continue
        section = attribute.metadata.get("section")
        kwargs[attribute.name] = _structure(section, item, sub_path) if section else item

    try:
        return cls(**kwargs)
    except (TypeError, ValueError) as e:
        failed = _failed_attribute(e)
        sub_path = label
        if failed is not None:
            sub_path = f"{path}.{failed.name}" if path else failed.name
        message = e.args[0] if e.args else str(e)
        raise ConfigurationError(str(message), path=sub_path, details=e) from e


def validate(options: Any) -> LaunchOptions:
    """Structures the options into `LaunchOptions` or raises ConfigurationError."""
    return _structure(LaunchOptions, options, "")

# 🔼⚙️
