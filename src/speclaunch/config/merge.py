#
# src/speclaunch/config/merge.py
#
"""
Recursive merge used by the configuration resolution pipeline.
"""

from collections.abc import Mapping
from typing import Any


def merge_ignore_none(*sources: Mapping[str, Any] | None) -> dict[str, Any]:
    """
    Deep-merges mappings from left to right into a new dict.

    Later sources win, except that a `None` value never overwrites what is
    already there. Nested mappings are merged key by key; any other value
    (lists included) replaces the previous one. None of the sources is mutated.
    """
    merged: dict[str, Any] = {}
    for source in sources:
        if source is None:
            continue
        _merge_into(merged, source)
    return merged


def _merge_into(target: dict[str, Any], source: Mapping[str, Any]) -> None:
    for key, value in source.items():
        if value is None:
            continue
        current = target.get(key)
        if isinstance(value, Mapping):
            if isinstance(current, dict):
                _merge_into(current, value)
            else:
                nested: dict[str, Any] = {}
                _merge_into(nested, value)
                target[key] = nested
        elif isinstance(value, list):
            target[key] = list(value)
        else:
            target[key] = value


def get_path(data: Mapping[str, Any], dotted_path: str, default: Any = None) -> Any:
    """Reads `a.b.c` out of nested mappings, returning `default` when absent."""
    current: Any = data
    for part in dotted_path.split("."):
        if not isinstance(current, Mapping) or part not in current:
            return default
        current = current[part]
    return current

# 🔼⚙️
