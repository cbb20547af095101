#
# src/speclaunch/engines/coverage_session.py
#
"""
The coverage accumulator of one run, passed explicitly to the coverage engine.
"""
from collections.abc import Iterable, Mapping
from pathlib import Path
from typing import Any

from attrs import field, mutable


@mutable(slots=True)
class CoverageSession:
    """
    Holds what a coverage engine needs to instrument the project and what it
    measured. Filled by the engine when collection stops, read back at report time.
    """
    root: Path = field()
    report_directory: Path = field()
    excludes: tuple[str, ...] = field(factory=tuple, converter=tuple)
    options: Mapping[str, Any] = field(factory=dict)
    active: bool = field(default=False)
    # Executed line numbers per measured file.
    lines: dict[str, list[int]] = field(factory=dict)

    def record(self, file_path: str, line_numbers: Iterable[int]) -> None:
        merged = set(self.lines.get(file_path, ()))
        merged.update(line_numbers)
        self.lines[file_path] = sorted(merged)

    @property
    def measured_files(self) -> list[str]:
        return sorted(self.lines)

    @property
    def total_executed_lines(self) -> int:
        return sum(len(numbers) for numbers in self.lines.values())

    def as_dict(self) -> dict[str, Any]:
        return {
            "root": str(self.root),
            "excludes": list(self.excludes),
            "files": {path: list(self.lines[path]) for path in self.measured_files},
        }

# 🔼⚙️
