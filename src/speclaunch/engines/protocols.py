#
# src/speclaunch/engines/protocols.py
#
"""
Defines the protocols of the collaborators driven by the launcher.
"""
from collections.abc import Mapping, Sequence
from pathlib import Path
from typing import Any, Protocol, runtime_checkable

from speclaunch.engines.coverage_session import CoverageSession


class CompletionCallback(Protocol):
    def __call__(self, passed: bool, error: BaseException | None = None) -> None: ...


@runtime_checkable
class ExecutionEngine(Protocol):
    """
    Protocol for the engine that discovers and runs the spec files.
    """
    async def discover_spec_files(self, configuration: Mapping[str, Any]) -> list[str]:
        """
        Lists the candidate spec files before filtering.

        Args:
            configuration: The engine configuration built by the launcher.

        Returns:
            The spec file paths, in a stable order.
        """
        ...

    async def start(
        self,
        spec_files: Sequence[str],
        configuration: Mapping[str, Any],
        execution_context: dict[str, Any],
        on_complete: CompletionCallback,
    ) -> None:
        """
        Starts the execution and returns without waiting for it to finish.

        `on_complete` must be called exactly once, with `passed` telling
        whether every spec succeeded, or with `error` when the engine itself
        broke down.
        """
        ...


@runtime_checkable
class CoverageEngine(Protocol):
    """
    Protocol for the engine that instruments code and writes coverage reports.
    """
    async def start(self, session: CoverageSession) -> None:
        """Begins collecting into `session`."""
        ...

    async def stop(self, session: CoverageSession) -> None:
        """Stops collecting and stores the measured data in `session`. Idempotent."""
        ...

    async def write_reports(self, session: CoverageSession, report_dir: Path) -> None:
        """Writes the summary, the data file and any configured report into `report_dir`."""
        ...

# 🔼⚙️
