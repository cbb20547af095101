# tests/conftest.py

import asyncio
from pathlib import Path
from typing import Any

import pytest

from speclaunch.engines import CoverageSession
from speclaunch.runtime import Launcher


class StubExecutionEngine:
    """Execution engine double: returns canned spec files and a canned outcome."""

    def __init__(
        self,
        spec_files: list[str] | None = None,
        passed: bool = True,
        error: BaseException | None = None,
        start_error: BaseException | None = None,
    ):
        self.spec_files = list(spec_files or [])
        self.passed = passed
        self.error = error
        self.start_error = start_error
        self.discover_configurations: list[dict[str, Any]] = []
        self.started_with: list[str] | None = None
        self.start_configuration: dict[str, Any] | None = None
        self.execution_context: dict[str, Any] | None = None

    async def discover_spec_files(self, configuration):
        self.discover_configurations.append(dict(configuration))
        return list(self.spec_files)

    async def start(self, spec_files, configuration, execution_context, on_complete):
        if self.start_error is not None:
            raise self.start_error
        self.started_with = list(spec_files)
        self.start_configuration = dict(configuration)
        self.execution_context = execution_context
        asyncio.get_running_loop().call_soon(on_complete, self.passed, self.error)


class StubCoverageEngine:
    """Coverage engine double recording the calls it receives."""

    def __init__(self, write_error: BaseException | None = None):
        self.write_error = write_error
        self.calls: list[str] = []
        self.report_dirs: list[Path] = []

    async def start(self, session: CoverageSession) -> None:
        self.calls.append("start")
        session.active = True

    async def stop(self, session: CoverageSession) -> None:
        self.calls.append("stop")
        session.active = False

    async def write_reports(self, session: CoverageSession, report_dir: Path) -> None:
        self.calls.append("write_reports")
        self.report_dirs.append(report_dir)
        if self.write_error is not None:
            raise self.write_error


@pytest.fixture
def execution_engine() -> StubExecutionEngine:
    return StubExecutionEngine(spec_files=["a.spec.py", "b.spec.py"])


@pytest.fixture
def coverage_engine() -> StubCoverageEngine:
    return StubCoverageEngine()


@pytest.fixture
def project_root(tmp_path: Path) -> Path:
    root = tmp_path / "project"
    root.mkdir()
    return root


@pytest.fixture
def base_options(project_root: Path) -> dict[str, Any]:
    """Minimal valid options for configure()."""
    return {
        "project": {"root_directory_path": str(project_root)},
        "test": {"type": "unit"},
        "coverage": {"enabled": False},
    }


@pytest.fixture
def launcher(execution_engine: StubExecutionEngine, coverage_engine: StubCoverageEngine) -> Launcher:
    """A launcher wired to the stub engines and isolated from os.environ."""
    return Launcher(
        execution_engine=execution_engine,
        coverage_engine=coverage_engine,
        environ={},
    )
