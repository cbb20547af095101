#
# src/speclaunch/engines/pytest_engine.py
#
"""
Execution engine running the spec files with pytest, in-process.
"""
import asyncio
import functools
import importlib.util
from concurrent.futures import ThreadPoolExecutor
from collections.abc import Mapping, Sequence
from pathlib import Path
from typing import Any

import pytest
import structlog

from speclaunch.engines.protocols import CompletionCallback
from speclaunch.exceptions import ExecutionEngineError

log = structlog.get_logger("engines.pytest")

DEFAULT_SPEC_FILE_PATTERNS = ("test_*.py", "*_test.py")


class ExecutionContextPlugin:
    """Exposes the launcher's shared execution context to specs as a fixture."""

    def __init__(self, execution_context: dict[str, Any]):
        self._execution_context = execution_context

    @pytest.fixture
    def execution_context(self) -> dict[str, Any]:
        return self._execution_context


def _plugin_available(module_name: str) -> bool:
    return importlib.util.find_spec(module_name) is not None


class PytestExecutionEngine:
    """
    Implements the ExecutionEngine protocol on top of `pytest.main`.

    Each run gets its own worker thread, started after any coverage tracer
    was installed; the completion callback is invoked back on the loop.
    """
    def __init__(self) -> None:
        self._task: asyncio.Task[None] | None = None

    async def discover_spec_files(self, configuration: Mapping[str, Any]) -> list[str]:
        base_dir = Path(configuration.get("project_base_dir") or Path.cwd())
        spec_dir = base_dir / (configuration.get("spec_dir") or ".")
        patterns = configuration.get("spec_files") or DEFAULT_SPEC_FILE_PATTERNS

        def _walk() -> list[str]:
            if not spec_dir.is_dir():
                return []
            found = {str(path) for pattern in patterns for path in spec_dir.rglob(pattern) if path.is_file()}
            return sorted(found)

        spec_files = await asyncio.to_thread(_walk)
        log.debug("Discovered spec files", spec_dir=str(spec_dir), count=len(spec_files), emoji_key="engine")
        return spec_files

    def build_arguments(self, spec_files: Sequence[str], configuration: Mapping[str, Any]) -> list[str]:
        args = list(spec_files)
        if configuration.get("stop_on_first_failure"):
            args.append("-x")
        if not configuration.get("random"):
            args.extend(["-p", "no:randomly"])
        elif not _plugin_available("pytest_randomly"):
            log.warning("Random order requested but pytest-randomly is not installed", emoji_key="engine")

        reports = configuration.get("reports") or {}
        if junit_path := reports.get("junit_xml"):
            args.append(f"--junitxml={junit_path}")
        if html_path := reports.get("html"):
            if _plugin_available("pytest_html"):
                args.extend([f"--html={html_path}", "--self-contained-html"])
            else:
                log.warning("HTML report requested but pytest-html is not installed", emoji_key="engine")

        args.extend(configuration.get("args") or ())
        return args

    async def start(
        self,
        spec_files: Sequence[str],
        configuration: Mapping[str, Any],
        execution_context: dict[str, Any],
        on_complete: CompletionCallback,
    ) -> None:
        loop = asyncio.get_running_loop()
        if not spec_files:
            log.warning("No spec files to execute", emoji_key="engine")
            loop.call_soon(on_complete, True)
            return

        args = self.build_arguments(spec_files, configuration)
        plugin = ExecutionContextPlugin(execution_context)
        self._task = asyncio.create_task(self._execute(args, plugin, on_complete))

    async def _execute(
        self,
        args: list[str],
        plugin: ExecutionContextPlugin,
        on_complete: CompletionCallback,
    ) -> None:
        runner_log = log.bind(arg_count=len(args))
        runner_log.info("Executing pytest", emoji_key="engine")
        loop = asyncio.get_running_loop()
        # A tracer set with threading.settrace only reaches threads started after it.
        executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix="speclaunch-pytest")
        try:
            exit_code = await loop.run_in_executor(executor, functools.partial(pytest.main, args, plugins=[plugin]))
        except Exception as e:
            runner_log.exception("An unexpected error occurred while running pytest")
            on_complete(False, ExecutionEngineError(f"pytest execution failed: {e}"))
            return
        finally:
            executor.shutdown(wait=False)

        passed = int(exit_code) == int(pytest.ExitCode.OK)
        runner_log.info("pytest finished", exit_code=int(exit_code), success=passed, emoji_key="engine")
        on_complete(passed)

# 🔼⚙️
