# src/speclaunch/runtime/launcher.py

"""
High-level controller of a test run.
Wires configuration, the step pipeline, the lifecycle state and the engines.
"""

import asyncio
from collections.abc import Mapping, Sequence
from pathlib import Path
from typing import Any

import structlog
from attrs import define, field

from speclaunch.config import LaunchConfiguration, ResolvedOptions, merge_ignore_none, resolve_options
from speclaunch.engines import (
    CoverageEngine,
    CoverageSession,
    ExecutionEngine,
    get_coverage_engine,
    get_execution_engine,
)
from speclaunch.exceptions import (
    InvalidStateTransitionError,
    LauncherNotReadyError,
    LauncherStateError,
)
from speclaunch.filters import filter_spec_files
from speclaunch.state import LifecycleStateMachine, RunState
from speclaunch.steps import Phase, StepExecutionContext, StepHandler, StepPipeline
from speclaunch.telemetry import StructLogger

log: StructLogger = structlog.get_logger("runtime.launcher")

EXIT_SUCCESS = 0
EXIT_FAILURE = 1


@define(frozen=True, slots=True)
class LaunchResult:
    """Terminal outcome handed back to the host, which decides how to exit."""
    state: RunState
    exit_code: int
    error: BaseException | None = field(default=None)

    @property
    def succeeded(self) -> bool:
        return self.exit_code == EXIT_SUCCESS


class Launcher:
    """
    Runs one test session:
    configure -> start -> (engine runs) -> post_execution -> clean_up -> shutdown.
    """

    def __init__(
        self,
        execution_engine: ExecutionEngine | None = None,
        coverage_engine: CoverageEngine | None = None,
        environ: Mapping[str, str] | None = None,
    ):
        self.logger = log
        self.execution_engine = execution_engine
        self.coverage_engine = coverage_engine
        self._environ = environ
        self._lifecycle = LifecycleStateMachine()
        self._pipeline = StepPipeline()
        self._resolved: ResolvedOptions | None = None
        self.execution_context: dict[str, Any] = {}
        self._reset_run_state()
        self._register_internal_steps()

    def _reset_run_state(self) -> None:
        self._exit_code = EXIT_SUCCESS
        self._error: BaseException | None = None
        self._spec_files: list[str] = []
        self._coverage_session: CoverageSession | None = None
        self._last_execution_success = False
        self._execution_error: BaseException | None = None
        self._execution_done: asyncio.Event | None = None
        self._finish_task: asyncio.Task[None] | None = None

    def _register_internal_steps(self) -> None:
        self._pipeline.register_internal(Phase.POST_EXECUTION, self._save_coverage_step, "builtin_save_coverage")
        self._pipeline.register_internal(Phase.CLEAN_UP, self._stop_coverage_step, "builtin_stop_coverage")

    # --- State and configuration accessors ---

    @property
    def state(self) -> RunState:
        return self._lifecycle.state

    @property
    def exit_code(self) -> int:
        return self._exit_code

    @property
    def result(self) -> LaunchResult:
        return LaunchResult(state=self.state, exit_code=self._exit_code, error=self._error)

    @property
    def configuration(self) -> LaunchConfiguration:
        if self._resolved is None:
            raise LauncherNotReadyError(self.state)
        return self._resolved.configuration

    @property
    def input_options(self) -> Mapping[str, Any] | None:
        """The options given to the last successful configure()."""
        return self._resolved.raw_options if self._resolved else None

    @property
    def spec_files(self) -> list[str]:
        """Spec files handed to the execution engine, after filtering."""
        return list(self._spec_files)

    @property
    def coverage_session(self) -> CoverageSession | None:
        return self._coverage_session

    @property
    def project_root_dir_path(self) -> Path:
        return self.configuration.project.root_directory_path

    @property
    def test_type(self) -> str:
        return self.configuration.test.type

    @property
    def root_report_path(self) -> Path:
        return self.configuration.root_report_path

    @property
    def root_report_test_path(self) -> Path:
        return self.configuration.root_report_test_path

    @property
    def spec_dir_path(self) -> str:
        """Directory of the spec files, relative to the project root."""
        configured = self.configuration.test.spec_dir_path
        if configured:
            return configured
        if self.is_developer_mode_enabled:
            return "./"
        return f"tests/{self.test_type}"

    @property
    def is_code_coverage_enabled(self) -> bool:
        return self.configuration.coverage.enabled

    @property
    def is_developer_mode_enabled(self) -> bool:
        return self.configuration.developer_mode

    def is_ready(self) -> bool:
        return self._lifecycle.is_in(RunState.READY)

    def is_running(self) -> bool:
        return self._lifecycle.is_in(RunState.RUNNING)

    def fetch_engine_configuration(self) -> dict[str, Any]:
        """Configuration handed to the execution engine; engine_options win."""
        configuration = self.configuration
        reports = configuration.test.reports
        report_root = self.root_report_test_path
        defaults = {
            "project_base_dir": str(self.project_root_dir_path),
            "spec_dir": self.spec_dir_path,
            "spec_files": ["test_*.py", "*_test.py"],
            "random": False,
            "stop_on_first_failure": False,
            "args": [],
            "reports": {
                "junit_xml": str(report_root / "junit" / "xml" / "results.xml") if reports.junit_xml else None,
                "html": str(report_root / "html" / "report.html") if reports.html else None,
            },
        }
        return merge_ignore_none(defaults, configuration.test.engine_options)

    def fetch_coverage_configuration(self) -> dict[str, Any]:
        """Configuration handed to the coverage engine; engine_options win."""
        coverage = self.configuration.coverage
        report_dir = str(self.configuration.coverage_report_path)
        defaults = {
            "instrumentation": {
                "root": str(self.project_root_dir_path),
                "excludes": list(coverage.excludes),
            },
            "reporting": {"print": "summary", "dir": report_dir},
            "reports": ["lcov"],
            "dir": report_dir,
        }
        return merge_ignore_none(defaults, coverage.engine_options)

    # --- Step registration ---

    def with_pre_launch_step(self, handler: StepHandler) -> "Launcher":
        self._pipeline.register(Phase.PRE_LAUNCH, handler)
        return self

    def with_pre_test_launch_step(self, handler: StepHandler) -> "Launcher":
        self._pipeline.register(Phase.PRE_TEST_LAUNCH, handler)
        return self

    def with_post_execution_step(self, handler: StepHandler) -> "Launcher":
        self._pipeline.register(Phase.POST_EXECUTION, handler)
        return self

    def with_clean_up_step(self, handler: StepHandler) -> "Launcher":
        self._pipeline.register(Phase.CLEAN_UP, handler)
        return self

    # --- Lifecycle ---

    async def configure(self, options: Mapping[str, Any]) -> None:
        """Validates and merges `options`; the launcher is READY on success."""
        if self._lifecycle.is_in(RunState.RUNNING, RunState.POST_EXECUTION):
            raise InvalidStateTransitionError(self.state, RunState.READY)

        resolved = resolve_options(options, self._environ)

        self._resolved = resolved
        for phase, steps in resolved.steps.items():
            for step in steps:
                self._pipeline.register(phase, step)
        self._reset_run_state()
        self._lifecycle.transition_to(RunState.READY)
        log.info(
            "Launcher configured",
            project_root=str(resolved.configuration.project.root_directory_path),
            test_type=resolved.configuration.test.type,
            coverage_enabled=resolved.configuration.coverage.enabled,
            emoji_key="config",
        )

    def reset(self) -> None:
        """Drops the configuration and every external step; back to NONE."""
        if self._lifecycle.is_in(RunState.RUNNING, RunState.POST_EXECUTION):
            raise InvalidStateTransitionError(self.state, RunState.NONE)
        self._pipeline.clear_external()
        self._resolved = None
        self.execution_context = {}
        self._reset_run_state()
        if not self._lifecycle.is_in(RunState.NONE):
            self._lifecycle.transition_to(RunState.NONE)

    async def start(self) -> None:
        """
        Runs the setup phases and starts the execution engine.

        Returns once the engine has started; completion is handled in the
        background. On any setup failure the clean_up phase runs, the launcher
        shuts down with exit code 1 and the error is re-raised.
        """
        if self.is_running():
            log.info("Launcher already running")
            return
        if not self.is_ready():
            log.error("Launcher not ready", state=self.state.name)
            raise LauncherNotReadyError(self.state)

        try:
            await self._prepare_execution()
            await self._pipeline.run_phase(Phase.PRE_LAUNCH, self._create_step_context())
            if self.is_code_coverage_enabled:
                await self._start_coverage()
            await self._pipeline.run_phase(Phase.PRE_TEST_LAUNCH, self._create_step_context())
            await self._start_execution()
        except Exception as e:
            log.error("Failed to start the run", error=str(e), exc_info=True)
            await self._abort_run(e)
            raise

        self._lifecycle.transition_to(RunState.RUNNING)
        self._finish_task = asyncio.create_task(self._await_execution())

    async def wait_closed(self) -> LaunchResult:
        """Waits until the launcher reaches SHUTTING_DOWN and returns the result."""
        if self._finish_task is not None:
            await asyncio.shield(self._finish_task)
        elif not self._lifecycle.is_in(RunState.SHUTTING_DOWN):
            raise LauncherStateError(f"Launcher has not been started (state: {self.state.name})")
        return self.result

    async def run(self) -> LaunchResult:
        """Same as start() + wait_closed(), but a failed start yields a result instead of raising."""
        try:
            await self.start()
        except Exception as e:
            log.error("Failed to start", error=str(e))
            self._error = e
            self._exit_code = EXIT_FAILURE
            return self.result
        return await self.wait_closed()

    async def filter_spec_files(self, file_paths: Sequence[str]) -> list[str]:
        """Applies the configured spec file filters, keeping input order."""
        return await filter_spec_files(file_paths, self.configuration.test.spec_file_filters)

    # --- Internals ---

    def _create_step_context(self) -> StepExecutionContext:
        return StepExecutionContext(
            launcher=self,
            logger=self.logger,
            execution_context=self.execution_context,
        )

    def _set_exit_code(self, code: int) -> None:
        log.debug("Exit code overridden by step", old_code=self._exit_code, new_code=code)
        self._exit_code = code

    def _get_execution_engine(self) -> ExecutionEngine:
        if self.execution_engine is None:
            self.execution_engine = get_execution_engine()
        return self.execution_engine

    def _get_coverage_engine(self) -> CoverageEngine:
        if self.coverage_engine is None:
            self.coverage_engine = get_coverage_engine()
        return self.coverage_engine

    async def _prepare_execution(self) -> None:
        engine = self._get_execution_engine()
        discovered = await engine.discover_spec_files(self.fetch_engine_configuration())
        self._spec_files = await self.filter_spec_files(discovered)
        log.debug(
            "Spec files selected",
            discovered=len(discovered),
            selected=len(self._spec_files),
            files=self._spec_files,
        )

    async def _start_coverage(self) -> None:
        options = self.fetch_coverage_configuration()
        self._coverage_session = CoverageSession(
            root=self.project_root_dir_path,
            report_directory=self.configuration.coverage_report_path,
            excludes=self.configuration.coverage.excludes,
            options=options,
        )
        await self._get_coverage_engine().start(self._coverage_session)

    async def _start_execution(self) -> None:
        self._execution_done = asyncio.Event()
        log.info("Start the execution", spec_files=len(self._spec_files), emoji_key="engine")
        await self._get_execution_engine().start(
            self._spec_files,
            self.fetch_engine_configuration(),
            self.execution_context,
            self._on_execution_complete,
        )

    def _on_execution_complete(self, passed: bool, error: BaseException | None = None) -> None:
        if self._execution_done is None or self._execution_done.is_set():
            log.warning("Ignoring duplicate execution completion", passed=passed)
            return
        self._last_execution_success = bool(passed)
        self._execution_error = error
        self._execution_done.set()

    async def _await_execution(self) -> None:
        if self._execution_done is None:
            raise LauncherStateError("Execution was never started")
        await self._execution_done.wait()
        try:
            await self._handle_execution_finished()
        except Exception as e:
            log.critical("Unexpected failure while finishing the run", error=str(e), exc_info=True)
            self._error = self._error or e
            self._exit_code = EXIT_FAILURE
            if self._lifecycle.can_transition_to(RunState.SHUTTING_DOWN):
                self._lifecycle.transition_to(RunState.SHUTTING_DOWN)

    async def _handle_execution_finished(self) -> None:
        if self._execution_error is not None:
            log.error(
                "Execution engine failed",
                error=str(self._execution_error),
                exc_info=self._execution_error,
                emoji_key="engine",
            )
            await self._abort_run(self._execution_error)
            return

        self._lifecycle.transition_to(RunState.POST_EXECUTION)
        success = self._last_execution_success
        log.debug("Execution engine completed", success=success)
        self._exit_code = EXIT_SUCCESS if success else EXIT_FAILURE

        context = self._create_step_context()
        context.test_succeed = success
        failures: list[Exception] = []
        try:
            await self._pipeline.run_phase(
                Phase.POST_EXECUTION,
                context,
                stop_on_error=False,
                set_exit_code=self._set_exit_code,
            )
        except Exception as e:
            failures.append(e)

        try:
            await self._pipeline.run_phase(Phase.CLEAN_UP, self._create_step_context(), stop_on_error=False)
        except Exception as e:
            failures.append(e)

        if failures:
            log.error("Something went wrong after the execution", error=str(failures[0]))
            self._error = failures[0]
            self._exit_code = EXIT_FAILURE

        self._lifecycle.transition_to(RunState.SHUTTING_DOWN)
        log.info("Launcher shutting down", exit_code=self._exit_code, emoji_key="state")

    async def _abort_run(self, error: BaseException) -> None:
        """Runs clean_up and shuts down with a failing exit code."""
        self._error = error
        self._exit_code = EXIT_FAILURE
        try:
            await self._pipeline.run_phase(Phase.CLEAN_UP, self._create_step_context(), stop_on_error=False)
        except Exception as e:
            log.error("Clean up failed", error=str(e))
        self._lifecycle.transition_to(RunState.SHUTTING_DOWN)
        log.info("Launcher shutting down", exit_code=self._exit_code, emoji_key="state")

    # --- Internal steps ---

    async def _save_coverage_step(self, context: StepExecutionContext) -> None:
        session = self._coverage_session
        if session is None or not self.is_code_coverage_enabled:
            return
        engine = self._get_coverage_engine()
        await engine.stop(session)
        report_dir = session.report_directory
        await asyncio.to_thread(report_dir.mkdir, parents=True, exist_ok=True)
        try:
            await engine.write_reports(session, report_dir)
        except Exception as e:
            context.logger.error("Fail to save coverage reports", error=str(e), exc_info=True)
            raise

    async def _stop_coverage_step(self, context: StepExecutionContext) -> None:
        session = self._coverage_session
        if session is not None and session.active:
            await self._get_coverage_engine().stop(session)

# 🔼⚙️
