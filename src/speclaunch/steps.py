# src/speclaunch/steps.py

"""
Step pipeline: ordered execution of the internal and external steps of a phase.
"""

import inspect
from collections.abc import Callable, Mapping
from enum import Enum
from typing import TYPE_CHECKING, Any, Optional, TypeAlias

import attrs
import structlog

from speclaunch.exceptions import StepExecutionError
from speclaunch.telemetry import StructLogger

if TYPE_CHECKING:
    from speclaunch.runtime.launcher import Launcher

log: StructLogger = structlog.get_logger("steps")


class Phase(Enum):
    """Named points of the run lifecycle that own a step list."""

    PRE_LAUNCH = "pre_launch"  # Before anything, including coverage.
    PRE_TEST_LAUNCH = "pre_test_launch"  # After coverage started, before the tests.
    POST_EXECUTION = "post_execution"  # After the execution engine completed.
    CLEAN_UP = "clean_up"  # Always executed.


StepHandler: TypeAlias = Callable[["StepExecutionContext"], Any]
ExitCodeSetter: TypeAlias = Callable[[int], None]


@attrs.define(frozen=True, slots=True)
class Step:
    handler: StepHandler
    name: str = attrs.field(default="")

    def __attrs_post_init__(self) -> None:
        if not self.name:
            object.__setattr__(self, "name", getattr(self.handler, "__name__", repr(self.handler)))

    @classmethod
    def coerce(cls, value: Any) -> Optional["Step"]:
        """Builds a Step from a Step, a callable or a {'handler': ...} mapping."""
        if isinstance(value, Step):
            return value
        if isinstance(value, Mapping):
            handler = value.get("handler")
            if callable(handler):
                return cls(handler=handler, name=value.get("name") or "")
            return None
        if callable(value):
            return cls(handler=value)
        return None


@attrs.define(frozen=True, slots=True)
class StepResult:
    """Optional value a handler can return; `stop_workflow` skips the remaining steps."""

    stop_workflow: bool = False


@attrs.define(slots=False)
class StepExecutionContext:
    """
    The object handed to every step of one phase invocation.

    Steps may attach arbitrary attributes to it for the steps that follow,
    e.g. `context.test_succeed`. `execution_context` is shared by the whole run.
    """

    launcher: "Launcher"
    logger: Any
    execution_context: dict[str, Any] = attrs.field(factory=dict)
    phase: Phase | None = attrs.field(default=None)
    exit_code_setter: ExitCodeSetter | None = attrs.field(default=None, repr=False)

    def set_exit_code(self, code: int) -> None:
        """Overrides the run exit code. Only honoured during post_execution."""
        if self.exit_code_setter is None:
            self.logger.warning(
                "Exit code can only be changed during post_execution; ignoring",
                phase=self.phase.value if self.phase else None,
                code=code,
            )
            return
        if isinstance(code, bool) or not isinstance(code, int):
            self.logger.warning("Ignoring non-integer exit code", code=repr(code))
            return
        self.exit_code_setter(code)


def _stops_workflow(result: Any) -> bool:
    if result is None:
        return False
    if isinstance(result, Mapping):
        return result.get("stop_workflow") is True
    return getattr(result, "stop_workflow", False) is True


class StepPipeline:
    """Holds the step lists of every phase and runs them."""

    def __init__(self) -> None:
        self._internal: dict[Phase, list[Step]] = {phase: [] for phase in Phase}
        self._external: dict[Phase, list[Step]] = {phase: [] for phase in Phase}

    def register_internal(self, phase: Phase, handler: StepHandler, name: str) -> None:
        """Registers a built-in step; internal steps run first, sorted by name."""
        self._internal[phase].append(Step(handler=handler, name=name))
        self._internal[phase].sort(key=lambda step: step.name)

    def register(self, phase: Phase, value: Any) -> bool:
        """Appends an external step. Values that are not steps are ignored."""
        step = Step.coerce(value)
        if step is None:
            log.debug("Ignoring non-callable step registration", phase=phase.value, value=repr(value))
            return False
        self._external[phase].append(step)
        return True

    def clear_external(self) -> None:
        for steps in self._external.values():
            steps.clear()

    def steps_for(self, phase: Phase) -> list[Step]:
        return [*self._internal[phase], *self._external[phase]]

    async def run_phase(
        self,
        phase: Phase,
        context: StepExecutionContext,
        *,
        stop_on_error: bool = True,
        set_exit_code: ExitCodeSetter | None = None,
    ) -> None:
        """
        Runs the steps of `phase` one after the other with the same context.

        With `stop_on_error` the first failure is raised immediately. Without
        it every step runs and the first failure is raised at the end.
        """
        steps = self.steps_for(phase)
        if not steps:
            return

        context.phase = phase
        context.exit_code_setter = set_exit_code
        phase_log = log.bind(phase=phase.value, step_count=len(steps))
        phase_log.debug("Running phase", stop_on_error=stop_on_error, emoji_key="step")

        errors: list[StepExecutionError] = []
        for index, step in enumerate(steps):
            try:
                result = step.handler(context)
                if inspect.isawaitable(result):
                    result = await result
            except Exception as e:
                error = StepExecutionError(phase, index, step.name, e)
                phase_log.error(
                    "Step failed",
                    step_index=index,
                    step_name=step.name,
                    error=str(e),
                    exc_info=True,
                )
                if stop_on_error:
                    raise error from e
                error.__cause__ = e
                errors.append(error)
                continue

            if _stops_workflow(result):
                phase_log.info(
                    "Step requested to stop the workflow",
                    step_index=index,
                    step_name=step.name,
                    skipped=len(steps) - index - 1,
                )
                break

        if errors:
            phase_log.warning("Phase completed with errors", error_count=len(errors))
            raise errors[0]
        phase_log.debug("Phase completed", emoji_key="step")

# 🔼⚙️
