# src/speclaunch/exceptions.py

"""
Custom exception hierarchy for speclaunch.
"""

from typing import Any


class SpeclaunchError(Exception):
    """Base class for all speclaunch errors."""

    pass


class ConfigurationError(SpeclaunchError):
    """Raised when the launcher configuration is malformed."""

    def __init__(self, message: str, path: str | None = None, details: Exception | None = None):
        self.path = path
        self.details = details
        full_message = message
        if path:
            full_message = f"{message} (at '{path}')"
        super().__init__(full_message)
        if details is not None:
            self.add_note(f"Original error: {type(details).__name__}: {details}")


class LauncherStateError(SpeclaunchError):
    """Base class for lifecycle state violations."""

    pass


class LauncherNotReadyError(LauncherStateError):
    """Raised when start() is called before a successful configure()."""

    def __init__(self, current_state: Any):
        self.current_state = current_state
        super().__init__(f"Launcher not ready (current state: {current_state.name})")


class InvalidStateTransitionError(LauncherStateError):
    """Raised when a lifecycle transition is not allowed."""

    def __init__(self, current_state: Any, target_state: Any):
        self.current_state = current_state
        self.target_state = target_state
        super().__init__(
            f"Cannot transition from {current_state.name} to {target_state.name}"
        )


class StepExecutionError(SpeclaunchError):
    """Raised when a step handler fails during a phase."""

    def __init__(self, phase: Any, index: int, step_name: str, details: BaseException):
        self.phase = phase
        self.index = index
        self.step_name = step_name
        self.details = details
        phase_name = getattr(phase, "value", phase)
        super().__init__(
            f"[{phase_name}] Step {index} ('{step_name}') failed: {details}"
        )
        self.add_note(f"Original error: {type(details).__name__}: {details}")


class SpecFileFilterError(SpeclaunchError):
    """Raised when a spec file filter fails; aborts the whole filter chain."""

    def __init__(self, filter_index: int, file_path: str, details: BaseException):
        self.filter_index = filter_index
        self.file_path = file_path
        self.details = details
        super().__init__(f"Filter {filter_index} failed on '{file_path}': {details}")


class EngineError(SpeclaunchError):
    """Base class for collaborator (execution or coverage engine) failures."""

    pass


class ExecutionEngineError(EngineError):
    """The test execution engine failed."""

    pass


class CoverageEngineError(EngineError):
    """The coverage engine failed."""

    pass


# 🔼⚙️
