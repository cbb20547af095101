#
# src/speclaunch/state.py
#
"""
Lifecycle state of a launch run and its guarded transitions.
"""

from enum import Enum, auto

import structlog

from speclaunch.exceptions import InvalidStateTransitionError
from speclaunch.telemetry import StructLogger

log: StructLogger = structlog.get_logger("state")


class RunState(Enum):
    """Enumeration of the lifecycle states of a launcher."""

    NONE = auto()  # Not configured yet.
    READY = auto()  # Configured; start() allowed.
    RUNNING = auto()  # The execution engine has been started.
    POST_EXECUTION = auto()  # Engine completed; post_execution/clean_up running.
    SHUTTING_DOWN = auto()  # Terminal.


ALLOWED_TRANSITIONS: dict[RunState, frozenset[RunState]] = {
    RunState.NONE: frozenset({RunState.READY}),
    RunState.READY: frozenset({RunState.READY, RunState.RUNNING, RunState.SHUTTING_DOWN, RunState.NONE}),
    RunState.RUNNING: frozenset({RunState.POST_EXECUTION, RunState.SHUTTING_DOWN}),
    RunState.POST_EXECUTION: frozenset({RunState.SHUTTING_DOWN}),
    RunState.SHUTTING_DOWN: frozenset({RunState.READY, RunState.NONE}),
}


class LifecycleStateMachine:
    """Holds the current RunState. Only the launcher writes to it."""

    def __init__(self, initial: RunState = RunState.NONE):
        self._state = initial

    @property
    def state(self) -> RunState:
        return self._state

    def can_transition_to(self, target: RunState) -> bool:
        return target in ALLOWED_TRANSITIONS[self._state]

    def transition_to(self, target: RunState) -> None:
        """Moves to `target` or raises InvalidStateTransitionError."""
        if not self.can_transition_to(target):
            raise InvalidStateTransitionError(self._state, target)
        old_state = self._state
        self._state = target
        log.debug("Run state changed", old_state=old_state.name, new_state=target.name, emoji_key="state")

    def is_in(self, *states: RunState) -> bool:
        return self._state in states

# 🔼⚙️
