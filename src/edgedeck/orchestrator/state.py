"""Run lifecycle state machine.

    IDLE -> STARTING -> RUNNING -> STOPPING -> EXITED
                 \\______________/

STARTING may go straight to STOPPING (interrupted before ready), and any
live state may go straight to EXITED when a process dies on its own.
Observers (the display, the CLI) are notified after every transition.
"""

import logging
from collections.abc import Callable
from enum import Enum

logger = logging.getLogger(__name__)


class RunState(Enum):
    IDLE = "idle"
    STARTING = "starting"
    RUNNING = "running"
    STOPPING = "stopping"
    EXITED = "exited"


_TRANSITIONS: dict[RunState, frozenset[RunState]] = {
    RunState.IDLE: frozenset({RunState.STARTING}),
    RunState.STARTING: frozenset({RunState.RUNNING, RunState.STOPPING, RunState.EXITED}),
    RunState.RUNNING: frozenset({RunState.STOPPING, RunState.EXITED}),
    RunState.STOPPING: frozenset({RunState.EXITED}),
    RunState.EXITED: frozenset(),
}

StateObserver = Callable[[RunState, RunState], None]
"""Called with (previous, current) after each transition."""


class IllegalTransition(RuntimeError):
    def __init__(self, current: RunState, target: RunState) -> None:
        super().__init__(f"Cannot go from {current.value} to {target.value}")
        self.current = current
        self.target = target


class RunStateMachine:
    """Single owner of the run state.

    Example:
        >>> sm = RunStateMachine()
        >>> sm.transition(RunState.STARTING)
        >>> sm.mark_ready()
        True
        >>> sm.mark_ready()
        False
    """

    def __init__(self) -> None:
        self._state = RunState.IDLE
        self._observers: list[StateObserver] = []

    @property
    def state(self) -> RunState:
        return self._state

    def subscribe(self, observer: StateObserver) -> None:
        self._observers.append(observer)

    def can_transition(self, target: RunState) -> bool:
        return target in _TRANSITIONS[self._state]

    def transition(self, target: RunState) -> None:
        """Move to ``target``.

        Raises:
            IllegalTransition: If the move is not allowed from the current state
        """
        if not self.can_transition(target):
            raise IllegalTransition(self._state, target)
        previous, self._state = self._state, target
        logger.debug("Run state %s -> %s", previous.value, target.value)
        for observer in list(self._observers):
            observer(previous, target)

    def mark_ready(self) -> bool:
        """STARTING -> RUNNING. True only for the call that made the move."""
        if self._state is not RunState.STARTING:
            return False
        self.transition(RunState.RUNNING)
        return True

    def request_stop(self) -> bool:
        """Move to STOPPING if still live. False if already stopping or done."""
        if not self.can_transition(RunState.STOPPING):
            return False
        self.transition(RunState.STOPPING)
        return True

    def mark_exited(self) -> None:
        if self._state is not RunState.EXITED:
            self.transition(RunState.EXITED)
