# Author: Futhark1393
# Description: Lifecycle state machine for a single acquisition session.
# States: NEW → INITIALIZED → COMPLETED

from enum import Enum, auto

from aqf.core.errors import AcquisitionStateError


class AcquisitionState(Enum):
    NEW = auto()
    INITIALIZED = auto()
    COMPLETED = auto()


# Valid transitions: from_state → set of allowed to_states.
# COMPLETED → COMPLETED is legal: complete() may be called again and
# overwrites the completion timestamp.
_TRANSITIONS: dict[AcquisitionState, set[AcquisitionState]] = {
    AcquisitionState.NEW: {AcquisitionState.INITIALIZED, AcquisitionState.COMPLETED},
    AcquisitionState.INITIALIZED: {AcquisitionState.COMPLETED},
    AcquisitionState.COMPLETED: {AcquisitionState.COMPLETED},
}


class SessionLifecycle:
    """
    Acquisition workflow state machine.

    Enforces: NEW → INITIALIZED → COMPLETED
    (NEW may jump straight to COMPLETED when initialization failed and the
    caller tears the session down.)
    """

    def __init__(self):
        self._state = AcquisitionState.NEW

    @property
    def state(self) -> AcquisitionState:
        return self._state

    def _transition(self, target: AcquisitionState) -> None:
        allowed = _TRANSITIONS.get(self._state, set())
        if target not in allowed:
            raise AcquisitionStateError(
                f"Illegal transition: {self._state.name} → {target.name}. "
                f"Allowed: {', '.join(s.name for s in allowed) or 'NONE'}"
            )
        self._state = target

    def require(self, *states: AcquisitionState) -> None:
        """Raise AcquisitionStateError unless the current state is one of *states*."""
        if self._state not in states:
            raise AcquisitionStateError(
                f"Operation not allowed in state {self._state.name}. "
                f"Expected: {', '.join(s.name for s in states)}"
            )

    # ── Public transition methods ───────────────────────────────────────

    def mark_initialized(self) -> None:
        """NEW → INITIALIZED"""
        self._transition(AcquisitionState.INITIALIZED)

    def mark_completed(self) -> None:
        """NEW|INITIALIZED|COMPLETED → COMPLETED"""
        self._transition(AcquisitionState.COMPLETED)
