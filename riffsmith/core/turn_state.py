"""
Generation turn state machine.

Explicit state transitions for one orchestrator turn.
Never set the orchestrator's state directly — always go through
assert_transition().

States:
    IDLE       — no turn in flight; the only state a turn may start from
    SUBMITTING — request built and sent; waiting for response headers
    STREAMING  — consuming ``data:`` frames into the accumulation buffer
    EXTRACTING — handing the accumulated text to the output extractor
    APPLYING   — loading the code into the engine and recording history
    EXECUTING  — asking the engine to run the applied code
    ERRORED    — a step failed; the placeholder message carries the error

Invariants:
    1. ERRORED is reachable from every non-IDLE state.
    2. Every turn ends in IDLE, from EXECUTING or from ERRORED.
    3. History is committed in APPLYING, so an EXECUTING failure never
       loses the code.
"""

from __future__ import annotations

import logging
from enum import Enum

logger = logging.getLogger(__name__)


class TurnState(str, Enum):
    """Orchestrator lifecycle states."""

    IDLE = "idle"
    SUBMITTING = "submitting"
    STREAMING = "streaming"
    EXTRACTING = "extracting"
    APPLYING = "applying"
    EXECUTING = "executing"
    ERRORED = "errored"


# Allowed transitions: from_state -> set of valid to_states.
_TRANSITIONS: dict[TurnState, frozenset[TurnState]] = {
    TurnState.IDLE: frozenset({TurnState.SUBMITTING}),
    TurnState.SUBMITTING: frozenset({TurnState.STREAMING, TurnState.ERRORED}),
    TurnState.STREAMING: frozenset({TurnState.EXTRACTING, TurnState.ERRORED}),
    TurnState.EXTRACTING: frozenset({TurnState.APPLYING, TurnState.ERRORED}),
    TurnState.APPLYING: frozenset({TurnState.EXECUTING, TurnState.ERRORED}),
    TurnState.EXECUTING: frozenset({TurnState.IDLE, TurnState.ERRORED}),
    TurnState.ERRORED: frozenset({TurnState.IDLE}),
}


class InvalidTransitionError(Exception):
    """Raised when a state transition violates the state machine."""

    def __init__(self, from_state: TurnState, to_state: TurnState):
        self.from_state = from_state
        self.to_state = to_state
        super().__init__(
            f"Invalid transition: {from_state.value} → {to_state.value}"
        )


def assert_transition(from_state: TurnState, to_state: TurnState) -> None:
    """
    Validate that a state transition is allowed.

    Raises InvalidTransitionError if the transition violates the state machine.
    """
    allowed = _TRANSITIONS.get(from_state, frozenset())
    if to_state not in allowed:
        raise InvalidTransitionError(from_state, to_state)


def is_in_flight(state: TurnState) -> bool:
    return state != TurnState.IDLE
