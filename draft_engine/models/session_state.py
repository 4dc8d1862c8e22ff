"""
Session State - Per-unit edit session state machine
"""

from enum import Enum


class SessionState(str, Enum):
    """Edit session states"""

    IDLE = "idle"           # Created, nothing loaded yet
    LOADING = "loading"     # Reconciliation in flight
    READY = "ready"         # Working copy available for editing
    SAVING = "saving"       # Save pipeline running
    FAILED = "failed"       # Last save hit a storage error (edits kept)


# State transition rules
VALID_TRANSITIONS = {
    SessionState.IDLE: [SessionState.LOADING],
    SessionState.LOADING: [SessionState.READY, SessionState.IDLE],
    SessionState.READY: [SessionState.LOADING, SessionState.SAVING],
    SessionState.SAVING: [SessionState.READY, SessionState.FAILED],
    SessionState.FAILED: [SessionState.SAVING, SessionState.LOADING, SessionState.READY],
}


def is_busy_state(state: SessionState) -> bool:
    """Check if the session is loading or saving"""
    return state in [SessionState.LOADING, SessionState.SAVING]


def can_transition(from_state: SessionState, to_state: SessionState) -> bool:
    """Check if a state transition is valid"""
    return to_state in VALID_TRANSITIONS.get(from_state, [])
