"""Dispatch state machine definitions."""

from enum import Enum


class DispatchState(str, Enum):
    """States of one dispatch cycle."""

    IDLE = "IDLE"
    AWAITING_LOAD_DELAY = "AWAITING_LOAD_DELAY"
    AWAITING_PRIMARY_SELECTOR = "AWAITING_PRIMARY_SELECTOR"
    AWAITING_SECONDARY_SELECTOR = "AWAITING_SECONDARY_SELECTOR"
    EXTRACTING_FROM_CONTENT = "EXTRACTING_FROM_CONTENT"
    EXTRACTING_FROM_URL = "EXTRACTING_FROM_URL"
    RESOLVING_TOKEN_ID = "RESOLVING_TOKEN_ID"
    RESOLVED = "RESOLVED"
    FAILED = "FAILED"


# Terminal states reachable from any state
TERMINAL_STATES = {DispatchState.RESOLVED, DispatchState.FAILED}

# Normal state transitions (TERMINAL_STATES are always valid in addition to these)
STATE_TRANSITIONS: dict[DispatchState, list[DispatchState]] = {
    DispatchState.IDLE: [
        DispatchState.AWAITING_LOAD_DELAY,
        DispatchState.AWAITING_PRIMARY_SELECTOR,
        DispatchState.EXTRACTING_FROM_URL,
        DispatchState.RESOLVING_TOKEN_ID,
    ],
    DispatchState.AWAITING_LOAD_DELAY: [
        DispatchState.AWAITING_PRIMARY_SELECTOR,
        DispatchState.EXTRACTING_FROM_URL,
        DispatchState.RESOLVING_TOKEN_ID,
    ],
    DispatchState.AWAITING_PRIMARY_SELECTOR: [
        DispatchState.AWAITING_SECONDARY_SELECTOR,
        DispatchState.EXTRACTING_FROM_CONTENT,
        DispatchState.RESOLVING_TOKEN_ID,
    ],
    DispatchState.EXTRACTING_FROM_CONTENT: [DispatchState.AWAITING_SECONDARY_SELECTOR],
    DispatchState.AWAITING_SECONDARY_SELECTOR: [DispatchState.EXTRACTING_FROM_CONTENT],
    DispatchState.EXTRACTING_FROM_URL: [],
    DispatchState.RESOLVING_TOKEN_ID: [],
}
