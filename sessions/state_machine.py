from __future__ import annotations

STATE_NONE = "NONE"
STATE_AWAITING_TICKET_SELECTION = "AWAITING_TICKET_SELECTION"
STATE_AWAITING_CONFIRMATION = "AWAITING_CONFIRMATION"
STATE_AWAITING_QUICK_TIME = "AWAITING_QUICK_TIME"
STATE_FINALIZED = "FINALIZED"
STATE_CANCELLED = "CANCELLED"

ACTIVE_STATES = (
    STATE_AWAITING_TICKET_SELECTION,
    STATE_AWAITING_CONFIRMATION,
    STATE_AWAITING_QUICK_TIME,
)


def initial_state(has_hours: bool, has_ticket: bool) -> str:
    if has_ticket and has_hours:
        return STATE_AWAITING_CONFIRMATION
    if has_ticket:
        return STATE_AWAITING_QUICK_TIME
    if has_hours:
        return STATE_AWAITING_TICKET_SELECTION
    return STATE_NONE


def can_transition(current: str, target: str) -> bool:
    allowed: dict[str, set[str]] = {
        STATE_NONE: {STATE_AWAITING_TICKET_SELECTION, STATE_AWAITING_CONFIRMATION, STATE_AWAITING_QUICK_TIME},
        STATE_AWAITING_TICKET_SELECTION: {STATE_AWAITING_CONFIRMATION, STATE_CANCELLED},
        STATE_AWAITING_CONFIRMATION: {STATE_FINALIZED, STATE_CANCELLED},
        STATE_AWAITING_QUICK_TIME: {STATE_FINALIZED, STATE_CANCELLED},
        STATE_FINALIZED: set(),
        STATE_CANCELLED: set(),
    }
    return target in allowed.get(current, set())


def is_active(state: str) -> bool:
    return state in ACTIVE_STATES
