from __future__ import annotations

import json
from typing import Any, Optional

from core.enums import ActionKind
from core.models import ButtonAction

TICKET_SELECT = "ticket_select"
CONFIRM_PREFIX = "log_time_confirm_"
CANCEL_PREFIX = "log_time_cancel_"
QUICK_TIME_PREFIX = "quick_time_confirm_"
QUICK_CANCEL_PREFIX = "quick_log_cancel_"
QUICK_LOG_PREFIX = "quick_log_"

# quick_log_cancel_ shares the quick_log_ prefix and must be matched first.
_PREFIXES = (
    (CONFIRM_PREFIX, ActionKind.CONFIRM),
    (CANCEL_PREFIX, ActionKind.CANCEL),
    (QUICK_TIME_PREFIX, ActionKind.QUICK_TIME),
    (QUICK_CANCEL_PREFIX, ActionKind.QUICK_CANCEL),
)


def confirm_action_id(session_id: str) -> str:
    return f"{CONFIRM_PREFIX}{session_id}"


def cancel_action_id(session_id: str) -> str:
    return f"{CANCEL_PREFIX}{session_id}"


def quick_time_action_id(session_id: str) -> str:
    return f"{QUICK_TIME_PREFIX}{session_id}"


def quick_cancel_action_id(session_id: str) -> str:
    return f"{QUICK_CANCEL_PREFIX}{session_id}"


def quick_log_action_id(ticket_key: str) -> str:
    return f"{QUICK_LOG_PREFIX}{ticket_key}"


def ticket_select_value(ticket_key: str, session_id: str) -> str:
    return json.dumps({"ticketKey": ticket_key, "sessionId": session_id}, separators=(",", ":"))


def parse_action(action_id: str, value: Any = None) -> Optional[ButtonAction]:
    """Decode a button click into a :class:`ButtonAction`, or ``None`` if unrecognized."""
    text = str(action_id or "").strip()
    if not text:
        return None

    if text == TICKET_SELECT:
        return _parse_ticket_select(value)

    for prefix, kind in _PREFIXES:
        if text.startswith(prefix):
            session_id = text[len(prefix):]
            if not session_id:
                return None
            raw_value = None if value is None else str(value)
            return ButtonAction(kind=kind, session_id=session_id, value=raw_value)

    if text.startswith(QUICK_LOG_PREFIX):
        ticket_key = text[len(QUICK_LOG_PREFIX):]
        if not ticket_key:
            return None
        return ButtonAction(kind=ActionKind.QUICK_LOG, ticket_key=ticket_key)
    return None


def _parse_ticket_select(value: Any) -> Optional[ButtonAction]:
    if isinstance(value, dict):
        data = value
    else:
        try:
            data = json.loads(str(value or ""))
        except ValueError:
            return None
    if not isinstance(data, dict):
        return None
    ticket_key = str(data.get("ticketKey") or "").strip()
    session_id = str(data.get("sessionId") or "").strip()
    if not ticket_key or not session_id:
        return None
    return ButtonAction(kind=ActionKind.TICKET_SELECT, session_id=session_id, ticket_key=ticket_key)
