"""Typed session payloads.

Each active conversation state carries its own payload shape. The stores only see
plain dicts; the conversation service decodes them with :func:`decode_payload`
keyed by the session state.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from typing import Any, Optional, Union

from sessions.state_machine import (
    STATE_AWAITING_CONFIRMATION,
    STATE_AWAITING_QUICK_TIME,
    STATE_AWAITING_TICKET_SELECTION,
)


@dataclass(frozen=True, slots=True)
class TicketPendingPayload:
    hours: float
    description: str = ""
    resolved_date: Optional[date] = None
    date_text: Optional[str] = None

    def with_ticket(self, ticket_key: str) -> "ConfirmationPendingPayload":
        return ConfirmationPendingPayload(
            ticket_key=ticket_key,
            hours=self.hours,
            description=self.description,
            resolved_date=self.resolved_date,
            date_text=self.date_text,
        )


@dataclass(frozen=True, slots=True)
class ConfirmationPendingPayload:
    ticket_key: str
    hours: float
    description: str = ""
    resolved_date: Optional[date] = None
    date_text: Optional[str] = None


@dataclass(frozen=True, slots=True)
class QuickTimePayload:
    ticket_key: str
    description: str = ""
    resolved_date: Optional[date] = None
    date_text: Optional[str] = None
    source: str = "quick_log"


SessionPayload = Union[TicketPendingPayload, ConfirmationPendingPayload, QuickTimePayload]


def encode_payload(payload: SessionPayload) -> dict[str, Any]:
    if not isinstance(payload, (TicketPendingPayload, ConfirmationPendingPayload, QuickTimePayload)):
        raise TypeError(f"unsupported payload type: {type(payload).__name__}")
    data: dict[str, Any] = {
        "description": payload.description,
        "resolved_date": payload.resolved_date.isoformat() if payload.resolved_date else None,
        "date_text": payload.date_text,
    }
    if isinstance(payload, TicketPendingPayload):
        data["hours"] = payload.hours
    elif isinstance(payload, ConfirmationPendingPayload):
        data["ticket_key"] = payload.ticket_key
        data["hours"] = payload.hours
    else:
        data["ticket_key"] = payload.ticket_key
        data["source"] = payload.source
    return data


def decode_payload(state: str, data: dict[str, Any]) -> SessionPayload | None:
    """Payload variant for ``state``, or ``None`` when the state or fields are unusable."""
    raw = data if isinstance(data, dict) else {}
    description = str(raw.get("description") or "")
    resolved_date = _to_date(raw.get("resolved_date"))
    date_text = _to_optional_str(raw.get("date_text"))

    if state == STATE_AWAITING_TICKET_SELECTION:
        hours = _to_hours(raw.get("hours"))
        if hours is None:
            return None
        return TicketPendingPayload(
            hours=hours,
            description=description,
            resolved_date=resolved_date,
            date_text=date_text,
        )

    if state == STATE_AWAITING_CONFIRMATION:
        hours = _to_hours(raw.get("hours"))
        ticket_key = _to_optional_str(raw.get("ticket_key"))
        if hours is None or ticket_key is None:
            return None
        return ConfirmationPendingPayload(
            ticket_key=ticket_key,
            hours=hours,
            description=description,
            resolved_date=resolved_date,
            date_text=date_text,
        )

    if state == STATE_AWAITING_QUICK_TIME:
        ticket_key = _to_optional_str(raw.get("ticket_key"))
        if ticket_key is None:
            return None
        return QuickTimePayload(
            ticket_key=ticket_key,
            description=description,
            resolved_date=resolved_date,
            date_text=date_text,
            source=str(raw.get("source") or "quick_log"),
        )
    return None


def _to_hours(value: Any) -> float | None:
    if value is None or isinstance(value, bool):
        return None
    try:
        hours = float(value)
    except (TypeError, ValueError):
        return None
    return hours if hours > 0 else None


def _to_date(value: Any) -> date | None:
    text = str(value or "").strip()
    if not text:
        return None
    try:
        return date.fromisoformat(text[:10])
    except ValueError:
        return None


def _to_optional_str(value: Any) -> str | None:
    text = str(value or "").strip()
    return text or None
