from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Iterable, Optional

from core.enums import ReplyKind
from core.models import Reply, ReplyAction, ResolvedDate
from worklog import action_ids
from worklog.tracker import Ticket

MAX_LABEL_LENGTH = 75

ICON_SETS: dict[str, dict[str, str]] = {
    "current": {
        "success": "✅",
        "error": "❌",
        "ticket": "🎫",
        "time": "⏱️",
        "cancelled": "🚫",
    },
    "large": {
        "success": "🟢✅",
        "error": "🔴❌",
        "ticket": "🎫📋",
        "time": "⏰⏱️",
        "cancelled": "🚫❌",
    },
    "small": {
        "success": "•",
        "error": "×",
        "ticket": "•",
        "time": "○",
        "cancelled": "×",
    },
    "none": {
        "success": "",
        "error": "",
        "ticket": "",
        "time": "",
        "cancelled": "",
    },
}

DEFAULT_QUICK_TIME_HOURS: tuple[float, ...] = (0.25, 0.5, 1, 1.5, 2, 3, 4, 8)

SESSION_EXPIRED_TEXT = "Session expired. Please try again."


@dataclass(frozen=True, slots=True)
class DisplayPreferences:
    icon_set: str = "current"

    def icon(self, name: str) -> str:
        icons = ICON_SETS.get(self.icon_set, ICON_SETS["current"])
        value = icons.get(name, "")
        return f"{value} " if value else ""


def _hours_text(hours: float) -> str:
    if float(hours).is_integer():
        return str(int(hours))
    return f"{hours:g}"


def quick_time_options(hours_values: Iterable[Any]) -> tuple[tuple[str, str], ...]:
    """Button (label, value) pairs for the duration picker, e.g. ("30 minutes", "0.5")."""
    options: list[tuple[str, str]] = []
    for raw in hours_values:
        try:
            hours = float(raw)
        except (TypeError, ValueError):
            raise ValueError(f"invalid quick time option: {raw!r}") from None
        if not 0 < hours < float("inf"):
            raise ValueError(f"invalid quick time option: {raw!r}")
        if hours < 1:
            label = f"{round(hours * 60)} minutes"
        elif hours == 1:
            label = "1 hour"
        else:
            label = f"{_hours_text(hours)} hours"
        options.append((label, _hours_text(hours)))
    return tuple(options)


QUICK_TIME_OPTIONS = quick_time_options(DEFAULT_QUICK_TIME_HOURS)


def _label(text: str) -> str:
    return text[:MAX_LABEL_LENGTH]


def _date_text(resolved: Optional[ResolvedDate]) -> str:
    if resolved is None or resolved.date is None:
        return "today"
    return resolved.display_text


def _description_line(description: str) -> str:
    return f"\nDescription: {description}" if description else ""


def build_ticket_selection(
    display: DisplayPreferences,
    session_id: str,
    hours: float,
    resolved: Optional[ResolvedDate],
    tickets: Iterable[Ticket],
) -> Reply:
    actions = [
        ReplyAction(
            label=_label(f"{ticket.key} - {ticket.summary}" if ticket.summary else ticket.key),
            action_id=action_ids.TICKET_SELECT,
            value=action_ids.ticket_select_value(ticket.key, session_id),
        )
        for ticket in tickets
    ]
    text = f"{display.icon('ticket')}Log {_hours_text(hours)} hours {_date_text(resolved)}\nSelect a ticket:"
    return Reply(kind=ReplyKind.TICKET_SELECTION_REQUESTED, text=text, session_id=session_id, actions=actions)


def build_confirmation(
    display: DisplayPreferences,
    session_id: str,
    ticket_key: str,
    hours: float,
    resolved: Optional[ResolvedDate],
    description: str,
) -> Reply:
    text = (
        f"{display.icon('time')}Confirm Time Log\n"
        f"Ticket: {ticket_key}\n"
        f"Hours: {_hours_text(hours)}\n"
        f"Date: {_date_text(resolved)}"
        f"{_description_line(description)}"
    )
    actions = [
        ReplyAction(label="Confirm", action_id=action_ids.confirm_action_id(session_id)),
        ReplyAction(label="Cancel", action_id=action_ids.cancel_action_id(session_id)),
    ]
    return Reply(kind=ReplyKind.CONFIRMATION_REQUESTED, text=text, session_id=session_id, actions=actions)


def build_quick_time(
    display: DisplayPreferences,
    session_id: str,
    ticket_key: str,
    options: Iterable[tuple[str, str]] = QUICK_TIME_OPTIONS,
) -> Reply:
    quick_time_id = action_ids.quick_time_action_id(session_id)
    actions = [ReplyAction(label=label, action_id=quick_time_id, value=value) for label, value in options]
    actions.append(ReplyAction(label="Cancel", action_id=action_ids.quick_cancel_action_id(session_id)))
    text = f"{display.icon('time')}Log time to {ticket_key}\nSelect duration:"
    return Reply(kind=ReplyKind.QUICK_TIME_REQUESTED, text=text, session_id=session_id, actions=actions)


def build_logged(
    display: DisplayPreferences,
    ticket_key: str,
    hours: float,
    resolved: Optional[ResolvedDate],
) -> Reply:
    text = f"{display.icon('success')}Successfully logged {_hours_text(hours)} hours to {ticket_key} on {_date_text(resolved)}"
    return Reply(kind=ReplyKind.LOGGED, text=text)


def build_log_failed(display: DisplayPreferences, error: str) -> Reply:
    return Reply(kind=ReplyKind.LOG_FAILED, text=f"{display.icon('error')}Failed to log time: {error}")


def build_cancelled(display: DisplayPreferences) -> Reply:
    return Reply(kind=ReplyKind.CANCELLED, text=f"{display.icon('cancelled')}Time logging cancelled.")


def build_session_expired(display: DisplayPreferences) -> Reply:
    return Reply(kind=ReplyKind.SESSION_EXPIRED, text=f"{display.icon('error')}{SESSION_EXPIRED_TEXT}")


def build_invalid_date(display: DisplayPreferences, date_text: str) -> Reply:
    text = (
        f"{display.icon('error')}I couldn't understand the date \"{date_text}\". "
        "Please use formats like \"yesterday\", \"last Friday\", or \"July 1st\"."
    )
    return Reply(kind=ReplyKind.INVALID_DATE, text=text)


def build_future_date(display: DisplayPreferences) -> Reply:
    text = f"{display.icon('error')}Cannot log time for future dates. Please specify a past date."
    return Reply(kind=ReplyKind.FUTURE_DATE, text=text)


def build_missing_hours(display: DisplayPreferences) -> Reply:
    text = f"{display.icon('error')}Please tell me how many hours to log, for example \"log 2 hours yesterday\"."
    return Reply(kind=ReplyKind.MISSING_HOURS, text=text)


def build_invalid_duration(display: DisplayPreferences) -> Reply:
    return Reply(kind=ReplyKind.INVALID_DURATION, text=f"{display.icon('error')}Please select a time duration.")


def build_no_tickets(display: DisplayPreferences) -> Reply:
    text = f"{display.icon('error')}No assigned tickets found. Please make sure you have tickets assigned."
    return Reply(kind=ReplyKind.NO_TICKETS, text=text)


def build_unknown_action(display: DisplayPreferences) -> Reply:
    return Reply(kind=ReplyKind.UNKNOWN_ACTION, text=f"{display.icon('error')}That action is no longer available.")
