from __future__ import annotations

from enum import Enum


class ReplyKind(str, Enum):
    TICKET_SELECTION_REQUESTED = "TICKET_SELECTION_REQUESTED"
    CONFIRMATION_REQUESTED = "CONFIRMATION_REQUESTED"
    QUICK_TIME_REQUESTED = "QUICK_TIME_REQUESTED"
    LOGGED = "LOGGED"
    LOG_FAILED = "LOG_FAILED"
    CANCELLED = "CANCELLED"
    SESSION_EXPIRED = "SESSION_EXPIRED"
    INVALID_DATE = "INVALID_DATE"
    FUTURE_DATE = "FUTURE_DATE"
    MISSING_HOURS = "MISSING_HOURS"
    INVALID_DURATION = "INVALID_DURATION"
    NO_TICKETS = "NO_TICKETS"
    UNKNOWN_ACTION = "UNKNOWN_ACTION"


class ActionKind(str, Enum):
    TICKET_SELECT = "ticket_select"
    CONFIRM = "confirm"
    CANCEL = "cancel"
    QUICK_LOG = "quick_log"
    QUICK_TIME = "quick_time"
    QUICK_CANCEL = "quick_cancel"


class DateError:
    NO_TEXT = "no date text provided"
    FUTURE = "future dates not allowed for time logging"
    UNPARSEABLE = "could not parse date"
