from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Optional, Protocol

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class Ticket:
    key: str
    summary: str = ""


@dataclass(frozen=True, slots=True)
class WorkLogResult:
    success: bool
    error: Optional[str] = None
    worklog_id: Optional[str] = None


@dataclass(frozen=True, slots=True)
class WorkLogCall:
    ticket_key: str
    hours: float
    description: str
    work_date: datetime


class TicketTrackerProtocol(Protocol):
    def log_work(
        self,
        ticket_key: str,
        hours: float,
        description: str,
        work_date: datetime,
    ) -> WorkLogResult: ...

    def list_assigned_tickets(self) -> list[Ticket]: ...


@dataclass(slots=True)
class InMemoryTicketTracker(TicketTrackerProtocol):
    """Tracker double that records every ``log_work`` call."""

    tickets: list[Ticket] = field(default_factory=list)
    fail_with: Optional[str] = None
    calls: list[WorkLogCall] = field(default_factory=list)

    def log_work(
        self,
        ticket_key: str,
        hours: float,
        description: str,
        work_date: datetime,
    ) -> WorkLogResult:
        self.calls.append(
            WorkLogCall(ticket_key=ticket_key, hours=hours, description=description, work_date=work_date)
        )
        if self.fail_with:
            return WorkLogResult(success=False, error=self.fail_with)
        worklog_id = str(len(self.calls))
        logger.debug("worklog-recorded ticket=%s hours=%s worklog_id=%s", ticket_key, hours, worklog_id)
        return WorkLogResult(success=True, worklog_id=worklog_id)

    def list_assigned_tickets(self) -> list[Ticket]:
        return list(self.tickets)
