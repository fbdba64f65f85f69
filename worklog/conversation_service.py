from __future__ import annotations

import logging
from datetime import date, datetime, timedelta, timezone
from typing import Any, Callable, Iterable, Optional
from zoneinfo import ZoneInfo

from core.enums import ActionKind, DateError
from core.models import ButtonAction, Reply, ResolvedDate, WorkLogIntent
from dates.resolver import resolve, resolved_for_date, started_at
from sessions.models import Session
from sessions.payloads import (
    ConfirmationPendingPayload,
    QuickTimePayload,
    TicketPendingPayload,
    decode_payload,
    encode_payload,
)
from sessions.repository_interface import SessionStoreProtocol
from sessions.state_machine import (
    STATE_AWAITING_CONFIRMATION,
    STATE_AWAITING_QUICK_TIME,
    STATE_AWAITING_TICKET_SELECTION,
    STATE_NONE,
    can_transition,
    initial_state,
    is_active,
)
from worklog import message_templates
from worklog.message_templates import DisplayPreferences
from worklog.tracker import TicketTrackerProtocol, WorkLogResult

logger = logging.getLogger(__name__)

MAX_TICKET_OPTIONS = 25


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


class WorkLogConversationService:
    """Turns intents and button clicks into session-store operations and one ``log_work`` call.

    Every handler re-reads the session from the store; nothing is cached between
    webhook deliveries. Sessions are deleted once a worklog has been attempted.
    """

    def __init__(
        self,
        store: SessionStoreProtocol,
        tracker: TicketTrackerProtocol,
        display: DisplayPreferences | None = None,
        session_ttl_minutes: int = 30,
        require_confirmation: bool = True,
        max_ticket_options: int = MAX_TICKET_OPTIONS,
        quick_time_options: Iterable[tuple[str, str]] | None = None,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        self.store = store
        self.tracker = tracker
        self.display = display or DisplayPreferences()
        self.session_ttl_minutes = max(1, int(session_ttl_minutes))
        self.require_confirmation = bool(require_confirmation)
        self.max_ticket_options = max(1, min(MAX_TICKET_OPTIONS, int(max_ticket_options)))
        self.quick_time_options = tuple(quick_time_options or message_templates.QUICK_TIME_OPTIONS)
        self._clock = clock or _utc_now

    def accept_event(self, event_key: str) -> bool:
        """False when the webhook delivery was already handled."""
        accepted = self.store.mark_event_processed(event_key)
        if not accepted:
            logger.info("event-duplicate event_key=%s", event_key)
        return accepted

    def handle_intent(self, intent: WorkLogIntent) -> Reply:
        now = self._clock()
        resolved: Optional[ResolvedDate] = None
        if intent.date_text:
            resolved = resolve(intent.date_text, now)
            if not resolved.is_valid:
                logger.info("date-rejected user_id=%s text=%r error=%s", intent.user_id, intent.date_text, resolved.error)
                if resolved.error == DateError.FUTURE:
                    return message_templates.build_future_date(self.display)
                return message_templates.build_invalid_date(self.display, intent.date_text)

        hours = _to_positive_hours(intent.hours)
        ticket_key = _to_optional_str(intent.ticket_key)
        description = str(intent.description or "").strip()
        resolved_day = resolved.date if resolved is not None else None
        state = initial_state(has_hours=hours is not None, has_ticket=ticket_key is not None)

        if state == STATE_NONE:
            return message_templates.build_missing_hours(self.display)

        if state == STATE_AWAITING_TICKET_SELECTION:
            tickets = self.tracker.list_assigned_tickets()[: self.max_ticket_options]
            if not tickets:
                return message_templates.build_no_tickets(self.display)
            payload = TicketPendingPayload(
                hours=hours,
                description=description,
                resolved_date=resolved_day,
                date_text=intent.date_text,
            )
            session_id = self._create_session(intent.user_id, intent.platform, state, encode_payload(payload), now)
            return message_templates.build_ticket_selection(
                self.display,
                session_id=session_id,
                hours=hours,
                resolved=resolved,
                tickets=tickets,
            )

        if state == STATE_AWAITING_CONFIRMATION:
            if not self.require_confirmation:
                return self._finalize(None, ticket_key, hours, description, resolved_day, now)
            payload = ConfirmationPendingPayload(
                ticket_key=ticket_key,
                hours=hours,
                description=description,
                resolved_date=resolved_day,
                date_text=intent.date_text,
            )
            session_id = self._create_session(intent.user_id, intent.platform, state, encode_payload(payload), now)
            return message_templates.build_confirmation(
                self.display,
                session_id=session_id,
                ticket_key=ticket_key,
                hours=hours,
                resolved=resolved,
                description=description,
            )

        payload = QuickTimePayload(
            ticket_key=ticket_key,
            description=description,
            resolved_date=resolved_day,
            date_text=intent.date_text,
            source="intent",
        )
        session_id = self._create_session(intent.user_id, intent.platform, state, encode_payload(payload), now)
        return message_templates.build_quick_time(
            self.display, session_id=session_id, ticket_key=ticket_key, options=self.quick_time_options
        )

    def handle_ticket_selection(self, session_id: str, ticket_key: str) -> Reply:
        session = self.store.get_by_id(session_id)
        if session is None:
            return self._expired(session_id)
        if session.state != STATE_AWAITING_TICKET_SELECTION:
            return self._wrong_state(session, ActionKind.TICKET_SELECT)
        key = _to_optional_str(ticket_key)
        if key is None:
            return message_templates.build_unknown_action(self.display)
        payload = self._decode(session)
        if not isinstance(payload, TicketPendingPayload):
            return self._expired(session.id)

        now = self._clock()
        confirmation = payload.with_ticket(key)
        if not self.require_confirmation:
            return self._finalize(
                session.id,
                confirmation.ticket_key,
                confirmation.hours,
                confirmation.description,
                confirmation.resolved_date,
                now,
            )
        if not can_transition(session.state, STATE_AWAITING_CONFIRMATION):
            return self._wrong_state(session, ActionKind.TICKET_SELECT)
        if not self.store.update_by_id(session.id, STATE_AWAITING_CONFIRMATION, encode_payload(confirmation)):
            return self._expired(session.id)
        logger.info("ticket-selected session_id=%s ticket=%s", session.id, key)
        return message_templates.build_confirmation(
            self.display,
            session_id=session.id,
            ticket_key=confirmation.ticket_key,
            hours=confirmation.hours,
            resolved=self._resolved(confirmation.resolved_date, confirmation.date_text, now),
            description=confirmation.description,
        )

    def handle_confirmation(self, session_id: str, confirmed: bool) -> Reply:
        if not confirmed:
            return self._cancel(session_id)
        session = self.store.get_by_id(session_id)
        if session is None:
            return self._expired(session_id)
        if session.state != STATE_AWAITING_CONFIRMATION:
            return self._wrong_state(session, ActionKind.CONFIRM)
        payload = self._decode(session)
        if not isinstance(payload, ConfirmationPendingPayload):
            return self._expired(session.id)
        return self._finalize(
            session.id,
            payload.ticket_key,
            payload.hours,
            payload.description,
            payload.resolved_date,
            self._clock(),
        )

    def handle_quick_log(self, user_id: str, platform: str, ticket_key: str) -> Reply:
        key = _to_optional_str(ticket_key)
        if key is None:
            return message_templates.build_unknown_action(self.display)
        now = self._clock()
        payload = QuickTimePayload(ticket_key=key)
        session_id = self._create_session(user_id, platform, STATE_AWAITING_QUICK_TIME, encode_payload(payload), now)
        return message_templates.build_quick_time(
            self.display, session_id=session_id, ticket_key=key, options=self.quick_time_options
        )

    def handle_quick_time(self, session_id: str, selected_value: Any) -> Reply:
        session = self.store.get_by_id(session_id)
        if session is None:
            return self._expired(session_id)
        if session.state != STATE_AWAITING_QUICK_TIME:
            return self._wrong_state(session, ActionKind.QUICK_TIME)
        hours = _to_positive_hours(selected_value)
        if hours is None:
            return message_templates.build_invalid_duration(self.display)
        payload = self._decode(session)
        if not isinstance(payload, QuickTimePayload):
            return self._expired(session.id)
        return self._finalize(
            session.id,
            payload.ticket_key,
            hours,
            payload.description,
            payload.resolved_date,
            self._clock(),
        )

    def handle_quick_cancel(self, session_id: str) -> Reply:
        return self._cancel(session_id)

    def handle_action(self, action: ButtonAction, user_id: str = "", platform: str = "") -> Reply:
        kind = action.kind
        if kind == ActionKind.QUICK_LOG:
            # quick_log_ buttons carry no session; the clicking user owns the new one.
            if not user_id or not platform:
                return message_templates.build_unknown_action(self.display)
            return self.handle_quick_log(user_id, platform, action.ticket_key or "")
        if not action.session_id:
            return message_templates.build_unknown_action(self.display)
        if kind == ActionKind.TICKET_SELECT:
            return self.handle_ticket_selection(action.session_id, action.ticket_key or "")
        if kind == ActionKind.CONFIRM:
            return self.handle_confirmation(action.session_id, confirmed=True)
        if kind == ActionKind.CANCEL:
            return self.handle_confirmation(action.session_id, confirmed=False)
        if kind == ActionKind.QUICK_TIME:
            return self.handle_quick_time(action.session_id, action.value)
        if kind == ActionKind.QUICK_CANCEL:
            return self.handle_quick_cancel(action.session_id)
        return message_templates.build_unknown_action(self.display)

    def _create_session(
        self,
        user_id: str,
        platform: str,
        state: str,
        payload: dict[str, Any],
        now: datetime,
    ) -> str:
        return self.store.create(
            user_id=user_id,
            platform=platform,
            state=state,
            payload=payload,
            expires_at=now + timedelta(minutes=self.session_ttl_minutes),
        )

    def _cancel(self, session_id: str) -> Reply:
        session = self.store.get_by_id(session_id)
        if session is None:
            return self._expired(session_id)
        if not is_active(session.state):
            return self._wrong_state(session, ActionKind.CANCEL)
        self.store.delete_by_id(session.id)
        logger.info("session-cancelled session_id=%s state=%s", session.id, session.state)
        return message_templates.build_cancelled(self.display)

    def _finalize(
        self,
        session_id: Optional[str],
        ticket_key: str,
        hours: float,
        description: str,
        day: Optional[date],
        now: datetime,
    ) -> Reply:
        work_day = day or now.date()
        try:
            result = self.tracker.log_work(
                ticket_key=ticket_key,
                hours=hours,
                description=description,
                work_date=started_at(work_day, now),
            )
        except Exception as exc:  # noqa: BLE001
            logger.exception("worklog-error session_id=%s ticket=%s", session_id, ticket_key)
            result = WorkLogResult(success=False, error=str(exc) or type(exc).__name__)
        finally:
            if session_id is not None:
                self.store.delete_by_id(session_id)

        if not result.success:
            logger.warning("worklog-failed session_id=%s ticket=%s error=%s", session_id, ticket_key, result.error)
            return message_templates.build_log_failed(self.display, result.error or "unknown error")

        logger.info(
            "worklog-created session_id=%s ticket=%s hours=%s date=%s worklog_id=%s",
            session_id,
            ticket_key,
            hours,
            work_day.isoformat(),
            result.worklog_id,
        )
        return message_templates.build_logged(
            self.display,
            ticket_key=ticket_key,
            hours=hours,
            resolved=self._resolved(work_day, None, now),
        )

    def _decode(self, session: Session) -> Any:
        payload = decode_payload(session.state, session.payload)
        if payload is None:
            logger.warning("session-payload-invalid session_id=%s state=%s", session.id, session.state)
            self.store.delete_by_id(session.id)
        return payload

    def _resolved(self, day: Optional[date], date_text: Optional[str], now: datetime) -> Optional[ResolvedDate]:
        if day is None:
            return None
        return resolved_for_date(day, now, date_text or "")

    def _expired(self, session_id: Any) -> Reply:
        logger.info("session-expired session_id=%s", session_id)
        return message_templates.build_session_expired(self.display)

    def _wrong_state(self, session: Session, kind: ActionKind) -> Reply:
        logger.info("action-ignored session_id=%s state=%s action=%s", session.id, session.state, kind.value)
        return message_templates.build_unknown_action(self.display)


def _to_positive_hours(value: Any) -> float | None:
    if value is None or isinstance(value, bool):
        return None
    try:
        hours = float(str(value).strip())
    except (TypeError, ValueError):
        return None
    if hours != hours or hours <= 0 or hours == float("inf"):
        return None
    return hours


def _to_optional_str(value: Any) -> str | None:
    text = str(value or "").strip()
    return text or None


def create_conversation_service(
    config: dict[str, Any],
    store: SessionStoreProtocol,
    tracker: TicketTrackerProtocol,
) -> WorkLogConversationService:
    conversation_conf = config.get("conversation", {}) if isinstance(config, dict) else {}
    display_conf = config.get("display", {}) if isinstance(config, dict) else {}
    sessions_conf = config.get("sessions", {}) if isinstance(config, dict) else {}
    tz = ZoneInfo(str(conversation_conf.get("timezone") or "UTC"))
    return WorkLogConversationService(
        store=store,
        tracker=tracker,
        display=DisplayPreferences(icon_set=str(display_conf.get("icon_set") or "current")),
        session_ttl_minutes=int(sessions_conf.get("ttl_minutes", 30)),
        require_confirmation=bool(conversation_conf.get("require_confirmation", True)),
        max_ticket_options=int(conversation_conf.get("max_ticket_options", MAX_TICKET_OPTIONS)),
        quick_time_options=message_templates.quick_time_options(
            conversation_conf.get("quick_time_options") or message_templates.DEFAULT_QUICK_TIME_HOURS
        ),
        clock=lambda: datetime.now(tz),
    )
