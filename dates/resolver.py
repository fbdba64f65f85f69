from __future__ import annotations

import logging
import re
from datetime import date, datetime, time, timedelta
from typing import Any, Optional

import dateparser

from core.enums import DateError
from core.models import ResolvedDate
from dates.display import display_text

logger = logging.getLogger(__name__)

WEEKDAYS = {
    "monday": 0,
    "tuesday": 1,
    "wednesday": 2,
    "thursday": 3,
    "friday": 4,
    "saturday": 5,
    "sunday": 6,
}
WORK_START = time(9, 0)

RE_LAST_WEEKDAY = re.compile(r"^(?:last\s+)?(?P<weekday>monday|tuesday|wednesday|thursday|friday|saturday|sunday)$")
RE_DAYS_AGO = re.compile(r"(?P<count>\d+)\s*days?\s*ago")
RE_WEEKS_AGO = re.compile(r"(?P<count>\d+)\s*weeks?\s*ago")
RE_ISO_DATE = re.compile(r"^(?P<year>\d{4})-(?P<month>\d{2})-(?P<day>\d{2})$")
RE_US_DATE = re.compile(r"^(?P<month>\d{1,2})/(?P<day>\d{1,2})/(?P<year>\d{4})$")

DATEPARSER_SETTINGS: dict[str, Any] = {
    "PREFER_DATES_FROM": "past",
    "DATE_ORDER": "MDY",
    "RETURN_AS_TIMEZONE_AWARE": False,
}


def resolve(text: Any, reference_now: datetime) -> ResolvedDate:
    """Resolve a free-text date phrase against ``reference_now``.

    Relative phrases are matched first, then the ``dateparser`` library, then the
    strict ``YYYY-MM-DD`` and ``MM/DD/YYYY`` formats. A date after the reference
    day is always rejected, whichever step produced it.
    """
    if not isinstance(text, str) or not text.strip():
        return _invalid(text, DateError.NO_TEXT)

    clean_text = text.strip().lower()
    today = reference_now.date()

    resolved = _resolve_relative(clean_text, today)
    if resolved is None:
        resolved = _resolve_natural(text.strip(), reference_now)
    if resolved is None:
        resolved = _resolve_strict(text.strip())
    if resolved is None:
        return _invalid(text, DateError.UNPARSEABLE)

    if resolved > today:
        return _invalid(text, DateError.FUTURE)
    return _valid(resolved, today, text)


def last_weekday(today: date, target_weekday: int) -> date:
    days_back = (today.weekday() - target_weekday) % 7
    if days_back == 0:
        days_back = 7
    return today - timedelta(days=days_back)


def resolved_for_date(day: date, reference_now: datetime, original_text: str = "") -> ResolvedDate:
    today = reference_now.date()
    if day > today:
        return _invalid(original_text, DateError.FUTURE)
    return _valid(day, today, original_text or day.isoformat())


def started_at(day: date, reference_now: datetime) -> datetime:
    """Worklog start instant: now for the reference day, 09:00 local otherwise."""
    if day == reference_now.date():
        return reference_now
    return datetime.combine(day, WORK_START, tzinfo=reference_now.tzinfo)


def _resolve_relative(clean_text: str, today: date) -> Optional[date]:
    if clean_text == "today":
        return today
    if clean_text == "yesterday":
        return today - timedelta(days=1)
    if clean_text == "last weekend":
        return last_weekday(today, WEEKDAYS["saturday"])

    match = RE_LAST_WEEKDAY.match(clean_text)
    if match:
        return last_weekday(today, WEEKDAYS[match.group("weekday")])

    match = RE_DAYS_AGO.search(clean_text)
    if match:
        return _days_before(today, int(match.group("count")))

    match = RE_WEEKS_AGO.search(clean_text)
    if match:
        return _days_before(today, int(match.group("count")) * 7)
    return None


def _days_before(today: date, days: int) -> Optional[date]:
    try:
        return today - timedelta(days=days)
    except (OverflowError, ValueError):
        return None


def _resolve_natural(text: str, reference_now: datetime) -> Optional[date]:
    settings = dict(DATEPARSER_SETTINGS)
    settings["RELATIVE_BASE"] = reference_now.replace(tzinfo=None)
    try:
        parsed = dateparser.parse(text, languages=["en"], settings=settings)
    except (ValueError, OverflowError) as exc:
        logger.debug("dateparser-failed text=%r error=%s", text, exc)
        return None
    if parsed is None:
        return None
    return parsed.date()


def _resolve_strict(text: str) -> Optional[date]:
    match = RE_ISO_DATE.match(text) or RE_US_DATE.match(text)
    if match is None:
        return None
    return _build_date(int(match.group("year")), int(match.group("month")), int(match.group("day")))


def _build_date(year: int, month: int, day: int) -> Optional[date]:
    try:
        return date(year, month, day)
    except ValueError:
        return None


def _valid(day: date, today: date, original_text: str) -> ResolvedDate:
    return ResolvedDate(
        date=day,
        is_valid=True,
        is_today=day == today,
        is_past=day < today,
        display_text=display_text(day, today),
        original_text=original_text,
    )


def _invalid(original_text: Any, error: str) -> ResolvedDate:
    text = original_text if isinstance(original_text, str) else ""
    return ResolvedDate(
        date=None,
        is_valid=False,
        is_today=False,
        is_past=False,
        display_text=text,
        original_text=text,
        error=error,
    )
