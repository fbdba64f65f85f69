from __future__ import annotations

from datetime import date, datetime, time, timedelta

from dates.display import week_start

PERIODS = ("today", "yesterday", "week", "month", "year", "all")
ALL_TIME_START = date(2000, 1, 1)


def date_range(period: str, reference_now: datetime) -> tuple[datetime, datetime]:
    """Reporting window for ``period``, inclusive on both ends, in the reference timezone."""
    key = (period or "").strip().lower()
    today = reference_now.date()
    if key == "today":
        first, last = today, today
    elif key == "yesterday":
        first = last = today - timedelta(days=1)
    elif key == "week":
        first = week_start(today)
        last = first + timedelta(days=6)
    elif key == "month":
        first = today.replace(day=1)
        next_month = (first + timedelta(days=32)).replace(day=1)
        last = next_month - timedelta(days=1)
    elif key == "year":
        first, last = date(today.year, 1, 1), date(today.year, 12, 31)
    elif key == "all":
        first, last = ALL_TIME_START, today
    else:
        raise ValueError(f"unsupported period: {period!r} (expected one of {', '.join(PERIODS)})")

    tz = reference_now.tzinfo
    return (
        datetime.combine(first, time.min, tzinfo=tz),
        datetime.combine(last, time.max, tzinfo=tz),
    )
