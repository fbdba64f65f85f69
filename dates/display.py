from __future__ import annotations

from datetime import date, timedelta


def ordinal(day: int) -> str:
    if 10 <= day % 100 <= 20:
        suffix = "th"
    else:
        suffix = {1: "st", 2: "nd", 3: "rd"}.get(day % 10, "th")
    return f"{day}{suffix}"


def week_start(day: date) -> date:
    # Weeks start on Sunday.
    return day - timedelta(days=(day.weekday() + 1) % 7)


def display_text(day: date, today: date) -> str:
    """Human label for ``day`` as seen from ``today``.

    The rules are checked in order: ``today``, ``yesterday``, a bare weekday name
    inside the current Sunday-started week, ``last <Weekday>`` inside the trailing
    seven days, then ``<Month> <day>th`` with the year appended when it differs.
    """
    if day == today:
        return "today"
    if day == today - timedelta(days=1):
        return "yesterday"
    if week_start(day) == week_start(today):
        return day.strftime("%A")
    if day > today - timedelta(days=7):
        return f"last {day.strftime('%A')}"
    label = f"{day.strftime('%B')} {ordinal(day.day)}"
    if day.year == today.year:
        return label
    return f"{label}, {day.year}"
