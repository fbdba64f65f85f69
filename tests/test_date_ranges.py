from __future__ import annotations

import unittest
from datetime import datetime, time, timezone

from dates.ranges import date_range

REFERENCE = datetime(2024, 7, 15, 10, 30, tzinfo=timezone.utc)


class DateRangeTest(unittest.TestCase):
    def test_week_starts_on_sunday(self) -> None:
        start, end = date_range("week", REFERENCE)
        self.assertEqual(start, datetime(2024, 7, 14, tzinfo=timezone.utc))
        self.assertEqual(end, datetime.combine(datetime(2024, 7, 20).date(), time.max, tzinfo=timezone.utc))

    def test_today_and_yesterday(self) -> None:
        start, end = date_range("today", REFERENCE)
        self.assertEqual(start.date(), REFERENCE.date())
        self.assertEqual(end.date(), REFERENCE.date())
        start, end = date_range("Yesterday", REFERENCE)
        self.assertEqual((start.day, end.day), (14, 14))

    def test_month_handles_leap_february(self) -> None:
        start, end = date_range("month", datetime(2024, 2, 10, tzinfo=timezone.utc))
        self.assertEqual(start.date().isoformat(), "2024-02-01")
        self.assertEqual(end.date().isoformat(), "2024-02-29")

    def test_year_and_all(self) -> None:
        start, end = date_range("year", REFERENCE)
        self.assertEqual((start.date().isoformat(), end.date().isoformat()), ("2024-01-01", "2024-12-31"))
        start, end = date_range("all", REFERENCE)
        self.assertEqual(start.date().isoformat(), "2000-01-01")
        self.assertEqual(end.date(), REFERENCE.date())

    def test_unknown_period_raises(self) -> None:
        with self.assertRaises(ValueError):
            date_range("fortnight", REFERENCE)


if __name__ == "__main__":
    unittest.main()
