from __future__ import annotations

import sqlite3
import tempfile
import unittest
from datetime import datetime, timedelta, timezone
from pathlib import Path

from sessions.repository import SqliteSessionStore
from sessions.state_machine import STATE_AWAITING_CONFIRMATION, STATE_AWAITING_TICKET_SELECTION


class _Clock:
    def __init__(self, now: datetime) -> None:
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, minutes: int) -> None:
        self.now = self.now + timedelta(minutes=minutes)


class SqliteSessionStoreTest(unittest.TestCase):
    def setUp(self) -> None:
        self._tmp = tempfile.TemporaryDirectory()
        self.db_path = str(Path(self._tmp.name) / "sessions.db")
        self.clock = _Clock(datetime(2024, 7, 15, 10, 30, tzinfo=timezone.utc))
        self.store = SqliteSessionStore(self.db_path, default_ttl_minutes=30, clock=self.clock)

    def tearDown(self) -> None:
        self._tmp.cleanup()

    def test_create_and_get(self) -> None:
        session_id = self.store.create("U1", "slack", STATE_AWAITING_TICKET_SELECTION, {"hours": 3})
        self.assertEqual(session_id, "1")

        session = self.store.get_by_id(session_id)
        self.assertIsNotNone(session)
        self.assertEqual(session.user_id, "U1")
        self.assertEqual(session.platform, "slack")
        self.assertEqual(session.state, STATE_AWAITING_TICKET_SELECTION)
        self.assertEqual(session.payload, {"hours": 3})
        self.assertEqual(session.created_at, self.clock.now)
        self.assertEqual(session.expires_at, self.clock.now + timedelta(minutes=30))

    def test_unknown_ids_are_absent(self) -> None:
        self.assertIsNone(self.store.get_by_id("999"))
        self.assertIsNone(self.store.get_by_id("not-a-number"))
        self.assertIsNone(self.store.get_by_id("\u00b2"))
        self.assertIsNone(self.store.get_by_id("99999999999999999999"))
        self.assertFalse(self.store.update_by_id("99999999999999999999", STATE_AWAITING_CONFIRMATION, {}))
        self.assertFalse(self.store.delete_by_id("\u00b2"))
        self.assertFalse(self.store.update_by_id("abc", STATE_AWAITING_CONFIRMATION, {}))
        self.assertFalse(self.store.delete_by_id("abc"))

    def test_expired_rows_are_absent_and_not_updated(self) -> None:
        session_id = self.store.create("U1", "slack", STATE_AWAITING_TICKET_SELECTION, {"hours": 1})
        self.clock.advance(30)
        self.assertIsNone(self.store.get_by_id(session_id))
        self.assertIsNone(self.store.get_latest_by_kind("U1", "slack", STATE_AWAITING_TICKET_SELECTION))
        self.assertFalse(self.store.update_by_id(session_id, STATE_AWAITING_CONFIRMATION, {"hours": 1}))
        self.assertEqual(self.store.delete_expired(), 1)
        self.assertEqual(self.store.delete_expired(), 0)

    def test_explicit_expiry(self) -> None:
        session_id = self.store.create(
            "U1",
            "slack",
            STATE_AWAITING_TICKET_SELECTION,
            {},
            expires_at=self.clock.now + timedelta(minutes=5),
        )
        self.clock.advance(4)
        self.assertIsNotNone(self.store.get_by_id(session_id))
        self.clock.advance(1)
        self.assertIsNone(self.store.get_by_id(session_id))

    def test_latest_by_kind_prefers_newest(self) -> None:
        self.store.create("U1", "slack", STATE_AWAITING_TICKET_SELECTION, {"n": 1})
        self.clock.advance(1)
        newest = self.store.create("U1", "slack", STATE_AWAITING_TICKET_SELECTION, {"n": 2})
        self.store.create("U1", "teams", STATE_AWAITING_TICKET_SELECTION, {"n": 3})

        session = self.store.get_latest_by_kind("U1", "slack", STATE_AWAITING_TICKET_SELECTION)
        self.assertEqual(session.id, newest)
        self.assertEqual(session.payload, {"n": 2})
        self.assertIsNone(self.store.get_latest_by_kind("U2", "slack", STATE_AWAITING_TICKET_SELECTION))

    def test_update_keeps_identity(self) -> None:
        session_id = self.store.create("U1", "slack", STATE_AWAITING_TICKET_SELECTION, {"hours": 2})
        created = self.store.get_by_id(session_id).created_at
        self.clock.advance(3)

        updated = self.store.update_by_id(session_id, STATE_AWAITING_CONFIRMATION, {"hours": 2, "ticket_key": "PROJ-1"})
        self.assertTrue(updated)
        session = self.store.get_by_id(session_id)
        self.assertEqual(session.id, session_id)
        self.assertEqual(session.created_at, created)
        self.assertEqual(session.state, STATE_AWAITING_CONFIRMATION)
        self.assertEqual(session.payload["ticket_key"], "PROJ-1")

    def test_delete_by_id_and_kind(self) -> None:
        first = self.store.create("U1", "slack", STATE_AWAITING_TICKET_SELECTION, {})
        self.assertTrue(self.store.delete_by_id(first))
        self.assertFalse(self.store.delete_by_id(first))

        self.store.create("U1", "slack", STATE_AWAITING_CONFIRMATION, {})
        self.store.create("U1", "slack", STATE_AWAITING_CONFIRMATION, {})
        self.assertTrue(self.store.delete_by_kind("U1", "slack", STATE_AWAITING_CONFIRMATION))
        self.assertFalse(self.store.delete_by_kind("U1", "slack", STATE_AWAITING_CONFIRMATION))

    def test_ids_are_sequential(self) -> None:
        first = self.store.create("U1", "slack", STATE_AWAITING_TICKET_SELECTION, {})
        second = self.store.create("U2", "slack", STATE_AWAITING_TICKET_SELECTION, {})
        self.assertEqual(int(second), int(first) + 1)

    def test_mark_event_processed_dedupes(self) -> None:
        self.assertTrue(self.store.mark_event_processed("evt-1"))
        self.assertFalse(self.store.mark_event_processed("evt-1"))
        self.assertFalse(self.store.mark_event_processed(""))

    def test_corrupt_payload_reads_as_empty(self) -> None:
        session_id = self.store.create("U1", "slack", STATE_AWAITING_TICKET_SELECTION, {"hours": 1})
        conn = sqlite3.connect(self.db_path)
        try:
            conn.execute("UPDATE user_sessions SET session_data = ? WHERE id = ?", ("{broken", int(session_id)))
            conn.commit()
        finally:
            conn.close()
        session = self.store.get_by_id(session_id)
        self.assertIsNotNone(session)
        self.assertEqual(session.payload, {})

    def test_schema_is_idempotent(self) -> None:
        session_id = self.store.create("U1", "slack", STATE_AWAITING_TICKET_SELECTION, {"hours": 1})
        reopened = SqliteSessionStore(self.db_path, clock=self.clock)
        self.assertIsNotNone(reopened.get_by_id(session_id))


if __name__ == "__main__":
    unittest.main()
