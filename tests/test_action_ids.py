from __future__ import annotations

import json
import unittest

from core.enums import ActionKind
from worklog.action_ids import (
    cancel_action_id,
    confirm_action_id,
    parse_action,
    quick_cancel_action_id,
    quick_log_action_id,
    quick_time_action_id,
    ticket_select_value,
)


class ActionIdTest(unittest.TestCase):
    def test_builders(self) -> None:
        self.assertEqual(confirm_action_id("12"), "log_time_confirm_12")
        self.assertEqual(cancel_action_id("12"), "log_time_cancel_12")
        self.assertEqual(quick_time_action_id("12"), "quick_time_confirm_12")
        self.assertEqual(quick_cancel_action_id("12"), "quick_log_cancel_12")
        self.assertEqual(quick_log_action_id("PROJ-9"), "quick_log_PROJ-9")
        self.assertEqual(json.loads(ticket_select_value("PROJ-9", "12")), {"ticketKey": "PROJ-9", "sessionId": "12"})

    def test_parse_session_actions(self) -> None:
        confirm = parse_action("log_time_confirm_3f2a")
        self.assertEqual((confirm.kind, confirm.session_id), (ActionKind.CONFIRM, "3f2a"))
        self.assertEqual(parse_action("log_time_cancel_3f2a").kind, ActionKind.CANCEL)
        quick_time = parse_action("quick_time_confirm_3f2a", "0.5")
        self.assertEqual((quick_time.kind, quick_time.value), (ActionKind.QUICK_TIME, "0.5"))

    def test_quick_cancel_is_not_a_quick_log(self) -> None:
        action = parse_action("quick_log_cancel_7")
        self.assertEqual(action.kind, ActionKind.QUICK_CANCEL)
        self.assertEqual(action.session_id, "7")

        quick_log = parse_action("quick_log_PROJ-1")
        self.assertEqual(quick_log.kind, ActionKind.QUICK_LOG)
        self.assertEqual(quick_log.ticket_key, "PROJ-1")
        self.assertIsNone(quick_log.session_id)

    def test_parse_ticket_select(self) -> None:
        action = parse_action("ticket_select", ticket_select_value("PROJ-4", "abc"))
        self.assertEqual(action.kind, ActionKind.TICKET_SELECT)
        self.assertEqual((action.session_id, action.ticket_key), ("abc", "PROJ-4"))
        self.assertEqual(parse_action("ticket_select", {"ticketKey": "PROJ-4", "sessionId": "abc"}).ticket_key, "PROJ-4")

    def test_unrecognized_inputs(self) -> None:
        self.assertIsNone(parse_action(""))
        self.assertIsNone(parse_action("something_else"))
        self.assertIsNone(parse_action("log_time_confirm_"))
        self.assertIsNone(parse_action("ticket_select", "not json"))
        self.assertIsNone(parse_action("ticket_select", json.dumps({"ticketKey": "PROJ-4"})))
        self.assertIsNone(parse_action("ticket_select", "[1, 2]"))


if __name__ == "__main__":
    unittest.main()
