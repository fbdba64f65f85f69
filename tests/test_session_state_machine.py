from __future__ import annotations

import unittest

from sessions.state_machine import (
    STATE_AWAITING_CONFIRMATION,
    STATE_AWAITING_QUICK_TIME,
    STATE_AWAITING_TICKET_SELECTION,
    STATE_CANCELLED,
    STATE_FINALIZED,
    STATE_NONE,
    can_transition,
    initial_state,
    is_active,
)


class SessionStateMachineTest(unittest.TestCase):
    def test_initial_state(self) -> None:
        self.assertEqual(initial_state(has_hours=True, has_ticket=False), STATE_AWAITING_TICKET_SELECTION)
        self.assertEqual(initial_state(has_hours=True, has_ticket=True), STATE_AWAITING_CONFIRMATION)
        self.assertEqual(initial_state(has_hours=False, has_ticket=True), STATE_AWAITING_QUICK_TIME)
        self.assertEqual(initial_state(has_hours=False, has_ticket=False), STATE_NONE)

    def test_can_transition(self) -> None:
        self.assertTrue(can_transition(STATE_AWAITING_TICKET_SELECTION, STATE_AWAITING_CONFIRMATION))
        self.assertTrue(can_transition(STATE_AWAITING_CONFIRMATION, STATE_FINALIZED))
        self.assertTrue(can_transition(STATE_AWAITING_QUICK_TIME, STATE_CANCELLED))
        self.assertFalse(can_transition(STATE_AWAITING_CONFIRMATION, STATE_AWAITING_TICKET_SELECTION))
        self.assertFalse(can_transition(STATE_AWAITING_QUICK_TIME, STATE_AWAITING_CONFIRMATION))
        self.assertFalse(can_transition(STATE_FINALIZED, STATE_AWAITING_CONFIRMATION))
        self.assertFalse(can_transition("UNKNOWN", STATE_FINALIZED))

    def test_is_active(self) -> None:
        self.assertTrue(is_active(STATE_AWAITING_QUICK_TIME))
        self.assertFalse(is_active(STATE_FINALIZED))
        self.assertFalse(is_active("SOMETHING_ELSE"))


if __name__ == "__main__":
    unittest.main()
