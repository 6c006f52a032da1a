import unittest

from notes_sync.contracts.action_lifecycle import ActionState, can_transition, is_in_flight


class ActionLifecyclePolicyTests(unittest.TestCase):
    def test_allows_full_confirmed_path(self):
        path = [
            ActionState.IDLE,
            ActionState.VALIDATING,
            ActionState.SUBMITTING,
            ActionState.WATCHING,
            ActionState.SETTLED_CONFIRMED,
            ActionState.IDLE,
        ]
        for current, target in zip(path, path[1:]):
            self.assertTrue(can_transition(current, target), f"{current} -> {target}")

    def test_validation_failure_returns_to_idle(self):
        self.assertTrue(can_transition(ActionState.VALIDATING, ActionState.IDLE))

    def test_submission_can_fail_without_watching(self):
        self.assertTrue(can_transition(ActionState.SUBMITTING, ActionState.SETTLED_FAILED))

    def test_rejects_submitting_from_idle(self):
        self.assertFalse(can_transition(ActionState.IDLE, ActionState.SUBMITTING))

    def test_rejects_confirmation_without_watching(self):
        self.assertFalse(can_transition(ActionState.SUBMITTING, ActionState.SETTLED_CONFIRMED))

    def test_in_flight_is_everything_but_idle(self):
        self.assertFalse(is_in_flight(ActionState.IDLE))
        self.assertTrue(is_in_flight(ActionState.WATCHING))
        self.assertTrue(is_in_flight(ActionState.SETTLED_FAILED))


if __name__ == "__main__":
    unittest.main()
