import unittest

from notes_sync.contracts.tx_lifecycle import TxState, can_transition, is_terminal


class TxLifecyclePolicyTests(unittest.TestCase):
    def test_allows_pending_to_confirming_to_confirmed(self):
        self.assertTrue(can_transition(TxState.PENDING, TxState.CONFIRMING))
        self.assertTrue(can_transition(TxState.CONFIRMING, TxState.CONFIRMED))

    def test_allows_failure_before_and_after_network_acceptance(self):
        self.assertTrue(can_transition(TxState.PENDING, TxState.FAILED))
        self.assertTrue(can_transition(TxState.CONFIRMING, TxState.FAILED))

    def test_rejects_skipping_confirming(self):
        self.assertFalse(can_transition(TxState.PENDING, TxState.CONFIRMED))

    def test_terminal_states_are_final(self):
        for terminal in (TxState.CONFIRMED, TxState.FAILED):
            self.assertTrue(is_terminal(terminal))
            for target in TxState:
                self.assertFalse(can_transition(terminal, target))

    def test_non_terminal_states(self):
        self.assertFalse(is_terminal(TxState.PENDING))
        self.assertFalse(is_terminal(TxState.CONFIRMING))


if __name__ == "__main__":
    unittest.main()
