import os
import unittest
from unittest.mock import patch

from notes_sync.ledger.config import DEFAULT_CONTRACT_ADDRESS, get_ledger_config

_VARS = [
    "NOTES_SYNC_GATEWAY_URL",
    "NOTES_SYNC_CONTRACT_ADDRESS",
    "NOTES_SYNC_POLL_INTERVAL",
    "NOTES_SYNC_CONFIRMATIONS",
    "NOTES_SYNC_REQUEST_TIMEOUT",
]


class LedgerConfigTests(unittest.TestCase):
    def setUp(self):
        self._saved = {name: os.environ.pop(name) for name in _VARS if name in os.environ}

    def tearDown(self):
        for name in _VARS:
            os.environ.pop(name, None)
        os.environ.update(self._saved)

    def test_default_ledger_config_values(self):
        cfg = get_ledger_config()

        self.assertEqual(cfg.gateway_url, "http://127.0.0.1:8545")
        self.assertEqual(cfg.contract_address, DEFAULT_CONTRACT_ADDRESS)
        self.assertEqual(cfg.poll_interval, 1.0)
        self.assertEqual(cfg.confirmations, 1)
        self.assertEqual(cfg.request_timeout, 10.0)

    def test_env_overrides_defaults(self):
        with patch.dict(
            os.environ,
            {
                "NOTES_SYNC_GATEWAY_URL": "http://gateway:9000/rpc",
                "NOTES_SYNC_CONTRACT_ADDRESS": "0x0000000000000000000000000000000000000042",
                "NOTES_SYNC_POLL_INTERVAL": "0.25",
                "NOTES_SYNC_CONFIRMATIONS": "3",
                "NOTES_SYNC_REQUEST_TIMEOUT": "2.5",
            },
            clear=False,
        ):
            cfg = get_ledger_config()

        self.assertEqual(cfg.gateway_url, "http://gateway:9000/rpc")
        self.assertEqual(cfg.contract_address, "0x0000000000000000000000000000000000000042")
        self.assertEqual(cfg.poll_interval, 0.25)
        self.assertEqual(cfg.confirmations, 3)
        self.assertEqual(cfg.request_timeout, 2.5)

    def test_malformed_number_names_the_variable(self):
        with patch.dict(os.environ, {"NOTES_SYNC_CONFIRMATIONS": "many"}, clear=False):
            with self.assertRaises(ValueError) as ctx:
                get_ledger_config()

        self.assertIn("NOTES_SYNC_CONFIRMATIONS", str(ctx.exception))

    def test_zero_poll_interval_rejected(self):
        with patch.dict(os.environ, {"NOTES_SYNC_POLL_INTERVAL": "0"}, clear=False):
            with self.assertRaises(ValueError):
                get_ledger_config()


if __name__ == "__main__":
    unittest.main()
