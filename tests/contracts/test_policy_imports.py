import os
import subprocess
import sys
import unittest
from pathlib import Path

SRC = Path(__file__).resolve().parents[2] / "src"

POLICY_MODULES = [
    "notes_sync.contracts.action_dedup",
    "notes_sync.contracts.action_lifecycle",
    "notes_sync.contracts.form_lifecycle",
    "notes_sync.contracts.invalidation",
    "notes_sync.contracts.tx_lifecycle",
]


class PolicyImportTests(unittest.TestCase):
    def test_each_policy_module_imports_in_a_fresh_interpreter(self):
        env = dict(os.environ)
        env["PYTHONPATH"] = os.pathsep.join(filter(None, [str(SRC), env.get("PYTHONPATH")]))
        for module in POLICY_MODULES:
            result = subprocess.run(
                [sys.executable, "-c", f"import {module}"],
                capture_output=True,
                text=True,
                env=env,
            )
            self.assertEqual(result.returncode, 0, msg=f"{module}: {result.stderr}")


if __name__ == "__main__":
    unittest.main()
