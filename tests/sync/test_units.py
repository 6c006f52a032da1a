import unittest

from notes_sync.units import format_ether, normalize_address, parse_ether, shorten_address


class UnitsTests(unittest.TestCase):
    def test_parse_ether_rounds_down_to_wei(self):
        self.assertEqual(parse_ether("0.5"), 5 * 10**17)
        self.assertEqual(parse_ether("0.0000000000000000019"), 1)

    def test_parse_ether_rejects_garbage(self):
        with self.assertRaises(ValueError):
            parse_ether("ten")
        with self.assertRaises(ValueError):
            parse_ether("inf")

    def test_format_ether_uses_four_places(self):
        self.assertEqual(format_ether(10**16), "0.0100")
        self.assertEqual(format_ether(123456789 * 10**10), "1.2345")

    def test_address_helpers(self):
        address = "0x1234567890123456789012345678901234567890"
        self.assertEqual(shorten_address(address), "0x1234...7890")
        self.assertEqual(normalize_address(" 0xABCD "), "0xabcd")


if __name__ == "__main__":
    unittest.main()
