"""Unit tests for password hashing and duration parsing."""

import unittest
from datetime import timedelta

from dynasty_auth.core.security import PasswordHasher
from dynasty_auth.core.tokens import parse_duration

from db_support import FAST_ROUNDS


class TestPasswordHasher(unittest.TestCase):
    """PasswordHasher hashes with a salt and verifies without raising."""

    def setUp(self) -> None:
        self.hasher = PasswordHasher(rounds=FAST_ROUNDS)

    def test_hash_then_verify(self) -> None:
        hashed = self.hasher.hash_password("Passw0rd!")
        self.assertNotEqual(hashed, "Passw0rd!")
        self.assertTrue(self.hasher.verify_password("Passw0rd!", hashed))
        self.assertFalse(self.hasher.verify_password("passw0rd!", hashed))

    def test_same_password_gets_different_salts(self) -> None:
        self.assertNotEqual(
            self.hasher.hash_password("Passw0rd!"),
            self.hasher.hash_password("Passw0rd!"),
        )

    def test_cost_factor_is_embedded(self) -> None:
        hashed = self.hasher.hash_password("Passw0rd!")
        self.assertTrue(hashed.startswith("$2b$04$"))

    def test_default_cost_is_twelve(self) -> None:
        self.assertEqual(PasswordHasher().rounds, 12)

    def test_malformed_hash_is_non_match(self) -> None:
        self.assertFalse(self.hasher.verify_password("Passw0rd!", "not-a-bcrypt-hash"))
        self.assertFalse(self.hasher.verify_password("Passw0rd!", ""))
        self.assertFalse(self.hasher.verify_password("Passw0rd!", None))

    def test_input_beyond_72_bytes_is_ignored(self) -> None:
        base = "A1" * 36
        hashed = self.hasher.hash_password(base + "tail-one")
        self.assertTrue(self.hasher.verify_password(base + "tail-two", hashed))

    def test_burn_verification_returns_nothing(self) -> None:
        self.assertIsNone(self.hasher.burn_verification("anything"))


class TestParseDuration(unittest.TestCase):
    """parse_duration accepts <int><s|m|h|d> and rejects everything else."""

    def test_units(self) -> None:
        self.assertEqual(parse_duration("45s"), timedelta(seconds=45))
        self.assertEqual(parse_duration("15m"), timedelta(minutes=15))
        self.assertEqual(parse_duration("12h"), timedelta(hours=12))
        self.assertEqual(parse_duration("30d"), timedelta(days=30))

    def test_surrounding_whitespace(self) -> None:
        self.assertEqual(parse_duration(" 7d "), timedelta(days=7))

    def test_malformed(self) -> None:
        for bad in ("", "30", "d", "7w", "1.5h", "-5m", "7 d", "seven days"):
            with self.subTest(value=bad):
                with self.assertRaises(ValueError):
                    parse_duration(bad)


if __name__ == "__main__":
    unittest.main()
