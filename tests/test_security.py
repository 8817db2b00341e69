"""Unit tests for app.core.security: bcrypt hashing, password policy, security stamps."""

import unittest

from app.core.security import (
    DUMMY_PASSWORD_HASH,
    generate_security_stamp,
    hash_password,
    password_policy_errors,
    verify_password,
)


class TestHashPassword(unittest.TestCase):
    def test_hash_verifies_and_is_salted(self) -> None:
        first = hash_password("Passw0rd!", rounds=4)
        second = hash_password("Passw0rd!", rounds=4)
        self.assertNotEqual(first, second)
        self.assertTrue(verify_password("Passw0rd!", first))
        self.assertTrue(verify_password("Passw0rd!", second))

    def test_wrong_password_does_not_verify(self) -> None:
        hashed = hash_password("Passw0rd!", rounds=4)
        self.assertFalse(verify_password("passw0rd!", hashed))

    def test_missing_or_garbage_hash_is_false(self) -> None:
        self.assertFalse(verify_password("Passw0rd!", None))
        self.assertFalse(verify_password("Passw0rd!", ""))
        self.assertFalse(verify_password("Passw0rd!", "not-a-bcrypt-hash"))

    def test_dummy_hash_is_a_real_hash(self) -> None:
        self.assertTrue(DUMMY_PASSWORD_HASH.startswith("$2"))
        self.assertFalse(verify_password("Passw0rd!", DUMMY_PASSWORD_HASH))


class TestPasswordPolicy(unittest.TestCase):
    def test_strong_password_has_no_errors(self) -> None:
        self.assertEqual(password_policy_errors("Passw0rd!"), [])

    def test_every_violation_is_reported(self) -> None:
        errors = password_policy_errors("abc")
        self.assertIn("Passwords must be at least 8 characters.", errors)
        self.assertIn("Passwords must have at least one digit ('0'-'9').", errors)
        self.assertIn("Passwords must have at least one uppercase ('A'-'Z').", errors)
        self.assertIn("Passwords must have at least one non alphanumeric character.", errors)
        self.assertNotIn("Passwords must have at least one lowercase ('a'-'z').", errors)

    def test_missing_lowercase(self) -> None:
        self.assertEqual(
            password_policy_errors("PASSW0RD!"),
            ["Passwords must have at least one lowercase ('a'-'z')."],
        )


class TestSecurityStamp(unittest.TestCase):
    def test_stamps_are_unique_base32(self) -> None:
        stamps = {generate_security_stamp() for _ in range(20)}
        self.assertEqual(len(stamps), 20)
        for stamp in stamps:
            self.assertEqual(len(stamp), 32)
            self.assertLessEqual(set(stamp), set("ABCDEFGHIJKLMNOPQRSTUVWXYZ234567"))
