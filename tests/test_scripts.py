"""Tests for the create_user and lock_user CLIs with SessionLocal pointed at an in-memory database."""

import unittest
from unittest.mock import patch

from app.scripts import create_user, lock_user
from app.services.credential_store import UserStore
from tests.helpers import STRONG_PASSWORD, make_session, make_settings


class ScriptTestCase(unittest.TestCase):
    def setUp(self) -> None:
        self.db = make_session()
        self.store = UserStore(self.db, make_settings())
        for module in (create_user, lock_user):
            patcher = patch.object(module, "SessionLocal", return_value=self.db)
            patcher.start()
            self.addCleanup(patcher.stop)

    def tearDown(self) -> None:
        self.db.close()


class TestCreateUser(ScriptTestCase):
    def test_creates_confirmed_user_with_role(self) -> None:
        code = create_user.main(
            ["admin", "admin@example.com", STRONG_PASSWORD, "Ada", "--role", "Administrator"]
        )
        self.assertEqual(code, 0)
        user = self.store.find_by_user_name("admin")
        self.assertTrue(user.email_confirmed)
        self.assertEqual(self.store.roles_of(user), ["Administrator"])
        self.assertTrue(self.store.verify_password(user, STRONG_PASSWORD))

    def test_weak_password_fails(self) -> None:
        code = create_user.main(["admin", "admin@example.com", "weak", "Ada"])
        self.assertEqual(code, 1)
        self.assertIsNone(self.store.find_by_user_name("admin"))


class TestLockUser(ScriptTestCase):
    def setUp(self) -> None:
        super().setUp()
        create_user.main(["bob", "bob@example.com", STRONG_PASSWORD, "Bob"])

    def test_lock_and_unlock(self) -> None:
        self.assertEqual(lock_user.main(["bob", "30"]), 0)
        self.assertTrue(self.store.is_locked_out(self.store.find_by_user_name("bob")))
        self.assertEqual(lock_user.main(["bob", "--unlock"]), 0)
        self.assertFalse(self.store.is_locked_out(self.store.find_by_user_name("bob")))

    def test_unknown_user_and_missing_duration(self) -> None:
        self.assertEqual(lock_user.main(["nobody", "30"]), 1)
        self.assertEqual(lock_user.main(["bob"]), 1)
