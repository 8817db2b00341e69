"""HTTP tests for the /auth, /me and /health routes through FastAPI's TestClient."""

import shutil
import tempfile
import unittest
from unittest.mock import MagicMock

from fastapi.testclient import TestClient

from app.api.v1.auth import get_email_sender_dependency
from app.api.v1.me import get_storage
from app.core.config import get_settings
from app.core.database import get_db
from app.main import app
from app.services.email import SendResponse
from app.storage import FileSystemStorageProvider
from tests.helpers import make_session

PREFIX = get_settings().API_V1_PREFIX
COOKIE_NAME = get_settings().COOKIE_NAME

REGISTRATION = {
    "firstName": "Jane",
    "lastName": "Doe",
    "email": "jane@x.com",
    "userName": "jane",
    "password": "Passw0rd!",
}


class ApiTestCase(unittest.TestCase):
    def setUp(self) -> None:
        self.db = make_session()
        self.storage_root = tempfile.mkdtemp()
        self.sender = MagicMock()
        self.sender.send.return_value = SendResponse(successful=True, message_id="m-1")
        app.dependency_overrides[get_db] = lambda: self.db
        app.dependency_overrides[get_email_sender_dependency] = lambda: self.sender
        app.dependency_overrides[get_storage] = lambda: FileSystemStorageProvider(self.storage_root)
        self.client = TestClient(app)

    def tearDown(self) -> None:
        app.dependency_overrides.clear()
        self.db.close()
        shutil.rmtree(self.storage_root, ignore_errors=True)

    def register(self, **overrides: str):
        return self.client.post(f"{PREFIX}/auth/register", json={**REGISTRATION, **overrides})

    def login(self, user_name: str = "jane", password: str = "Passw0rd!"):
        return self.client.post(f"{PREFIX}/auth/login", json={"userName": user_name, "password": password})

    def register_and_login(self) -> dict:
        self.assertEqual(self.register().status_code, 200)
        response = self.login()
        self.assertEqual(response.status_code, 200)
        return response.json()

    @staticmethod
    def bearer(tokens: dict) -> dict[str, str]:
        return {"Authorization": f"Bearer {tokens['accessToken']}"}


class TestRegisterAndLogin(ApiTestCase):
    def test_register_login_me(self) -> None:
        tokens = self.register_and_login()
        self.assertTrue(tokens["accessToken"])
        self.assertTrue(tokens["refreshToken"])

        self.client.cookies.clear()
        response = self.client.get(f"{PREFIX}/me", headers=self.bearer(tokens))
        self.assertEqual(response.status_code, 200)
        body = response.json()
        self.assertEqual(body["firstName"], "Jane")
        self.assertEqual(body["lastName"], "Doe")
        self.assertEqual(body["email"], "jane@x.com")
        self.assertEqual(body["userName"], "jane")
        self.assertIn("id", body)
        self.assertNotIn("passwordHash", body)

    def test_invalid_email_returns_problem_details(self) -> None:
        response = self.register(email="not-an-email")
        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.headers["content-type"], "application/problem+json")
        body = response.json()
        self.assertEqual(body["status"], 400)
        self.assertEqual(body["type"], "https://httpstatuses.io/400")
        self.assertEqual(len(body["errors"]), 1)
        self.assertTrue(body["errors"][0].startswith("email: value is not a valid email address"))

    def test_missing_first_name(self) -> None:
        response = self.register(firstName="  ")
        self.assertEqual(response.status_code, 400)
        self.assertIn("firstName: The first name is required", response.json()["errors"])

    def test_duplicate_registration(self) -> None:
        self.assertEqual(self.register().status_code, 200)
        response = self.register(email="other@x.com")
        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.json()["title"], "Registration failed")
        self.assertEqual(response.json()["errors"], ["Username 'jane' is already taken."])

    def test_weak_password_lists_every_violation(self) -> None:
        response = self.register(password="password")
        self.assertEqual(response.status_code, 400)
        errors = response.json()["errors"]
        self.assertIn("Passwords must have at least one digit ('0'-'9').", errors)
        self.assertIn("Passwords must have at least one uppercase ('A'-'Z').", errors)
        self.assertIn("Passwords must have at least one non alphanumeric character.", errors)

    def test_email_failure_is_reported_and_nothing_is_created(self) -> None:
        self.sender.send.return_value = SendResponse(
            successful=False, error_messages=["Email provider returned 400: invalid sender"]
        )
        response = self.register()
        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.json()["errors"], ["Email provider returned 400: invalid sender"])
        self.assertEqual(self.login().status_code, 400)

    def test_bad_credentials_are_generic(self) -> None:
        self.assertEqual(self.register().status_code, 200)
        wrong = self.login(password="Wr0ng-pass")
        unknown = self.login(user_name="nobody")
        self.assertEqual(wrong.status_code, 400)
        self.assertEqual(wrong.json()["errors"], ["Invalid username or password"])
        self.assertEqual(unknown.json()["errors"], wrong.json()["errors"])

    def test_empty_user_name_is_a_validation_error(self) -> None:
        response = self.login(user_name=" ")
        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.json()["errors"], ["userName: the username is required"])

    def test_confirm_email(self) -> None:
        self.assertEqual(self.register().status_code, 200)
        token = self.sender.send.call_args.args[2].split("\n", 1)[1]
        response = self.client.post(f"{PREFIX}/auth/confirm-email", json={"token": token})
        self.assertEqual(response.status_code, 204)
        bad = self.client.post(f"{PREFIX}/auth/confirm-email", json={"token": "garbage"})
        self.assertEqual(bad.status_code, 400)


class TestSessions(ApiTestCase):
    def test_me_requires_authentication(self) -> None:
        response = self.client.get(f"{PREFIX}/me")
        self.assertEqual(response.status_code, 401)
        self.assertEqual(response.headers["www-authenticate"], "Bearer")
        self.assertEqual(response.json()["errors"], ["Not authenticated"])

    def test_openapi_declares_bearer_scheme(self) -> None:
        schema = self.client.get("/openapi.json").json()
        self.assertEqual(schema["components"]["securitySchemes"]["HTTPBearer"]["scheme"], "bearer")

    def test_lowercase_bearer_scheme_is_accepted(self) -> None:
        tokens = self.register_and_login()
        self.client.cookies.clear()
        response = self.client.get(
            f"{PREFIX}/me", headers={"Authorization": f"bearer {tokens['accessToken']}"}
        )
        self.assertEqual(response.status_code, 200)

    def test_garbage_bearer_token(self) -> None:
        response = self.client.get(f"{PREFIX}/me", headers={"Authorization": "Bearer nope"})
        self.assertEqual(response.status_code, 401)
        self.assertEqual(response.json()["errors"], ["Invalid or expired token"])

    def test_login_sets_session_cookie(self) -> None:
        self.register_and_login()
        self.assertIn(COOKIE_NAME, self.client.cookies)
        self.assertEqual(self.client.get(f"{PREFIX}/me").status_code, 200)

    def test_second_login_ends_first_session(self) -> None:
        first = self.register_and_login()
        self.login()
        self.client.cookies.clear()
        response = self.client.get(f"{PREFIX}/me", headers=self.bearer(first))
        self.assertEqual(response.status_code, 401)
        self.assertEqual(response.json()["errors"], ["Session is no longer valid"])

    def test_refresh_rotates_tokens(self) -> None:
        tokens = self.register_and_login()
        response = self.client.post(
            f"{PREFIX}/auth/refresh",
            json={"accessToken": tokens["accessToken"], "refreshToken": tokens["refreshToken"]},
        )
        self.assertEqual(response.status_code, 200)
        refreshed = response.json()
        self.assertNotEqual(refreshed["refreshToken"], tokens["refreshToken"])

        replay = self.client.post(
            f"{PREFIX}/auth/refresh",
            json={"accessToken": tokens["accessToken"], "refreshToken": tokens["refreshToken"]},
        )
        self.assertEqual(replay.status_code, 400)
        self.assertEqual(replay.json()["errors"], ["Invalid refresh token"])

    def test_logout_clears_refresh_token_and_cookie(self) -> None:
        tokens = self.register_and_login()
        response = self.client.post(f"{PREFIX}/auth/logout", headers=self.bearer(tokens))
        self.assertEqual(response.status_code, 204)
        self.assertIn(COOKIE_NAME, response.headers.get("set-cookie", ""))
        self.assertNotIn(COOKIE_NAME, self.client.cookies)

        refresh = self.client.post(
            f"{PREFIX}/auth/refresh",
            json={"accessToken": tokens["accessToken"], "refreshToken": tokens["refreshToken"]},
        )
        self.assertEqual(refresh.status_code, 400)

    def test_change_password_invalidates_token(self) -> None:
        tokens = self.register_and_login()
        response = self.client.post(
            f"{PREFIX}/me/password",
            headers=self.bearer(tokens),
            json={"currentPassword": "Passw0rd!", "newPassword": "N3w-Passw0rd"},
        )
        self.assertEqual(response.status_code, 204)
        self.client.cookies.clear()
        self.assertEqual(self.client.get(f"{PREFIX}/me", headers=self.bearer(tokens)).status_code, 401)
        self.assertEqual(self.login(password="N3w-Passw0rd").status_code, 200)

    def test_change_password_with_wrong_current_password(self) -> None:
        tokens = self.register_and_login()
        response = self.client.post(
            f"{PREFIX}/me/password",
            headers=self.bearer(tokens),
            json={"currentPassword": "Wr0ng-pass", "newPassword": "N3w-Passw0rd"},
        )
        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.json()["errors"], ["Incorrect password."])


class TestProfileImage(ApiTestCase):
    def test_upload_read_delete(self) -> None:
        tokens = self.register_and_login()
        headers = self.bearer(tokens)

        self.assertEqual(self.client.get(f"{PREFIX}/me/image", headers=headers).status_code, 404)

        upload = self.client.put(
            f"{PREFIX}/me/image",
            headers=headers,
            files={"file": ("avatar.png", b"\x89PNG-bytes", "image/png")},
        )
        self.assertEqual(upload.status_code, 204)

        image = self.client.get(f"{PREFIX}/me/image", headers=headers)
        self.assertEqual(image.status_code, 200)
        self.assertEqual(image.content, b"\x89PNG-bytes")
        self.assertEqual(image.headers["content-type"], "image/png")

        self.assertEqual(self.client.delete(f"{PREFIX}/me/image", headers=headers).status_code, 204)
        self.assertEqual(self.client.get(f"{PREFIX}/me/image", headers=headers).status_code, 404)

    def test_unsupported_extension_is_rejected(self) -> None:
        tokens = self.register_and_login()
        response = self.client.put(
            f"{PREFIX}/me/image",
            headers=self.bearer(tokens),
            files={"file": ("avatar.exe", b"MZ", "application/octet-stream")},
        )
        self.assertEqual(response.status_code, 400)


class TestHealth(ApiTestCase):
    def test_health(self) -> None:
        response = self.client.get(f"{PREFIX}/health")
        self.assertEqual(response.status_code, 200)
        body = response.json()
        self.assertEqual(body["status"], "ok")
        self.assertEqual(body["database"], "connected")
        self.assertEqual(body["emailProvider"], "log")
        self.assertEqual(body["storageProvider"], "filesystem")
