"""HTTP tests for /user routes: registration, login, token handling, ownership and admin gates."""

import unittest
from unittest.mock import AsyncMock, patch

from fastapi.testclient import TestClient

from app.core.security import TokenConfigurationError, get_token_service
from app.main import app
from app.services import users
from app.services.mailer import MailerError
from app.services.object_store import ObjectStoreError
from tests.support import DEFAULT_PASSWORD, ApiTestCase, loop_spy, make_settings

SEND_MAIL = "app.services.mailer.send_mail"


class TestRegisterAndLogin(ApiTestCase):
    """Register then log in; the token carries the user's id and role."""

    def test_register_then_login(self) -> None:
        with patch(SEND_MAIL, new_callable=AsyncMock) as send:
            resp = self.client.post(
                "/user/register",
                json={"name": "Bob", "email": "bob@example.com", "password": "hunter22"},
            )
        self.assertEqual(resp.status_code, 201)
        self.assertEqual(resp.json(), {"message": "User registered successfully!", "emailSent": True})
        self.assertEqual(send.await_args.args[0], "bob@example.com")

        resp = self.client.post("/user/login", json={"email": "bob@example.com", "password": "hunter22"})
        self.assertEqual(resp.status_code, 200)
        body = resp.json()
        self.assertEqual(body["message"], "Login successful!")
        self.assertEqual(body["role"], "user")
        self.assertFalse(body["blocked"])
        self.assertEqual(body["packages"], [])
        claims = self.tokens.verify(body["token"])
        self.assertEqual(claims.subject, str(body["userId"]))
        self.assertEqual(claims.role, "user")

    def test_login_sets_httponly_token_cookie(self) -> None:
        self.create_user()
        resp = self.client.post("/user/login", json={"email": "alice@example.com", "password": DEFAULT_PASSWORD})
        self.assertEqual(resp.status_code, 200)
        cookie_header = resp.headers["set-cookie"]
        self.assertIn("token=", cookie_header)
        self.assertIn("HttpOnly", cookie_header)
        self.assertIn("Max-Age=3600", cookie_header)

    def test_duplicate_registration_is_409(self) -> None:
        self.create_user(email="bob@example.com")
        with patch(SEND_MAIL, new_callable=AsyncMock) as send:
            resp = self.client.post(
                "/user/register",
                json={"name": "Bob", "email": "bob@example.com", "password": "hunter22"},
            )
        self.assertEqual(resp.status_code, 409)
        self.assertEqual(resp.json(), {"error": "User already exists."})
        send.assert_not_awaited()

    def test_welcome_mail_failure_keeps_registration(self) -> None:
        with patch(SEND_MAIL, new_callable=AsyncMock, side_effect=MailerError("Mail API returned 502: bad gateway", 502)):
            resp = self.client.post(
                "/user/register",
                json={"name": "Bob", "email": "bob@example.com", "password": "hunter22"},
            )
        self.assertEqual(resp.status_code, 201)
        self.assertFalse(resp.json()["emailSent"])
        resp = self.client.post("/user/login", json={"email": "bob@example.com", "password": "hunter22"})
        self.assertEqual(resp.status_code, 200)

    def test_wrong_password_and_unknown_email_look_the_same(self) -> None:
        self.create_user()
        wrong = self.client.post("/user/login", json={"email": "alice@example.com", "password": "nope-nope"})
        unknown = self.client.post("/user/login", json={"email": "ghost@example.com", "password": "nope-nope"})
        self.assertEqual(wrong.status_code, 401)
        self.assertEqual(unknown.status_code, 401)
        self.assertEqual(wrong.json(), unknown.json())
        self.assertEqual(wrong.json(), {"error": "Invalid credentials."})

    def test_invalid_body_returns_field_errors(self) -> None:
        resp = self.client.post("/user/register", json={"name": "", "email": "not-an-email", "password": "123"})
        self.assertEqual(resp.status_code, 400)
        fields = {e["field"] for e in resp.json()["errors"]}
        self.assertEqual(fields, {"name", "email", "password"})
        for error in resp.json()["errors"]:
            self.assertTrue(error["message"])


class TestTokenHandling(ApiTestCase):
    """Token from cookie or bearer header; cookie wins when both are present."""

    def setUp(self) -> None:
        super().setUp()
        self.user_id = self.create_user()
        self.admin_id = self.create_user(name="Root", email="root@example.com", role="admin")

    def test_missing_token_is_401_with_challenge(self) -> None:
        resp = self.client.get("/user/all")
        self.assertEqual(resp.status_code, 401)
        self.assertEqual(resp.json(), {"error": "Authentication required."})
        self.assertEqual(resp.headers.get("www-authenticate"), "Bearer")

    def test_garbage_token_is_401(self) -> None:
        resp = self.client.get("/user/all", headers={"Authorization": "Bearer not.a.jwt"})
        self.assertEqual(resp.status_code, 401)
        self.assertEqual(resp.json(), {"error": "Invalid or expired token."})

    def test_token_for_deleted_user_is_401(self) -> None:
        resp = self.client.get("/user/all", headers=self.auth_headers(999, "admin"))
        self.assertEqual(resp.status_code, 401)
        self.assertEqual(resp.json(), {"error": "User not found."})

    def test_cookie_takes_precedence_over_header(self) -> None:
        self.client.cookies.set("token", self.tokens.issue(self.user_id, "user"))
        resp = self.client.get("/user/all", headers=self.auth_headers(self.admin_id, "admin"))
        self.assertEqual(resp.status_code, 403)

    def test_cookie_alone_authenticates(self) -> None:
        self.client.cookies.set("token", self.tokens.issue(self.admin_id, "admin"))
        resp = self.client.get("/user/all")
        self.assertEqual(resp.status_code, 200)

    def test_role_comes_from_database_not_token(self) -> None:
        resp = self.client.get("/user/all", headers=self.auth_headers(self.user_id, "admin"))
        self.assertEqual(resp.status_code, 403)

    def test_missing_secret_fails_closed(self) -> None:
        def unconfigured():
            raise TokenConfigurationError("JWT_SECRET is not set; authentication is disabled.")

        app.dependency_overrides[get_token_service] = unconfigured
        resp = self.client.get("/user/all", headers=self.auth_headers(self.admin_id, "admin"))
        self.assertEqual(resp.status_code, 500)
        self.assertEqual(resp.json(), {"error": "Authentication is not configured."})


class TestAdminRoutes(ApiTestCase):
    """Block and role changes are admin-only."""

    def setUp(self) -> None:
        super().setUp()
        self.user_id = self.create_user()
        self.admin_id = self.create_user(name="Root", email="root@example.com", role="admin")

    def test_non_admin_cannot_block(self) -> None:
        resp = self.client.patch(f"/user/{self.admin_id}/block", headers=self.auth_headers(self.user_id))
        self.assertEqual(resp.status_code, 403)
        self.assertEqual(resp.json(), {"error": "Admin access required."})

    def test_admin_toggles_block(self) -> None:
        headers = self.auth_headers(self.admin_id, "admin")
        resp = self.client.patch(f"/user/{self.user_id}/block", headers=headers)
        self.assertEqual(resp.status_code, 200)
        self.assertEqual(resp.json(), {"message": "User blocked successfully!", "blocked": True})
        resp = self.client.patch(f"/user/{self.user_id}/block", headers=headers)
        self.assertEqual(resp.json(), {"message": "User unblocked successfully!", "blocked": False})

    def test_block_unknown_user_is_404(self) -> None:
        resp = self.client.patch("/user/999/block", headers=self.auth_headers(self.admin_id, "admin"))
        self.assertEqual(resp.status_code, 404)

    def test_non_admin_cannot_edit_role(self) -> None:
        resp = self.client.patch(
            f"/user/edit-role/{self.user_id}",
            json={"role": "admin"},
            headers=self.auth_headers(self.user_id),
        )
        self.assertEqual(resp.status_code, 403)

    def test_promotion_sends_mail(self) -> None:
        with patch(SEND_MAIL, new_callable=AsyncMock) as send:
            resp = self.client.patch(
                f"/user/edit-role/{self.user_id}",
                json={"role": "admin"},
                headers=self.auth_headers(self.admin_id, "admin"),
            )
        self.assertEqual(resp.status_code, 200)
        self.assertEqual(
            resp.json(),
            {"message": "User role updated successfully and email sent!", "emailSent": True},
        )
        self.assertEqual(send.await_args.args[0], "alice@example.com")

    def test_promotion_mail_failure_keeps_role_change(self) -> None:
        with patch(SEND_MAIL, new_callable=AsyncMock, side_effect=MailerError("Mail API unreachable")):
            resp = self.client.patch(
                f"/user/edit-role/{self.user_id}",
                json={"role": "admin"},
                headers=self.auth_headers(self.admin_id, "admin"),
            )
        self.assertEqual(resp.status_code, 200)
        self.assertEqual(resp.json(), {"message": "User role updated successfully.", "emailSent": False})
        # Promoted user can now reach admin routes.
        resp = self.client.get("/user/all", headers=self.auth_headers(self.user_id))
        self.assertEqual(resp.status_code, 200)

    def test_demotion_sends_no_mail(self) -> None:
        with patch(SEND_MAIL, new_callable=AsyncMock) as send:
            resp = self.client.patch(
                f"/user/edit-role/{self.admin_id}",
                json={"role": "user"},
                headers=self.auth_headers(self.admin_id, "admin"),
            )
        self.assertEqual(resp.status_code, 200)
        send.assert_not_awaited()

    def test_role_change_runs_off_the_event_loop(self) -> None:
        spy, calls = loop_spy(users.change_role)
        with patch.object(users, "change_role", new=spy), patch(SEND_MAIL, new_callable=AsyncMock):
            resp = self.client.patch(
                f"/user/edit-role/{self.user_id}",
                json={"role": "admin"},
                headers=self.auth_headers(self.admin_id, "admin"),
            )
        self.assertEqual(resp.status_code, 200)
        self.assertEqual(calls, [False])

    def test_invalid_role_is_400(self) -> None:
        resp = self.client.patch(
            f"/user/edit-role/{self.user_id}",
            json={"role": "owner"},
            headers=self.auth_headers(self.admin_id, "admin"),
        )
        self.assertEqual(resp.status_code, 400)
        self.assertEqual(resp.json(), {"error": 'Invalid role. Role must be either "user" or "admin".'})

    def test_list_users_returns_camel_case(self) -> None:
        resp = self.client.get("/user/all", headers=self.auth_headers(self.admin_id, "admin"))
        self.assertEqual(resp.status_code, 200)
        emails = [u["email"] for u in resp.json()]
        self.assertEqual(emails, ["alice@example.com", "root@example.com"])
        self.assertIn("profileImageUrl", resp.json()[0])
        self.assertNotIn("passwordHash", resp.json()[0])


class TestAccountRoutes(ApiTestCase):
    """Email-addressed routes act on the caller's own account unless the caller is admin."""

    def setUp(self) -> None:
        super().setUp()
        self.user_id = self.create_user()
        self.other_id = self.create_user(name="Carol", email="carol@example.com")
        self.admin_id = self.create_user(name="Root", email="root@example.com", role="admin")

    def test_get_own_account(self) -> None:
        resp = self.client.get("/user/by-email/alice@example.com", headers=self.auth_headers(self.user_id))
        self.assertEqual(resp.status_code, 200)
        self.assertEqual(resp.json()["id"], self.user_id)

    def test_cannot_read_other_account(self) -> None:
        resp = self.client.get("/user/by-email/carol@example.com", headers=self.auth_headers(self.user_id))
        self.assertEqual(resp.status_code, 403)
        self.assertEqual(resp.json(), {"error": "You can only manage your own account."})

    def test_admin_can_read_any_account(self) -> None:
        resp = self.client.get("/user/by-email/carol@example.com", headers=self.auth_headers(self.admin_id, "admin"))
        self.assertEqual(resp.status_code, 200)

    def test_admin_lookup_of_unknown_email_is_404(self) -> None:
        resp = self.client.get("/user/by-email/ghost@example.com", headers=self.auth_headers(self.admin_id, "admin"))
        self.assertEqual(resp.status_code, 404)
        self.assertEqual(resp.json(), {"error": "User not found."})

    def test_edit_name(self) -> None:
        resp = self.client.patch(
            "/user/edit-name/alice@example.com",
            json={"name": "Alicia"},
            headers=self.auth_headers(self.user_id),
        )
        self.assertEqual(resp.status_code, 200)
        self.assertEqual(resp.json()["user"]["name"], "Alicia")

    def test_cannot_edit_other_name(self) -> None:
        resp = self.client.patch(
            "/user/edit-name/carol@example.com",
            json={"name": "Mallory"},
            headers=self.auth_headers(self.user_id),
        )
        self.assertEqual(resp.status_code, 403)

    def test_blocked_user_cannot_edit_name_but_can_read(self) -> None:
        blocked_id = self.create_user(name="Dan", email="dan@example.com", blocked=True)
        headers = self.auth_headers(blocked_id)
        resp = self.client.patch("/user/edit-name/dan@example.com", json={"name": "Daniel"}, headers=headers)
        self.assertEqual(resp.status_code, 403)
        self.assertEqual(resp.json(), {"error": "Account is blocked."})
        resp = self.client.get("/user/by-email/dan@example.com", headers=headers)
        self.assertEqual(resp.status_code, 200)

    def test_update_password_wrong_then_right(self) -> None:
        headers = self.auth_headers(self.user_id)
        resp = self.client.patch(
            "/user/update-password/alice@example.com",
            json={"currentPassword": "wrong-password", "newPassword": "newpass1"},
            headers=headers,
        )
        self.assertEqual(resp.status_code, 400)
        self.assertEqual(resp.json(), {"error": "Current password is incorrect."})
        login = self.client.post("/user/login", json={"email": "alice@example.com", "password": DEFAULT_PASSWORD})
        self.assertEqual(login.status_code, 200)
        self.client.cookies.clear()

        resp = self.client.patch(
            "/user/update-password/alice@example.com",
            json={"currentPassword": DEFAULT_PASSWORD, "newPassword": "newpass1"},
            headers=headers,
        )
        self.assertEqual(resp.status_code, 200)
        old = self.client.post("/user/login", json={"email": "alice@example.com", "password": DEFAULT_PASSWORD})
        self.assertEqual(old.status_code, 401)
        new = self.client.post("/user/login", json={"email": "alice@example.com", "password": "newpass1"})
        self.assertEqual(new.status_code, 200)

    def test_delete_account(self) -> None:
        headers = self.auth_headers(self.user_id)
        resp = self.client.request(
            "DELETE", "/user/delete-account/alice@example.com", json={"password": "wrong-password"}, headers=headers
        )
        self.assertEqual(resp.status_code, 400)
        resp = self.client.request(
            "DELETE", "/user/delete-account/alice@example.com", json={"password": DEFAULT_PASSWORD}, headers=headers
        )
        self.assertEqual(resp.status_code, 200)
        # The token now points at a user that no longer exists.
        resp = self.client.get("/user/by-email/alice@example.com", headers=headers)
        self.assertEqual(resp.status_code, 401)

    def test_mixed_case_path_email_reaches_own_account(self) -> None:
        with patch(SEND_MAIL, new_callable=AsyncMock):
            resp = self.client.post(
                "/user/register",
                json={"name": "Bob", "email": "Bob@Example.COM", "password": "hunter22"},
            )
        self.assertEqual(resp.status_code, 201)
        login = self.client.post("/user/login", json={"email": "Bob@Example.COM", "password": "hunter22"})
        self.client.cookies.clear()
        headers = self.auth_headers(login.json()["userId"])

        resp = self.client.get("/user/by-email/Bob@Example.COM", headers=headers)
        self.assertEqual(resp.status_code, 200)
        self.assertEqual(resp.json()["email"], "Bob@example.com")

        resp = self.client.patch("/user/edit-name/Bob@Example.COM", json={"name": "Robert"}, headers=headers)
        self.assertEqual(resp.status_code, 200)
        self.assertEqual(resp.json()["user"]["name"], "Robert")

        resp = self.client.patch(
            "/user/update-password/Bob@EXAMPLE.com",
            json={"currentPassword": "hunter22", "newPassword": "hunter33"},
            headers=headers,
        )
        self.assertEqual(resp.status_code, 200)

    def test_malformed_path_email_is_400(self) -> None:
        resp = self.client.get("/user/by-email/not-an-email", headers=self.auth_headers(self.user_id))
        self.assertEqual(resp.status_code, 400)
        self.assertEqual(resp.json(), {"error": "Invalid email address."})


class TestProfileImageRoutes(ApiTestCase):
    UPLOAD = "app.api.users.upload_image"

    def setUp(self) -> None:
        super().setUp()
        self.user_id = self.create_user()
        self.headers = self.auth_headers(self.user_id)

    def _files(self) -> dict:
        return {"image": ("me.png", b"\x89PNG fake bytes", "image/png")}

    def test_upload_then_get_then_remove(self) -> None:
        with patch(self.UPLOAD, new_callable=AsyncMock, return_value="https://cdn.test/me.png"):
            resp = self.client.post("/user/upload-image", files=self._files(), headers=self.headers)
        self.assertEqual(resp.status_code, 200)
        self.assertEqual(resp.json()["user"]["profileImageUrl"], "https://cdn.test/me.png")

        resp = self.client.get("/user/profile-image", headers=self.headers)
        self.assertEqual(resp.json(), {"profileImageUrl": "https://cdn.test/me.png"})

        resp = self.client.delete("/user/remove-profile-image", headers=self.headers)
        self.assertEqual(resp.status_code, 200)
        resp = self.client.get("/user/profile-image", headers=self.headers)
        self.assertEqual(resp.status_code, 404)

    def test_profile_url_is_saved_off_the_event_loop(self) -> None:
        spy, calls = loop_spy(users.set_profile_image)
        with patch.object(users, "set_profile_image", new=spy), patch(
            self.UPLOAD, new_callable=AsyncMock, return_value="https://cdn.test/me.png"
        ):
            resp = self.client.patch("/user/update-profile-image", files=self._files(), headers=self.headers)
        self.assertEqual(resp.status_code, 200)
        self.assertEqual(calls, [False])

    def test_missing_file_is_400(self) -> None:
        resp = self.client.post("/user/upload-image", headers=self.headers)
        self.assertEqual(resp.status_code, 400)
        self.assertEqual(resp.json(), {"error": "No file uploaded."})

    def test_non_image_is_400(self) -> None:
        files = {"image": ("notes.txt", b"hello", "text/plain")}
        resp = self.client.post("/user/upload-image", files=files, headers=self.headers)
        self.assertEqual(resp.status_code, 400)

    def test_failed_upload_keeps_previous_url(self) -> None:
        with patch(self.UPLOAD, new_callable=AsyncMock, return_value="https://cdn.test/old.png"):
            self.client.post("/user/upload-image", files=self._files(), headers=self.headers)
        with patch(self.UPLOAD, new_callable=AsyncMock, side_effect=ObjectStoreError("Object store returned 500: boom", 500)):
            resp = self.client.patch("/user/update-profile-image", files=self._files(), headers=self.headers)
        self.assertEqual(resp.status_code, 500)
        self.assertEqual(resp.json(), {"error": "Error uploading image to the object store."})
        resp = self.client.get("/user/profile-image", headers=self.headers)
        self.assertEqual(resp.json()["profileImageUrl"], "https://cdn.test/old.png")


class TestUnhandledErrors(ApiTestCase):
    """Unexpected exceptions render as a generic 500; the stack only in debug."""

    def setUp(self) -> None:
        super().setUp()
        self.admin_id = self.create_user(name="Root", email="root@example.com", role="admin")
        self.client = TestClient(app, raise_server_exceptions=False)

    def _boom(self, debug: bool):
        with patch("app.services.users.list_users", side_effect=RuntimeError("boom")):
            with patch("app.main.get_settings", return_value=make_settings(DEBUG=debug)):
                return self.client.get("/user/all", headers=self.auth_headers(self.admin_id, "admin"))

    def test_production_hides_stack(self) -> None:
        resp = self._boom(debug=False)
        self.assertEqual(resp.status_code, 500)
        self.assertEqual(resp.json(), {"error": {"message": "Internal Server Error", "code": 500}})

    def test_debug_includes_stack(self) -> None:
        resp = self._boom(debug=True)
        self.assertEqual(resp.status_code, 500)
        self.assertIn("RuntimeError: boom", resp.json()["error"]["stack"])


if __name__ == "__main__":
    unittest.main()
