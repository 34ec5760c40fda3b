"""Tests for organizer sign-in."""

from __future__ import annotations

import unittest
from unittest.mock import MagicMock, patch

from squadpay import create_app
from squadpay.auth.session import (
    AUTHENTICATED,
    STATE_KEY,
    UNAUTHENTICATED,
    IdentitySession,
)
from squadpay.errors import AppError, AuthenticationError

from .helpers import ORGANIZER_EMAIL, ORGANIZER_ID, sign_in

MOCK_TOKEN = {"uid": ORGANIZER_ID, "email": ORGANIZER_EMAIL}


class IdentitySessionTestCase(unittest.TestCase):
    """Test case for the sign-in state machine."""

    def setUp(self) -> None:
        self.app = create_app({"TESTING": True})
        self.ctx = self.app.app_context()
        self.ctx.push()
        self.store = {}
        self.verify = MagicMock(return_value=MOCK_TOKEN)
        self.session = IdentitySession(store=self.store, verify_token=self.verify)

    def tearDown(self) -> None:
        self.ctx.pop()

    def test_starts_unauthenticated(self) -> None:
        self.assertEqual(self.session.state, UNAUTHENTICATED)
        self.assertFalse(self.session.is_authenticated)
        self.assertIsNone(self.session.identity)

    def test_sign_in(self) -> None:
        identity = self.session.sign_in("token")

        self.assertEqual(identity, MOCK_TOKEN)
        self.assertEqual(self.store[STATE_KEY], AUTHENTICATED)
        self.assertEqual(self.store["user_id"], ORGANIZER_ID)
        self.assertTrue(self.session.is_authenticated)
        self.verify.assert_called_once_with("token")

    def test_invalid_token(self) -> None:
        self.verify.side_effect = ValueError("expired")

        with self.assertRaises(AuthenticationError) as ctx:
            self.session.sign_in("bad")

        self.assertEqual(ctx.exception.status_code, 401)
        self.assertEqual(self.session.state, UNAUTHENTICATED)
        self.assertNotIn("user_id", self.store)

    def test_missing_token(self) -> None:
        with self.assertRaises(AuthenticationError):
            self.session.sign_in(None)
        self.verify.assert_not_called()

    def test_sign_out(self) -> None:
        self.session.sign_in("token")
        self.session.sign_out()

        self.assertEqual(self.session.state, UNAUTHENTICATED)
        self.assertNotIn("user_id", self.store)
        self.assertNotIn("email", self.store)

    def test_sign_out_when_signed_out(self) -> None:
        self.session.sign_out()
        self.assertEqual(self.session.state, UNAUTHENTICATED)

    def test_sign_in_again_replaces_identity(self) -> None:
        self.session.sign_in("token")
        self.verify.return_value = {"uid": "other", "email": "other@example.com"}

        self.session.sign_in("token2")

        self.assertEqual(self.session.identity["uid"], "other")

    def test_listeners(self) -> None:
        seen = []
        unsubscribe = self.session.subscribe(seen.append)

        self.session.sign_in("token")
        self.session.sign_out()
        unsubscribe()
        self.session.sign_in("token")

        self.assertEqual(seen, [MOCK_TOKEN, None])

    def test_state_without_user_is_not_authenticated(self) -> None:
        self.store[STATE_KEY] = AUTHENTICATED
        self.assertFalse(self.session.is_authenticated)

    def test_invalid_transition(self) -> None:
        self.store[STATE_KEY] = "signing_out"
        with self.assertRaises(AppError) as ctx:
            self.session.sign_in("token")
        self.assertEqual(ctx.exception.status_code, 409)


class AuthRoutesTestCase(unittest.TestCase):
    """Test case for the auth blueprint."""

    def setUp(self) -> None:
        self.app = create_app(
            {
                "TESTING": True,
                "WTF_CSRF_ENABLED": False,
                "SERVER_NAME": "localhost",
                "FIREBASE_WEB_API_KEY": "web-key",
                "FIREBASE_PROJECT_ID": "squadpay-test",
            }
        )
        self.client = self.app.test_client()
        patcher = patch(
            "squadpay.auth.session.auth.verify_id_token", return_value=MOCK_TOKEN
        )
        self.mock_verify = patcher.start()
        self.addCleanup(patcher.stop)

    def test_login_page(self) -> None:
        response = self.client.get("/auth/login")
        self.assertEqual(response.status_code, 200)
        self.assertIn(b"firebase-config.js", response.data)

    def test_login_redirects_when_signed_in(self) -> None:
        sign_in(self.client)
        response = self.client.get("/auth/login")
        self.assertEqual(response.status_code, 302)

    def test_session_login(self) -> None:
        response = self.client.post("/auth/session_login", json={"idToken": "abc"})

        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.get_json(), {"status": "success"})
        with self.client.session_transaction() as sess:
            self.assertEqual(sess["user_id"], ORGANIZER_ID)
            self.assertEqual(sess[STATE_KEY], AUTHENTICATED)

    def test_session_login_rejected(self) -> None:
        self.mock_verify.side_effect = ValueError("bad token")

        response = self.client.post("/auth/session_login", json={"idToken": "abc"})

        self.assertEqual(response.status_code, 401)
        self.assertEqual(
            response.get_json(),
            {"status": "error", "message": "Invalid token or server error."},
        )

    def test_data_routes_require_sign_in(self) -> None:
        for path in ("/", "/t/t1/receipt/p1", "/t/t1/participants/p1/paid"):
            with self.subTest(path=path):
                response = self.client.get(path)
                self.assertEqual(response.status_code, 302)
                self.assertIn("/auth/login", response.location)

    def test_logout_confirmation_page(self) -> None:
        sign_in(self.client)
        response = self.client.get("/auth/logout")
        self.assertEqual(response.status_code, 200)
        self.assertIn(b"Sign out?", response.data)

    def test_logout(self) -> None:
        sign_in(self.client)

        response = self.client.post("/auth/logout", follow_redirects=True)

        self.assertEqual(response.status_code, 200)
        self.assertIn(b"You have been signed out.", response.data)
        with self.client.session_transaction() as sess:
            self.assertNotIn("user_id", sess)

    def test_firebase_config(self) -> None:
        response = self.client.get("/auth/firebase-config.js")
        self.assertEqual(response.mimetype, "application/javascript")
        self.assertIn(b'"apiKey": "web-key"', response.data)
        self.assertIn(b"squadpay-test.firebaseapp.com", response.data)


if __name__ == "__main__":
    unittest.main()
