# tests/test_auth_api.py
from datetime import datetime, timedelta, timezone

from flask_jwt_extended import create_access_token

from fintrack_api import db
from tests.api_base import ApiTestCase


class TestRegistration(ApiTestCase):
    def test_register_does_not_log_in(self):
        resp = self.register()
        self.assertEqual(resp.status_code, 201)
        body = resp.get_json()
        self.assertTrue(body["success"])
        self.assertNotIn("token", body["data"])
        self.assertTrue(body["data"]["emailSent"])
        self.assertEqual(len(self.mailer.verifications), 1)

    def test_duplicate_email_rejected(self):
        self.register()
        resp = self.register(email="ASHA@example.com")
        self.assertEqual(resp.status_code, 400)
        self.assertEqual(resp.get_json()["message"], "User with this email already exists")

    def test_validation_errors_listed_per_field(self):
        resp = self.client.post("/api/auth/register", json={"name": "A", "email": "nope", "password": "123"})
        self.assertEqual(resp.status_code, 400)
        body = resp.get_json()
        self.assertEqual(body["message"], "Validation failed")
        self.assertEqual({e["field"] for e in body["errors"]}, {"name", "email", "password"})


class TestLogin(ApiTestCase):
    def test_unverified_login_is_blocked(self):
        self.register()
        resp = self.client.post("/api/auth/login", json={"email": "asha@example.com", "password": "secret1"})
        self.assertEqual(resp.status_code, 401)
        self.assertTrue(resp.get_json()["emailVerificationRequired"])

    def test_wrong_password_and_unknown_email_look_the_same(self):
        self.verified_token()
        wrong = self.client.post("/api/auth/login", json={"email": "asha@example.com", "password": "bad-pass"})
        unknown = self.client.post("/api/auth/login", json={"email": "nobody@example.com", "password": "secret1"})
        self.assertEqual(wrong.status_code, 401)
        self.assertEqual(wrong.get_json(), unknown.get_json())

    def test_unverified_account_with_wrong_password_does_not_reveal_state(self):
        self.register()
        resp = self.client.post("/api/auth/login", json={"email": "asha@example.com", "password": "bad-pass"})
        self.assertNotIn("emailVerificationRequired", resp.get_json())

    def test_verified_login_returns_token_and_user(self):
        self.verified_token()
        resp = self.client.post("/api/auth/login", json={"email": "Asha@Example.com", "password": "secret1"})
        self.assertEqual(resp.status_code, 200)
        data = resp.get_json()["data"]
        self.assertEqual(data["user"]["email"], "asha@example.com")
        self.assertEqual(data["user"]["preferences"]["currency"], "USD")
        self.assertNotIn("password_hash", data["user"])

        verify = self.client.get("/api/auth/verify", headers=self.auth(data["token"]))
        self.assertEqual(verify.status_code, 200)
        self.assertEqual(verify.get_json()["data"]["user"]["name"], "Asha Rao")


class TestEmailVerification(ApiTestCase):
    def test_token_is_single_use(self):
        self.register()
        token = self.mailer.last_verification_token("asha@example.com")
        first = self.client.post("/api/auth/verify-email", json={"token": token})
        self.assertEqual(first.status_code, 200)
        self.assertIn("token", first.get_json()["data"])
        second = self.client.post("/api/auth/verify-email", json={"token": token})
        self.assertEqual(second.status_code, 400)

    def test_expired_token_rejected(self):
        self.register()
        token = self.mailer.last_verification_token("asha@example.com")
        past = (datetime.now(timezone.utc) - timedelta(hours=1)).isoformat()
        with self.app.app_context():
            db.execute_db("UPDATE users SET email_verification_expires=?", (past,))
        resp = self.client.post("/api/auth/verify-email", json={"token": token})
        self.assertEqual(resp.status_code, 400)

    def test_resend_rotates_token(self):
        self.register()
        old = self.mailer.last_verification_token("asha@example.com")
        resp = self.client.post("/api/auth/resend-verification", json={"email": "asha@example.com"})
        self.assertEqual(resp.status_code, 200)
        new = self.mailer.last_verification_token("asha@example.com")
        self.assertNotEqual(old, new)
        self.assertEqual(self.client.post("/api/auth/verify-email", json={"token": old}).status_code, 400)
        self.assertEqual(self.client.post("/api/auth/verify-email", json={"token": new}).status_code, 200)

    def test_resend_for_unknown_email_is_uniform(self):
        resp = self.client.post("/api/auth/resend-verification", json={"email": "ghost@example.com"})
        self.assertEqual(resp.status_code, 200)
        self.assertEqual(self.mailer.verifications, [])


class TestPasswordReset(ApiTestCase):
    def test_reset_flow(self):
        self.verified_token()
        resp = self.client.post("/api/auth/forgot-password", json={"email": "asha@example.com"})
        self.assertEqual(resp.status_code, 200)
        _, token = self.mailer.resets[-1]

        reset = self.client.post("/api/auth/reset-password", json={"token": token, "password": "newpass1"})
        self.assertEqual(reset.status_code, 200)
        again = self.client.post("/api/auth/reset-password", json={"token": token, "password": "other12"})
        self.assertEqual(again.status_code, 400)

        old = self.client.post("/api/auth/login", json={"email": "asha@example.com", "password": "secret1"})
        new = self.client.post("/api/auth/login", json={"email": "asha@example.com", "password": "newpass1"})
        self.assertEqual(old.status_code, 401)
        self.assertEqual(new.status_code, 200)

    def test_forgot_password_unknown_email_same_answer(self):
        self.verified_token()
        known = self.client.post("/api/auth/forgot-password", json={"email": "asha@example.com"})
        unknown = self.client.post("/api/auth/forgot-password", json={"email": "ghost@example.com"})
        self.assertEqual(known.get_json(), unknown.get_json())
        self.assertEqual(len(self.mailer.resets), 1)

    def test_reset_token_stored_hashed(self):
        self.verified_token()
        self.client.post("/api/auth/forgot-password", json={"email": "asha@example.com"})
        _, token = self.mailer.resets[-1]
        with self.app.app_context():
            stored = db.query_db("SELECT password_reset_token FROM users", one=True)[0]
        self.assertNotEqual(stored, token)


class TestTokens(ApiTestCase):
    def test_missing_bad_and_expired_tokens_get_same_401(self):
        missing = self.client.get("/api/transactions")
        garbage = self.client.get("/api/transactions", headers=self.auth("not-a-jwt"))
        with self.app.app_context():
            expired = create_access_token(identity="1", expires_delta=timedelta(seconds=-10))
        stale = self.client.get("/api/transactions", headers=self.auth(expired))
        for resp in (missing, garbage, stale):
            self.assertEqual(resp.status_code, 401)
            self.assertEqual(resp.get_json(), {"success": False, "message": "Authentication required"})

    def test_logout(self):
        token = self.verified_token()
        resp = self.client.post("/api/auth/logout", headers=self.auth(token))
        self.assertEqual(resp.status_code, 200)

    def test_health_and_unknown_route(self):
        self.assertEqual(self.client.get("/health").get_json()["status"], "OK")
        missing = self.client.get("/api/nothing-here")
        self.assertEqual(missing.status_code, 404)
        self.assertEqual(missing.get_json()["message"], "Route not found")
