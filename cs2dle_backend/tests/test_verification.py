from __future__ import annotations

import tempfile
import unittest
from datetime import datetime, timedelta, timezone
from pathlib import Path

from cs2dle_backend.app.db.auth import SQLiteAuthStore
from cs2dle_backend.app.services.verification import (
    VerificationError,
    VerificationFailure,
    authorize,
    issue_code,
    verify_code,
)

NOW = datetime(2025, 6, 1, 12, 0, tzinfo=timezone.utc)


class VerificationTestCase(unittest.TestCase):
    def setUp(self) -> None:
        self._td = tempfile.TemporaryDirectory()
        self.store = SQLiteAuthStore(Path(self._td.name) / "auth.sqlite3")

    def tearDown(self) -> None:
        self._td.cleanup()

    def put_code(self, email: str, code: str, code_type: str, expires_at: datetime) -> None:
        self.store.upsert_verification_code(email, code, code_type, expires_at)

    def add_admin(self, email: str, status: str = "Active", name: str = "Ann") -> None:
        self.store.insert_admin(admin_id=f"id-{email}", name=name, email=email, status=status, role="admin")

    def assertFails(self, reason: VerificationFailure, fn, *args, **kwargs) -> None:
        with self.assertRaises(VerificationError) as ctx:
            fn(*args, **kwargs)
        self.assertIs(ctx.exception.reason, reason)


class TestVerifyCode(VerificationTestCase):
    def test_signin_code_is_single_use(self) -> None:
        self.put_code("a@b.com", "123456", "signin", NOW + timedelta(hours=1))

        result = verify_code(self.store, "a@b.com", "123456", "signin", now=NOW)
        self.assertEqual(result.code_type, "signin")
        self.assertIsNone(result.user_id)

        self.assertFails(VerificationFailure.INVALID_CODE, verify_code, self.store, "a@b.com", "123456", "signin", now=NOW)

    def test_signin_verification_does_not_create_account(self) -> None:
        self.put_code("a@b.com", "123456", "signin", NOW + timedelta(hours=1))
        verify_code(self.store, "a@b.com", "123456", "signin", now=NOW)
        self.assertIsNone(self.store.get_admin_by_email("a@b.com"))

    def test_expired_code_is_rejected_and_left_in_place(self) -> None:
        self.put_code("a@b.com", "123456", "signin", NOW - timedelta(seconds=1))

        for _ in range(3):
            self.assertFails(VerificationFailure.EXPIRED, verify_code, self.store, "a@b.com", "123456", "signin", now=NOW)
        self.assertIsNotNone(self.store.get_verification_code("a@b.com"))

    def test_code_expiring_exactly_now_is_still_valid(self) -> None:
        self.put_code("a@b.com", "123456", "signin", NOW)
        verify_code(self.store, "a@b.com", "123456", "signin", now=NOW)
        self.assertIsNone(self.store.get_verification_code("a@b.com"))

    def test_wrong_type_is_invalid(self) -> None:
        self.put_code("a@b.com", "123456", "signup", NOW + timedelta(hours=1))
        self.assertFails(VerificationFailure.INVALID_CODE, verify_code, self.store, "a@b.com", "123456", "signin", now=NOW)
        self.assertIsNotNone(self.store.get_verification_code("a@b.com"))

    def test_signup_requires_username_regardless_of_code(self) -> None:
        self.put_code("a@b.com", "123456", "signup", NOW + timedelta(hours=1))

        self.assertFails(VerificationFailure.MISSING_USERNAME, verify_code, self.store, "a@b.com", "123456", "signup", now=NOW)
        self.assertFails(VerificationFailure.MISSING_USERNAME, verify_code, self.store, "a@b.com", "000000", "signup", now=NOW)
        self.assertFails(
            VerificationFailure.MISSING_USERNAME, verify_code, self.store, "a@b.com", "123456", "signup", username="", now=NOW
        )
        self.assertIsNotNone(self.store.get_verification_code("a@b.com"))

    def test_signup_creates_active_admin_and_consumes_code(self) -> None:
        self.put_code("new@b.com", "123456", "signup", NOW + timedelta(minutes=5))

        result = verify_code(self.store, "new@b.com", "123456", "signup", username="newbie", now=NOW)

        admin = self.store.get_admin_by_email("new@b.com")
        self.assertIsNotNone(admin)
        self.assertEqual(admin.admin_id, result.user_id)
        self.assertEqual(admin.name, "newbie")
        self.assertEqual(admin.status, "Active")
        self.assertEqual(admin.role, "admin")
        self.assertIsNone(self.store.get_verification_code("new@b.com"))

    def test_signup_for_existing_account_keeps_code(self) -> None:
        self.add_admin("a@b.com")
        self.put_code("a@b.com", "123456", "signup", NOW + timedelta(minutes=5))

        self.assertFails(
            VerificationFailure.ACCOUNT_EXISTS, verify_code, self.store, "a@b.com", "123456", "signup", username="x", now=NOW
        )
        self.assertEqual(self.store.count_admins("a@b.com"), 1)
        self.assertIsNotNone(self.store.get_verification_code("a@b.com"))


class TestAuthorize(VerificationTestCase):
    def test_returns_identity_and_consumes_code(self) -> None:
        self.add_admin("a@b.com", name="Ann")
        self.put_code("a@b.com", "123456", "signin", NOW + timedelta(minutes=5))

        identity = authorize(self.store, "a@b.com", "123456", now=NOW)

        self.assertEqual(identity.id, "id-a@b.com")
        self.assertEqual(identity.email, "a@b.com")
        self.assertEqual(identity.name, "Ann")
        self.assertFails(VerificationFailure.INVALID_CODE, authorize, self.store, "a@b.com", "123456", now=NOW)

    def test_unknown_account(self) -> None:
        self.put_code("ghost@b.com", "123456", "signin", NOW + timedelta(minutes=5))
        self.assertFails(VerificationFailure.ACCOUNT_NOT_FOUND, authorize, self.store, "ghost@b.com", "123456", now=NOW)

    def test_inactive_account_with_valid_code(self) -> None:
        self.add_admin("a@b.com", status="Pending")
        self.put_code("a@b.com", "123456", "signin", NOW + timedelta(minutes=5))

        self.assertFails(VerificationFailure.ACCOUNT_INACTIVE, authorize, self.store, "a@b.com", "123456", now=NOW)
        self.assertIsNotNone(self.store.get_verification_code("a@b.com"))

    def test_signup_code_cannot_be_used_to_sign_in(self) -> None:
        self.add_admin("a@b.com")
        self.put_code("a@b.com", "123456", "signup", NOW + timedelta(minutes=5))
        self.assertFails(VerificationFailure.INVALID_CODE, authorize, self.store, "a@b.com", "123456", now=NOW)

    def test_expired(self) -> None:
        self.add_admin("a@b.com")
        self.put_code("a@b.com", "123456", "signin", NOW - timedelta(minutes=1))
        self.assertFails(VerificationFailure.EXPIRED, authorize, self.store, "a@b.com", "123456", now=NOW)
        self.assertIsNotNone(self.store.get_verification_code("a@b.com"))


class TestIssueCode(VerificationTestCase):
    def test_signin_requires_existing_account(self) -> None:
        self.assertFails(VerificationFailure.ACCOUNT_NOT_FOUND, issue_code, self.store, "a@b.com", "signin", 600, now=NOW)

    def test_signup_rejects_existing_account(self) -> None:
        self.add_admin("a@b.com")
        self.assertFails(VerificationFailure.ACCOUNT_EXISTS, issue_code, self.store, "a@b.com", "signup", 600, now=NOW)

    def test_issued_code_is_six_digits_with_ttl(self) -> None:
        code = issue_code(self.store, "a@b.com", "signup", 600, now=NOW)

        self.assertRegex(code, r"^\d{6}$")
        rec = self.store.get_verification_code("a@b.com")
        self.assertEqual(rec.code, code)
        self.assertEqual(rec.type, "signup")
        self.assertEqual(datetime.fromisoformat(rec.expires_at), NOW + timedelta(seconds=600))

    def test_unknown_type(self) -> None:
        with self.assertRaises(ValueError):
            issue_code(self.store, "a@b.com", "reset", 600, now=NOW)


if __name__ == "__main__":
    unittest.main()
