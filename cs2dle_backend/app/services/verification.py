"""Email verification codes: issuing them, and redeeming them for an account or a session.

Each redeem runs inside a single store transaction, so looking up the code,
checking it and deleting it (plus creating the account on sign-up) happen
atomically. A code that fails any check is left in place and can be retried
until it expires; there is no attempt limit.
"""
from __future__ import annotations

import enum
import logging
import uuid
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Optional

from ..core.security import generate_verification_code
from ..db.auth import SQLiteAuthStore
from ..db.models import ACTIVE_STATUS

logger = logging.getLogger(__name__)

CODE_TYPES = ("signup", "signin")


class VerificationFailure(enum.Enum):
    INVALID_CODE = "invalid_code"
    EXPIRED = "expired"
    MISSING_USERNAME = "missing_username"
    ACCOUNT_NOT_FOUND = "account_not_found"
    ACCOUNT_INACTIVE = "account_inactive"
    ACCOUNT_EXISTS = "account_exists"


class VerificationError(Exception):
    def __init__(self, reason: VerificationFailure):
        super().__init__(reason.value)
        self.reason = reason


@dataclass(frozen=True)
class VerifyResult:
    code_type: str
    user_id: Optional[str] = None


@dataclass(frozen=True)
class Identity:
    id: str
    email: str
    name: str


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def issue_code(
    store: SQLiteAuthStore,
    email: str,
    code_type: str,
    ttl_seconds: int,
    now: Optional[datetime] = None,
) -> str:
    """Create (or replace) the pending code for ``email`` and return it."""
    if code_type not in CODE_TYPES:
        raise ValueError(f"Unknown code type: {code_type}")
    existing = store.get_admin_by_email(email)
    if code_type == "signin" and existing is None:
        raise VerificationError(VerificationFailure.ACCOUNT_NOT_FOUND)
    if code_type == "signup" and existing is not None:
        raise VerificationError(VerificationFailure.ACCOUNT_EXISTS)

    now = now or _utcnow()
    code = generate_verification_code()
    store.upsert_verification_code(email, code, code_type, now + timedelta(seconds=ttl_seconds))
    logger.info("Issued %s verification code for %s", code_type, email)
    return code


def verify_code(
    store: SQLiteAuthStore,
    email: str,
    code: str,
    code_type: str,
    username: Optional[str] = None,
    now: Optional[datetime] = None,
) -> VerifyResult:
    if code_type not in CODE_TYPES:
        raise ValueError(f"Unknown code type: {code_type}")
    if code_type == "signup" and not username:
        raise VerificationError(VerificationFailure.MISSING_USERNAME)

    now = now or _utcnow()
    with store.transaction() as conn:
        record = store.find_verification_code(email, code, code_type, conn=conn)
        if record is None:
            raise VerificationError(VerificationFailure.INVALID_CODE)
        if record.is_expired(now):
            raise VerificationError(VerificationFailure.EXPIRED)

        if code_type == "signin":
            store.delete_verification_code(email, code, conn=conn)
            logger.info("Sign-in code verified for %s", email)
            return VerifyResult(code_type=code_type)

        if store.get_admin_by_email(email, conn=conn) is not None:
            raise VerificationError(VerificationFailure.ACCOUNT_EXISTS)
        admin = store.insert_admin(
            admin_id=str(uuid.uuid4()),
            name=str(username),
            email=email,
            status=ACTIVE_STATUS,
            role="admin",
            conn=conn,
        )
        store.delete_verification_code(email, code, conn=conn)

    logger.info("Created admin account %s for %s", admin.admin_id, email)
    return VerifyResult(code_type=code_type, user_id=admin.admin_id)


def authorize(
    store: SQLiteAuthStore,
    email: str,
    code: str,
    now: Optional[datetime] = None,
) -> Identity:
    """Redeem a sign-in code for the identity claim a session token is minted from."""
    now = now or _utcnow()
    with store.transaction() as conn:
        admin = store.get_admin_by_email(email, conn=conn)
        if admin is None:
            raise VerificationError(VerificationFailure.ACCOUNT_NOT_FOUND)
        if not admin.is_active:
            raise VerificationError(VerificationFailure.ACCOUNT_INACTIVE)

        record = store.find_verification_code(email, code, "signin", conn=conn)
        if record is None:
            raise VerificationError(VerificationFailure.INVALID_CODE)
        if record.is_expired(now):
            raise VerificationError(VerificationFailure.EXPIRED)

        store.delete_verification_code(email, code, conn=conn)

    logger.info("Admin %s signed in", email)
    return Identity(id=admin.admin_id, email=admin.email, name=admin.name)
