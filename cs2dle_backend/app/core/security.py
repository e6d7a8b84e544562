from __future__ import annotations

import secrets
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Optional

import jwt

from .config import Settings, settings


def generate_verification_code() -> str:
    return f"{secrets.randbelow(1_000_000):06d}"


def issue_jwt(user_id: str, email: str, name: str, cfg: Optional[Settings] = None) -> str:
    cfg = cfg or settings
    now = datetime.now(timezone.utc)
    payload: Dict[str, Any] = {
        "iss": cfg.jwt_issuer,
        "sub": user_id,
        "email": email,
        "name": name,
        "iat": int(now.timestamp()),
        "exp": int((now + timedelta(seconds=cfg.jwt_ttl_seconds)).timestamp()),
    }
    return jwt.encode(payload, cfg.jwt_secret, algorithm="HS256")


def verify_jwt(token: str, cfg: Optional[Settings] = None) -> Dict[str, Any]:
    """Decode a session token.

    Raises jwt.ExpiredSignatureError once the 24h window has passed and
    jwt.InvalidTokenError for anything else that fails verification.
    """
    cfg = cfg or settings
    return jwt.decode(
        token,
        cfg.jwt_secret,
        algorithms=["HS256"],
        issuer=cfg.jwt_issuer,
        options={"require": ["exp", "iat", "sub"]},
    )
