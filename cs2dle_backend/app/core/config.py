from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path


@dataclass(frozen=True)
class Settings:
    app_name: str = "cs2dle-admin"
    database_path: Path = Path(os.getenv("CS2DLE_DB_PATH", "storage/db/cs2dle.sqlite3"))
    log_level: str = os.getenv("LOG_LEVEL", "INFO")

    # Sessions
    jwt_secret: str = os.getenv("JWT_SECRET", "dev-secret-change-me")
    jwt_issuer: str = os.getenv("JWT_ISSUER", "cs2dle-admin")
    jwt_ttl_seconds: int = int(os.getenv("JWT_TTL_SECONDS", "86400"))  # 24h
    verification_code_ttl_seconds: int = int(os.getenv("VERIFICATION_CODE_TTL_SECONDS", "600"))  # 10m

    # Email (verification codes)
    email_mode: str = os.getenv("EMAIL_MODE", "console")  # console|smtp
    smtp_host: str = os.getenv("SMTP_HOST", "")
    smtp_port: int = int(os.getenv("SMTP_PORT", "587"))
    smtp_user: str = os.getenv("SMTP_USER", "")
    smtp_pass: str = os.getenv("SMTP_PASS", "")
    smtp_from: str = os.getenv("SMTP_FROM", "no-reply@cs2dle.local")

    # Comma-separated list of dashboard origins
    cors_allow_origins: str = os.getenv("CORS_ALLOW_ORIGINS", "")


settings = Settings()
