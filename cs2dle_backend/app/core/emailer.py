from __future__ import annotations

import logging
import smtplib
from email.message import EmailMessage
from typing import Optional

from .config import Settings, settings

logger = logging.getLogger(__name__)

_SUBJECTS = {
    "signup": "Verification Code - Sign Up",
    "signin": "Verification Code - Sign In",
}


def _html_body(code: str, ttl_minutes: int) -> str:
    return (
        '<div style="font-family: Arial, sans-serif; max-width: 600px; margin: 0 auto;">'
        '<h2 style="color: #333;">Verification Code</h2>'
        "<p>Your 6-digit verification code is:</p>"
        '<div style="background-color: #f5f5f5; padding: 20px; text-align: center; margin: 20px 0;">'
        f'<h1 style="color: #007bff; font-size: 32px; margin: 0; letter-spacing: 5px;">{code}</h1>'
        "</div>"
        f"<p>This code will expire in {ttl_minutes} minutes.</p>"
        "<p>If you didn't request this code, please ignore this email.</p>"
        "</div>"
    )


def send_verification_code(email: str, code: str, code_type: str, cfg: Optional[Settings] = None) -> None:
    """Send a verification code to an email address.

    EMAIL_MODE=console logs the code (dev).
    EMAIL_MODE=smtp sends via configured SMTP; port 465 uses implicit TLS,
    anything else STARTTLS.
    """
    cfg = cfg or settings
    mode = cfg.email_mode.lower()
    if mode == "console":
        logger.info("[EMAIL_CODE] to=%s type=%s code=%s", email, code_type, code)
        return

    if mode != "smtp":
        raise RuntimeError(f"Unknown EMAIL_MODE: {cfg.email_mode}")

    if not cfg.smtp_host or not cfg.smtp_user or not cfg.smtp_pass:
        raise RuntimeError("SMTP is not configured (SMTP_HOST/SMTP_USER/SMTP_PASS)")

    ttl_minutes = cfg.verification_code_ttl_seconds // 60
    msg = EmailMessage()
    msg["Subject"] = _SUBJECTS.get(code_type, "Verification Code")
    msg["From"] = cfg.smtp_from
    msg["To"] = email
    msg.set_content(f"Your verification code is: {code}\n\nThis code expires in {ttl_minutes} minutes.")
    msg.add_alternative(_html_body(code, ttl_minutes), subtype="html")

    if cfg.smtp_port == 465:
        with smtplib.SMTP_SSL(cfg.smtp_host, cfg.smtp_port) as s:
            s.login(cfg.smtp_user, cfg.smtp_pass)
            s.send_message(msg)
    else:
        with smtplib.SMTP(cfg.smtp_host, cfg.smtp_port) as s:
            s.starttls()
            s.login(cfg.smtp_user, cfg.smtp_pass)
            s.send_message(msg)
    logger.info("Verification code email sent to %s (%s)", email, code_type)
