from __future__ import annotations

import logging
import smtplib
from typing import Dict, Union

from fastapi import APIRouter, Depends, HTTPException, Response

from ..core.config import Settings
from ..core.emailer import send_verification_code
from ..core.security import issue_jwt
from ..db.auth import SQLiteAuthStore
from ..schemas.auth import (
    MeResponse,
    MessageResponse,
    SendCodeBody,
    SignInBody,
    SignupResponse,
    TokenResponse,
    VerifyCodeBody,
)
from ..services.verification import VerificationError, VerificationFailure, authorize, issue_code, verify_code
from .deps import get_auth_store, get_current_user, get_settings

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/auth", tags=["auth"])

FAILURE_MESSAGES: Dict[VerificationFailure, str] = {
    VerificationFailure.INVALID_CODE: "Invalid verification code",
    VerificationFailure.EXPIRED: "Verification code has expired",
    VerificationFailure.MISSING_USERNAME: "Username is required for signup",
    VerificationFailure.ACCOUNT_NOT_FOUND: "No user found with this email",
    VerificationFailure.ACCOUNT_INACTIVE: "Your account is not yet activated. Please contact an administrator.",
    VerificationFailure.ACCOUNT_EXISTS: "User already exists with this email",
}

# One status table per endpoint; each covers every failure.
SEND_CODE_STATUS: Dict[VerificationFailure, int] = {
    VerificationFailure.INVALID_CODE: 400,
    VerificationFailure.EXPIRED: 400,
    VerificationFailure.MISSING_USERNAME: 400,
    VerificationFailure.ACCOUNT_NOT_FOUND: 404,
    VerificationFailure.ACCOUNT_INACTIVE: 403,
    VerificationFailure.ACCOUNT_EXISTS: 400,
}

VERIFY_CODE_STATUS: Dict[VerificationFailure, int] = {
    VerificationFailure.INVALID_CODE: 400,
    VerificationFailure.EXPIRED: 400,
    VerificationFailure.MISSING_USERNAME: 400,
    VerificationFailure.ACCOUNT_NOT_FOUND: 404,
    VerificationFailure.ACCOUNT_INACTIVE: 403,
    VerificationFailure.ACCOUNT_EXISTS: 409,
}

SIGNIN_STATUS: Dict[VerificationFailure, int] = {failure: 401 for failure in VerificationFailure}


def _reject(err: VerificationError, statuses: Dict[VerificationFailure, int]) -> HTTPException:
    return HTTPException(status_code=statuses[err.reason], detail=FAILURE_MESSAGES[err.reason])


@router.post("/send-code", response_model=MessageResponse)
def send_code(
    body: SendCodeBody,
    store: SQLiteAuthStore = Depends(get_auth_store),
    cfg: Settings = Depends(get_settings),
) -> MessageResponse:
    try:
        code = issue_code(store, body.email, body.type, cfg.verification_code_ttl_seconds)
    except VerificationError as err:
        raise _reject(err, SEND_CODE_STATUS)

    try:
        send_verification_code(body.email, code, body.type, cfg)
    except (smtplib.SMTPException, OSError, RuntimeError):
        logger.exception("Send code error for %s", body.email)
        raise HTTPException(status_code=500, detail="Failed to send verification code")
    return MessageResponse(message="Verification code sent successfully")


@router.post(
    "/verify-code",
    response_model=Union[SignupResponse, MessageResponse],
    responses={201: {"model": SignupResponse}},
)
def verify(
    body: VerifyCodeBody,
    response: Response,
    store: SQLiteAuthStore = Depends(get_auth_store),
) -> Union[SignupResponse, MessageResponse]:
    try:
        result = verify_code(store, body.email, body.code, body.type, username=body.username)
    except VerificationError as err:
        logger.warning("Verify code rejected for %s: %s", body.email, err.reason.value)
        raise _reject(err, VERIFY_CODE_STATUS)

    if result.user_id is not None:
        response.status_code = 201
        return SignupResponse(message="User created successfully", userId=result.user_id)
    return MessageResponse(message="Code verified successfully")


@router.post("/signin", response_model=TokenResponse)
def signin(
    body: SignInBody,
    store: SQLiteAuthStore = Depends(get_auth_store),
    cfg: Settings = Depends(get_settings),
) -> TokenResponse:
    try:
        identity = authorize(store, body.email, body.code)
    except VerificationError as err:
        logger.warning("Sign-in rejected for %s: %s", body.email, err.reason.value)
        raise _reject(err, SIGNIN_STATUS)

    token = issue_jwt(user_id=identity.id, email=identity.email, name=identity.name, cfg=cfg)
    return TokenResponse(access_token=token, expires_in=cfg.jwt_ttl_seconds)


@router.get("/me", response_model=MeResponse)
def me(user: MeResponse = Depends(get_current_user)) -> MeResponse:
    return user
