from __future__ import annotations

from typing import Annotated, Literal, Optional

from pydantic import AfterValidator, BaseModel, Field
from pydantic.networks import validate_email

CodeType = Literal["signup", "signin"]


def _check_email(v: str) -> str:
    # Syntax check only: codes are matched on the address exactly as typed.
    # validate_email also accepts "Name <addr>", which is not a bare address.
    if "<" in v or ">" in v or v != v.strip():
        raise ValueError("value is not a valid email address")
    validate_email(v)
    return v


Email = Annotated[str, AfterValidator(_check_email)]


class SendCodeBody(BaseModel):
    email: Email
    type: CodeType


class VerifyCodeBody(BaseModel):
    email: Email
    code: str = Field(min_length=6, max_length=6)
    type: CodeType
    username: Optional[str] = None


class SignInBody(BaseModel):
    email: Email
    code: str = Field(min_length=6, max_length=6)


class MessageResponse(BaseModel):
    message: str


class SignupResponse(BaseModel):
    message: str
    userId: str


class TokenResponse(BaseModel):
    access_token: str
    token_type: str = "bearer"
    expires_in: int


class MeResponse(BaseModel):
    user_id: str
    email: str
    name: str
