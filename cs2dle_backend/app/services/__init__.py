from .verification import (
    Identity,
    VerificationError,
    VerificationFailure,
    VerifyResult,
    authorize,
    issue_code,
    verify_code,
)

__all__ = [
    "Identity",
    "VerificationError",
    "VerificationFailure",
    "VerifyResult",
    "authorize",
    "issue_code",
    "verify_code",
]
