from __future__ import annotations

import logging
import math
import uuid
from dataclasses import dataclass

import jwt
from fastapi import Depends, HTTPException, Query, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from ..core.config import Settings
from ..core.security import verify_jwt
from ..db.auth import SQLiteAuthStore
from ..db.players import SQLitePlayerStore
from ..db.sqlite import SQLiteContentStore
from ..schemas.auth import MeResponse

logger = logging.getLogger(__name__)

bearer = HTTPBearer(auto_error=False)


def get_settings(request: Request) -> Settings:
    return request.app.state.settings


def get_auth_store(request: Request) -> SQLiteAuthStore:
    return request.app.state.auth_store


def get_content_store(request: Request) -> SQLiteContentStore:
    return request.app.state.content_store


def get_player_store(request: Request) -> SQLitePlayerStore:
    return request.app.state.player_store


def get_current_user(
    creds: HTTPAuthorizationCredentials = Depends(bearer),
    cfg: Settings = Depends(get_settings),
) -> MeResponse:
    if creds is None:
        raise HTTPException(status_code=401, detail="Unauthorized")
    try:
        payload = verify_jwt(creds.credentials, cfg)
    except jwt.ExpiredSignatureError:
        raise HTTPException(status_code=401, detail="Session expired")
    except jwt.InvalidTokenError:
        logger.warning("Rejected invalid session token")
        raise HTTPException(status_code=401, detail="Invalid token")
    return MeResponse(
        user_id=str(payload["sub"]),
        email=str(payload.get("email", "")),
        name=str(payload.get("name", "")),
    )


def require_valid_id(value: str, label: str = "_id") -> str:
    try:
        uuid.UUID(value)
    except ValueError:
        raise HTTPException(status_code=400, detail=f"Invalid {label} format")
    return value


@dataclass(frozen=True)
class PageWindow:
    page: int
    limit: int

    @property
    def offset(self) -> int:
        return (self.page - 1) * self.limit

    def meta(self, total: int) -> dict:
        total_pages = math.ceil(total / self.limit)
        return {
            "page": self.page,
            "limit": self.limit,
            "total": total,
            "totalPages": total_pages,
            "hasNextPage": self.page < total_pages,
            "hasPrevPage": self.page > 1,
        }


def page_window(page: int = Query(default=1), limit: int = Query(default=25)) -> PageWindow:
    # Out-of-range values are clamped, not rejected: page >= 1, 1 <= limit <= 100.
    return PageWindow(page=max(1, page), limit=min(100, max(1, limit)))
