from __future__ import annotations

import logging
import sqlite3
from typing import Any, Dict, List, Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from .api.answers import router as answers_router
from .api.auth import router as auth_router
from .api.leaderboard import router as leaderboard_router
from .api.precases import router as precases_router
from .api.users import router as users_router
from .api.weekly_prizes import router as weekly_prizes_router
from .api.words import router as words_router
from .core.config import Settings, settings
from .core.logging_config import setup_logging
from .db.auth import SQLiteAuthStore
from .db.players import SQLitePlayerStore
from .db.sqlite import SQLiteContentStore

logger = logging.getLogger(__name__)


def _cors_allow_origins(cfg: Settings) -> list[str]:
    """CORS origins for the admin dashboard.

    Configure with `CORS_ALLOW_ORIGINS` as a comma-separated list.
    Defaults to the local Next.js dev server.
    """
    env = cfg.cors_allow_origins.strip()
    if env:
        return [o.strip().rstrip("/") for o in env.split(",") if o.strip()]
    return [
        "http://localhost:3000",
        "http://127.0.0.1:3000",
    ]


def _field_errors(exc: RequestValidationError) -> List[Dict[str, Any]]:
    errors = []
    for err in exc.errors():
        loc = [str(part) for part in err.get("loc", ()) if part != "body"]
        errors.append({"field": ".".join(loc), "message": err.get("msg", "Invalid value")})
    return errors


def _install_error_handlers(app: FastAPI) -> None:
    @app.exception_handler(StarletteHTTPException)
    async def http_error(request: Request, exc: StarletteHTTPException) -> JSONResponse:
        return JSONResponse(status_code=exc.status_code, content={"error": exc.detail}, headers=exc.headers)

    @app.exception_handler(RequestValidationError)
    async def validation_error(request: Request, exc: RequestValidationError) -> JSONResponse:
        return JSONResponse(status_code=400, content={"error": _field_errors(exc)})

    @app.exception_handler(sqlite3.OperationalError)
    async def database_error(request: Request, exc: sqlite3.OperationalError) -> JSONResponse:
        logger.error("Database error on %s %s: %s", request.method, request.url.path, exc)
        return JSONResponse(status_code=503, content={"error": "Database unavailable"})

    @app.exception_handler(Exception)
    async def unexpected_error(request: Request, exc: Exception) -> JSONResponse:
        logger.exception("Unhandled error on %s %s", request.method, request.url.path)
        return JSONResponse(status_code=500, content={"error": "Internal server error"})


def create_app(cfg: Optional[Settings] = None) -> FastAPI:
    cfg = cfg or settings
    setup_logging(cfg.log_level)

    app = FastAPI(title=cfg.app_name)
    app.state.settings = cfg
    app.state.auth_store = SQLiteAuthStore(cfg.database_path)
    app.state.content_store = SQLiteContentStore(cfg.database_path)
    app.state.player_store = SQLitePlayerStore(cfg.database_path)
    logger.info("Using database %s", cfg.database_path)

    @app.get("/")
    def root() -> dict:
        return {"ok": True, "docs": "/docs", "health": "/healthz"}

    @app.get("/healthz")
    def healthz() -> dict:
        return {"ok": True}

    app.add_middleware(
        CORSMiddleware,
        allow_origins=_cors_allow_origins(cfg),
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    _install_error_handlers(app)
    app.include_router(auth_router)
    app.include_router(words_router)
    app.include_router(answers_router)
    app.include_router(precases_router)
    app.include_router(weekly_prizes_router)
    app.include_router(users_router)
    app.include_router(leaderboard_router)
    return app
