# filmapi/main.py
from __future__ import annotations

"""
# FilmAPI · Application Entrypoint (FastAPI)

ASGI application factory and lifecycle for the film catalog service.

## Design Goals
- Deterministic, testable **app factory** (`create_app`) with explicit lifespan.
- The `Database` service is owned by the lifespan: started on startup,
  disposed on shutdown, reachable as `app.state.db`.
- Middleware order: request id → gzip.
- Centralized problem+json exception handling.

## Probes
- `/healthz`: liveness (process up).
- `/readyz`: readiness (`SELECT 1` through the owned engine).
"""

import logging
import os
from contextlib import asynccontextmanager
from typing import AsyncIterator, Optional

from fastapi import FastAPI
from fastapi.exceptions import RequestValidationError
from starlette.exceptions import HTTPException as StarletteHTTPException
from starlette.middleware.gzip import GZipMiddleware

# Importing configures Loguru sinks and the stdlib intercept.
from filmapi.core import logger as _logsetup  # noqa: F401
from filmapi.api.v1.routers import router as api_v1_router
from filmapi.core.config import settings
from filmapi.core.exception_handlers import (
    app_exception_handler,
    global_exception_handler,
    http_exception_handler,
    validation_exception_handler,
)
from filmapi.core.exceptions import AppException
from filmapi.db.session import Database
from filmapi.middleware.request_id import RequestIDMiddleware

logger = logging.getLogger("filmapi")


# ─────────────────────────────────────────────────────────────────────────────
# 🏗️ App factory
# ─────────────────────────────────────────────────────────────────────────────
def create_app(database: Optional[Database] = None) -> FastAPI:
    """
    Build and configure the FastAPI app instance.

    Args:
        database: Service to own for the app's lifetime; a default one built
            from settings when omitted.
    """
    db = database or Database()

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        logger.info("✅ %s starting up", settings.PROJECT_NAME)
        await db.start()
        app.state.db = db
        try:
            yield
        finally:
            await db.stop()
            logger.info("🛑 %s shutting down", settings.PROJECT_NAME)

    enable_docs = settings.ENABLE_DOCS
    app = FastAPI(
        title=settings.PROJECT_NAME,
        version=settings.VERSION,
        docs_url="/docs" if enable_docs else None,
        redoc_url="/redoc" if enable_docs else None,
        openapi_url="/openapi.json" if enable_docs else None,
        lifespan=lifespan,
    )
    app.state.db = db

    # ── Middlewares ─────────────────────────────────────────────────────────
    app.add_middleware(GZipMiddleware, minimum_size=1024)
    app.add_middleware(RequestIDMiddleware)  # outermost: every log line gets the id

    # ── Exception handlers ──────────────────────────────────────────────────
    app.add_exception_handler(AppException, app_exception_handler)  # type: ignore[arg-type]
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)  # type: ignore[arg-type]
    app.add_exception_handler(RequestValidationError, validation_exception_handler)  # type: ignore[arg-type]
    app.add_exception_handler(Exception, global_exception_handler)

    # ── Routers (versioned API) ─────────────────────────────────────────────
    app.include_router(api_v1_router, prefix=settings.API_V1_STR)

    # ── Meta endpoints ──────────────────────────────────────────────────────
    @app.get("/healthz", tags=["meta"])
    async def healthz() -> dict[str, bool]:
        """Liveness probe; no external checks."""
        return {"ok": True}

    @app.get("/readyz", tags=["meta"])
    async def readyz() -> dict[str, object]:
        db_ok = db.started and await db.healthcheck()
        return {"ready": db_ok, "checks": {"db": db_ok}}

    return app


# ─────────────────────────────────────────────────────────────────────────────
# 🚀 Module-level ASGI app for Uvicorn
# ─────────────────────────────────────────────────────────────────────────────
app = create_app()
__all__ = ["create_app", "app"]


# Local dev runner (prefer: `uvicorn filmapi.main:app --reload`)
if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "filmapi.main:app",
        host="0.0.0.0",
        port=int(os.getenv("PORT", "8000")),
        reload=os.getenv("RELOAD", "1") == "1",
        log_level=os.getenv("LOG_LEVEL", "info").lower(),
    )
