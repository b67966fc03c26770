from __future__ import annotations

"""
Problem+JSON exception handlers (RFC 7807).

FastAPI integrates these via filmapi/main.py.
All HTTP errors are rendered as application/problem+json with a stable schema;
typed persistence outcomes (`AppException`) additionally carry `code` and
`details` (e.g. the offending sort token).
"""

import logging
from typing import Any, Dict, Optional

from fastapi import Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.encoders import jsonable_encoder
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from filmapi.core.exceptions import AppException

log = logging.getLogger(__name__)


def _problem(
    title: str,
    detail: str,
    status_code: int,
    request: Request,
    extra: Optional[Dict[str, Any]] = None,
) -> JSONResponse:
    content: Dict[str, Any] = {
        "type": "about:blank",
        "title": title,
        "detail": detail,
        "status": status_code,
        "instance": str(request.url),
    }
    if extra:
        content.update(extra)
    return JSONResponse(
        status_code=status_code,
        content=jsonable_encoder(content),
        media_type="application/problem+json",
    )


async def app_exception_handler(request: Request, exc: AppException) -> JSONResponse:  # type: ignore
    title = exc.__class__.__name__.replace("Error", "").strip() or "Error"
    request_id = getattr(request.state, "request_id", None)
    body = exc.to_problem(request_id=request_id)
    extra = {k: v for k, v in body.items() if k not in {"message", "error"}}
    return _problem(title, exc.message, exc.status_code, request, extra)


async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:  # type: ignore
    title = exc.__class__.__name__.replace("Exception", "").strip() or "Error"
    detail = exc.detail if isinstance(exc.detail, str) else str(exc.detail)
    return _problem(title, detail, exc.status_code, request)


async def validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:  # type: ignore
    detail = "Validation error"
    return _problem(
        detail,
        detail,
        status.HTTP_422_UNPROCESSABLE_ENTITY,
        request,
        {"errors": exc.errors()},
    )


async def global_exception_handler(request: Request, exc: Exception) -> JSONResponse:  # type: ignore
    # Hide internals; the stack trace goes to the log only.
    log.exception("Unhandled error on %s %s", request.method, request.url.path)
    return _problem("Internal Server Error", "An unexpected error occurred.", status.HTTP_500_INTERNAL_SERVER_ERROR, request)


__all__ = [
    "app_exception_handler",
    "http_exception_handler",
    "validation_exception_handler",
    "global_exception_handler",
]
