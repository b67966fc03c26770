# filmapi/middleware/request_id.py
from __future__ import annotations

"""
# FilmAPI · Request ID Middleware (pure ASGI)

- Reuses a client-supplied `X-Request-ID` when it is a valid UUIDv4.
- Generates a UUIDv4 otherwise.
- Stores it in `request.state.request_id` and echoes it on the response.
- Binds `request_id` into the loguru context for the whole request, so every
  record (stdlib ones included, via `InterceptHandler`) carries it.

## Env
- `REQUEST_ID_HEADER_NAME` (default: `X-Request-ID`)
- `REQUEST_ID_TRUST_CLIENT_IDS` ("true"/"false"; default: "true")
"""

import os
import uuid

from loguru import logger
from starlette.datastructures import Headers
from starlette.types import ASGIApp, Message, Receive, Scope, Send

HEADER_NAME = os.getenv("REQUEST_ID_HEADER_NAME", "X-Request-ID")
TRUST_CLIENT_IDS = os.getenv("REQUEST_ID_TRUST_CLIENT_IDS", "true").lower() == "true"


def _client_id(value: str | None) -> str | None:
    if not value or len(value) > 64:
        return None
    try:
        parsed = uuid.UUID(value.strip())
    except ValueError:
        return None
    return str(parsed) if parsed.version == 4 else None


class RequestIDMiddleware:
    """Attach a correlation id to each HTTP request."""

    def __init__(self, app: ASGIApp, header_name: str = HEADER_NAME) -> None:
        self.app = app
        self.header_name = header_name

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope.get("type") != "http":
            return await self.app(scope, receive, send)

        incoming = Headers(scope=scope).get(self.header_name) if TRUST_CLIENT_IDS else None
        req_id = _client_id(incoming) or str(uuid.uuid4())
        scope.setdefault("state", {})["request_id"] = req_id
        name = self.header_name.lower().encode("latin-1")

        async def _send(message: Message) -> None:
            if message["type"] == "http.response.start":
                headers = [(k, v) for k, v in message.get("headers", []) if k.lower() != name]
                headers.append((name, req_id.encode("latin-1")))
                message["headers"] = headers
            await send(message)

        with logger.contextualize(request_id=req_id):
            await self.app(scope, receive, _send)


def get_request_id(request) -> str:
    """Current request id from `request.state`, or "" outside a request."""
    return getattr(getattr(request, "state", object()), "request_id", "") or ""


__all__ = ["RequestIDMiddleware", "get_request_id"]
