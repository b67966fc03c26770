from __future__ import annotations

"""
FilmAPI · Application Exceptions
================================
A small, consistent layer on top of FastAPI/Starlette's `HTTPException` that
lets the persistence core raise **typed, discriminated** outcomes while the
HTTP boundary renders them without a translation table.

Taxonomy
--------
- `NotFoundError`: Get/Delete/Update target absent (404)
- `EditConflictError`: optimistic version mismatch on Update (409)
- `DuplicateEntryError`: unique-constraint violation on creation (409)
- `InvalidSortError`: requested sort token outside the safelist (422)
- `StorageFailureError`: everything else, timeouts/cancellation included (500)

Usage
-----
    raise NotFoundError(resource="film", identifier=film_id)

    try:
        ...
    except SQLAlchemyError as exc:
        raise StorageFailureError() from exc
"""

from typing import Any, Dict, Optional

from fastapi import HTTPException, status

__all__ = [
    "AppException",
    "NotFoundError",
    "EditConflictError",
    "DuplicateEntryError",
    "InvalidSortError",
    "StorageFailureError",
]


# ──────────────────────────────────────────────────────────────
# 📦 Core: AppException
# ──────────────────────────────────────────────────────────────
class AppException(HTTPException):
    """Base application-level exception with optional metadata.

    Attributes
    -----------
    status_code : int
        HTTP status code the boundary layer should answer with.
    message : str
        Human-readable error message (serialized as `detail` as well).
    code : int
        Optional internal/typed error code. Defaults to `status_code`.
    details : dict | list | str | None
        Machine-readable details (e.g., offending field or token).
    extra : dict | None
        Additional non-sensitive metadata to surface to clients.
    """

    def __init__(
        self,
        *,
        status_code: int,
        message: str,
        code: Optional[int] = None,
        details: Optional[Any] = None,
        extra: Optional[Dict[str, Any]] = None,
        headers: Optional[Dict[str, str]] = None,
    ) -> None:
        super().__init__(status_code=status_code, detail=message, headers=headers)
        self.code: int = int(code or status_code)
        self.message: str = message
        self.details: Optional[Any] = details
        self.extra: Dict[str, Any] = extra or {}

    def __str__(self) -> str:
        return self.message

    # ── [Helper] Canonical body used by handlers ───────────────────────────
    def to_problem(self, *, request_id: Optional[str] = None) -> Dict[str, Any]:
        """Return a dict matching our problem-like JSON shape."""
        body: Dict[str, Any] = {
            "error": True,
            "message": self.message,
            "code": self.code,
            "request_id": request_id or "N/A",
        }
        if self.details is not None:
            body["details"] = self.details
        body.update(self.extra)
        return body


# ──────────────────────────────────────────────────────────────
# 🔎 Lookup outcomes
# ──────────────────────────────────────────────────────────────
class NotFoundError(AppException):
    """The requested record does not exist (or is not visible to the caller)."""

    def __init__(self, *, resource: str = "record", identifier: Optional[Any] = None) -> None:
        details = {"resource": resource}
        if identifier is not None:
            details["id"] = identifier
        super().__init__(
            status_code=status.HTTP_404_NOT_FOUND,
            message="the requested resource could not be found",
            details=details,
        )
        self.resource = resource
        self.identifier = identifier


# ──────────────────────────────────────────────────────────────
# ✍️ Write outcomes
# ──────────────────────────────────────────────────────────────
class EditConflictError(AppException):
    """The version the caller read is no longer current; re-read and retry."""

    def __init__(self, *, resource: str = "record", identifier: Optional[Any] = None) -> None:
        super().__init__(
            status_code=status.HTTP_409_CONFLICT,
            message="unable to update the record due to an edit conflict, please try again",
            details={"resource": resource, "id": identifier},
        )
        self.resource = resource
        self.identifier = identifier


class DuplicateEntryError(AppException):
    """A unique constraint rejected the new row."""

    def __init__(self, *, message: str = "record already exists", constraint: Optional[str] = None) -> None:
        super().__init__(
            status_code=status.HTTP_409_CONFLICT,
            message=message,
            details={"constraint": constraint} if constraint else None,
        )
        self.constraint = constraint


# ──────────────────────────────────────────────────────────────
# 🧭 Query outcomes
# ──────────────────────────────────────────────────────────────
class InvalidSortError(AppException):
    """A sort token is not part of the resource's safelist."""

    def __init__(self, token: str) -> None:
        super().__init__(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            message=f"invalid sort value: {token!r}",
            details={"sort": token},
        )
        self.token = token


# ──────────────────────────────────────────────────────────────
# 💥 Everything else
# ──────────────────────────────────────────────────────────────
class StorageFailureError(AppException):
    """Generic storage failure; the cause is chained, never rendered."""

    def __init__(self, message: str = "the server encountered a problem and could not process your request") -> None:
        super().__init__(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            message=message,
        )
