"""
errors.py — Exception hierarchy and the standard error envelope.

Every failure a route can raise deliberately is a FinanceTrackerError subclass
carrying its HTTP status and semantic code. main.py registers one handler that
renders all of them as:

    {"error": {"code": "...", "message": "...", "details": [{field, issue}]}}

Absence of an entry row is NOT an error — routes return 200 with null.
Absence of authorization IS an error (401/403).
"""
from __future__ import annotations

from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field


# ---------------------------------------------------------------------------
# Error response models
# ---------------------------------------------------------------------------

class ErrorDetail(BaseModel):
    """Single field-level validation error."""
    model_config = ConfigDict(extra="forbid")

    field: Optional[str] = None   # Dot-notation field path, e.g. "low_risk.nps"
    issue: str                     # Human-readable description of the problem


class ErrorBody(BaseModel):
    """Error envelope body."""
    model_config = ConfigDict(extra="forbid")

    code: str                                      # VALIDATION_ERROR, FORBIDDEN, etc.
    message: str                                   # High-level error description
    details: List[ErrorDetail] = Field(default_factory=list)


class ErrorResponse(BaseModel):
    """
    Standard error response format for all Finance Tracker endpoints.

    Structure: {"error": {"code": "...", "message": "...", "details": [...]}}
    """
    model_config = ConfigDict(extra="forbid")

    error: ErrorBody


def error_envelope(
    code: str,
    message: str,
    details: Optional[List[ErrorDetail]] = None,
) -> ErrorResponse:
    return ErrorResponse(error=ErrorBody(code=code, message=message, details=details or []))


# ---------------------------------------------------------------------------
# Exceptions
# ---------------------------------------------------------------------------

class FinanceTrackerError(Exception):
    """Base class for all Finance Tracker specific errors."""

    status_code: int = 500
    code: str = "INTERNAL_ERROR"

    def __init__(self, message: str, details: Optional[List[ErrorDetail]] = None) -> None:
        super().__init__(message)
        self.message = message
        self.details = details or []

    def to_response(self) -> ErrorResponse:
        return error_envelope(self.code, self.message, self.details)


class UnauthorizedError(FinanceTrackerError):
    """Raised when the bearer credential is missing, malformed or expired."""

    status_code = 401
    code = "UNAUTHORIZED"


class ForbiddenError(FinanceTrackerError):
    """Raised when an authenticated principal lacks the role or link permission."""

    status_code = 403
    code = "FORBIDDEN"


class NotFoundError(FinanceTrackerError):
    """Raised when an addressed resource (profile, entry id, user) does not exist."""

    status_code = 404
    code = "NOT_FOUND"


class ConflictError(FinanceTrackerError):
    """Raised when a write would violate a uniqueness invariant."""

    status_code = 409
    code = "CONFLICT"


class ValidationError(FinanceTrackerError):
    """Raised for missing required fields, malformed dates or out-of-range values."""

    status_code = 400
    code = "VALIDATION_ERROR"

    @classmethod
    def for_field(cls, field: Optional[str], issue: str) -> "ValidationError":
        return cls(issue, details=[ErrorDetail(field=field, issue=issue)])


_STATUS_CODES = {
    cls.status_code: cls.code
    for cls in (UnauthorizedError, ForbiddenError, NotFoundError, ConflictError, ValidationError)
}
_STATUS_CODES[405] = "METHOD_NOT_ALLOWED"


def code_for_status(status_code: int) -> str:
    """Semantic code for a bare HTTP status (framework 404/405, HTTPException)."""
    return _STATUS_CODES.get(status_code, f"HTTP_{status_code}")


__all__ = [
    "ErrorDetail",
    "ErrorBody",
    "ErrorResponse",
    "error_envelope",
    "code_for_status",
    "FinanceTrackerError",
    "UnauthorizedError",
    "ForbiddenError",
    "NotFoundError",
    "ConflictError",
    "ValidationError",
]
