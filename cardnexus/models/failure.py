"""
Response envelope and failure classification.

Every API endpoint answers with the same envelope:

    {"success": true,  "data": {...}}
    {"success": false, "error": {"code": "...", "message": "...", "detail": ...}}

Handlers signal expected failures by raising a KnownError subclass; the
exception handlers registered in cardnexus.api.errors turn them into the
envelope with the matching HTTP status. Anything else is reported as an
unknown failure with status 500.
"""

from enum import Enum
from typing import Any, Generic, TypeVar

from pydantic import BaseModel, Field


class FailureKind(str, Enum):
    """Classification of failure types, sent to clients as error.code."""

    # Input validation failures
    VALIDATION_ERROR = "VALIDATION_ERROR"

    # Identity
    AUTHENTICATION_REQUIRED = "AUTHENTICATION_REQUIRED"
    FORBIDDEN = "FORBIDDEN"

    # Resource failures
    NOT_FOUND = "NOT_FOUND"
    CONFLICT = "CONFLICT"
    POST_LOCKED = "POST_LOCKED"

    # Unknown
    INTERNAL_SERVER_ERROR = "INTERNAL_SERVER_ERROR"


T = TypeVar("T")


class ErrorDetail(BaseModel):
    """Detailed information about a failure."""

    code: FailureKind = Field(..., description="Classification of the failure")
    message: str = Field(..., description="User-appropriate explanation of what went wrong")
    detail: Any | None = Field(default=None, description="Additional technical detail")


class ApiResponse(BaseModel, Generic[T]):
    """Universal response envelope for all API endpoints."""

    success: bool
    data: T | None = None
    error: ErrorDetail | None = None

    @classmethod
    def ok(cls, data: T) -> "ApiResponse[T]":
        return cls(success=True, data=data)

    @classmethod
    def failure(
        cls, kind: FailureKind, message: str, detail: Any | None = None
    ) -> "ApiResponse[Any]":
        return cls(success=False, error=ErrorDetail(code=kind, message=message, detail=detail))


UNKNOWN_FAILURE_MESSAGE = "An unexpected server error occurred. Please try again later."


class KnownError(Exception):
    """
    Base class for exceptions that represent known, explainable failures.

    Subclass this for errors where the system knows exactly what went wrong.
    """

    status_code: int = 400
    kind: FailureKind = FailureKind.VALIDATION_ERROR

    def __init__(
        self,
        message: str,
        detail: Any | None = None,
        kind: FailureKind | None = None,
        status_code: int | None = None,
    ):
        self.message = message
        self.detail = detail
        if kind is not None:
            self.kind = kind
        if status_code is not None:
            self.status_code = status_code
        super().__init__(message)

    def to_response(self) -> ApiResponse[Any]:
        return ApiResponse.failure(self.kind, self.message, self.detail)


class ValidationFailedError(KnownError):
    status_code = 400
    kind = FailureKind.VALIDATION_ERROR


class AuthenticationRequiredError(KnownError):
    status_code = 401
    kind = FailureKind.AUTHENTICATION_REQUIRED

    def __init__(self, message: str = "Authentication required") -> None:
        super().__init__(message)


class ForbiddenError(KnownError):
    status_code = 403
    kind = FailureKind.FORBIDDEN


class NotFoundError(KnownError):
    status_code = 404
    kind = FailureKind.NOT_FOUND

    def __init__(self, resource: str, identifier: Any | None = None) -> None:
        self.resource = resource
        message = f"{resource} not found"
        super().__init__(message, detail=None if identifier is None else str(identifier))


class ConflictError(KnownError):
    status_code = 409
    kind = FailureKind.CONFLICT
