"""
Service-level error type.

Every failure raised by the services is a `ServiceError` carrying an `ErrorKind` tag.
The HTTP layer maps the tag to a status code and renders `{"error": "<message>"}`;
callers branch on `error.kind`, the named subclasses only pin the tag.
"""

from __future__ import annotations

from enum import Enum
from typing import Optional


class ErrorKind(str, Enum):
    VALIDATION = "validation"
    AUTHENTICATION = "authentication"
    AUTHORIZATION = "authorization"
    NOT_FOUND = "not_found"
    METHOD_NOT_ALLOWED = "method_not_allowed"
    CONFLICT = "conflict"
    INTERNAL = "internal"


STATUS_BY_KIND = {
    ErrorKind.VALIDATION: 400,
    ErrorKind.AUTHENTICATION: 401,
    ErrorKind.AUTHORIZATION: 403,
    ErrorKind.NOT_FOUND: 404,
    ErrorKind.METHOD_NOT_ALLOWED: 405,
    ErrorKind.CONFLICT: 409,
    ErrorKind.INTERNAL: 500,
}


class ServiceError(Exception):
    """A failure with a kind tag and a caller-safe message."""

    kind: ErrorKind = ErrorKind.INTERNAL

    def __init__(self, message: str, kind: Optional[ErrorKind] = None) -> None:
        super().__init__(message)
        self.message = message
        if kind is not None:
            self.kind = kind

    @property
    def status_code(self) -> int:
        return STATUS_BY_KIND[self.kind]

    def __repr__(self) -> str:
        return f"{type(self).__name__}(kind={self.kind.value!r}, message={self.message!r})"


class ValidationError(ServiceError):
    """Malformed or missing input (400)."""

    kind = ErrorKind.VALIDATION


class AuthenticationError(ServiceError):
    """Missing/invalid token or bad credentials (401)."""

    kind = ErrorKind.AUTHENTICATION


class AuthorizationError(ServiceError):
    """Authenticated but not permitted (403)."""

    kind = ErrorKind.AUTHORIZATION


class NotFoundError(ServiceError):
    kind = ErrorKind.NOT_FOUND


class MethodNotAllowedError(ServiceError):
    kind = ErrorKind.METHOD_NOT_ALLOWED


class ConflictError(ServiceError):
    """Duplicate insert against a unique constraint (409)."""

    kind = ErrorKind.CONFLICT


class InternalError(ServiceError):
    """Infrastructure failure; the message shown to clients stays generic."""

    kind = ErrorKind.INTERNAL

    def __init__(self, message: str = "Internal server error") -> None:
        super().__init__(message)
