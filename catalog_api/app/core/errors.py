"""
Error taxonomy shared by the service layer.

Every failure a service can report belongs to one of the kinds in
``ErrorKind``.  Each kind carries the HTTP status the API layer answers
with, so handlers never have to guess from message text.
"""

from enum import Enum
from typing import Optional


class ErrorKind(str, Enum):
    NOT_FOUND = "not_found"
    CONFLICT = "conflict"
    VALIDATION = "validation"
    UNAUTHORIZED = "unauthorized"
    STORE_FAILURE = "store_failure"
    INTERNAL = "internal"


STATUS_BY_KIND = {
    ErrorKind.NOT_FOUND: 404,
    ErrorKind.CONFLICT: 409,
    ErrorKind.VALIDATION: 400,
    ErrorKind.UNAUTHORIZED: 401,
    ErrorKind.STORE_FAILURE: 503,
    ErrorKind.INTERNAL: 500,
}


class ServiceError(Exception):
    """Base class for classified service failures."""

    kind: ErrorKind = ErrorKind.INTERNAL

    def __init__(self, message: str, status: Optional[int] = None) -> None:
        super().__init__(message)
        self.message = message
        self.status = status or STATUS_BY_KIND[self.kind]


class NotFoundError(ServiceError):
    kind = ErrorKind.NOT_FOUND


class ConflictError(ServiceError):
    kind = ErrorKind.CONFLICT


class ValidationError(ServiceError):
    kind = ErrorKind.VALIDATION


class UnauthorizedError(ServiceError):
    kind = ErrorKind.UNAUTHORIZED


class StoreFailureError(ServiceError):
    """The document store rejected a call or did not answer in time.

    ``retryable`` is set for faults that may succeed when the request is
    simply repeated (timeouts, exhausted write-conflict retries).
    """

    kind = ErrorKind.STORE_FAILURE

    def __init__(self, message: str, retryable: bool = False) -> None:
        super().__init__(message)
        self.retryable = retryable


class InternalError(ServiceError):
    kind = ErrorKind.INTERNAL


ERROR_BY_KIND = {cls.kind: cls for cls in (
    NotFoundError,
    ConflictError,
    ValidationError,
    UnauthorizedError,
    StoreFailureError,
    InternalError,
)}
