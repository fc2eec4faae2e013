import enum
from typing import Any, Dict, Optional


class ErrorKind(str, enum.Enum):
    VALIDATION = "validation"
    NOT_FOUND = "not_found"
    CONFLICT = "conflict"
    EXHAUSTED = "exhausted"
    INSUFFICIENT_STOCK = "insufficient_stock"
    INSUFFICIENT_POINTS = "insufficient_points"
    NO_USES_REMAINING = "no_uses_remaining"
    AUTH = "auth"
    FORBIDDEN = "forbidden"
    INTERNAL = "internal"


HTTP_STATUS_BY_KIND = {
    ErrorKind.VALIDATION: 400,
    ErrorKind.EXHAUSTED: 400,
    ErrorKind.INSUFFICIENT_STOCK: 400,
    ErrorKind.INSUFFICIENT_POINTS: 400,
    ErrorKind.NO_USES_REMAINING: 400,
    ErrorKind.NOT_FOUND: 404,
    ErrorKind.CONFLICT: 409,
    ErrorKind.AUTH: 401,
    ErrorKind.FORBIDDEN: 403,
    ErrorKind.INTERNAL: 500,
}


class AppError(Exception):
    """Base class for domain failures.

    ``key`` is a message key resolved by the Translator; ``detail`` carries
    structured context (ids, quantities) for the response body.
    """

    kind: ErrorKind = ErrorKind.INTERNAL

    def __init__(self, key: str, detail: Optional[Dict[str, Any]] = None):
        super().__init__(key)
        self.key = key
        self.detail = detail or {}

    @property
    def status_code(self) -> int:
        return HTTP_STATUS_BY_KIND[self.kind]

    def to_error(self) -> Dict[str, Any]:
        return {"kind": self.kind.value, "key": self.key, **self.detail}


class ValidationError(AppError):
    kind = ErrorKind.VALIDATION


class NotFoundError(AppError):
    kind = ErrorKind.NOT_FOUND


class ConflictError(AppError):
    kind = ErrorKind.CONFLICT


class ExhaustedError(AppError):
    kind = ErrorKind.EXHAUSTED


class InsufficientStockError(AppError):
    kind = ErrorKind.INSUFFICIENT_STOCK


class InsufficientPointsError(AppError):
    kind = ErrorKind.INSUFFICIENT_POINTS


class NoUsesRemainingError(AppError):
    kind = ErrorKind.NO_USES_REMAINING


class AuthError(AppError):
    kind = ErrorKind.AUTH


class ForbiddenError(AppError):
    kind = ErrorKind.FORBIDDEN


class InternalError(AppError):
    kind = ErrorKind.INTERNAL
