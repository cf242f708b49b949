from __future__ import annotations

from typing import Any


class ErrorCode:
    AUTH_REQUIRED = "AUTH_REQUIRED"
    AUTH_INVALID = "AUTH_INVALID"
    VALIDATION_ERROR = "VALIDATION_ERROR"
    NOT_FOUND = "NOT_FOUND"
    CONFLICT = "CONFLICT"
    INTERNAL_ERROR = "INTERNAL_ERROR"


class AppError(Exception):
    """Base for errors that the API layer turns into the JSON error envelope."""

    status_code = 500
    code = ErrorCode.INTERNAL_ERROR

    def __init__(self, message: str, *, details: Any = None, code: str | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.details = details
        if code is not None:
            self.code = code


class ValidationError(AppError):
    status_code = 400
    code = ErrorCode.VALIDATION_ERROR


class UnauthorizedError(AppError):
    status_code = 401
    code = ErrorCode.AUTH_REQUIRED


class NotFoundError(AppError):
    """Missing rows and rows owned by another tenant are reported the same way."""

    status_code = 404
    code = ErrorCode.NOT_FOUND


class ConflictError(AppError):
    status_code = 409
    code = ErrorCode.CONFLICT


class InternalError(AppError):
    status_code = 500
    code = ErrorCode.INTERNAL_ERROR
