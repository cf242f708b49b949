from __future__ import annotations

import logging
from typing import Any

from fastapi import FastAPI
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from sqlalchemy.exc import IntegrityError
from starlette.exceptions import HTTPException as StarletteHTTPException
from starlette.requests import Request

from onebase.core.errors import AppError, ErrorCode
from onebase.core.schemas import ErrorBody, ErrorResponse


logger = logging.getLogger("onebase.errors")

_HTTP_STATUS_CODES = {
    400: ErrorCode.VALIDATION_ERROR,
    401: ErrorCode.AUTH_REQUIRED,
    404: ErrorCode.NOT_FOUND,
    409: ErrorCode.CONFLICT,
}


def error_response(*, status_code: int, code: str, message: str, details: Any = None) -> JSONResponse:
    payload = ErrorResponse(error=ErrorBody(code=code, message=message, details=details))
    return JSONResponse(status_code=status_code, content=payload.model_dump(mode="json", exclude_none=True))


def _validation_details(exc: RequestValidationError) -> list[dict[str, Any]]:
    details = []
    for error in exc.errors():
        loc = [str(part) for part in error.get("loc", ())]
        if loc and loc[0] in {"body", "query", "path"}:
            loc = loc[1:]
        details.append({"field": ".".join(loc), "message": error.get("msg", ""), "type": error.get("type", "")})
    return details


async def handle_app_error(request: Request, exc: AppError) -> JSONResponse:
    if exc.status_code >= 500:
        logger.error("app.error", exc_info=exc, extra={"path": request.url.path, "error": exc.message})
    return error_response(status_code=exc.status_code, code=exc.code, message=exc.message, details=exc.details)


async def handle_request_validation_error(request: Request, exc: RequestValidationError) -> JSONResponse:
    return error_response(
        status_code=400,
        code=ErrorCode.VALIDATION_ERROR,
        message="Validation failed",
        details=_validation_details(exc),
    )


async def handle_integrity_error(request: Request, exc: IntegrityError) -> JSONResponse:
    # store messages name tables and constraints; keep them in the log only
    logger.warning("db.integrity_error", extra={"path": request.url.path, "error": str(exc.orig)})
    return error_response(
        status_code=409,
        code=ErrorCode.CONFLICT,
        message="The request conflicts with existing data",
    )


async def handle_http_exception(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    code = _HTTP_STATUS_CODES.get(exc.status_code, ErrorCode.INTERNAL_ERROR if exc.status_code >= 500 else "HTTP_ERROR")
    return error_response(status_code=exc.status_code, code=code, message=str(exc.detail))


async def handle_unexpected_error(request: Request, exc: Exception) -> JSONResponse:
    logger.error("unhandled.error", exc_info=exc, extra={"path": request.url.path, "error": str(exc)})
    return error_response(status_code=500, code=ErrorCode.INTERNAL_ERROR, message="Internal server error")


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(AppError, handle_app_error)  # type: ignore[arg-type]
    app.add_exception_handler(RequestValidationError, handle_request_validation_error)  # type: ignore[arg-type]
    app.add_exception_handler(IntegrityError, handle_integrity_error)  # type: ignore[arg-type]
    app.add_exception_handler(StarletteHTTPException, handle_http_exception)  # type: ignore[arg-type]
    app.add_exception_handler(Exception, handle_unexpected_error)
