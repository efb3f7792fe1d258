"""Response envelope helpers and exception handlers.

Every API response is wrapped as ``{"success": true, "data": ..., "meta": ...}``
or ``{"success": false, "error": {"code", "message", "details"}}``. Route
handlers return ``ok(...)`` and raise CollybrixError subclasses; the
handlers registered here produce the failure envelope.
"""

from __future__ import annotations

from typing import Any

from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from collybrix.errors import CollybrixError
from collybrix.logging import get_logger

logger = get_logger(__name__)

HTTP_ERROR_CODES = {
    400: "VALIDATION_ERROR",
    401: "UNAUTHORIZED",
    403: "FORBIDDEN",
    404: "NOT_FOUND",
    409: "CONFLICT",
}


def ok(data: Any = None, meta: dict[str, Any] | None = None, status_code: int = 200) -> JSONResponse:
    """Build a success envelope.

    Pydantic models are dumped by alias, so attribute names reach the client
    in camelCase.
    """
    content: dict[str, Any] = {"success": True, "data": jsonable_encoder(data, by_alias=True)}
    if meta is not None:
        content["meta"] = jsonable_encoder(meta, by_alias=True)
    return JSONResponse(status_code=status_code, content=content)


def error_response(
    status_code: int,
    code: str,
    message: str,
    details: Any = None,
) -> JSONResponse:
    """Build a failure envelope."""
    error: dict[str, Any] = {"code": code, "message": message}
    if details is not None:
        error["details"] = jsonable_encoder(details)
    return JSONResponse(status_code=status_code, content={"success": False, "error": error})


def internal_error_response(exc: BaseException) -> JSONResponse:
    """500 envelope carrying the underlying message in details."""
    return error_response(500, "INTERNAL_ERROR", "Internal server error", details=str(exc))


def _field_errors(exc: RequestValidationError) -> list[dict[str, str]]:
    errors = []
    for error in exc.errors():
        location = [str(part) for part in error.get("loc", ()) if part not in ("body", "query", "path")]
        errors.append({"field": ".".join(location), "message": error.get("msg", "")})
    return errors


async def collybrix_error_handler(request: Request, exc: CollybrixError) -> JSONResponse:
    if exc.status_code >= 500:
        logger.error(
            "request_error",
            path=request.url.path,
            code=exc.code,
            error=exc.message,
            details=exc.details,
        )
    else:
        logger.info("request_rejected", path=request.url.path, code=exc.code, error=exc.message)
    return error_response(exc.status_code, exc.code, exc.message, exc.details)


async def validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    details = _field_errors(exc)
    logger.info("request_validation_failed", path=request.url.path, errors=details)
    return error_response(400, "VALIDATION_ERROR", "Invalid request", details)


async def http_error_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    code = HTTP_ERROR_CODES.get(exc.status_code, "INTERNAL_ERROR" if exc.status_code >= 500 else "HTTP_ERROR")
    return error_response(exc.status_code, code, str(exc.detail))


async def unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.error("unhandled_exception", path=request.url.path, error=str(exc), exc_info=exc)
    return internal_error_response(exc)


def register_exception_handlers(app: FastAPI) -> None:
    """Install the envelope-producing exception handlers on an app."""
    app.add_exception_handler(CollybrixError, collybrix_error_handler)  # type: ignore[arg-type]
    app.add_exception_handler(RequestValidationError, validation_error_handler)  # type: ignore[arg-type]
    app.add_exception_handler(StarletteHTTPException, http_error_handler)  # type: ignore[arg-type]
    app.add_exception_handler(Exception, unhandled_error_handler)
