from __future__ import annotations

import logging
from typing import Any

from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

logger = logging.getLogger(__name__)


class ApiError(Exception):
    status_code = 500
    message = "Internal server error"

    def __init__(self, message: str | None = None):
        super().__init__(message or self.message)
        if message is not None:
            self.message = message


class Unauthenticated(ApiError):
    status_code = 401
    message = "Not authenticated"


class TokenExpired(Unauthenticated):
    message = "Token expired"


class TokenInvalid(Unauthenticated):
    message = "Invalid token"


class AccountDisabled(Unauthenticated):
    message = "Account is deactivated"


class InvalidCredentials(ApiError):
    status_code = 401
    message = "Invalid email or password"


class NotFound(ApiError):
    status_code = 404
    message = "Resource not found"


class DuplicateEmail(ApiError):
    status_code = 409
    message = "User with this email already exists"


class ServiceUnavailable(ApiError):
    status_code = 503
    message = "db not ready"


def error_body(message: str, errors: list[dict[str, Any]] | None = None) -> dict[str, Any]:
    body: dict[str, Any] = {"status": "error", "message": message}
    if errors is not None:
        body["errors"] = errors
    return body


def _field_name(loc: tuple[Any, ...]) -> str:
    parts = [str(p) for p in loc if p not in ("body", "query", "path", "header")]
    return ".".join(parts)


REDACTED = "[redacted]"


def _is_secret(key: Any) -> bool:
    return isinstance(key, str) and "password" in key.lower()


def _safe_value(loc: tuple[Any, ...], value: Any) -> Any:
    """Echo the rejected input without any password it carries."""
    if any(_is_secret(p) for p in loc):
        return REDACTED
    if isinstance(value, dict):
        return {k: REDACTED if _is_secret(k) else v for k, v in value.items()}
    return value


def validation_errors(exc: RequestValidationError) -> list[dict[str, Any]]:
    out = []
    for err in exc.errors():
        msg = err.get("msg", "Invalid value")
        # pydantic prefixes messages raised from validators
        if msg.startswith("Value error, "):
            msg = msg[len("Value error, "):]
        loc = tuple(err.get("loc", ()))
        out.append(
            {
                "field": _field_name(loc),
                "message": msg,
                "value": jsonable_encoder(_safe_value(loc, err.get("input"))),
            }
        )
    return out


async def _api_error_handler(request: Request, exc: ApiError) -> JSONResponse:
    return JSONResponse(status_code=exc.status_code, content=error_body(exc.message))


async def _request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    return JSONResponse(status_code=400, content=error_body("Validation failed", validation_errors(exc)))


async def _http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    return JSONResponse(
        status_code=exc.status_code,
        content=error_body(str(exc.detail)),
        headers=getattr(exc, "headers", None),
    )


async def _unhandled_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("unhandled error on %s %s", request.method, request.url.path)
    return JSONResponse(status_code=500, content=error_body("Internal server error"))


def install_error_handlers(app: FastAPI) -> None:
    app.add_exception_handler(ApiError, _api_error_handler)
    app.add_exception_handler(RequestValidationError, _request_validation_handler)
    app.add_exception_handler(StarletteHTTPException, _http_exception_handler)
    app.add_exception_handler(Exception, _unhandled_handler)
