"""
Application error taxonomy.

Handlers and dependencies raise these; the exception handlers registered in
``prizmatrack.main`` turn them into the ``{data, error}`` envelope.
"""

from __future__ import annotations

import logging

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

logger = logging.getLogger(__name__)

class AppError(Exception):
    code = "APP_ERROR"
    status_code = 400

    def __init__(self, message: str, fields: dict[str, str] | None = None):
        super().__init__(message)
        self.message = message
        self.fields = fields or {}

    def to_dict(self) -> dict:
        body: dict = {"code": self.code, "message": self.message}
        if self.fields:
            body["fields"] = self.fields
        return body

class Unauthenticated(AppError):
    code = "UNAUTHENTICATED"
    status_code = 401

class Forbidden(AppError):
    code = "FORBIDDEN"
    status_code = 403

class NotFound(AppError):
    code = "NOT_FOUND"
    status_code = 404

class Conflict(AppError):
    code = "CONFLICT"
    status_code = 409

class Expired(AppError):
    code = "EXPIRED"
    status_code = 410

class ValidationFailed(AppError):
    code = "VALIDATION_ERROR"
    status_code = 422

class RateLimited(AppError):
    code = "RATE_LIMITED"
    status_code = 429

_HTTP_CODES = {
    400: "BAD_REQUEST",
    401: "UNAUTHENTICATED",
    403: "FORBIDDEN",
    404: "NOT_FOUND",
    405: "METHOD_NOT_ALLOWED",
    409: "CONFLICT",
    429: "RATE_LIMITED",
}

def error_body(code: str, message: str, fields: dict[str, str] | None = None) -> dict:
    error: dict = {"code": code, "message": message}
    if fields:
        error["fields"] = fields
    return {"data": None, "error": error}

def _field_errors(exc: RequestValidationError) -> dict[str, str]:
    fields: dict[str, str] = {}
    for err in exc.errors():
        # drop the leading "body"/"query"/"path" segment
        loc = [str(p) for p in err.get("loc", ())]
        if len(loc) > 1 and loc[0] in {"body", "query", "path", "header"}:
            loc = loc[1:]
        key = ".".join(loc) or "__root__"
        fields.setdefault(key, err.get("msg", "invalid value"))
    return fields

async def app_error_handler(request: Request, exc: AppError) -> JSONResponse:
    return JSONResponse(status_code=exc.status_code, content={"data": None, "error": exc.to_dict()})

async def request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    return JSONResponse(
        status_code=ValidationFailed.status_code,
        content=error_body(ValidationFailed.code, "Invalid data provided.", _field_errors(exc)),
    )

async def http_error_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    code = _HTTP_CODES.get(exc.status_code, "HTTP_ERROR")
    return JSONResponse(
        status_code=exc.status_code,
        content=error_body(code, str(exc.detail)),
        headers=getattr(exc, "headers", None),
    )

async def unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("unhandled error on %s %s", request.method, request.url.path)
    return JSONResponse(
        status_code=500,
        content=error_body("INTERNAL_ERROR", "An unexpected error occurred"),
    )

def register_error_handlers(app: FastAPI) -> None:
    app.add_exception_handler(AppError, app_error_handler)
    app.add_exception_handler(RequestValidationError, request_validation_handler)
    app.add_exception_handler(StarletteHTTPException, http_error_handler)
    app.add_exception_handler(Exception, unhandled_error_handler)
