"""
Application error type and the exception handlers that turn errors into
the JSON error envelope: {"success": false, "error": {"code", "message"}}
"""

import logging
from enum import Enum
from bson.errors import InvalidId
from fastapi import FastAPI, HTTPException, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from pymongo.errors import DuplicateKeyError, PyMongoError
from starlette.exceptions import HTTPException as StarletteHTTPException

logger = logging.getLogger(__name__)


class ErrorCode(str, Enum):
    AUTH_INVALID_CREDENTIALS = "AUTH_INVALID_CREDENTIALS"
    AUTH_TOKEN_EXPIRED = "AUTH_TOKEN_EXPIRED"
    AUTH_TOKEN_INVALID = "AUTH_TOKEN_INVALID"
    AUTH_UNAUTHORIZED = "AUTH_UNAUTHORIZED"
    AUTH_FORBIDDEN = "AUTH_FORBIDDEN"
    RESOURCE_NOT_FOUND = "RESOURCE_NOT_FOUND"
    NOT_FOUND = "NOT_FOUND"
    USER_NOT_FOUND = "USER_NOT_FOUND"
    QUESTION_NOT_FOUND = "QUESTION_NOT_FOUND"
    CLASS_NOT_FOUND = "CLASS_NOT_FOUND"
    ITEM_NOT_FOUND = "ITEM_NOT_FOUND"
    INSUFFICIENT_GOLD = "INSUFFICIENT_GOLD"
    LEVEL_REQUIREMENT_NOT_MET = "LEVEL_REQUIREMENT_NOT_MET"
    INVALID_JOIN_CODE = "INVALID_JOIN_CODE"
    VALIDATION_ERROR = "VALIDATION_ERROR"
    INTERNAL_ERROR = "INTERNAL_ERROR"
    DATABASE_ERROR = "DATABASE_ERROR"


class AppError(HTTPException):
    """
    HTTP error carrying a machine-readable code.
    Raised from services, serialized by app_error_handler.
    """

    def __init__(self, message: str, status_code: int = 500, code: ErrorCode = ErrorCode.INTERNAL_ERROR):
        super().__init__(status_code=status_code, detail=message)
        self.message = message
        self.code = code

    @classmethod
    def bad_request(cls, message: str, code: ErrorCode = ErrorCode.VALIDATION_ERROR) -> "AppError":
        return cls(message, 400, code)

    @classmethod
    def unauthorized(cls, message: str = "Please log in first", code: ErrorCode = ErrorCode.AUTH_UNAUTHORIZED) -> "AppError":
        return cls(message, 401, code)

    @classmethod
    def forbidden(cls, message: str = "You do not have permission for this action", code: ErrorCode = ErrorCode.AUTH_FORBIDDEN) -> "AppError":
        return cls(message, 403, code)

    @classmethod
    def not_found(cls, message: str = "Resource not found", code: ErrorCode = ErrorCode.RESOURCE_NOT_FOUND) -> "AppError":
        return cls(message, 404, code)

    @classmethod
    def internal(cls, message: str = "Internal server error", code: ErrorCode = ErrorCode.INTERNAL_ERROR) -> "AppError":
        return cls(message, 500, code)


def error_body(code: str, message: str) -> dict:
    return {"success": False, "error": {"code": code, "message": message}}


def _error_response(status_code: int, code: str, message: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content=error_body(code, message))


# ==================== HANDLERS ====================

async def app_error_handler(request: Request, exc: AppError) -> JSONResponse:
    if exc.status_code >= 500:
        logger.error("%s %s failed: %s", request.method, request.url.path, exc.message)
    return _error_response(exc.status_code, exc.code.value, exc.message)


async def validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    messages = []
    for err in exc.errors():
        location = ".".join(str(part) for part in err.get("loc", ()) if part not in ("body", "query", "path"))
        msg = err.get("msg", "Invalid value")
        messages.append(f"{location}: {msg}" if location else msg)
    return _error_response(400, ErrorCode.VALIDATION_ERROR.value, ", ".join(messages) or "Invalid request")


async def invalid_id_handler(request: Request, exc: InvalidId) -> JSONResponse:
    return _error_response(400, ErrorCode.VALIDATION_ERROR.value, "Invalid ID format")


async def duplicate_key_handler(request: Request, exc: DuplicateKeyError) -> JSONResponse:
    key_value = (exc.details or {}).get("keyValue") or {}
    field = next(iter(key_value), "field")
    return _error_response(400, ErrorCode.VALIDATION_ERROR.value, f"{field} already exists")


async def database_error_handler(request: Request, exc: PyMongoError) -> JSONResponse:
    logger.exception("Database error on %s %s", request.method, request.url.path)
    return _error_response(500, ErrorCode.DATABASE_ERROR.value, "Database error")


async def http_error_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    if exc.status_code == 404:
        code = ErrorCode.NOT_FOUND
    elif exc.status_code == 401:
        code = ErrorCode.AUTH_UNAUTHORIZED
    elif exc.status_code == 403:
        code = ErrorCode.AUTH_FORBIDDEN
    elif exc.status_code < 500:
        code = ErrorCode.VALIDATION_ERROR
    else:
        code = ErrorCode.INTERNAL_ERROR
    return _error_response(exc.status_code, code.value, str(exc.detail))


async def unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    return _error_response(500, ErrorCode.INTERNAL_ERROR.value, "Internal server error")


def register_error_handlers(app: FastAPI) -> None:
    app.add_exception_handler(AppError, app_error_handler)
    app.add_exception_handler(RequestValidationError, validation_error_handler)
    app.add_exception_handler(InvalidId, invalid_id_handler)
    app.add_exception_handler(DuplicateKeyError, duplicate_key_handler)
    app.add_exception_handler(PyMongoError, database_error_handler)
    app.add_exception_handler(StarletteHTTPException, http_error_handler)
    app.add_exception_handler(Exception, unhandled_error_handler)
