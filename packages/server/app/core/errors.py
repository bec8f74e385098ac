"""
Domain error taxonomy and the JSON error envelope.

Every error leaves the API as::

    {"error": {"code": "...", "message": "...", "status": 400, "details": null}}
"""

from __future__ import annotations

from typing import Any, Optional

import structlog
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.encoders import jsonable_encoder
from sqlalchemy.exc import DBAPIError, IntegrityError
from starlette.exceptions import HTTPException as StarletteHTTPException
from starlette.responses import JSONResponse

from taskpad_shared.schemas.common import ErrorCode

log = structlog.get_logger()


class TaskPadError(Exception):
    """Base class for errors surfaced to API callers."""

    status_code: int = 500
    code: ErrorCode = ErrorCode.INTERNAL_ERROR
    default_message: str = "Internal server error."

    def __init__(self, message: Optional[str] = None, *, details: Any = None):
        self.message = message or self.default_message
        self.details = details
        super().__init__(self.message)


class NotFound(TaskPadError):
    status_code = 404
    code = ErrorCode.NOT_FOUND
    default_message = "Not found."


class Forbidden(TaskPadError):
    status_code = 403
    code = ErrorCode.FORBIDDEN
    default_message = "This resource belongs to another user."


class AuthenticationFailed(TaskPadError):
    status_code = 401
    code = ErrorCode.UNAUTHORIZED
    default_message = "Authentication required."


class OutOfBounds(TaskPadError):
    """Requested order_index lies outside [0, max_active_index + 1]."""

    status_code = 400
    code = ErrorCode.ORDER_INDEX_OUT_OF_BOUNDS
    default_message = "Order index is out of bounds."


class OrderMismatch(TaskPadError):
    status_code = 400
    code = ErrorCode.ORDER_MISMATCH
    default_message = "Task order must list every active task exactly once."


class CategoryNotFound(TaskPadError):
    status_code = 400
    code = ErrorCode.CATEGORY_NOT_FOUND
    default_message = "Category not found or does not belong to user."


class DuplicateCategoryName(TaskPadError):
    status_code = 400
    code = ErrorCode.DUPLICATE_CATEGORY_NAME
    default_message = "Category with this name already exists."


class EmailAlreadyRegistered(TaskPadError):
    status_code = 400
    code = ErrorCode.EMAIL_EXISTS
    default_message = "Email already registered."


class ConstraintViolation(TaskPadError):
    """A store-level check failed; the unit of work is rolled back."""

    status_code = 500
    code = ErrorCode.CONSTRAINT_VIOLATION
    default_message = "The request violated a data constraint and was rolled back."


class TransactionFailed(TaskPadError):
    """The transaction could not complete (lock timeout, lost connection). Safe to retry."""

    status_code = 503
    code = ErrorCode.TRANSACTION_FAILED
    default_message = "The request could not be completed. Please retry."


# ---------------------------------------------------------------------------
# Envelope + handlers
# ---------------------------------------------------------------------------


def error_response(
    status_code: int, code: ErrorCode, message: str, details: Any = None
) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content={
            "error": {
                "code": code.value,
                "message": message,
                "status": status_code,
                "details": jsonable_encoder(details),
            }
        },
    )


async def _taskpad_error_handler(request: Request, exc: TaskPadError) -> JSONResponse:
    if exc.status_code >= 500:
        log.error("request.failed", path=request.url.path, code=exc.code.value, error=exc.message)
    return error_response(exc.status_code, exc.code, exc.message, exc.details)


async def _validation_error_handler(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    return error_response(
        400, ErrorCode.VALIDATION_FAILED, "Validation Error", exc.errors()
    )


async def _http_error_handler(
    request: Request, exc: StarletteHTTPException
) -> JSONResponse:
    code = {
        401: ErrorCode.UNAUTHORIZED,
        403: ErrorCode.FORBIDDEN,
        404: ErrorCode.NOT_FOUND,
    }.get(
        exc.status_code,
        ErrorCode.VALIDATION_FAILED if exc.status_code < 500 else ErrorCode.INTERNAL_ERROR,
    )
    return error_response(exc.status_code, code, str(exc.detail))


async def _integrity_error_handler(request: Request, exc: IntegrityError) -> JSONResponse:
    log.error("db.integrity_error", path=request.url.path, error=str(exc.orig))
    return error_response(
        ConstraintViolation.status_code,
        ConstraintViolation.code,
        ConstraintViolation.default_message,
    )


async def _database_error_handler(request: Request, exc: DBAPIError) -> JSONResponse:
    log.warning("db.transaction_failed", path=request.url.path, error=str(exc.orig))
    return error_response(
        TransactionFailed.status_code,
        TransactionFailed.code,
        TransactionFailed.default_message,
    )


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(TaskPadError, _taskpad_error_handler)
    app.add_exception_handler(RequestValidationError, _validation_error_handler)
    app.add_exception_handler(StarletteHTTPException, _http_error_handler)
    app.add_exception_handler(IntegrityError, _integrity_error_handler)
    # IntegrityError is a DBAPIError; the more specific handler wins.
    app.add_exception_handler(DBAPIError, _database_error_handler)
