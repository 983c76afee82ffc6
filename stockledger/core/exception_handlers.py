import logging
import uuid
from typing import Any, Optional

from fastapi import FastAPI, Request, HTTPException
from fastapi.responses import JSONResponse
from fastapi.exceptions import RequestValidationError
from fastapi.encoders import jsonable_encoder

from stockledger.core.errors import InventoryError, StorageError

log = logging.getLogger(__name__)


def _rid():
    """Generates a unique request ID for tracing."""
    return uuid.uuid4().hex


def error_response(status_code: int, code: str, message: Any, details: Optional[Any] = None) -> JSONResponse:
    """Failure envelope mirroring SuccessResponse: success, error{code, message, details?} and request_id."""
    error = {"code": code, "message": message}
    if details is not None:
        error["details"] = jsonable_encoder(details)
    return JSONResponse(
        status_code=status_code,
        content={"success": False, "error": error, "request_id": _rid()},
    )


# ----------- Exception Handlers (called by FastAPI) -----------

def inventory_exception_handler(request: Request, exc: InventoryError):
    """Handles the core error taxonomy (validation, not found, conflict, storage)."""
    if isinstance(exc, StorageError):
        # Storage details stay in the log
        log.error(f"Storage failure on path {request.url.path}: {exc.details}")
        return error_response(exc.status_code, exc.code, "A storage error occurred")

    log.warning(f"{exc.code} on path {request.url.path}: {exc.message}")
    return error_response(exc.status_code, exc.code, exc.message, exc.details)


def http_exception_handler(request: Request, exc: HTTPException):
    """Handles exceptions raised by HTTPException (e.g., missing tenant header, 500 from a router)."""
    return error_response(exc.status_code, "http_error", exc.detail)


def validation_exception_handler(request: Request, exc: RequestValidationError):
    """Handles Pydantic validation errors (422 Unprocessable Entity)."""
    return error_response(422, "validation_error", "Invalid input data", exc.errors())


def generic_exception_handler(request: Request, exc: Exception):
    """Handles all unhandled exceptions (500 Internal Server Error)."""
    log.exception(f"Unhandled exception on path: {request.url.path}", exc_info=exc)
    return error_response(500, "server_error", "Internal Server Error")


# ----------- Registration Function -----------

def setup_exception_handlers(app: FastAPI):
    """Registers all custom exception handlers with the FastAPI application."""
    app.add_exception_handler(InventoryError, inventory_exception_handler)
    app.add_exception_handler(HTTPException, http_exception_handler)
    app.add_exception_handler(RequestValidationError, validation_exception_handler)
    app.add_exception_handler(Exception, generic_exception_handler)

    return app
