"""
Request context middleware and error-to-response mapping.
"""
from __future__ import annotations

import logging
import time
import uuid

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from subservice.core.exceptions import (
    AppError,
    NotFoundError,
    OperationTimeoutError,
    StorageError,
    ValidationError,
)

logger = logging.getLogger(__name__)

REQUEST_ID_HEADER = "X-Request-ID"

STATUS_BY_ERROR: dict[type[AppError], int] = {
    ValidationError: status.HTTP_400_BAD_REQUEST,
    NotFoundError: status.HTTP_404_NOT_FOUND,
    StorageError: status.HTTP_500_INTERNAL_SERVER_ERROR,
    OperationTimeoutError: status.HTTP_500_INTERNAL_SERVER_ERROR,
}


def status_for(exc: AppError) -> int:
    for error_type, code in STATUS_BY_ERROR.items():
        if isinstance(exc, error_type):
            return code
    return status.HTTP_500_INTERNAL_SERVER_ERROR


async def request_context_middleware(request: Request, call_next):
    """Tag the request with an id and start time, then log one access line for it."""
    request.state.started_at = time.monotonic()
    request_id = request.headers.get(REQUEST_ID_HEADER) or uuid.uuid4().hex
    request.state.request_id = request_id

    response = await call_next(request)

    elapsed_ms = (time.monotonic() - request.state.started_at) * 1000
    response.headers[REQUEST_ID_HEADER] = request_id
    logger.info(
        "%s %s -> %s (%.1fms) request_id=%s",
        request.method,
        request.url.path,
        response.status_code,
        elapsed_ms,
        request_id,
    )
    return response


async def app_error_handler(request: Request, exc: AppError) -> JSONResponse:
    code = status_for(exc)
    if code >= 500:
        logger.error("%s [%s %s]: %s", exc.kind, request.method, request.url.path, exc)
        # Storage details stay in the logs.
        detail = "internal error" if isinstance(exc, StorageError) else str(exc)
    else:
        detail = str(exc)
    return JSONResponse(status_code=code, content={"error": exc.kind, "detail": detail})


async def request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    messages = []
    for error in exc.errors():
        location = ".".join(str(part) for part in error.get("loc", ()) if part != "body")
        messages.append(f"{location}: {error.get('msg')}" if location else str(error.get("msg")))
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content={"error": ValidationError.kind, "detail": "; ".join(messages) or "invalid request"},
    )


def register_error_handlers(app: FastAPI) -> None:
    app.add_exception_handler(AppError, app_error_handler)
    app.add_exception_handler(RequestValidationError, request_validation_handler)
