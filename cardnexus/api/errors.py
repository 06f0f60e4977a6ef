"""
Exception handlers.

Map every exception that escapes a route onto the response envelope, so
clients always receive ``{"success": false, "error": {...}}``.
"""

import logging
from typing import Any

from fastapi import FastAPI, Request, status
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from cardnexus.models.failure import (
    UNKNOWN_FAILURE_MESSAGE,
    ApiResponse,
    FailureKind,
    KnownError,
)

logger = logging.getLogger(__name__)


def _envelope(status_code: int, response: ApiResponse[Any]) -> JSONResponse:
    return JSONResponse(status_code=status_code, content=jsonable_encoder(response))


async def known_error_handler(_request: Request, exc: KnownError) -> JSONResponse:
    return _envelope(exc.status_code, exc.to_response())


async def request_validation_handler(
    _request: Request, exc: RequestValidationError
) -> JSONResponse:
    # ctx and input may hold values that are not JSON serializable
    errors = [
        {key: value for key, value in error.items() if key in ("type", "loc", "msg")}
        for error in exc.errors()
    ]
    first = errors[0] if errors else {}
    field = ".".join(str(part) for part in first.get("loc", ())[1:])
    message = f"{field}: {first.get('msg')}" if field else str(first.get("msg", "Invalid request"))
    return _envelope(
        status.HTTP_400_BAD_REQUEST,
        ApiResponse.failure(FailureKind.VALIDATION_ERROR, message, detail=errors),
    )


async def unexpected_error_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("Unhandled error on %s %s: %s", request.method, request.url.path, exc)
    return _envelope(
        status.HTTP_500_INTERNAL_SERVER_ERROR,
        ApiResponse.failure(FailureKind.INTERNAL_SERVER_ERROR, UNKNOWN_FAILURE_MESSAGE),
    )


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(KnownError, known_error_handler)
    app.add_exception_handler(RequestValidationError, request_validation_handler)
    app.add_exception_handler(Exception, unexpected_error_handler)
