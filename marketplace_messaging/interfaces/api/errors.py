"""Translate domain errors into consistent JSON responses."""

from __future__ import annotations

import logging

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from marketplace_messaging.domain.errors import (
    Forbidden,
    MessagingError,
    NotFound,
    TransientStoreError,
    Unauthenticated,
    ValidationError,
)

logger = logging.getLogger(__name__)

_STATUS_CODES: dict[type[MessagingError], int] = {
    Unauthenticated: status.HTTP_401_UNAUTHORIZED,
    Forbidden: status.HTTP_403_FORBIDDEN,
    NotFound: status.HTTP_404_NOT_FOUND,
    ValidationError: status.HTTP_422_UNPROCESSABLE_ENTITY,
    TransientStoreError: status.HTTP_503_SERVICE_UNAVAILABLE,
}


def status_code_for(exc: MessagingError) -> int:
    for error_type, status_code in _STATUS_CODES.items():
        if isinstance(exc, error_type):
            return status_code
    return status.HTTP_400_BAD_REQUEST


async def messaging_error_handler(request: Request, exc: MessagingError) -> JSONResponse:
    status_code = status_code_for(exc)
    if status_code >= 500:
        logger.warning("%s %s failed: %s", request.method, request.url.path, exc.message)
    headers = None
    if isinstance(exc, Unauthenticated):
        headers = {"WWW-Authenticate": "Bearer"}
    return JSONResponse(status_code=status_code, content=exc.to_dict(), headers=headers)


async def request_validation_error_handler(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    """Report the first invalid request field with the same body as domain errors."""

    errors = exc.errors()
    field = "body"
    reason = "Invalid input"
    if errors:
        first = errors[0]
        location = [str(part) for part in first.get("loc", ()) if part not in ("body", "query", "path")]
        if location:
            field = ".".join(location)
        reason = str(first.get("msg") or reason)
    return await messaging_error_handler(request, ValidationError(field, reason))


def register_error_handlers(app: FastAPI) -> None:
    app.add_exception_handler(MessagingError, messaging_error_handler)
    app.add_exception_handler(RequestValidationError, request_validation_error_handler)


__all__ = ["register_error_handlers", "status_code_for"]
