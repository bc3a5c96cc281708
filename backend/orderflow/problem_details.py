"""RFC 7807 Problem Details helpers.

Every failure leaving the API carries an ``error`` extension member with the
user-facing message, so form callers can branch on its presence.
"""
from __future__ import annotations

import logging
from http import HTTPStatus

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from .domain_errors import DomainError

logger = logging.getLogger(__name__)

PROBLEM_BASE_URL = "https://api.orderflow.local/problems"
GENERIC_FAILURE_MESSAGE = "Внутренняя ошибка сервера"


def _problem_response(
    *,
    status_code: int,
    code: str,
    detail: str,
    details: object | None = None,
    headers: dict[str, str] | None = None,
) -> JSONResponse:
    try:
        title = HTTPStatus(status_code).phrase
    except ValueError:
        title = "Domain Error"

    payload: dict[str, object] = {
        "type": f"{PROBLEM_BASE_URL}/{code.lower()}",
        "title": title,
        "status": status_code,
        "detail": detail,
        "code": code,
        "error": detail,
    }
    if details is not None:
        payload["details"] = details

    return JSONResponse(
        status_code=status_code,
        content=payload,
        media_type="application/problem+json",
        headers=headers,
    )


def build_problem_details_response(exc: DomainError) -> JSONResponse:
    """Render DomainError as RFC 7807 payload with stable domain code."""
    return _problem_response(
        status_code=exc.http_status,
        code=exc.code,
        detail=exc.message,
        details=exc.details,
    )


def build_validation_problem_response(exc: RequestValidationError) -> JSONResponse:
    """Render request validation failure; ``error`` carries the first message."""
    errors = exc.errors()
    first = errors[0] if errors else {}
    message = str(first.get("msg") or "Validation error")
    location = ".".join(str(part) for part in first.get("loc", ()) if part != "body")
    if location:
        message = f"{location}: {message}"
    return _problem_response(
        status_code=422,
        code="VALIDATION_ERROR",
        detail=message,
    )


def build_http_problem_response(exc: StarletteHTTPException) -> JSONResponse:
    """Render HTTPException (auth dependencies, rate limits) in the same shape."""
    return _problem_response(
        status_code=exc.status_code,
        code=f"HTTP_{exc.status_code}",
        detail=str(exc.detail),
        headers=getattr(exc, "headers", None),
    )


def build_unexpected_problem_response() -> JSONResponse:
    return _problem_response(
        status_code=500,
        code="INTERNAL_ERROR",
        detail=GENERIC_FAILURE_MESSAGE,
    )


def register_problem_handlers(app: FastAPI) -> None:
    """Attach domain, validation and catch-all handlers to the app."""

    async def _handle_domain_error(_: Request, exc: DomainError):
        return build_problem_details_response(exc)

    async def _handle_validation_error(_: Request, exc: RequestValidationError):
        return build_validation_problem_response(exc)

    async def _handle_http_exception(_: Request, exc: StarletteHTTPException):
        return build_http_problem_response(exc)

    async def _handle_unexpected_error(request: Request, exc: Exception):
        logger.error(
            "Unhandled error on %s %s",
            request.method,
            request.url.path,
            exc_info=exc,
        )
        return build_unexpected_problem_response()

    app.add_exception_handler(DomainError, _handle_domain_error)
    app.add_exception_handler(RequestValidationError, _handle_validation_error)
    app.add_exception_handler(StarletteHTTPException, _handle_http_exception)
    app.add_exception_handler(Exception, _handle_unexpected_error)
