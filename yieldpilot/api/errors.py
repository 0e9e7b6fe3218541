"""
Exception handlers that turn the error taxonomy into HTTP responses.

Recoverable errors map by category (bad input 422, upstream trouble 502/503);
unrecoverable ones are 500. Anything outside the taxonomy is classified by
message so a stray transport failure still reads as 503. The body always
carries the error context.
"""

import logging
from typing import Dict

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from ..core.errors import (
    ErrorCategory,
    ErrorContext,
    RecoverableError,
    UnrecoverableError,
    classify_error,
)

logger = logging.getLogger(__name__)

STATUS_BY_CATEGORY: Dict[ErrorCategory, int] = {
    ErrorCategory.VALIDATION: 422,
    ErrorCategory.VENUE: 422,
    ErrorCategory.INSUFFICIENT_FUNDS: 422,
    ErrorCategory.QUOTE: 502,
    ErrorCategory.NETWORK: 503,
    ErrorCategory.TIMEOUT: 503,
}


def _body(message: str, context: ErrorContext, status_code: int) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content={"status": "error", "message": message, "error": context.to_dict()},
    )


async def recoverable_error_handler(request: Request, exc: RecoverableError) -> JSONResponse:
    status_code = STATUS_BY_CATEGORY.get(exc.category, 502)
    logger.warning("%s %s failed (%s): %s", request.method, request.url.path, exc.code, exc.message)
    return _body(exc.message, exc.context, status_code)


async def unrecoverable_error_handler(request: Request, exc: UnrecoverableError) -> JSONResponse:
    logger.error("%s %s failed (%s): %s", request.method, request.url.path, exc.code, exc.message)
    return _body(exc.message, exc.context, 500)


async def unexpected_error_handler(request: Request, exc: Exception) -> JSONResponse:
    context = classify_error(exc)
    status_code = STATUS_BY_CATEGORY.get(context.category, 500)
    logger.error("%s %s raised %s", request.method, request.url.path, type(exc).__name__, exc_info=exc)
    return _body(str(exc) or type(exc).__name__, context, status_code)


def register_error_handlers(app: FastAPI) -> None:
    app.add_exception_handler(RecoverableError, recoverable_error_handler)
    app.add_exception_handler(UnrecoverableError, unrecoverable_error_handler)
    app.add_exception_handler(Exception, unexpected_error_handler)
