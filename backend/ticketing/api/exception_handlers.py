"""
Map ticketing errors to JSON responses.

Body shape: {"error": {"code": "<STABLE_CODE>", "message": "<user-safe text>"}}
Stack traces never leave the process.
"""

from typing import Any, Callable, Coroutine

from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse
from starlette.responses import Response

from ticketing.core.errors import TicketingError, TransientStorageError
from ticketing.core.logging import get_logger

logger = get_logger(__name__)

ExceptionHandler = Callable[[Request, Exception], Coroutine[Any, Any, Response]]

RETRY_AFTER_SECONDS = "1"


async def ticketing_error_handler(request: Request, exc: Exception) -> JSONResponse:
    error = exc if isinstance(exc, TicketingError) else TicketingError(str(exc))
    if error.status_code >= 500:
        logger.error("request_error", code=error.code.value, error=str(error))

    headers = {"Retry-After": RETRY_AFTER_SECONDS} if isinstance(error, TransientStorageError) else None
    return JSONResponse(
        status_code=error.status_code,
        content={"error": error.to_dict()},
        headers=headers,
    )


async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("unhandled_exception", error=str(exc))
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"error": {"code": "INTERNAL_ERROR", "message": "Internal server error"}},
    )


EXCEPTION_HANDLERS: dict[type[Exception], ExceptionHandler] = {
    TicketingError: ticketing_error_handler,
    Exception: unhandled_exception_handler,
}


def register_exception_handlers(app: FastAPI) -> None:
    for exception_class, handler in EXCEPTION_HANDLERS.items():
        app.add_exception_handler(exception_class, handler)
