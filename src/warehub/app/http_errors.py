"""Maps booking engine errors onto JSON HTTP responses."""

import logging

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from warehub.services.errors import BookingError

logger = logging.getLogger(__name__)


def error_response(exc: BookingError) -> JSONResponse:
    return JSONResponse(
        status_code=exc.status_code,
        content={"error": exc.code, "detail": exc.message},
    )


def register_exception_handlers(app: FastAPI) -> None:
    @app.exception_handler(BookingError)
    async def _booking_error_handler(request: Request, exc: BookingError):
        if exc.status_code >= 500:
            logger.error("%s %s failed: %s", request.method, request.url.path, exc.message)
        else:
            logger.info(
                "%s %s rejected (%s): %s", request.method, request.url.path, exc.code, exc.message
            )
        return error_response(exc)
