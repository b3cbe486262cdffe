"""
Maps service errors to HTTP responses.

Any ServiceError that escapes a route becomes a 500 carrying the error's
context, and is logged once here. A non-2xx answer is what tells the sending
queue to redeliver; the handlers below never hide a failure as success.
"""

import logging

from errors import ServiceError
from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.responses import JSONResponse

logger = logging.getLogger(__name__)


async def service_error_handler(request: Request, exc: ServiceError) -> JSONResponse:
    logger.error(
        "Failed handler %s %s: %s [%s] context=%s",
        request.method,
        request.url.path,
        exc.message,
        type(exc).__name__,
        exc.context,
    )
    return JSONResponse(
        status_code=500,
        content={
            "error": type(exc).__name__,
            "message": exc.message,
            "context": jsonable_encoder(exc.context),
        },
    )


def register_error_handlers(app: FastAPI) -> None:
    app.add_exception_handler(ServiceError, service_error_handler)
