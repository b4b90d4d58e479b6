"""Translate domain errors into HTTP responses.

Learn: Services raise WardenError subclasses and never know about HTTP.
One handler maps them all, so no route needs its own try/except.
Anything that is not a WardenError (database down, SMTP refused) is left
to FastAPI and ends up as a 500.
"""

import structlog
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from warden.errors import WardenError

logger = structlog.get_logger()


async def warden_error_handler(request: Request, exc: WardenError) -> JSONResponse:
    logger.info(
        "http.domain_error",
        error=type(exc).__name__,
        status=exc.status_code,
        path=request.url.path,
    )
    return JSONResponse(status_code=exc.status_code, content={"detail": exc.message})


def register_error_handlers(app: FastAPI) -> None:
    app.add_exception_handler(WardenError, warden_error_handler)
