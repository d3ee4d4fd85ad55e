"""
Map domain exceptions to JSON error responses.

Every error body has the same shape: {"error": "Human-readable message"}.
"""

import logging

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError as BodyValidationError
from fastapi.responses import JSONResponse

from ..errors import ConfigurationError, ImportFailedError, RequestValidationError, UpstreamError

logger = logging.getLogger(__name__)

EXCEPTION_TO_STATUS: dict[type[Exception], int] = {
    RequestValidationError: status.HTTP_400_BAD_REQUEST,
    ImportFailedError: status.HTTP_400_BAD_REQUEST,
    UpstreamError: status.HTTP_502_BAD_GATEWAY,
    ConfigurationError: status.HTTP_500_INTERNAL_SERVER_ERROR,
}


async def domain_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    status_code = EXCEPTION_TO_STATUS.get(type(exc), status.HTTP_500_INTERNAL_SERVER_ERROR)
    if status_code >= 500:
        logger.error("%s on %s: %s", type(exc).__name__, request.url.path, exc)
    else:
        logger.info("%s on %s: %s", type(exc).__name__, request.url.path, exc)
    return JSONResponse(status_code=status_code, content={"error": str(exc)})


async def body_validation_handler(request: Request, exc: BodyValidationError) -> JSONResponse:
    errors = exc.errors()
    detail = errors[0].get("msg", "Invalid request.") if errors else "Invalid request."
    where = ".".join(str(p) for p in errors[0].get("loc", ())) if errors else ""
    message = f"Invalid request: {where}: {detail}" if where else f"Invalid request: {detail}"
    return JSONResponse(status_code=status.HTTP_400_BAD_REQUEST, content={"error": message})


def setup_exception_handlers(app: FastAPI) -> None:
    for exc_type in EXCEPTION_TO_STATUS:
        app.add_exception_handler(exc_type, domain_exception_handler)
    app.add_exception_handler(BodyValidationError, body_validation_handler)
