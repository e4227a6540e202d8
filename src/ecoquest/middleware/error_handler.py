"""Global error handlers: consistent JSON error responses."""

import asyncio

import structlog
from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from ecoquest.errors import NotFound, ProgressionError, StoreUnavailable, ValidationFailed

logger = structlog.get_logger()

TIMEOUT_MESSAGE = "This is taking longer than expected. Please try again."


def setup_error_handlers(app: FastAPI) -> None:
    """Register global exception handlers."""

    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(_request: Request, exc: StarletteHTTPException) -> JSONResponse:
        return JSONResponse(
            status_code=exc.status_code,
            content={"detail": exc.detail},
        )

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(_request: Request, exc: RequestValidationError) -> JSONResponse:
        return JSONResponse(
            status_code=422,
            content={"detail": "Validation error", "errors": jsonable_encoder(exc.errors())},
        )

    @app.exception_handler(ProgressionError)
    async def progression_error_handler(request: Request, exc: ProgressionError) -> JSONResponse:
        """Store failures are 503; failed outcomes raised by the routers are 404 or 409."""
        if isinstance(exc, StoreUnavailable):
            status_code = 503
        elif isinstance(exc, NotFound):
            status_code = 404
        elif isinstance(exc, ValidationFailed):
            status_code = 409
        else:
            status_code = 500
        logger.warning(
            "progression_error",
            path=request.url.path,
            error_type=type(exc).__name__,
            error=str(exc),
            status_code=status_code,
        )
        return JSONResponse(status_code=status_code, content={"detail": exc.user_message})

    @app.exception_handler(asyncio.TimeoutError)
    async def timeout_handler(request: Request, _exc: asyncio.TimeoutError) -> JSONResponse:
        logger.warning("request_timeout", path=request.url.path, method=request.method)
        return JSONResponse(status_code=504, content={"detail": TIMEOUT_MESSAGE})

    @app.exception_handler(Exception)
    async def global_exception_handler(request: Request, exc: Exception) -> JSONResponse:
        """Catch-all for unhandled exceptions; always return JSON."""
        logger.error(
            "unhandled_exception",
            path=request.url.path,
            method=request.method,
            error=str(exc),
            exc_info=exc,
        )
        return JSONResponse(
            status_code=500,
            content={"detail": "Internal server error"},
        )
