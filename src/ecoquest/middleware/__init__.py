"""Middleware registration."""

from fastapi import FastAPI

from ecoquest.config import Settings
from ecoquest.middleware.cors import setup_cors
from ecoquest.middleware.error_handler import setup_error_handlers
from ecoquest.middleware.logging import setup_logging
from ecoquest.middleware.request_id import RequestIdMiddleware


def setup_middleware(app: FastAPI, settings: Settings) -> None:
    """Register middleware. Starlette runs it in reverse-add order, so CORS goes last to wrap everything."""
    setup_logging(settings)
    setup_error_handlers(app)
    app.add_middleware(RequestIdMiddleware)
    setup_cors(app, settings)
