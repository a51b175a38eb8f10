"""Middleware registration."""

from fastapi import FastAPI

from discipline.config import Settings
from discipline.middleware.error_handler import setup_error_handlers
from discipline.middleware.logging import setup_logging
from discipline.middleware.request_id import RequestContextMiddleware


def setup_middleware(app: FastAPI, settings: Settings) -> None:
    """Register logging, error handlers and the request context."""
    setup_logging(settings)
    setup_error_handlers(app)
    app.add_middleware(RequestContextMiddleware)
