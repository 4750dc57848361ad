"""Middleware registration."""

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from socratic.config import Settings
from socratic.middleware.error_handler import setup_error_handlers
from socratic.middleware.logging import setup_logging
from socratic.middleware.request_id import REQUEST_ID_HEADER, RequestIdMiddleware


def setup_middleware(app: FastAPI, settings: Settings) -> None:
    """Register handlers and middleware.

    Starlette runs middleware outermost-last, so CORS is added after the
    request-id middleware and also decorates error responses.
    """
    setup_logging(settings)
    setup_error_handlers(app)
    app.add_middleware(RequestIdMiddleware)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["GET", "POST", "DELETE", "OPTIONS"],
        allow_headers=["Authorization", "Content-Type", REQUEST_ID_HEADER],
        expose_headers=[REQUEST_ID_HEADER],
    )
