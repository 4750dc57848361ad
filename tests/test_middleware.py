"""Middleware tests: request id, CORS and log routing."""

import logging

import pytest
import structlog
from httpx import AsyncClient

from socratic.middleware.logging import setup_logging


@pytest.mark.asyncio
async def test_request_id_generated(client: AsyncClient) -> None:
    response = await client.get("/health")
    assert len(response.headers["x-request-id"]) == 36


@pytest.mark.asyncio
async def test_cors_preflight(client: AsyncClient) -> None:
    response = await client.options(
        "/api/v1/sessions",
        headers={
            "Origin": "http://localhost:5173",
            "Access-Control-Request-Method": "POST",
            "Access-Control-Request-Headers": "Authorization",
        },
    )
    assert response.status_code == 200
    assert response.headers["access-control-allow-origin"] == "http://localhost:5173"


@pytest.mark.asyncio
async def test_cors_unknown_origin(client: AsyncClient) -> None:
    response = await client.get("/health", headers={"Origin": "https://elsewhere.example"})
    assert "access-control-allow-origin" not in response.headers


@pytest.mark.asyncio
async def test_error_response_has_request_id(client: AsyncClient) -> None:
    response = await client.get("/api/v1/courses/underwater-basket-weaving")
    assert response.status_code == 404
    assert "x-request-id" in response.headers


def test_stdlib_loggers_share_the_formatter(app_settings, capsys) -> None:
    root = logging.getLogger()

    def structlog_handlers():
        return [h for h in root.handlers if isinstance(h.formatter, structlog.stdlib.ProcessorFormatter)]

    setup_logging(app_settings)
    setup_logging(app_settings)
    try:
        assert len(structlog_handlers()) == 1
        logging.getLogger("socratic.gamification.progress").warning("User %s completed course %s", "u1", "c1")
        err = capsys.readouterr().err
    finally:
        for handler in structlog_handlers():
            root.removeHandler(handler)
    assert "User u1 completed course c1" in err
    assert "socratic.gamification.progress" in err
