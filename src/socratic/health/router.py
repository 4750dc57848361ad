"""Health, readiness, and version endpoints."""

from fastapi import APIRouter, Request
from sqlalchemy import text

from socratic.config import get_settings

router = APIRouter()


@router.get("/health")
async def health() -> dict[str, str]:
    """Liveness check: returns 200 if the process is alive."""
    return {"status": "healthy"}


@router.get("/ready")
async def readiness(request: Request) -> dict[str, object]:
    """Readiness check: checks the storage backend and, when configured, Redis."""
    checks: dict[str, object] = {}

    database = getattr(request.app.state, "database", None)
    if database is None:
        checks["storage"] = "ok"
    else:
        try:
            async with database.engine.connect() as conn:
                await conn.execute(text("SELECT 1"))
            checks["storage"] = "ok"
        except Exception as exc:
            checks["storage"] = f"error: {exc}"

    redis = request.app.state.redis
    if redis is not None:
        try:
            await redis.ping()
            checks["redis"] = "ok"
        except Exception as exc:
            checks["redis"] = f"error: {exc}"

    all_ok = all(v == "ok" for v in checks.values())
    return {"status": "ready" if all_ok else "degraded", "checks": checks}


@router.get("/version")
async def version() -> dict[str, str]:
    """Return API version and environment."""
    settings = get_settings()
    return {
        "version": settings.app_version,
        "environment": settings.environment,
    }
