"""Health check endpoint.

Verifies the server is running and its collaborators (database, Redis)
are reachable. Always 200; `status` is "degraded" when a check fails.
Redis is optional: if it was never connected it reports "disabled" and
does not affect the overall status.
"""

from fastapi import APIRouter
from sqlalchemy import text

from tickoff import __version__
from tickoff.db.engine import engine
from tickoff.db.redis_pool import get_redis

router = APIRouter()


@router.get("/health")
async def health_check():
    """Check server health and dependency connectivity."""
    checks = {"server": "ok", "version": __version__}

    try:
        async with engine.connect() as conn:
            await conn.execute(text("SELECT 1"))
        checks["database"] = "ok"
    except Exception as e:
        checks["database"] = f"error: {type(e).__name__}"

    try:
        redis = get_redis()
    except RuntimeError:
        checks["redis"] = "disabled"
    else:
        try:
            await redis.ping()
            checks["redis"] = "ok"
        except Exception as e:
            checks["redis"] = f"unavailable: {type(e).__name__}"

    status = "healthy" if all(
        v in ("ok", "disabled") for k, v in checks.items() if k != "version"
    ) else "degraded"

    return {"status": status, **checks}
