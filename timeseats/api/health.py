"""
TimesEats — Health endpoint
"""
import asyncio
from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse
from sqlalchemy import text

from timeseats.core.config import get_settings
from timeseats.core.redis_client import get_redis

settings = get_settings()
router = APIRouter(tags=["health"])


@router.get("/health")
async def health_check(request: Request):
    deps: dict[str, str] = {}
    healthy = True

    engine = getattr(request.app.state, "engine", None)
    if engine is None:
        deps["postgresql"] = "skipped: memory backend"
    else:
        try:
            async with engine.connect() as conn:
                await asyncio.wait_for(conn.execute(text("SELECT 1")), timeout=settings.HEALTH_CHECK_TIMEOUT)
            deps["postgresql"] = "ok"
        except Exception as e:
            deps["postgresql"] = f"error: {str(e)[:100]}"
            healthy = False

    try:
        redis = get_redis()
        await asyncio.wait_for(redis.ping(), timeout=settings.HEALTH_CHECK_TIMEOUT)
        deps["redis"] = "ok"
    except Exception as e:
        deps["redis"] = f"error: {str(e)[:100]}"
        healthy = False

    return JSONResponse(
        content={
            "status": "healthy" if healthy else "degraded",
            "service": settings.SERVICE_NAME,
            "version": settings.SERVICE_VERSION,
            "dependencies": deps,
        },
        status_code=200 if healthy else 503,
    )
