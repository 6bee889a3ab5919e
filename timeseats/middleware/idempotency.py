"""
TimesEats — Idempotency Key Middleware

Order placement and ticket issuance are not safe to repeat: a client that
retries a POST after a dropped response would reserve stock twice. With an
Idempotency-Key header the first response is stored in Redis and replayed
for every retry with the same key.
  - Key claimed  → SET NX a pending marker, execute handler, store response
  - Key pending  → 409 IDEMPOTENCY_IN_PROGRESS (first request still running)
  - Key stored   → return cached response immediately (no business logic)
A 5xx response releases the claim so the client may retry.
"""
import json
import logging
from fastapi import Request, Response
from fastapi.responses import JSONResponse
from redis.exceptions import RedisError
from starlette.middleware.base import BaseHTTPMiddleware

from timeseats.core.config import get_settings
from timeseats.core.redis_client import get_redis

settings = get_settings()
logger = logging.getLogger(__name__)

IDEMPOTENCY_PREFIX = "timeseats:idempotent:"
IDEMPOTENCY_METHODS = {"POST"}
IDEMPOTENCY_PATHS = {
    "/api/v1/orders", "/api/v1/orders/",
    "/api/v1/order-tickets", "/api/v1/order-tickets/",
}
PENDING_MARKER = json.dumps({"pending": True})


def _replay(cached: str) -> Response:
    data = json.loads(cached)
    if data.get("pending"):
        return JSONResponse(
            content={
                "code": "IDEMPOTENCY_IN_PROGRESS",
                "detail": "A request with this Idempotency-Key is still being processed.",
            },
            status_code=409,
        )
    return JSONResponse(
        content=data["body"],
        status_code=data["status_code"],
        headers={"X-Idempotency-Replay": "true"},
    )


class IdempotencyMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request: Request, call_next) -> Response:
        if request.method not in IDEMPOTENCY_METHODS:
            return await call_next(request)

        if request.url.path not in IDEMPOTENCY_PATHS:
            return await call_next(request)

        idem_key = request.headers.get("Idempotency-Key")
        if not idem_key:
            return await call_next(request)

        redis = get_redis()
        # Scoped per endpoint: the same key sent to /orders and /order-tickets is two requests.
        cache_key = f"{IDEMPOTENCY_PREFIX}{request.url.path.rstrip('/')}:{idem_key}"

        try:
            claimed = await redis.set(
                cache_key, PENDING_MARKER, nx=True, ex=settings.IDEMPOTENCY_PENDING_TTL_SECONDS
            )
            cached = None if claimed else await redis.get(cache_key)
        except RedisError:
            logger.warning("Idempotency cache unavailable; handling %s without replay", request.url.path)
            return await call_next(request)

        if not claimed:
            if cached:
                logger.info("Replaying response for Idempotency-Key %s", idem_key)
                return _replay(cached)
            # Claim expired between SET and GET; run unprotected rather than fail.
            return await call_next(request)

        try:
            response = await call_next(request)
        except Exception:
            await self._release(redis, cache_key)
            raise

        body_bytes = b""
        async for chunk in response.body_iterator:
            body_bytes += chunk

        if response.status_code < 500:
            try:
                body = json.loads(body_bytes)
            except ValueError:
                body = body_bytes.decode("utf-8", errors="replace")
            try:
                await redis.setex(
                    cache_key,
                    settings.IDEMPOTENCY_KEY_TTL_SECONDS,
                    json.dumps({"body": body, "status_code": response.status_code}),
                )
            except RedisError:
                logger.warning("Could not store response for Idempotency-Key %s", idem_key)
        else:
            await self._release(redis, cache_key)

        return Response(
            content=body_bytes,
            status_code=response.status_code,
            media_type=response.media_type,
            headers=dict(response.headers),
        )

    @staticmethod
    async def _release(redis, cache_key: str) -> None:
        try:
            await redis.delete(cache_key)
        except RedisError:
            logger.warning("Could not release idempotency claim %s", cache_key)
