"""
TimesEats — FastAPI entrypoint
"""
import logging
from contextlib import asynccontextmanager
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from prometheus_fastapi_instrumentator import Instrumentator

from timeseats.core.config import get_settings
from timeseats.core.errors import SalesError
from timeseats.core.redis_client import close_redis
from timeseats.middleware.idempotency import IdempotencyMiddleware
from timeseats.services.factory import build_services, build_uow_factory
from timeseats.api import health, order_tickets, orders, products, sales_slots

settings = get_settings()
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    logging.basicConfig(
        level=settings.LOG_LEVEL.upper(),
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    )
    engine = None
    session_factory = None
    if settings.STORAGE_BACKEND != "memory":
        from timeseats.db.database import build_engine, build_session_factory, create_schema

        engine = build_engine(settings)
        await create_schema(engine)
        session_factory = build_session_factory(engine)

    app.state.engine = engine
    app.state.services = build_services(build_uow_factory(settings, session_factory))
    logger.info("%s %s started (storage=%s)", settings.SERVICE_NAME, settings.SERVICE_VERSION, settings.STORAGE_BACKEND)
    yield
    await close_redis()
    if engine is not None:
        await engine.dispose()


app = FastAPI(
    title="TimesEats",
    description="Event sales backend: time-boxed sales slots, oversell-safe orders, tickets.",
    version=settings.SERVICE_VERSION,
    lifespan=lifespan,
    docs_url="/docs" if settings.DEBUG else None,
    redoc_url=None,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)
app.add_middleware(IdempotencyMiddleware)

if settings.METRICS_ENABLED:
    Instrumentator().instrument(app).expose(app, endpoint="/metrics")


@app.exception_handler(SalesError)
async def sales_error_handler(request: Request, exc: SalesError):
    return JSONResponse(status_code=exc.status_code, content={"code": exc.code, "detail": exc.message})


app.include_router(products.router)
app.include_router(sales_slots.router)
app.include_router(orders.router)
app.include_router(order_tickets.router)
app.include_router(health.router)


@app.get("/")
async def root():
    return {"service": settings.SERVICE_NAME, "version": settings.SERVICE_VERSION}


def run():
    import uvicorn

    uvicorn.run("timeseats.main:app", host=settings.HOST, port=settings.PORT, log_level=settings.LOG_LEVEL.lower())
