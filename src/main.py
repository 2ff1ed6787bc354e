"""FastAPI application entry point.

Run with: uvicorn src.main:app --reload --port 8000
"""

# ruff: noqa: E402  -- uvloop.install() must run before other imports

import uvloop

uvloop.install()

import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from redis.exceptions import RedisError
from sqlalchemy import text

from config.settings import settings
from src.mk_admin.api.router import router as admin_router
from src.mk_balance.api.router import router as balance_router
from src.mk_common.database import engine
from src.mk_common.errors import AppError
from src.mk_common.redis_client import close_redis, get_redis
from src.mk_common.response import error_response
from src.mk_dispute.api.router import router as dispute_router
from src.mk_gateway.middleware.request_log import RequestLogMiddleware
from src.mk_order.api.router import router as order_router
from src.mk_payment.api.router import router as payment_router
from src.mk_withdrawal.api.router import router as withdrawal_router

logging.basicConfig(
    level=logging.DEBUG if settings.DEBUG else logging.INFO,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Startup: verify DB, ping Redis. Shutdown: dispose."""
    async with engine.connect() as conn:
        await conn.execute(text("SELECT 1"))
    try:
        redis = await get_redis()
        await redis.ping()
    except RedisError:
        # Notifications are best-effort; the ledger does not depend on Redis
        logger.warning("Redis unreachable at startup; notifications will be dropped", exc_info=True)
    yield
    await engine.dispose()
    await close_redis()


app = FastAPI(
    title=settings.APP_NAME,
    version="0.1.0",
    lifespan=lifespan,
)


app.add_middleware(RequestLogMiddleware)


@app.exception_handler(AppError)
async def app_error_handler(request: Request, exc: AppError) -> JSONResponse:
    resp = error_response(exc.code, exc.message)
    resp.request_id = getattr(request.state, "request_id", resp.request_id)
    if exc.http_status >= 500:
        logger.error("AppError %d on %s: %s", exc.code, request.url.path, exc.message)
    return JSONResponse(
        status_code=exc.http_status,
        content=resp.model_dump(),
    )


app.include_router(order_router, prefix="/api/v1")
app.include_router(payment_router, prefix="/api/v1")
app.include_router(dispute_router, prefix="/api/v1")
app.include_router(balance_router, prefix="/api/v1")
app.include_router(withdrawal_router, prefix="/api/v1")
app.include_router(admin_router, prefix="/api/v1")


@app.get("/health")
async def health() -> dict[str, str]:
    return {"status": "ok", "version": "0.1.0"}
