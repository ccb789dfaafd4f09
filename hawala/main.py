"""
Hawala Settlement — FastAPI application entry point.

Configures logging, the app, middleware, the domain-error handler, and
registers all API routers.
"""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from hawala.api import rates, tracking, transactions
from hawala.config import settings
from hawala.exceptions import HawalaError

logging.basicConfig(
    level=settings.LOG_LEVEL,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup and shutdown events."""
    from hawala.database import engine
    from hawala.redis_client import tracking_redis

    logger.info("%s starting (env=%s)", settings.APP_NAME, settings.APP_ENV)
    yield

    # Shutdown: close connections
    await engine.dispose()
    await tracking_redis.aclose()


app = FastAPI(
    title=settings.APP_NAME,
    description="Hawala settlement core: agent rates, transfer records and public tracking.",
    version="0.1.0",
    lifespan=lifespan,
)

# --- CORS Middleware ---
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# --- Domain errors ---
@app.exception_handler(HawalaError)
async def hawala_error_handler(request: Request, exc: HawalaError):
    if exc.http_status >= 500:
        logger.error("%s %s failed: %s", request.method, request.url.path, exc.message)
    return JSONResponse(status_code=exc.http_status, content=exc.to_dict())


# --- Routers ---
app.include_router(rates.router, prefix="/api/v1/rates", tags=["Rates"])
app.include_router(transactions.router, prefix="/api/v1/transactions", tags=["Transactions"])
app.include_router(tracking.router, prefix="/api/v1/track", tags=["Tracking"])


@app.get("/health")
async def health_check():
    """Health check endpoint for load balancers and monitoring."""
    return {
        "status": "healthy",
        "service": settings.APP_NAME,
        "version": "0.1.0",
    }
