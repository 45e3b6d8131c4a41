"""Deal catalog backend -- FastAPI application entry point."""

import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from dealcatalog.api.v1.router import api_router
from dealcatalog.config import settings
from dealcatalog.core.exceptions import RateLimitError
from dealcatalog.db.session import async_session_factory, engine
from dealcatalog.dependencies import get_gate_limiter
from dealcatalog.middleware import RequestGateMiddleware
from dealcatalog.models import Base
from dealcatalog.scheduler import ImportScheduler
from dealcatalog.services.cache_service import get_cache_service
from dealcatalog.services.importer import Importer

# Configure logging
logging.basicConfig(
    level=logging.INFO if settings.DEBUG else logging.WARNING,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)

# Global scheduler instance
scheduler: Optional[ImportScheduler] = None


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan: startup and shutdown events."""
    global scheduler

    # Startup
    logger.info("Starting deal catalog API server...")
    logger.info(f"Environment: {settings.ENVIRONMENT}")

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    logger.info("Database tables verified/created")

    # Start import scheduler (only in non-test environments)
    if settings.ENVIRONMENT != "test":
        scheduler = ImportScheduler(Importer(async_session_factory))
        scheduler.start()
    else:
        logger.info("Scheduler disabled (test environment)")

    cache = get_cache_service()
    if settings.CACHE_ENABLED:
        if await cache.health_check():
            logger.info("Redis cache connected successfully")
        else:
            logger.warning("Redis cache connection failed (will operate without caching)")

    yield

    # Shutdown
    logger.info("Shutting down deal catalog API server...")

    if scheduler:
        scheduler.stop()
        scheduler = None

    await cache.close()


app = FastAPI(
    title="Deal Catalog API",
    description="Aggregated sale listings with faceted search",
    version="0.1.0",
    docs_url="/docs" if settings.DEBUG else None,
    redoc_url="/redoc" if settings.DEBUG else None,
    lifespan=lifespan,
)

# CORS is added last so it also wraps responses produced by the gate
app.add_middleware(RequestGateMiddleware, limiter=get_gate_limiter())

app.add_middleware(
    CORSMiddleware,
    allow_origins=[settings.FRONTEND_URL, "http://localhost:3000"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(RateLimitError)
async def rate_limit_handler(request: Request, exc: RateLimitError):
    return JSONResponse(
        status_code=429,
        content={"errors": ["Too many requests. Please try again in a minute."]},
        headers={"Retry-After": str(exc.retry_after)},
    )


app.include_router(api_router, prefix="/api")


@app.get("/")
async def root():
    """Root endpoint with API information."""
    return {
        "name": "Deal Catalog API",
        "version": "0.1.0",
        "docs": "/docs" if settings.DEBUG else None,
        "health": "/api/health",
    }
