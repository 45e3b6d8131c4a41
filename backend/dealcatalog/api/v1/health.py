"""Health check endpoint."""

from fastapi import APIRouter, Depends
from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession

from dealcatalog.config import settings
from dealcatalog.dependencies import get_db
from dealcatalog.schemas import HealthCheckResponse
from dealcatalog.services.cache_service import get_cache
from dealcatalog.services.catalog_store import CatalogStore

router = APIRouter()


@router.get("/health", response_model=HealthCheckResponse)
async def health_check(db: AsyncSession = Depends(get_db)):
    """Return service health status.

    Checks connectivity to:
    - Database
    - Redis (cache), unless caching is disabled

    Overall status is ``ok`` when every checked service is healthy,
    otherwise ``degraded``.
    """
    deals_by_store = {}

    try:
        result = await db.execute(text("SELECT 1"))
        result.scalar()
        deals_by_store = await CatalogStore(db).count_by_store()
        db_status = "ok"
    except Exception as e:
        db_status = f"error: {str(e)}"

    if settings.CACHE_ENABLED:
        cache = await get_cache()
        redis_status = "ok" if await cache.health_check() else "error: ping failed"
    else:
        redis_status = "disabled"

    overall_status = "ok" if db_status == "ok" and redis_status in ("ok", "disabled") else "degraded"

    return HealthCheckResponse(
        status=overall_status,
        database=db_status,
        redis=redis_status,
        deals_by_store=deals_by_store,
    )
