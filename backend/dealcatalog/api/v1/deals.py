"""Deals API endpoints."""

from typing import Optional

import structlog
from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.ext.asyncio import AsyncSession

from dealcatalog.config import settings
from dealcatalog.dependencies import get_db
from dealcatalog.schemas import DealListResponse, DealQuery, DealResponse
from dealcatalog.schemas.query import DEFAULT_MIN_DISCOUNT, int_or_default
from dealcatalog.services.cache_service import get_cache
from dealcatalog.services.query_service import DealQueryService

logger = structlog.get_logger(__name__)

router = APIRouter()


def _min_discount(raw: Optional[str]) -> int:
    """Product-level floor: absent, non-numeric or negative values become the default."""
    value = int_or_default(raw, DEFAULT_MIN_DISCOUNT)
    if value < 0:
        return DEFAULT_MIN_DISCOUNT
    return min(value, 100)


@router.get("", response_model=DealListResponse, response_model_by_alias=True)
async def list_deals(
    search: Optional[str] = Query(None, description="Substring of name or brand"),
    stores: Optional[str] = Query(None, description="Comma-joined store names"),
    brands: Optional[str] = Query(None, description="Comma-joined brand names"),
    genders: Optional[str] = Query(None, description="Comma-joined genders"),
    categories: Optional[str] = Query(None, description="Comma-joined legacy category tokens"),
    category_paths: Optional[str] = Query(None, alias="categoryPaths", description="Comma-joined category paths"),
    sizes: Optional[str] = Query(None, description="Comma-joined size tokens"),
    min_discount: Optional[str] = Query(None, alias="minDiscount", description="Minimum discount percentage"),
    min_price: Optional[str] = Query(None, alias="minPrice"),
    max_price: Optional[str] = Query(None, alias="maxPrice"),
    sort_by: Optional[str] = Query(None, alias="sortBy", description="discount, price-low, price-high or newest"),
    page: Optional[str] = Query(None, description="Page number (1-indexed)"),
    limit: Optional[str] = Query(None, description="Items per page"),
    db: AsyncSession = Depends(get_db),
):
    """List deals with filters, sorting, pagination and facet counts.

    Every parameter is parsed permissively: unknown values are ignored and
    unparsable numbers fall back to their defaults, so this endpoint never
    answers 422 for odd client state.

    This endpoint is cached for DEALS_CACHE_TTL_SECONDS.
    """
    query = DealQuery.parse(
        search=search,
        stores=stores,
        brands=brands,
        genders=genders,
        categories=categories,
        category_paths=category_paths,
        sizes=sizes,
        min_discount=_min_discount(min_discount),
        min_price=min_price,
        max_price=max_price,
        sort_by=sort_by,
        page=page,
        limit=limit,
    )

    cache = await get_cache()
    cache_key = query.cache_key()

    cached = await cache.get(cache_key)
    if cached:
        return DealListResponse.model_validate_json(cached)

    service = DealQueryService(db)
    response = await service.query(query)

    await cache.set(cache_key, response.model_dump_json(by_alias=True), ttl=settings.DEALS_CACHE_TTL_SECONDS)

    return response


@router.get("/{deal_id}", response_model=DealResponse, response_model_by_alias=True)
async def get_deal(
    deal_id: str,
    db: AsyncSession = Depends(get_db),
):
    """Get a single deal by id."""
    service = DealQueryService(db)
    deal = await service.get_deal(deal_id)

    if not deal:
        raise HTTPException(status_code=404, detail="Deal not found")

    return DealResponse.model_validate(deal)
