"""Deal Pydantic schemas for request/response validation."""

from datetime import datetime
from typing import List, Optional

from dealcatalog.models.enums import Gender, Store
from dealcatalog.schemas.common import CamelModel, PaginationMeta


class DealResponse(CamelModel):
    """Standard deal response schema."""

    id: str
    store: Store
    name: str
    brand: Optional[str] = None
    description: Optional[str] = None
    original_price: int
    sale_price: int
    discount_percent: int
    url: str
    image_url: Optional[str] = None
    detail_image_url: Optional[str] = None
    sizes: List[str] = []
    categories: List[str] = []
    gender: Gender
    scraped_at: datetime
    details_scraped_at: Optional[datetime] = None


class FacetCount(CamelModel):
    """One distinct value of a facet dimension and how many deals carry it."""

    name: str
    count: int


class PriceRange(CamelModel):
    min: int
    max: int


class FilterFacets(CamelModel):
    brands: List[FacetCount] = []
    stores: List[FacetCount] = []
    genders: List[FacetCount] = []
    price_range: PriceRange


class DealListResponse(CamelModel):
    """Response body for GET /api/deals."""

    deals: List[DealResponse]
    pagination: PaginationMeta
    filters: FilterFacets
