"""Deal query service: filtered, sorted, paginated reads with facet counts.

Read-only over the catalog.  A query produces one page of deals plus a
facets block (store, brand and gender counts and the sale-price range).
Each facet dimension is counted over the full predicate minus that
dimension's own filter, so selecting one store still shows the counts of
the other stores.
"""

import math
from typing import Dict, List, Optional

import structlog
from sqlalchemy import exists, func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from dealcatalog.models.deal import Deal, DealCategory, DealSize
from dealcatalog.schemas.common import PaginationMeta
from dealcatalog.schemas.deal import DealListResponse, DealResponse, FacetCount, FilterFacets, PriceRange
from dealcatalog.schemas.query import DealQuery, SortKey
from dealcatalog.utils.normalizer import brand_variants, legacy_category_paths

logger = structlog.get_logger(__name__)

# Price range reported when nothing matches
EMPTY_PRICE_RANGE = PriceRange(min=0, max=100000)


def _escape_like(value: str) -> str:
    return value.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


class DealQueryService:
    """Answers DealQuery requests against the deals table."""

    def __init__(self, db: AsyncSession):
        """Initialize query service.

        Args:
            db: Async database session
        """
        self.db = db
        self.logger = logger.bind(service="query_service")

    async def get_deal(self, deal_id: str) -> Optional[Deal]:
        return await self.db.get(Deal, deal_id)

    async def query(self, q: DealQuery) -> DealListResponse:
        """Run a query and build the list response.

        Args:
            q: Parsed query (already clamped and cleaned)

        Returns:
            The matching page, pagination metadata and facets
        """
        criteria = self._criteria(q)
        where = self._combine(criteria)

        count_result = await self.db.execute(select(func.count(Deal.id)).where(*where))
        total = count_result.scalar() or 0

        stmt = (
            select(Deal)
            .where(*where)
            .order_by(*self._ordering(q.sort_by))
            .offset(q.offset)
            .limit(q.limit)
        )
        result = await self.db.execute(stmt)
        deals = list(result.scalars().all())

        facets = await self._facets(criteria)

        self.logger.info(
            "deals_queried",
            total=total,
            returned=len(deals),
            page=q.page,
            sort=q.sort_by.value,
        )

        return DealListResponse(
            deals=[DealResponse.model_validate(d) for d in deals],
            pagination=PaginationMeta(
                page=q.page,
                limit=q.limit,
                total=total,
                total_pages=math.ceil(total / q.limit) if total else 0,
            ),
            filters=facets,
        )

    def _criteria(self, q: DealQuery) -> Dict[str, list]:
        """Filter conditions grouped by the dimension they constrain."""
        criteria: Dict[str, list] = {}

        if q.search:
            pattern = f"%{_escape_like(q.search)}%"
            criteria["search"] = [
                or_(
                    Deal.name.ilike(pattern, escape="\\"),
                    Deal.brand.ilike(pattern, escape="\\"),
                )
            ]

        if q.stores:
            criteria["stores"] = [Deal.store.in_(q.stores)]

        if q.brands:
            variants: List[str] = []
            for brand in q.brands:
                variants.extend(v.upper() for v in brand_variants(brand))
            criteria["brands"] = [func.upper(Deal.brand).in_(list(dict.fromkeys(variants)))]

        if q.genders:
            criteria["genders"] = [Deal.gender.in_(q.genders)]

        paths = list(dict.fromkeys(q.category_paths + legacy_category_paths(q.categories)))
        if paths:
            criteria["categories"] = [
                exists().where(DealCategory.deal_id == Deal.id, DealCategory.path.in_(paths))
            ]

        if q.sizes:
            criteria["sizes"] = [
                exists().where(DealSize.deal_id == Deal.id, DealSize.size.in_(q.sizes))
            ]

        if q.min_discount > 0:
            criteria["discount"] = [Deal.discount_percent >= q.min_discount]

        price = []
        if q.min_price is not None:
            price.append(Deal.sale_price >= q.min_price)
        if q.max_price is not None:
            price.append(Deal.sale_price <= q.max_price)
        if price:
            criteria["price"] = price

        return criteria

    @staticmethod
    def _combine(criteria: Dict[str, list], without: Optional[str] = None) -> list:
        conditions = []
        for dimension, clauses in criteria.items():
            if dimension != without:
                conditions.extend(clauses)
        return conditions

    @staticmethod
    def _ordering(sort_by: SortKey) -> list:
        sort_map = {
            SortKey.DISCOUNT: Deal.discount_percent.desc(),
            SortKey.PRICE_LOW: Deal.sale_price.asc(),
            SortKey.PRICE_HIGH: Deal.sale_price.desc(),
            SortKey.NEWEST: Deal.scraped_at.desc(),
        }
        return [sort_map[sort_by], Deal.id.asc()]

    async def _facets(self, criteria: Dict[str, list]) -> FilterFacets:
        store_rows = await self.db.execute(
            select(Deal.store, func.count(Deal.id).label("n"))
            .where(*self._combine(criteria, without="stores"))
            .group_by(Deal.store)
            .order_by(func.count(Deal.id).desc(), Deal.store)
        )
        gender_rows = await self.db.execute(
            select(Deal.gender, func.count(Deal.id).label("n"))
            .where(*self._combine(criteria, without="genders"))
            .group_by(Deal.gender)
            .order_by(func.count(Deal.id).desc(), Deal.gender)
        )
        brand_rows = await self.db.execute(
            select(Deal.brand, func.count(Deal.id).label("n"))
            .where(Deal.brand.is_not(None), *self._combine(criteria, without="brands"))
            .group_by(Deal.brand)
            .order_by(func.count(Deal.id).desc(), Deal.brand)
        )
        price_row = (
            await self.db.execute(
                select(func.min(Deal.sale_price), func.max(Deal.sale_price)).where(
                    *self._combine(criteria, without="price")
                )
            )
        ).one()

        if price_row[0] is None:
            price_range = EMPTY_PRICE_RANGE
        else:
            price_range = PriceRange(min=price_row[0], max=price_row[1])

        return FilterFacets(
            stores=[FacetCount(name=store.value, count=n) for store, n in store_rows.all()],
            genders=[FacetCount(name=gender.value, count=n) for gender, n in gender_rows.all()],
            brands=[FacetCount(name=brand, count=n) for brand, n in brand_rows.all()],
            price_range=price_range,
        )
