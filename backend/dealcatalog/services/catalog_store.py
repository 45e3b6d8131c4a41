"""Catalog store: durable Deal records and the ScrapeRun audit log.

Every write here is its own transaction, so an upsert is either fully
visible to readers or not at all.
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Dict, Iterable, List, Optional

import structlog
from sqlalchemy import delete, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from dealcatalog.models.deal import Deal, DealCategory, DealSize
from dealcatalog.models.enums import Gender, Store
from dealcatalog.models.scrape_run import ScrapeRun
from dealcatalog.utils.normalizer import compute_discount

logger = structlog.get_logger(__name__)


# Minimum listings a run must find before stale records of that store are
# deleted.  Fewer means the scraper most likely broke.
MIN_PRODUCTS_THRESHOLD: Dict[Store, int] = {
    Store.DJAKSPORT: 10,
    Store.PLANETA: 10,
    Store.NSPORT: 5,
    Store.SPORTVISION: 10,
    Store.BUZZ: 10,
    Store.OFFICESHOES: 10,
    Store.INTERSPORT: 10,
    Store.TREFSPORT: 5,
}


@dataclass
class DealRecord:
    """Validated, normalized listing ready to be written."""

    id: str
    store: Store
    name: str
    original_price: int
    sale_price: int
    url: str
    scraped_at: datetime
    brand: Optional[str] = None
    description: Optional[str] = None
    image_url: Optional[str] = None
    detail_image_url: Optional[str] = None
    sizes: List[str] = field(default_factory=list)
    categories: List[str] = field(default_factory=list)
    gender: Gender = Gender.UNISEX
    details_scraped_at: Optional[datetime] = None

    def __post_init__(self):
        """Validate data after initialization."""
        if not self.id:
            raise ValueError("id is required")
        if not self.name:
            raise ValueError("name is required")
        if self.original_price < 0 or self.sale_price < 0:
            raise ValueError("prices must be non-negative")

    @property
    def discount_percent(self) -> int:
        return compute_discount(self.original_price, self.sale_price)


class CatalogStore:
    """Upsert-by-id and audit-append operations over the catalog tables."""

    def __init__(self, db: AsyncSession):
        """Initialize catalog store.

        Args:
            db: Async database session
        """
        self.db = db
        self.logger = logger.bind(service="catalog_store")

    async def upsert_deal(self, record: DealRecord) -> Deal:
        """Insert the record, or overwrite the mutable fields of the existing one.

        ``store`` and ``url`` are fixed at creation.  Everything else is
        replaced wholesale, including sizes and categories.  The write is
        committed before returning; on failure it is rolled back and the
        error re-raised.

        Args:
            record: Normalized listing

        Returns:
            The persisted Deal
        """
        try:
            deal = await self.db.get(Deal, record.id)
            if deal is None:
                deal = Deal(id=record.id, store=record.store, url=record.url)
                self.db.add(deal)

            deal.name = record.name
            deal.brand = record.brand
            deal.description = record.description
            deal.original_price = record.original_price
            deal.sale_price = record.sale_price
            deal.discount_percent = record.discount_percent
            deal.image_url = record.image_url
            deal.detail_image_url = record.detail_image_url
            deal.sizes = list(record.sizes)
            deal.categories = list(record.categories)
            deal.gender = record.gender
            deal.scraped_at = record.scraped_at
            deal.details_scraped_at = record.details_scraped_at

            await self.db.commit()
        except Exception:
            await self.db.rollback()
            raise

        return deal

    async def get_deal(self, deal_id: str) -> Optional[Deal]:
        return await self.db.get(Deal, deal_id)

    async def append_scrape_run(
        self,
        store: Store,
        total_scraped: int,
        filtered_count: int,
        errors: List[str],
        imported_count: int = 0,
        failed_count: int = 0,
    ) -> ScrapeRun:
        """Write one audit record for a finished batch."""
        run = ScrapeRun(
            store=store,
            total_scraped=total_scraped,
            filtered_count=filtered_count,
            errors=list(errors),
            imported_count=imported_count,
            failed_count=failed_count,
        )
        self.db.add(run)
        await self.db.commit()

        self.logger.info(
            "scrape_run_recorded",
            store=store.value,
            total_scraped=total_scraped,
            filtered_count=filtered_count,
            imported=imported_count,
            failed=failed_count,
        )
        return run

    async def list_scrape_runs(self, store: Optional[Store] = None) -> List[ScrapeRun]:
        query = select(ScrapeRun).order_by(ScrapeRun.completed_at)
        if store is not None:
            query = query.where(ScrapeRun.store == store)
        result = await self.db.execute(query)
        return list(result.scalars().all())

    async def delete_deals(self, ids: Iterable[str]) -> int:
        """Delete deals by id.  Returns the number of rows removed."""
        id_list = list(ids)
        if not id_list:
            return 0
        count = await self._delete_where(Deal.id.in_(id_list))
        self.logger.info("deals_deleted", count=count)
        return count

    async def delete_all_deals(self, store: Optional[Store] = None) -> int:
        """Delete every deal, or every deal of one store."""
        criteria = [Deal.store == store] if store is not None else []
        count = await self._delete_where(*criteria)
        self.logger.info("deals_deleted_bulk", store=store.value if store else None, count=count)
        return count

    async def _delete_where(self, *criteria) -> int:
        """Bulk delete deals matching ``criteria`` together with their child rows.

        Child rows are removed explicitly because SQLite does not enforce
        ON DELETE CASCADE unless foreign keys are switched on.
        """
        doomed = select(Deal.id).where(*criteria)
        try:
            await self.db.execute(
                delete(DealSize).where(DealSize.deal_id.in_(doomed)).execution_options(synchronize_session=False)
            )
            await self.db.execute(
                delete(DealCategory).where(DealCategory.deal_id.in_(doomed)).execution_options(synchronize_session=False)
            )
            result = await self.db.execute(
                delete(Deal).where(*criteria).execution_options(synchronize_session=False)
            )
            await self.db.commit()
        except Exception:
            await self.db.rollback()
            raise
        self.db.expunge_all()
        return result.rowcount

    async def cleanup_stale_deals(
        self,
        store: Store,
        scrape_started_at: datetime,
        products_found: int,
    ) -> int:
        """Delete a store's deals that the latest run did not touch.

        Skipped when the run found fewer listings than the store's minimum
        threshold, since that usually means the scraper failed.

        Args:
            store: Store whose records are cleaned
            scrape_started_at: Deals scraped before this instant are stale
            products_found: Listings the latest run produced

        Returns:
            Number of deals deleted
        """
        threshold = MIN_PRODUCTS_THRESHOLD.get(store, 10)
        if products_found < threshold:
            self.logger.warning(
                "stale_cleanup_skipped",
                store=store.value,
                products_found=products_found,
                threshold=threshold,
            )
            return 0

        count = await self._delete_where(Deal.store == store, Deal.scraped_at < scrape_started_at)

        if count:
            self.logger.info("stale_deals_deleted", store=store.value, count=count)
        return count

    async def count_by_store(self) -> Dict[str, int]:
        result = await self.db.execute(
            select(Deal.store, func.count(Deal.id)).group_by(Deal.store)
        )
        return {store.value: count for store, count in result.all()}
