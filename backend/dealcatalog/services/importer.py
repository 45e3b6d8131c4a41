"""Batch importer: scraper output files -> catalog.

For each store the importer reads ``{DATA_DIR}/{store}-deals.json``, checks
the batch belongs to a known store, upserts every listing and finally appends
one ScrapeRun audit record:

  1. Read and schema-validate the whole file (file-level failure skips the store)
  2. Reject the file outright if ``store`` is not a known store
  3. Validate and upsert each listing; a failing listing is logged and counted
  4. Append the ScrapeRun, after all upserts of the batch have finished

Runs for different stores may proceed concurrently, bounded by
``IMPORT_MAX_WORKERS``.  Runs for the same store never overlap: a second
request while one is in flight is skipped.
"""

import asyncio
import json
from datetime import datetime, timezone
from pathlib import Path
from typing import Dict, Iterable, List, Optional, Union

import structlog
from pydantic import ValidationError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from dealcatalog.config import settings
from dealcatalog.core.exceptions import BatchRejectedError
from dealcatalog.models.enums import Store
from dealcatalog.schemas.ingest import ImportResult, RawBatch, RawDeal
from dealcatalog.services.cache_service import invalidate_deals_cache
from dealcatalog.services.catalog_store import CatalogStore, DealRecord
from dealcatalog.utils.normalizer import compute_discount, map_gender, normalize_sizes, stable_deal_id

logger = structlog.get_logger(__name__)

# Single-flight guards, one per store, shared by every Importer in the process
_store_locks: Dict[Store, asyncio.Lock] = {}


def _lock_for(store: Store) -> asyncio.Lock:
    lock = _store_locks.get(store)
    if lock is None:
        lock = asyncio.Lock()
        _store_locks[store] = lock
    return lock


def batch_path(data_dir: Union[str, Path], store: Union[Store, str]) -> Path:
    name = store.value if isinstance(store, Store) else store
    return Path(data_dir) / f"{name}-deals.json"


def load_batch(path: Path, store_hint: str) -> RawBatch:
    """Read and schema-validate one batch file.

    Raises:
        BatchRejectedError: File missing, unreadable, not JSON or not a batch
    """
    if not path.exists():
        raise BatchRejectedError(store_hint, f"no data file at {path}")
    try:
        payload = json.loads(path.read_text(encoding="utf-8"))
    except (OSError, UnicodeDecodeError, json.JSONDecodeError) as exc:
        raise BatchRejectedError(store_hint, f"unreadable file: {exc}") from exc
    try:
        return RawBatch.model_validate(payload)
    except ValidationError as exc:
        raise BatchRejectedError(store_hint, f"invalid batch: {exc.error_count()} schema errors") from exc


class Importer:
    """Imports scraper batches into the catalog.

    Args:
        session_factory: Factory for fresh sessions; each store gets its own
        data_dir: Directory holding the batch files
        stable_ids: Derive deal ids from store + URL instead of trusting the
            scraper id (which embeds the scrape time)
        max_workers: Stores imported concurrently by ``import_all``
    """

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        data_dir: Union[str, Path, None] = None,
        stable_ids: Optional[bool] = None,
        max_workers: Optional[int] = None,
    ):
        self.session_factory = session_factory
        self.data_dir = Path(data_dir if data_dir is not None else settings.DATA_DIR)
        self.stable_ids = settings.STABLE_DEAL_IDS if stable_ids is None else stable_ids
        self.max_workers = max(1, max_workers or settings.IMPORT_MAX_WORKERS)
        self.logger = logger.bind(service="importer")

    async def import_all(
        self,
        stores: Optional[Iterable[Store]] = None,
        cleanup: bool = False,
    ) -> List[ImportResult]:
        """Import the latest batch of every store (or the given ones).

        Results come back in the order the stores were given.
        """
        targets = list(stores) if stores is not None else list(Store)
        semaphore = asyncio.Semaphore(self.max_workers)

        async def _bounded(store: Store) -> ImportResult:
            async with semaphore:
                return await self.import_store(store, cleanup=cleanup)

        results = await asyncio.gather(*(_bounded(s) for s in targets))

        self.logger.info(
            "import_pass_complete",
            stores=len(results),
            imported=sum(r.imported for r in results),
            failed=sum(r.failed for r in results),
            rejected=[r.store for r in results if r.rejected],
        )
        return list(results)

    async def import_store(self, store: Store, cleanup: bool = False) -> ImportResult:
        """Import ``store``'s batch file, unless an import for it is already running."""
        lock = _lock_for(store)
        if lock.locked():
            self.logger.warning("import_already_running", store=store.value)
            return ImportResult(store=store.value, skipped_busy=True)

        async with lock:
            path = batch_path(self.data_dir, store)
            try:
                batch = load_batch(path, store.value)
            except BatchRejectedError as exc:
                self.logger.warning("batch_rejected", store=store.value, reason=exc.message)
                return ImportResult(store=store.value, rejected=True, error=exc.message)

            if batch.store != store.value:
                message = f"file for {store.value} declares store '{batch.store}'"
                self.logger.warning("batch_rejected", store=store.value, reason=message)
                return ImportResult(store=store.value, rejected=True, error=message)

            async with self.session_factory() as db:
                result = await self.import_batch(db, batch)
                if cleanup and result.oldest_scraped_at is not None:
                    result.stale_deleted = await CatalogStore(db).cleanup_stale_deals(
                        store, result.oldest_scraped_at, products_found=result.imported
                    )
            return result

    async def import_batch(self, db: AsyncSession, batch: RawBatch) -> ImportResult:
        """Upsert every listing of an already-loaded batch and record the run.

        Args:
            db: Session used for all writes of this batch
            batch: Parsed batch

        Returns:
            ImportResult with the count of listings upserted successfully
        """
        store = Store.parse(batch.store)
        if store is None:
            self.logger.warning("batch_rejected", store=batch.store, reason="unknown store")
            return ImportResult(store=batch.store, rejected=True, error=f"Invalid store: {batch.store}")

        log = self.logger.bind(store=store.value, received=len(batch.deals))
        log.info("batch_import_started")

        catalog = CatalogStore(db)
        imported = 0
        failed = 0
        oldest = None

        for idx, payload in enumerate(batch.deals):
            try:
                record = self._to_record(store, RawDeal.model_validate(payload), batch.scraped_at)
                await catalog.upsert_deal(record)
                imported += 1
                if oldest is None or record.scraped_at < oldest:
                    oldest = record.scraped_at
            except Exception as exc:
                failed += 1
                log.error(
                    "deal_upsert_failed",
                    index=idx,
                    deal_id=payload.get("id") if isinstance(payload, dict) else None,
                    error=str(exc),
                )
                # Continue with remaining listings

        await catalog.append_scrape_run(
            store=store,
            total_scraped=batch.total_scraped,
            filtered_count=batch.filtered_count,
            errors=batch.errors,
            imported_count=imported,
            failed_count=failed,
        )

        log.info("batch_import_complete", imported=imported, failed=failed)

        if imported:
            await invalidate_deals_cache()

        return ImportResult(
            store=store.value,
            imported=imported,
            failed=failed,
            oldest_scraped_at=oldest,
        )

    def _to_record(
        self, store: Store, raw: RawDeal, batch_scraped_at: Optional[datetime] = None
    ) -> DealRecord:
        """Apply defaults and normalization to one validated listing.

        A listing without its own scrape time takes the batch capture time.

        Raises:
            ValueError: Neither the listing nor the batch carries a scrape time
        """
        scraped_at = raw.scraped_at or batch_scraped_at
        if scraped_at is None:
            raise ValueError(f"listing {raw.id} has no scrapedAt and the batch has none")

        deal_id = stable_deal_id(store.value, raw.url) if self.stable_ids else raw.id

        discount = compute_discount(raw.original_price, raw.sale_price)
        if raw.discount_percent is not None and raw.discount_percent != discount:
            self.logger.debug(
                "discount_recomputed",
                deal_id=deal_id,
                source=raw.discount_percent,
                computed=discount,
            )

        return DealRecord(
            id=deal_id,
            store=store,
            name=raw.name,
            brand=raw.brand,
            original_price=raw.original_price,
            sale_price=raw.sale_price,
            url=raw.url,
            image_url=raw.image_url,
            detail_image_url=raw.detail_image_url,
            description=raw.description,
            sizes=normalize_sizes(raw.sizes),
            categories=list(dict.fromkeys(c.strip() for c in raw.categories if c and c.strip())),
            gender=map_gender(raw.gender),
            scraped_at=_as_utc(scraped_at),
            details_scraped_at=_as_utc(raw.details_scraped_at) if raw.details_scraped_at else None,
        )


def _as_utc(value):
    """Treat naive timestamps as UTC and convert aware ones to UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)
