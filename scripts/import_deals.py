"""Run one import pass over the scraper batch files.

Reads ``{data-dir}/{store}-deals.json`` for every store (or the ones given),
upserts the listings and records a ScrapeRun per store.

Usage:
    python scripts/import_deals.py
    python scripts/import_deals.py --store djaksport --store planeta
    python scripts/import_deals.py --data-dir ./data --cleanup
"""

import argparse
import asyncio
import os
import sys

# Add backend to path so we can import dealcatalog modules
sys.path.insert(0, os.path.join(os.path.dirname(__file__), "..", "backend"))

from dealcatalog.db.session import async_session_factory, engine
from dealcatalog.models import Base, Store
from dealcatalog.services.importer import Importer


def parse_stores(values):
    stores = []
    for value in values or []:
        store = Store.parse(value)
        if store is None:
            raise argparse.ArgumentTypeError(f"unknown store '{value}'")
        stores.append(store)
    return stores or None


async def run_import(stores, data_dir, cleanup) -> int:
    """Create tables if needed, import, print a summary.

    Returns:
        Process exit code: 1 when any store's file was rejected
    """
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    importer = Importer(async_session_factory, data_dir=data_dir)
    results = await importer.import_all(stores=stores, cleanup=cleanup)

    print(f"\n{'=' * 70}")
    print(f"  {'STORE':<14}{'IMPORTED':>10}{'FAILED':>10}{'STALE':>10}  STATUS")
    print(f"{'=' * 70}")
    for r in results:
        if r.rejected:
            status = f"rejected: {r.error}"
        elif r.skipped_busy:
            status = "skipped (already running)"
        else:
            status = "ok"
        print(f"  {r.store:<14}{r.imported:>10}{r.failed:>10}{r.stale_deleted:>10}  {status}")
    print(f"{'=' * 70}\n")

    await engine.dispose()
    return 1 if any(r.rejected for r in results) else 0


def main():
    parser = argparse.ArgumentParser(description="Import scraped deal batches into the catalog")
    parser.add_argument(
        "--store",
        action="append",
        help="Store to import (repeatable, default: all stores)",
    )
    parser.add_argument(
        "--data-dir",
        default=None,
        help="Directory holding {store}-deals.json files (default: DATA_DIR setting)",
    )
    parser.add_argument(
        "--cleanup",
        action="store_true",
        help="Delete each store's deals that this run did not refresh",
    )
    args = parser.parse_args()

    try:
        stores = parse_stores(args.store)
    except argparse.ArgumentTypeError as e:
        parser.error(str(e))

    sys.exit(asyncio.run(run_import(stores, args.data_dir, args.cleanup)))


if __name__ == "__main__":
    main()
