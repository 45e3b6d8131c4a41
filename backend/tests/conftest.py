"""Pytest configuration and shared fixtures."""

import os

# Settings are read at import time, so the test environment goes in first
os.environ["ENVIRONMENT"] = "test"
os.environ["CACHE_ENABLED"] = "false"
os.environ["DATABASE_URL"] = "sqlite+aiosqlite:///:memory:"
os.environ["ADMIN_SECRET"] = "test-admin-secret"

from datetime import datetime, timezone
from typing import Any, Dict

import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from dealcatalog.models import Base, Gender, Store
import dealcatalog.services.importer as importer_module
from dealcatalog.services.catalog_store import DealRecord

SCRAPED_AT = datetime(2025, 3, 1, 12, 0, tzinfo=timezone.utc)


@pytest.fixture
def anyio_backend():
    """Use asyncio as the async backend for tests."""
    return "asyncio"


@pytest.fixture(autouse=True)
def reset_import_locks():
    """Per-store import locks are process-wide; start every test without them."""
    importer_module._store_locks.clear()
    yield
    importer_module._store_locks.clear()


@pytest_asyncio.fixture
async def session_factory():
    """Session factory over a fresh in-memory SQLite database."""
    engine = create_async_engine(
        "sqlite+aiosqlite:///:memory:",
        poolclass=StaticPool,
        echo=False,
    )

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)

    await engine.dispose()


@pytest_asyncio.fixture
async def test_db(session_factory):
    """Create an in-memory SQLite database for testing."""
    async with session_factory() as session:
        yield session


@pytest.fixture
def raw_deal():
    """Build one scraper listing (camelCase, as written to the batch file)."""

    def _build(deal_id: str = "djaksport-patike-1", **overrides: Any) -> Dict[str, Any]:
        payload = {
            "id": deal_id,
            "name": "Nike Air Max 90",
            "brand": "NIKE",
            "originalPrice": 20000,
            "salePrice": 9000,
            "discountPercent": 55,
            "url": f"https://www.djaksport.com/proizvod/{deal_id}",
            "imageUrl": "https://www.djaksport.com/img/1.jpg",
            "sizes": ["42", "43"],
            "categories": ["obuca/patike"],
            "gender": "muski",
            "scrapedAt": SCRAPED_AT.isoformat(),
        }
        payload.update(overrides)
        return payload

    return _build


@pytest.fixture
def deal_record():
    """Build a normalized DealRecord for seeding the catalog directly."""

    def _build(deal_id: str, **overrides: Any) -> DealRecord:
        fields = dict(
            id=deal_id,
            store=Store.DJAKSPORT,
            name=f"Deal {deal_id}",
            brand="NIKE",
            original_price=10000,
            sale_price=4000,
            url=f"https://www.djaksport.com/p/{deal_id}",
            scraped_at=SCRAPED_AT,
            sizes=["42"],
            categories=["obuca/patike"],
            gender=Gender.MALE,
        )
        fields.update(overrides)
        return DealRecord(**fields)

    return _build
