"""Scrape run audit log."""

from datetime import datetime
from typing import List

from sqlalchemy import JSON, DateTime, Enum, Integer
from sqlalchemy.orm import Mapped, mapped_column

from dealcatalog.models.base import Base, UUIDPrimaryKeyMixin, utcnow
from dealcatalog.models.enums import Store, enum_values


class ScrapeRun(UUIDPrimaryKeyMixin, Base):
    """Append-only record of one importer invocation for one store.

    One row is written per batch, including batches with zero listings.
    Rows are never updated or deleted.
    """

    __tablename__ = "scrape_runs"

    store: Mapped[Store] = mapped_column(
        Enum(Store, name="store", native_enum=False, values_callable=enum_values, length=20),
        nullable=False,
        index=True,
    )

    # Scrape-time statistics, copied from the batch file
    total_scraped: Mapped[int] = mapped_column(
        Integer, nullable=False, default=0, comment="Listings seen by the scraper"
    )
    filtered_count: Mapped[int] = mapped_column(
        Integer, nullable=False, default=0, comment="Listings that passed the scraper's own filter"
    )
    errors: Mapped[List[str]] = mapped_column(
        JSON, nullable=False, default=list, comment="Scrape-phase error strings, in order"
    )

    # Import-time statistics
    imported_count: Mapped[int] = mapped_column(
        Integer, nullable=False, default=0, comment="Listings upserted successfully"
    )
    failed_count: Mapped[int] = mapped_column(
        Integer, nullable=False, default=0, comment="Listings whose upsert failed"
    )

    completed_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow, index=True
    )

    def __repr__(self) -> str:
        return (
            f"<ScrapeRun(store={self.store}, total_scraped={self.total_scraped}, "
            f"imported={self.imported_count}, failed={self.failed_count})>"
        )
