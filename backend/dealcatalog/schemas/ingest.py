"""Pydantic schemas for scrape batch files.

These schemas define the contract between the external scrapers, which write
one ``{store}-deals.json`` file per store, and the importer.
"""

from datetime import datetime
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel


class RawDeal(BaseModel):
    """A single listing as written by a store scraper.

    Validated one listing at a time so a malformed listing fails on its own
    without rejecting the rest of the batch.
    """

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    id: str = Field(..., min_length=1, description="Scraper-supplied listing id")
    name: str = Field(..., min_length=1, max_length=500)
    brand: Optional[str] = Field(None, max_length=200)
    original_price: int = Field(..., ge=0)
    sale_price: int = Field(..., ge=0)
    discount_percent: Optional[int] = Field(
        None, description="Scraper's own discount; recomputed on import"
    )
    url: str = Field(..., min_length=1)
    image_url: Optional[str] = None
    sizes: List[str] = Field(default_factory=list)
    description: Optional[str] = None
    detail_image_url: Optional[str] = None
    categories: List[str] = Field(default_factory=list)
    gender: Optional[str] = None
    scraped_at: Optional[datetime] = Field(
        None, description="Falls back to the batch capture time when absent"
    )
    details_scraped_at: Optional[datetime] = None

    @field_validator("sizes", "categories", mode="before")
    @classmethod
    def none_as_empty(cls, v: Any) -> Any:
        """Scrapers write null for lists they could not fill."""
        return [] if v is None else v

    @field_validator("brand", "description", "image_url", "detail_image_url", mode="before")
    @classmethod
    def blank_as_none(cls, v: Any) -> Any:
        if isinstance(v, str) and not v.strip():
            return None
        return v


class RawBatch(BaseModel):
    """One scraper output file.

    ``store`` stays a plain string here; membership in the closed store set
    is checked by the importer so an unknown store is reported as a batch
    rejection rather than a schema error.  ``deals`` stays untyped for the
    per-listing validation described on ``RawDeal``.
    """

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    store: str = Field(..., min_length=1)
    deals: List[Dict[str, Any]] = Field(default_factory=list)
    total_scraped: int = Field(0, ge=0)
    filtered_count: int = Field(0, ge=0)
    scraped_at: Optional[datetime] = None
    errors: List[str] = Field(default_factory=list)

    @field_validator("errors", mode="before")
    @classmethod
    def stringify_errors(cls, v: Any) -> Any:
        if v is None:
            return []
        if isinstance(v, list):
            return [e if isinstance(e, str) else str(e) for e in v]
        return v


class ImportResult(BaseModel):
    """Outcome of importing one store's batch."""

    store: str
    imported: int = Field(0, description="Listings upserted successfully")
    failed: int = Field(0, description="Listings that failed validation or upsert")
    rejected: bool = Field(False, description="Whole file skipped (missing, unreadable or invalid store)")
    skipped_busy: bool = Field(False, description="Another import for this store was already running")
    stale_deleted: int = Field(0, description="Records removed by the optional stale cleanup")
    oldest_scraped_at: Optional[datetime] = Field(
        None, description="Earliest scrape time among imported listings"
    )
    error: Optional[str] = None
