"""SQLAlchemy models for the deal catalog.

All models are imported here so ``Base.metadata`` knows every table.
"""

from dealcatalog.models.base import Base, TimestampMixin, UUIDPrimaryKeyMixin
from dealcatalog.models.enums import Gender, Store
from dealcatalog.models.deal import Deal, DealCategory, DealSize
from dealcatalog.models.scrape_run import ScrapeRun
from dealcatalog.models.contact_message import ContactMessage

__all__ = [
    "Base",
    "TimestampMixin",
    "UUIDPrimaryKeyMixin",
    "Gender",
    "Store",
    "Deal",
    "DealCategory",
    "DealSize",
    "ScrapeRun",
    "ContactMessage",
]
