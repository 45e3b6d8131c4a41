"""Services module for business logic and data operations.

Service classes own catalog reads and writes, batch imports, the contact
inbox and the image relay.  Endpoints stay thin and delegate here.
"""

from dealcatalog.services.catalog_store import CatalogStore, DealRecord
from dealcatalog.services.contact_service import ContactService
from dealcatalog.services.image_relay import ImageRelay, RelayedImage
from dealcatalog.services.importer import Importer
from dealcatalog.services.query_service import DealQueryService

__all__ = [
    "CatalogStore",
    "DealRecord",
    "ContactService",
    "ImageRelay",
    "RelayedImage",
    "Importer",
    "DealQueryService",
]
