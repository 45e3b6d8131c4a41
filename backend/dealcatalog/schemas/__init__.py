"""Pydantic schemas for the deal catalog API.

All request/response models are defined here for easy import.
"""

from dealcatalog.schemas.common import CamelModel, ErrorListResponse, PaginationMeta, SuccessResponse
from dealcatalog.schemas.deal import DealListResponse, DealResponse, FacetCount, FilterFacets, PriceRange
from dealcatalog.schemas.query import DealQuery, SortKey
from dealcatalog.schemas.ingest import ImportResult, RawBatch, RawDeal
from dealcatalog.schemas.contact import (
    ContactMessageResponse,
    ContactSubmission,
    DeleteMessagesRequest,
    MarkMessagesRequest,
    MessageListResponse,
    MessagePagination,
)
from dealcatalog.schemas.health import HealthCheckResponse

__all__ = [
    # Common
    "CamelModel",
    "ErrorListResponse",
    "PaginationMeta",
    "SuccessResponse",
    # Deal
    "DealListResponse",
    "DealResponse",
    "FacetCount",
    "FilterFacets",
    "PriceRange",
    # Query
    "DealQuery",
    "SortKey",
    # Ingest
    "ImportResult",
    "RawBatch",
    "RawDeal",
    # Contact
    "ContactMessageResponse",
    "ContactSubmission",
    "DeleteMessagesRequest",
    "MarkMessagesRequest",
    "MessageListResponse",
    "MessagePagination",
    # Health
    "HealthCheckResponse",
]
