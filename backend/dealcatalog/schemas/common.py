"""Common Pydantic schemas used across the API."""

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    """Base for response bodies: snake_case in Python, camelCase on the wire."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        from_attributes=True,
    )


class PaginationMeta(CamelModel):
    """Pagination metadata included in list responses."""

    page: int = 1
    limit: int = 32
    total: int = 0
    total_pages: int = 0


class SuccessResponse(BaseModel):
    success: bool = True


class ErrorListResponse(BaseModel):
    """Validation failure body: every human-readable problem at once."""

    errors: list[str]
