"""Schemas for the contact form and the admin message inbox."""

from datetime import datetime
from typing import Any, List, Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, field_validator

from dealcatalog.schemas.common import CamelModel

NAME_MAX_LENGTH = 100
EMAIL_MAX_LENGTH = 200
MESSAGE_MAX_LENGTH = 2000


def _clean_text(value: Any, max_length: int) -> str:
    if not isinstance(value, str):
        return ""
    return value.strip()[:max_length]


class ContactSubmission(BaseModel):
    """Contact form body.

    ``website`` is the honeypot field (hidden from humans) and ``t`` the
    epoch-millisecond time the form was rendered.  Field contents are trimmed
    and truncated here; presence and format are checked by ContactService so
    every problem can be reported in one response.
    """

    model_config = ConfigDict(populate_by_name=True)

    name: str = ""
    email: str = ""
    message: str = ""
    website: Optional[str] = None
    rendered_at: Optional[float] = Field(None, alias="_t")

    @field_validator("name", mode="before")
    @classmethod
    def clean_name(cls, v: Any) -> str:
        return _clean_text(v, NAME_MAX_LENGTH)

    @field_validator("email", mode="before")
    @classmethod
    def clean_email(cls, v: Any) -> str:
        return _clean_text(v, EMAIL_MAX_LENGTH)

    @field_validator("message", mode="before")
    @classmethod
    def clean_message(cls, v: Any) -> str:
        return _clean_text(v, MESSAGE_MAX_LENGTH)

    @field_validator("website", mode="before")
    @classmethod
    def honeypot_as_text(cls, v: Any) -> Optional[str]:
        if v is None:
            return None
        return v if isinstance(v, str) else str(v)

    @field_validator("rendered_at", mode="before")
    @classmethod
    def numeric_timestamp(cls, v: Any) -> Optional[float]:
        if isinstance(v, (int, float)) and not isinstance(v, bool):
            return float(v)
        return None


class ContactMessageResponse(CamelModel):
    id: UUID
    name: str
    email: str
    message: str
    read: bool
    created_at: datetime


class MessagePagination(CamelModel):
    page: int
    page_size: int
    total: int
    total_pages: int


class MessageListResponse(CamelModel):
    messages: List[ContactMessageResponse]
    pagination: MessagePagination


class MarkMessagesRequest(BaseModel):
    ids: List[UUID] = Field(default_factory=list)
    read: bool = True


class DeleteMessagesRequest(BaseModel):
    ids: List[UUID] = Field(default_factory=list)
    all: bool = False
