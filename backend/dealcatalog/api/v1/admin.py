"""Admin inbox endpoints.

All routes require the shared ``?key=`` credential.  Passing a secret in the
URL is weak (it ends up in access logs); it matches what the admin panel
sends and is kept as is.
"""

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.ext.asyncio import AsyncSession

from dealcatalog.dependencies import get_db, require_admin_key
from dealcatalog.schemas import (
    ContactMessageResponse,
    DeleteMessagesRequest,
    MarkMessagesRequest,
    MessageListResponse,
    MessagePagination,
    SuccessResponse,
)
from dealcatalog.services.contact_service import ADMIN_PAGE_SIZE, ContactService

router = APIRouter(dependencies=[Depends(require_admin_key)])


@router.get("/messages", response_model=MessageListResponse, response_model_by_alias=True)
async def list_messages(
    page: str = Query("1", description="Page number (1-indexed)"),
    db: AsyncSession = Depends(get_db),
):
    """List contact messages, newest first, 20 per page."""
    try:
        page_number = max(1, int(page))
    except ValueError:
        page_number = 1

    service = ContactService(db)
    messages, total, total_pages = await service.list_messages(page_number)

    return MessageListResponse(
        messages=[ContactMessageResponse.model_validate(m) for m in messages],
        pagination=MessagePagination(
            page=page_number,
            page_size=ADMIN_PAGE_SIZE,
            total=total,
            total_pages=total_pages,
        ),
    )


@router.patch("/messages", response_model=SuccessResponse)
async def mark_messages(
    body: MarkMessagesRequest,
    db: AsyncSession = Depends(get_db),
):
    """Mark messages read (default) or unread."""
    if not body.ids:
        raise HTTPException(status_code=400, detail="No IDs provided")

    service = ContactService(db)
    await service.mark_read(body.ids, read=body.read)
    return SuccessResponse()


@router.delete("/messages", response_model=SuccessResponse)
async def delete_messages(
    body: DeleteMessagesRequest,
    db: AsyncSession = Depends(get_db),
):
    """Delete the listed messages, or all of them with ``{"all": true}``."""
    if not body.all and not body.ids:
        raise HTTPException(status_code=400, detail="No IDs provided")

    service = ContactService(db)
    await service.delete_messages(None if body.all else body.ids)
    return SuccessResponse()
