"""Contact form endpoint."""

import math

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse
from sqlalchemy.ext.asyncio import AsyncSession

from dealcatalog.core.exceptions import RateLimitError, SubmissionValidationError
from dealcatalog.dependencies import get_client_ip, get_db, get_submission_limiter
from dealcatalog.schemas import ContactSubmission, SuccessResponse
from dealcatalog.security.rate_limiter import RateLimiter
from dealcatalog.services.contact_service import ContactService

router = APIRouter()


@router.post("", response_model=SuccessResponse)
async def submit_contact(
    submission: ContactSubmission,
    ip: str = Depends(get_client_ip),
    limiter: RateLimiter = Depends(get_submission_limiter),
    db: AsyncSession = Depends(get_db),
):
    """Store a contact message.

    Submissions that trip the honeypot or arrive too soon after the form was
    rendered get the same success response but are not stored.

    Returns 400 with every validation problem, or 429 when the caller sent
    too many messages recently.
    """
    if not limiter.allow(ip):
        raise RateLimitError(ip, retry_after=math.ceil(limiter.window_seconds))

    service = ContactService(db)
    try:
        await service.submit(submission)
    except SubmissionValidationError as e:
        return JSONResponse(status_code=400, content={"errors": e.errors})

    return SuccessResponse()
