"""Contact form submissions and the admin message inbox."""

import math
import re
import time
from typing import Callable, Iterable, List, Optional, Tuple
from uuid import UUID

import structlog
from sqlalchemy import delete, func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from dealcatalog.config import settings
from dealcatalog.core.exceptions import SubmissionValidationError
from dealcatalog.models.contact_message import ContactMessage
from dealcatalog.schemas.contact import ContactSubmission

logger = structlog.get_logger(__name__)

EMAIL_REGEX = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")

ADMIN_PAGE_SIZE = 20


def _now_ms() -> float:
    return time.time() * 1000


class ContactService:
    """Stores contact messages and serves the admin inbox.

    Args:
        db: Async database session
        min_elapsed_ms: Submissions sent sooner than this after the form was
            rendered are treated as automated
        clock_ms: Wall clock in epoch milliseconds, injectable for tests
    """

    def __init__(
        self,
        db: AsyncSession,
        min_elapsed_ms: Optional[int] = None,
        clock_ms: Callable[[], float] = _now_ms,
    ):
        self.db = db
        self.min_elapsed_ms = (
            settings.SUBMISSION_MIN_ELAPSED_MS if min_elapsed_ms is None else min_elapsed_ms
        )
        self._clock_ms = clock_ms
        self.logger = logger.bind(service="contact_service")

    def looks_automated(self, submission: ContactSubmission) -> bool:
        """Honeypot filled in, or the form was sent implausibly fast.

        A missing render timestamp counts as rendered at epoch zero.
        """
        if submission.website:
            return True
        rendered_at = submission.rendered_at or 0
        return self._clock_ms() - rendered_at < self.min_elapsed_ms

    @staticmethod
    def validate(submission: ContactSubmission) -> List[str]:
        errors = []
        if not submission.name:
            errors.append("Name is required.")
        if not submission.email:
            errors.append("Email is required.")
        elif not EMAIL_REGEX.match(submission.email):
            errors.append("Email address is not valid.")
        if not submission.message:
            errors.append("Message is required.")
        return errors

    async def submit(self, submission: ContactSubmission) -> Optional[ContactMessage]:
        """Persist a submission.

        Returns:
            The stored message, or None when the submission was silently
            dropped as automated

        Raises:
            SubmissionValidationError: One or more fields are missing or invalid
        """
        if self.looks_automated(submission):
            self.logger.info("contact_submission_dropped", honeypot=bool(submission.website))
            return None

        errors = self.validate(submission)
        if errors:
            raise SubmissionValidationError(errors)

        message = ContactMessage(
            name=submission.name,
            email=submission.email,
            message=submission.message,
        )
        self.db.add(message)
        await self.db.commit()

        self.logger.info("contact_message_saved", message_id=str(message.id))
        return message

    async def list_messages(self, page: int = 1) -> Tuple[List[ContactMessage], int, int]:
        """One page of messages, newest first.

        Returns:
            Tuple of (messages, total count, total pages)
        """
        page = max(1, page)
        total_result = await self.db.execute(select(func.count(ContactMessage.id)))
        total = total_result.scalar() or 0

        result = await self.db.execute(
            select(ContactMessage)
            .order_by(ContactMessage.created_at.desc(), ContactMessage.id)
            .offset((page - 1) * ADMIN_PAGE_SIZE)
            .limit(ADMIN_PAGE_SIZE)
        )
        messages = list(result.scalars().all())
        return messages, total, math.ceil(total / ADMIN_PAGE_SIZE)

    async def mark_read(self, ids: Iterable[UUID], read: bool = True) -> int:
        id_list = list(ids)
        if not id_list:
            return 0
        result = await self.db.execute(
            update(ContactMessage)
            .where(ContactMessage.id.in_(id_list))
            .values(read=read)
            .execution_options(synchronize_session=False)
        )
        await self.db.commit()
        self.logger.info("contact_messages_marked", count=result.rowcount, read=read)
        return result.rowcount

    async def delete_messages(self, ids: Optional[Iterable[UUID]] = None) -> int:
        """Delete the given messages, or every message when ``ids`` is None."""
        stmt = delete(ContactMessage)
        if ids is not None:
            id_list = list(ids)
            if not id_list:
                return 0
            stmt = stmt.where(ContactMessage.id.in_(id_list))

        result = await self.db.execute(stmt.execution_options(synchronize_session=False))
        await self.db.commit()
        self.db.expunge_all()
        self.logger.info("contact_messages_deleted", count=result.rowcount, all=ids is None)
        return result.rowcount
