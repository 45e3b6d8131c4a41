"""FastAPI dependency injection providers."""

import secrets
from typing import AsyncGenerator, Optional

from fastapi import HTTPException, Query, Request, status
from sqlalchemy.ext.asyncio import AsyncSession

from dealcatalog.config import settings
from dealcatalog.db.session import async_session_factory
from dealcatalog.security.domain_gate import DEFAULT_ALLOWED_DOMAINS, DomainGatekeeper
from dealcatalog.security.rate_limiter import FixedWindowRateLimiter, SlidingWindowRateLimiter
from dealcatalog.services.image_relay import ImageRelay


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """Yield a database session for request-scoped usage.

    The session is automatically committed on success or rolled back on error.
    Always closed after the request completes.

    Usage:
        @router.get("/deals")
        async def list_deals(db: AsyncSession = Depends(get_db)):
            result = await db.execute(select(Deal))
            return result.scalars().all()
    """
    async with async_session_factory() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise
        finally:
            await session.close()


# Process-wide limiter and gatekeeper instances
_submission_limiter: Optional[SlidingWindowRateLimiter] = None
_gate_limiter: Optional[FixedWindowRateLimiter] = None
_gatekeeper: Optional[DomainGatekeeper] = None


def get_submission_limiter() -> SlidingWindowRateLimiter:
    """Sliding-window guard for the contact form, keyed by client IP."""
    global _submission_limiter

    if _submission_limiter is None:
        _submission_limiter = SlidingWindowRateLimiter(
            limit=settings.SUBMISSION_RATE_LIMIT,
            window_seconds=settings.SUBMISSION_RATE_WINDOW_SECONDS,
            max_keys=settings.SUBMISSION_MAX_KEYS,
        )
    return _submission_limiter


def get_gate_limiter() -> FixedWindowRateLimiter:
    """Fixed-window limiter applied to every /api request."""
    global _gate_limiter

    if _gate_limiter is None:
        _gate_limiter = FixedWindowRateLimiter(
            limit=settings.GATE_RATE_LIMIT,
            window_seconds=settings.GATE_RATE_WINDOW_SECONDS,
            max_keys=settings.GATE_MAX_KEYS,
        )
    return _gate_limiter


def get_gatekeeper() -> DomainGatekeeper:
    global _gatekeeper

    if _gatekeeper is None:
        _gatekeeper = DomainGatekeeper(settings.get_image_allowed_domains() or DEFAULT_ALLOWED_DOMAINS)
    return _gatekeeper


def get_image_relay() -> ImageRelay:
    return ImageRelay(get_gatekeeper())


def client_ip(request: Request) -> str:
    """First X-Forwarded-For entry, else the socket peer, else "unknown"."""
    forwarded = request.headers.get("x-forwarded-for")
    if forwarded:
        first = forwarded.split(",")[0].strip()
        if first:
            return first
    if request.client and request.client.host:
        return request.client.host
    return "unknown"


async def get_client_ip(request: Request) -> str:
    return client_ip(request)


async def require_admin_key(key: Optional[str] = Query(None)) -> None:
    """Check the ``?key=`` admin credential.

    Raises 401 when the key is missing or wrong, and for every request when
    ADMIN_SECRET is not configured.
    """
    secret = settings.ADMIN_SECRET
    if not secret or not key or not secrets.compare_digest(key.encode(), secret.encode()):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Unauthorized",
        )
