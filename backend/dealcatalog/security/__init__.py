"""Abuse-prevention primitives shared by the API surfaces."""

from dealcatalog.security.bot_filter import is_bot
from dealcatalog.security.domain_gate import DEFAULT_ALLOWED_DOMAINS, DomainGatekeeper
from dealcatalog.security.rate_limiter import FixedWindowRateLimiter, RateLimiter, SlidingWindowRateLimiter

__all__ = [
    "is_bot",
    "DEFAULT_ALLOWED_DOMAINS",
    "DomainGatekeeper",
    "FixedWindowRateLimiter",
    "RateLimiter",
    "SlidingWindowRateLimiter",
]
