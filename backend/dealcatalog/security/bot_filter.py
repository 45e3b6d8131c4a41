"""User-Agent screening for the public API."""

from typing import Optional

# Automation clients refused on /api/* (search engine crawlers are let through)
BLOCKED_USER_AGENTS = (
    "python-requests",
    "python-urllib",
    "python-httpx",
    "aiohttp",
    "scrapy",
    "curl",
    "wget",
    "httpie",
    "postman",
    "insomnia",
    "axios",
    "node-fetch",
    "go-http-client",
    "java",
    "httpclient",
    "libwww",
    "lwp-trivial",
    "php",
    "ruby",
    "perl",
)

ALLOWED_CRAWLERS = ("googlebot", "bingbot", "yandex")


def is_bot(user_agent: Optional[str]) -> bool:
    """True when the User-Agent is missing or names a known automation client."""
    if not user_agent:
        return True

    ua = user_agent.lower()
    if any(crawler in ua for crawler in ALLOWED_CRAWLERS):
        return False

    return any(bot in ua for bot in BLOCKED_USER_AGENTS)
