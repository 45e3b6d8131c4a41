"""Request gate for the public API: automation-client blocking and per-IP rate limiting."""

import math

import structlog
from fastapi import Request
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware

from dealcatalog.dependencies import client_ip
from dealcatalog.security.bot_filter import is_bot
from dealcatalog.security.rate_limiter import RateLimiter

logger = structlog.get_logger(__name__)

API_PREFIX = "/api/"
IMAGE_PROXY_PATH = "/api/image-proxy"


class RequestGateMiddleware(BaseHTTPMiddleware):
    """Screens every /api request before it reaches a router.

    Requests from known automation clients get 403, except on the image
    proxy (image tags send whatever User-Agent the browser has).  Everything
    else is counted against ``limiter`` keyed by client IP; over the limit
    gets 429 with a Retry-After hint.
    """

    def __init__(self, app, limiter: RateLimiter):
        super().__init__(app)
        self.limiter = limiter
        self.retry_after = max(1, math.ceil(limiter.window_seconds))

    async def dispatch(self, request: Request, call_next):
        path = request.url.path
        if not path.startswith(API_PREFIX):
            return await call_next(request)

        if not path.startswith(IMAGE_PROXY_PATH) and is_bot(request.headers.get("user-agent")):
            logger.info("bot_request_blocked", path=path, user_agent=request.headers.get("user-agent"))
            return JSONResponse(status_code=403, content={"error": "Forbidden"})

        ip = client_ip(request)
        if not self.limiter.allow(ip):
            logger.warning("gate_rate_limited", ip=ip, path=path)
            return JSONResponse(
                status_code=429,
                content={"error": "Too many requests"},
                headers={"Retry-After": str(self.retry_after)},
            )

        return await call_next(request)
