"""Image relay: fetches store product images on behalf of the browser.

Store CDNs reject hotlinked requests, so images are fetched server-side with
a browser User-Agent and no Referer.  Only allow-listed hosts are fetched,
including every redirect hop, and nothing is retried.
"""

import asyncio
from dataclasses import dataclass
from typing import Optional

import httpx
import structlog

from dealcatalog.config import settings
from dealcatalog.core.exceptions import UpstreamFetchError
from dealcatalog.security.domain_gate import DomainGatekeeper

logger = structlog.get_logger(__name__)

DEFAULT_CONTENT_TYPE = "image/jpeg"

BROWSER_USER_AGENT = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/131.0.0.0 Safari/537.36"
)


@dataclass
class RelayedImage:
    content: bytes
    content_type: str


class ImageRelay:
    """Fetches allow-listed images.

    Args:
        gatekeeper: Host allow-list applied to the first URL and to every
            redirect target before it is requested
        timeout: Deadline in seconds for the whole fetch, body included
        transport: Optional httpx transport (tests pass ``httpx.MockTransport``)
    """

    def __init__(
        self,
        gatekeeper: DomainGatekeeper,
        timeout: Optional[float] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.gatekeeper = gatekeeper
        self.timeout = settings.IMAGE_FETCH_TIMEOUT_SECONDS if timeout is None else timeout
        self._transport = transport
        self.logger = logger.bind(service="image_relay")

    async def _check_hop(self, request: httpx.Request) -> None:
        self.gatekeeper.check(str(request.url))

    async def _get(self, url: str) -> httpx.Response:
        async with httpx.AsyncClient(
            timeout=self.timeout,
            follow_redirects=True,
            transport=self._transport,
            event_hooks={"request": [self._check_hop]},
        ) as client:
            return await client.get(url, headers={"User-Agent": BROWSER_USER_AGENT})

    async def fetch(self, url: str) -> RelayedImage:
        """Fetch one image.

        Raises:
            DomainNotAllowedError: The URL, or a redirect it leads to, is not
                on the allow-list
            UpstreamFetchError: Upstream answered with a non-2xx status
                (``status_code`` set), could not be reached or missed the
                deadline (``status_code`` None)
        """
        self.gatekeeper.check(url)

        try:
            response = await asyncio.wait_for(self._get(url), self.timeout)
        except asyncio.TimeoutError as e:
            self.logger.error("image_fetch_timeout", url=url, timeout=self.timeout)
            raise UpstreamFetchError(url) from e
        except httpx.HTTPError as e:
            self.logger.error("image_fetch_network_error", url=url, error=str(e))
            raise UpstreamFetchError(url) from e

        if not response.is_success:
            self.logger.warning("image_fetch_failed", url=url, status_code=response.status_code)
            raise UpstreamFetchError(url, status_code=response.status_code)

        content_type = response.headers.get("content-type") or DEFAULT_CONTENT_TYPE
        self.logger.debug("image_relayed", url=url, bytes=len(response.content))
        return RelayedImage(content=response.content, content_type=content_type)
