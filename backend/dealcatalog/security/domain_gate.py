"""Host allow-list for the image relay."""

from typing import Iterable, List, Optional
from urllib.parse import urlsplit

import structlog

from dealcatalog.core.exceptions import DomainNotAllowedError

logger = structlog.get_logger(__name__)


# Image hosts of the tracked stores plus the CDNs they serve from
DEFAULT_ALLOWED_DOMAINS: List[str] = [
    "djaksport.com",
    "sportvision.rs",
    "planetasport.rs",
    "buzzsneakers.rs",
    "officeshoes.rs",
    "n-sport.net",
    "intersport.rs",
    "trefsport.rs",
    "cdn.shopify.com",
    "images.sportsdirect.com",
]


class DomainGatekeeper:
    """Accepts a URL only if its host equals, or is a subdomain of, an allowed domain.

    Entries may be written as ``example.rs`` or ``*.example.rs``; both allow
    the apex and every subdomain.
    """

    def __init__(self, allowed_domains: Iterable[str]):
        self.allowed_domains = [self._clean(d) for d in allowed_domains if self._clean(d)]

    @staticmethod
    def _clean(domain: str) -> str:
        domain = domain.strip().lower().rstrip(".")
        if domain.startswith("*."):
            domain = domain[2:]
        return domain

    @staticmethod
    def host_of(url: str) -> Optional[str]:
        """Hostname of an http(s) URL, or None when the URL is unusable."""
        try:
            parts = urlsplit(url)
            host = parts.hostname
        except ValueError:
            return None
        if parts.scheme not in ("http", "https") or not host:
            return None
        return host.rstrip(".")

    def is_allowed(self, url: str) -> bool:
        host = self.host_of(url)
        if host is None:
            return False
        return any(host == d or host.endswith(f".{d}") for d in self.allowed_domains)

    def check(self, url: str) -> str:
        """Return the URL's host, raising DomainNotAllowedError when it is not allowed."""
        if not self.is_allowed(url):
            host = self.host_of(url)
            logger.warning("image_domain_rejected", host=host)
            raise DomainNotAllowedError(host)
        return self.host_of(url)
