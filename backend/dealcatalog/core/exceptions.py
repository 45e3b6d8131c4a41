"""Custom exception classes for the application."""

from typing import List, Optional


class DealCatalogException(Exception):
    """Base exception for all catalog errors."""

    def __init__(self, message: str = "An unexpected error occurred"):
        self.message = message
        super().__init__(self.message)


class BatchRejectedError(DealCatalogException):
    """Raised when a whole scrape batch file cannot be imported."""

    def __init__(self, store: str, message: str):
        self.store = store
        super().__init__(f"Batch rejected for {store}: {message}")


class RateLimitError(DealCatalogException):
    """Raised when a caller exceeds a request rate limit."""

    def __init__(self, key: str, retry_after: int):
        self.key = key
        self.retry_after = retry_after
        super().__init__(f"Rate limit exceeded for {key}")


class DomainNotAllowedError(DealCatalogException):
    """Raised when the image relay target is outside the allow-list."""

    def __init__(self, host: Optional[str]):
        self.host = host
        super().__init__(f"Domain not allowed: {host or '<invalid url>'}")


class UpstreamFetchError(DealCatalogException):
    """Raised when the image relay upstream fails.

    ``status_code`` is the upstream HTTP status, or None for network errors.
    """

    def __init__(self, url: str, status_code: Optional[int] = None):
        self.url = url
        self.status_code = status_code
        detail = f"status {status_code}" if status_code is not None else "network error"
        super().__init__(f"Failed to fetch {url}: {detail}")


class SubmissionValidationError(DealCatalogException):
    """Raised when a form submission fails validation.

    Carries every problem found so they can be reported together.
    """

    def __init__(self, errors: List[str]):
        self.errors = list(errors)
        super().__init__("; ".join(self.errors) or "Invalid submission")
