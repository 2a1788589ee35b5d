"""Error taxonomy for the scrape pipeline.

Fetch-time failures derive from :class:`ScrapeError`; the orchestrator
catches them at the item boundary and records them as failures.
:class:`UnsupportedCategoryError` is a programming/configuration error and
is never caught inside the pipeline.

Non-fatal validation problems are not exceptions at all: they are plain
strings accumulated in the ``warnings`` list of each result.
"""

from __future__ import annotations


class ScrapeError(Exception):
    """Base class for failures while fetching a page from the source site."""

    def __init__(self, message: str, url: str | None = None) -> None:
        super().__init__(message)
        self.url = url


class NetworkError(ScrapeError):
    """Transport failure or unexpected HTTP status.  Retried by the Fetcher."""

    def __init__(
        self,
        message: str,
        url: str | None = None,
        status_code: int | None = None,
    ) -> None:
        super().__init__(message, url)
        self.status_code = status_code


class BlockedError(ScrapeError):
    """The response body shows a bot-verification or access-denied page."""

    def __init__(self, message: str, url: str | None = None, reason: str = "") -> None:
        super().__init__(message, url)
        self.reason = reason


class ForbiddenError(ScrapeError):
    """HTTP 403, usually an IP-level block."""


class UnsupportedCategoryError(ValueError):
    """Raised for a content category the pipeline has no mapping for."""

    def __init__(self, category: object) -> None:
        super().__init__(f"Unsupported category: {category!r}")
        self.category = category
