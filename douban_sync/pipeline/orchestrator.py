"""Single-item and batch scraping: Fetcher -> Extractor -> classifier -> Transformer.

Everything runs sequentially on one :class:`Fetcher`, so the adaptive delay
sees every request.  Per-item failures are recorded on the result; only an
unsupported category escapes.
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import List, Optional

from douban_sync import config
from douban_sync.categories import Category, Domain, domain_for_category, parse_category
from douban_sync.config import Settings
from douban_sync.errors import ScrapeError
from douban_sync.pipeline.classifier import check_required_fields, classify_media
from douban_sync.scraper.extractor import Extractor, parse_list_page
from douban_sync.scraper.fetcher import Fetcher, FetcherStats
from douban_sync.scraper.models import ListItem
from douban_sync.transform.engine import Transformer
from douban_sync.transform.records import CanonicalRecord

logger = logging.getLogger(__name__)

_STATUS_ALIASES = {
    "wish": "wish",
    "do": "do",
    "in-progress": "do",
    "in_progress": "do",
    "collect": "collect",
    "collected": "collect",
}


def normalize_list_status(status: str) -> str:
    """Map a list status (``wish``/``do``/``collect`` or an alias) to its URL segment."""
    key = (status or "").strip().lower()
    if key not in _STATUS_ALIASES:
        raise ValueError(f"Unsupported list status: {status!r}")
    return _STATUS_ALIASES[key]


def detail_url(item_id: str, domain: Domain) -> str:
    return f"https://{domain.host}/subject/{item_id}/"


def list_url(owner_id: str, status: str, start: int, domain: Domain) -> str:
    return (
        f"https://{domain.host}/people/{owner_id}/{status}"
        f"?start={start}&sort=time&rating=all&filter=all&mode=list"
    )


def _elapsed_ms(started: float) -> int:
    return int((time.monotonic() - started) * 1000)


# ---------------------------------------------------------------------------
# Result types
# ---------------------------------------------------------------------------

@dataclass
class ScrapeResult:
    item_id: str
    success: bool
    category: Optional[Category] = None
    record: Optional[CanonicalRecord] = None
    warnings: List[str] = field(default_factory=list)
    errors: List[str] = field(default_factory=list)
    parsing_strategy: Optional[str] = None
    classification: Optional[str] = None
    duration_ms: int = 0


@dataclass
class ItemFailure:
    id: str
    error: str


def _empty_buckets() -> dict[Category, list]:
    return {category: [] for category in Category}


@dataclass
class BatchResult:
    total: int = 0
    succeeded: int = 0
    failed: int = 0
    by_category: dict[Category, list] = field(default_factory=_empty_buckets)
    errors: List[ItemFailure] = field(default_factory=list)
    warnings: List[str] = field(default_factory=list)
    items: List[ListItem] = field(default_factory=list)
    started_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    finished_at: Optional[datetime] = None
    duration_ms: int = 0


# ---------------------------------------------------------------------------
# Orchestrator
# ---------------------------------------------------------------------------

class CatalogScraper:
    """Scrapes single subjects or a user's whole collection list.

    Args:
        fetcher: The long-lived :class:`Fetcher` that owns the request counter.
        extractor: Extraction chain; a default :class:`Extractor` if omitted.
        transformer: Canonicalization engine; a default one if omitted.
        settings: Page size and default batch limit.
    """

    def __init__(
        self,
        fetcher: Fetcher,
        extractor: Extractor | None = None,
        transformer: Transformer | None = None,
        settings: Settings | None = None,
    ) -> None:
        self.fetcher = fetcher
        self.extractor = extractor or Extractor()
        self.transformer = transformer or Transformer()
        self._settings = settings or config.settings

    # ------------------------------------------------------------------
    # Single item
    # ------------------------------------------------------------------
    def scrape_one(
        self,
        item_id: str,
        credential: str,
        expected_category: Category | str | None = None,
    ) -> ScrapeResult:
        """Fetch, extract, classify and transform one subject.

        Raises:
            UnsupportedCategoryError: *expected_category* is not a known category.
        """
        started = time.monotonic()
        expected = parse_category(expected_category) if expected_category is not None else None
        url = detail_url(item_id, domain_for_category(expected))

        try:
            page = self.fetcher.fetch(url, credential)
        except ScrapeError as exc:
            logger.warning("Failed to fetch %s: %s", item_id, exc)
            return ScrapeResult(
                item_id=item_id,
                success=False,
                category=expected,
                errors=[str(exc)],
                duration_ms=_elapsed_ms(started),
            )

        item = self.extractor.extract(page.html, page.url, expected)
        category = classify_media(item.fields, item.category, expected)
        initial = expected or item.category
        if initial is not None and initial is not category:
            classification = f"{initial.value} -> {category.value}"
        else:
            classification = category.value
        logger.debug("Classified %s as %s", item_id, classification)

        transformed = self.transformer.transform(item.fields, category)
        errors = check_required_fields(transformed.data, category)

        return ScrapeResult(
            item_id=item_id,
            success=not errors,
            category=category,
            record=transformed.data,
            warnings=item.warnings + transformed.warnings,
            errors=errors,
            parsing_strategy=item.parsing_strategy,
            classification=classification,
            duration_ms=_elapsed_ms(started),
        )

    # ------------------------------------------------------------------
    # Collection lists
    # ------------------------------------------------------------------
    def list_items(
        self,
        owner_id: str,
        credential: str,
        status: str = "collect",
        limit: int | None = None,
        domain: Domain = Domain.MOVIE,
        warnings: List[str] | None = None,
    ) -> List[ListItem]:
        """Page through *owner_id*'s list until *limit* items or an empty page.

        A failed list page stops pagination; the failure is appended to
        *warnings* when a list is given.
        """
        status = normalize_list_status(status)
        limit = self._settings.batch_limit if limit is None else limit
        page_size = self._settings.list_page_size
        items: list[ListItem] = []
        start = 0

        while len(items) < limit:
            url = list_url(owner_id, status, start, domain)
            try:
                page = self.fetcher.fetch(url, credential)
            except ScrapeError as exc:
                message = f"List page at offset {start} failed: {exc}"
                logger.warning(message)
                if warnings is not None:
                    warnings.append(message)
                break

            listing = parse_list_page(page.html, page_size=page_size, base_url=url)
            logger.debug("List page at offset %d: %d items", start, len(listing.items))
            if not listing.items:
                break
            items.extend(listing.items)
            start += page_size

        return items[:limit]

    def scrape_batch(
        self,
        owner_id: str,
        credential: str,
        status: str = "collect",
        limit: int = 100,
        continue_on_error: bool = True,
        include_details: bool = True,
        domain: Domain = Domain.MOVIE,
    ) -> BatchResult:
        """Scrape every item on *owner_id*'s list, in list order."""
        started = time.monotonic()
        result = BatchResult()
        logger.info("Starting batch for %s (%s, limit %d)", owner_id, status, limit)

        result.items = self.list_items(
            owner_id, credential, status=status, limit=limit, domain=domain,
            warnings=result.warnings,
        )
        result.total = len(result.items)

        if include_details:
            expected = Category.BOOKS if domain is Domain.BOOK else None
            for item in result.items:
                outcome = self.scrape_one(item.id, credential, expected)
                result.warnings.extend(f"{item.id}: {w}" for w in outcome.warnings)

                if outcome.success and outcome.category is not None:
                    if outcome.record.mark_date is None and item.mark_date:
                        outcome.record.mark_date = item.mark_date
                    result.by_category[outcome.category].append(outcome.record)
                    result.succeeded += 1
                    continue

                result.failed += 1
                result.errors.append(ItemFailure(id=item.id, error="; ".join(outcome.errors)))
                if not continue_on_error:
                    logger.warning("Stopping batch after failure on %s", item.id)
                    break

        result.finished_at = datetime.now(timezone.utc)
        result.duration_ms = _elapsed_ms(started)
        logger.info(
            "Batch finished: %d total, %d succeeded, %d failed",
            result.total,
            result.succeeded,
            result.failed,
        )
        return result

    def get_stats(self) -> FetcherStats:
        return self.fetcher.get_stats()
