"""Content extraction: turns a detail page into a :class:`PartialItem`.

The :class:`Extractor` runs every strategy over the same parsed document and
reduces their outputs with a :class:`FieldPrecedence` policy.  List pages
(a user's collection) are parsed separately by :func:`parse_list_page`.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Any, Iterable, List, Optional
from urllib.parse import urljoin

from bs4 import BeautifulSoup

from douban_sync.categories import Category, Domain
from douban_sync.scraper.fetcher import domain_for_url
from douban_sync.scraper.models import ListItem, ListPage, PartialItem
from douban_sync.scraper.strategies import (
    SOURCE_HTML,
    SOURCE_JSON_LD,
    SOURCE_META,
    ExtractionStrategy,
    PageContext,
    StrategyResult,
    default_strategies,
    normalize_date,
)

logger = logging.getLogger(__name__)

_SUBJECT_ID = re.compile(r"(\d{5,10})")
_DOCUMENTARY_MARKERS = ("纪录片", "documentary")
_EPISODE_FIELDS = ("episodeCount", "episodeDuration", "firstAirDate")


def extract_subject_id(url: str) -> str | None:
    """First run of 5-10 digits in *url*, e.g. ``1292052``."""
    match = _SUBJECT_ID.search(url or "")
    return match.group(1) if match else None


# ---------------------------------------------------------------------------
# Field precedence
# ---------------------------------------------------------------------------

class FieldGroup(str, Enum):
    IDENTITY = "identity"
    CONTENT = "content"
    USER = "user"


IDENTITY_FIELDS = frozenset({"subjectId", "title", "doubanUrl"})
USER_FIELDS = frozenset({"userRating", "userTags", "userComment", "userStatus", "readDate"})


def _default_groups() -> dict[FieldGroup, tuple[str, ...]]:
    return {
        FieldGroup.IDENTITY: (SOURCE_JSON_LD, SOURCE_HTML, SOURCE_META),
        FieldGroup.CONTENT: (SOURCE_JSON_LD, SOURCE_HTML, SOURCE_META),
        FieldGroup.USER: (SOURCE_HTML,),
    }


@dataclass(frozen=True)
class FieldPrecedence:
    """Ordered source preference per field group, with per-field overrides.

    A source missing from a field's order is never consulted for that field.
    """

    groups: dict[FieldGroup, tuple[str, ...]] = field(default_factory=_default_groups)
    overrides: dict[str, tuple[str, ...]] = field(default_factory=dict)

    @staticmethod
    def group_of(name: str) -> FieldGroup:
        if name in USER_FIELDS:
            return FieldGroup.USER
        if name in IDENTITY_FIELDS:
            return FieldGroup.IDENTITY
        return FieldGroup.CONTENT

    def order_for(self, name: str) -> tuple[str, ...]:
        if name in self.overrides:
            return self.overrides[name]
        return self.groups.get(self.group_of(name), ())

    def with_override(self, name: str, order: Iterable[str]) -> "FieldPrecedence":
        overrides = dict(self.overrides)
        overrides[name] = tuple(order)
        return replace(self, overrides=overrides)


def _has_value(value: Any) -> bool:
    if value is None:
        return False
    if isinstance(value, (str, list, tuple, dict)):
        return len(value) > 0
    return True


def merge_results(
    results: List[StrategyResult],
    precedence: FieldPrecedence | None = None,
) -> tuple[dict[str, Any], dict[str, str]]:
    """Reduce per-strategy outputs into a single field mapping.

    Returns:
        ``(fields, sources)`` where *sources* names the strategy that
        supplied each winning value.  Empty values never win.
    """
    precedence = precedence or FieldPrecedence()
    by_source = {result.source: result.fields for result in results}

    names: list[str] = []
    for result in results:
        for name in result.fields:
            if name not in names:
                names.append(name)

    fields: dict[str, Any] = {}
    sources: dict[str, str] = {}
    for name in names:
        for source in precedence.order_for(name):
            value = by_source.get(source, {}).get(name)
            if _has_value(value):
                fields[name] = value
                sources[name] = source
                break
    return fields, sources


# ---------------------------------------------------------------------------
# Category inference
# ---------------------------------------------------------------------------

def _genre_text(fields: dict[str, Any]) -> str:
    genres = fields.get("genres") or fields.get("genre") or ""
    if isinstance(genres, (list, tuple)):
        genres = " ".join(str(g) for g in genres)
    return str(genres).lower()


def has_episode_signals(fields: dict[str, Any]) -> bool:
    return any(_has_value(fields.get(name)) for name in _EPISODE_FIELDS)


def is_documentary_genre(fields: dict[str, Any]) -> bool:
    text = _genre_text(fields)
    return any(marker in text for marker in _DOCUMENTARY_MARKERS)


def infer_category(fields: dict[str, Any], url: str) -> Category | None:
    """Best-effort category from page signals; ``None`` when undecidable."""
    schema_type = str(fields.get("schemaType") or "").lower()
    if has_episode_signals(fields) or schema_type == "tvseries":
        return Category.TV
    if is_documentary_genre(fields):
        return Category.DOCUMENTARY
    domain = domain_for_url(url)
    if domain is Domain.BOOK or schema_type == "book" or _has_value(fields.get("authors")):
        return Category.BOOKS
    if domain is Domain.MOVIE or schema_type == "movie" or _has_value(fields.get("directors")):
        return Category.MOVIES
    return None


# ---------------------------------------------------------------------------
# Extractor
# ---------------------------------------------------------------------------

class Extractor:
    """Runs the strategy chain over a detail page.

    The Extractor never rejects an item: anything it cannot determine is
    reported in ``PartialItem.warnings``.
    """

    def __init__(
        self,
        strategies: Optional[List[ExtractionStrategy]] = None,
        precedence: FieldPrecedence | None = None,
    ) -> None:
        self.strategies = strategies if strategies is not None else default_strategies()
        self.precedence = precedence or FieldPrecedence()

    def extract(
        self,
        html: str,
        url: str,
        expected_category: Category | None = None,
    ) -> PartialItem:
        page = PageContext(url=url, html=html or "", soup=BeautifulSoup(html or "", "html.parser"))

        results: list[StrategyResult] = []
        for strategy in self.strategies:
            result = strategy.extract(page)
            if result is None or not result.fields:
                logger.debug("Strategy %s produced no fields for %s", strategy.name, url)
                continue
            results.append(result)

        fields, sources = merge_results(results, self.precedence)

        subject_id = extract_subject_id(url)
        if subject_id:
            fields["subjectId"] = subject_id
        fields["doubanUrl"] = url

        item = PartialItem(
            fields=fields,
            parsing_strategy=self._parsing_strategy(results, sources),
            sources=sources,
        )

        if not subject_id:
            item.warnings.append(f"Could not determine subject id from URL: {url}")
        if not _has_value(fields.get("title")):
            item.warnings.append("Title not found on page")

        item.category = expected_category or infer_category(fields, url)
        if item.category is None:
            item.warnings.append("Could not infer content category")

        logger.debug(
            "Extracted %d fields from %s using %s", len(fields), url, item.parsing_strategy
        )
        return item

    @staticmethod
    def _parsing_strategy(results: list[StrategyResult], sources: dict[str, str]) -> str:
        if not any(result.source == SOURCE_JSON_LD for result in results):
            return SOURCE_HTML
        if any(source != SOURCE_JSON_LD for source in sources.values()):
            return "mixed"
        return SOURCE_JSON_LD


# ---------------------------------------------------------------------------
# List pages
# ---------------------------------------------------------------------------

_LIST_CARD_SELECTORS = (".item-show", ".subject-item", ".grid-view .item")


def parse_list_page(html: str, page_size: int = 30, base_url: str = "") -> ListPage:
    """Parse one page of a user's collection list.

    Cards without a recognisable subject id are skipped.
    """
    soup = BeautifulSoup(html or "", "html.parser")

    cards = []
    for selector in _LIST_CARD_SELECTORS:
        cards = soup.select(selector)
        if cards:
            break

    items: list[ListItem] = []
    for card in cards:
        link = card.select_one("div.title > a") or card.select_one(".title a") or card.select_one("h2 a")
        if link is None or not link.get("href"):
            continue
        url = urljoin(base_url, link["href"]) if base_url else link["href"]
        subject_id = extract_subject_id(url)
        if not subject_id:
            continue
        date_el = card.select_one("div.date") or card.select_one("span.date")
        items.append(
            ListItem(
                id=subject_id,
                url=url,
                title=re.sub(r"\s+", " ", link.get_text()).strip(),
                mark_date=normalize_date(date_el.get_text()) if date_el else None,
            )
        )

    total = len(items)
    count_el = soup.select_one(".subject-num")
    if count_el is not None:
        match = re.search(r"/\s*(\d+)", count_el.get_text())
        if match:
            total = int(match.group(1))

    return ListPage(items=items, total=total, has_more=len(items) >= page_size)
