"""Data models for the scraper pipeline."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, List, Optional

from douban_sync.categories import Category, Domain


@dataclass
class FetchRequest:
    """A single GET against the source site.  Never retained after the call."""

    url: str
    credential: str
    domain: Domain


@dataclass
class RawPage:
    """The raw HTTP response for a single URL fetch."""

    url: str
    html: str
    status_code: int
    fetched_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))


@dataclass
class PartialItem:
    """Loosely-typed extraction output for one detail page.

    ``fields`` maps camelCase canonical names to raw values.  ``sources``
    records which strategy supplied each winning value.
    """

    fields: dict[str, Any] = field(default_factory=dict)
    parsing_strategy: str = "html-selectors"
    warnings: List[str] = field(default_factory=list)
    category: Optional[Category] = None
    sources: dict[str, str] = field(default_factory=dict)

    @property
    def subject_id(self) -> Optional[str]:
        return self.fields.get("subjectId")

    @property
    def title(self) -> Optional[str]:
        return self.fields.get("title")


@dataclass
class ListItem:
    """One card on a user's collection list page."""

    id: str
    url: str
    title: str
    mark_date: Optional[str] = None


@dataclass
class ListPage:
    items: List[ListItem] = field(default_factory=list)
    total: int = 0
    has_more: bool = False
