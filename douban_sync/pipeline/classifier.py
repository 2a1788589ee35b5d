"""Category classification and per-category required-field checks."""

from __future__ import annotations

import logging
from typing import Any, List

from douban_sync.categories import Category
from douban_sync.scraper.extractor import has_episode_signals, is_documentary_genre

logger = logging.getLogger(__name__)

_REQUIRED_COMMON = (("subject_id", "subject id"), ("title", "title"), ("douban_url", "Douban URL"))
_REQUIRED_BY_CATEGORY = {
    Category.BOOKS: (("author", "author"),),
    Category.MOVIES: (("director", "director"),),
    Category.TV: (("director", "director"),),
    Category.DOCUMENTARY: (("director", "director"),),
}


def classify_media(
    fields: dict[str, Any],
    inferred: Category | None = None,
    expected: Category | None = None,
) -> Category:
    """Resolve the final category of an extracted item.

    Episode fields force ``tv`` even when the genres say documentary.  Books
    are never reclassified.
    """
    if Category.BOOKS in (inferred, expected):
        return Category.BOOKS
    if has_episode_signals(fields):
        return Category.TV
    if is_documentary_genre(fields):
        return Category.DOCUMENTARY
    if expected in (Category.DOCUMENTARY, Category.TV):
        return expected
    return Category.MOVIES


def check_required_fields(record: Any, category: Category) -> List[str]:
    """Return one error per required field that is empty on *record*."""
    errors = []
    for attr, label in _REQUIRED_COMMON + _REQUIRED_BY_CATEGORY.get(category, ()):
        value = getattr(record, attr, None)
        if value is None or (isinstance(value, str) and not value.strip()):
            errors.append(f"Missing required field for {category.value}: {label}")
    return errors
