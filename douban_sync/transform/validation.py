"""Strict validators for enumerated, rating and date fields.

Each validator returns the accepted (possibly normalised) value, or ``None``
after appending a warning to *warnings*.  Validators never raise.
"""

from __future__ import annotations

import logging
import re
from datetime import datetime
from typing import Any, List

from douban_sync.categories import Category

logger = logging.getLogger(__name__)

BOOK_STATUSES = ("想读", "在读", "读过")
MEDIA_STATUSES = ("想看", "在看", "看过")

# Alias -> index into the category's status tuple (wish, do, collect)
_SHARED_ALIASES = {
    "wish": 0,
    "do": 1,
    "in-progress": 1,
    "in_progress": 1,
    "collect": 2,
    "collected": 2,
}

_BOOK_ALIASES = {
    **_SHARED_ALIASES,
    "want to read": 0,
    "reading": 1,
    "read": 2,
    "想讀": 0,
    "在讀": 1,
    "讀過": 2,
}

_MEDIA_ALIASES = {
    **_SHARED_ALIASES,
    "want to watch": 0,
    "watching": 1,
    "watched": 2,
    "看過": 2,
}

_DATE_RE = re.compile(r"^\d{4}-\d{2}-\d{2}$")


def status_vocabulary(category: Category) -> tuple[str, ...]:
    return BOOK_STATUSES if category is Category.BOOKS else MEDIA_STATUSES


def validate_select_field(
    value: Any,
    field: str,
    category: Category,
    warnings: List[str],
) -> str | None:
    """Normalise a status to the category's display label.

    Display labels pass through unchanged, so the function is idempotent.
    """
    if value is None or (isinstance(value, str) and not value.strip()):
        return None

    vocabulary = status_vocabulary(category)
    if isinstance(value, str):
        key = value.strip()
        if key in vocabulary:
            return key
        aliases = _BOOK_ALIASES if category is Category.BOOKS else _MEDIA_ALIASES
        index = aliases.get(key.lower())
        if index is not None:
            return vocabulary[index]

    message = (
        f"Field {field}: invalid value {value!r} for {category.value} "
        f"(expected one of {', '.join(vocabulary)})"
    )
    logger.warning(message)
    warnings.append(message)
    return None


def validate_rating_field(value: Any, warnings: List[str], field: str = "myRating") -> int | None:
    """Accept an integer rating in [1, 5]."""
    if value is None or (isinstance(value, str) and not value.strip()):
        return None

    rating: int | None = None
    if isinstance(value, bool):
        rating = None
    elif isinstance(value, int):
        rating = value
    elif isinstance(value, float) and value.is_integer():
        rating = int(value)
    elif isinstance(value, str) and value.strip().isdigit():
        rating = int(value.strip())

    if rating is not None and 1 <= rating <= 5:
        return rating

    message = f"Field {field}: invalid rating {value!r} (expected integer 1-5)"
    logger.warning(message)
    warnings.append(message)
    return None


def validate_datetime_field(value: Any, warnings: List[str], field: str = "markDate") -> str | None:
    """Accept a calendar-valid ``YYYY-MM-DD`` string."""
    if value is None or (isinstance(value, str) and not value.strip()):
        return None

    if isinstance(value, str) and _DATE_RE.match(value.strip()):
        try:
            datetime.strptime(value.strip(), "%Y-%m-%d")
        except ValueError:
            pass
        else:
            return value.strip()

    message = f"Field {field}: invalid date {value!r} (expected YYYY-MM-DD)"
    logger.warning(message)
    warnings.append(message)
    return None
