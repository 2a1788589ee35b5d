"""Content categories and source-site verticals."""

from __future__ import annotations

from enum import Enum

from douban_sync.errors import UnsupportedCategoryError


class Category(str, Enum):
    BOOKS = "books"
    MOVIES = "movies"
    TV = "tv"
    DOCUMENTARY = "documentary"

    @property
    def is_media(self) -> bool:
        return self is not Category.BOOKS


class Domain(str, Enum):
    """Sub-domain of the source site; selects the request header profile."""

    BOOK = "book"
    MOVIE = "movie"
    WWW = "www"

    @property
    def host(self) -> str:
        return f"{self.value}.douban.com"


# Loose spellings accepted for callers that pass plain strings.
_CATEGORY_ALIASES = {
    "book": Category.BOOKS,
    "movie": Category.MOVIES,
    "tv-series": Category.TV,
    "tv_series": Category.TV,
    "series": Category.TV,
    "documentaries": Category.DOCUMENTARY,
}


def parse_category(value: Category | str) -> Category:
    """Return the :class:`Category` for *value*.

    Raises:
        UnsupportedCategoryError: If *value* names no known category.
    """
    if isinstance(value, Category):
        return value
    if isinstance(value, str):
        key = value.strip().lower()
        try:
            return Category(key)
        except ValueError:
            if key in _CATEGORY_ALIASES:
                return _CATEGORY_ALIASES[key]
    raise UnsupportedCategoryError(value)


def domain_for_category(category: Category | None) -> Domain:
    """Books live on the book vertical; everything else on the movie one."""
    if category is Category.BOOKS:
        return Domain.BOOK
    return Domain.MOVIE
