"""Per-category field mapping tables.

Each :class:`FieldSpec` names one output field (by its camelCase alias) and
the input keys it may be read from, in order.  A source may be a dotted path
into nested mappings, e.g. ``rating.average``.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Mapping

from douban_sync.categories import Category

# Field kinds.  TEXT values are display strings (lists are joined); SELECT,
# RATING and DATE are checked by the strict validators.
TEXT = "text"
INT = "int"
FLOAT = "float"
SELECT = "select"
RATING = "rating"
DATE = "date"

LIST_SEPARATOR = " / "


@dataclass(frozen=True)
class FieldSpec:
    name: str
    sources: tuple[str, ...]
    kind: str = TEXT
    required: bool = False


def resolve_path(data: Any, path: str) -> Any:
    """Follow a dotted *path* through nested mappings; ``None`` if it breaks."""
    current = data
    for part in path.split("."):
        if not isinstance(current, Mapping):
            return None
        current = current.get(part)
        if current is None:
            return None
    return current


def join_list(values: list | tuple) -> str:
    """Join list elements for display; ``None`` elements are skipped."""
    return LIST_SEPARATOR.join(str(v).strip() for v in values if v is not None and str(v).strip())


# ---------------------------------------------------------------------------
# Tables
# ---------------------------------------------------------------------------

_COMMON: tuple[FieldSpec, ...] = (
    FieldSpec("subjectId", ("subjectId", "id"), required=True),
    FieldSpec("title", ("title", "name"), required=True),
    FieldSpec("doubanUrl", ("doubanUrl", "url")),
    FieldSpec("originalTitle", ("originalTitle",)),
    FieldSpec("genre", ("genre", "genres")),
    FieldSpec("coverImage", ("coverImage", "coverUrl", "image")),
    FieldSpec("doubanRating", ("doubanRating", "rating.average"), FLOAT),
    FieldSpec("summary", ("summary", "description")),
    FieldSpec("myStatus", ("myStatus", "userStatus"), SELECT),
    FieldSpec("myRating", ("myRating", "userRating"), RATING),
    FieldSpec("myTags", ("myTags", "userTags")),
    FieldSpec("myComment", ("myComment", "userComment")),
    FieldSpec("markDate", ("markDate", "readDate"), DATE),
)

_MEDIA: tuple[FieldSpec, ...] = _COMMON + (
    FieldSpec("director", ("director", "directors")),
    FieldSpec("writer", ("writer", "writers")),
    FieldSpec("cast", ("cast", "actors")),
    FieldSpec("country", ("country", "countries")),
    FieldSpec("language", ("language", "languages")),
    FieldSpec("releaseDate", ("releaseDate", "datePublished")),
    FieldSpec("duration", ("duration", "runtime")),
    FieldSpec("year", ("year",), INT),
    FieldSpec("imdbId", ("imdbId", "imdb")),
    FieldSpec("aka", ("aka",)),
)

_EPISODES: tuple[FieldSpec, ...] = (
    FieldSpec("episodeCount", ("episodeCount", "episodes"), INT),
    FieldSpec("episodeDuration", ("episodeDuration",)),
)

_BOOKS: tuple[FieldSpec, ...] = _COMMON + (
    FieldSpec("subtitle", ("subtitle",)),
    FieldSpec("author", ("author", "authors")),
    FieldSpec("translator", ("translator", "translators")),
    FieldSpec("publisher", ("publisher",)),
    FieldSpec("producer", ("producer",)),
    FieldSpec("publishDate", ("publishDate", "pubdate")),
    FieldSpec("isbn", ("isbn",)),
    FieldSpec("pages", ("pages",), INT),
    FieldSpec("price", ("price",)),
    FieldSpec("binding", ("binding",)),
    FieldSpec("series", ("series",)),
)

MAPPINGS: dict[Category, tuple[FieldSpec, ...]] = {
    Category.BOOKS: _BOOKS,
    Category.MOVIES: _MEDIA,
    Category.TV: _MEDIA + _EPISODES + (FieldSpec("firstAirDate", ("firstAirDate",)),),
    Category.DOCUMENTARY: _MEDIA + _EPISODES,
}
