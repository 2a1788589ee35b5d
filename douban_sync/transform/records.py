"""Canonical record models, one per content category.

Attributes are snake_case; every field also carries its camelCase alias
(``subjectId``, ``myStatus``, ...), which is what downstream table clients
consume via ``record.model_dump(by_alias=True)``.
"""

from __future__ import annotations

from typing import Annotated, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from douban_sync.categories import Category


class _RecordBase(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        coerce_numbers_to_str=True,
    )

    subject_id: Optional[str] = None
    title: Optional[str] = None
    douban_url: Optional[str] = None
    original_title: Optional[str] = None
    genre: Optional[str] = None
    cover_image: Optional[str] = None
    douban_rating: Optional[float] = None
    summary: Optional[str] = None

    # Personal state of the account the pages were fetched with
    my_status: Optional[str] = None
    my_rating: Optional[int] = None
    my_tags: Optional[str] = None
    my_comment: Optional[str] = None
    mark_date: Optional[str] = None


class BookRecord(_RecordBase):
    category: Literal["books"] = "books"

    subtitle: Optional[str] = None
    author: Optional[str] = None
    translator: Optional[str] = None
    publisher: Optional[str] = None
    producer: Optional[str] = None
    publish_date: Optional[str] = None
    isbn: Optional[str] = None
    pages: Optional[int] = None
    price: Optional[str] = None
    binding: Optional[str] = None
    series: Optional[str] = None


class _MediaRecord(_RecordBase):
    director: Optional[str] = None
    writer: Optional[str] = None
    cast: Optional[str] = None
    country: Optional[str] = None
    language: Optional[str] = None
    release_date: Optional[str] = None
    duration: Optional[str] = None
    year: Optional[int] = None
    imdb_id: Optional[str] = None
    aka: Optional[str] = None


class MovieRecord(_MediaRecord):
    category: Literal["movies"] = "movies"


class TvRecord(_MediaRecord):
    category: Literal["tv"] = "tv"

    episode_count: Optional[int] = None
    episode_duration: Optional[str] = None
    first_air_date: Optional[str] = None


class DocumentaryRecord(_MediaRecord):
    category: Literal["documentary"] = "documentary"

    episode_count: Optional[int] = None
    episode_duration: Optional[str] = None


CanonicalRecord = Annotated[
    Union[BookRecord, MovieRecord, TvRecord, DocumentaryRecord],
    Field(discriminator="category"),
]

RECORD_MODELS: dict[Category, type[_RecordBase]] = {
    Category.BOOKS: BookRecord,
    Category.MOVIES: MovieRecord,
    Category.TV: TvRecord,
    Category.DOCUMENTARY: DocumentaryRecord,
}
