"""Extraction strategies for Douban detail pages.

Each strategy reads one kind of evidence from a page and returns a
:class:`StrategyResult`: a source tag plus a mapping of camelCase field names
to raw values.  Strategies never raise on odd markup; a strategy that finds
nothing returns ``None``.

Strategies (in default order):
  1. :class:`StructuredDataStrategy` — the embedded JSON-LD block.
  2. :class:`HtmlSelectorStrategy` — labelled ``#info`` rows, rating and
     summary widgets and the logged-in user's personal state.
  3. :class:`MetaTagStrategy` — Open Graph tags, a last-resort gap filler.
"""

from __future__ import annotations

import json
import logging
import re
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any

import trafilatura
from bs4 import BeautifulSoup, Tag

logger = logging.getLogger(__name__)

SOURCE_JSON_LD = "json-ld"
SOURCE_HTML = "html-selectors"
SOURCE_META = "meta-tags"

_TITLE_SUFFIX = re.compile(r"\s*\(豆瓣\)\s*$")
_ISO_DURATION = re.compile(r"^P(?:T(?:(\d+)H)?(?:(\d+)M)?(?:(\d+)S)?)$", re.IGNORECASE)
_DATE = re.compile(r"(\d{4})-(\d{1,2})-(\d{1,2})")


@dataclass
class PageContext:
    url: str
    html: str
    soup: BeautifulSoup


@dataclass
class StrategyResult:
    source: str
    fields: dict[str, Any] = field(default_factory=dict)


class ExtractionStrategy(ABC):
    """Abstract base class for a single extraction strategy."""

    @property
    @abstractmethod
    def name(self) -> str:
        """Source tag attached to every value this strategy produces."""

    @abstractmethod
    def extract(self, page: PageContext) -> StrategyResult | None:
        """Return the fields found on *page*, or ``None`` if there are none."""


# ---------------------------------------------------------------------------
# Shared helpers
# ---------------------------------------------------------------------------

def _clean_text(text: str | None) -> str:
    return re.sub(r"\s+", " ", text or "").strip()


def _clean_title(text: str | None) -> str:
    return _TITLE_SUFFIX.sub("", _clean_text(text))


def _split_names(text: str) -> list[str]:
    return [part.strip() for part in text.split("/") if part.strip()]


def _to_float(value: Any) -> float | None:
    try:
        return float(value)
    except (TypeError, ValueError):
        return None


def _to_int(value: Any) -> int | None:
    match = re.search(r"\d+", str(value)) if value is not None else None
    return int(match.group(0)) if match else None


def normalize_date(text: str | None) -> str | None:
    """Return the first ``Y-M-D`` date in *text* as zero-padded ``YYYY-MM-DD``."""
    match = _DATE.search(text or "")
    if not match:
        return None
    year, month, day = match.groups()
    return f"{year}-{int(month):02d}-{int(day):02d}"


def iso_duration_to_minutes(value: str) -> str | None:
    """``PT2H22M`` -> ``142分钟``.  Returns ``None`` for anything else."""
    match = _ISO_DURATION.match(value.strip())
    if not match or not any(match.groups()):
        return None
    hours, minutes, seconds = (int(g) if g else 0 for g in match.groups())
    total = hours * 60 + minutes + round(seconds / 60)
    return f"{total}分钟" if total else None


# ---------------------------------------------------------------------------
# 1. JSON-LD structured data
# ---------------------------------------------------------------------------

def parse_structured_data(soup: BeautifulSoup) -> dict[str, Any] | None:
    """Parse the first ``application/ld+json`` block.

    Malformed or non-object blocks are treated as absent.  Douban embeds raw
    newlines inside string values, so the decoder runs with ``strict=False``.
    """
    script = soup.find("script", attrs={"type": "application/ld+json"})
    if script is None:
        return None
    content = script.string or script.get_text()
    if not content or not content.strip():
        return None
    try:
        data = json.loads(content, strict=False)
    except ValueError as exc:
        logger.warning("Failed to parse structured data: %s", exc)
        return None
    if not isinstance(data, dict):
        return None
    logger.debug("Structured data parsed successfully")
    return data


def _person_names(value: Any) -> list[str]:
    if value is None:
        return []
    if not isinstance(value, list):
        value = [value]
    names: list[str] = []
    for person in value:
        name = person.get("name") if isinstance(person, dict) else person
        if isinstance(name, str) and name.strip():
            names.append(name.strip())
    return names


class StructuredDataStrategy(ExtractionStrategy):
    """schema.org metadata from the page's JSON-LD block."""

    @property
    def name(self) -> str:
        return SOURCE_JSON_LD

    def extract(self, page: PageContext) -> StrategyResult | None:
        data = parse_structured_data(page.soup)
        if data is None:
            return None

        fields: dict[str, Any] = {}
        schema_type = str(data.get("@type") or "")
        if schema_type:
            fields["schemaType"] = schema_type

        if data.get("name"):
            fields["title"] = _clean_text(str(data["name"]))
        if data.get("alternateName"):
            fields["originalTitle"] = _clean_text(str(data["alternateName"]))

        rating = data.get("aggregateRating")
        if isinstance(rating, dict):
            average = _to_float(rating.get("ratingValue"))
            if average is not None:
                fields["rating"] = {
                    "average": average,
                    "numRaters": _to_int(rating.get("ratingCount")) or 0,
                }

        genre = data.get("genre")
        if isinstance(genre, str) and genre.strip():
            fields["genres"] = [genre.strip()]
        elif isinstance(genre, list):
            fields["genres"] = [g.strip() for g in genre if isinstance(g, str) and g.strip()]

        if isinstance(data.get("description"), str) and data["description"].strip():
            fields["summary"] = data["description"].strip()

        image = data.get("image")
        if isinstance(image, list):
            image = image[0] if image else None
        if isinstance(image, str) and image.strip():
            fields["coverUrl"] = image.strip()

        is_book = schema_type.lower() == "book"
        authors = _person_names(data.get("author"))
        if authors:
            fields["authors" if is_book else "writers"] = authors
        directors = _person_names(data.get("director"))
        if directors:
            fields["directors"] = directors
        actors = _person_names(data.get("actor"))
        if actors:
            fields["cast"] = actors

        if data.get("isbn"):
            fields["isbn"] = str(data["isbn"]).strip()

        published = data.get("datePublished")
        if isinstance(published, str) and published.strip():
            key = "firstAirDate" if schema_type.lower() == "tvseries" else "releaseDate"
            if is_book:
                key = "publishDate"
            fields[key] = published.strip()

        duration = data.get("duration")
        if isinstance(duration, str) and duration.strip():
            fields["duration"] = iso_duration_to_minutes(duration) or duration.strip()

        return StrategyResult(source=self.name, fields=fields)


# ---------------------------------------------------------------------------
# 2. DOM selectors
# ---------------------------------------------------------------------------

# Label text (without the trailing colon) -> (field name, value kind)
_INFO_LABELS: dict[str, tuple[str, str]] = {
    "导演": ("directors", "list"),
    "编剧": ("writers", "list"),
    "主演": ("cast", "list"),
    "类型": ("genres", "list"),
    "制片国家/地区": ("countries", "list"),
    "语言": ("languages", "list"),
    "上映日期": ("releaseDate", "text"),
    "首播": ("firstAirDate", "text"),
    "片长": ("duration", "text"),
    "单集片长": ("episodeDuration", "text"),
    "集数": ("episodeCount", "int"),
    "又名": ("aka", "list"),
    "IMDb": ("imdbId", "text"),
    "作者": ("authors", "list"),
    "译者": ("translators", "list"),
    "出版社": ("publisher", "text"),
    "出品方": ("producer", "text"),
    "副标题": ("subtitle", "text"),
    "原作名": ("originalTitle", "text"),
    "出版年": ("publishDate", "text"),
    "页数": ("pages", "int"),
    "定价": ("price", "text"),
    "装帧": ("binding", "text"),
    "丛书": ("series", "text"),
    "ISBN": ("isbn", "text"),
    # English-locale page labels
    "Director": ("directors", "list"),
    "Writer": ("writers", "list"),
    "Cast": ("cast", "list"),
    "Genre": ("genres", "list"),
    "Country": ("countries", "list"),
    "Language": ("languages", "list"),
    "Release date": ("releaseDate", "text"),
    "Runtime": ("duration", "text"),
    "Episodes": ("episodeCount", "int"),
    "Episode runtime": ("episodeDuration", "text"),
    "AKA": ("aka", "list"),
}

# Matched as substrings of e.g. "我看过这部电影"
_STATUS_LABELS = ("想读", "在读", "读过", "想看", "在看", "看过")

_BR = re.compile(r"<br\s*/?>", re.IGNORECASE)


def parse_info_section(soup: BeautifulSoup) -> dict[str, Any]:
    """Parse the labelled rows of ``#info`` into canonical fields.

    Rows are separated by ``<br>``; each row reads ``label: value``.
    """
    info = soup.find(id="info")
    if not isinstance(info, Tag):
        return {}

    fields: dict[str, Any] = {}
    for chunk in _BR.split(info.decode_contents()):
        line = _clean_text(BeautifulSoup(chunk, "html.parser").get_text())
        label, sep, value = line.partition(":")
        if not sep:
            label, sep, value = line.partition("：")
        label, value = label.strip(), value.strip()
        if not sep or not value or label not in _INFO_LABELS:
            continue
        name, kind = _INFO_LABELS[label]
        if name in fields:
            continue
        if kind == "list":
            fields[name] = _split_names(value)
        elif kind == "int":
            number = _to_int(value)
            if number is not None:
                fields[name] = number
        else:
            fields[name] = value
    return fields


def parse_user_state(soup: BeautifulSoup) -> dict[str, Any]:
    """Personal state of the logged-in user: rating, tags, status, date, comment."""
    state: dict[str, Any] = {}

    rating_input = soup.select_one("input#n_rating")
    if rating_input is not None:
        rating = _to_int(rating_input.get("value"))
        if rating:
            state["userRating"] = rating
    if "userRating" not in state:
        star = soup.select_one('div.date span[class*="rating"][class$="-t"]')
        if star is not None:
            match = re.search(r"rating(\d+)-t", " ".join(star.get("class", [])))
            if match and 1 <= int(match.group(1)) <= 5:
                state["userRating"] = int(match.group(1))

    section = soup.find(id="interest_sect_level")
    if not isinstance(section, Tag):
        return state

    for span in section.find_all("span"):
        text = _clean_text(span.get_text())
        if text.startswith("标签:") or text.startswith("标签："):
            tags = text[3:].split()
            if tags:
                state["userTags"] = tags
            break

    status_el = section.select_one("span.mr10")
    if status_el is not None:
        status_text = _clean_text(status_el.get_text())
        for label in _STATUS_LABELS:
            if label in status_text:
                state["userStatus"] = label
                break
        date_el = status_el.find_next_sibling("span")
        if date_el is not None:
            mark_date = normalize_date(date_el.get_text())
            if mark_date:
                state["readDate"] = mark_date

    comment = _parse_user_comment(section)
    if comment:
        state["userComment"] = comment
    return state


def _parse_user_comment(section: Tag) -> str | None:
    container = section.find("div") or section
    candidates = []
    for span in container.find_all("span", recursive=False):
        classes = span.get("class") or []
        if span.get("id") or "mr10" in classes or "color_gray" in classes:
            continue
        text = _clean_text(span.get_text())
        if text and not text.startswith("标签"):
            candidates.append(text)
    return candidates[-1] if candidates else None


class HtmlSelectorStrategy(ExtractionStrategy):
    """Fixed DOM selectors over the rendered detail page."""

    @property
    def name(self) -> str:
        return SOURCE_HTML

    def extract(self, page: PageContext) -> StrategyResult | None:
        soup = page.soup
        fields: dict[str, Any] = {}

        title_el = soup.select_one('span[property="v:itemreviewed"]') or soup.select_one("h1 span")
        if title_el is None and soup.title is not None:
            title_el = soup.title
        if title_el is not None and _clean_title(title_el.get_text()):
            fields["title"] = _clean_title(title_el.get_text())

        year_el = soup.select_one("h1 span.year")
        if year_el is not None and _to_int(year_el.get_text()):
            fields["year"] = _to_int(year_el.get_text())

        average_el = soup.select_one('strong[property="v:average"]')
        average = _to_float(average_el.get_text()) if average_el is not None else None
        if average is not None:
            votes_el = soup.select_one('span[property="v:votes"]')
            fields["rating"] = {
                "average": average,
                "numRaters": _to_int(votes_el.get_text()) or 0 if votes_el else 0,
            }

        summary_el = soup.select_one('span[property="v:summary"]')
        if summary_el is not None:
            summary = "\n".join(
                line.strip() for line in summary_el.get_text().splitlines() if line.strip()
            )
        else:
            summary = "\n".join(_clean_text(p.get_text()) for p in soup.select(".intro p"))
        if summary.strip():
            fields["summary"] = summary.strip()

        cover_el = soup.select_one("#mainpic img")
        if cover_el is not None and cover_el.get("src"):
            fields["coverUrl"] = cover_el["src"]

        fields.update(parse_info_section(soup))
        info = soup.find(id="info")
        if isinstance(info, Tag):
            fields["html"] = str(info)

        fields.update(parse_user_state(soup))

        if not fields:
            return None
        return StrategyResult(source=self.name, fields=fields)


# ---------------------------------------------------------------------------
# 3. Meta tags
# ---------------------------------------------------------------------------

class MetaTagStrategy(ExtractionStrategy):
    """Open Graph title/description/image.

    Uses trafilatura's metadata extractor and falls back to reading the
    ``og:*`` tags directly.
    """

    @property
    def name(self) -> str:
        return SOURCE_META

    def extract(self, page: PageContext) -> StrategyResult | None:
        fields: dict[str, Any] = {}
        metadata = trafilatura.extract_metadata(page.html, default_url=page.url)
        if metadata is not None:
            if getattr(metadata, "title", None):
                fields["title"] = _clean_title(metadata.title)
            if getattr(metadata, "description", None):
                fields["summary"] = metadata.description.strip()
            if getattr(metadata, "image", None):
                fields["coverUrl"] = metadata.image

        for prop, name in (("og:title", "title"), ("og:description", "summary"), ("og:image", "coverUrl")):
            if name in fields:
                continue
            tag = page.soup.find("meta", attrs={"property": prop})
            content = tag.get("content") if tag is not None else None
            if content and content.strip():
                fields[name] = _clean_title(content) if name == "title" else content.strip()

        fields = {k: v for k, v in fields.items() if v}
        if not fields:
            return None
        return StrategyResult(source=self.name, fields=fields)


def default_strategies() -> list[ExtractionStrategy]:
    return [StructuredDataStrategy(), HtmlSelectorStrategy(), MetaTagStrategy()]
