"""Repair rules for scraped text.

Every rule is a pure function returning a :class:`RepairOutcome`.  A rule
that finds nothing to do returns ``repaired=False`` and hands back its input
unchanged; rules never invent values.

The engine reads :data:`REPAIR_RULES`, a dispatch table of
category -> ``(RepairRule, ...)``.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Any, Callable, NamedTuple, Optional

from bs4 import BeautifulSoup

from douban_sync.categories import Category

SEPARATOR = " / "

# Labels that can appear in an ``#info`` block.  A captured run is cut at the
# first of these, since the source markup has no field-ending delimiter.
KNOWN_LABELS = (
    "导演", "编剧", "主演", "类型", "制片国家/地区", "语言", "上映日期", "首播",
    "片长", "单集片长", "集数", "季数", "又名", "IMDb", "官方网站",
    "作者", "译者", "出版社", "出品方", "副标题", "原作名", "出版年", "页数",
    "定价", "装帧", "丛书", "ISBN",
    "Director", "Writer", "Cast", "Genre", "Country", "Language",
    "Release date", "Runtime", "Episodes", "Episode runtime", "AKA",
)

_LABEL_BOUNDARY = re.compile(
    "|".join(
        rf"{re.escape(label)}\s*[:：]"
        for label in sorted(KNOWN_LABELS, key=len, reverse=True)
    ),
    re.IGNORECASE,
)
_BR = re.compile(r"<br\s*/?>", re.IGNORECASE)


class RepairOutcome(NamedTuple):
    value: Any
    repaired: bool


def _unchanged(value: Any) -> RepairOutcome:
    return RepairOutcome(value, False)


def fragment_text(html: str) -> str:
    """Plain text of an HTML fragment, one ``<br>``-separated row per line."""
    if "<" not in html:
        return html
    soup = BeautifulSoup(_BR.sub("\n", html), "html.parser")
    return soup.get_text()


def _split_variants(text: str) -> list[str]:
    seen: list[str] = []
    for part in text.split("/"):
        part = re.sub(r"\s+", " ", part).strip()
        if part and part not in seen:
            seen.append(part)
    return seen


def _segment_count(value: Any) -> int:
    if not isinstance(value, str) or not value.strip():
        return 0
    return len(_split_variants(value))


# ---------------------------------------------------------------------------
# Labelled runs
# ---------------------------------------------------------------------------

def truncate_at_labels(text: str) -> str:
    """Cut *text* at the first known ``label:`` it contains."""
    match = _LABEL_BOUNDARY.search(text)
    return text[: match.start()] if match else text


def _label_pattern(label: str) -> re.Pattern[str]:
    # "片长" must not match inside "单集片长", nor "Runtime" inside "Episode runtime"
    guards = "".join(
        rf"(?<!{re.escape(longer[: -len(label)])})"
        for longer in KNOWN_LABELS
        if len(longer) > len(label) and longer.lower().endswith(label.lower())
    )
    return re.compile(rf"{guards}{re.escape(label)}\s*[:：]\s*([^\n]*)", re.IGNORECASE)


def extract_labelled_run(html: str, labels: tuple[str, ...]) -> RepairOutcome:
    """Text following the first of *labels* in *html*, up to the row end.

    The run is also cut at any other known label captured with it.
    """
    if not html:
        return _unchanged(None)
    text = fragment_text(html)
    for label in labels:
        match = _label_pattern(label).search(text)
        if not match:
            continue
        run = truncate_at_labels(match.group(1)).strip()
        if run:
            return RepairOutcome(run, True)
    return _unchanged(None)


def clean_labelled_list(text: str) -> RepairOutcome:
    """Split a ``/``-separated run, drop captured labels, re-join with `` / ``."""
    if not isinstance(text, str) or not text.strip():
        return _unchanged(text)
    cleaned = SEPARATOR.join(_split_variants(truncate_at_labels(text)))
    return RepairOutcome(cleaned, cleaned != text)


# ---------------------------------------------------------------------------
# Duration / release dates
# ---------------------------------------------------------------------------

_RUNTIME_SPAN = re.compile(
    r"<span[^>]*property=[\"']v:runtime[\"'][^>]*>([^<]*)</span>", re.IGNORECASE
)
_RELEASE_SPAN = re.compile(
    r"<span[^>]*property=[\"']v:initialReleaseDate[\"'][^>]*>([^<]*)</span>",
    re.IGNORECASE,
)


def _join_variants(run: str) -> str:
    return SEPARATOR.join(_split_variants(run))


def extract_duration(html: str) -> RepairOutcome:
    """Every runtime variant in *html*, qualifiers kept.

    ``142分钟 / 120分03秒(导演剪辑版)`` stays two variants.
    """
    run = extract_labelled_run(html, ("片长", "Runtime"))
    if run.repaired:
        return RepairOutcome(_join_variants(run.value), True)
    spans = [s.strip() for s in _RUNTIME_SPAN.findall(html or "") if s.strip()]
    if spans:
        return RepairOutcome(_join_variants("/".join(spans)), True)
    return _unchanged(None)


def extract_episode_duration(html: str) -> RepairOutcome:
    run = extract_labelled_run(html, ("单集片长", "Episode runtime"))
    if run.repaired:
        return RepairOutcome(_join_variants(run.value), True)
    return run


def extract_release_dates(html: str) -> RepairOutcome:
    """Every dated release marker, region labels verbatim."""
    spans = [s.strip() for s in _RELEASE_SPAN.findall(html or "") if s.strip()]
    if spans:
        return RepairOutcome(_join_variants("/".join(spans)), True)
    run = extract_labelled_run(html, ("上映日期", "首播", "Release date"))
    if run.repaired:
        return RepairOutcome(_join_variants(run.value), True)
    return run


def extract_countries(html: str) -> RepairOutcome:
    run = extract_labelled_run(html, ("制片国家/地区", "Country"))
    return clean_labelled_list(run.value) if run.repaired else run


def extract_languages(html: str) -> RepairOutcome:
    run = extract_labelled_run(html, ("语言", "Language"))
    return clean_labelled_list(run.value) if run.repaired else run


def _found(outcome: RepairOutcome) -> RepairOutcome:
    # A labelled run that needed no cleanup is still a successful extraction.
    return RepairOutcome(outcome.value, outcome.value is not None)


# ---------------------------------------------------------------------------
# Book fields
# ---------------------------------------------------------------------------

_DATE_PATTERNS = (
    (re.compile(r"(?<!\d)(\d{4})\s*年\s*(\d{1,2})\s*月\s*(\d{1,2})\s*日"), 3),
    (re.compile(r"(?<!\d)(\d{4})\s*年\s*(\d{1,2})\s*月"), 2),
    (re.compile(r"(?<!\d)(\d{4})[-/.](\d{1,2})[-/.](\d{1,2})(?!\d)"), 3),
    (re.compile(r"(?<!\d)(\d{4})[-/.](\d{1,2})(?!\d)"), 2),
    # A bare year only when nothing else is in the value
    (re.compile(r"^\s*(\d{4})\s*年?\s*$"), 1),
)


def normalize_publish_date(text: Any) -> RepairOutcome:
    """``2011年6月1日`` -> ``2011-06-01``; ``2011-6`` -> ``2011-06``."""
    if not isinstance(text, str) or not text.strip():
        return _unchanged(text)
    for pattern, parts in _DATE_PATTERNS:
        match = pattern.search(text)
        if not match:
            continue
        year = match.group(1)
        pieces = [year] + [f"{int(match.group(i)):02d}" for i in range(2, parts + 1)]
        value = "-".join(pieces)
        return RepairOutcome(value, value != text)
    return _unchanged(text)


def clean_isbn(text: Any) -> RepairOutcome:
    """Leading 10-13 digit run (hyphens ignored, ISBN-10 check digit ``X`` kept)."""
    if not isinstance(text, str) or not text.strip():
        return _unchanged(text)
    match = re.search(r"\d{13}|\d{9}[\dXx]", text.replace("-", ""))
    if not match:
        return _unchanged(text)
    value = match.group(0).upper()
    return RepairOutcome(value, value != text)


def clean_publisher(text: Any) -> RepairOutcome:
    """Drop ``; place`` suffixes and tidy separators."""
    if not isinstance(text, str) or not text.strip():
        return _unchanged(text)
    value = re.split(r"[;；]", text, maxsplit=1)[0]
    value = _join_variants(re.sub(r"\s+", " ", value))
    return RepairOutcome(value, value != text)


def normalize_name_list(text: Any) -> RepairOutcome:
    """Normalise ``/`` separators in a list of names to `` / ``."""
    if not isinstance(text, str) or "/" not in text:
        return _unchanged(text)
    value = _join_variants(text)
    return RepairOutcome(value, value != text)


# ---------------------------------------------------------------------------
# Dispatch table
# ---------------------------------------------------------------------------

Rule = Callable[[Any], RepairOutcome]


@dataclass(frozen=True)
class RepairRule:
    """One field's repair.

    ``extract`` reads the raw ``#info`` fragment and wins when the current
    value is empty or has fewer variants.  ``clean`` tidies the current value.
    """

    field: str
    extract: Optional[Callable[[str], RepairOutcome]] = None
    clean: Optional[Rule] = None

    def apply(self, current: Any, html: str | None) -> RepairOutcome:
        if self.extract is not None and html:
            candidate = self.extract(html)
            if candidate.repaired and _segment_count(candidate.value) > _segment_count(current):
                return RepairOutcome(candidate.value, True)
        if self.clean is not None and current not in (None, ""):
            return self.clean(current)
        return _unchanged(current)


_MEDIA_RULES: tuple[RepairRule, ...] = (
    RepairRule("duration", extract=extract_duration),
    RepairRule("releaseDate", extract=extract_release_dates),
    RepairRule("country", extract=lambda html: _found(extract_countries(html)), clean=clean_labelled_list),
    RepairRule("language", extract=lambda html: _found(extract_languages(html)), clean=clean_labelled_list),
    RepairRule("director", clean=normalize_name_list),
    RepairRule("writer", clean=normalize_name_list),
    RepairRule("cast", clean=normalize_name_list),
)

_EPISODE_RULES: tuple[RepairRule, ...] = (
    RepairRule("episodeDuration", extract=extract_episode_duration),
)

_BOOK_RULES: tuple[RepairRule, ...] = (
    RepairRule("publishDate", clean=normalize_publish_date),
    RepairRule("isbn", clean=clean_isbn),
    RepairRule("publisher", clean=clean_publisher),
    RepairRule("author", clean=normalize_name_list),
    RepairRule("translator", clean=normalize_name_list),
)

REPAIR_RULES: dict[Category, tuple[RepairRule, ...]] = {
    Category.BOOKS: _BOOK_RULES,
    Category.MOVIES: _MEDIA_RULES,
    Category.TV: _MEDIA_RULES + _EPISODE_RULES,
    Category.DOCUMENTARY: _MEDIA_RULES + _EPISODE_RULES,
}
