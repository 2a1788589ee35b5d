"""Scraper package — rate-limited fetch & multi-strategy extraction."""

from douban_sync.scraper.extractor import (
    Extractor,
    FieldPrecedence,
    merge_results,
    parse_list_page,
)
from douban_sync.scraper.fetcher import Fetcher, build_headers, detect_block
from douban_sync.scraper.models import ListItem, ListPage, PartialItem, RawPage

__all__ = [
    "Fetcher",
    "Extractor",
    "FieldPrecedence",
    "merge_results",
    "parse_list_page",
    "build_headers",
    "detect_block",
    "RawPage",
    "PartialItem",
    "ListItem",
    "ListPage",
]
