"""douban-sync — scrape Douban collections into canonical, typed records."""

from douban_sync.categories import Category, Domain
from douban_sync.errors import (
    BlockedError,
    ForbiddenError,
    NetworkError,
    ScrapeError,
    UnsupportedCategoryError,
)
from douban_sync.pipeline import BatchResult, CatalogScraper, ScrapeResult
from douban_sync.scraper import Extractor, Fetcher
from douban_sync.transform import TransformOptions, Transformer, transform

__all__ = [
    "Category",
    "Domain",
    "Fetcher",
    "Extractor",
    "Transformer",
    "TransformOptions",
    "transform",
    "CatalogScraper",
    "ScrapeResult",
    "BatchResult",
    "ScrapeError",
    "NetworkError",
    "BlockedError",
    "ForbiddenError",
    "UnsupportedCategoryError",
]
