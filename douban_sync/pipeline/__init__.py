"""Pipeline package — classification and batch orchestration."""

from douban_sync.pipeline.classifier import check_required_fields, classify_media
from douban_sync.pipeline.orchestrator import (
    BatchResult,
    CatalogScraper,
    ItemFailure,
    ScrapeResult,
)

__all__ = [
    "CatalogScraper",
    "ScrapeResult",
    "BatchResult",
    "ItemFailure",
    "classify_media",
    "check_required_fields",
]
