"""Transform package — canonical mapping, repair and validation."""

from douban_sync.transform.engine import (
    RepairStatistics,
    TransformOptions,
    TransformResult,
    Transformer,
    transform,
)
from douban_sync.transform.records import (
    BookRecord,
    CanonicalRecord,
    DocumentaryRecord,
    MovieRecord,
    TvRecord,
)

__all__ = [
    "Transformer",
    "transform",
    "TransformOptions",
    "TransformResult",
    "RepairStatistics",
    "CanonicalRecord",
    "BookRecord",
    "MovieRecord",
    "TvRecord",
    "DocumentaryRecord",
]
