"""Header-to-column mapping for imports (pure, no I/O)."""

from inventory_ingestion.mapping.matcher import (
    HeaderMatch,
    MatchType,
    auto_match_headers,
    find_best_match,
    map_headers,
)

__all__ = [
    "HeaderMatch",
    "MatchType",
    "auto_match_headers",
    "find_best_match",
    "map_headers",
]
