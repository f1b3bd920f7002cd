"""
Header matcher: file headers -> schema column ids.  ZERO I/O.

Match order for one header, each tier tried against the columns not yet
taken by an earlier header:
    1. exact   -- normalized names equal (confidence 1.0)
    2. alias   -- both names belong to one alias group (confidence 0.9)
    3. fuzzy   -- Levenshtein similarity above 0.6 (confidence = similarity)

Normalization lowercases and drops everything but ASCII letters and digits,
so "Unit Price", "unit_price" and "UNITPRICE" compare equal.
"""

from __future__ import annotations

import re
from collections.abc import Iterable, Mapping, Sequence
from dataclasses import dataclass
from enum import Enum
from typing import Any

from inventory_kernel.domain.columns import ColumnDefinition

FUZZY_THRESHOLD = 0.6

_NON_ALNUM = re.compile(r"[^a-z0-9]")

# Group key followed by its alternative spellings (already normalized).
_ALIAS_GROUPS: dict[str, tuple[str, ...]] = {
    "quantity": ("qty", "qnty", "amount", "count", "stock", "units"),
    "description": ("desc", "details", "info", "about"),
    "price": ("value", "rate", "unitprice"),
    "cost": ("unitcost", "purchaseprice", "wholesale"),
    "name": ("title", "item", "product", "productname", "itemname"),
    "sku": ("id", "code", "productid", "itemid", "barcode", "upc", "ean"),
    "date": ("created", "updated", "timestamp", "time", "datetime", "createdat", "updatedat"),
    "category": ("type", "group", "class", "classification"),
    "status": ("state", "condition", "availability"),
    "notes": ("note", "comment", "comments", "remarks", "memo"),
    "location": ("loc", "bin", "shelf", "warehouse", "storage"),
    "supplier": ("vendor", "provider", "source"),
    "minimum": ("min", "minquantity", "reorder", "reorderlevel"),
}


class MatchType(str, Enum):
    EXACT = "exact"
    ALIAS = "alias"
    FUZZY = "fuzzy"


@dataclass(frozen=True)
class HeaderMatch:
    """One file header and the column it maps to (None when unmatched)."""

    header: str
    column_id: str | None = None
    column_name: str | None = None
    confidence: float = 0.0
    match_type: MatchType | None = None


def normalize_header_name(name: str) -> str:
    return _NON_ALNUM.sub("", name.lower().strip())


def levenshtein(a: str, b: str) -> int:
    previous = list(range(len(b) + 1))
    for i, ca in enumerate(a, start=1):
        current = [i]
        for j, cb in enumerate(b, start=1):
            if ca == cb:
                current.append(previous[j - 1])
            else:
                current.append(1 + min(previous[j], current[j - 1], previous[j - 1]))
        previous = current
    return previous[-1]


def similarity(a: str, b: str) -> float:
    """1.0 for identical strings, 0.0 when either is empty."""
    if a == b:
        return 1.0
    if not a or not b:
        return 0.0
    return 1 - levenshtein(a, b) / max(len(a), len(b))


def _alias_group(normalized: str) -> str | None:
    for key, aliases in _ALIAS_GROUPS.items():
        if normalized == key or normalized in aliases:
            return key
    return None


def find_best_match(header: str, columns: Sequence[ColumnDefinition]) -> HeaderMatch:
    wanted = normalize_header_name(header)

    for column in columns:
        if wanted == normalize_header_name(column.name):
            return HeaderMatch(header, column.id, column.name, 1.0, MatchType.EXACT)

    group = _alias_group(wanted)
    if group is not None:
        for column in columns:
            if _alias_group(normalize_header_name(column.name)) == group:
                return HeaderMatch(header, column.id, column.name, 0.9, MatchType.ALIAS)

    best: HeaderMatch = HeaderMatch(header)
    best_score = FUZZY_THRESHOLD
    for column in columns:
        score = similarity(wanted, normalize_header_name(column.name))
        if score > best_score:
            best_score = score
            best = HeaderMatch(header, column.id, column.name, score, MatchType.FUZZY)
    return best


def auto_match_headers(
    headers: Iterable[str], columns: Sequence[ColumnDefinition]
) -> list[HeaderMatch]:
    """
    Propose a column for every header, in header order.

    A column is assigned to at most one header.
    """
    taken: set[str] = set()
    matches = []
    for header in headers:
        available = [c for c in columns if c.id not in taken]
        match = find_best_match(header, available)
        if match.column_id is not None:
            taken.add(match.column_id)
        matches.append(match)
    return matches


def map_headers(
    raw_rows: Iterable[Mapping[str, Any]], header_map: Mapping[str, str | None]
) -> list[dict[str, Any]]:
    """
    Re-key rows from header text to column ids (or ``__new__N`` placeholders).

    Headers absent from ``header_map`` or mapped to None are dropped.
    """
    mapped = []
    for row in raw_rows:
        mapped.append(
            {
                header_map[header]: value
                for header, value in row.items()
                if header_map.get(header) is not None
            }
        )
    return mapped
