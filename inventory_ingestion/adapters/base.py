"""
Source adapter protocol and probe DTO.

Contract:
    SourceAdapter.read() yields one dict per data row, keyed by header text.
    SourceAdapter.probe() returns headers, a row count and the first rows so
    a caller can build a header map before importing.

Architecture: inventory_ingestion/adapters. File I/O only, no DB or kernel
imports.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Any, Iterator, Protocol, runtime_checkable

PROBE_SAMPLE_SIZE = 5


class SourceFormat(str, Enum):
    CSV = "csv"
    JSON = "json"
    XLSX = "xlsx"

    @classmethod
    def from_path(cls, path: Path) -> "SourceFormat":
        suffix = path.suffix.lower().lstrip(".")
        if suffix in ("jsonl", "ndjson"):
            return cls.JSON
        if suffix == "xlsm":
            return cls.XLSX
        try:
            return cls(suffix)
        except ValueError:
            raise ValueError(f"Unsupported import file type: {path.suffix or path.name}") from None


@runtime_checkable
class SourceAdapter(Protocol):
    """Protocol for reading import files into header-keyed rows."""

    def read(self, source_path: Path, options: dict[str, Any]) -> Iterator[dict[str, Any]]:
        """Yield one dict per data row."""
        ...

    def probe(self, source_path: Path, options: dict[str, Any]) -> "SourceProbe":
        """Headers, row count and sample rows."""
        ...


@dataclass(frozen=True)
class SourceProbe:
    row_count: int
    headers: tuple[str, ...]
    sample_rows: tuple[dict[str, Any], ...]
    encoding: str | None = None


def dedupe_headers(raw: list[str]) -> list[str]:
    """Blank headers become ``Column_N``; repeats get ``_1``, ``_2`` suffixes."""
    headers: list[str] = []
    for i, value in enumerate(raw):
        key = " ".join(str(value or "").split()) or f"Column_{i + 1}"
        base, n = key, 0
        while key in headers:
            n += 1
            key = f"{base}_{n}"
        headers.append(key)
    return headers


def get_adapter(source_format: SourceFormat | str) -> SourceAdapter:
    from inventory_ingestion.adapters.csv_adapter import CsvSourceAdapter
    from inventory_ingestion.adapters.json_adapter import JsonSourceAdapter
    from inventory_ingestion.adapters.xlsx_adapter import XlsxSourceAdapter

    adapters = {
        SourceFormat.CSV: CsvSourceAdapter,
        SourceFormat.JSON: JsonSourceAdapter,
        SourceFormat.XLSX: XlsxSourceAdapter,
    }
    return adapters[SourceFormat(source_format)]()
