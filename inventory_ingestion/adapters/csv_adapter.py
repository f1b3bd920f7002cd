"""
CSV source adapter.

Uses csv.reader with a deduplicated header row.  Configurable: delimiter,
encoding, skip_rows.  A UTF-8 BOM is stripped.  Streams rows; rows whose
cells are all blank are skipped.
"""

from __future__ import annotations

import csv
from pathlib import Path
from typing import Any, Iterator

from inventory_ingestion.adapters.base import PROBE_SAMPLE_SIZE, SourceProbe, dedupe_headers


def _get_encoding(options: dict[str, Any]) -> str:
    enc = options.get("encoding", "utf-8")
    if enc.lower() in ("utf-8", "utf8"):
        return "utf-8-sig"
    return enc


class CsvSourceAdapter:
    """Read CSV files as one dict per row."""

    def read(self, source_path: Path, options: dict[str, Any]) -> Iterator[dict[str, Any]]:
        encoding = _get_encoding(options)
        delimiter = options.get("delimiter", ",")
        skip_rows = int(options.get("skip_rows", 0))

        with source_path.open("r", encoding=encoding, newline="") as f:
            for _ in range(skip_rows):
                next(f, None)
            reader = csv.reader(f, delimiter=delimiter)
            header_row = next(reader, None)
            if header_row is None:
                return
            headers = dedupe_headers(header_row)
            for row in reader:
                if not any(cell.strip() for cell in row):
                    continue
                padded = row + [""] * (len(headers) - len(row))
                yield dict(zip(headers, padded))

    def probe(self, source_path: Path, options: dict[str, Any]) -> SourceProbe:
        encoding = _get_encoding(options)
        headers: tuple[str, ...] = ()
        sample: list[dict[str, Any]] = []
        count = 0
        for row in self.read(source_path, options):
            if not headers:
                headers = tuple(row)
            if len(sample) < PROBE_SAMPLE_SIZE:
                sample.append(row)
            count += 1
        if not headers:
            with source_path.open("r", encoding=encoding, newline="") as f:
                first = next(csv.reader(f, delimiter=options.get("delimiter", ",")), None)
            headers = tuple(dedupe_headers(first)) if first else ()
        return SourceProbe(
            row_count=count,
            headers=headers,
            sample_rows=tuple(sample),
            encoding=encoding,
        )
