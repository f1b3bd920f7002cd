"""
JSON source adapter.

Handles a JSON array of objects and JSON Lines (one object per line).
``json_path`` selects a nested array (e.g. "data.items").  Keys are kept as
written; non-object entries are skipped.
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Iterator

from inventory_ingestion.adapters.base import PROBE_SAMPLE_SIZE, SourceProbe


def _get_nested(data: Any, path: str) -> Any:
    """Follow a dot-separated path into dicts/lists; None when missing."""
    for key in path.split("."):
        key = key.strip()
        if not key:
            continue
        if isinstance(data, list):
            try:
                data = data[int(key)]
            except (ValueError, IndexError):
                return None
        elif isinstance(data, dict) and key in data:
            data = data[key]
        else:
            return None
    return data


def _is_jsonl(source_path: Path, options: dict[str, Any]) -> bool:
    fmt = options.get("format")
    if fmt:
        return fmt == "jsonl"
    return source_path.suffix.lower() in (".jsonl", ".ndjson")


class JsonSourceAdapter:
    """Read JSON array or JSON Lines files as one dict per record."""

    def read(self, source_path: Path, options: dict[str, Any]) -> Iterator[dict[str, Any]]:
        encoding = options.get("encoding", "utf-8")

        if _is_jsonl(source_path, options):
            with source_path.open("r", encoding=encoding) as f:
                for line in f:
                    line = line.strip()
                    if not line:
                        continue
                    item = json.loads(line)
                    if isinstance(item, dict):
                        yield {str(k): v for k, v in item.items()}
            return

        with source_path.open("r", encoding=encoding) as f:
            data = json.load(f)
        json_path = options.get("json_path")
        root = _get_nested(data, json_path) if json_path else data
        if not isinstance(root, list):
            return
        for item in root:
            if isinstance(item, dict):
                yield {str(k): v for k, v in item.items()}

    def probe(self, source_path: Path, options: dict[str, Any]) -> SourceProbe:
        headers: dict[str, None] = {}
        sample: list[dict[str, Any]] = []
        count = 0
        for row in self.read(source_path, options):
            if len(sample) < PROBE_SAMPLE_SIZE:
                sample.append(row)
                headers.update(dict.fromkeys(row))
            count += 1
        return SourceProbe(
            row_count=count,
            headers=tuple(headers),
            sample_rows=tuple(sample),
            encoding=options.get("encoding", "utf-8"),
        )
