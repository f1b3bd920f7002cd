"""
XLSX source adapter (openpyxl).

source options:
  sheet: 0-based sheet index (int) or sheet name (str).  Default: active sheet.
  skip_rows: rows to skip at the top of the sheet.  Default: 0.
  header_row: 0-based row (after skip_rows) holding the headers.  Default:
    the first row with any non-empty cell.

Cell values keep their spreadsheet types: integral floats become ints,
dates stay datetimes, strings are trimmed, empty cells become "".
"""

from __future__ import annotations

from pathlib import Path
from typing import Any, Iterator

from inventory_ingestion.adapters.base import PROBE_SAMPLE_SIZE, SourceProbe, dedupe_headers


def _load_workbook(source_path: Path) -> Any:
    try:
        import openpyxl
    except ImportError as e:
        raise ImportError("XLSX support requires openpyxl. Install with: pip install openpyxl") from e
    return openpyxl.load_workbook(source_path, read_only=True, data_only=True)


def _cell_value(value: Any) -> Any:
    if value is None:
        return ""
    if isinstance(value, float) and value.is_integer():
        return int(value)
    if isinstance(value, str):
        return value.strip()
    return value


def _is_blank(values: tuple[Any, ...]) -> bool:
    return all(v == "" for v in values)


class XlsxSourceAdapter:
    """Read .xlsx files as one dict per row."""

    def _get_sheet(self, wb: Any, options: dict[str, Any]) -> Any:
        sheet_ref = options.get("sheet")
        if sheet_ref is None:
            return wb.active
        if isinstance(sheet_ref, int):
            return wb.worksheets[sheet_ref]
        return wb[sheet_ref]

    def _rows(self, source_path: Path, options: dict[str, Any]) -> Iterator[tuple[Any, ...]]:
        wb = _load_workbook(source_path)
        try:
            sheet = self._get_sheet(wb, options)
            skip_rows = int(options.get("skip_rows", 0))
            for row in sheet.iter_rows(min_row=1 + skip_rows, values_only=True):
                yield tuple(_cell_value(v) for v in row)
        finally:
            wb.close()

    def read(self, source_path: Path, options: dict[str, Any]) -> Iterator[dict[str, Any]]:
        header_row = options.get("header_row")
        headers: list[str] | None = None
        for index, values in enumerate(self._rows(source_path, options)):
            if headers is None:
                if header_row is not None and index < int(header_row):
                    continue
                if header_row is None and _is_blank(values):
                    continue
                # Trailing empty header cells are not columns.
                width = len(values)
                while width and values[width - 1] == "":
                    width -= 1
                headers = dedupe_headers([str(v) for v in values[:width]])
                continue
            cells = values[: len(headers)]
            if _is_blank(cells):
                continue
            padded = tuple(cells) + ("",) * (len(headers) - len(cells))
            yield dict(zip(headers, padded))

    def probe(self, source_path: Path, options: dict[str, Any]) -> SourceProbe:
        headers: tuple[str, ...] = ()
        sample: list[dict[str, Any]] = []
        count = 0
        for row in self.read(source_path, options):
            if not headers:
                headers = tuple(row)
            if len(sample) < PROBE_SAMPLE_SIZE:
                sample.append(row)
            count += 1
        return SourceProbe(row_count=count, headers=headers, sample_rows=tuple(sample))
