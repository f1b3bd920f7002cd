"""Source adapters for inventory imports (file I/O only, no DB)."""

from inventory_ingestion.adapters.base import SourceAdapter, SourceFormat, SourceProbe, get_adapter
from inventory_ingestion.adapters.csv_adapter import CsvSourceAdapter
from inventory_ingestion.adapters.json_adapter import JsonSourceAdapter
from inventory_ingestion.adapters.xlsx_adapter import XlsxSourceAdapter

__all__ = [
    "CsvSourceAdapter",
    "JsonSourceAdapter",
    "SourceAdapter",
    "SourceFormat",
    "SourceProbe",
    "XlsxSourceAdapter",
    "get_adapter",
]
