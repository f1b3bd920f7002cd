"""Import orchestration."""

from inventory_ingestion.services.import_service import (
    ImportResult,
    ImportService,
    ImportWarning,
)

__all__ = ["ImportResult", "ImportService", "ImportWarning"]
