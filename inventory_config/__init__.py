"""
inventory_config -- single public entrypoint for runtime settings.

Responsibility:
    ``get_active_settings()`` is the only way to obtain settings.  Kernel
    services never read files or environment variables themselves; callers
    pass ``settings.limits.to_string_limits()`` into them.

Architecture position:
    Configuration -- sits above ``inventory_kernel``.  The kernel MUST NEVER
    import from ``inventory_config``.

Resolution order:
    1. the ``path`` argument,
    2. the file named by ``INVENTORY_SETTINGS_PATH``,
    3. the packaged ``sets/default.yaml``.

Audit relevance:
    Every successful load emits a ``settings_loaded`` log entry carrying
    the settings id, version, source path and SHA-256 checksum.
"""

import os
from pathlib import Path

from inventory_config.loader import load_settings
from inventory_config.schema import (
    DatabaseSettings,
    ImportSettings,
    InventorySettings,
    LimitSettings,
)
from inventory_kernel.db.engine import init_engine_from_url
from inventory_kernel.logging_config import get_logger

SETTINGS_PATH_ENV = "INVENTORY_SETTINGS_PATH"

_DEFAULT_SETTINGS_PATH = Path(__file__).parent / "sets" / "default.yaml"

_logger = get_logger("config")


def get_active_settings(path: Path | str | None = None) -> InventorySettings:
    """
    Load and return the active settings.

    Raises:
        FileNotFoundError: the resolved file does not exist.
        ValueError: the file is not a valid settings document.
    """
    env_path = os.environ.get(SETTINGS_PATH_ENV)
    source = Path(path or env_path or _DEFAULT_SETTINGS_PATH)

    settings = load_settings(source)
    _logger.info(
        "settings_loaded",
        extra={
            "settings_id": settings.settings_id,
            "settings_version": settings.version,
            "source": str(source),
            "checksum": settings.checksum,
        },
    )
    return settings


def init_database(settings: InventorySettings):
    """Initialize the kernel engine from ``settings.database``."""
    db = settings.database
    return init_engine_from_url(
        db.url,
        echo=db.echo,
        pool_size=db.pool_size,
        max_overflow=db.max_overflow,
    )


__all__ = [
    "DatabaseSettings",
    "ImportSettings",
    "InventorySettings",
    "LimitSettings",
    "SETTINGS_PATH_ENV",
    "get_active_settings",
    "init_database",
]
