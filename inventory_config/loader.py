"""
Settings loader (``inventory_config.loader``).

Responsibility
--------------
Reads one YAML settings file and parses it into the frozen dataclasses of
``inventory_config.schema``.  Callers go through
``inventory_config.get_active_settings()``; this module is the parsing step
behind it.

Failure modes
-------------
* Missing file  -> ``FileNotFoundError`` propagates.
* Malformed YAML  -> ``yaml.YAMLError`` propagates.
* Unknown keys or wrongly typed values  -> ``ValueError``.
"""

import hashlib
import json
from pathlib import Path
from typing import Any

import yaml

from inventory_config.schema import (
    DatabaseSettings,
    ImportSettings,
    InventorySettings,
    LimitSettings,
)


def load_yaml_file(path: Path) -> dict[str, Any]:
    """
    Load a single YAML file and return its contents as a dict.

    Raises:
        FileNotFoundError: if the file does not exist.
        yaml.YAMLError: if the file contains invalid YAML.
        ValueError: if the top level is not a mapping.
    """
    with open(path) as f:
        data = yaml.safe_load(f)
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ValueError(f"Settings file {path} must contain a mapping")
    return data


def compute_checksum(data: dict[str, Any]) -> str:
    """SHA-256 of the canonical JSON form of ``data``."""
    canonical = json.dumps(data, sort_keys=True, default=str)
    return hashlib.sha256(canonical.encode()).hexdigest()


def _section(data: dict[str, Any], key: str, cls: type) -> Any:
    raw = data.get(key) or {}
    if not isinstance(raw, dict):
        raise ValueError(f"Settings section '{key}' must be a mapping")
    known = set(cls.__dataclass_fields__)
    unknown = sorted(set(raw) - known)
    if unknown:
        raise ValueError(f"Unknown keys in settings section '{key}': {', '.join(unknown)}")
    return cls(**raw)


def _check_limits(limits: LimitSettings) -> None:
    for name in LimitSettings.__dataclass_fields__:
        value = getattr(limits, name)
        if not isinstance(value, int) or isinstance(value, bool) or value <= 0:
            raise ValueError(f"Limit '{name}' must be a positive integer, got {value!r}")


def parse_settings(data: dict[str, Any]) -> InventorySettings:
    """
    Build InventorySettings from a parsed YAML mapping.

    Postconditions:
        ``checksum`` identifies the mapping; equal mappings give equal
        checksums.
    """
    limits = _section(data, "limits", LimitSettings)
    _check_limits(limits)
    imports = _section(data, "import", ImportSettings)
    if imports.max_rows <= 0:
        raise ValueError("import.max_rows must be positive")
    if not imports.placeholder_prefix:
        raise ValueError("import.placeholder_prefix must not be empty")

    return InventorySettings(
        settings_id=str(data.get("settings_id", "default")),
        version=int(data.get("version", 1)),
        database=_section(data, "database", DatabaseSettings),
        limits=limits,
        imports=imports,
        checksum=compute_checksum(data),
    )


def load_settings(path: Path) -> InventorySettings:
    return parse_settings(load_yaml_file(path))
