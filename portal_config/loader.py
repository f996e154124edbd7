"""
Configuration Loader (``portal_config.loader``).

Responsibility
--------------
Loads YAML configuration files and parses them into ``PortalConfig``.
Runtime callers go through ``portal_config.get_active_config()`` instead.

Invariants enforced
-------------------
* Unknown keys are rejected with ``ValueError``; a typo never silently
  falls back to a default.
* ``compute_checksum`` is deterministic for identical settings.

Failure modes
-------------
* Missing YAML file  -> ``FileNotFoundError`` propagates.
* Malformed YAML  -> ``yaml.YAMLError`` propagates.
* Unknown key or wrongly typed value  -> ``ValueError``.
"""

from __future__ import annotations

import hashlib
import json
from dataclasses import fields
from pathlib import Path
from typing import Any

import yaml

from portal_config.schema import PortalConfig

_KNOWN_KEYS = frozenset(f.name for f in fields(PortalConfig)) - {"checksum"}

_BOOL_KEYS = frozenset({"seed_demo_obligations", "strict_invariants"})
_INT_KEYS = frozenset({"version", "password_min_length"})
_FLOAT_KEYS = frozenset({"auth_latency_seconds"})
_OPTIONAL_STR_KEYS = frozenset({"data_dir", "upload_dir", "demo_owner_user_id"})


def load_yaml_file(path: Path) -> dict[str, Any]:
    """
    Load a single YAML file and return its contents as a dict.

    Raises:
        FileNotFoundError: if the file does not exist.
        yaml.YAMLError: if the file contains invalid YAML.
        ValueError: if the top level is not a mapping.
    """
    with open(path) as f:
        data = yaml.safe_load(f) or {}
    if not isinstance(data, dict):
        raise ValueError(f"{path}: top level must be a mapping, got {type(data).__name__}")
    return data


def _coerce(key: str, value: Any) -> Any:
    if key in _BOOL_KEYS:
        if not isinstance(value, bool):
            raise ValueError(f"{key} must be true or false, got {value!r}")
        return value
    if key in _INT_KEYS:
        if isinstance(value, bool) or not isinstance(value, int):
            raise ValueError(f"{key} must be an integer, got {value!r}")
        return value
    if key in _FLOAT_KEYS:
        if isinstance(value, bool) or not isinstance(value, (int, float)):
            raise ValueError(f"{key} must be a number, got {value!r}")
        return float(value)
    if key in _OPTIONAL_STR_KEYS:
        return None if value in (None, "") else str(value)
    return str(value)


def parse_config(data: dict[str, Any]) -> PortalConfig:
    """
    Build a ``PortalConfig`` from a parsed mapping and stamp its checksum.

    Keys absent from ``data`` take the schema defaults.
    """
    unknown = sorted(set(data) - _KNOWN_KEYS)
    if unknown:
        raise ValueError(f"Unknown configuration keys: {', '.join(unknown)}")

    values = {key: _coerce(key, value) for key, value in data.items()}
    config = PortalConfig(**values)
    return PortalConfig(**values, checksum=compute_checksum(config.to_dict()))


def merge_layers(*layers: dict[str, Any]) -> dict[str, Any]:
    """Shallow-merge configuration mappings; later layers win."""
    merged: dict[str, Any] = {}
    for layer in layers:
        merged.update(layer)
    return merged


def compute_checksum(data: dict[str, Any]) -> str:
    """
    Compute SHA-256 checksum of canonical JSON serialization.

    Postconditions:
        - Returns a hex-encoded SHA-256 hash string.
        - Identical ``data`` always produces identical checksums.
    """
    canonical = json.dumps(data, sort_keys=True, default=str)
    return hashlib.sha256(canonical.encode()).hexdigest()
