"""
Configuration Loader (``club_config.loader``).

Loads a YAML file and parses it into a ``ClubConfig``.  Runtime callers go
through ``club_config.get_active_config()``; this module is also used
directly by tests that need a custom file.

Failure modes
-------------
* Missing YAML file  -> ``FileNotFoundError`` propagates.
* Malformed YAML  -> ``yaml.YAMLError`` propagates.
* Unknown keys or invalid values  -> ``ValueError``.
"""

from __future__ import annotations

from dataclasses import fields
from pathlib import Path
from typing import Any

import yaml

from club_config.schema import ClubConfig

_KNOWN_KEYS = frozenset(f.name for f in fields(ClubConfig))


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
        raise ValueError(f"{path}: expected a mapping at top level")
    return data


def parse_config(data: dict[str, Any]) -> ClubConfig:
    """Build a ClubConfig from a parsed mapping.

    Accepts either a flat mapping or one nested under a ``club`` key.
    """
    if "club" in data and isinstance(data["club"], dict):
        data = data["club"]
    unknown = set(data) - _KNOWN_KEYS
    if unknown:
        raise ValueError(f"Unknown configuration keys: {sorted(unknown)}")
    return ClubConfig(**data)


def load_config(path: Path, overrides: dict[str, Any] | None = None) -> ClubConfig:
    data = load_yaml_file(path)
    if "club" in data and isinstance(data["club"], dict):
        data = dict(data["club"])
    if overrides:
        data = {**data, **overrides}
    return parse_config(data)
