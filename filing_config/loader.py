"""
Configuration Loader (``filing_config.loader``).

Responsibility
--------------
Loads a YAML settings file and parses it into a ``SchedulerSettings``
frozen dataclass.  Runtime code obtains settings through
``filing_config.get_active_settings()``.

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

from filing_config.schema import SchedulerSettings

_SCALAR_KEYS = frozenset(
    f.name for f in fields(SchedulerSettings) if f.name != "portal_limits"
)


def load_yaml_file(path: Path) -> dict[str, Any]:
    """
    Load a single YAML file and return its contents as a dict.

    Raises:
        FileNotFoundError: if the file does not exist.
        yaml.YAMLError: if the file contains invalid YAML.
    """
    with open(path) as f:
        return yaml.safe_load(f) or {}


def parse_portal_limits(data: Any) -> dict[str, int]:
    """Parse the ``portal_limits`` mapping (jurisdiction -> max batch size)."""
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ValueError(f"portal_limits must be a mapping, got {type(data).__name__}")
    limits: dict[str, int] = {}
    for code, size in data.items():
        try:
            limits[str(code).upper()] = int(size)
        except (TypeError, ValueError) as exc:
            raise ValueError(f"Invalid portal limit for {code}: {size!r}") from exc
    return limits


def parse_settings(data: dict[str, Any]) -> SchedulerSettings:
    """
    Parse ``SchedulerSettings`` from a dict.

    Settings may sit at the top level or under a ``scheduler`` key.

    Raises:
        ValueError: on unknown keys or values rejected by the schema.
    """
    section = data.get("scheduler", data)
    unknown = set(section) - _SCALAR_KEYS - {"portal_limits"}
    if unknown:
        raise ValueError(f"Unknown scheduler settings: {sorted(unknown)}")

    kwargs: dict[str, Any] = {k: section[k] for k in _SCALAR_KEYS if k in section}
    kwargs["portal_limits"] = parse_portal_limits(section.get("portal_limits"))
    return SchedulerSettings(**kwargs)


def load_settings(path: Path) -> SchedulerSettings:
    """Load and parse a settings file."""
    return parse_settings(load_yaml_file(path))
