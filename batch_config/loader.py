"""
Settings Loader (``batch_config.loader``).

Loads YAML settings files and parses them into ``ProcessSettings``.

Failure modes
-------------
* Missing YAML file  -> ``FileNotFoundError`` propagates.
* Malformed YAML  -> ``yaml.YAMLError`` propagates.
* Unknown section or key  -> ``KeyError``.
* Invalid value  -> ``ValueError`` from ``ProcessSettings``.
"""

from __future__ import annotations

from dataclasses import asdict
from pathlib import Path
from typing import Any

import yaml

from batch_config.schema import ProcessSettings

# section -> {yaml key: ProcessSettings field}
_SECTIONS: dict[str, dict[str, str]] = {
    "process": {
        "buffer_size": "buffer_size",
        "dry_run": "dry_run",
        "commit_when_empty": "commit_when_empty",
        "transaction_mode": "transaction_mode",
    },
    "logging": {
        "level": "log_level",
    },
}


def load_yaml_file(path: Path) -> dict[str, Any]:
    """Load a single YAML file and return its contents as a dict."""
    with open(path) as f:
        data = yaml.safe_load(f) or {}
    if not isinstance(data, dict):
        raise ValueError(f"{path}: top level must be a mapping, got {type(data).__name__}")
    return data


def parse_fields(data: dict[str, Any]) -> dict[str, Any]:
    """Flatten sectioned YAML data into ``ProcessSettings`` field values.

    Raises:
        KeyError: On an unknown section or key.
    """
    fields: dict[str, Any] = {}
    for section, values in data.items():
        if section not in _SECTIONS:
            raise KeyError(f"Unknown settings section {section!r}")
        keys = _SECTIONS[section]
        for key, value in (values or {}).items():
            if key not in keys:
                raise KeyError(f"Unknown setting {section}.{key}")
            fields[keys[key]] = value
    return fields


def parse_settings(
    data: dict[str, Any],
    base: ProcessSettings | None = None,
) -> ProcessSettings:
    """Build ``ProcessSettings`` from YAML data, on top of ``base`` if given."""
    merged = asdict(base) if base is not None else {}
    merged.update(parse_fields(data))
    return ProcessSettings(**merged)


def load_settings(path: Path, base: ProcessSettings | None = None) -> ProcessSettings:
    """Load and parse a settings file."""
    return parse_settings(load_yaml_file(Path(path)), base)
