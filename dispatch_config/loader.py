"""
Configuration Loader (``dispatch_config.loader``).

Responsibility
--------------
Loads a YAML file and parses it into a ``ClientConfig``.  Callers should go
through ``dispatch_config.get_active_config()`` rather than this module.

Failure modes
-------------
* Missing YAML file  -> ``FileNotFoundError`` propagates.
* Malformed YAML  -> ``yaml.YAMLError`` propagates.
* Top-level value that is not a mapping -> ``ValueError``.
* Unknown or invalid keys -> ``ValueError`` from ``ClientConfig``.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any

import yaml

from dispatch_config.schema import ClientConfig


def load_yaml_file(path: Path) -> dict[str, Any]:
    """
    Load a single YAML file and return its contents as a dict.

    Raises:
        FileNotFoundError: if the file does not exist.
        yaml.YAMLError: if the file contains invalid YAML.
        ValueError: if the document is not a mapping.
    """
    with open(path) as f:
        data = yaml.safe_load(f)
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ValueError(f"{path}: expected a mapping at top level, got {type(data).__name__}")
    return data


def parse_config(data: dict[str, Any]) -> ClientConfig:
    """Parse a ``ClientConfig`` from a dict."""
    return ClientConfig.from_dict(dict(data))


def load_config(path: Path) -> ClientConfig:
    return parse_config(load_yaml_file(path))
