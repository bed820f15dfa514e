"""
dispatch_config -- single public entrypoint for client configuration.

Responsibility:
    ``get_active_config()`` is the only way services obtain configuration.
    No component reads configuration files or environment variables
    directly.

Architecture position:
    Configuration sits above ``dispatch_kernel`` and below
    ``dispatch_services``.  The kernel never imports from this package.

Failure modes:
    - ``FileNotFoundError`` -- the requested file does not exist.
    - ``ValueError`` -- unknown keys or invalid values.
"""

from __future__ import annotations

from pathlib import Path

from dispatch_config.loader import load_config
from dispatch_config.schema import ClientConfig
from dispatch_kernel.logging_config import get_logger

_logger = get_logger("config")

DEFAULT_CONFIG_PATH = Path(__file__).parent / "defaults.yaml"


def get_active_config(path: Path | str | None = None) -> ClientConfig:
    """Load the client configuration, from ``path`` or the packaged defaults."""
    config_path = Path(path) if path is not None else DEFAULT_CONFIG_PATH
    config = load_config(config_path)
    _logger.info(
        "dispatch_config_loaded",
        extra={
            "config_path": str(config_path),
            "base_url": config.base_url,
            "timeout_seconds": config.timeout_seconds,
        },
    )
    return config


__all__ = ["ClientConfig", "DEFAULT_CONFIG_PATH", "get_active_config"]
