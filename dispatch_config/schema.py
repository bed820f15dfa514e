"""
Client configuration schema (``dispatch_config.schema``).

Frozen dataclass holding the settings the dispatch client reads at
construction time.  Validates itself; parse errors name the offending key.
"""

from __future__ import annotations

from dataclasses import dataclass, fields
from typing import Any, Self

from dispatch_kernel.logging_config import get_logger

logger = get_logger("config.schema")


@dataclass(frozen=True)
class ClientConfig:
    """
    Settings for the REST gateway and dispatch workflow defaults.

        config = ClientConfig(base_url="https://erp.example.com", timeout_seconds=15)
    """

    base_url: str = "http://localhost:8081"
    timeout_seconds: float = 30
    verify_tls: bool = True

    # Workflow defaults
    default_send_email: bool = True
    factory_user_fallback: str = "Factory User"

    # Show failed invoice/email stages as non-blocking notes on success
    surface_side_effect_warnings: bool = False

    def __post_init__(self):
        if not self.base_url or not self.base_url.strip():
            raise ValueError("base_url cannot be empty")
        if not self.base_url.startswith(("http://", "https://")):
            raise ValueError(f"base_url must be an http(s) URL, got '{self.base_url}'")
        object.__setattr__(self, "base_url", self.base_url.rstrip("/"))

        if self.timeout_seconds <= 0:
            raise ValueError("timeout_seconds must be positive")
        if not self.factory_user_fallback or not self.factory_user_fallback.strip():
            raise ValueError("factory_user_fallback cannot be empty")

    @classmethod
    def with_defaults(cls) -> Self:
        """Create config with built-in defaults."""
        return cls()

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Self:
        """Create config from a dictionary (e.g., loaded from YAML)."""
        known = {f.name for f in fields(cls)}
        unknown = sorted(set(data) - known)
        if unknown:
            raise ValueError(f"Unknown configuration key(s): {', '.join(unknown)}")
        logger.info(
            "client_config_loading_from_dict",
            extra={"keys": sorted(data.keys())},
        )
        return cls(**data)
