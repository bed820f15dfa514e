"""
dispatch_services.credit_override -- Admin credit-limit override flag.

The flag asks the backend to let one sales dispatch through a credit-limit
block.  Whether the signed-in user may do that is decided by the backend
alone; the client only hides the control outside the sales flow.
"""

from __future__ import annotations

from dispatch_kernel.domain.messages import DispatchFlow
from dispatch_kernel.exceptions import FlowFeatureUnavailableError
from dispatch_kernel.logging_config import get_logger

logger = get_logger("services.credit_override")

FEATURE_NAME = "admin_override_credit_limit"


class CreditOverrideGate:
    """Boolean capability scoped to one workflow instance. Defaults to off."""

    def __init__(self, flow: DispatchFlow) -> None:
        self._flow = flow
        self._enabled = False

    @property
    def visible(self) -> bool:
        return self._flow is DispatchFlow.SALES

    @property
    def enabled(self) -> bool:
        return self._enabled

    def set(self, enabled: bool) -> None:
        """Assert or withdraw the override. Raises on the factory flow."""
        if not self.visible:
            raise FlowFeatureUnavailableError(FEATURE_NAME, self._flow.value)
        if bool(enabled) != self._enabled:
            logger.info("credit_override_changed", extra={"enabled": bool(enabled)})
        self._enabled = bool(enabled)

    def read(self) -> bool:
        """Value forwarded on the confirmation request, read at submit time."""
        return self.visible and self._enabled

    def reset(self) -> None:
        self._enabled = False
