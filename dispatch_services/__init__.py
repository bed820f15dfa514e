"""
dispatch_services -- Package init and public API.

Responsibility:
    Stateful orchestration of the dispatch confirmation workflow over the
    pure ``dispatch_kernel`` domain.  This is the **only** layer that talks
    to the backend, holds per-instance workflow state, or reads the clock.

Architecture position:
    Services -- stateful orchestration over the kernel.

    Dependency direction (enforced by tests/architecture/test_kernel_boundary.py):
        dispatch_services/ -> dispatch_kernel/   (allowed)
        dispatch_services/ -> dispatch_config/   (allowed)
        dispatch_kernel/   -> dispatch_services/ (FORBIDDEN)

Invariants enforced:
    - Layer isolation: dispatch_kernel never imports from this package.
    - No module-level mutable state; everything one workflow instance needs
      arrives in its ``WorkflowContext``.
"""

from dispatch_kernel.logging_config import get_logger

logger = get_logger("services")

from dispatch_services.context import WorkflowContext
from dispatch_services.credit_override import CreditOverrideGate
from dispatch_services.dispatch_orchestrator import DispatchOrchestrator
from dispatch_services.gateway import DispatchGateway
from dispatch_services.post_dispatch import DispatchResult, PostDispatchSideEffects
from dispatch_services.rest_client import RestDispatchGateway
from dispatch_services.result_presenter import ResultView, present
from dispatch_services.slip_resolver import ResolvedSlip, SlipResolver

__all__ = [
    "CreditOverrideGate",
    "DispatchGateway",
    "DispatchOrchestrator",
    "DispatchResult",
    "PostDispatchSideEffects",
    "ResolvedSlip",
    "RestDispatchGateway",
    "ResultView",
    "SlipResolver",
    "WorkflowContext",
    "present",
]
