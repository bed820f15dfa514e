"""
Pure domain layer.

This module contains the value objects and pure functions of the dispatch
confirmation workflow with NO dependencies on:
- HTTP transport
- Configuration files
- Time/clock
- I/O

All domain objects are immutable and deterministic.
"""

from dispatch_kernel.domain.dispatch_lines import (
    DispatchLineForm,
    build_line_forms,
    has_shippable_line,
    require_shippable_lines,
    shippable_lines,
    update_line,
)
from dispatch_kernel.domain.messages import (
    CogsPosting,
    DispatchConfirmResponse,
    DispatchFlow,
    DispatchLine,
    DispatchRequest,
    FactoryDispatchRequest,
    FactoryDispatchResponse,
    FactoryLineConfirmation,
    InvoiceSummary,
    SalesDispatchRequest,
    build_factory_request,
    build_sales_request,
)
from dispatch_kernel.domain.outcome import StageOutcome, StageStatus
from dispatch_kernel.domain.session import AuthSession
from dispatch_kernel.domain.slip import (
    PackagingSlip,
    PackagingSlipLine,
    SalesOrderRef,
    SlipStatus,
)
from dispatch_kernel.domain.workflow import (
    DISPATCH_WORKFLOW,
    Guard,
    Transition,
    Workflow,
    WorkflowState,
)

__all__ = [
    "AuthSession",
    "CogsPosting",
    "DISPATCH_WORKFLOW",
    "DispatchConfirmResponse",
    "DispatchFlow",
    "DispatchLine",
    "DispatchLineForm",
    "DispatchRequest",
    "FactoryDispatchRequest",
    "FactoryDispatchResponse",
    "FactoryLineConfirmation",
    "Guard",
    "InvoiceSummary",
    "PackagingSlip",
    "PackagingSlipLine",
    "SalesDispatchRequest",
    "SalesOrderRef",
    "SlipStatus",
    "StageOutcome",
    "StageStatus",
    "Transition",
    "Workflow",
    "WorkflowState",
    "build_factory_request",
    "build_line_forms",
    "build_sales_request",
    "has_shippable_line",
    "require_shippable_lines",
    "shippable_lines",
    "update_line",
]
