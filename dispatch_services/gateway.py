"""
dispatch_services.gateway -- Backend contract consumed by the dispatch workflow.

Responsibility:
    Structural protocol for the REST operations the workflow awaits.  The
    orchestrator, resolver and side-effect chain depend on this protocol
    only, so tests substitute an in-memory fake and production wires
    ``RestDispatchGateway``.

Failure modes (all implementations):
    - ``BackendRejectedError`` for any non-success response, message verbatim.
    - ``TransportError`` when no usable response arrived.
    - ``SlipNotFoundError`` when a slip lookup finds nothing.
    - ``InvoiceNotFoundError`` when an order has no invoice.
"""

from __future__ import annotations

from typing import Protocol, runtime_checkable

from dispatch_kernel.domain.messages import (
    DispatchConfirmResponse,
    FactoryDispatchRequest,
    FactoryDispatchResponse,
    InvoiceSummary,
    SalesDispatchRequest,
)
from dispatch_kernel.domain.slip import PackagingSlip


@runtime_checkable
class DispatchGateway(Protocol):
    """REST operations used by one dispatch workflow instance."""

    async def get_slip(self, slip_id: int) -> PackagingSlip:
        """GET slip by its own id (idempotent)."""
        ...

    async def get_slip_by_order(self, order_id: int) -> PackagingSlip:
        """GET the slip owned by a sales order (idempotent)."""
        ...

    async def list_pending_slips(self) -> list[PackagingSlip]:
        """GET slips awaiting dispatch (idempotent)."""
        ...

    async def confirm_sales_dispatch(
        self, request: SalesDispatchRequest,
    ) -> DispatchConfirmResponse:
        """POST sales confirmation. Never retried."""
        ...

    async def confirm_factory_dispatch(
        self, request: FactoryDispatchRequest,
    ) -> FactoryDispatchResponse:
        """POST factory confirmation. Never retried."""
        ...

    async def get_invoice_by_order(self, order_id: int) -> InvoiceSummary:
        """GET the invoice raised against a sales order (idempotent)."""
        ...

    async def send_invoice_email(self, invoice_id: int) -> None:
        """POST invoice email to the dealer. Never retried."""
        ...

    def invoice_pdf_url(self, invoice_id: int) -> str:
        """Direct URL of the invoice PDF. No request is made."""
        ...
