"""
Dispatch request/response messages (``dispatch_kernel.domain.messages``).

Responsibility
--------------
The two confirmation request shapes as a tagged variant, the backend's
confirmation responses, and the invoice summary used by post-dispatch
side effects.  Builders turn editor state into a request; ``to_payload``
renders the camelCase body the backend expects.

Architecture position
---------------------
**Kernel domain layer** -- pure value objects.  ZERO I/O.

Invariants enforced
-------------------
* A request's ``kind`` is fixed by its class; sales and factory field sets
  never mix.  The factory shape has no pricing or credit fields at all.
* Only lines with ship quantity > 0 ever reach a request, in editor order.
* ``None`` overrides are left out of the payload; explicit zero is sent.
* Quantities are passed through untouched (no rounding).
"""

from __future__ import annotations

from dataclasses import dataclass, field
from decimal import Decimal
from enum import Enum
from typing import Any, Literal, Mapping, Sequence, Union

from dispatch_kernel.domain.dispatch_lines import DispatchLineForm, require_shippable_lines
from dispatch_kernel.domain.slip import to_int, to_decimal


class DispatchFlow(Enum):
    """Authorization path a workflow instance is bound to for its lifetime."""
    SALES = "sales"
    FACTORY = "factory"


def _put(payload: dict[str, Any], key: str, value: Any) -> None:
    if value is not None:
        payload[key] = value


# ---------------------------------------------------------------------------
# Sales flow
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class DispatchLine:
    """One sales-flow line: ship quantity plus optional commercial overrides."""
    line_id: int | None
    ship_qty: Decimal
    batch_id: int | None = None
    price_override: Decimal | None = None
    discount: Decimal | None = None
    tax_rate: Decimal | None = None
    tax_inclusive: bool | None = None

    @classmethod
    def from_form(cls, form: DispatchLineForm) -> DispatchLine:
        return cls(
            line_id=form.line_id,
            ship_qty=form.ship_qty,
            batch_id=form.batch_id,
            price_override=form.price_override,
            discount=form.discount,
            tax_rate=form.tax_rate,
            tax_inclusive=form.tax_inclusive,
        )

    def to_payload(self) -> dict[str, Any]:
        payload: dict[str, Any] = {}
        _put(payload, "lineId", self.line_id)
        _put(payload, "batchId", self.batch_id)
        payload["shipQty"] = self.ship_qty
        _put(payload, "priceOverride", self.price_override)
        _put(payload, "discount", self.discount)
        _put(payload, "taxRate", self.tax_rate)
        _put(payload, "taxInclusive", self.tax_inclusive)
        return payload


@dataclass(frozen=True)
class SalesDispatchRequest:
    """DispatchConfirmRequest for the sales flow."""
    packing_slip_id: int
    lines: tuple[DispatchLine, ...]
    order_id: int | None = None
    admin_override_credit_limit: bool = False
    kind: Literal["sales"] = field(default="sales", init=False)

    def to_payload(self) -> dict[str, Any]:
        payload: dict[str, Any] = {"packingSlipId": self.packing_slip_id}
        _put(payload, "orderId", self.order_id)
        payload["lines"] = [line.to_payload() for line in self.lines]
        if self.admin_override_credit_limit:
            payload["adminOverrideCreditLimit"] = True
        return payload


# ---------------------------------------------------------------------------
# Factory flow
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class FactoryLineConfirmation:
    """One factory-flow line: identifier and shipped quantity only."""
    line_id: int
    shipped_quantity: Decimal

    def to_payload(self) -> dict[str, Any]:
        return {"lineId": self.line_id, "shippedQuantity": self.shipped_quantity}


@dataclass(frozen=True)
class FactoryDispatchRequest:
    """Goods-issue-only confirmation for shop-floor users."""
    packaging_slip_id: int
    lines: tuple[FactoryLineConfirmation, ...]
    confirmed_by: str
    kind: Literal["factory"] = field(default="factory", init=False)

    def to_payload(self) -> dict[str, Any]:
        return {
            "packagingSlipId": self.packaging_slip_id,
            "lines": [line.to_payload() for line in self.lines],
            "confirmedBy": self.confirmed_by,
        }


DispatchRequest = Union[SalesDispatchRequest, FactoryDispatchRequest]


def build_sales_request(
    packing_slip_id: int,
    order_id: int | None,
    forms: Sequence[DispatchLineForm],
    admin_override_credit_limit: bool = False,
) -> SalesDispatchRequest:
    """Raises NoShippableLinesError when nothing would ship."""
    selected = require_shippable_lines(forms)
    return SalesDispatchRequest(
        packing_slip_id=packing_slip_id,
        order_id=order_id,
        lines=tuple(DispatchLine.from_form(form) for form in selected),
        admin_override_credit_limit=admin_override_credit_limit,
    )


def build_factory_request(
    packaging_slip_id: int,
    forms: Sequence[DispatchLineForm],
    confirmed_by: str,
) -> FactoryDispatchRequest:
    """Raises NoShippableLinesError when nothing would ship."""
    selected = require_shippable_lines(forms)
    return FactoryDispatchRequest(
        packaging_slip_id=packaging_slip_id,
        lines=tuple(
            FactoryLineConfirmation(
                line_id=form.line_id or 0,
                shipped_quantity=form.ship_qty,
            )
            for form in selected
        ),
        confirmed_by=confirmed_by,
    )


# ---------------------------------------------------------------------------
# Responses
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class CogsPosting:
    """Summary of one cost-of-goods-sold journal posting made by dispatch."""
    inventory_account_id: int | None
    cogs_account_id: int | None
    cost: Decimal | None

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> CogsPosting:
        return cls(
            inventory_account_id=to_int(data.get("inventoryAccountId")),
            cogs_account_id=to_int(data.get("cogsAccountId")),
            cost=to_decimal(data.get("cost")),
        )


@dataclass(frozen=True)
class DispatchConfirmResponse:
    """Sales-flow confirmation result."""
    packing_slip_id: int | None
    sales_order_id: int | None
    final_invoice_id: int | None = None
    ar_journal_entry_id: int | None = None
    cogs_postings: tuple[CogsPosting, ...] = ()
    dispatched: bool = False

    @classmethod
    def from_dict(cls, data: Mapping[str, Any] | None) -> DispatchConfirmResponse:
        data = data or {}
        return cls(
            packing_slip_id=to_int(data.get("packingSlipId")),
            sales_order_id=to_int(data.get("salesOrderId")),
            final_invoice_id=to_int(data.get("finalInvoiceId")),
            ar_journal_entry_id=to_int(data.get("arJournalEntryId")),
            cogs_postings=tuple(
                CogsPosting.from_dict(p) for p in (data.get("cogsPostings") or ())
            ),
            dispatched=bool(data.get("dispatched", False)),
        )

    @property
    def created_invoice(self) -> bool:
        return bool(self.final_invoice_id)


@dataclass(frozen=True)
class FactoryDispatchResponse:
    """Factory-flow confirmation result."""
    packaging_slip_id: int | None
    status: str | None = None
    dispatched_lines: int = 0
    total_shipped_quantity: Decimal | None = None
    notes: str | None = None

    @classmethod
    def from_dict(cls, data: Mapping[str, Any] | None) -> FactoryDispatchResponse:
        data = data or {}
        return cls(
            packaging_slip_id=to_int(data.get("packagingSlipId")),
            status=data.get("status"),
            dispatched_lines=int(data.get("dispatchedLines") or 0),
            total_shipped_quantity=to_decimal(data.get("totalShippedQuantity")),
            notes=data.get("notes"),
        )


@dataclass(frozen=True)
class InvoiceSummary:
    """The fields of an InvoiceDto this client reads."""
    id: int
    invoice_number: str | None = None
    status: str | None = None
    total_amount: Decimal | None = None
    currency: str | None = None
    sales_order_id: int | None = None
    dealer_name: str | None = None

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> InvoiceSummary:
        return cls(
            id=int(data["id"]),
            invoice_number=data.get("invoiceNumber"),
            status=data.get("status"),
            total_amount=to_decimal(data.get("totalAmount")),
            currency=data.get("currency"),
            sales_order_id=to_int(data.get("salesOrderId")),
            dealer_name=data.get("dealerName"),
        )
