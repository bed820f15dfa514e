"""
Packaging Slip Domain Models (``dispatch_kernel.domain.slip``).

Responsibility
--------------
Frozen value objects for the packaging slip a dispatch acts on, its lines,
and the caller's sales-order reference.  Parses the backend's camelCase
JSON into these objects.

Architecture position
---------------------
**Kernel domain layer** -- pure value objects.  ZERO I/O.

Invariants enforced
-------------------
* A slip always carries its owning ``sales_order_id``.
* Quantities and costs are ``Decimal`` -- NEVER ``float``.
* Backorder quantity is taken from the backend as-is; it is never
  computed on the client.
* Unknown status strings parse to ``SlipStatus.UNKNOWN`` and never raise;
  the raw value is kept in ``status_raw``.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from decimal import Decimal, InvalidOperation
from enum import Enum
from typing import Any, Mapping

from dispatch_kernel.logging_config import get_logger

logger = get_logger("domain.slip")


class SlipStatus(Enum):
    """Packaging slip lifecycle states known to this client."""
    PENDING = "PENDING"
    RESERVED = "RESERVED"
    PENDING_PRODUCTION = "PENDING_PRODUCTION"
    PENDING_STOCK = "PENDING_STOCK"
    PARTIAL = "PARTIAL"
    DISPATCHED = "DISPATCHED"
    CANCELLED = "CANCELLED"
    UNKNOWN = "UNKNOWN"

    @classmethod
    def parse(cls, raw: str | None) -> SlipStatus:
        """Map a backend status string onto the enum; unknown values are UNKNOWN."""
        if not raw:
            return cls.UNKNOWN
        try:
            return cls(str(raw).strip().upper())
        except ValueError:
            logger.debug("slip_status_unrecognized", extra={"status_raw": raw})
            return cls.UNKNOWN

    @property
    def tone(self) -> str:
        """Display tone for badges. Anything unrecognized is neutral."""
        return _STATUS_TONES.get(self, "neutral")


_STATUS_TONES: dict[SlipStatus, str] = {
    SlipStatus.PENDING: "pending",
    SlipStatus.RESERVED: "pending",
    SlipStatus.PENDING_PRODUCTION: "warning",
    SlipStatus.PENDING_STOCK: "warning",
    SlipStatus.PARTIAL: "warning",
    SlipStatus.DISPATCHED: "success",
    SlipStatus.CANCELLED: "danger",
}


def to_decimal(value: Any) -> Decimal | None:
    """Convert a JSON number or numeric string to Decimal without rounding."""
    if value is None or value == "":
        return None
    if isinstance(value, Decimal):
        return value
    if isinstance(value, bool):
        raise ValueError(f"Cannot interpret boolean {value!r} as a quantity")
    try:
        return Decimal(str(value))
    except InvalidOperation as exc:
        raise ValueError(f"Cannot interpret {value!r} as a decimal") from exc


def to_int(value: Any) -> int | None:
    if value is None or value == "":
        return None
    return int(value)


@dataclass(frozen=True)
class SalesOrderRef:
    """The caller's handle on a sales order (as shown in order lists)."""
    id: int
    order_number: str | None = None
    dealer_name: str | None = None

    @property
    def is_resolvable(self) -> bool:
        return self.id is not None and self.id > 0


@dataclass(frozen=True)
class PackagingSlipLine:
    """One product line on a packaging slip."""
    id: int | None
    product_code: str | None = None
    product_name: str | None = None
    batch_code: str | None = None
    batch_public_id: str | None = None
    ordered_quantity: Decimal | None = None
    shipped_quantity: Decimal | None = None
    backorder_quantity: Decimal | None = None
    unit_cost: Decimal | None = None
    notes: str | None = None

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> PackagingSlipLine:
        return cls(
            id=to_int(data.get("id")),
            product_code=data.get("productCode"),
            product_name=data.get("productName"),
            batch_code=data.get("batchCode"),
            batch_public_id=data.get("batchPublicId"),
            ordered_quantity=to_decimal(data.get("orderedQuantity")),
            shipped_quantity=to_decimal(data.get("shippedQuantity")),
            backorder_quantity=to_decimal(data.get("backorderQuantity")),
            unit_cost=to_decimal(data.get("unitCost")),
            notes=data.get("notes"),
        )


@dataclass(frozen=True)
class PackagingSlip:
    """A prepared-for-shipment unit against exactly one sales order."""
    id: int
    sales_order_id: int
    slip_number: str | None = None
    order_number: str | None = None
    dealer_name: str | None = None
    status: SlipStatus = SlipStatus.UNKNOWN
    status_raw: str | None = None
    public_id: str | None = None
    confirmed_by: str | None = None
    dispatched_at: str | None = None
    lines: tuple[PackagingSlipLine, ...] = field(default_factory=tuple)

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> PackagingSlip:
        """
        Parse a PackagingSlipDto.

        Raises:
            KeyError: if ``id`` or ``salesOrderId`` is missing.
        """
        status_raw = data.get("status")
        return cls(
            id=int(data["id"]),
            sales_order_id=int(data["salesOrderId"]),
            slip_number=data.get("slipNumber"),
            order_number=data.get("orderNumber"),
            dealer_name=data.get("dealerName"),
            status=SlipStatus.parse(status_raw),
            status_raw=status_raw,
            public_id=data.get("publicId"),
            confirmed_by=data.get("confirmedBy"),
            dispatched_at=data.get("dispatchedAt"),
            lines=tuple(
                PackagingSlipLine.from_dict(line)
                for line in (data.get("lines") or ())
            ),
        )

    @property
    def slip_label(self) -> str:
        return self.slip_number or f"#{self.id}"
