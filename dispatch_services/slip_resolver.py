"""
dispatch_services.slip_resolver -- Find the packaging slip a dispatch acts on.

Responsibility:
    Given a known slip, a slip id, or a sales-order reference, fetch the
    freshest copy of the slip and seed the dispatch line editor from it.

Invariants enforced:
    - A caller-supplied slip with an id is always re-fetched by id; its
      lines are never trusted for a money-affecting confirmation.
    - Resolution is a pure read; calling it twice has no side effects.
    - "No slip yet" surfaces as ``SlipNotFoundError`` (recoverable, offer
      reserve), distinct from transport and backend failures.

Failure modes:
    - ``InvalidSlipReferenceError`` -- nothing usable to look up.
    - ``SlipNotFoundError`` -- the backend has no slip for the reference.
    - ``GatewayError`` subclasses propagate unchanged.
"""

from __future__ import annotations

from dataclasses import dataclass

from dispatch_kernel.domain.dispatch_lines import DispatchLineForm, build_line_forms
from dispatch_kernel.domain.slip import PackagingSlip, SalesOrderRef
from dispatch_kernel.exceptions import InvalidSlipReferenceError, SlipNotFoundError
from dispatch_kernel.logging_config import get_logger
from dispatch_services.gateway import DispatchGateway

logger = get_logger("services.slip_resolver")


@dataclass(frozen=True)
class ResolvedSlip:
    """A freshly fetched slip and its seeded line editor state."""
    slip: PackagingSlip
    lines: tuple[DispatchLineForm, ...]
    source: str  # "slip", "slip_id", "order" or "provided"


class SlipResolver:
    """Resolves slip references through the gateway."""

    def __init__(self, gateway: DispatchGateway) -> None:
        self._gateway = gateway

    async def resolve(
        self,
        *,
        slip: PackagingSlip | None = None,
        slip_id: int | None = None,
        order: SalesOrderRef | None = None,
    ) -> ResolvedSlip:
        """Resolve by slip, then slip id, then order, in that precedence."""
        if slip is not None and slip.id:
            fresh = await self._gateway.get_slip(slip.id)
            source = "slip"
        elif slip is not None:
            # No id to re-fetch by; the caller's copy is all there is
            fresh = slip
            source = "provided"
        elif slip_id:
            fresh = await self._gateway.get_slip(slip_id)
            source = "slip_id"
        elif order is not None:
            if not order.is_resolvable:
                raise InvalidSlipReferenceError(f"order id {order.id!r} is not a positive id")
            fresh = await self._gateway.get_slip_by_order(order.id)
            source = "order"
        else:
            raise InvalidSlipReferenceError("no slip, slip id or order supplied")

        if fresh is None:
            raise SlipNotFoundError(
                slip_id=slip.id if slip is not None else slip_id,
                order_id=order.id if order is not None else None,
            )

        lines = build_line_forms(fresh)
        logger.info(
            "slip_resolved",
            extra={
                "slip_id": fresh.id,
                "sales_order_id": fresh.sales_order_id,
                "source": source,
                "line_count": len(lines),
                "slip_status": fresh.status.value,
            },
        )
        return ResolvedSlip(slip=fresh, lines=lines, source=source)

    async def pending(self) -> list[PackagingSlip]:
        """Slips waiting to be dispatched, for the factory dispatch queue."""
        slips = await self._gateway.list_pending_slips()
        logger.debug("pending_slips_listed", extra={"count": len(slips)})
        return slips
