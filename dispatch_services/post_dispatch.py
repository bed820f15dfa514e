"""
dispatch_services.post_dispatch -- Best-effort invoice lookup and email.

Responsibility:
    After a sales dispatch has been confirmed, look up the invoice it
    created and, if asked, email it to the dealer.  Each stage reports a
    ``StageOutcome`` so callers can see why a stage did not contribute.

Invariants enforced:
    - Strict order: dispatch confirmed -> invoice lookup -> email.
      A stage never starts unless the stage before it succeeded.
    - Stage failures are logged and recorded, never raised.  Dispatch has
      already committed on the backend and cannot be undone from here.
    - ``email_sent`` is true only when the email call actually succeeded.
    - ``invoice_id`` is 0 unless the lookup returned an invoice.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Union

from dispatch_kernel.domain.messages import (
    DispatchConfirmResponse,
    DispatchFlow,
    FactoryDispatchResponse,
    InvoiceSummary,
)
from dispatch_kernel.domain.outcome import StageOutcome
from dispatch_kernel.logging_config import get_logger
from dispatch_services.gateway import DispatchGateway

logger = get_logger("services.post_dispatch")

STAGE_INVOICE_LOOKUP = "invoice_lookup"
STAGE_INVOICE_EMAIL = "invoice_email"

SKIP_NO_INVOICE_CREATED = "dispatch response carried no invoice id"
SKIP_NO_ORDER_ID = "no sales order id to look the invoice up by"
SKIP_EMAIL_NOT_REQUESTED = "invoice email not requested"
SKIP_NO_INVOICE = "no invoice available to email"
SKIP_FACTORY_FLOW = "factory flow produces no commercial documents"

ConfirmResponse = Union[DispatchConfirmResponse, FactoryDispatchResponse]


@dataclass(frozen=True)
class DispatchResult:
    """What actually happened after a successful confirmation."""
    flow: DispatchFlow
    response: ConfirmResponse
    invoice_id: int = 0
    invoice_number: str | None = None
    email_sent: bool = False
    invoice_stage: StageOutcome | None = None
    email_stage: StageOutcome | None = None

    @classmethod
    def for_factory(cls, response: FactoryDispatchResponse) -> DispatchResult:
        return cls(
            flow=DispatchFlow.FACTORY,
            response=response,
            invoice_stage=StageOutcome.skipped(STAGE_INVOICE_LOOKUP, SKIP_FACTORY_FLOW),
            email_stage=StageOutcome.skipped(STAGE_INVOICE_EMAIL, SKIP_FACTORY_FLOW),
        )

    @property
    def warnings(self) -> tuple[str, ...]:
        """Reasons of stages that were attempted and failed."""
        return tuple(
            f"{stage.stage}: {stage.reason}"
            for stage in (self.invoice_stage, self.email_stage)
            if stage is not None and stage.is_failed
        )


class PostDispatchSideEffects:
    """Runs the invoice -> email chain for the sales flow."""

    def __init__(self, gateway: DispatchGateway) -> None:
        self._gateway = gateway

    async def _lookup_invoice(
        self, response: DispatchConfirmResponse, order_id: int | None,
    ) -> StageOutcome:
        if not response.created_invoice:
            return StageOutcome.skipped(STAGE_INVOICE_LOOKUP, SKIP_NO_INVOICE_CREATED)
        if not order_id:
            return StageOutcome.skipped(STAGE_INVOICE_LOOKUP, SKIP_NO_ORDER_ID)
        try:
            invoice = await self._gateway.get_invoice_by_order(order_id)
        except Exception as e:  # noqa: BLE001
            logger.warning(
                "invoice_lookup_failed",
                extra={
                    "order_id": order_id,
                    "final_invoice_id": response.final_invoice_id,
                    "error": str(e),
                    "error_code": getattr(e, "code", None),
                },
            )
            return StageOutcome.failed(STAGE_INVOICE_LOOKUP, e)
        return StageOutcome.ok(STAGE_INVOICE_LOOKUP, invoice)

    async def _email_invoice(self, invoice_stage: StageOutcome, send_email: bool) -> StageOutcome:
        if not send_email:
            return StageOutcome.skipped(STAGE_INVOICE_EMAIL, SKIP_EMAIL_NOT_REQUESTED)
        if not invoice_stage.is_ok:
            return StageOutcome.skipped(STAGE_INVOICE_EMAIL, SKIP_NO_INVOICE)
        invoice: InvoiceSummary = invoice_stage.value
        try:
            await self._gateway.send_invoice_email(invoice.id)
        except Exception as e:  # noqa: BLE001
            logger.warning(
                "invoice_email_failed",
                extra={
                    "invoice_id": invoice.id,
                    "error": str(e),
                    "error_code": getattr(e, "code", None),
                },
            )
            return StageOutcome.failed(STAGE_INVOICE_EMAIL, e)
        return StageOutcome.ok(STAGE_INVOICE_EMAIL, invoice.id)

    async def run(
        self,
        response: DispatchConfirmResponse,
        order_id: int | None,
        send_email: bool,
    ) -> DispatchResult:
        """Run both stages in order and summarize what succeeded."""
        invoice_stage = await self._lookup_invoice(response, order_id)
        email_stage = await self._email_invoice(invoice_stage, send_email)

        invoice: InvoiceSummary | None = invoice_stage.value if invoice_stage.is_ok else None
        result = DispatchResult(
            flow=DispatchFlow.SALES,
            response=response,
            invoice_id=invoice.id if invoice is not None else 0,
            invoice_number=invoice.invoice_number if invoice is not None else None,
            email_sent=email_stage.is_ok,
            invoice_stage=invoice_stage,
            email_stage=email_stage,
        )
        logger.info(
            "post_dispatch_completed",
            extra={
                "invoice_stage": invoice_stage.status.value,
                "email_stage": email_stage.status.value,
                "invoice_id": result.invoice_id,
                "email_sent": result.email_sent,
            },
        )
        return result
