"""
Tests for PostDispatchSideEffects (dispatch_services.post_dispatch).

Covers:
- Strict order: invoice lookup, then email
- Each stage is fail-soft and reports why it did not contribute
- email_sent reflects what actually happened
"""

import asyncio

import pytest

from dispatch_kernel.domain.messages import DispatchConfirmResponse
from dispatch_kernel.domain.outcome import StageStatus
from dispatch_kernel.exceptions import BackendRejectedError, TransportError
from dispatch_services.post_dispatch import (
    SKIP_EMAIL_NOT_REQUESTED,
    SKIP_NO_INVOICE,
    SKIP_NO_INVOICE_CREATED,
    PostDispatchSideEffects,
)


def _run(gateway, response, order_id=500, send_email=True):
    return asyncio.run(PostDispatchSideEffects(gateway).run(response, order_id, send_email))


@pytest.fixture
def invoiced():
    return DispatchConfirmResponse(
        packing_slip_id=1, sales_order_id=500, final_invoice_id=77, dispatched=True,
    )


class TestHappyPath:

    def test_lookup_then_email(self, gateway, invoiced, invoice_77):
        gateway.invoices[500] = invoice_77

        result = _run(gateway, invoiced)

        assert gateway.calls == [("get_invoice_by_order", 500), ("send_invoice_email", 77)]
        assert result.invoice_id == 77
        assert result.invoice_number == "INV-0099"
        assert result.email_sent is True
        assert result.warnings == ()

    def test_email_not_requested(self, gateway, invoiced, invoice_77):
        gateway.invoices[500] = invoice_77

        result = _run(gateway, invoiced, send_email=False)

        assert gateway.call_names == ["get_invoice_by_order"]
        assert result.invoice_id == 77
        assert result.email_sent is False
        assert result.email_stage.reason == SKIP_EMAIL_NOT_REQUESTED


class TestSkippedStages:

    def test_no_invoice_created_skips_everything(self, gateway):
        response = DispatchConfirmResponse(packing_slip_id=1, sales_order_id=500, dispatched=True)

        result = _run(gateway, response)

        assert gateway.calls == []
        assert result.invoice_id == 0
        assert result.invoice_stage.reason == SKIP_NO_INVOICE_CREATED
        assert result.email_stage.reason == SKIP_NO_INVOICE


class TestFailSoft:

    def test_lookup_failure_means_no_email(self, gateway, invoiced, captured_logs):
        # No invoice registered: the fake raises InvoiceNotFoundError
        result = _run(gateway, invoiced)

        assert gateway.call_names == ["get_invoice_by_order"]
        assert result.invoice_id == 0
        assert result.invoice_number is None
        assert result.email_sent is False
        assert result.invoice_stage.status is StageStatus.FAILED
        assert result.invoice_stage.error_code == "INVOICE_NOT_FOUND"
        assert result.email_stage.status is StageStatus.SKIPPED

        warnings = [r for r in captured_logs() if r["level"] == "WARNING"]
        assert [r["message"] for r in warnings] == ["invoice_lookup_failed"]

    def test_lookup_transport_error_swallowed(self, gateway, invoiced):
        gateway.invoices[500] = TransportError("Request timed out: GET /api/v1/invoices")

        result = _run(gateway, invoiced)

        assert result.invoice_stage.error_code == "TRANSPORT_ERROR"
        assert result.email_sent is False

    def test_email_failure_keeps_invoice(self, gateway, invoiced, invoice_77):
        gateway.invoices[500] = invoice_77
        gateway.email_error = BackendRejectedError("SMTP relay unavailable", status_code=502)

        result = _run(gateway, invoiced)

        assert result.invoice_id == 77
        assert result.invoice_number == "INV-0099"
        assert result.email_sent is False
        assert result.email_stage.reason == "SMTP relay unavailable"
        assert result.warnings == ("invoice_email: SMTP relay unavailable",)
