"""
Pytest fixtures for the dispatch client test suite.

Provides:
- Structured logging configured for the whole session, plus a
  ``captured_logs`` fixture returning parsed JSON records
- ``FakeGateway``: an in-memory structural stand-in for DispatchGateway
  that records every call in order
- Builders for packaging slip payloads and workflow contexts
"""

import asyncio
import json
import logging
from decimal import Decimal
from io import StringIO
from typing import Any

import pytest

from dispatch_config.schema import ClientConfig
from dispatch_kernel.domain.messages import (
    DispatchConfirmResponse,
    DispatchFlow,
    FactoryDispatchResponse,
    InvoiceSummary,
)
from dispatch_kernel.domain.session import AuthSession
from dispatch_kernel.domain.slip import PackagingSlip
from dispatch_kernel.exceptions import InvoiceNotFoundError, SlipNotFoundError
from dispatch_kernel.logging_config import (
    LogContext,
    StructuredFormatter,
    configure_logging,
    reset_logging,
)
from dispatch_services.context import WorkflowContext


# =============================================================================
# Logging fixtures
# =============================================================================


@pytest.fixture(autouse=True, scope="session")
def _configure_test_logging():
    """Configure structured logging for the test suite."""
    reset_logging()
    configure_logging(level=logging.DEBUG, stream=StringIO())
    yield
    reset_logging()


@pytest.fixture(autouse=True)
def _clear_log_context():
    """Clear LogContext between tests to prevent cross-test contamination."""
    LogContext.clear()
    yield
    LogContext.clear()


@pytest.fixture
def captured_logs():
    """
    Capture dispatch_kernel logs as parsed JSON dicts.

    Usage::

        def test_something(captured_logs):
            ...
            logs = captured_logs()
            assert any(r["message"] == "dispatch_confirmed" for r in logs)
    """
    stream = StringIO()
    handler = logging.StreamHandler(stream)
    handler.setFormatter(StructuredFormatter())
    root = logging.getLogger("dispatch_kernel")
    previous_level = root.level
    root.addHandler(handler)
    root.setLevel(logging.DEBUG)

    def _get_records() -> list[dict]:
        lines = stream.getvalue().strip().split("\n")
        return [json.loads(line) for line in lines if line]

    yield _get_records

    root.removeHandler(handler)
    root.setLevel(previous_level)


# =============================================================================
# Payload builders
# =============================================================================


def slip_payload(
    slip_id: int = 1,
    order_id: int = 500,
    lines: tuple = ((101, "10", None, "B-01"), (102, "5", None, "B-02")),
    **overrides: Any,
) -> dict:
    """
    A PackagingSlipDto as the backend sends it.

    ``lines`` holds ``(line_id, ordered, shipped, batch_code)`` tuples.
    """
    payload = {
        "id": slip_id,
        "salesOrderId": order_id,
        "slipNumber": f"PS-{slip_id:04d}",
        "orderNumber": f"SO-{order_id}",
        "dealerName": "Acme Traders",
        "status": "RESERVED",
        "lines": [
            {
                "id": line_id,
                "productCode": f"P-{line_id}",
                "productName": f"Product {line_id}",
                "batchCode": batch_code,
                "orderedQuantity": ordered,
                "shippedQuantity": shipped,
                "unitCost": "12.50",
            }
            for line_id, ordered, shipped, batch_code in lines
        ],
    }
    payload.update(overrides)
    return payload


def make_slip(**kwargs: Any) -> PackagingSlip:
    return PackagingSlip.from_dict(slip_payload(**kwargs))


@pytest.fixture
def slip_factory():
    return make_slip


@pytest.fixture
def slip_payload_factory():
    return slip_payload


# =============================================================================
# Structural fake for the DispatchGateway protocol
# =============================================================================


class FakeGateway:
    """
    In-memory DispatchGateway.

    Responses may be set to an exception instance, which is then raised.
    ``confirm_gate`` (an asyncio.Event) holds confirmation calls open until
    it is set, for in-flight tests.
    """

    def __init__(self) -> None:
        self.calls: list[tuple[str, Any]] = []
        self.slips: dict[int, PackagingSlip] = {}
        self.slips_by_order: dict[int, PackagingSlip] = {}
        self.pending: list[PackagingSlip] = []
        self.sales_response: Any = DispatchConfirmResponse(
            packing_slip_id=1, sales_order_id=500, dispatched=True,
        )
        self.factory_response: Any = FactoryDispatchResponse(
            packaging_slip_id=1, status="DISPATCHED", dispatched_lines=1,
        )
        self.invoices: dict[int, Any] = {}
        self.email_error: Exception | None = None
        self.confirm_gate: asyncio.Event | None = None

    @property
    def call_names(self) -> list[str]:
        return [name for name, _ in self.calls]

    def calls_to(self, name: str) -> list[Any]:
        return [arg for call_name, arg in self.calls if call_name == name]

    def add_slip(self, slip: PackagingSlip) -> PackagingSlip:
        self.slips[slip.id] = slip
        self.slips_by_order[slip.sales_order_id] = slip
        return slip

    @staticmethod
    def _answer(value: Any) -> Any:
        if isinstance(value, BaseException):
            raise value
        return value

    async def get_slip(self, slip_id: int) -> PackagingSlip:
        self.calls.append(("get_slip", slip_id))
        if slip_id not in self.slips:
            raise SlipNotFoundError(slip_id=slip_id)
        return self.slips[slip_id]

    async def get_slip_by_order(self, order_id: int) -> PackagingSlip:
        self.calls.append(("get_slip_by_order", order_id))
        if order_id not in self.slips_by_order:
            raise SlipNotFoundError(order_id=order_id)
        return self.slips_by_order[order_id]

    async def list_pending_slips(self) -> list[PackagingSlip]:
        self.calls.append(("list_pending_slips", None))
        return list(self.pending)

    async def confirm_sales_dispatch(self, request):
        self.calls.append(("confirm_sales_dispatch", request))
        if self.confirm_gate is not None:
            await self.confirm_gate.wait()
        return self._answer(self.sales_response)

    async def confirm_factory_dispatch(self, request):
        self.calls.append(("confirm_factory_dispatch", request))
        if self.confirm_gate is not None:
            await self.confirm_gate.wait()
        return self._answer(self.factory_response)

    async def get_invoice_by_order(self, order_id: int) -> InvoiceSummary:
        self.calls.append(("get_invoice_by_order", order_id))
        if order_id not in self.invoices:
            raise InvoiceNotFoundError(order_id)
        return self._answer(self.invoices[order_id])

    async def send_invoice_email(self, invoice_id: int) -> None:
        self.calls.append(("send_invoice_email", invoice_id))
        if self.email_error is not None:
            raise self.email_error

    def invoice_pdf_url(self, invoice_id: int) -> str:
        return f"http://erp.test/api/v1/invoices/{invoice_id}/pdf"


@pytest.fixture
def gateway() -> FakeGateway:
    gw = FakeGateway()
    gw.add_slip(make_slip())
    return gw


@pytest.fixture
def session() -> AuthSession:
    return AuthSession(access_token="tok-123", company_code="ACME", display_name="Dana Ops")


@pytest.fixture
def make_context(gateway, session):
    """Build a WorkflowContext over the shared fake gateway."""

    def _make(
        flow: DispatchFlow = DispatchFlow.SALES,
        config: ClientConfig | None = None,
        **kwargs: Any,
    ) -> WorkflowContext:
        return WorkflowContext(
            gateway=gateway,
            session=kwargs.pop("session", session),
            flow=flow,
            config=config or ClientConfig.with_defaults(),
            **kwargs,
        )

    return _make


@pytest.fixture
def invoice_77() -> InvoiceSummary:
    return InvoiceSummary(
        id=77,
        invoice_number="INV-0099",
        status="ISSUED",
        total_amount=Decimal("125.00"),
        currency="INR",
        sales_order_id=500,
    )
