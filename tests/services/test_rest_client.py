"""
Tests for RestDispatchGateway (dispatch_services.rest_client).

The ``requests.Session`` is a MagicMock; no network is touched.

Covers:
- URLs, headers, Idempotency-Key on POST, JSON body encoding
- Envelope unwrapping and error-message extraction
- Transport failures mapped to TransportError
- 404 / empty slip lookups mapped to SlipNotFoundError
"""

import asyncio
import json
from decimal import Decimal
from unittest.mock import MagicMock

import pytest
import requests

from dispatch_config.schema import ClientConfig
from dispatch_kernel.domain.dispatch_lines import DispatchLineForm
from dispatch_kernel.domain.messages import build_factory_request, build_sales_request
from dispatch_kernel.domain.session import AuthSession
from dispatch_kernel.exceptions import (
    BackendRejectedError,
    InvoiceNotFoundError,
    SlipNotFoundError,
    TransportError,
)
from dispatch_services.rest_client import (
    RestDispatchGateway,
    encode_body,
    extract_error_message,
    unwrap_envelope,
)


def _response(status_code=200, body=None, text=None):
    response = MagicMock(spec=requests.Response)
    response.status_code = status_code
    response.ok = 200 <= status_code < 300
    if body is not None:
        response.content = json.dumps(body).encode()
        response.json.return_value = body
    elif text is not None:
        response.content = text.encode()
        response.json.side_effect = ValueError("not json")
        response.text = text
    else:
        response.content = b""
    return response


@pytest.fixture
def http():
    return MagicMock(spec=requests.Session)


@pytest.fixture
def client(http):
    return RestDispatchGateway(
        ClientConfig(base_url="https://erp.example.com/", timeout_seconds=15),
        AuthSession(access_token="tok-123", company_code="ACME", display_name="Dana"),
        http=http,
    )


def _sent(http):
    args, kwargs = http.request.call_args
    return args, kwargs


class TestHelpers:

    def test_encode_keeps_decimal_value(self):
        body = json.loads(encode_body({"a": Decimal("12"), "b": Decimal("2.5")}))
        assert body == {"a": 12, "b": 2.5}

    def test_encode_high_precision_decimal_unrounded(self):
        text = encode_body({
            "shipQty": Decimal("12345678901234567.5"),
            "discount": Decimal("0.10000000000000000001"),
        })

        assert '"shipQty": 12345678901234567.5' in text
        assert '"discount": 0.10000000000000000001' in text
        assert json.loads(text, parse_float=Decimal) == {
            "shipQty": Decimal("12345678901234567.5"),
            "discount": Decimal("0.10000000000000000001"),
        }

    def test_posted_body_keeps_entered_precision(self, client, http):
        http.request.return_value = _response(body={"packingSlipId": 1, "salesOrderId": 500})
        request = build_sales_request(
            1, 500, (DispatchLineForm(line_id=101, ship_qty=Decimal("3.333333333333333333")),),
        )

        asyncio.run(client.confirm_sales_dispatch(request))

        _, kwargs = _sent(http)
        sent = json.loads(kwargs["data"], parse_float=Decimal)
        assert sent["lines"][0]["shipQty"] == Decimal("3.333333333333333333")

    @pytest.mark.parametrize("body, expected", [
        ({"message": "Credit limit exceeded"}, "Credit limit exceeded"),
        ({"reason": "Out of stock", "message": "ignored"}, "Out of stock"),
        ({"data": {"reason": "Batch locked"}}, "Batch locked"),
        ({"details": {"message": "Period closed"}}, "Period closed"),
        ({"errors": [{"message": "lineId required"}]}, "lineId required"),
        ("plain text failure", "plain text failure"),
        ({}, "fallback"),
        (None, "fallback"),
    ])
    def test_extract_error_message(self, body, expected):
        assert extract_error_message(body, "fallback") == expected

    def test_unwrap_success(self):
        assert unwrap_envelope({"success": True, "data": [1]}, "GET", "/x") == [1]

    def test_unwrap_failure_uses_message(self):
        with pytest.raises(BackendRejectedError) as exc_info:
            unwrap_envelope({"success": False, "message": "Denied"}, "GET", "/x")
        assert str(exc_info.value) == "Denied"

    def test_unwrap_failure_fallback(self):
        with pytest.raises(BackendRejectedError, match="Operation failed"):
            unwrap_envelope({"success": False}, "GET", "/x")

    def test_bare_body_passes_through(self):
        assert unwrap_envelope({"id": 1}, "GET", "/x") == {"id": 1}


class TestSlips:

    def test_get_slip(self, client, http, slip_payload_factory):
        http.request.return_value = _response(
            body={"success": True, "data": slip_payload_factory()},
        )

        slip = asyncio.run(client.get_slip(1))

        assert slip.id == 1
        args, kwargs = _sent(http)
        assert args == ("GET", "https://erp.example.com/api/v1/dispatch/slip/1")
        assert kwargs["timeout"] == 15
        assert kwargs["verify"] is True
        assert kwargs["data"] is None
        headers = kwargs["headers"]
        assert headers["Authorization"] == "Bearer tok-123"
        assert headers["X-Company-Id"] == "ACME"
        assert headers["X-Company-Code"] == "ACME"
        assert "Idempotency-Key" not in headers
        assert "Content-Type" not in headers

    def test_slip_by_order_404_is_not_found(self, client, http):
        http.request.return_value = _response(404, body={"message": "Not found"})

        with pytest.raises(SlipNotFoundError) as exc_info:
            asyncio.run(client.get_slip_by_order(500))
        assert exc_info.value.order_id == 500
        assert http.request.call_args[0][1].endswith("/api/v1/dispatch/order/500")

    def test_empty_data_is_not_found(self, client, http):
        http.request.return_value = _response(body={"success": True, "data": None})

        with pytest.raises(SlipNotFoundError):
            asyncio.run(client.get_slip(3))

    def test_other_errors_propagate(self, client, http):
        http.request.return_value = _response(500, body={"error": "Internal error"})

        with pytest.raises(BackendRejectedError) as exc_info:
            asyncio.run(client.get_slip(3))
        assert exc_info.value.status_code == 500
        assert str(exc_info.value) == "Internal error"

    def test_pending(self, client, http, slip_payload_factory):
        http.request.return_value = _response(body=[slip_payload_factory()])

        slips = asyncio.run(client.list_pending_slips())

        assert [s.id for s in slips] == [1]


class TestConfirmation:

    def test_sales_confirm_posts_payload(self, client, http):
        http.request.return_value = _response(
            body={"packingSlipId": 1, "salesOrderId": 500, "finalInvoiceId": 77, "dispatched": True},
        )
        request = build_sales_request(
            1, 500, (DispatchLineForm(line_id=101, ship_qty=Decimal("10")),),
        )

        response = asyncio.run(client.confirm_sales_dispatch(request))

        assert response.final_invoice_id == 77
        args, kwargs = _sent(http)
        assert args == ("POST", "https://erp.example.com/api/v1/sales/dispatch/confirm")
        assert json.loads(kwargs["data"]) == {
            "packingSlipId": 1,
            "orderId": 500,
            "lines": [{"lineId": 101, "shipQty": 10}],
        }
        assert kwargs["headers"]["Content-Type"] == "application/json"
        assert kwargs["headers"]["Idempotency-Key"]

    def test_each_post_gets_fresh_idempotency_key(self, client, http):
        http.request.return_value = _response(body={"packagingSlipId": 1})
        request = build_factory_request(
            1, (DispatchLineForm(line_id=101, ship_qty=Decimal("1")),), "Dana",
        )

        asyncio.run(client.confirm_factory_dispatch(request))
        asyncio.run(client.confirm_factory_dispatch(request))

        keys = {c.kwargs["headers"]["Idempotency-Key"] for c in http.request.call_args_list}
        assert len(keys) == 2

    def test_rejection_message_verbatim(self, client, http):
        http.request.return_value = _response(
            422, body={"success": False, "message": "Credit limit exceeded for dealer"},
        )
        request = build_sales_request(
            1, 500, (DispatchLineForm(line_id=101, ship_qty=Decimal("1")),),
        )

        with pytest.raises(BackendRejectedError) as exc_info:
            asyncio.run(client.confirm_sales_dispatch(request))
        assert str(exc_info.value) == "Credit limit exceeded for dealer"
        assert exc_info.value.status_code == 422

    def test_timeout_is_transport_error(self, client, http):
        http.request.side_effect = requests.Timeout("read timed out")
        request = build_sales_request(
            1, 500, (DispatchLineForm(line_id=101, ship_qty=Decimal("1")),),
        )

        with pytest.raises(TransportError) as exc_info:
            asyncio.run(client.confirm_sales_dispatch(request))
        assert exc_info.value.method == "POST"
        assert http.request.call_count == 1

    def test_connection_error_is_transport_error(self, client, http):
        http.request.side_effect = requests.ConnectionError("connection refused")

        with pytest.raises(TransportError, match="connection refused"):
            asyncio.run(client.get_slip(1))


class TestInvoices:

    def test_invoice_by_order_takes_first(self, client, http):
        http.request.return_value = _response(body={
            "success": True,
            "data": [{"id": 77, "invoiceNumber": "INV-0099"}, {"id": 78}],
        })

        invoice = asyncio.run(client.get_invoice_by_order(500))

        assert invoice.id == 77
        _, kwargs = _sent(http)
        assert kwargs["params"] == {"salesOrderId": 500}

    def test_no_invoice(self, client, http):
        http.request.return_value = _response(body={"success": True, "data": []})

        with pytest.raises(InvoiceNotFoundError, match="Invoice for order 500 not found"):
            asyncio.run(client.get_invoice_by_order(500))

    def test_send_email(self, client, http):
        http.request.return_value = _response(204)

        asyncio.run(client.send_invoice_email(77))

        args, kwargs = _sent(http)
        assert args == ("POST", "https://erp.example.com/api/v1/invoices/77/email")
        assert "Idempotency-Key" in kwargs["headers"]

    def test_pdf_url(self, client):
        assert client.invoice_pdf_url(77) == "https://erp.example.com/api/v1/invoices/77/pdf"

    def test_close_closes_session(self, client, http):
        with client:
            pass
        http.close.assert_called_once()
