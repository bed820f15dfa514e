"""
dispatch_services.rest_client -- ``requests``-backed DispatchGateway.

Responsibility:
    Speaks the backend's REST contract: builds URLs and headers, encodes
    request bodies, unwraps ``{success, data, message}`` envelopes and turns
    every failure into a typed ``GatewayError``.  Blocking ``requests`` calls
    run in a worker thread via ``asyncio.to_thread`` so each backend call is
    an awaited suspension point for the caller's event loop.

Architecture position:
    Services layer.  Implements ``dispatch_services.gateway.DispatchGateway``.

Invariants enforced:
    - No request is ever retried by this client.
    - Every POST carries a fresh ``Idempotency-Key``.
    - Quantities leave as JSON numbers with the same value the user typed;
      nothing is rounded.
    - Auth and tenant headers come only from the injected ``AuthSession``.

Failure modes:
    - ``TransportError`` -- timeout, connection error or other
      ``requests.RequestException``.
    - ``BackendRejectedError`` -- non-2xx status or ``success: false``.
    - ``SlipNotFoundError`` -- slip lookup answered 404 or with no data.
    - ``InvoiceNotFoundError`` -- invoice lookup returned an empty list.
"""

from __future__ import annotations

import asyncio
import time
from typing import Any, Mapping
from uuid import uuid4

import requests
import simplejson

from dispatch_config.schema import ClientConfig
from dispatch_kernel.domain.messages import (
    DispatchConfirmResponse,
    FactoryDispatchRequest,
    FactoryDispatchResponse,
    InvoiceSummary,
    SalesDispatchRequest,
)
from dispatch_kernel.domain.session import AuthSession
from dispatch_kernel.domain.slip import PackagingSlip
from dispatch_kernel.exceptions import (
    BackendRejectedError,
    InvoiceNotFoundError,
    SlipNotFoundError,
    TransportError,
)
from dispatch_kernel.logging_config import get_logger

logger = get_logger("services.rest_client")

SLIP_PATH = "/api/v1/dispatch/slip/{slip_id}"
SLIP_BY_ORDER_PATH = "/api/v1/dispatch/order/{order_id}"
PENDING_SLIPS_PATH = "/api/v1/dispatch/pending"
SALES_CONFIRM_PATH = "/api/v1/sales/dispatch/confirm"
FACTORY_CONFIRM_PATH = "/api/v1/dispatch/confirm"
INVOICES_PATH = "/api/v1/invoices"
INVOICE_EMAIL_PATH = "/api/v1/invoices/{invoice_id}/email"
INVOICE_PDF_PATH = "/api/v1/invoices/{invoice_id}/pdf"

_MUTATING_METHODS = frozenset({"POST", "PUT", "PATCH"})
_ERROR_KEYS = ("reason", "message", "error", "errorMessage")


def encode_body(payload: Mapping[str, Any]) -> str:
    """Serialize a request body; Decimal values are written as their exact digits."""
    return simplejson.dumps(payload, use_decimal=True)


def _first_text(source: Any, keys: tuple[str, ...]) -> str | None:
    if not isinstance(source, Mapping):
        return None
    for key in keys:
        value = source.get(key)
        if isinstance(value, str) and value.strip():
            return value.strip()
    return None


def extract_error_message(body: Any, fallback: str) -> str:
    """Pull a human-readable message out of an error body, nested keys searched last."""
    if isinstance(body, str) and body.strip():
        return body.strip()
    if isinstance(body, Mapping):
        candidate = (
            _first_text(body, _ERROR_KEYS)
            or _first_text(body.get("data"), ("reason", "message", "error"))
            or _first_text(body.get("details"), ("reason", "message"))
        )
        if candidate is None:
            errors = body.get("errors")
            if isinstance(errors, list) and errors:
                candidate = _first_text(errors[0], ("message",))
        if candidate:
            return candidate
    return fallback


def unwrap_envelope(body: Any, method: str, path: str) -> Any:
    """Return ``data`` from a ``{success, data, message}`` envelope; bare bodies pass through."""
    if isinstance(body, Mapping) and "success" in body:
        if not body.get("success"):
            raise BackendRejectedError(
                body.get("message") or "Operation failed",
                status_code=None,
                method=method,
                path=path,
            )
        return body.get("data")
    return body


class RestDispatchGateway:
    """
    DispatchGateway over HTTP.

    Contract:
        Receives configuration and the caller's ``AuthSession`` by
        constructor injection; owns one ``requests.Session`` for connection
        reuse.  Use as a context manager or call ``close()``.
    """

    def __init__(
        self,
        config: ClientConfig,
        session: AuthSession,
        http: requests.Session | None = None,
    ) -> None:
        self._config = config
        self._session = session
        self._http = http or requests.Session()

    def __enter__(self) -> RestDispatchGateway:
        return self

    def __exit__(self, *exc: Any) -> None:
        self.close()

    def close(self) -> None:
        self._http.close()

    # ------------------------------------------------------------------
    # Transport
    # ------------------------------------------------------------------

    def _headers(self, method: str, has_body: bool) -> dict[str, str]:
        headers = {"Accept": "application/json"}
        if has_body:
            headers["Content-Type"] = "application/json"
        headers.update(self._session.auth_headers())
        if method in _MUTATING_METHODS:
            headers["Idempotency-Key"] = str(uuid4())
        return headers

    def _request(
        self,
        method: str,
        path: str,
        *,
        params: dict[str, Any] | None = None,
        payload: Mapping[str, Any] | None = None,
    ) -> Any:
        url = f"{self._config.base_url}{path}"
        data = encode_body(payload) if payload is not None else None
        started = time.monotonic()
        try:
            response = self._http.request(
                method,
                url,
                params=params,
                data=data,
                headers=self._headers(method, data is not None),
                timeout=self._config.timeout_seconds,
                verify=self._config.verify_tls,
            )
        except requests.Timeout as exc:
            logger.warning(
                "gateway_request_timeout",
                extra={"method": method, "path": path},
            )
            raise TransportError(
                f"Request timed out: {method} {path}", method=method, path=path,
            ) from exc
        except requests.RequestException as exc:
            logger.warning(
                "gateway_request_failed",
                extra={"method": method, "path": path, "error": str(exc)},
            )
            raise TransportError(
                str(exc) or f"Request failed: {method} {path}", method=method, path=path,
            ) from exc

        body = self._parse_body(response)
        logger.debug(
            "gateway_response",
            extra={
                "method": method,
                "path": path,
                "status_code": response.status_code,
                "duration_ms": round((time.monotonic() - started) * 1000, 3),
            },
        )
        if not response.ok:
            raise BackendRejectedError(
                extract_error_message(body, f"Request failed ({response.status_code})"),
                status_code=response.status_code,
                method=method,
                path=path,
            )
        return body

    @staticmethod
    def _parse_body(response: requests.Response) -> Any:
        if not response.content:
            return None
        try:
            return response.json()
        except ValueError:
            return response.text

    def _call(
        self,
        method: str,
        path: str,
        *,
        params: dict[str, Any] | None = None,
        payload: Mapping[str, Any] | None = None,
    ) -> Any:
        body = self._request(method, path, params=params, payload=payload)
        return unwrap_envelope(body, method, path)

    async def _acall(self, method: str, path: str, **kwargs: Any) -> Any:
        return await asyncio.to_thread(self._call, method, path, **kwargs)

    # ------------------------------------------------------------------
    # Slips
    # ------------------------------------------------------------------

    async def _fetch_slip(
        self, path: str, slip_id: int | None = None, order_id: int | None = None,
    ) -> PackagingSlip:
        try:
            data = await self._acall("GET", path)
        except BackendRejectedError as exc:
            if exc.status_code == 404:
                raise SlipNotFoundError(slip_id=slip_id, order_id=order_id) from exc
            raise
        if not data:
            raise SlipNotFoundError(slip_id=slip_id, order_id=order_id)
        return PackagingSlip.from_dict(data)

    async def get_slip(self, slip_id: int) -> PackagingSlip:
        return await self._fetch_slip(SLIP_PATH.format(slip_id=slip_id), slip_id=slip_id)

    async def get_slip_by_order(self, order_id: int) -> PackagingSlip:
        return await self._fetch_slip(
            SLIP_BY_ORDER_PATH.format(order_id=order_id), order_id=order_id,
        )

    async def list_pending_slips(self) -> list[PackagingSlip]:
        data = await self._acall("GET", PENDING_SLIPS_PATH)
        return [PackagingSlip.from_dict(item) for item in (data or [])]

    # ------------------------------------------------------------------
    # Confirmation
    # ------------------------------------------------------------------

    async def confirm_sales_dispatch(
        self, request: SalesDispatchRequest,
    ) -> DispatchConfirmResponse:
        data = await self._acall("POST", SALES_CONFIRM_PATH, payload=request.to_payload())
        return DispatchConfirmResponse.from_dict(data)

    async def confirm_factory_dispatch(
        self, request: FactoryDispatchRequest,
    ) -> FactoryDispatchResponse:
        data = await self._acall("POST", FACTORY_CONFIRM_PATH, payload=request.to_payload())
        return FactoryDispatchResponse.from_dict(data)

    # ------------------------------------------------------------------
    # Invoices
    # ------------------------------------------------------------------

    async def get_invoice_by_order(self, order_id: int) -> InvoiceSummary:
        data = await self._acall("GET", INVOICES_PATH, params={"salesOrderId": order_id})
        if not data:
            raise InvoiceNotFoundError(order_id)
        return InvoiceSummary.from_dict(data[0])

    async def send_invoice_email(self, invoice_id: int) -> None:
        await self._acall("POST", INVOICE_EMAIL_PATH.format(invoice_id=invoice_id))

    def invoice_pdf_url(self, invoice_id: int) -> str:
        return f"{self._config.base_url}{INVOICE_PDF_PATH.format(invoice_id=invoice_id)}"
