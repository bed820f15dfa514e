"""
dispatch_services.result_presenter -- Terminal-state summary of a dispatch.

``present`` is a pure function of an orchestrator's current state.  It
never calls the backend; the invoice download is only a URL for the
caller to open.
"""

from __future__ import annotations

from dataclasses import dataclass

from dispatch_kernel.domain.workflow import WorkflowState
from dispatch_kernel.exceptions import SlipNotFoundError
from dispatch_services.dispatch_orchestrator import DispatchOrchestrator

SUCCESS_HEADLINE = "Dispatch Successful"
FAILURE_HEADLINE = "Dispatch Failed"
MISSING_SLIP_HEADLINE = "No Packaging Slip"
MISSING_SLIP_MESSAGE = (
    "No packaging slip found. Please reserve the order first to create a packaging slip."
)


@dataclass(frozen=True)
class ResultView:
    """What the caller shows once the workflow settles."""
    state: WorkflowState
    headline: str | None = None
    messages: tuple[str, ...] = ()
    order_label: str | None = None
    slip_label: str | None = None
    download_url: str | None = None
    error: str | None = None
    can_resubmit: bool = False
    remediation: str | None = None
    warnings: tuple[str, ...] = ()


def _order_label(orchestrator: DispatchOrchestrator) -> str | None:
    order, slip = orchestrator.order, orchestrator.slip
    if order is not None and order.order_number:
        return order.order_number
    if slip is not None and slip.order_number:
        return slip.order_number
    order_id = orchestrator.order_id
    return f"#{order_id}" if order_id else None


def _present_success(
    orchestrator: DispatchOrchestrator,
    order_label: str | None,
    slip_label: str | None,
) -> ResultView:
    result = orchestrator.result
    messages = [f"Order {order_label} dispatched (slip {slip_label})."]
    if result.invoice_number:
        messages.append(f"Invoice {result.invoice_number} generated.")
    if result.email_sent:
        messages.append("Invoice emailed to dealer.")

    download_url = None
    if result.invoice_id > 0:
        download_url = orchestrator.context.gateway.invoice_pdf_url(result.invoice_id)

    warnings: tuple[str, ...] = ()
    if orchestrator.context.config.surface_side_effect_warnings:
        warnings = result.warnings

    return ResultView(
        state=WorkflowState.SUCCEEDED,
        headline=SUCCESS_HEADLINE,
        messages=tuple(messages),
        order_label=order_label,
        slip_label=slip_label,
        download_url=download_url,
        warnings=warnings,
    )


def present(orchestrator: DispatchOrchestrator) -> ResultView:
    """Render the orchestrator's state into a ``ResultView``."""
    state = orchestrator.state
    slip = orchestrator.slip
    order_label = _order_label(orchestrator)
    slip_label = slip.slip_label if slip is not None else None

    if state is WorkflowState.SUCCEEDED and orchestrator.result is not None:
        return _present_success(orchestrator, order_label, slip_label)

    if state is WorkflowState.FAILED:
        return ResultView(
            state=state,
            headline=FAILURE_HEADLINE,
            order_label=order_label,
            slip_label=slip_label,
            error=orchestrator.error,
            can_resubmit=orchestrator.can_confirm,
        )

    last_error = orchestrator.last_error
    if state is WorkflowState.IDLE and isinstance(last_error, SlipNotFoundError):
        return ResultView(
            state=state,
            headline=MISSING_SLIP_HEADLINE,
            order_label=order_label,
            error=str(last_error) or MISSING_SLIP_MESSAGE,
            remediation=last_error.remediation,
        )

    # Ready, or idle after a resolution error, or a guard rejection
    return ResultView(
        state=state,
        order_label=order_label,
        slip_label=slip_label,
        error=orchestrator.error,
        can_resubmit=orchestrator.can_confirm,
    )
