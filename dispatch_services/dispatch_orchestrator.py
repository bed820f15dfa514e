"""
dispatch_services.dispatch_orchestrator -- Dispatch confirmation state machine.

Responsibility:
    Drive one packaging slip through load, line editing, confirmation and
    the post-dispatch side-effect chain.  Every state change is checked
    against ``DISPATCH_WORKFLOW`` and traced as a ``workflow_transition``
    record to the log and to the context's ``outcome_sink``.

Architecture position:
    Services -- stateful orchestration over the kernel's pure domain.
    Composes SlipResolver, CreditOverrideGate and PostDispatchSideEffects;
    talks to the backend only through the injected ``DispatchGateway``.

Invariants enforced:
    - At most one confirmation in flight per instance.  ``submitting`` is
      entered synchronously, before the first await.
    - Only lines with ship quantity > 0 are sent, in editor order.
    - The flow is fixed by the context; factory requests carry no pricing
      or credit fields.
    - A failed confirmation leaves the line editor exactly as it was.
    - Side-effect failures never move the instance out of ``succeeded``.
    - ``close`` is a no-op while submitting; a closed instance is spent.

Failure modes:
    - Local validation (no shippable line): ``error`` is set, no network
      call is made and the state does not change.
    - Resolution failure: instance returns to ``idle`` with ``error`` set.
    - Backend rejection or transport failure: instance moves to ``failed``
      with the backend message verbatim in ``error``.
    - ``InvalidTransitionError`` / ``SubmissionInProgressError`` for
      illegal use of the instance.  ``close`` while submitting is a no-op
      that returns ``False``.
"""

from __future__ import annotations

import time
from datetime import UTC, datetime
from typing import Any, Callable

from dispatch_kernel.domain.dispatch_lines import (
    DispatchLineForm,
    has_shippable_line,
    update_line,
)
from dispatch_kernel.domain.messages import (
    DispatchFlow,
    DispatchRequest,
    build_factory_request,
    build_sales_request,
)
from dispatch_kernel.domain.slip import PackagingSlip, SalesOrderRef
from dispatch_kernel.domain.workflow import (
    DISPATCH_WORKFLOW,
    EDITABLE_STATES,
    HAS_SHIPPABLE_LINE,
    Transition,
    WorkflowState,
)
from dispatch_kernel.exceptions import (
    FlowFeatureUnavailableError,
    GatewayError,
    InvalidTransitionError,
    NoShippableLinesError,
    SlipResolutionError,
    SubmissionInProgressError,
)
from dispatch_kernel.logging_config import LogContext, get_logger
from dispatch_services.context import WorkflowContext
from dispatch_services.credit_override import CreditOverrideGate
from dispatch_services.post_dispatch import DispatchResult, PostDispatchSideEffects
from dispatch_services.slip_resolver import SlipResolver

logger = get_logger("services.dispatch_orchestrator")

TRACE_TYPE_WORKFLOW_TRANSITION = "WORKFLOW_TRANSITION"

OUTCOME_TRANSITIONED = "transitioned"
OUTCOME_NO_TRANSITION = "no_transition"
OUTCOME_GUARD_FAILED = "guard_failed"
OUTCOME_REFUSED = "refused"


def _emit_workflow_trace(
    workflow_name: str,
    action: str,
    workflow_id: str,
    from_state: str,
    outcome: str,
    reason: str,
    duration_ms: float,
    to_state: str | None = None,
    calls_backend: bool = False,
    outcome_sink: Callable[[dict], None] | None = None,
) -> None:
    """Emit a structured workflow transition record to the log and the sink."""
    record: dict[str, Any] = {
        "trace_type": TRACE_TYPE_WORKFLOW_TRANSITION,
        "ts": datetime.now(UTC).isoformat(),
        "workflow": workflow_name,
        "action": action,
        "entity_type": "PackagingSlip",
        "from_state": from_state,
        "outcome": outcome,
        "reason": reason,
        "duration_ms": round(duration_ms, 3),
    }
    if to_state is not None:
        record["to_state"] = to_state
    record["calls_backend"] = calls_backend
    record.update(LogContext.get_all())
    record["workflow_id"] = workflow_id
    logger.info("workflow_transition", extra=record)
    record["message"] = "workflow_transition"
    if outcome_sink is not None:
        outcome_sink(record)


class DispatchOrchestrator:
    """
    One dispatch confirmation instance.

    Contract:
        Receives everything through the ``WorkflowContext``; holds no
        module-level state.  Callers await ``load`` then ``confirm`` and
        read ``state``, ``lines``, ``error`` and ``result`` in between.
    Guarantees:
        - ``confirm`` sends exactly one confirmation request per call and
          never retries it.
        - ``on_success`` runs exactly once, after ``succeeded`` is reached.
    Non-goals:
        - Does not authorize the credit override; the backend decides.
        - Does not refresh any list views; ``on_success`` lets callers do so.
    """

    def __init__(self, context: WorkflowContext) -> None:
        self._ctx = context
        self._state = WorkflowState(DISPATCH_WORKFLOW.initial_state)
        self._slip: PackagingSlip | None = None
        self._order: SalesOrderRef | None = None
        self._lines: tuple[DispatchLineForm, ...] = ()
        self._error: Exception | None = None
        self._result: DispatchResult | None = None
        self._send_email = context.config.default_send_email
        self._success_notified = False
        self.credit_override = CreditOverrideGate(context.flow)
        self._resolver = SlipResolver(context.gateway)
        self._side_effects = PostDispatchSideEffects(context.gateway)

    # ------------------------------------------------------------------
    # Read-only view
    # ------------------------------------------------------------------

    @property
    def context(self) -> WorkflowContext:
        return self._ctx

    @property
    def workflow_id(self) -> str:
        return self._ctx.workflow_id

    @property
    def flow(self) -> DispatchFlow:
        return self._ctx.flow

    @property
    def state(self) -> WorkflowState:
        return self._state

    @property
    def slip(self) -> PackagingSlip | None:
        return self._slip

    @property
    def order(self) -> SalesOrderRef | None:
        return self._order

    @property
    def lines(self) -> tuple[DispatchLineForm, ...]:
        return self._lines

    @property
    def error(self) -> str | None:
        """Message of the most recent failure, or None."""
        return str(self._error) if self._error is not None else None

    @property
    def last_error(self) -> Exception | None:
        return self._error

    @property
    def result(self) -> DispatchResult | None:
        return self._result

    @property
    def send_email(self) -> bool:
        return self._send_email and not self._ctx.is_factory

    @property
    def order_id(self) -> int | None:
        """Order the sales request names: the caller's order, else the slip's owner."""
        if self._order is not None and self._order.id:
            return self._order.id
        return self._slip.sales_order_id if self._slip is not None else None

    @property
    def can_confirm(self) -> bool:
        return self._state in EDITABLE_STATES and has_shippable_line(self._lines)

    @property
    def can_close(self) -> bool:
        return DISPATCH_WORKFLOW.find_transition(self._state.value, "close") is not None

    # ------------------------------------------------------------------
    # State machine plumbing
    # ------------------------------------------------------------------

    def _log_scope(self):
        return LogContext.bind(
            workflow_id=self._ctx.workflow_id,
            slip_id=str(self._slip.id) if self._slip is not None else None,
            order_id=str(self.order_id) if self.order_id is not None else None,
            flow=self._ctx.flow.value,
            actor=self._ctx.session.display_name,
        )

    def _require_transition(self, action: str, started: float) -> Transition:
        transition = DISPATCH_WORKFLOW.find_transition(self._state.value, action)
        if transition is None:
            reason = (
                f"No transition from '{self._state.value}' via action '{action}' "
                f"in workflow '{DISPATCH_WORKFLOW.name}'"
            )
            _emit_workflow_trace(
                workflow_name=DISPATCH_WORKFLOW.name,
                action=action,
                workflow_id=self._ctx.workflow_id,
                from_state=self._state.value,
                outcome=OUTCOME_NO_TRANSITION,
                reason=reason,
                duration_ms=(time.monotonic() - started) * 1000,
                outcome_sink=self._ctx.outcome_sink,
            )
            raise InvalidTransitionError(DISPATCH_WORKFLOW.name, self._state.value, action)
        return transition

    def _apply(self, transition: Transition, started: float, reason: str = "") -> None:
        from_state = self._state
        self._state = WorkflowState(transition.to_state)
        _emit_workflow_trace(
            workflow_name=DISPATCH_WORKFLOW.name,
            action=transition.action,
            workflow_id=self._ctx.workflow_id,
            from_state=from_state.value,
            outcome=OUTCOME_TRANSITIONED,
            reason=reason or f"{from_state.value} -> {transition.to_state}",
            duration_ms=(time.monotonic() - started) * 1000,
            to_state=transition.to_state,
            calls_backend=transition.calls_backend,
            outcome_sink=self._ctx.outcome_sink,
        )

    def _advance(self, action: str, started: float, reason: str = "") -> None:
        self._apply(self._require_transition(action, started), started, reason)

    # ------------------------------------------------------------------
    # Load
    # ------------------------------------------------------------------

    async def load(
        self,
        *,
        slip: PackagingSlip | None = None,
        slip_id: int | None = None,
        order: SalesOrderRef | None = None,
    ) -> PackagingSlip | None:
        """
        Resolve the slip and seed the line editor.

        Returns the fresh slip, or None when resolution failed; in that case
        the instance is back in ``idle`` and ``error`` says why.
        """
        started = time.monotonic()
        self._advance("load", started)
        self._error = None
        self._order = order

        with self._log_scope():
            try:
                resolved = await self._resolver.resolve(slip=slip, slip_id=slip_id, order=order)
            except (SlipResolutionError, GatewayError) as e:
                self._error = e
                self._slip = None
                self._lines = ()
                logger.warning(
                    "slip_load_failed",
                    extra={"error": str(e), "error_code": e.code},
                )
                self._advance("load_failed", started, reason=e.code)
                return None
            except Exception:
                self._advance("load_failed", started, reason="unexpected error")
                raise

        self._slip = resolved.slip
        self._lines = resolved.lines
        self._advance("loaded", started)
        return resolved.slip

    # ------------------------------------------------------------------
    # Editing
    # ------------------------------------------------------------------

    def update_line(self, index: int, **changes: Any) -> tuple[DispatchLineForm, ...]:
        """Edit one line. Allowed only while ``ready`` or ``failed``."""
        if self._state not in EDITABLE_STATES:
            raise InvalidTransitionError(
                DISPATCH_WORKFLOW.name, self._state.value, "update_line",
            )
        self._lines = update_line(self._lines, index, **changes)
        return self._lines

    def set_send_email(self, enabled: bool) -> None:
        if self._ctx.is_factory:
            raise FlowFeatureUnavailableError("send_email", self._ctx.flow.value)
        self._send_email = bool(enabled)

    # ------------------------------------------------------------------
    # Confirm
    # ------------------------------------------------------------------

    def _build_request(self) -> DispatchRequest:
        if self._ctx.is_factory:
            return build_factory_request(
                packaging_slip_id=self._slip.id,
                forms=self._lines,
                confirmed_by=self._ctx.confirming_user,
            )
        return build_sales_request(
            packing_slip_id=self._slip.id,
            order_id=self.order_id,
            forms=self._lines,
            admin_override_credit_limit=self.credit_override.read(),
        )

    async def confirm(self) -> DispatchResult | None:
        """
        Send the confirmation and, on the sales flow, run the side effects.

        Returns the result on success, or None when the attempt did not
        succeed (see ``error``).

        Raises:
            SubmissionInProgressError: a confirmation is already in flight.
            InvalidTransitionError: the instance is not ``ready`` or ``failed``.
        """
        started = time.monotonic()
        if self._state is WorkflowState.SUBMITTING:
            logger.warning(
                "dispatch_confirm_already_in_flight",
                extra={"workflow_id": self._ctx.workflow_id},
            )
            raise SubmissionInProgressError(self._ctx.workflow_id)

        transition = self._require_transition("confirm", started)

        if not has_shippable_line(self._lines):
            self._error = NoShippableLinesError(len(self._lines))
            _emit_workflow_trace(
                workflow_name=DISPATCH_WORKFLOW.name,
                action="confirm",
                workflow_id=self._ctx.workflow_id,
                from_state=self._state.value,
                outcome=OUTCOME_GUARD_FAILED,
                reason=f"Guard not satisfied: {HAS_SHIPPABLE_LINE.name}",
                duration_ms=(time.monotonic() - started) * 1000,
                outcome_sink=self._ctx.outcome_sink,
            )
            return None

        request = self._build_request()
        self._error = None
        self._apply(transition, started)

        with self._log_scope():
            logger.info(
                "dispatch_confirm_started",
                extra={"request_kind": request.kind, "line_count": len(request.lines)},
            )
            try:
                if self._ctx.is_factory:
                    factory_response = await self._ctx.gateway.confirm_factory_dispatch(request)
                    result = DispatchResult.for_factory(factory_response)
                else:
                    sales_response = await self._ctx.gateway.confirm_sales_dispatch(request)
            except GatewayError as e:
                self._error = e
                logger.warning(
                    "dispatch_confirm_rejected",
                    extra={
                        "error": str(e),
                        "error_code": e.code,
                        "status_code": getattr(e, "status_code", None),
                    },
                )
                self._advance("rejected", started, reason=e.code)
                return None
            except Exception as e:
                self._error = e
                self._advance("rejected", started, reason="unexpected error")
                raise

            if not self._ctx.is_factory:
                result = await self._side_effects.run(
                    sales_response, self.order_id, self.send_email,
                )

            self._result = result
            self._advance("confirmed", started)
            logger.info(
                "dispatch_confirmed",
                extra={
                    "invoice_id": result.invoice_id,
                    "email_sent": result.email_sent,
                },
            )

        self._notify_success()
        return result

    def _notify_success(self) -> None:
        if self._success_notified or self._ctx.on_success is None:
            return
        self._success_notified = True
        self._ctx.on_success()

    # ------------------------------------------------------------------
    # Close
    # ------------------------------------------------------------------

    def close(self) -> bool:
        """
        Reset the form and retire the instance.

        Returns ``False`` without touching any state while a confirmation is
        in flight, ``True`` once the instance is closed.

        Raises:
            InvalidTransitionError: the instance is loading or already closed.
        """
        started = time.monotonic()
        if self._state is WorkflowState.SUBMITTING:
            _emit_workflow_trace(
                workflow_name=DISPATCH_WORKFLOW.name,
                action="close",
                workflow_id=self._ctx.workflow_id,
                from_state=self._state.value,
                outcome=OUTCOME_REFUSED,
                reason="Confirmation in flight",
                duration_ms=(time.monotonic() - started) * 1000,
                outcome_sink=self._ctx.outcome_sink,
            )
            return False

        transition = self._require_transition("close", started)
        self._send_email = self._ctx.config.default_send_email
        self.credit_override.reset()
        self._error = None
        self._result = None
        self._apply(transition, started)
        return True
