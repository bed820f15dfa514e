"""
Typed Exception Hierarchy for the Dispatch Kernel.

===============================================================================
WHY TYPED EXCEPTIONS
===============================================================================

A dispatch confirmation moves stock and, on the sales flow, raises an
invoice. Callers must react differently to "nothing to ship", "no slip yet",
"the backend said no" and "the network dropped", so every failure is a
distinct class with a machine-readable CODE and structured attributes.

Example - WRONG way to handle errors:
    try:
        await orchestrator.confirm()
    except Exception as e:
        if "reserve" in str(e):  # FRAGILE - message might change
            offer_reserve_action()

Example - RIGHT way:
    try:
        await orchestrator.load(order=order)
    except SlipNotFoundError as e:
        offer_reserve_action(order_id=e.order_id)

===============================================================================
EXCEPTION HIERARCHY
===============================================================================

    DispatchKernelError (base)
    |
    +-- DispatchValidationError
    |   +-- NoShippableLinesError
    |   +-- InvalidShipQuantityError
    |   +-- InvalidLineValueError
    |   +-- LineIndexError
    |   +-- UnknownLineFieldError
    |
    +-- SlipResolutionError
    |   +-- SlipNotFoundError
    |   +-- InvalidSlipReferenceError
    |
    +-- GatewayError
    |   +-- BackendRejectedError
    |   +-- TransportError
    |   +-- InvoiceNotFoundError
    |
    +-- WorkflowError
        +-- InvalidTransitionError
        +-- SubmissionInProgressError
        +-- FlowFeatureUnavailableError

===============================================================================
ERROR CODES - QUICK REFERENCE
===============================================================================

Category    | Code                      | When Raised
------------|---------------------------|-------------------------------------------
Validation  | NO_SHIPPABLE_LINES        | Every line has ship quantity 0
            | INVALID_SHIP_QUANTITY     | Ship quantity below zero, NaN or infinite
            | INVALID_LINE_VALUE        | Price, discount or tax rate not a finite number
            | LINE_INDEX_OUT_OF_RANGE   | Edit targets a line that does not exist
            | UNKNOWN_LINE_FIELD        | Edit names a field the line does not have
------------|---------------------------|-------------------------------------------
Resolution  | SLIP_RESOLUTION_FAILED    | Slip lookup failed for another reason
            | SLIP_NOT_FOUND            | No slip exists yet (reserve first)
            | INVALID_SLIP_REFERENCE    | Neither slip, slip id nor order id usable
------------|---------------------------|-------------------------------------------
Gateway     | BACKEND_REJECTED          | Non-success HTTP status or envelope
            | TRANSPORT_ERROR           | Timeout, DNS, connection reset
            | INVOICE_NOT_FOUND         | Invoice lookup returned an empty list
------------|---------------------------|-------------------------------------------
Workflow    | INVALID_TRANSITION        | Action not allowed from current state
            | SUBMISSION_IN_PROGRESS    | Second confirm while one is in flight
            | FLOW_FEATURE_UNAVAILABLE  | Sales-only control used on factory flow
"""


class DispatchKernelError(Exception):
    """
    Base exception for all dispatch kernel errors.

    All subclasses carry a ``code`` class attribute for machine-readable
    error identification.
    """

    code: str = "DISPATCH_KERNEL_ERROR"


# Validation


class DispatchValidationError(DispatchKernelError):
    """Base exception for local validation failures. Never leaves the client."""

    code: str = "DISPATCH_VALIDATION_ERROR"


class NoShippableLinesError(DispatchValidationError):
    """No dispatch line has a ship quantity greater than zero."""

    code: str = "NO_SHIPPABLE_LINES"

    def __init__(self, line_count: int):
        self.line_count = line_count
        super().__init__(
            "At least one line must have a shipped quantity greater than 0"
        )


class InvalidShipQuantityError(DispatchValidationError):
    """Ship quantity must be a finite number, zero or positive."""

    code: str = "INVALID_SHIP_QUANTITY"

    def __init__(self, index: int, ship_qty: str):
        self.index = index
        self.ship_qty = ship_qty
        super().__init__(
            f"Ship quantity for line {index} must be a finite number of at least 0: {ship_qty}"
        )


class InvalidLineValueError(DispatchValidationError):
    """A commercial override on a line is not a finite decimal."""

    code: str = "INVALID_LINE_VALUE"

    def __init__(self, index: int, field_name: str, value: str):
        self.index = index
        self.field_name = field_name
        self.value = value
        super().__init__(
            f"{field_name} for line {index} must be a finite number: {value}"
        )


class LineIndexError(DispatchValidationError):
    """Edit targets a line index outside the editor."""

    code: str = "LINE_INDEX_OUT_OF_RANGE"

    def __init__(self, index: int, line_count: int):
        self.index = index
        self.line_count = line_count
        super().__init__(
            f"Line index {index} out of range for {line_count} line(s)"
        )


class UnknownLineFieldError(DispatchValidationError):
    """Edit names a field that is not editable on a dispatch line."""

    code: str = "UNKNOWN_LINE_FIELD"

    def __init__(self, field_names: list[str]):
        self.field_names = field_names
        super().__init__(
            f"Unknown dispatch line field(s): {', '.join(field_names)}"
        )


# Resolution


class SlipResolutionError(DispatchKernelError):
    """Slip could not be loaded."""

    code: str = "SLIP_RESOLUTION_FAILED"

    def __init__(self, message: str, slip_id: int | None = None, order_id: int | None = None):
        self.slip_id = slip_id
        self.order_id = order_id
        super().__init__(message)


class SlipNotFoundError(SlipResolutionError):
    """
    No packaging slip exists for the reference.

    Recoverable: the order has most likely not been reserved yet, so the
    caller may offer a reserve-and-retry action.
    """

    code: str = "SLIP_NOT_FOUND"
    remediation: str = "reserve"

    def __init__(self, slip_id: int | None = None, order_id: int | None = None):
        if order_id is not None:
            message = (
                f"No packaging slip found for order {order_id}. "
                "Please reserve the order first to create a packaging slip."
            )
        else:
            message = f"Packaging slip not found: {slip_id}"
        super().__init__(message, slip_id=slip_id, order_id=order_id)


class InvalidSlipReferenceError(SlipResolutionError):
    """Resolution was asked for with nothing usable to look up."""

    code: str = "INVALID_SLIP_REFERENCE"

    def __init__(self, reason: str):
        self.reason = reason
        super().__init__(f"Cannot resolve packaging slip: {reason}")


# Gateway


class GatewayError(DispatchKernelError):
    """Base exception for failures talking to the backend."""

    code: str = "GATEWAY_ERROR"


class BackendRejectedError(GatewayError):
    """
    Backend answered with a non-success status or a ``success: false`` envelope.

    ``str(exc)`` is the backend's own message, passed through verbatim.
    """

    code: str = "BACKEND_REJECTED"

    def __init__(
        self,
        message: str,
        status_code: int | None = None,
        method: str | None = None,
        path: str | None = None,
    ):
        self.status_code = status_code
        self.method = method
        self.path = path
        super().__init__(message)


class TransportError(GatewayError):
    """Request never produced a usable response (timeout, connection error)."""

    code: str = "TRANSPORT_ERROR"

    def __init__(self, message: str, method: str | None = None, path: str | None = None):
        self.method = method
        self.path = path
        super().__init__(message)


class InvoiceNotFoundError(GatewayError):
    """No invoice is recorded against the order."""

    code: str = "INVOICE_NOT_FOUND"

    def __init__(self, order_id: int):
        self.order_id = order_id
        super().__init__(f"Invoice for order {order_id} not found")


# Workflow


class WorkflowError(DispatchKernelError):
    """Base exception for illegal use of a dispatch workflow instance."""

    code: str = "WORKFLOW_ERROR"


class InvalidTransitionError(WorkflowError):
    """The requested action has no transition from the current state."""

    code: str = "INVALID_TRANSITION"

    def __init__(self, workflow: str, from_state: str, action: str):
        self.workflow = workflow
        self.from_state = from_state
        self.action = action
        super().__init__(
            f"Action '{action}' is not allowed from state '{from_state}' "
            f"in workflow '{workflow}'"
        )


class SubmissionInProgressError(WorkflowError):
    """A confirmation is already in flight for this instance."""

    code: str = "SUBMISSION_IN_PROGRESS"

    def __init__(self, workflow_id: str):
        self.workflow_id = workflow_id
        super().__init__(
            f"Dispatch confirmation already in progress for workflow {workflow_id}"
        )


class FlowFeatureUnavailableError(WorkflowError):
    """A sales-only control was used on a factory workflow."""

    code: str = "FLOW_FEATURE_UNAVAILABLE"

    def __init__(self, feature: str, flow: str):
        self.feature = feature
        self.flow = flow
        super().__init__(f"'{feature}' is not available on the {flow} flow")
