"""
Canonical workflow types (``dispatch_kernel.domain.workflow``).

Responsibility
--------------
Pure value objects for workflow state machines, and the one state machine
this client runs: dispatch confirmation of a packaging slip.

Architecture position
---------------------
**Kernel domain layer** -- pure value objects.  ZERO I/O.  No imports
from ``dispatch_services`` or ``dispatch_config``.

Invariants enforced
-------------------
* Transitions reference only states in ``Workflow.states``.
* ``initial_state`` is a member of ``states``.
* ``succeeded`` has no way back into ``submitting``; a fresh workflow
  instance is required to dispatch again.
* ``submitting`` has no ``close`` transition.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum


@dataclass(frozen=True)
class Guard:
    """A condition that must be satisfied before a transition fires.

    Contract: frozen, descriptive only.
    Non-goals: does not evaluate the condition -- the orchestrator does.
    """
    name: str
    description: str


@dataclass(frozen=True)
class Transition:
    """A valid state transition in a workflow.

    ``calls_backend=True`` marks a transition whose action awaits the backend.
    """
    from_state: str
    to_state: str
    action: str
    guard: Guard | None = None
    calls_backend: bool = False


@dataclass(frozen=True)
class Workflow:
    """A state machine definition.

    Contract: frozen; ``transitions`` reference only states in ``states``.
    ``terminal_states`` are states with no outgoing transitions.
    """
    name: str
    description: str
    initial_state: str
    states: tuple[str, ...]
    transitions: tuple[Transition, ...]
    terminal_states: tuple[str, ...] = ()

    def __post_init__(self) -> None:
        if self.initial_state not in self.states:
            raise ValueError(
                f"initial_state '{self.initial_state}' is not a state of {self.name}"
            )
        for t in self.transitions:
            if t.from_state not in self.states or t.to_state not in self.states:
                raise ValueError(
                    f"Transition {t.from_state}->{t.to_state} ({t.action}) "
                    f"references an unknown state in {self.name}"
                )

    def find_transition(self, from_state: str, action: str) -> Transition | None:
        for t in self.transitions:
            if t.from_state == from_state and t.action == action:
                return t
        return None

    def actions_from(self, state: str) -> tuple[str, ...]:
        return tuple(t.action for t in self.transitions if t.from_state == state)


class WorkflowState(str, Enum):
    """States of one dispatch confirmation instance."""
    IDLE = "idle"
    LOADING = "loading"
    READY = "ready"
    SUBMITTING = "submitting"
    SUCCEEDED = "succeeded"
    FAILED = "failed"
    CLOSED = "closed"


# -----------------------------------------------------------------------------
# Guards
# -----------------------------------------------------------------------------

HAS_SHIPPABLE_LINE = Guard(
    name="has_shippable_line",
    description="At least one dispatch line has ship quantity greater than zero",
)


# -----------------------------------------------------------------------------
# Dispatch Confirmation Workflow
# -----------------------------------------------------------------------------

_S = WorkflowState

DISPATCH_WORKFLOW = Workflow(
    name="dispatch_confirmation",
    description="Packaging slip dispatch confirmation",
    initial_state=_S.IDLE.value,
    states=tuple(s.value for s in WorkflowState),
    transitions=(
        Transition(_S.IDLE.value, _S.LOADING.value, action="load", calls_backend=True),
        Transition(_S.READY.value, _S.LOADING.value, action="load", calls_backend=True),
        Transition(_S.LOADING.value, _S.READY.value, action="loaded"),
        Transition(_S.LOADING.value, _S.IDLE.value, action="load_failed"),
        Transition(
            _S.READY.value, _S.SUBMITTING.value, action="confirm",
            guard=HAS_SHIPPABLE_LINE, calls_backend=True,
        ),
        Transition(
            _S.FAILED.value, _S.SUBMITTING.value, action="confirm",
            guard=HAS_SHIPPABLE_LINE, calls_backend=True,
        ),
        Transition(_S.SUBMITTING.value, _S.SUCCEEDED.value, action="confirmed"),
        Transition(_S.SUBMITTING.value, _S.FAILED.value, action="rejected"),
        Transition(_S.IDLE.value, _S.CLOSED.value, action="close"),
        Transition(_S.READY.value, _S.CLOSED.value, action="close"),
        Transition(_S.SUCCEEDED.value, _S.CLOSED.value, action="close"),
        Transition(_S.FAILED.value, _S.CLOSED.value, action="close"),
    ),
    terminal_states=(_S.CLOSED.value,),
)

# States from which the line editor accepts edits
EDITABLE_STATES: frozenset[WorkflowState] = frozenset({_S.READY, _S.FAILED})
