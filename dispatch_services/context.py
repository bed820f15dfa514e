"""
dispatch_services.context -- Everything one dispatch workflow instance needs.

The workflow holds no module-level state.  Gateway, session, flow,
configuration and callbacks are passed in explicitly and live exactly as
long as the orchestrator that owns them.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Callable
from uuid import uuid4

from dispatch_config.schema import ClientConfig
from dispatch_kernel.domain.messages import DispatchFlow
from dispatch_kernel.domain.session import AuthSession
from dispatch_services.gateway import DispatchGateway


@dataclass(frozen=True)
class WorkflowContext:
    """Per-instance wiring for ``DispatchOrchestrator``.

    Contract: frozen; ``flow`` cannot change once the context exists.
    ``outcome_sink`` receives one structured record per state transition.
    ``on_success`` runs once after the instance reaches ``succeeded``;
    callers use it to refresh their list views.
    """
    gateway: DispatchGateway
    session: AuthSession
    flow: DispatchFlow = DispatchFlow.SALES
    config: ClientConfig = field(default_factory=ClientConfig.with_defaults)
    outcome_sink: Callable[[dict], None] | None = None
    on_success: Callable[[], None] | None = None
    workflow_id: str = field(default_factory=lambda: uuid4().hex)

    @property
    def is_factory(self) -> bool:
        return self.flow is DispatchFlow.FACTORY

    @property
    def confirming_user(self) -> str:
        return self.session.display_name or self.config.factory_user_fallback
