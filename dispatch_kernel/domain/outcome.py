"""
Stage outcomes for best-effort pipelines (``dispatch_kernel.domain.outcome``).

A stage either produced a value (OK), was never attempted because its
precondition did not hold (SKIPPED), or was attempted and failed (FAILED).
Both SKIPPED and FAILED carry a reason so callers can tell *why* a stage
did not contribute to the result.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any


class StageStatus(Enum):
    OK = "ok"
    SKIPPED = "skipped"
    FAILED = "failed"


@dataclass(frozen=True)
class StageOutcome:
    """Result of one pipeline stage.

    Contract: frozen.  ``value`` is set only when status is OK; ``reason``
    only when SKIPPED or FAILED.  ``error_code`` mirrors the failing
    exception's ``code`` when it has one.
    """
    stage: str
    status: StageStatus
    value: Any = None
    reason: str | None = None
    error_code: str | None = None

    @classmethod
    def ok(cls, stage: str, value: Any = None) -> StageOutcome:
        return cls(stage=stage, status=StageStatus.OK, value=value)

    @classmethod
    def skipped(cls, stage: str, reason: str) -> StageOutcome:
        return cls(stage=stage, status=StageStatus.SKIPPED, reason=reason)

    @classmethod
    def failed(cls, stage: str, error: BaseException) -> StageOutcome:
        return cls(
            stage=stage,
            status=StageStatus.FAILED,
            reason=str(error) or type(error).__name__,
            error_code=getattr(error, "code", None),
        )

    @property
    def is_ok(self) -> bool:
        return self.status is StageStatus.OK

    @property
    def is_skipped(self) -> bool:
        return self.status is StageStatus.SKIPPED

    @property
    def is_failed(self) -> bool:
        return self.status is StageStatus.FAILED
