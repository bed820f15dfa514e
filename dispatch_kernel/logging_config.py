"""
Structured JSON logging for the dispatch workflow.

Every record under the ``dispatch_kernel`` logger namespace is written as one
JSON object per line.  Three sources feed each object:

* the fixed header: ``ts`` (UTC, ISO 8601), ``level``, ``logger``, ``message``;
* the workflow context held in ``LogContext`` (workflow, slip, order, flow,
  actor, correlation id), bound per orchestrator call;
* the ``extra=`` mapping of the call site, then the structured attributes of
  an attached exception prefixed with ``exc_``.

Values that JSON cannot carry natively are rendered by ``_json_default``:
enums by value, dates as ISO 8601, dataclasses as objects, and everything
else (Decimal, UUID, ...) as its ``str()``.  Decimals stay strings so log
consumers see the exact digits.
"""

__all__ = [
    "CONTEXT_FIELDS",
    "StructuredFormatter",
    "LogContext",
    "get_logger",
    "configure_logging",
    "reset_logging",
]

import json
import logging
import sys
import threading
from contextlib import contextmanager
from contextvars import ContextVar
from dataclasses import asdict, is_dataclass
from datetime import UTC, date, datetime
from enum import Enum
from typing import Any, Iterator

# ---------------------------------------------------------------------------
# Workflow context
# ---------------------------------------------------------------------------

CONTEXT_FIELDS: tuple[str, ...] = (
    "correlation_id",
    "workflow_id",
    "slip_id",
    "order_id",
    "flow",
    "actor",
)

_CONTEXT_VARS: dict[str, ContextVar[str | None]] = {
    name: ContextVar(f"dispatch_log_{name}", default=None) for name in CONTEXT_FIELDS
}


def _context_var(name: str) -> ContextVar[str | None]:
    try:
        return _CONTEXT_VARS[name]
    except KeyError:
        raise TypeError(f"Unknown log context field: {name!r}") from None


class LogContext:
    """
    Task-local log fields for the workflow being driven.

    Values live in ContextVars, so concurrent orchestrators on one event loop
    (and the worker threads started by ``asyncio.to_thread``) each see their
    own fields.
    """

    @staticmethod
    def set(**fields: str | None) -> None:
        """Set the named fields; ``None`` values leave a field untouched."""
        for name, value in fields.items():
            var = _context_var(name)
            if value is not None:
                var.set(value)

    @staticmethod
    def get_all() -> dict[str, str]:
        return {
            name: value
            for name, var in _CONTEXT_VARS.items()
            if (value := var.get()) is not None
        }

    @staticmethod
    def clear() -> None:
        for var in _CONTEXT_VARS.values():
            var.set(None)

    @staticmethod
    @contextmanager
    def bind(**fields: str | None) -> Iterator[type["LogContext"]]:
        """Set fields for the duration of a ``with`` block, then restore them."""
        tokens = [
            (var, var.set(value))
            for var, value in ((_context_var(n), v) for n, v in fields.items())
            if value is not None
        ]
        try:
            yield LogContext
        finally:
            for var, token in reversed(tokens):
                var.reset(token)


# ---------------------------------------------------------------------------
# JSON formatter
# ---------------------------------------------------------------------------

_RESERVED_KEYS: frozenset[str] = frozenset(
    vars(logging.LogRecord("", 0, "", 0, "", (), None))
) | {"message", "taskName"}


def _json_default(obj: Any) -> Any:
    if isinstance(obj, Enum):
        return obj.value
    if isinstance(obj, (datetime, date)):
        return obj.isoformat()
    if is_dataclass(obj) and not isinstance(obj, type):
        return asdict(obj)
    return str(obj)


def _exception_fields(exc: BaseException) -> dict[str, Any]:
    fields: dict[str, Any] = {
        "exc_type": type(exc).__name__,
        "exc_message": str(exc),
    }
    code = getattr(exc, "code", None)
    if code is not None:
        fields["exc_code"] = code
    # Attributes set by DispatchKernelError subclasses (status_code, order_id, ...)
    for name, value in vars(exc).items():
        if name.startswith("_") or name == "code" or value is None:
            continue
        fields[f"exc_{name}"] = value
    return fields


class StructuredFormatter(logging.Formatter):
    """Render a record as a single JSON line."""

    def format(self, record: logging.LogRecord) -> str:
        payload: dict[str, Any] = {
            "ts": datetime.fromtimestamp(record.created, tz=UTC).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            **LogContext.get_all(),
        }
        payload.update(
            (key, value)
            for key, value in vars(record).items()
            if key not in _RESERVED_KEYS and key not in payload
        )

        if record.exc_info and record.exc_info[1] is not None:
            payload.update(_exception_fields(record.exc_info[1]))
            payload["traceback"] = self.formatException(record.exc_info)

        return json.dumps(payload, default=_json_default)


# ---------------------------------------------------------------------------
# Setup
# ---------------------------------------------------------------------------

_LOGGER_PREFIX = "dispatch_kernel"

_configured = False
_lock = threading.Lock()


def get_logger(name: str) -> logging.Logger:
    """Child logger of the ``dispatch_kernel`` namespace."""
    return logging.getLogger(f"{_LOGGER_PREFIX}.{name}")


def configure_logging(
    *,
    level: int = logging.INFO,
    stream: Any = None,
    handler: logging.Handler | None = None,
) -> None:
    """
    Attach one JSON handler to the ``dispatch_kernel`` logger.

    Only the first call in a process has any effect.  Records stop
    propagating to the root logger once configured.
    """
    global _configured
    with _lock:
        if _configured:
            return
        _configured = True

    namespace = logging.getLogger(_LOGGER_PREFIX)
    namespace.setLevel(level)
    namespace.propagate = False

    target = handler if handler is not None else logging.StreamHandler(stream or sys.stderr)
    target.setFormatter(StructuredFormatter())
    namespace.addHandler(target)


def reset_logging() -> None:
    """Undo ``configure_logging``. For tests."""
    global _configured
    with _lock:
        _configured = False
    namespace = logging.getLogger(_LOGGER_PREFIX)
    namespace.handlers.clear()
    namespace.setLevel(logging.WARNING)
    namespace.propagate = True
