"""
Module: ledger_kernel.logging_config
Responsibility: One JSON object per log line for every kernel record, with
    the fields of the ledger call in progress attached automatically.
Architecture position: Kernel > cross-cutting.  Imported by db/ and
    services/.  MUST NOT import from any other kernel module.

Invariants enforced:
    - Every record emitted inside ``LogContext.bind`` carries the same
      correlation_id, owner_id, operation and movement_id, so the balance
      adjustments and lifecycle events of one call can be joined.
    - Decimal amounts are logged as strings, never floats.
    - Kernel errors (anything with a ``code`` attribute) are logged as
      structured fields without a traceback; other exceptions keep theirs.

Failure modes:
    - None.  Unserializable extras fall back to ``str()``.
"""

import json
import logging
import sys
from collections.abc import Iterator
from contextlib import contextmanager
from contextvars import ContextVar
from datetime import UTC, datetime
from typing import Any, TextIO

__all__ = [
    "CALL_FIELDS",
    "StructuredFormatter",
    "LogContext",
    "get_logger",
    "configure_logging",
    "reset_logging",
]

LOGGER_NAMESPACE = "ledger_kernel"
_HANDLER_NAME = "ledger_kernel.structured"

# Fields describing the ledger call in progress
CALL_FIELDS = ("correlation_id", "owner_id", "operation", "movement_id")

_call: ContextVar[dict[str, str]] = ContextVar("ledger_call", default={})


class LogContext:
    """Call-scoped log fields, isolated per thread and per task."""

    @staticmethod
    @contextmanager
    def bind(**fields: Any) -> Iterator[dict[str, str]]:
        """
        Attach call fields to every record logged inside the block.

        None values are skipped; everything else is stringified.  The
        previous fields are restored on exit, even on error.
        """
        unknown = set(fields) - set(CALL_FIELDS)
        if unknown:
            raise TypeError(f"Unknown log context fields: {sorted(unknown)}")
        merged = dict(_call.get())
        merged.update({k: str(v) for k, v in fields.items() if v is not None})
        token = _call.set(merged)
        try:
            yield merged
        finally:
            _call.reset(token)

    @staticmethod
    def current() -> dict[str, str]:
        return dict(_call.get())

    @staticmethod
    def clear() -> None:
        _call.set({})


# Attributes every LogRecord has; anything else came in through ``extra``
_RECORD_ATTRS = frozenset(vars(logging.makeLogRecord({}))) | {"message", "taskName"}


class StructuredFormatter(logging.Formatter):
    """Render a record as a single JSON line."""

    def format(self, record: logging.LogRecord) -> str:
        payload: dict[str, Any] = {
            "ts": datetime.fromtimestamp(record.created, tz=UTC).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            **_call.get(),
        }
        for key, value in vars(record).items():
            if key not in _RECORD_ATTRS:
                payload.setdefault(key, value)

        if record.exc_info and record.exc_info[1] is not None:
            exc = record.exc_info[1]
            payload["exc_type"] = type(exc).__name__
            payload["exc_message"] = str(exc)
            code = getattr(exc, "code", None)
            if code is not None:
                payload["exc_code"] = code
                for key, value in vars(exc).items():
                    if not key.startswith("_"):
                        payload[f"exc_{key}"] = value
            else:
                payload["traceback"] = self.formatException(record.exc_info)

        return json.dumps(payload, default=str)


def get_logger(name: str) -> logging.Logger:
    """Logger under the ledger_kernel namespace."""
    return logging.getLogger(f"{LOGGER_NAMESPACE}.{name}")


def _installed_handlers(logger: logging.Logger) -> list[logging.Handler]:
    return [h for h in logger.handlers if h.get_name() == _HANDLER_NAME]


def configure_logging(
    *,
    level: int = logging.INFO,
    stream: TextIO | None = None,
) -> None:
    """
    Install the JSON handler on the ledger_kernel logger.

    A no-op when a structured handler is already installed, so the first
    caller (bootstrap or tests) decides the level and stream.
    """
    logger = logging.getLogger(LOGGER_NAMESPACE)
    if _installed_handlers(logger):
        return
    handler = logging.StreamHandler(stream or sys.stderr)
    handler.set_name(_HANDLER_NAME)
    handler.setFormatter(StructuredFormatter())
    logger.addHandler(handler)
    logger.setLevel(level)
    logger.propagate = False


def reset_logging() -> None:
    """Remove the structured handlers installed by configure_logging."""
    logger = logging.getLogger(LOGGER_NAMESPACE)
    for handler in _installed_handlers(logger):
        logger.removeHandler(handler)
    logger.setLevel(logging.WARNING)
