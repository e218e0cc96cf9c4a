"""
Logging setup and correlation fields for the signal triage pipeline.

A batch run is traced as run -> signal -> provider: runners open a
CorrelationContext with a run_id, the gateway nests one per signal, and
log_with_context stamps whatever fields are active onto each record.

Logs go to stderr; stdout is reserved for CLI command output.
"""

import json
import logging
import sys
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, TextIO


PACKAGE_LOGGER = "surveillance"

# Order is the order fields appear in console output
CORRELATION_FIELDS = ("operation", "run_id", "signal_id", "provider", "decision")


def correlation_fields(record: logging.LogRecord) -> Dict[str, Any]:
    """Return the correlation fields set on a record, in display order."""
    found = {}
    for name in CORRELATION_FIELDS:
        value = getattr(record, name, None)
        if value is not None:
            found[name] = value
    return found


class JsonLineFormatter(logging.Formatter):
    """One JSON object per record: ts, level, logger, message, correlation fields."""

    def format(self, record: logging.LogRecord) -> str:
        entry: Dict[str, Any] = {
            "ts": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        entry.update(correlation_fields(record))
        if record.exc_info:
            entry["exception"] = self.formatException(record.exc_info)
        return json.dumps(entry, default=str)


class ConsoleFormatter(logging.Formatter):
    """
    Plain-text records with correlation fields appended.

    Format: TIME LEVEL LOGGER: MESSAGE [operation=triage run_id=... signal_id=...]
    """

    def __init__(self):
        super().__init__("%(asctime)s %(levelname)-7s %(name)s: %(message)s")

    def format(self, record: logging.LogRecord) -> str:
        line = super().format(record)
        fields = correlation_fields(record)
        if not fields:
            return line
        rendered = " ".join(f"{name}={value}" for name, value in fields.items())
        return f"{line} [{rendered}]"


def configure_logging(
    level: int = logging.INFO,
    structured: bool = False,
    stream: Optional[TextIO] = None,
) -> logging.Handler:
    """
    Attach a stream handler to the package logger.

    Calling again replaces the handler installed by the previous call, so
    the level, format and stream always reflect the latest call.

    Args:
        level: Logging level (default: INFO)
        structured: Emit JSON lines instead of console text
        stream: Output stream (default: sys.stderr at call time)

    Returns:
        The installed handler
    """
    package_logger = logging.getLogger(PACKAGE_LOGGER)
    package_logger.setLevel(level)

    for existing in list(package_logger.handlers):
        if getattr(existing, "_surveillance_handler", False):
            package_logger.removeHandler(existing)

    handler = logging.StreamHandler(stream or sys.stderr)
    handler.setLevel(level)
    handler.setFormatter(JsonLineFormatter() if structured else ConsoleFormatter())
    handler._surveillance_handler = True
    package_logger.addHandler(handler)
    return handler


class CorrelationContext:
    """
    Nested correlation fields for log records.

    Inner contexts inherit the fields of the enclosing one; None values are
    ignored so an inner context cannot blank out an outer field.

    Example:
        >>> with CorrelationContext(run_id="abc", operation="triage"):
        ...     with CorrelationContext(signal_id="s-1"):
        ...         CorrelationContext.get_current()
        {'run_id': 'abc', 'operation': 'triage', 'signal_id': 's-1'}
    """

    _stack: List[Dict[str, Any]] = []

    def __init__(self, **fields: Any):
        self.fields = {k: v for k, v in fields.items() if v is not None}

    def __enter__(self) -> "CorrelationContext":
        merged = CorrelationContext.get_current()
        merged.update(self.fields)
        CorrelationContext._stack.append(merged)
        return self

    def __exit__(self, *args) -> None:
        CorrelationContext._stack.pop()

    @classmethod
    def get_current(cls) -> Dict[str, Any]:
        """Copy of the innermost active fields ({} outside any context)."""
        if not cls._stack:
            return {}
        return dict(cls._stack[-1])


def log_with_context(
    logger: logging.Logger,
    level: int,
    message: str,
    **extra: Any,
) -> None:
    """Log with the active correlation fields plus ``extra``."""
    fields = CorrelationContext.get_current()
    fields.update(extra)
    logger.log(level, message, extra=fields)
