"""Structured JSON logging for lease coordination.

Provides:
- JSON-formatted logs for log aggregation systems (ELK, Loki, etc.)
- Lease name and instance ID propagation through context variables
- Configurable log levels and formats

Usage:
    from leasehold.observability.logging import configure_logging

    # In application startup
    configure_logging(json_format=True, level="INFO")

    # Lease context is automatically included in logs
    logger = logging.getLogger(__name__)
    with LogContext(lease_name="nightly-report"):
        logger.info("Renewing")  # Includes lease_name
"""

from __future__ import annotations

import contextvars
import json
import logging
import sys
from datetime import datetime, timezone
from typing import Any

# Context variables for lease correlation
lease_name_var: contextvars.ContextVar[str] = contextvars.ContextVar("lease_name", default="")
instance_id_var: contextvars.ContextVar[str] = contextvars.ContextVar("instance_id", default="")

# Standard LogRecord attributes, skipped when copying extra fields
_STANDARD_ATTRS = {
    "name",
    "msg",
    "args",
    "created",
    "filename",
    "funcName",
    "levelname",
    "levelno",
    "lineno",
    "module",
    "msecs",
    "pathname",
    "process",
    "processName",
    "relativeCreated",
    "stack_info",
    "exc_info",
    "exc_text",
    "thread",
    "threadName",
    "taskName",
    "message",
}


class JsonFormatter(logging.Formatter):
    """JSON log formatter with lease context support.

    Output format:
    {
        "timestamp": "2026-01-10T12:34:56.789Z",
        "level": "WARNING",
        "logger": "leasehold.distributed.renewer",
        "message": "Lease lost: nightly-report",
        "module": "renewer",
        "function": "_renew",
        "line": 42,
        "lease_name": "nightly-report",
        "instance_id": "a1b2c3d4"
    }
    """

    def format(self, record: logging.LogRecord) -> str:
        """Format log record as JSON."""
        log_data: dict[str, Any] = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "module": record.module,
            "function": record.funcName,
            "line": record.lineno,
        }

        lease_name = lease_name_var.get()
        if lease_name:
            log_data["lease_name"] = lease_name

        instance_id = instance_id_var.get()
        if instance_id:
            log_data["instance_id"] = instance_id

        if record.exc_info:
            log_data["exception"] = {
                "type": record.exc_info[0].__name__ if record.exc_info[0] else None,
                "message": str(record.exc_info[1]) if record.exc_info[1] else None,
                "traceback": self.formatException(record.exc_info),
            }

        for key, value in record.__dict__.items():
            if key not in _STANDARD_ATTRS and not key.startswith("_"):
                try:
                    json.dumps(value)  # Verify it's JSON serializable
                    log_data[key] = value
                except (TypeError, ValueError):
                    log_data[key] = str(value)

        return json.dumps(log_data, default=str, ensure_ascii=False)


class ConsoleFormatter(logging.Formatter):
    """Human-readable formatter for development.

    Output format:
    2026-01-10 12:34:56 | INFO | leasehold.distributed.semaphores | Acquired | lease=nightly-report
    """

    COLORS = {
        "DEBUG": "\033[36m",  # Cyan
        "INFO": "\033[32m",  # Green
        "WARNING": "\033[33m",  # Yellow
        "ERROR": "\033[31m",  # Red
        "CRITICAL": "\033[35m",  # Magenta
    }
    RESET = "\033[0m"

    def __init__(self, use_colors: bool = True) -> None:
        super().__init__()
        self.use_colors = use_colors and sys.stderr.isatty()

    def format(self, record: logging.LogRecord) -> str:
        """Format log record for console output."""
        timestamp = datetime.now().strftime("%Y-%m-%d %H:%M:%S")
        level = record.levelname

        if self.use_colors:
            color = self.COLORS.get(level, "")
            level = f"{color}{level}{self.RESET}"

        message = record.getMessage()

        context_parts = []
        lease_name = lease_name_var.get()
        if lease_name:
            context_parts.append(f"lease={lease_name}")
        instance_id = instance_id_var.get()
        if instance_id:
            context_parts.append(f"instance={instance_id}")

        context = f" | {' '.join(context_parts)}" if context_parts else ""

        result = f"{timestamp} | {level:8} | {record.name} | {message}{context}"

        if record.exc_info:
            result += "\n" + self.formatException(record.exc_info)

        return result


def configure_logging(
    json_format: bool = True,
    level: str = "INFO",
    use_colors: bool = True,
    instance_id: str | None = None,
) -> None:
    """Configure application-wide logging.

    Args:
        json_format: Use JSON format (recommended for production)
        level: Log level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        use_colors: Use ANSI colors in console format
        instance_id: Tag every record from this process with the instance ID
    """
    if instance_id:
        instance_id_var.set(instance_id)

    root_logger = logging.getLogger()
    root_logger.setLevel(getattr(logging, level.upper()))

    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)

    handler = logging.StreamHandler(sys.stderr)

    if json_format:
        handler.setFormatter(JsonFormatter())
    else:
        handler.setFormatter(ConsoleFormatter(use_colors=use_colors))

    root_logger.addHandler(handler)

    # Reduce noise from drivers
    logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)
    logging.getLogger("asyncio").setLevel(logging.WARNING)


class LogContext:
    """Context manager for adding temporary log context.

    Usage:
        with LogContext(lease_name="nightly-report"):
            logger.info("Acquired")  # Includes lease_name
    """

    _VARS = {
        "lease_name": lease_name_var,
        "instance_id": instance_id_var,
    }

    def __init__(self, **kwargs: Any) -> None:
        self.extra = kwargs
        self._tokens: dict[str, contextvars.Token[str]] = {}

    def __enter__(self) -> "LogContext":
        for key, var in self._VARS.items():
            if key in self.extra:
                self._tokens[key] = var.set(self.extra[key])
        return self

    def __exit__(self, *args: Any) -> None:
        for key, token in self._tokens.items():
            self._VARS[key].reset(token)
        self._tokens.clear()
