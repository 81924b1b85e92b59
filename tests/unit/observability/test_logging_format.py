"""Tests for log formatters and lease log context."""

import json
import logging
import sys

from leasehold.observability.logging import (
    ConsoleFormatter,
    JsonFormatter,
    LogContext,
    instance_id_var,
    lease_name_var,
)


def _record(message: str = "Acquired lease", **extra: object) -> logging.LogRecord:
    record = logging.LogRecord(
        name="leasehold.distributed.semaphores",
        level=logging.INFO,
        pathname=__file__,
        lineno=10,
        msg=message,
        args=(),
        exc_info=None,
    )
    for key, value in extra.items():
        setattr(record, key, value)
    return record


class TestJsonFormatter:
    """Tests for JsonFormatter."""

    def test_basic_fields(self) -> None:
        payload = json.loads(JsonFormatter().format(_record()))

        assert payload["level"] == "INFO"
        assert payload["logger"] == "leasehold.distributed.semaphores"
        assert payload["message"] == "Acquired lease"
        assert "lease_name" not in payload

    def test_includes_lease_context(self) -> None:
        """Lease name and instance ID come from the active LogContext."""
        with LogContext(lease_name="nightly-report", instance_id="node-1"):
            payload = json.loads(JsonFormatter().format(_record()))

        assert payload["lease_name"] == "nightly-report"
        assert payload["instance_id"] == "node-1"

    def test_extra_fields_serialized(self) -> None:
        """Non-serializable extras fall back to str()."""
        payload = json.loads(JsonFormatter().format(_record(attempt=2, target=object())))

        assert payload["attempt"] == 2
        assert payload["target"].startswith("<object")

    def test_exception_info(self) -> None:
        try:
            raise RuntimeError("store down")
        except RuntimeError:
            record = _record()
            record.exc_info = sys.exc_info()

        payload = json.loads(JsonFormatter().format(record))

        assert payload["exception"]["type"] == "RuntimeError"
        assert payload["exception"]["message"] == "store down"


class TestConsoleFormatter:
    """Tests for ConsoleFormatter."""

    def test_plain_output_with_context(self) -> None:
        formatter = ConsoleFormatter(use_colors=False)

        with LogContext(lease_name="job-x"):
            line = formatter.format(_record("Renewed lease"))

        assert "INFO" in line
        assert "Renewed lease" in line
        assert line.endswith("lease=job-x")


class TestLogContext:
    """Tests for LogContext."""

    def test_restores_previous_values(self) -> None:
        with LogContext(lease_name="outer"):
            with LogContext(lease_name="inner"):
                assert lease_name_var.get() == "inner"
            assert lease_name_var.get() == "outer"

        assert lease_name_var.get() == ""
        assert instance_id_var.get() == ""

    def test_ignores_unknown_keys(self) -> None:
        with LogContext(request_id="abc"):
            assert lease_name_var.get() == ""
