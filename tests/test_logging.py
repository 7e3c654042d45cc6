"""
LogPulse AI - Logging Tests
===========================

Tests for the JSON formatter and correlation ID propagation.
"""

import json
import logging

from logpulse_shared.utils.logging import (
    ContextualLogger,
    StructuredFormatter,
    correlation_id_var,
    set_correlation_id,
)


def make_record(msg="Analysis stored", **extra):
    record = logging.LogRecord(
        name="logpulse.core.orchestrator",
        level=logging.INFO,
        pathname=__file__,
        lineno=1,
        msg=msg,
        args=(),
        exc_info=None,
    )
    record.created = 0.0
    for key, value in extra.items():
        setattr(record, key, value)
    return record


class TestStructuredFormatter:
    """Tests for StructuredFormatter."""

    def test_renders_record_as_json(self):
        entry = json.loads(StructuredFormatter("logpulse").format(make_record(analysis_id=42)))

        assert entry["timestamp"] == "1970-01-01T00:00:00+00:00"
        assert entry["level"] == "INFO"
        assert entry["service"] == "logpulse"
        assert entry["logger"] == "logpulse.core.orchestrator"
        assert entry["message"] == "Analysis stored"
        assert entry["analysis_id"] == 42

    def test_extra_cannot_override_core_keys(self):
        entry = json.loads(StructuredFormatter("logpulse").format(make_record(service="other")))

        assert entry["service"] == "logpulse"

    def test_includes_correlation_id_from_context(self):
        token = correlation_id_var.set("req-123")
        try:
            entry = json.loads(StructuredFormatter("logpulse").format(make_record()))
        finally:
            correlation_id_var.reset(token)

        assert entry["correlation_id"] == "req-123"


class TestContextualLogger:
    """Tests for ContextualLogger."""

    def test_stamps_correlation_id_without_mutating_extra(self):
        adapter = ContextualLogger(logging.getLogger("test"), {})
        extra = {"identity": "10.0.0.1"}

        token = correlation_id_var.set(None)
        try:
            set_correlation_id("req-456")
            _, kwargs = adapter.process("msg", {"extra": extra})
        finally:
            correlation_id_var.reset(token)

        assert kwargs["extra"] == {"identity": "10.0.0.1", "correlation_id": "req-456"}
        assert extra == {"identity": "10.0.0.1"}
