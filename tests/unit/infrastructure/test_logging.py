"""Tests for logging configuration."""

import json
import logging

from support_relay.infrastructure.logging import (
    NamespaceFilter,
    StructuredFormatter,
    clear_request_context,
    connection_id_var,
    request_id_var,
    session_id_var,
    set_request_context,
)


def _record(name: str = "test", level: int = logging.INFO, **extra) -> logging.LogRecord:
    record = logging.LogRecord(
        name=name,
        level=level,
        pathname="test.py",
        lineno=1,
        msg="Test message",
        args=(),
        exc_info=None,
    )
    for key, value in extra.items():
        setattr(record, key, value)
    return record


class TestStructuredFormatter:
    """Test StructuredFormatter class."""

    def teardown_method(self):
        clear_request_context()

    def test_formats_as_json(self):
        parsed = json.loads(StructuredFormatter().format(_record()))

        assert parsed["level"] == "info"
        assert parsed["message"] == "Test message"
        assert parsed["logger"] == "test"
        assert "ts" in parsed

    def test_includes_context_variables(self):
        set_request_context(request_id="req_123", session_id="sess_789", connection_id="conn_1")

        parsed = json.loads(StructuredFormatter().format(_record()))

        assert parsed["request_id"] == "req_123"
        assert parsed["session_id"] == "sess_789"
        assert parsed["connection_id"] == "conn_1"

    def test_includes_whitelisted_extra_fields(self):
        record = _record(service="chat", model="model-a", strategy="stateless", attempt=2, secret="x")

        parsed = json.loads(StructuredFormatter().format(record))

        assert parsed["service"] == "chat"
        assert parsed["model"] == "model-a"
        assert parsed["strategy"] == "stateless"
        assert parsed["attempt"] == 2
        assert "secret" not in parsed

    def test_service_defaults_to_logger_namespace(self):
        parsed = json.loads(StructuredFormatter().format(_record(name="providers.gemini")))
        assert parsed["service"] == "providers"


class TestRequestContext:
    def test_clear_request_context(self):
        set_request_context(request_id="r", session_id="s", connection_id="c")
        clear_request_context()

        assert request_id_var.get() is None
        assert session_id_var.get() is None
        assert connection_id_var.get() is None

    def test_none_leaves_existing_value(self):
        set_request_context(request_id="r")
        set_request_context(session_id="s")

        assert request_id_var.get() == "r"
        clear_request_context()


class TestNamespaceFilter:
    def test_info_always_passes(self):
        assert NamespaceFilter([]).filter(_record(name="chat", level=logging.INFO))

    def test_debug_only_for_enabled_namespaces(self):
        f = NamespaceFilter(["chat"])

        assert f.filter(_record(name="chat.history", level=logging.DEBUG))
        assert not f.filter(_record(name="cache", level=logging.DEBUG))
