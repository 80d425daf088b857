"""Tests for structured log formatting and request context."""

import json
import logging

from app.utils.logger import ConsoleFormatter, JSONFormatter, context_filter


def _record(**extra) -> logging.LogRecord:
    record = logging.LogRecord("catalog", logging.WARNING, __file__, 10, "sync %s", ("done",), None)
    for key, value in extra.items():
        setattr(record, key, value)
    return record


def test_json_formatter_includes_extras():
    formatter = JSONFormatter(service="catalog-sync")

    payload = json.loads(formatter.format(_record(batch_size=3)))

    assert payload["message"] == "sync done"
    assert payload["level"] == "WARNING"
    assert payload["service"] == "catalog-sync"
    assert payload["batch_size"] == 3
    assert "args" not in payload


def test_context_filter_copies_request_context():
    context_filter.set_context(request_id="req-1", client_ip="10.0.0.2")
    try:
        record = _record()
        assert context_filter.filter(record) is True
        assert record.request_id == "req-1"
        assert record.client_ip == "10.0.0.2"
    finally:
        context_filter.clear_context()

    record = _record()
    context_filter.filter(record)
    assert not hasattr(record, "request_id")


def test_console_formatter_appends_extras():
    record = _record(request_id="abcdef123456", client_ip="10.0.0.2", sku="SKU-1")

    line = ConsoleFormatter().format(record)

    assert "[abcdef12]" in line
    assert line.endswith("catalog: sync done sku=SKU-1")
    assert "client_ip" not in line
