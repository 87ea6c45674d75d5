"""Unit tests for structured logging."""

import json
import logging

from project_info_propagator.observability.logging import (
    CorrelationIDFilter,
    HealthProbeFilter,
    StructuredFormatter,
    set_correlation_id,
)


def make_record(message: str, **extra) -> logging.LogRecord:
    record = logging.LogRecord(
        "project_info_propagator.test", logging.INFO, __file__, 1, message, None, None
    )
    for key, value in extra.items():
        setattr(record, key, value)
    return record


def test_structured_formatter_emits_known_fields():
    record = make_record(
        "Applied labels",
        resource_type="namespace",
        resource_name="ns1",
        labels={"tier": "gold"},
        unrelated="dropped",
    )

    data = json.loads(StructuredFormatter().format(record))

    assert data["level"] == "INFO"
    assert data["message"] == "Applied labels"
    assert data["resource_type"] == "namespace"
    assert data["resource_name"] == "ns1"
    assert data["labels"] == {"tier": "gold"}
    assert "unrelated" not in data


def test_correlation_id_filter_uses_context():
    record = make_record("message")
    set_correlation_id("abc12345")

    assert CorrelationIDFilter().filter(record)
    assert record.correlation_id == "abc12345"


def test_health_probe_filter_drops_probe_logs():
    probe_filter = HealthProbeFilter()

    assert not probe_filter.filter(make_record('"GET /healthz HTTP/1.1" 200'))
    assert probe_filter.filter(make_record("Reconciled namespace/ns1"))
    assert HealthProbeFilter(suppress_health_logs=False).filter(
        make_record('"GET /healthz HTTP/1.1" 200')
    )
