from __future__ import annotations

import json
import logging

import pytest

from opentelemetry import baggage, context, trace

from tokenguard.observability.logging import ExtrasFormatter, OtelContextLogFilter, build_log_config

TRACE_ID = 0x4BF92F3577B34DA6A3CE929D0E0E4736
SPAN_ID = 0x00F067AA0BA902B7


def _record(msg: str, data: dict[str, object] | None = None) -> logging.LogRecord:
    record = logging.LogRecord(
        name="tokenguard.guard",
        level=logging.WARNING,
        pathname=__file__,
        lineno=1,
        msg=msg,
        args=(),
        exc_info=None,
    )
    if data is not None:
        record.data = data
    return record


def test_formatter_appends_data_for_console(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.delenv("K_SERVICE", raising=False)
    monkeypatch.delenv("KUBERNETES_SERVICE_HOST", raising=False)
    formatter = ExtrasFormatter("%(levelname)s %(name)s: %(message)s")

    rendered = formatter.format(_record("csrf token rejected", {"reason": "mismatch", "prefix": "csrf"}))

    assert rendered == (
        'WARNING tokenguard.guard: csrf token rejected | data={"prefix":"csrf","reason":"mismatch"}'
    )


def test_formatter_emits_json_payload_in_cloud_run(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("K_SERVICE", "forms-app")
    formatter = ExtrasFormatter("%(levelname)s %(name)s: %(message)s")
    record = _record("csrf tokens evicted", {"evicted": 2, "raw": b"abc"})
    record.json_fields = {"request": {"path": "/items"}}

    payload = json.loads(formatter.format(record))

    assert payload["severity"] == "WARNING"
    assert payload["logger"] == "tokenguard.guard"
    assert payload["data"] == {"evicted": 2, "raw": "<bytes len=3>"}
    assert payload["message"].startswith("csrf tokens evicted | data=")
    assert payload["request"] == {"path": "/items"}


def test_build_log_config_reads_levels_from_env(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("TOKENGUARD_LOG_LEVEL", "debug")
    monkeypatch.delenv("LOG_LEVEL", raising=False)

    config = build_log_config(extra_loggers={"forms": {"level": "ERROR"}})

    assert config["loggers"]["tokenguard"]["level"] == "DEBUG"
    assert config["loggers"]["forms"] == {"level": "ERROR"}
    assert config["root"]["level"] == "INFO"
    assert config["handlers"]["console"]["filters"] == ["otel_context"]


def _activate_span_with_baggage() -> object:
    span_context = trace.SpanContext(
        trace_id=TRACE_ID,
        span_id=SPAN_ID,
        is_remote=False,
        trace_flags=trace.TraceFlags(trace.TraceFlags.SAMPLED),
    )
    ctx = trace.set_span_in_context(trace.NonRecordingSpan(span_context))
    ctx = baggage.set_baggage("tenant", "acme", context=ctx)
    return context.attach(ctx)


def test_otel_filter_injects_trace_context_and_baggage(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("K_SERVICE", "forms-app")
    record = _record("csrf token rejected", {"reason": "missing"})
    record.json_fields = {"request": {"path": "/items"}}

    token = _activate_span_with_baggage()
    try:
        assert OtelContextLogFilter().filter(record) is True
    finally:
        context.detach(token)

    payload = json.loads(ExtrasFormatter("%(message)s").format(record))

    assert payload["otel"]["trace_id"] == "4bf92f3577b34da6a3ce929d0e0e4736"
    assert payload["otel"]["span_id"] == "00f067aa0ba902b7"
    assert payload["otel"]["baggage"] == {"tenant": "acme"}
    assert payload["request"] == {"path": "/items"}
    assert payload["data"] == {"reason": "missing"}


def test_otel_filter_leaves_record_alone_without_context() -> None:
    record = _record("csrf tokens evicted")

    assert OtelContextLogFilter().filter(record) is True
    assert "json_fields" not in record.__dict__


def test_build_log_config_wires_formatter_and_otel_filter() -> None:
    config = build_log_config()

    assert config["formatters"]["console"]["()"] is ExtrasFormatter
    assert config["filters"]["otel_context"]["()"] is OtelContextLogFilter
    assert config["loggers"]["tokenguard"]["handlers"] == ["console"]
