"""Log formatting and dictConfig helpers for services embedding the guard."""

from __future__ import annotations

import json
import logging
import os
import time
from collections.abc import Mapping
from typing import Any

from opentelemetry import baggage, trace


def _level(env_var: str, default: str) -> str:
    return os.getenv(env_var, default).upper()


def _json_lines_enabled() -> bool:
    # Cloud Run and Kubernetes parse one JSON object per line.
    return bool(os.getenv("K_SERVICE") or os.getenv("KUBERNETES_SERVICE_HOST"))


def _jsonable(value: Any) -> Any:
    """Coerce log extras into JSON-safe values."""
    if value is None or isinstance(value, (str, int, float, bool)):
        return value
    if isinstance(value, (bytes, bytearray)):
        return f"<bytes len={len(value)}>"
    if isinstance(value, Mapping):
        return {str(key): _jsonable(item) for key, item in value.items()}
    if isinstance(value, (list, tuple, set, frozenset)):
        return [_jsonable(item) for item in value]
    return str(value)


class ExtrasFormatter(logging.Formatter):
    """Render the record's ``data`` extra, as a suffix or as a JSON line."""

    def format(self, record: logging.LogRecord) -> str:
        data = record.__dict__.get("data")
        if _json_lines_enabled():
            return self._format_json(record, data)

        formatted = super().format(record)
        if not data:
            return formatted
        encoded = json.dumps(_jsonable(data), sort_keys=True, separators=(",", ":"))
        return f"{formatted} | data={encoded}"

    def _format_json(self, record: logging.LogRecord, data: Any) -> str:
        message = record.getMessage()
        payload: dict[str, Any] = {
            "severity": record.levelname,
            "logger": record.name,
            "timestamp": time.strftime("%Y-%m-%dT%H:%M:%SZ", time.gmtime(record.created)),
        }
        if data:
            payload["data"] = _jsonable(data)
            encoded = json.dumps(payload["data"], sort_keys=True, separators=(",", ":"))
            message = f"{message} | data={encoded}"
        payload["message"] = message
        if record.exc_info:
            payload["exception"] = self.formatException(record.exc_info)

        json_fields = record.__dict__.get("json_fields")
        if isinstance(json_fields, Mapping):
            for key, value in _jsonable(json_fields).items():
                payload.setdefault(key, value)
        return json.dumps(payload, sort_keys=True, separators=(",", ":"))


class OtelContextLogFilter(logging.Filter):
    """Attach the active trace/span ids and baggage under ``json_fields["otel"]``."""

    def filter(self, record: logging.LogRecord) -> bool:
        otel: dict[str, Any] = {}
        span_context = trace.get_current_span().get_span_context()
        if span_context.is_valid:
            otel["trace_id"] = f"{span_context.trace_id:032x}"
            otel["span_id"] = f"{span_context.span_id:016x}"

        entries = baggage.get_all()
        if entries:
            otel["baggage"] = {key: str(value) for key, value in entries.items()}

        if otel:
            existing = record.__dict__.get("json_fields")
            json_fields = dict(existing) if isinstance(existing, Mapping) else {}
            json_fields["otel"] = otel
            record.__dict__["json_fields"] = json_fields
        return True


def build_log_config(
    *,
    root_level_env: str = "LOG_LEVEL",
    root_default: str = "INFO",
    extra_loggers: Mapping[str, dict[str, Any]] | None = None,
) -> dict[str, Any]:
    """Return a dictConfig mapping that routes ``tokenguard.*`` through ``ExtrasFormatter``."""
    loggers: dict[str, dict[str, Any]] = {
        "tokenguard": {
            "level": _level("TOKENGUARD_LOG_LEVEL", "INFO"),
            "handlers": ["console"],
            "propagate": False,
        },
    }
    if extra_loggers:
        loggers.update(extra_loggers)

    return {
        "version": 1,
        "disable_existing_loggers": False,
        "formatters": {
            "console": {
                "()": ExtrasFormatter,
                "format": "%(asctime)s %(levelname)s %(name)s: %(message)s",
                "datefmt": "%Y-%m-%dT%H:%M:%S",
            }
        },
        "filters": {"otel_context": {"()": OtelContextLogFilter}},
        "handlers": {
            "console": {
                "class": "logging.StreamHandler",
                "formatter": "console",
                "stream": "ext://sys.stdout",
                "filters": ["otel_context"],
            }
        },
        "root": {"level": _level(root_level_env, root_default), "handlers": ["console"]},
        "loggers": loggers,
    }


__all__ = ["ExtrasFormatter", "OtelContextLogFilter", "build_log_config"]
