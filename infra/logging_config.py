"""Centralized logging configuration.

Two output styles are available: human-friendly text lines and one JSON
object per line. Both go to stderr, since stdout carries the JSON lines the
runner emits for each query record.

Unless BQAP_LOG_OVERRIDE is set, root handlers that an embedding environment
already installed are left in place.
"""

from __future__ import annotations

import json
import logging
import sys
import time
from collections.abc import Mapping
from contextvars import ContextVar
from datetime import UTC, datetime
from typing import Any

from infra.config import LoggingSettings, get_settings

# Fields attached to every JSON line of the current run (run_id, source_kind, ...)
run_ctx: ContextVar[dict[str, Any] | None] = ContextVar("run_ctx", default=None)

_QUIET_LOGGERS = ("google.auth", "google.api_core", "urllib3", "boto3", "botocore")

# Attributes every LogRecord has; anything else arrived through `extra=`
_RECORD_ATTRS = frozenset(vars(logging.LogRecord("", 0, "", 0, "", None, None))) | {"message", "asctime"}


def set_run_context(**fields: Any) -> None:
    """Merge ``fields`` into the run context."""
    merged = dict(run_ctx.get() or {})
    merged.update(fields)
    run_ctx.set(merged)


def clear_run_context() -> None:
    run_ctx.set({})


def get_run_context() -> dict[str, Any]:
    """Copy of the current run context."""
    return dict(run_ctx.get() or {})


def _utc_timestamp(created: float) -> str:
    # 2026-01-24T18:03:12.123Z
    stamp = datetime.fromtimestamp(created, UTC).isoformat(timespec="milliseconds")
    return stamp.replace("+00:00", "Z")


def _record_extras(record: logging.LogRecord) -> dict[str, Any]:
    return {key: value for key, value in vars(record).items() if key not in _RECORD_ATTRS}


class JsonFormatter(logging.Formatter):
    """
    One JSON object per record.

    Precedence when keys collide: core fields, then ``extra=`` values, then
    the formatter's static fields, then the run context.
    """

    def __init__(self, *, extra_fields: Mapping[str, Any] | None = None) -> None:
        super().__init__()
        self._static = dict(extra_fields or {})

    def format(self, record: logging.LogRecord) -> str:
        payload: dict[str, Any] = {
            "timestamp": _utc_timestamp(record.created),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "module": record.module,
            "func": record.funcName,
            "line": record.lineno,
        }
        if record.exc_info:
            payload["exception"] = self.formatException(record.exc_info)

        for layer in (_record_extras(record), self._static, run_ctx.get() or {}):
            for key, value in layer.items():
                payload.setdefault(key, value)

        # default=str: extras may hold paths, datetimes or exceptions
        return json.dumps(payload, ensure_ascii=False, default=str)


class TextFormatter(logging.Formatter):
    """``<utc time>Z | LEVEL | logger | message``"""

    converter = time.gmtime

    def __init__(self) -> None:
        super().__init__("%(asctime)sZ | %(levelname)s | %(name)s | %(message)s")


class StructuredLogger:
    """
    Event-style logger.

    Usage:
        log = StructuredLogger(__name__)
        set_run_context(run_id="run-...", source_kind="folder")
        log.info("run_finished", records=42)

    Keyword fields go to JSON output as top-level keys and are appended as
    ``key=value`` pairs to the text message.
    """

    def __init__(self, name: str) -> None:
        self._logger = logging.getLogger(name)

    def _emit(self, level: int, event: str, fields: dict[str, Any], *, exc_info: bool = False) -> None:
        if not self._logger.isEnabledFor(level):
            return
        text = " ".join([event, *(f"{key}={value}" for key, value in fields.items())])
        self._logger.log(level, text, extra={"event": event, **fields}, exc_info=exc_info)

    def debug(self, event: str, **fields: Any) -> None:
        self._emit(logging.DEBUG, event, fields)

    def info(self, event: str, **fields: Any) -> None:
        self._emit(logging.INFO, event, fields)

    def warning(self, event: str, **fields: Any) -> None:
        self._emit(logging.WARNING, event, fields)

    def error(self, event: str, **fields: Any) -> None:
        self._emit(logging.ERROR, event, fields)

    def exception(self, event: str, **fields: Any) -> None:
        """ERROR with the active exception attached."""
        self._emit(logging.ERROR, event, fields, exc_info=True)


def setup_logging(
    settings: LoggingSettings | None = None,
    *,
    level: str | None = None,
    json_logs: bool | None = None,
    override_root_handlers: bool | None = None,
    extra_fields: Mapping[str, Any] | None = None,
) -> logging.Handler:
    """
    Configure the root logger for a CLI run and return the stderr handler.

    Settings come from the environment (see :class:`infra.config.LoggingSettings`):
      - BQAP_LOG_LEVEL / LOGGING__LEVEL: DEBUG|INFO|WARNING|ERROR (default INFO)
      - BQAP_LOG_JSON / LOGGING__JSON_LOGS: 1/0 (default 0)
      - BQAP_LOG_OVERRIDE / LOGGING__OVERRIDE_ROOT_HANDLERS: 1/0 (default 0).
        With 1, existing root handlers are replaced; with 0 the handler is only
        installed when root has none.
    Keyword arguments win over settings.
    """
    cfg = settings or get_settings(reload=True).logging
    level_name = (level or cfg.level).upper()
    use_json = cfg.json_logs if json_logs is None else json_logs
    override = cfg.override_root_handlers if override_root_handlers is None else override_root_handlers

    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(JsonFormatter(extra_fields=extra_fields) if use_json else TextFormatter())

    root = logging.getLogger()
    root.setLevel(getattr(logging, level_name, logging.INFO))
    if override:
        for existing in list(root.handlers):
            root.removeHandler(existing)
    if override or not root.handlers:
        root.addHandler(handler)

    for name in _QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)
    return handler


__all__ = [
    "JsonFormatter",
    "StructuredLogger",
    "TextFormatter",
    "clear_run_context",
    "get_run_context",
    "run_ctx",
    "set_run_context",
    "setup_logging",
]
