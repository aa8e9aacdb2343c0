"""Structured logging helpers for configuration load, save and migration."""
from __future__ import annotations

import json
import logging
import os
import threading
import time
from contextlib import contextmanager
from typing import Any, Iterator, Mapping

from .app_identity import APP_LOG_NAMESPACE, LOG_FORMAT_ENV, LOG_LEVEL_ENV

_FORMAT_STRUCTURED = "structured"
_FORMAT_JSON = "json"
_SUPPORTED_FORMATS = {_FORMAT_STRUCTURED, _FORMAT_JSON}

_ACTIVE_FORMAT: str = _FORMAT_STRUCTURED


class _RuntimeContextFilter(logging.Filter):
    """Inject process and thread metadata into each log record."""

    def filter(self, record: logging.LogRecord) -> bool:  # pragma: no cover - trivial
        record.process_id = os.getpid()
        record.thread_name = threading.current_thread().name
        return True


def _stringify_detail(value: Any) -> str:
    if isinstance(value, bool):
        return str(value).lower()
    if isinstance(value, float):
        return f"{value:.2f}"
    if isinstance(value, (list, tuple, set, frozenset)):
        inner = ', '.join(_stringify_detail(item) for item in value)
        return f"[{inner}]"
    if value is None:
        return "<none>"
    return str(value)


class StructuredMessage:
    """Represent a log message with a concise headline and structured details."""

    __slots__ = ("headline", "event", "details")

    def __init__(
        self,
        headline: str,
        /,
        *,
        event: str | None = None,
        details: Mapping[str, Any] | None = None,
        **fields: Any,
    ) -> None:
        combined_details: dict[str, Any] = {}
        if details:
            combined_details.update(details)
        for key, value in fields.items():
            if value is not None:
                combined_details[key] = value
        self.headline = headline
        self.event = event
        self.details = combined_details

    def __str__(self) -> str:  # pragma: no cover - string formatting helper
        segments = [self.headline]
        if self.event:
            segments.append(f"event={self.event}")
        if self.details:
            segments.append(
                " ".join(f"{key}={_stringify_detail(value)}" for key, value in self.details.items())
            )
        return " | ".join(segments)


class _StructuredLogFormatter(logging.Formatter):
    """Formatter that produces explicit, copy-friendly log lines."""

    default_time_format = "%Y-%m-%dT%H:%M:%S"
    default_msec_format = "%s.%03d"

    def format(self, record: logging.LogRecord) -> str:
        timestamp = self.formatTime(record, self.datefmt)
        name = record.name
        component = getattr(record, "component", None)
        if component:
            name = f"{name}:{component}"

        message = super().format(record)
        if "\n" in message:
            head, *rest = message.splitlines()
            message = head + "\n" + "\n".join(f"    {line}" for line in rest)

        extras: list[str] = []
        process_id = getattr(record, "process_id", None)
        if process_id is not None:
            extras.append(f"pid={process_id}")
        thread_name = getattr(record, "thread_name", None) or record.threadName
        if thread_name and thread_name != "MainThread":
            extras.append(f"thread={thread_name}")
        context = f" [{', '.join(extras)}]" if extras else ""

        detail_segment = ""
        event = getattr(record, "event", None)
        if event:
            detail_segment = f" | event={event}"
        details = getattr(record, "details", None)
        if isinstance(details, Mapping) and details:
            detail_segment += " | " + " ".join(
                f"{key}={_stringify_detail(value)}" for key, value in sorted(details.items())
            )

        return f"{timestamp} | {record.levelname:<8} | {name}{context} | {message}{detail_segment}"


def _normalize_json_value(value: Any) -> Any:
    if isinstance(value, (str, int, float, bool)) or value is None:
        return value
    if isinstance(value, Mapping):
        return {str(k): _normalize_json_value(v) for k, v in value.items()}
    if isinstance(value, (list, tuple, set, frozenset)):
        return [_normalize_json_value(item) for item in value]
    return str(value)


class _JsonLogFormatter(logging.Formatter):
    """Formatter that encodes log records as JSON payloads."""

    default_time_format = "%Y-%m-%dT%H:%M:%S"
    default_msec_format = "%s.%03d"

    def format(self, record: logging.LogRecord) -> str:
        payload: dict[str, Any] = {
            "timestamp": self.formatTime(record, self.datefmt),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        for attribute in ("component", "event", "process_id", "thread_name"):
            value = getattr(record, attribute, None)
            if value:
                payload[attribute] = value
        details = getattr(record, "details", None)
        if isinstance(details, Mapping) and details:
            payload["details"] = _normalize_json_value(details)
        if record.exc_info:
            payload["exception"] = self.formatException(record.exc_info)
        return json.dumps(payload, ensure_ascii=False, sort_keys=True)


class ContextualLoggerAdapter(logging.LoggerAdapter):
    """Logger adapter that turns :class:`StructuredMessage` into record extras."""

    def __init__(
        self,
        logger: logging.Logger,
        *,
        component: str | None = None,
        defaults: Mapping[str, Any] | None = None,
    ) -> None:
        super().__init__(logger, extra={})
        self._component = component
        self._defaults = dict(defaults or {})

    def bind(self, **fields: Any) -> "ContextualLoggerAdapter":
        merged_defaults = dict(self._defaults)
        merged_defaults.update(fields)
        return ContextualLoggerAdapter(
            self.logger,
            component=self._component,
            defaults=merged_defaults,
        )

    def process(self, msg: Any, kwargs: Mapping[str, Any]) -> tuple[Any, dict[str, Any]]:
        kwargs = dict(kwargs)
        if isinstance(msg, StructuredMessage):
            event = msg.event
            details = dict(msg.details)
            msg = msg.headline
        else:
            event = None
            details = {}
        details.update(self._defaults)

        extra = dict(kwargs.get("extra") or {})
        if self._component:
            extra.setdefault("component", self._component)
        if event is not None:
            extra.setdefault("event", event)
        if details:
            extra["details"] = details
        if extra:
            kwargs["extra"] = extra
        return msg, kwargs


def _determine_level() -> int:
    env_level = os.getenv(LOG_LEVEL_ENV, "INFO").upper()
    level = logging.getLevelName(env_level)
    return level if isinstance(level, int) else logging.INFO


def _determine_log_format() -> tuple[str, str | None]:
    raw_value = (os.getenv(LOG_FORMAT_ENV) or "").strip().lower()
    if not raw_value:
        return _FORMAT_STRUCTURED, None
    if raw_value in _SUPPORTED_FORMATS:
        return raw_value, None
    return _FORMAT_STRUCTURED, raw_value


def setup_logging() -> None:
    """Configure root logging with the structured (or JSON) console format."""

    global _ACTIVE_FORMAT
    log_format, invalid_choice = _determine_log_format()
    _ACTIVE_FORMAT = log_format

    handler = logging.StreamHandler()
    handler.setFormatter(_JsonLogFormatter() if log_format == _FORMAT_JSON else _StructuredLogFormatter())
    handler.addFilter(_RuntimeContextFilter())

    logging.basicConfig(level=_determine_level(), handlers=[handler], force=True)

    if invalid_choice is not None:
        logging.getLogger(__name__).warning(
            "Unsupported log format '%s' requested via %s; using '%s' instead.",
            invalid_choice,
            LOG_FORMAT_ENV,
            log_format,
        )


def get_log_format() -> str:
    """Return the active log output format."""

    return _ACTIVE_FORMAT


def log_context(
    headline: str,
    /,
    *,
    event: str | None = None,
    details: Mapping[str, Any] | None = None,
    **fields: Any,
) -> StructuredMessage:
    """Build a :class:`StructuredMessage` with a friendly helper syntax."""

    return StructuredMessage(headline, event=event, details=details, **fields)


@contextmanager
def log_duration(
    logger: logging.Logger | logging.LoggerAdapter,
    headline: str,
    /,
    *,
    event: str | None = None,
    details: Mapping[str, Any] | None = None,
    level: int = logging.INFO,
    failure_level: int | None = None,
) -> Iterator[dict[str, Any]]:
    """Log the duration of the wrapped block.

    The yielded ``dict`` may be filled with extra metadata; it is merged into
    the emitted details. Exceptions are logged with ``exc_info`` and re-raised.
    """

    collected: dict[str, Any] = {}
    start_time = time.perf_counter()
    try:
        yield collected
    except Exception as exc:
        failure_details = dict(details or {})
        failure_details.update(collected)
        failure_details["status"] = "failure"
        failure_details["duration_ms"] = int((time.perf_counter() - start_time) * 1000)
        failure_details.setdefault("error", repr(exc))
        logger.log(
            failure_level or logging.ERROR,
            StructuredMessage(headline, event=event, details=failure_details),
            exc_info=True,
        )
        raise
    else:
        success_details = dict(details or {})
        success_details.update(collected)
        success_details["status"] = "success"
        success_details["duration_ms"] = int((time.perf_counter() - start_time) * 1000)
        logger.log(level, StructuredMessage(headline, event=event, details=success_details))


def get_logger(
    name: str,
    *,
    component: str | None = None,
    **default_fields: Any,
) -> ContextualLoggerAdapter:
    """Return a logger adapter enriched with component metadata."""

    if not name.startswith(APP_LOG_NAMESPACE):
        name = f"{APP_LOG_NAMESPACE}.{name}"
    return ContextualLoggerAdapter(
        logging.getLogger(name),
        component=component,
        defaults=default_fields,
    )


__all__ = [
    "ContextualLoggerAdapter",
    "StructuredMessage",
    "get_log_format",
    "get_logger",
    "log_context",
    "log_duration",
    "setup_logging",
]
