"""
replay-harness — structured run logging

File: src/replay_harness/observability/logging.py
Last updated: 2026-10-18

Purpose
- Route every ``replay_harness`` log record through a bounded queue into
  JSON-lines sinks (``<log_dir>/<run_id>/replay.jsonl`` and, optionally, stderr).
- Stamp records with the replay correlation fields (run, scenario, profile,
  baseline) bound by ``correlation_scope`` in the emitting task.

Functional requirements
- One active logging session per process; starting a new one closes the old.
- Secrets in messages and ``extra`` fields never reach a sink.
- A full queue drops records instead of blocking a capture.
"""

from __future__ import annotations

import contextvars
import json
import logging
import logging.handlers
import math
import queue
import re
import sys
import threading
from collections.abc import Iterator, Mapping
from contextlib import contextmanager
from dataclasses import dataclass
from datetime import UTC, datetime
from pathlib import Path
from types import MappingProxyType
from typing import Final

from replay_harness.utils.clock import iso_utc
from replay_harness.utils.stable_json import JSONValue

REDACTED: Final[str] = "***REDACTED***"
RUN_LOG_FILENAME: Final[str] = "replay.jsonl"
ROOT_LOGGER_NAME: Final[str] = "replay_harness"

CORRELATION_FIELDS: Final[tuple[str, ...]] = ("run_id", "scenario_id", "profile", "baseline_id")

_SNAPSHOT_ATTR: Final[str] = "replay_correlation"

# Attributes every LogRecord carries; anything else came in through ``extra``.
_RECORD_ATTRS: Final[frozenset[str]] = frozenset(vars(logging.makeLogRecord({}))) | {
    "message",
    "asctime",
    "taskName",
}

_SECRET_KEY: Final[re.Pattern[str]] = re.compile(
    r"(?i)(secret|token|passw|api_?key|credential|cookie|private_key|authorization)"
)
_SECRET_ASSIGNMENT: Final[re.Pattern[str]] = re.compile(
    r"(?i)\b(?P<key>api[_-]?key|token|password|secret)\b(?P<sep>\s*[:=]\s*)[^\s,;]+"
)
_BEARER: Final[re.Pattern[str]] = re.compile(r"(?i)\bbearer\s+[A-Za-z0-9._~+/-]+=*")

_BOUND: contextvars.ContextVar[Mapping[str, str]] = contextvars.ContextVar(
    "replay_harness_log_correlation", default=MappingProxyType({})
)

_session_lock = threading.Lock()
_session: StructuredLoggingHandle | None = None


@dataclass(frozen=True, slots=True)
class LoggingConfig:
    run_id: str
    log_dir: Path | str | None = None
    logger_name: str = ROOT_LOGGER_NAME
    level: int | str = "INFO"
    queue_size: int = 4096
    log_filename: str = RUN_LOG_FILENAME
    log_to_stderr: bool = True


def get_correlation_context() -> dict[str, str]:
    return dict(_BOUND.get())


@contextmanager
def correlation_scope(**fields: str | None) -> Iterator[None]:
    """Bind correlation fields for the enclosed block; ``None`` unbinds a field."""
    bound = get_correlation_context()
    for name, value in fields.items():
        if value is None:
            bound.pop(name, None)
        else:
            bound[name] = _required_text(value, f"correlation field {name!r}")
    token = _BOUND.set(MappingProxyType(bound))
    try:
        yield
    finally:
        _BOUND.reset(token)


def scrub_text(text: str) -> str:
    """Mask ``token=...`` style assignments and bearer credentials in free text."""
    masked = _SECRET_ASSIGNMENT.sub(lambda m: f"{m['key']}{m['sep']}{REDACTED}", text)
    return _BEARER.sub(f"Bearer {REDACTED}", masked)


def scrub_value(value: JSONValue, key: str | None = None) -> JSONValue:
    if key is not None and _SECRET_KEY.search(key):
        return REDACTED
    if isinstance(value, str):
        return scrub_text(value)
    if isinstance(value, dict):
        return {name: scrub_value(item, name) for name, item in value.items()}
    if isinstance(value, list):
        return [scrub_value(item) for item in value]
    return value


class _ContextQueueHandler(logging.handlers.QueueHandler):
    """Captures the emitting task's correlation fields before the record changes threads."""

    def __init__(self, target: queue.Queue[logging.LogRecord]) -> None:
        super().__init__(target)
        self.dropped = 0

    def prepare(self, record: logging.LogRecord) -> logging.LogRecord:
        setattr(record, _SNAPSHOT_ATTR, get_correlation_context())
        prepared: logging.LogRecord = super().prepare(record)
        return prepared

    def enqueue(self, record: logging.LogRecord) -> None:
        try:
            self.queue.put_nowait(record)
        except queue.Full:
            self.dropped += 1


class ReplayJsonFormatter(logging.Formatter):
    """One sorted-key JSON object per record."""

    def __init__(self, run_id: str) -> None:
        super().__init__()
        self._run_id = run_id

    def format(self, record: logging.LogRecord) -> str:
        payload: dict[str, JSONValue] = {
            "timestamp": iso_utc(datetime.fromtimestamp(record.created, tz=UTC)),
            "level": record.levelname,
            "logger": record.name,
            "message": scrub_text(record.getMessage()),
        }
        payload.update(self._correlation(record))

        extra = {
            name: _jsonable(value)
            for name, value in vars(record).items()
            if name not in _RECORD_ATTRS
            and name not in CORRELATION_FIELDS
            and name != _SNAPSHOT_ATTR
            and not name.startswith("_")
        }
        if extra:
            payload["fields"] = scrub_value(extra)
        if record.exc_info:
            payload["exception"] = scrub_text(self.formatException(record.exc_info))
        return json.dumps(payload, sort_keys=True, separators=(",", ":"), ensure_ascii=False)

    def _correlation(self, record: logging.LogRecord) -> dict[str, str]:
        merged = {"run_id": self._run_id}
        snapshot = getattr(record, _SNAPSHOT_ATTR, None)
        if isinstance(snapshot, Mapping):
            merged.update(snapshot)
        for name in CORRELATION_FIELDS:
            explicit = getattr(record, name, None)
            if isinstance(explicit, str) and explicit.strip():
                merged[name] = explicit.strip()
        return merged


class StructuredLoggingHandle:
    """A running logging session; ``shutdown`` drains the queue and closes the sinks."""

    def __init__(
        self,
        logger: logging.Logger,
        run_id: str,
        log_path: Path | None,
        feeder: _ContextQueueHandler,
        listener: logging.handlers.QueueListener,
        restore_propagate: bool,
    ) -> None:
        self.logger = logger
        self.run_id = run_id
        self.log_path = log_path
        self._feeder = feeder
        self._listener = listener
        self._restore_propagate = restore_propagate
        self._closed = threading.Event()

    @property
    def dropped_records(self) -> int:
        return self._feeder.dropped

    @property
    def is_shutdown(self) -> bool:
        return self._closed.is_set()

    def shutdown(self) -> None:
        if self._closed.is_set():
            return
        self._closed.set()
        self._listener.stop()
        self.logger.removeHandler(self._feeder)
        self.logger.propagate = self._restore_propagate
        self._feeder.close()
        for sink in self._listener.handlers:
            sink.flush()
            sink.close()


def setup_structured_logging(config: LoggingConfig) -> StructuredLoggingHandle:
    """Start the logging session for one CLI invocation."""
    shutdown_logging()

    run_id = _required_text(config.run_id, "run_id")
    logger_name = _required_text(config.logger_name, "logger_name")
    level = _resolve_level(config.level)
    if config.queue_size <= 0:
        raise ValueError("queue_size must be > 0")

    formatter = ReplayJsonFormatter(run_id)
    sinks: list[logging.Handler] = []
    log_path: Path | None = None
    if config.log_dir:
        filename = _required_text(config.log_filename, "log_filename")
        if Path(filename).name != filename:
            raise ValueError("log_filename must be a bare file name")
        log_path = Path(config.log_dir) / run_id / filename
        log_path.parent.mkdir(parents=True, exist_ok=True)
        sinks.append(logging.FileHandler(log_path, encoding="utf-8"))
    if config.log_to_stderr:
        sinks.append(logging.StreamHandler(sys.stderr))
    for sink in sinks:
        sink.setLevel(level)
        sink.setFormatter(formatter)

    logger = logging.getLogger(logger_name)
    for stale in list(logger.handlers):
        logger.removeHandler(stale)
        stale.close()
    restore_propagate = logger.propagate
    logger.propagate = False
    logger.setLevel(level)

    records: queue.Queue[logging.LogRecord] = queue.Queue(maxsize=config.queue_size)
    feeder = _ContextQueueHandler(records)
    feeder.setLevel(level)
    listener = logging.handlers.QueueListener(records, *sinks, respect_handler_level=True)
    listener.start()
    logger.addHandler(feeder)

    handle = StructuredLoggingHandle(logger, run_id, log_path, feeder, listener, restore_propagate)
    global _session
    with _session_lock:
        _session = handle
    return handle


def shutdown_logging(handle: StructuredLoggingHandle | None = None) -> None:
    """Close ``handle`` (default: the active session). Safe to call repeatedly."""
    global _session
    with _session_lock:
        target = handle or _session
        if target is None:
            return
        if _session is target:
            _session = None
    target.shutdown()


def get_active_logging_handle() -> StructuredLoggingHandle | None:
    with _session_lock:
        return _session


def _required_text(value: object, name: str) -> str:
    if not isinstance(value, str):
        raise ValueError(f"{name} must be a string, got {type(value).__name__}")
    text = value.strip()
    if not text:
        raise ValueError(f"{name} must not be empty")
    return text


def _resolve_level(level: int | str) -> int:
    if isinstance(level, int):
        return level
    resolved = logging.getLevelName(level.strip().upper())
    if not isinstance(resolved, int):
        raise ValueError(f"unsupported logging level {level!r}")
    return resolved


def _jsonable(value: object) -> JSONValue:
    if value is None or isinstance(value, (bool, int, str)):
        return value
    if isinstance(value, float):
        return value if math.isfinite(value) else str(value)
    if isinstance(value, Path):
        return value.as_posix()
    if isinstance(value, Mapping):
        return {str(key): _jsonable(item) for key, item in value.items()}
    if isinstance(value, (list, tuple)):
        return [_jsonable(item) for item in value]
    if isinstance(value, (set, frozenset)):
        return sorted(str(item) for item in value)
    return repr(value)


__all__ = [
    "CORRELATION_FIELDS",
    "LoggingConfig",
    "REDACTED",
    "ReplayJsonFormatter",
    "StructuredLoggingHandle",
    "correlation_scope",
    "get_active_logging_handle",
    "get_correlation_context",
    "scrub_text",
    "scrub_value",
    "setup_structured_logging",
    "shutdown_logging",
]
