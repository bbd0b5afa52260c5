"""Structured logging for the language server.

Stdout carries protocol frames, so records go to a log file and, when asked,
to stderr. Every logger carries tags (at least ``service``) that are attached
to each record it writes.

Formats:
    kv      ``<time> +<delta>ms level=info msg=hello service=lsp key=value``
    json    one JSON object per line
    pretty  ``<time> INFO hello (service=lsp key=value) +<delta>ms``
"""

import json
import sys
import threading
import time
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from pathlib import Path
from typing import Any, Callable, Dict, Optional, TextIO


class LogLevel(str, Enum):
    """Log severity levels, lowest first."""
    DEBUG = "DEBUG"
    INFO = "INFO"
    WARN = "WARN"
    ERROR = "ERROR"

    @property
    def rank(self) -> int:
        return _LEVEL_ORDER.index(self)

    @classmethod
    def parse(cls, value: str | None) -> "LogLevel":
        """Parse a level name; ``warning`` is accepted for WARN.

        Raises:
            ValueError: If the name is not a known level
        """
        if value is None:
            return cls.INFO
        text = value.strip().upper()
        if text == "WARNING":
            return cls.WARN
        try:
            return cls(text)
        except ValueError:
            raise ValueError(f"invalid log level: {value}") from None


_LEVEL_ORDER = list(LogLevel)


class LogFormat(str, Enum):
    KV = "kv"
    JSON = "json"
    PRETTY = "pretty"

    @classmethod
    def parse(cls, value: str | None) -> "LogFormat":
        if value is None:
            return cls.KV
        try:
            return cls(value.strip().lower())
        except ValueError:
            raise ValueError(f"invalid log format: {value}") from None


_RESERVED = ("time", "delta_ms", "level", "msg")


def _describe_error(error: BaseException) -> str:
    parts = []
    current: Optional[BaseException] = error
    while current is not None and len(parts) < 10:
        parts.append(f"{type(current).__name__}: {current}")
        current = current.__cause__
    return " Caused by: ".join(parts)


def _normalize(value: Any) -> Any:
    if isinstance(value, BaseException):
        return _describe_error(value)
    if value is None or isinstance(value, (bool, int, float, str, dict, list, tuple)):
        return value
    return str(value)


def _kv_value(value: Any) -> str:
    if isinstance(value, bool):
        return str(value).lower()
    if isinstance(value, (int, float)):
        return str(value)
    if isinstance(value, (dict, list, tuple)):
        return json.dumps(value, ensure_ascii=False, separators=(",", ":"))
    text = str(value)
    # Quote anything that would break key=value tokenization.
    if not text or "=" in text or any(ch.isspace() for ch in text):
        return json.dumps(text, ensure_ascii=False)
    return text


def _pairs(record: Dict[str, Any]) -> str:
    return " ".join(f"{key}={_kv_value(value)}" for key, value in record.items() if key not in _RESERVED)


def _render_kv(record: Dict[str, Any]) -> str:
    head = f"{record['time']} +{record['delta_ms']}ms level={record['level']} msg={_kv_value(record['msg'])}"
    pairs = _pairs(record)
    return f"{head} {pairs}" if pairs else head


def _render_json(record: Dict[str, Any]) -> str:
    return json.dumps(record, ensure_ascii=False, separators=(",", ":"), default=str)


def _render_pretty(record: Dict[str, Any]) -> str:
    pairs = _pairs(record)
    suffix = f" ({pairs})" if pairs else ""
    return f"{record['time']} {record['level'].upper()} {record['msg'] or ''}{suffix} +{record['delta_ms']}ms"


_RENDERERS: Dict[LogFormat, Callable[[Dict[str, Any]], str]] = {
    LogFormat.KV: _render_kv,
    LogFormat.JSON: _render_json,
    LogFormat.PRETTY: _render_pretty,
}


class _Sink:
    """Process-wide output state shared by every logger.

    Handlers log from the event loop and the frame reader thread, so writes
    and (re)configuration happen under one lock.
    """

    def __init__(self) -> None:
        self.level = LogLevel.INFO
        self.format = LogFormat.KV
        self.console = False
        self.path: Optional[str] = None
        self._handle: Optional[TextIO] = None
        self._last = time.monotonic()
        self._lock = threading.Lock()

    def enabled(self, level: LogLevel) -> bool:
        return level.rank >= self.level.rank

    def open(self, file_path: str) -> None:
        path = Path(file_path).expanduser()
        path.parent.mkdir(parents=True, exist_ok=True)
        handle = path.open("w", encoding="utf-8")
        with self._lock:
            self._close_locked()
            self._handle = handle
            self.path = str(path)

    def close(self) -> None:
        with self._lock:
            self._close_locked()

    def _close_locked(self) -> None:
        if self._handle is not None:
            self._handle.close()
            self._handle = None

    def emit(self, level: LogLevel, message: Any, tags: Dict[str, Any]) -> None:
        with self._lock:
            now = time.monotonic()
            delta_ms = int((now - self._last) * 1000)
            self._last = now

            record: Dict[str, Any] = {
                "time": datetime.now(timezone.utc).isoformat(timespec="milliseconds"),
                "delta_ms": delta_ms,
                "level": level.value.lower(),
                "msg": _normalize(message),
            }
            record.update((key, _normalize(value)) for key, value in tags.items() if value is not None)
            line = _RENDERERS[self.format](record) + "\n"

            if self.console:
                sys.stderr.write(line)
                sys.stderr.flush()
            if self._handle is not None:
                self._handle.write(line)
                self._handle.flush()


_sink = _Sink()


@dataclass
class LogTimer:
    """Logs ``status=completed`` with the elapsed milliseconds when stopped."""
    logger: "Logger"
    message: str
    extra: Dict[str, Any]
    start_time: float = field(default_factory=time.monotonic)

    def stop(self) -> None:
        duration_ms = int((time.monotonic() - self.start_time) * 1000)
        self.logger.info(self.message, {**self.extra, "status": "completed", "duration": duration_ms})

    def __enter__(self) -> "LogTimer":
        return self

    def __exit__(self, *args) -> None:
        self.stop()


class Logger:
    """A tagged logger. Obtain one through :meth:`Log.create`."""

    def __init__(self, tags: Optional[Dict[str, Any]] = None):
        self.tags = dict(tags or {})

    def _log(self, level: LogLevel, message: Any, extra: Optional[Dict[str, Any]]) -> None:
        if _sink.enabled(level):
            _sink.emit(level, message, {**self.tags, **(extra or {})})

    def debug(self, message: Any = None, extra: Optional[Dict[str, Any]] = None) -> None:
        self._log(LogLevel.DEBUG, message, extra)

    def info(self, message: Any = None, extra: Optional[Dict[str, Any]] = None) -> None:
        self._log(LogLevel.INFO, message, extra)

    def warn(self, message: Any = None, extra: Optional[Dict[str, Any]] = None) -> None:
        self._log(LogLevel.WARN, message, extra)

    def error(self, message: Any = None, extra: Optional[Dict[str, Any]] = None) -> None:
        self._log(LogLevel.ERROR, message, extra)

    def time(self, message: str, extra: Optional[Dict[str, Any]] = None) -> LogTimer:
        """Log ``status=started`` now and return a timer for the completion record."""
        extra = extra or {}
        self.info(message, {**extra, "status": "started"})
        return LogTimer(logger=self, message=message, extra=extra)


class Log:
    """Logger factory and global sink configuration."""

    _loggers: Dict[str, Logger] = {}

    @classmethod
    def create(cls, tags: Optional[Dict[str, Any]] = None) -> Logger:
        """Return a logger for ``tags``; loggers with a ``service`` tag are shared."""
        tags = tags or {}
        service = tags.get("service")
        if not isinstance(service, str) or not service:
            return Logger(tags)
        if service not in cls._loggers:
            cls._loggers[service] = Logger(tags)
        return cls._loggers[service]

    @classmethod
    def configure(
        cls,
        *,
        level: LogLevel | None = None,
        format: LogFormat | None = None,
        console: bool | None = None,
        file_path: str | None = None,
    ) -> None:
        """Configure the shared sink.

        Args:
            level: Minimum level to emit
            format: Output format
            console: Mirror records to stderr
            file_path: Log file to truncate and write to; ``~`` is expanded and
                parent directories are created. When omitted the file sink is
                closed.
        """
        if level is not None:
            _sink.level = level
        if format is not None:
            _sink.format = format
        if console is not None:
            _sink.console = console

        if file_path:
            _sink.open(file_path)
        else:
            _sink.close()
            _sink.path = None

    @classmethod
    def file(cls) -> str:
        """Path of the open log file, or an empty string."""
        return _sink.path or ""

    @classmethod
    def close(cls) -> None:
        _sink.close()
