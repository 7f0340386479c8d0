"""Logger adapters that attach key-value fields to every record."""

from __future__ import annotations

import os
import sys
import threading
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import datetime
from enum import IntEnum
from typing import Any, Mapping, Optional, TextIO


class LogFields(dict):
    """Key-value fields attached to a log record."""

    def add(self, new_fields: Optional[Mapping[str, Any]]) -> "LogFields":
        """Return a new LogFields holding these fields updated with ``new_fields``."""
        result = LogFields(self)
        if new_fields:
            result.update(new_fields)
        return result

    def copy(self) -> "LogFields":
        """Return a shallow copy."""
        return LogFields(self)


class LoggerAdapter(ABC):
    """Interface every logger used by the library implements."""

    @abstractmethod
    def error(self, msg: str, err: Optional[BaseException], fields: Optional[Mapping[str, Any]] = None) -> None:
        """Log an error together with the exception that caused it."""

    @abstractmethod
    def info(self, msg: str, fields: Optional[Mapping[str, Any]] = None) -> None:
        """Log an informational message."""

    @abstractmethod
    def debug(self, msg: str, fields: Optional[Mapping[str, Any]] = None) -> None:
        """Log a debug message."""

    @abstractmethod
    def trace(self, msg: str, fields: Optional[Mapping[str, Any]] = None) -> None:
        """Log a trace message."""

    @abstractmethod
    def with_fields(self, fields: Optional[Mapping[str, Any]]) -> "LoggerAdapter":
        """Return a logger that adds ``fields`` to every record."""


class NopLogger(LoggerAdapter):
    """A logger that discards everything."""

    def error(self, msg, err, fields=None):
        pass

    def info(self, msg, fields=None):
        pass

    def debug(self, msg, fields=None):
        pass

    def trace(self, msg, fields=None):
        pass

    def with_fields(self, fields):
        return self


class _LineWriter:
    """Writes prefixed, timestamped lines with the caller's file and line."""

    def __init__(self, out: TextIO, prefix: str) -> None:
        self._out = out
        self._prefix = prefix
        self._lock = threading.Lock()

    def output(self, depth: int, text: str) -> None:
        try:
            frame = sys._getframe(depth)
            location = f"{os.path.basename(frame.f_code.co_filename)}:{frame.f_lineno}"
        except ValueError:
            location = "???:0"
        stamp = datetime.now().strftime("%Y/%m/%d %H:%M:%S.%f")
        line = f"{self._prefix}{stamp} {location}: {text}"
        if not line.endswith("\n"):
            line += "\n"
        with self._lock:
            self._out.write(line)
            flush = getattr(self._out, "flush", None)
            if flush is not None:
                flush()


def _format_value(value: Any) -> str:
    if value is None:
        return "<nil>"
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


class StdLoggerAdapter(LoggerAdapter):
    """Logger writing plain text lines; levels without a writer are dropped."""

    def __init__(
        self,
        error_logger: Optional[_LineWriter] = None,
        info_logger: Optional[_LineWriter] = None,
        debug_logger: Optional[_LineWriter] = None,
        trace_logger: Optional[_LineWriter] = None,
        fields: Optional[Mapping[str, Any]] = None,
    ) -> None:
        self.error_logger = error_logger
        self.info_logger = info_logger
        self.debug_logger = debug_logger
        self.trace_logger = trace_logger
        self._fields = LogFields(fields or {})

    def error(self, msg, err, fields=None):
        self._log(self.error_logger, "ERROR", msg, LogFields(fields or {}).add({"err": err}))

    def info(self, msg, fields=None):
        self._log(self.info_logger, "INFO ", msg, fields)

    def debug(self, msg, fields=None):
        self._log(self.debug_logger, "DEBUG", msg, fields)

    def trace(self, msg, fields=None):
        self._log(self.trace_logger, "TRACE", msg, fields)

    def with_fields(self, fields):
        return StdLoggerAdapter(
            error_logger=self.error_logger,
            info_logger=self.info_logger,
            debug_logger=self.debug_logger,
            trace_logger=self.trace_logger,
            fields=self._fields.add(fields),
        )

    def _log(self, logger: Optional[_LineWriter], level: str, msg: str, fields) -> None:
        if logger is None:
            return
        all_fields = self._fields.add(fields)
        parts = []
        for key in sorted(all_fields):
            value_str = _format_value(all_fields[key])
            if " " in value_str:
                value_str = f'"{value_str}"'
            parts.append(f"{key}={value_str} ")
        logger.output(3, f'\tlevel={level} msg="{msg}" {"".join(parts)}')


def new_std_logger_with_out(out: TextIO, debug: bool = False, trace: bool = False) -> LoggerAdapter:
    """Create a StdLoggerAdapter writing to ``out``."""
    writer = _LineWriter(out, "[watermill] ")
    return StdLoggerAdapter(
        error_logger=writer,
        info_logger=writer,
        debug_logger=writer if debug else None,
        trace_logger=writer if trace else None,
    )


def new_std_logger(debug: bool = False, trace: bool = False) -> LoggerAdapter:
    """Create a StdLoggerAdapter writing to standard error."""
    return new_std_logger_with_out(sys.stderr, debug, trace)


class LogLevel(IntEnum):
    TRACE = 1
    DEBUG = 2
    INFO = 3
    ERROR = 4


@dataclass
class CapturedMessage:
    """A single record kept by CaptureLoggerAdapter."""

    level: LogLevel
    fields: LogFields = field(default_factory=LogFields)
    msg: str = ""
    err: Optional[BaseException] = None


class CaptureLoggerAdapter(LoggerAdapter):
    """Logger that keeps every record in memory; useful in tests."""

    def __init__(self) -> None:
        self._captured: dict[LogLevel, list[CapturedMessage]] = {}
        self._fields = LogFields()
        self._lock = threading.Lock()

    def with_fields(self, fields):
        child = CaptureLoggerAdapter()
        child._captured = self._captured
        child._lock = self._lock
        child._fields = self._fields.add(fields)
        return child

    def _capture(self, msg: CapturedMessage) -> None:
        with self._lock:
            self._captured.setdefault(msg.level, []).append(msg)

    def captured(self) -> dict[LogLevel, list[CapturedMessage]]:
        """Return the captured records grouped by level."""
        with self._lock:
            return {level: list(messages) for level, messages in self._captured.items()}

    def has(self, msg: CapturedMessage) -> bool:
        """Tell whether a record equal to ``msg`` was captured."""
        with self._lock:
            return any(captured == msg for captured in self._captured.get(msg.level, []))

    def has_error(self, err: BaseException) -> bool:
        """Tell whether an error record carried exactly this exception."""
        with self._lock:
            return any(captured.err is err for captured in self._captured.get(LogLevel.ERROR, []))

    def error(self, msg, err, fields=None):
        self._capture(CapturedMessage(LogLevel.ERROR, self._fields.add(fields), msg, err))

    def info(self, msg, fields=None):
        self._capture(CapturedMessage(LogLevel.INFO, self._fields.add(fields), msg))

    def debug(self, msg, fields=None):
        self._capture(CapturedMessage(LogLevel.DEBUG, self._fields.add(fields), msg))

    def trace(self, msg, fields=None):
        self._capture(CapturedMessage(LogLevel.TRACE, self._fields.add(fields), msg))