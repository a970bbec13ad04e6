"""
Structured logging for the voice announcer.

Module diagnostics go through stdlib ``logging``; announcement lifecycle
events (what was announced, which engine spoke it, fallbacks, ducking)
go through StructuredLogger so they can be shipped as JSON lines.
"""

from __future__ import annotations

import json
import logging
import sys
import threading
import time
from dataclasses import dataclass, field, asdict
from enum import Enum
from typing import Any, TextIO


class LogLevel(Enum):
    """Log levels."""

    DEBUG = "debug"
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"
    CRITICAL = "critical"

    @property
    def numeric(self) -> int:
        """Get numeric log level."""
        return {
            "debug": logging.DEBUG,
            "info": logging.INFO,
            "warning": logging.WARNING,
            "error": logging.ERROR,
            "critical": logging.CRITICAL,
        }[self.value]


@dataclass
class LogRecord:
    """A structured log record.

    Attributes:
        level: Log level.
        event: Event name/type.
        message: Human-readable message.
        timestamp: Unix timestamp.
        data: Additional structured data.
    """

    level: str
    event: str
    message: str = ""
    timestamp: float = field(default_factory=time.time)
    data: dict[str, Any] = field(default_factory=dict)

    logger_name: str = ""
    thread_name: str = ""

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary."""
        d = asdict(self)
        d.update(d.pop("data", {}))
        return d

    def to_json(self) -> str:
        """Convert to JSON string."""
        return json.dumps(self.to_dict(), ensure_ascii=False, default=str)


class StructuredLogger:
    """Structured event logging.

    Example:
        logger = StructuredLogger("voice_announcer", json_format=False)

        logger.announcement("ads", "Traga um amigo e ganhe 30 dias grátis!")
        # [2024-05-01 21:30:00] [INFO] [announcement] ads (source=ads, ...)

        speech_log = logger.bind(component="speech")
        speech_log.speech_fallback("Olá", failed="murf", next_engine="elevenlabs",
                                   reason="Murf API error: 500")
    """

    def __init__(
        self,
        name: str = "voice_announcer",
        level: LogLevel = LogLevel.INFO,
        output: TextIO | None = None,
        json_format: bool = True,
    ):
        """Initialize the logger.

        Args:
            name: Logger name.
            level: Minimum log level.
            output: Output stream (default: stderr at emit time).
            json_format: Output as JSON (vs. human-readable).
        """
        self.name = name
        self._level = level
        self._output = output
        self._json_format = json_format
        self._context: dict[str, Any] = {}
        self._lock = threading.Lock()

    @property
    def level(self) -> LogLevel:
        return self._level

    def bind(self, **context: Any) -> "StructuredLogger":
        """Create a new logger with bound context.

        Args:
            **context: Context to bind to all log records.

        Returns:
            New logger with bound context.
        """
        new_logger = StructuredLogger(
            name=self.name,
            level=self._level,
            output=self._output,
            json_format=self._json_format,
        )
        new_logger._context = {**self._context, **context}
        new_logger._lock = self._lock
        return new_logger

    def _log(
        self,
        level: LogLevel,
        event: str,
        message: str = "",
        **data: Any,
    ) -> None:
        if level.numeric < self._level.numeric:
            return

        record = LogRecord(
            level=level.value,
            event=event,
            message=message,
            data={**self._context, **data},
            logger_name=self.name,
            thread_name=threading.current_thread().name,
        )

        self._emit(record)

    def _emit(self, record: LogRecord) -> None:
        with self._lock:
            if self._json_format:
                line = record.to_json()
            else:
                line = self._format_human(record)

            print(line, file=self._output or sys.stderr, flush=True)

    def _format_human(self, record: LogRecord) -> str:
        timestamp = time.strftime(
            "%Y-%m-%d %H:%M:%S",
            time.localtime(record.timestamp),
        )

        parts = [
            f"[{timestamp}]",
            f"[{record.level.upper()}]",
            f"[{record.event}]",
        ]

        if record.message:
            parts.append(record.message)

        if record.data:
            data_str = " ".join(f"{k}={v}" for k, v in record.data.items())
            parts.append(f"({data_str})")

        return " ".join(parts)

    def debug(self, event: str, message: str = "", **data: Any) -> None:
        """Log at DEBUG level."""
        self._log(LogLevel.DEBUG, event, message, **data)

    def info(self, event: str, message: str = "", **data: Any) -> None:
        """Log at INFO level."""
        self._log(LogLevel.INFO, event, message, **data)

    def warning(self, event: str, message: str = "", **data: Any) -> None:
        """Log at WARNING level."""
        self._log(LogLevel.WARNING, event, message, **data)

    def error(self, event: str, message: str = "", **data: Any) -> None:
        """Log at ERROR level."""
        self._log(LogLevel.ERROR, event, message, **data)

    # Announcement lifecycle events

    def announcement(self, source: str, message: str, **extra: Any) -> None:
        """Log an announcement request."""
        self.info(
            "announcement",
            message,
            source=source,
            text_length=len(message),
            **extra,
        )

    def speech_start(self, text: str, engine: str = "", **extra: Any) -> None:
        """Log the start of audible speech."""
        self.info(
            "speech_start",
            "Speaking",
            text_length=len(text),
            engine=engine,
            **extra,
        )

    def speech_complete(
        self,
        text: str,
        engine: str = "",
        duration_ms: float = 0,
        **extra: Any,
    ) -> None:
        """Log the end of an item."""
        self.info(
            "speech_complete",
            f"Spoke in {duration_ms:.0f}ms",
            text_length=len(text),
            engine=engine,
            duration_ms=round(duration_ms, 1),
            **extra,
        )

    def speech_fallback(
        self,
        text: str,
        failed: str,
        next_engine: str,
        reason: str = "",
        **extra: Any,
    ) -> None:
        """Log a step down the engine fallback chain."""
        self.warning(
            "speech_fallback",
            f"{failed} failed, trying {next_engine}",
            text_length=len(text),
            failed=failed,
            next_engine=next_engine,
            reason=reason,
            **extra,
        )

    def speech_error(self, error: Exception, **extra: Any) -> None:
        """Log a dropped item."""
        self.error(
            "speech_error",
            str(error),
            error_type=type(error).__name__,
            **extra,
        )

    def ducking(self, multiplier: float, **extra: Any) -> None:
        """Log a media volume change."""
        self.debug(
            "ducking",
            f"Media volume x{multiplier:.2f}",
            multiplier=multiplier,
            **extra,
        )


_global_logger: StructuredLogger | None = None


def configure_logging(
    level: LogLevel | str = LogLevel.INFO,
    output: TextIO | None = None,
    json_format: bool = True,
) -> StructuredLogger:
    """Configure the process loggers.

    Sets the structured logger and the stdlib root level together so
    module diagnostics and lifecycle events share one threshold.

    Args:
        level: Log level.
        output: Output stream.
        json_format: Use JSON format.

    Returns:
        Configured logger.
    """
    global _global_logger

    if isinstance(level, str):
        level = LogLevel(level.lower())

    logging.basicConfig(
        level=level.numeric,
        stream=output or sys.stderr,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    logging.getLogger().setLevel(level.numeric)

    _global_logger = StructuredLogger(
        name="voice_announcer",
        level=level,
        output=output,
        json_format=json_format,
    )

    return _global_logger


def get_logger(name: str = "voice_announcer") -> StructuredLogger:
    """Get the process structured logger."""
    global _global_logger

    if _global_logger is None:
        _global_logger = StructuredLogger(name=name)

    return _global_logger


__all__ = [
    "LogLevel",
    "LogRecord",
    "StructuredLogger",
    "configure_logging",
    "get_logger",
]
