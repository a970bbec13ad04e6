"""
Monitoring - structured announcement logging.

Example:
    from voice_announcer.monitoring import configure_logging

    log = configure_logging("info", json_format=False)
    log.announcement("closing-30", "Atenção, a academia encerrará ...")
"""

from voice_announcer.monitoring.logging import (
    StructuredLogger,
    LogLevel,
    LogRecord,
    configure_logging,
    get_logger,
)

__all__ = [
    "StructuredLogger",
    "LogLevel",
    "LogRecord",
    "configure_logging",
    "get_logger",
]
