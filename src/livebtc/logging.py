"""Logging for the live price sync client.

Two layers:

- setup_logging() is only called by the standalone ``livebtc`` runner. It
  routes structlog through stdlib logging so the sync events share one stream
  with httpx, and keeps httpx's per-request INFO lines out of that stream.
- SyncLogger is what the config store, cache, fetcher and engine write to. It
  forwards to a host-supplied sink when the client is embedded, falls back to
  structlog otherwise, and honours the enableLogging toggle from config.json.
"""

import logging
from enum import Enum
from typing import Any, Protocol, runtime_checkable

import structlog

# Third-party loggers that log every request at INFO.
_CHATTY_LOGGERS = ("httpx", "httpcore")


def setup_logging(log_level: str = "INFO", log_format: str = "console") -> None:
    """Configure structlog and the root handler for the standalone runner.

    Args:
        log_level: Root level name; unknown names mean INFO.
        log_format: "json" for one JSON object per line, anything else for
            the coloured console renderer.
    """
    level = getattr(logging, log_level.upper(), logging.INFO)

    shared_processors: list[structlog.types.Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.format_exc_info,
    ]

    if log_format.lower() == "json":
        renderer: structlog.types.Processor = structlog.processors.JSONRenderer()
    else:
        renderer = structlog.dev.ConsoleRenderer()

    structlog.configure(
        processors=[
            *shared_processors,
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    handler = logging.StreamHandler()
    handler.setFormatter(
        structlog.stdlib.ProcessorFormatter(
            foreign_pre_chain=shared_processors,
            processors=[
                structlog.stdlib.ProcessorFormatter.remove_processors_meta,
                renderer,
            ],
        )
    )

    root_logger = logging.getLogger()
    root_logger.handlers.clear()
    root_logger.addHandler(handler)
    root_logger.setLevel(level)

    # DEBUG keeps request logging for troubleshooting the API
    for name in _CHATTY_LOGGERS:
        logging.getLogger(name).setLevel(level if level <= logging.DEBUG else logging.WARNING)


def get_logger(name: str) -> structlog.stdlib.BoundLogger:
    return structlog.get_logger(name)


class LogLevel(str, Enum):
    """Severity levels understood by host log sinks."""

    INFO = "info"
    WARN = "warn"
    ERROR = "error"


@runtime_checkable
class LogSink(Protocol):
    """Host-supplied logger. Only plain string messages are passed in."""

    def info(self, message: str) -> None: ...

    def warn(self, message: str) -> None: ...

    def error(self, message: str) -> None: ...


def render_message(event: str, fields: dict[str, Any]) -> str:
    """Flatten an event name and its fields into one line for a host sink."""
    if not fields:
        return event
    parts = " ".join(f"{key}={value}" for key, value in fields.items())
    return f"{event} {parts}"


class SyncLogger:
    """Log interface shared by every price sync component.

    Args:
        sink: Optional host logger. When None, events go to structlog.
        enabled: When False every message is dropped.
        name: structlog logger name used when no sink is supplied.
    """

    def __init__(
        self,
        sink: LogSink | None = None,
        enabled: bool = True,
        name: str = "livebtc",
    ) -> None:
        self._sink = sink
        self._enabled = enabled
        self._fallback = get_logger(name)

    @property
    def enabled(self) -> bool:
        return self._enabled

    def set_enabled(self, enabled: bool) -> None:
        """Apply the enableLogging toggle once the config has been loaded."""
        self._enabled = enabled

    def info(self, event: str, **fields: Any) -> None:
        self.log(LogLevel.INFO, event, **fields)

    def warn(self, event: str, **fields: Any) -> None:
        self.log(LogLevel.WARN, event, **fields)

    def error(self, event: str, **fields: Any) -> None:
        self.log(LogLevel.ERROR, event, **fields)

    def log(self, level: LogLevel, event: str, **fields: Any) -> None:
        if not self._enabled:
            return

        if self._sink is not None:
            message = render_message(event, fields)
            if level is LogLevel.ERROR:
                self._sink.error(message)
            elif level is LogLevel.WARN:
                self._sink.warn(message)
            else:
                self._sink.info(message)
            return

        if level is LogLevel.ERROR:
            self._fallback.error(event, **fields)
        elif level is LogLevel.WARN:
            self._fallback.warning(event, **fields)
        else:
            self._fallback.info(event, **fields)
