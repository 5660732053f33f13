"""
Log sinks

The engine reports what it does through a LogSink handed to it by the
Builder. It never decides whether or where events are displayed; that is
up to the sink. Two event shapes exist: a plain message, and a message
paired with the error that caused it.
"""

import logging
import sys
from typing import Callable, Optional, Protocol, runtime_checkable

import structlog

from ..config.settings import get_settings


@runtime_checkable
class LogSink(Protocol):
    """Receiver of log events emitted by the engine"""

    def log(self, message: str) -> None:
        ...

    def log_error(self, message: str, error: BaseException) -> None:
        ...


class NullLogSink:
    """Discards every event. Installed unless the host asks for logging."""

    def log(self, message: str) -> None:
        pass

    def log_error(self, message: str, error: BaseException) -> None:
        pass


class StructlogSink:
    """Forwards events to a structlog logger"""

    def __init__(self, logger_name: str = "textcrypt"):
        self._logger = structlog.get_logger(logger_name)

    def log(self, message: str) -> None:
        self._logger.info(message)

    def log_error(self, message: str, error: BaseException) -> None:
        self._logger.error(message, error=str(error), error_type=type(error).__name__)


class CallbackLogSink:
    """Adapts two plain callables to the LogSink protocol"""

    def __init__(
        self,
        on_message: Callable[[str], None],
        on_error: Optional[Callable[[str, BaseException], None]] = None
    ):
        self._on_message = on_message
        self._on_error = on_error

    def log(self, message: str) -> None:
        self._on_message(message)

    def log_error(self, message: str, error: BaseException) -> None:
        if self._on_error is not None:
            self._on_error(message, error)
        else:
            self._on_message(f"{message}: {error}")


def configure_logging(log_level: Optional[str] = None) -> None:
    """
    Configure structlog rendering for hosts that enable the default sink.

    The level defaults to the log_level setting (TEXTCRYPT_LOG_LEVEL).
    """
    level = (log_level or get_settings().log_level.value).upper()
    logging.basicConfig(format="%(message)s", stream=sys.stdout, level=level)
    # basicConfig leaves the level alone when the root logger already has handlers
    logging.getLogger().setLevel(level)

    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.stdlib.PositionalArgumentsFormatter(),
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.dev.ConsoleRenderer()
        ],
        wrapper_class=structlog.stdlib.BoundLogger,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )
