"""
Queue-based logging for the arbitrage loop.

Records are queued on the event loop thread and written by a listener
thread, so console and file I/O never stall between RPC calls. Every
record is stamped with the loop iteration that emitted it.
"""

import logging
import sys
from contextvars import ContextVar, Token
from datetime import datetime
from logging.handlers import QueueHandler, QueueListener, RotatingFileHandler
from pathlib import Path
from queue import Queue

from triarb.config.constants import (
    LOG_DATE_FORMAT,
    LOG_FILE_BACKUPS,
    LOG_FILE_MAX_BYTES,
    LOG_FORMAT,
    MAX_LOG_QUEUE_SIZE,
)


_current_iteration: ContextVar[int | None] = ContextVar("triarb_iteration", default=None)


def bind_iteration(number: int) -> Token[int | None]:
    """Tag records logged from the current context with an iteration number."""
    return _current_iteration.set(number)


def unbind_iteration(token: Token[int | None]) -> None:
    _current_iteration.reset(token)


class IterationFilter(logging.Filter):
    """Adds the `iteration` attribute used by LOG_FORMAT; '-' outside the loop."""

    def filter(self, record: logging.LogRecord) -> bool:
        number = _current_iteration.get()
        record.iteration = "-" if number is None else number
        return True


class MicrosecondFormatter(logging.Formatter):
    """Formatter with microsecond timestamps, tolerant of unstamped records."""

    def formatTime(self, record: logging.LogRecord, datefmt: str | None = None) -> str:
        created = datetime.fromtimestamp(record.created)
        return f"{created.strftime(datefmt or LOG_DATE_FORMAT)}.{created.microsecond:06d}"

    def format(self, record: logging.LogRecord) -> str:
        if not hasattr(record, "iteration"):
            record.iteration = "-"
        return super().format(record)


class AsyncLogger:
    """
    Owns the queue, its listener thread and the output handlers.

    Usage:
        with AsyncLogger("triarb", log_file=Path("logs/triarb.log")):
            ...
    """

    def __init__(
        self,
        name: str,
        level: int = logging.INFO,
        log_file: Path | None = None,
    ) -> None:
        """
        Initialize the logger; nothing is attached until start().

        Args:
            name: Logger name the queue handler is attached to.
            level: Console and logger level.
            log_file: Optional rotating log file, written at DEBUG.
        """
        self._level = level
        self._log_file = log_file
        self._queue: Queue[logging.LogRecord] = Queue(maxsize=MAX_LOG_QUEUE_SIZE)
        self._listener: QueueListener | None = None
        self._queue_handler: QueueHandler | None = None
        self._logger = logging.getLogger(name)

    def _build_handlers(self) -> list[logging.Handler]:
        formatter = MicrosecondFormatter(LOG_FORMAT, LOG_DATE_FORMAT)

        console = logging.StreamHandler(sys.stdout)
        console.setLevel(self._level)
        handlers: list[logging.Handler] = [console]

        if self._log_file:
            self._log_file.parent.mkdir(parents=True, exist_ok=True)
            file_handler = RotatingFileHandler(
                self._log_file,
                maxBytes=LOG_FILE_MAX_BYTES,
                backupCount=LOG_FILE_BACKUPS,
                encoding="utf-8",
            )
            file_handler.setLevel(logging.DEBUG)
            handlers.append(file_handler)

        for handler in handlers:
            handler.setFormatter(formatter)
        return handlers

    def start(self) -> None:
        """Attach the queue handler and start the listener thread."""
        if self._listener:
            return

        self._queue_handler = QueueHandler(self._queue)
        # Runs on the emitting side so the iteration context is visible
        self._queue_handler.addFilter(IterationFilter())
        self._logger.addHandler(self._queue_handler)
        self._logger.setLevel(logging.DEBUG if self._log_file else self._level)

        self._listener = QueueListener(
            self._queue,
            *self._build_handlers(),
            respect_handler_level=True,
        )
        self._listener.start()

    def stop(self) -> None:
        """Flush queued records, stop the listener and detach."""
        if self._listener:
            self._listener.stop()
            self._listener = None
        if self._queue_handler:
            self._logger.removeHandler(self._queue_handler)
            self._queue_handler = None

    @property
    def logger(self) -> logging.Logger:
        return self._logger

    def __enter__(self) -> "AsyncLogger":
        self.start()
        return self

    def __exit__(self, *args: object) -> None:
        self.stop()


def setup_logging(
    level: str = "INFO",
    log_file: Path | None = None,
) -> AsyncLogger:
    """
    Set up application-wide logging under the `triarb` logger.

    Args:
        level: Log level name (DEBUG, INFO, WARNING, ERROR).
        log_file: Optional log file path.

    Returns:
        Started AsyncLogger; call stop() on shutdown to flush.
    """
    numeric_level = getattr(logging, level.upper(), logging.INFO)

    root_logger = logging.getLogger()
    root_logger.setLevel(numeric_level)
    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)

    async_logger = AsyncLogger(name="triarb", level=numeric_level, log_file=log_file)
    async_logger.start()

    # Suppress noisy third-party loggers
    logging.getLogger("aiohttp").setLevel(logging.WARNING)
    logging.getLogger("asyncio").setLevel(logging.WARNING)

    return async_logger
