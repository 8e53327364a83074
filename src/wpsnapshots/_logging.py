"""Centralized logging for wpsnapshots.

Library logging follows the stdlib guidance:
- Attach NullHandler to the library root logger
- Never add other handlers from library code
- Support WPSNAPSHOTS_LOG_LEVEL env var for level control
- Provide configure_logging() for the CLI entry point

CLI output format (structured `extra=` context appended as key=value):
    WARNING [2026-02-25 10:02:54] wpsnapshots.subprocess_utils - Command failed command='mysqldump ...' exit_code=2

Records are emitted through a bounded QueueHandler so that the export
commands, which inherit stderr, never interleave with a half-written
log line from the calling thread.
"""

import contextlib
import logging
import logging.handlers
import os
import queue

import click

LIBRARY_LOGGER_NAME: str = "wpsnapshots"

logging.getLogger(LIBRARY_LOGGER_NAME).addHandler(logging.NullHandler())

# Honor WPSNAPSHOTS_LOG_LEVEL env var (e.g. "DEBUG", "WARNING", "ERROR")
_env_level = os.environ.get("WPSNAPSHOTS_LOG_LEVEL", "").strip().upper()
_env_level_value = logging.getLevelNamesMapping().get(_env_level)
if _env_level_value:  # excludes NOTSET (0) and missing keys (None)
    logging.getLogger(LIBRARY_LOGGER_NAME).setLevel(_env_level_value)

_FMT = "%(levelname)s [%(asctime)s] %(name)s - %(message)s"
_DATEFMT = "%Y-%m-%d %H:%M:%S"

_QUEUE_CAPACITY = 1024

# Attributes every LogRecord carries; anything else came in through extra=
_RECORD_ATTRS = frozenset(logging.makeLogRecord({}).__dict__) | {"message", "asctime"}


class _ContextFormatter(logging.Formatter):
    """Formatter that appends a record's extra= fields after the message."""

    def format(self, record: logging.LogRecord) -> str:
        line = super().format(record)
        context = {k: v for k, v in record.__dict__.items() if k not in _RECORD_ATTRS}
        if not context:
            return line
        return line + " " + " ".join(f"{key}={value!r}" for key, value in sorted(context.items()))


class _ClickHandler(logging.Handler):
    """Writes formatted records to stderr via click.echo with dim styling.

    click.echo strips ANSI codes automatically when stderr is not a TTY.
    """

    def __init__(self) -> None:
        super().__init__()
        self.formatter = _ContextFormatter(fmt=_FMT, datefmt=_DATEFMT)

    def emit(self, record: logging.LogRecord) -> None:
        try:
            msg = self.format(record)
            click.echo(click.style(msg, dim=True), err=True)
        except BlockingIOError:
            pass  # Stderr buffer full -- drop the record
        except Exception:  # noqa: BLE001
            self.handleError(record)


class _NonBlockingHandler(logging.handlers.QueueHandler):
    """Queue-backed handler that never blocks the caller.

    A QueueListener daemon thread drains records to _ClickHandler.
    When the queue is full, records are dropped.
    """

    def __init__(self) -> None:
        q: queue.Queue[logging.LogRecord] = queue.Queue(maxsize=_QUEUE_CAPACITY)
        super().__init__(q)
        self._listener = logging.handlers.QueueListener(q, _ClickHandler(), respect_handler_level=False)
        self._listener.start()

    def prepare(self, record: logging.LogRecord) -> logging.LogRecord:
        """Skip serialization -- same-process queue, no pickle needed."""
        return record

    def enqueue(self, record: logging.LogRecord) -> None:
        with contextlib.suppress(queue.Full):
            self.queue.put_nowait(record)

    def close(self) -> None:
        self._listener.stop()
        super().close()


def get_logger(name: str) -> logging.Logger:
    """Get a logger for the given module name.

    All wpsnapshots modules use this instead of logging.getLogger()
    directly for a consistent logger hierarchy.
    """
    return logging.getLogger(name)


def configure_logging(
    *,
    level: int | str | None = None,
    quiet: bool = False,
) -> None:
    """Configure library logging for the CLI entry point.

    Adds a _NonBlockingHandler if none exists (idempotent), then sets the
    log level.

    Args:
        level: Log level (e.g. logging.DEBUG, "WARNING"). Overrides env var.
        quiet: If True, set level to ERROR. Takes precedence over level.
    """
    lib_logger = logging.getLogger(LIBRARY_LOGGER_NAME)

    if not any(isinstance(h, _NonBlockingHandler) for h in lib_logger.handlers):
        lib_logger.addHandler(_NonBlockingHandler())

    if quiet:
        lib_logger.setLevel(logging.ERROR)
    elif level is not None:
        lib_logger.setLevel(level)
