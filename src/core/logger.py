"""Logging for Album BPM Updater.

Two loggers are handed out by ``get_loggers``:

- ``console_logger`` prints through ``rich.logging.RichHandler`` on the
  shared console, so log lines and the report table never interleave.
- ``error_logger`` (together with ``main_logger`` and ``config``) feeds a
  ``QueueHandler``; a ``QueueListener`` thread writes the records to the
  run log file, keeping file I/O off the scheduler ticks.

The run log frames every run with a header and footer and keeps only the
last ``logging.max_runs`` runs.
"""

from __future__ import annotations

import logging
import queue
import re
import sys
import time
from datetime import UTC, datetime
from logging.handlers import QueueHandler, QueueListener
from pathlib import Path
from typing import TYPE_CHECKING

from rich.console import Console
from rich.logging import RichHandler

if TYPE_CHECKING:
    from core.models.track_models import AppConfig

__all__ = [
    "LEVEL_ABBREV",
    "CompactFormatter",
    "LogFormat",
    "LoggerFilter",
    "RunHandler",
    "RunTrackingHandler",
    "SafeQueueListener",
    "ensure_directory",
    "get_full_log_path",
    "get_log_levels_from_config",
    "get_loggers",
    "get_shared_console",
]

FILE_LOGGER_NAMES = ("main_logger", "error_logger", "config")

LEVEL_ABBREV = {
    "DEBUG": "D",
    "INFO": "I",
    "WARNING": "W",
    "ERROR": "E",
    "CRITICAL": "C",
}

_BLUE = "\033[34m"
_RESET = "\033[0m"
_SEPARATOR = "=" * 80
_SEPARATOR_LINE = re.compile(r"^(\x1b\[\d+m)?={80}(\x1b\[0m)?$")

_shared: dict[str, Console] = {}


def get_shared_console() -> Console:
    """Return the process-wide Rich console used by logging and the report."""
    if "console" not in _shared:
        _shared["console"] = Console()
    return _shared["console"]


class SafeQueueListener(QueueListener):
    """QueueListener whose ``stop`` may be called more than once."""

    def stop(self) -> None:
        """Stop the listener thread if it is still running."""
        if getattr(self, "_thread", None) is None:
            return
        try:
            super().stop()
        except (AttributeError, RuntimeError) as e:
            print(f"Warning: could not stop log listener cleanly: {e}", file=sys.stderr)


class LogFormat:
    """Rich markup helpers for console messages.

    Example:
        logger.info("Stamped %s on %s", LF.number(121), LF.entity("Daft Punk|||Discovery"))
    """

    @staticmethod
    def entity(name: str) -> str:
        """Album, artist or component name."""
        return f"[yellow]{name}[/yellow]"

    @staticmethod
    def file(name: str) -> str:
        """File name."""
        return f"[cyan]{name}[/cyan]"

    @staticmethod
    def number(value: float) -> str:
        """Count or BPM value."""
        return f"[bright_white]{value}[/bright_white]"

    @staticmethod
    def success(text: str) -> str:
        """Completed state."""
        return f"[green]{text}[/green]"

    @staticmethod
    def duration(seconds: float) -> str:
        """Elapsed time in seconds."""
        return f"[dim]{seconds:.1f}s[/dim]"


class LoggerFilter:
    """Pass only records emitted by the named loggers or their children."""

    def __init__(self, allowed_loggers: list[str]) -> None:
        self.allowed_loggers = tuple(allowed_loggers)

    def filter(self, record: logging.LogRecord) -> bool:
        return any(record.name == name or record.name.startswith(f"{name}.") for name in self.allowed_loggers)


class CompactFormatter(logging.Formatter):
    """File log formatter that shortens level names to one letter."""

    def __init__(self, fmt: str | None = None, datefmt: str = "%H:%M:%S") -> None:
        super().__init__(fmt or "%(asctime)s %(levelname)s [%(name)s] %(filename)s:%(lineno)d - %(message)s", datefmt)

    def format(self, record: logging.LogRecord) -> str:
        levelname = record.levelname
        record.levelname = LEVEL_ABBREV.get(levelname, levelname[:1])
        try:
            return super().format(record)
        finally:
            record.levelname = levelname


class RunHandler:
    """Run header/footer text and trimming of the run log."""

    def __init__(self, max_runs: int = 3) -> None:
        """Keep at most ``max_runs`` runs in the log file; 0 keeps everything."""
        self.max_runs = max_runs
        self.started = time.monotonic()

    @staticmethod
    def _frame(title: str) -> str:
        return f"\n\n{_BLUE}{_SEPARATOR}{_RESET}\n{title}\n{_BLUE}{_SEPARATOR}{_RESET}\n\n"

    @classmethod
    def format_run_header(cls, logger_name: str) -> str:
        """Header written before the first record of a run."""
        return cls._frame(f"NEW RUN: {logger_name} - {datetime.now(UTC):%Y-%m-%d %H:%M:%S}")

    def format_run_footer(self, logger_name: str) -> str:
        """Footer with the run duration."""
        return self._frame(f"END RUN: {logger_name} - Total time: {time.monotonic() - self.started:.2f}s")

    def trim_log_to_max_runs(self, log_file: str) -> None:
        """Drop everything before the ``max_runs``-th most recent run header."""
        path = Path(log_file)
        if self.max_runs <= 0 or not path.exists():
            return
        try:
            lines = path.read_text(encoding="utf-8", errors="ignore").splitlines(keepends=True)
            starts = [
                index
                for index, line in enumerate(lines[:-1])
                if _SEPARATOR_LINE.match(line.strip()) and lines[index + 1].startswith("NEW RUN:")
            ]
            if len(starts) <= self.max_runs:
                return
            tmp_path = path.with_name(f"{path.name}.tmp")
            tmp_path.write_text("".join(lines[starts[-self.max_runs] :]), encoding="utf-8")
            tmp_path.replace(path)
        except OSError as e:
            print(f"Error trimming log file {log_file}: {e}", file=sys.stderr)


class RunTrackingHandler(logging.FileHandler):
    """File handler that frames each run and trims the file on close."""

    def __init__(self, filename: str, *, run_handler: RunHandler | None = None, encoding: str = "utf-8") -> None:
        ensure_directory(str(Path(filename).parent))
        super().__init__(filename, mode="a", encoding=encoding)
        self.run_handler = run_handler
        self._header_written = False
        self._closed = False

    def emit(self, record: logging.LogRecord) -> None:
        if self.run_handler is not None and not self._header_written:
            self._header_written = True
            try:
                if self.stream is None:
                    self.stream = self._open()
                self.stream.write(self.run_handler.format_run_header(record.name))
            except OSError:
                self.handleError(record)
        super().emit(record)

    def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        try:
            if self.run_handler is not None and self._header_written and self.stream:
                self.stream.write(self.run_handler.format_run_footer("Logger"))
                self.flush()
        except OSError as e:
            print(f"ERROR: Failed to write log footer for {self.baseFilename}: {e}", file=sys.stderr)
        finally:
            super().close()
            if self.run_handler is not None:
                self.run_handler.trim_log_to_max_runs(self.baseFilename)


def ensure_directory(path: str, error_logger: logging.Logger | None = None) -> None:
    """Create ``path`` (and parents) if it does not exist."""
    if not path:
        return
    try:
        Path(path).mkdir(parents=True, exist_ok=True)
    except OSError as e:
        if error_logger is not None:
            error_logger.exception("Error creating directory %s", path)
        else:
            print(f"ERROR: Error creating directory {path}: {e}", file=sys.stderr)


def get_full_log_path(
    config: AppConfig | None,
    key: str,
    default: str,
    error_logger: logging.Logger | None = None,
) -> str:
    """Join ``logs_base_dir`` with ``config.logging.<key>`` and make sure its directory exists."""
    if config is None:
        if error_logger is not None:
            error_logger.error("Invalid config passed to get_full_log_path.")
        base_dir, relative = "", default
    else:
        configured = getattr(config.logging, key, None)
        base_dir = config.logs_base_dir
        relative = configured if isinstance(configured, str) and configured else default

    full_path = Path(base_dir) / relative
    ensure_directory(str(full_path.parent), error_logger)
    return str(full_path)


def get_log_levels_from_config(config: AppConfig) -> dict[str, int]:
    """Map the configured level names to logging constants."""
    names = logging.getLevelNamesMapping()
    levels = config.logging.levels
    return {
        "console": names.get(str(levels.console), logging.INFO),
        "main_file": names.get(str(levels.main_file), logging.INFO),
    }


def _console_logger(level: int) -> logging.Logger:
    console_logger = logging.getLogger("console_logger")
    if not console_logger.handlers:
        console_logger.addHandler(
            RichHandler(
                level=level,
                console=get_shared_console(),
                show_path=False,
                log_time_format="%H:%M:%S",
                markup=True,
            )
        )
        console_logger.propagate = False
    console_logger.setLevel(level)
    return console_logger


def _file_loggers(config: AppConfig, level: int) -> SafeQueueListener:
    log_file = get_full_log_path(config, "main_log_file", "main/main.log")
    file_handler = RunTrackingHandler(log_file, run_handler=RunHandler(config.logging.max_runs))
    file_handler.setFormatter(CompactFormatter(datefmt="%Y-%m-%d %H:%M:%S"))
    file_handler.setLevel(level)
    file_handler.addFilter(LoggerFilter(list(FILE_LOGGER_NAMES)))

    log_queue: queue.Queue[logging.LogRecord] = queue.Queue(-1)
    listener = SafeQueueListener(log_queue, file_handler, respect_handler_level=True)
    listener.start()

    queue_handler = QueueHandler(log_queue)
    for name in FILE_LOGGER_NAMES:
        logger = logging.getLogger(name)
        logger.handlers = [h for h in logger.handlers if not isinstance(h, (QueueHandler, logging.NullHandler))]
        logger.addHandler(queue_handler)
        logger.setLevel(level)
        logger.propagate = False
    return listener


def get_loggers(config: AppConfig) -> tuple[logging.Logger, logging.Logger, SafeQueueListener | None]:
    """Build the console and error loggers.

    Never raises: if the file log cannot be set up, plain stream loggers
    are returned and the listener is ``None``.

    Returns:
        Tuple of (console_logger, error_logger, listener).

    """
    levels = get_log_levels_from_config(config)
    try:
        console_logger = _console_logger(levels["console"])
        listener = _file_loggers(config, levels["main_file"])
    except (OSError, ValueError) as e:
        print(f"FATAL ERROR: Failed to configure file logging: {e}", file=sys.stderr)
        logging.basicConfig(level=logging.INFO, format="%(asctime)s - %(levelname)s - %(message)s")
        return logging.getLogger("console_fallback"), logging.getLogger("error_fallback"), None

    console_logger.debug("Logging ready: console via RichHandler, file via QueueListener")
    return console_logger, logging.getLogger("error_logger"), listener
