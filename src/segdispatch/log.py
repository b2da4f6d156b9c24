"""Logging setup: a timestamped log file plus rich console output."""

from __future__ import annotations

import getpass
import logging
import os
import socket
from datetime import datetime
from pathlib import Path

from rich.console import Console
from rich.logging import RichHandler

LOGGER_NAME = "segdispatch"
NO_LOG_FILE = "the console output"

logger = logging.getLogger(LOGGER_NAME)

_log_file_path: Path | None = None
_handlers: list[logging.Handler] = []


class HeaderFormatter(logging.Formatter):
    """Formats records as ``DATE TIME program:user:host:pid-[LEVEL]:-message``."""

    def __init__(self, program: str):
        super().__init__(datefmt="%Y%m%d:%H:%M:%S")
        self.header = f"{program}:{_current_user()}:{socket.gethostname()}:{os.getpid():06d}"

    def format(self, record: logging.LogRecord) -> str:
        timestamp = self.formatTime(record, self.datefmt)
        message = f"{timestamp} {self.header}-[{record.levelname}]:-{record.getMessage()}"
        if record.exc_info:
            message += "\n" + self.formatException(record.exc_info)
        return message


def setup_logging(
    log_dir: str | Path | None = None,
    program: str = LOGGER_NAME,
    verbose: bool = False,
    console: Console | None = None,
) -> Path | None:
    """Configure the package logger.

    Everything goes to ``<log_dir>/<program>_<YYYYmmdd>.log`` when a log
    directory is given. The console gets INFO and above, or DEBUG when
    ``verbose`` is set. Returns the log file path, if any.
    """
    global _log_file_path

    for handler in _handlers:
        logger.removeHandler(handler)
        handler.close()
    _handlers.clear()
    _log_file_path = None

    logger.setLevel(logging.DEBUG)

    console_handler = RichHandler(
        console=console or Console(stderr=True),
        show_path=False,
        markup=False,
    )
    console_handler.setLevel(logging.DEBUG if verbose else logging.INFO)
    _add_handler(console_handler)

    if log_dir is not None:
        log_dir = Path(log_dir).expanduser()
        log_dir.mkdir(parents=True, exist_ok=True)
        timestamp = datetime.now().strftime("%Y%m%d")
        _log_file_path = log_dir / f"{program}_{timestamp}.log"

        file_handler = logging.FileHandler(_log_file_path)
        file_handler.setLevel(logging.DEBUG)
        file_handler.setFormatter(HeaderFormatter(program))
        _add_handler(file_handler)

    return _log_file_path


def get_log_file_path() -> str:
    """Where the full log lives, for pointing users at it in error messages."""
    if _log_file_path is None:
        return NO_LOG_FILE
    return str(_log_file_path)


def _add_handler(handler: logging.Handler) -> None:
    logger.addHandler(handler)
    _handlers.append(handler)


def _current_user() -> str:
    try:
        return getpass.getuser()
    except (KeyError, OSError):
        return "unknown"
