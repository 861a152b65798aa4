"""
Logging for SupportGuard.

Every module gets its logger through ``get_logger``. Records go to two places:

- the terminal, coloured by level and printed through prompt_toolkit;
- a rotating file under ``logs/`` (or ``SUPPORTGUARD_LOG_DIR``), at DEBUG.

Importing this module also installs ``handle_exception`` as ``sys.excepthook``
and quiets the HTTP and Telegram client libraries.
"""

import asyncio
import logging
import os
import sys
from datetime import datetime
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Any, Dict

from prompt_toolkit import print_formatted_text
from prompt_toolkit.formatted_text import ANSI

LOGGER_NAMESPACE = "supportguard"

LOGS_DIR: Path = Path(
    os.getenv("SUPPORTGUARD_LOG_DIR") or Path(__file__).resolve().parents[3] / "logs"
).resolve()
LOGS_DIR.mkdir(parents=True, exist_ok=True)

LOG_FORMAT = "%(asctime)s %(levelname)-8s %(name)s [%(funcName)s:%(lineno)d] %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

MAX_LOG_BYTES = 10 * 1024 * 1024
LOG_BACKUP_COUNT = 5

# A restart within this many seconds keeps writing to the previous file
REUSE_WINDOW_SECONDS = 60

ANSI_RESET = "\033[0m"
LEVEL_COLORS: Dict[int, str] = {
    logging.DEBUG: "\033[36m",
    logging.INFO: "\033[32m",
    logging.WARNING: "\033[33m",
    logging.ERROR: "\033[31m",
    logging.CRITICAL: "\033[1;31m",
}

# Third-party loggers and the level they are held at
LIBRARY_LOG_LEVELS: Dict[str, int] = {
    "aiogram": logging.WARNING,
    "aiogram.event": logging.ERROR,
    "aiogram.dispatcher": logging.WARNING,
    "openai": logging.ERROR,
    "httpx": logging.ERROR,
    "httpcore": logging.ERROR,
    "aiohttp": logging.ERROR,
}

_session_log_file: Path | None = None


class ColorFormatter(logging.Formatter):
    """Formatter that colours the whole line by record level."""

    def format(self, record: logging.LogRecord) -> str:
        line = super().format(record)
        color = LEVEL_COLORS.get(record.levelno)
        if not color:
            return line
        return color + line + ANSI_RESET


class PromptToolkitHandler(logging.Handler):
    """
    Console handler writing through ``print_formatted_text``.

    Output printed this way does not corrupt an active prompt_toolkit prompt
    and keeps ANSI colours on terminals that need translation.
    """

    def __init__(self, formatter: logging.Formatter | None = None, level: int = logging.NOTSET):
        super().__init__(level)
        if formatter is not None:
            self.setFormatter(formatter)

    def emit(self, record: logging.LogRecord) -> None:
        try:
            print_formatted_text(ANSI(self.format(record)))
        except Exception:
            self.handleError(record)


def should_use_color() -> bool:
    """True when stderr is a terminal."""
    try:
        return sys.stderr.isatty()
    except Exception:
        return False


def get_log_filepath() -> Path:
    """Path of this process's log file, chosen once per session."""
    global _session_log_file

    if _session_log_file is not None:
        return _session_log_file

    now = datetime.now()
    candidates = sorted(
        LOGS_DIR.glob(f"supportguard-{now:%Y%m%d}-*.log"),
        key=lambda path: path.stat().st_mtime,
    )
    if candidates and now.timestamp() - candidates[-1].stat().st_mtime < REUSE_WINDOW_SECONDS:
        _session_log_file = candidates[-1]
    else:
        _session_log_file = LOGS_DIR / f"supportguard-{now:%Y%m%d-%H%M%S}.log"
    return _session_log_file


def _console_handler() -> logging.Handler:
    formatter_cls = ColorFormatter if should_use_color() else logging.Formatter
    return PromptToolkitHandler(formatter_cls(LOG_FORMAT, datefmt=DATE_FORMAT), level=logging.INFO)


def _file_handler() -> logging.Handler:
    handler = RotatingFileHandler(
        get_log_filepath(),
        maxBytes=MAX_LOG_BYTES,
        backupCount=LOG_BACKUP_COUNT,
        encoding="utf-8",
    )
    handler.setLevel(logging.DEBUG)
    handler.setFormatter(logging.Formatter(LOG_FORMAT, datefmt=DATE_FORMAT))
    return handler


def setup_logger(logger_name: str) -> logging.Logger:
    """Return the named logger, attaching console and file handlers on first use.

    Parameters
    ----------
    logger_name:
        Logger name. Repeated calls return the same, already configured logger.
    """
    logger = logging.getLogger(logger_name)
    if logger.handlers:
        return logger

    logger.setLevel(logging.DEBUG)
    logger.propagate = False
    logger.addHandler(_console_handler())
    logger.addHandler(_file_handler())
    return logger


def get_logger(logger_name: str) -> logging.Logger:
    """Logger for a SupportGuard component, e.g. ``get_logger("moderation_engine")``."""
    if not logger_name.startswith(LOGGER_NAMESPACE):
        logger_name = f"{LOGGER_NAMESPACE}.{logger_name}"
    return setup_logger(logger_name)


def handle_exception(exception_type, exception_instance, exception_traceback) -> None:
    """``sys.excepthook`` replacement; Ctrl+C keeps Python's default behaviour."""
    if issubclass(exception_type, KeyboardInterrupt):
        sys.__excepthook__(exception_type, exception_instance, exception_traceback)
        return
    get_logger("unhandled").critical(
        "Uncaught exception", exc_info=(exception_type, exception_instance, exception_traceback)
    )


def handle_async_exception(loop: asyncio.AbstractEventLoop, context: Dict[str, Any]) -> None:
    """Event loop exception handler: log the failure and keep the loop running."""
    message = context.get("message", "Unhandled exception in event loop")
    exc = context.get("exception")
    exc_info = (type(exc), exc, exc.__traceback__) if exc is not None else None
    get_logger("unhandled").error("%s", message, exc_info=exc_info)


def configure_library_loggers() -> None:
    """Hold third-party loggers at their configured level and detach their handlers."""
    for name, level in LIBRARY_LOG_LEVELS.items():
        library_logger = logging.getLogger(name)
        library_logger.setLevel(level)
        library_logger.propagate = False
        library_logger.handlers = []


configure_library_loggers()
sys.excepthook = handle_exception
