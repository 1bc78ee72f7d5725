"""
Logging setup for sharedbox.

Every module logs through ``logging.getLogger(__name__)``, i.e. below the
``sharedbox`` logger. On import that logger only gets a ``NullHandler``, so
an application that never configures logging sees nothing. Calling
:meth:`SharedboxLoggingConfig.initialize` attaches real handlers:

- console output, optionally colorized
- a rotating log file, optionally one JSON object per line
- level from the argument or from ``SHAREDBOX_LOG_LEVEL``

Timing of slow operations is logged with :func:`log_performance`;
:func:`temporary_log_level` raises verbosity for a block of code.

Example:
    >>> from sharedbox.helper.logging_config import SharedboxLoggingConfig
    >>> SharedboxLoggingConfig.initialize(log_level="DEBUG")
    >>> d = SharedDict("demo")  # segment creation is now logged
"""
import functools
import json
import logging
import logging.config
import os
import time
from contextlib import contextmanager
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Callable, Dict, Iterator, Optional, Union

from sharedbox.defaults.constants import ENV_PREFIX

ROOT_LOGGER_NAME = "sharedbox"
LOG_FILE_NAME = "sharedbox.log"

_MAX_LOG_BYTES = 10 * 1024 * 1024
_LOG_BACKUPS = 5

# attributes every LogRecord has; anything else was passed via ``extra``
_RECORD_ATTRS = frozenset(vars(logging.makeLogRecord({}))) | {"message", "asctime"}

logging.getLogger(ROOT_LOGGER_NAME).addHandler(logging.NullHandler())


def _to_level(level: Union[int, str]) -> int:
    if isinstance(level, int):
        return level
    resolved = logging.getLevelName(level.strip().upper())
    return resolved if isinstance(resolved, int) else logging.INFO


class JsonFormatter(logging.Formatter):
    """
    One JSON object per record.

    Values passed through ``extra=`` (e.g. ``segment`` or ``elapsed_ms``)
    become top-level keys, as do the items of an ``extra_fields`` dict.
    """

    def format(self, record: logging.LogRecord) -> str:
        entry: Dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "module": record.module,
            "function": record.funcName,
            "line": record.lineno,
        }

        for key, value in vars(record).items():
            if key not in _RECORD_ATTRS and key != "extra_fields":
                entry.setdefault(key, value)
        entry.update(getattr(record, "extra_fields", None) or {})

        if record.exc_info:
            entry["exception"] = self.formatException(record.exc_info)

        return json.dumps(entry, default=str)


class ColoredFormatter(logging.Formatter):
    """
    Console formatter that wraps the level name in an ANSI color.

    The record itself is left untouched, so other handlers still see the
    plain level name.
    """

    COLORS = {
        'DEBUG': '\033[36m',
        'INFO': '\033[32m',
        'WARNING': '\033[33m',
        'ERROR': '\033[31m',
        'CRITICAL': '\033[35m',
    }
    RESET = '\033[0m'

    def format(self, record: logging.LogRecord) -> str:
        color = self.COLORS.get(record.levelname)
        if color is None:
            return super().format(record)

        tinted = logging.makeLogRecord(vars(record))
        tinted.levelname = f"{color}\033[1m{record.levelname}{self.RESET}"
        return super().format(tinted)


def build_logging_config(
    level: str,
    log_file: Optional[Path] = None,
    console: bool = True,
    colors: bool = True,
    json_file: bool = False,
) -> Dict[str, Any]:
    """
    dictConfig schema scoped to the ``sharedbox`` logger.

    Args:
        level: Level name applied to the logger and its handlers
        log_file: Path of the rotating log file, None for no file output
        console: Write to stdout
        colors: Colorize the console level names
        json_file: Write the log file as JSON lines
    """
    plain = "%(asctime)s %(levelname)-8s %(name)s: %(message)s"
    handlers: Dict[str, Dict[str, Any]] = {}

    if console:
        handlers["console"] = {
            "class": "logging.StreamHandler",
            "stream": "ext://sys.stdout",
            "formatter": "colored" if colors else "plain",
            "level": level,
        }
    if log_file is not None:
        handlers["file"] = {
            "class": "logging.handlers.RotatingFileHandler",
            "filename": str(log_file),
            "maxBytes": _MAX_LOG_BYTES,
            "backupCount": _LOG_BACKUPS,
            "encoding": "utf-8",
            "formatter": "json" if json_file else "plain",
            "level": level,
        }

    return {
        "version": 1,
        "disable_existing_loggers": False,
        "formatters": {
            "plain": {"format": plain},
            "colored": {"()": ColoredFormatter, "format": plain},
            "json": {"()": JsonFormatter},
        },
        "handlers": handlers,
        "loggers": {
            ROOT_LOGGER_NAME: {
                "level": level,
                "handlers": list(handlers),
                "propagate": False,
            },
        },
    }


class SharedboxLoggingConfig:
    """
    One-time handler setup for the ``sharedbox`` logger.
    """

    _initialized = False
    _log_directory = Path("log")

    @classmethod
    def initialize(
        cls,
        log_level: Optional[str] = None,
        log_directory: Optional[Path] = None,
        log_config: Optional[Dict[str, Any]] = None,
        enable_console: bool = True,
        enable_file: bool = False,
        enable_colors: bool = True,
        enable_json: bool = False,
    ) -> None:
        """
        Attach handlers to the ``sharedbox`` logger. Later calls are no-ops
        until :meth:`reset`.

        Args:
            log_level: Level name; falls back to SHAREDBOX_LOG_LEVEL, then INFO
            log_directory: Directory of ``sharedbox.log`` when file output is on
            log_config: Complete dictConfig schema, replaces the generated one
            enable_console: Log to stdout
            enable_file: Log to a rotating file
            enable_colors: Colorize console output
            enable_json: Write the file as JSON lines
        """
        if cls._initialized:
            return

        level = (log_level or os.getenv(f"{ENV_PREFIX}LOG_LEVEL") or "INFO").upper()

        if log_config is None:
            log_file = None
            if enable_file:
                if log_directory is not None:
                    cls._log_directory = Path(log_directory)
                cls._log_directory.mkdir(parents=True, exist_ok=True)
                log_file = cls._log_directory / LOG_FILE_NAME
            log_config = build_logging_config(
                level,
                log_file=log_file,
                console=enable_console,
                colors=enable_colors,
                json_file=enable_json,
            )

        logging.config.dictConfig(log_config)
        cls._initialized = True
        logging.getLogger(ROOT_LOGGER_NAME).debug(f"sharedbox logging configured at {level}")

    @classmethod
    def get_logger(cls, name: str) -> logging.Logger:
        """Logger *name*, configuring the ``sharedbox`` handlers on first use."""
        cls.initialize()
        return logging.getLogger(name)

    @classmethod
    def set_level(cls, level: Union[int, str], logger_name: Optional[str] = None) -> None:
        """Set the level of a logger (default ``sharedbox``) and of its handlers."""
        logger = logging.getLogger(logger_name or ROOT_LOGGER_NAME)
        numeric = _to_level(level)
        logger.setLevel(numeric)
        for handler in logger.handlers:
            handler.setLevel(numeric)

    @classmethod
    def reset(cls) -> None:
        """Detach configured handlers and return to the import-time state."""
        logger = logging.getLogger(ROOT_LOGGER_NAME)
        for handler in list(logger.handlers):
            logger.removeHandler(handler)
            handler.close()
        logger.addHandler(logging.NullHandler())
        logger.setLevel(logging.NOTSET)
        logger.propagate = True
        cls._initialized = False


def get_logger(name: str) -> logging.Logger:
    """Shortcut for :meth:`SharedboxLoggingConfig.get_logger`."""
    return SharedboxLoggingConfig.get_logger(name)


@contextmanager
def temporary_log_level(
    level: Union[int, str],
    logger_name: Optional[str] = None
) -> Iterator[logging.Logger]:
    """
    Run a block with a different level on one logger.

    Example:
        >>> with temporary_log_level("DEBUG"):
        ...     d.recommend_sizing()
    """
    logger = logging.getLogger(logger_name or ROOT_LOGGER_NAME)
    saved = logger.level
    logger.setLevel(_to_level(level))
    try:
        yield logger
    finally:
        logger.setLevel(saved)


def log_performance(
    threshold_ms: float = 100.0,
    logger_name: Optional[str] = None,
    level: Union[int, str] = "WARNING"
) -> Callable[[Callable], Callable]:
    """
    Time every call of the decorated function.

    Calls slower than *threshold_ms* are logged at *level*, the rest at
    DEBUG. The record carries ``function`` and ``elapsed_ms`` as extras.
    Calls that raise are timed too.
    """
    slow_level = _to_level(level)

    def decorator(func: Callable) -> Callable:
        logger = logging.getLogger(logger_name or func.__module__)

        @functools.wraps(func)
        def wrapper(*args, **kwargs):
            started = time.perf_counter()
            try:
                return func(*args, **kwargs)
            finally:
                elapsed_ms = (time.perf_counter() - started) * 1000
                slow = elapsed_ms > threshold_ms
                message = f"{func.__name__} took {elapsed_ms:.1f}ms"
                if slow:
                    message += f" (threshold: {threshold_ms}ms)"
                logger.log(
                    slow_level if slow else logging.DEBUG,
                    message,
                    extra={"function": func.__name__, "elapsed_ms": elapsed_ms},
                )

        return wrapper
    return decorator
