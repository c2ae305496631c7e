"""
Logging configuration for pgfonline.

Library modules log through ``logging.getLogger(__name__)`` and never install
handlers themselves. Applications (the CLI, tests, scripts) call one of the
``setup_*`` helpers here to decide where records go.
"""

import logging
import os
from pathlib import Path
from typing import Any, Optional

ROOT_LOGGER_NAME = "pgfonline"

DEFAULT_LOG_DIR = Path(os.environ.get("PGFONLINE_DIR", Path.home() / ".pgfonline")) / "logs"

LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"


def get_logger(name: str) -> logging.Logger:
    """Get a logger below the pgfonline namespace.

    Args:
        name: Component name, e.g. "session"

    Returns:
        Logger named "pgfonline.<name>"
    """
    return logging.getLogger(f"{ROOT_LOGGER_NAME}.{name}")


def setup_logging(
    level: int = logging.INFO,
    log_file: Optional[Path] = None,
    console: bool = True,
    rich_console: bool = True,
) -> logging.Logger:
    """Configure the pgfonline root logger.

    Existing handlers are removed first so repeated calls don't duplicate
    output.

    Args:
        level: Logging level for the pgfonline logger
        log_file: Optional file to append plain-text records to
        console: Whether to log to the console (stderr)
        rich_console: Use Rich's handler for the console when available

    Returns:
        The configured pgfonline logger
    """
    logger = logging.getLogger(ROOT_LOGGER_NAME)
    logger.handlers.clear()
    logger.setLevel(level)
    logger.propagate = False

    if console:
        handler: Optional[logging.Handler] = None
        if rich_console:
            try:
                from rich.logging import RichHandler
                handler = RichHandler(
                    show_path=False,
                    rich_tracebacks=True,
                    markup=False,
                )
            except ImportError:
                handler = None
        if handler is None:
            handler = logging.StreamHandler()
            handler.setFormatter(logging.Formatter(LOG_FORMAT, DATE_FORMAT))
        handler.setLevel(level)
        logger.addHandler(handler)

    if log_file is not None:
        log_file = Path(log_file)
        log_file.parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(log_file)
        file_handler.setFormatter(logging.Formatter(LOG_FORMAT, DATE_FORMAT))
        file_handler.setLevel(level)
        logger.addHandler(file_handler)

    return logger


def setup_cli_logging(verbose: bool = False, log_file: Optional[Path] = None) -> logging.Logger:
    """Logging for interactive CLI use: warnings only unless verbose."""
    setup_logging(
        level=logging.DEBUG if verbose else logging.WARNING,
        log_file=log_file,
        console=True,
    )
    return get_logger("cli")


def setup_session_logging(log_file: Optional[Path] = None) -> logging.Logger:
    """Log a full engine conversation (DEBUG) to a file.

    Args:
        log_file: Target file, defaults to DEFAULT_LOG_DIR / "session.log"

    Returns:
        The session logger
    """
    if log_file is None:
        log_file = DEFAULT_LOG_DIR / "session.log"
    setup_logging(level=logging.DEBUG, log_file=log_file, console=False)
    return get_logger("session")


class StructuredLogger:
    """Thin wrapper that appends key=value context to messages.

    Used for per-session logging where every line should carry the
    engine command and query number.
    """

    def __init__(self, logger: logging.Logger, **context: Any):
        self._logger = logger
        self._context = context

    def with_context(self, **context: Any) -> "StructuredLogger":
        """Return a new logger with additional context merged in."""
        merged = {**self._context, **context}
        return StructuredLogger(self._logger, **merged)

    def _format(self, message: str, **kwargs: Any) -> str:
        fields = {**self._context, **kwargs}
        if not fields:
            return message
        rendered = " ".join(f"{k}={v}" for k, v in fields.items())
        return f"{message} [{rendered}]"

    def debug(self, message: str, **kwargs: Any) -> None:
        self._logger.debug(self._format(message, **kwargs))

    def info(self, message: str, **kwargs: Any) -> None:
        self._logger.info(self._format(message, **kwargs))

    def warning(self, message: str, **kwargs: Any) -> None:
        self._logger.warning(self._format(message, **kwargs))

    def error(self, message: str, **kwargs: Any) -> None:
        self._logger.error(self._format(message, **kwargs))

    def exception(self, message: str, **kwargs: Any) -> None:
        self._logger.exception(self._format(message, **kwargs))


def get_structured_logger(name: str, **context: Any) -> StructuredLogger:
    """Get a StructuredLogger wrapping get_logger(name)."""
    return StructuredLogger(get_logger(name), **context)
