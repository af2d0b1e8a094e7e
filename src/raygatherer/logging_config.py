"""Diagnostic logging configuration for raygatherer.

Diagnostic logs go to a file only, never to stdout/stderr, so they cannot
interleave with command output or with the --verbose HTTP trace. Logging is
enabled with --log-file or the RAYGATHERER_LOG_FILE environment variable;
without either, every ``log_*`` helper is a no-op.
"""

import logging
from pathlib import Path

LOGGER_NAME = "raygatherer"

LOG_FORMAT = "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s"
LOG_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

# Libraries whose records share our log file and level
HTTP_LOGGERS = ("httpx", "httpcore")


def _file_handler(log_file: Path, level: int) -> logging.FileHandler:
    log_file.parent.mkdir(parents=True, exist_ok=True)
    handler = logging.FileHandler(log_file, mode="a", encoding="utf-8")
    handler.setLevel(level)
    handler.setFormatter(logging.Formatter(fmt=LOG_FORMAT, datefmt=LOG_DATE_FORMAT))
    return handler


def setup_logging(
    log_file: Path | str | None = None,
    log_level: str = "INFO",
    name: str = LOGGER_NAME,
) -> logging.Logger:
    """Attach a file handler to the raygatherer logger.

    The HTTP client libraries are pointed at the same level, so at DEBUG
    the file also records connection setup and each request line.

    Args:
        log_file: Destination file; its directory is created if needed.
            None disables logging.
        log_level: Level name (DEBUG, INFO, WARNING, ERROR, CRITICAL);
            unknown names fall back to INFO.
        name: Logger name.

    Returns:
        The configured logger.

    Example:
        >>> logger = setup_logging(log_file="/tmp/raygatherer.log", log_level="DEBUG")
        >>> logger.info("Fetching live analysis report")
    """
    logger = logging.getLogger(name)
    logger.handlers.clear()
    # Records must never reach the root logger's stderr handler
    logger.propagate = False

    if log_file is None:
        logger.addHandler(logging.NullHandler())
        logger.setLevel(logging.WARNING)
        return logger

    level = getattr(logging, log_level.upper(), logging.INFO)
    logger.setLevel(level)
    logger.addHandler(_file_handler(Path(log_file), level))

    for http_logger in HTTP_LOGGERS:
        logging.getLogger(http_logger).setLevel(level)

    return logger


_logger: logging.Logger | None = None


def configure_global_logger(
    log_file: Path | str | None = None,
    log_level: str = "INFO",
) -> logging.Logger:
    """Configure the logger used by the ``log_*`` helpers.

    Called once per invocation by the dispatcher, before any command runs.
    """
    global _logger
    _logger = setup_logging(log_file=log_file, log_level=log_level)
    return _logger


def log_debug(message: str) -> None:
    """Log at DEBUG (request summaries, parsed options)."""
    if _logger:
        _logger.debug(message)


def log_info(message: str) -> None:
    """Log at INFO (invocations and completed device actions)."""
    if _logger:
        _logger.info(message)


def log_warning(message: str) -> None:
    """Log at WARNING (recoverable trouble such as a removed partial download)."""
    if _logger:
        _logger.warning(message)


def log_error(message: str) -> None:
    """Log at ERROR (unreachable device, rejected requests)."""
    if _logger:
        _logger.error(message)


def log_exception(message: str) -> None:
    """Log at ERROR with the active exception's traceback."""
    if _logger:
        _logger.exception(message)
