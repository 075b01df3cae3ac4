"""Logging helpers for anibridge.

Thin wrapper around the standard ``logging`` module. Modules use the
module-level helpers (``logger.info(...)``) instead of holding their own
logger objects so that a single configuration applies everywhere.
"""

import logging
import sys
from typing import Any
from urllib.parse import urlsplit, urlunsplit

LOGGER_NAME = "anibridge"
SUCCESS = 25

logging.addLevelName(SUCCESS, "SUCCESS")

_LEVEL_COLORS = {
    logging.DEBUG: "\033[36m",
    logging.INFO: "",
    SUCCESS: "\033[32m",
    logging.WARNING: "\033[33m",
    logging.ERROR: "\033[31m",
    logging.CRITICAL: "\033[1;31m",
}
_RESET = "\033[0m"

_logger_instance: logging.Logger | None = None


class _ColorFormatter(logging.Formatter):
    """Formatter that colors the level name when writing to a terminal."""

    def __init__(self, use_color: bool) -> None:
        super().__init__("%(asctime)s %(levelname)-8s %(message)s", "%Y-%m-%d %H:%M:%S")
        self.use_color = use_color

    def format(self, record: logging.LogRecord) -> str:
        message = super().format(record)
        color = _LEVEL_COLORS.get(record.levelno, "")
        if self.use_color and color:
            return f"{color}{message}{_RESET}"
        return message


def init_logger(loglevel: str = "info") -> logging.Logger:
    """Configure the anibridge logger.

    Safe to call more than once; later calls only update the level.

    Args:
        loglevel: Level name such as "debug", "info" or "warning".

    Returns:
        The configured logger.
    """
    global _logger_instance
    level = logging.getLevelName(loglevel.upper())
    if not isinstance(level, int):
        level = logging.INFO

    log = logging.getLogger(LOGGER_NAME)
    if _logger_instance is None:
        handler = logging.StreamHandler(sys.stdout)
        handler.setFormatter(_ColorFormatter(use_color=sys.stdout.isatty()))
        log.addHandler(handler)
        log.propagate = False
        _logger_instance = log

    log.setLevel(level)
    return log


def get_logger() -> logging.Logger:
    """Return the anibridge logger, configuring defaults on first use."""
    if _logger_instance is None:
        return init_logger()
    return _logger_instance


def redact_url_password(url: str) -> str:
    """Hide the password part of a URL's userinfo, if any."""
    parts = urlsplit(url)
    if parts.password is None:
        return url
    netloc = parts.netloc.replace(f":{parts.password}@", ":****@", 1)
    return urlunsplit(parts._replace(netloc=netloc))


def debug(msg: str, *args: Any) -> None:
    get_logger().debug(msg, *args)


def info(msg: str, *args: Any) -> None:
    get_logger().info(msg, *args)


def success(msg: str, *args: Any) -> None:
    get_logger().log(SUCCESS, msg, *args)


def warning(msg: str, *args: Any) -> None:
    get_logger().warning(msg, *args)


def error(msg: str, *args: Any) -> None:
    get_logger().error(msg, *args)


def critical(msg: str, *args: Any) -> None:
    get_logger().critical(msg, *args)


def exception(msg: str, *args: Any) -> None:
    get_logger().exception(msg, *args)


def section(title: str) -> None:
    """Log a visually separated section title."""
    get_logger().info(title)


def header(title: str) -> None:
    get_logger().info("--- %s ---", title)
