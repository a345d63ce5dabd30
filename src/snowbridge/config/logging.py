"""Log level setup for snowbridge and the underlying connector"""

import logging
from typing import Optional

TRACE = 5
logging.addLevelName(TRACE, "TRACE")

LOG_LEVELS = {
    "TRACE": TRACE,
    "DEBUG": logging.DEBUG,
    "INFO": logging.INFO,
    "WARN": logging.WARNING,
    "ERROR": logging.ERROR,
}

# Loggers whose level follows init()
MANAGED_LOGGERS = ("snowbridge", "snowflake.connector")

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


def parse_log_level(name: Optional[str]) -> int:
    """Map a level name to a logging level, anything unrecognized is FATAL"""
    return LOG_LEVELS.get((name or "").strip().upper(), logging.CRITICAL)


def init(log_level: Optional[str] = "FATAL") -> int:
    """
    Set the log level of snowbridge and snowflake.connector.

    Args:
        log_level: One of TRACE, DEBUG, INFO, WARN, ERROR. Any other value
            (including None) selects FATAL.

    Returns:
        The numeric level that was applied

    Example:
        >>> init("DEBUG")
        10
    """
    level = parse_log_level(log_level)
    for name in MANAGED_LOGGERS:
        logging.getLogger(name).setLevel(level)

    root = logging.getLogger("snowbridge")
    if not root.handlers:
        handler = logging.StreamHandler()
        handler.setFormatter(logging.Formatter(LOG_FORMAT))
        root.addHandler(handler)

    root.log(TRACE, f"Log level set to {logging.getLevelName(level)} ({level})")
    return level
