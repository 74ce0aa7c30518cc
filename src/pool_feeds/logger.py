"""Logging configuration for pool-feeds."""

import logging
import os
import sys

# Define TRACE level (lower than DEBUG)
TRACE = 5
logging.addLevelName(TRACE, "TRACE")

NOISY_LOGGERS = ("web3", "urllib3", "asyncio")


class ColoredFormatter(logging.Formatter):
    """Colored log formatter using ANSI escape codes."""

    COLORS = {
        "TRACE": "\033[90m",  # Dark gray
        "DEBUG": "\033[36m",  # Cyan
        "INFO": "\033[32m",  # Green
        "WARNING": "\033[33m",  # Yellow
        "ERROR": "\033[31m",  # Red
        "CRITICAL": "\033[35m",  # Magenta
    }
    RESET = "\033[0m"
    BOLD = "\033[1m"

    def format(self, record: logging.LogRecord) -> str:
        levelname = record.levelname
        if levelname in self.COLORS:
            record.levelname = (
                f"{self.COLORS[levelname]}{self.BOLD}{levelname}{self.RESET}"
            )

        result = super().format(record)

        record.levelname = levelname

        return result


class FeedContextFilter(logging.Filter):
    """Prefix messages that carry a feed alias in ``extra``."""

    def filter(self, record: logging.LogRecord) -> bool:
        feed = getattr(record, "feed", None)
        if feed and not getattr(record, "_feed_prefixed", False):
            record.msg = f"[{feed}] {record.msg}"
            record._feed_prefixed = True
        return True


def setup_logging(log_level: str | None = None) -> None:
    """Configure logging for the application.

    ``log_level`` wins over the POOL_FEEDS_LOG_LEVEL environment variable;
    INFO is used when neither is set.

    At DEBUG the web3/urllib3 loggers stay at WARNING to keep RPC chatter out of
    the output. Use TRACE to see everything.
    """
    level_name = (log_level or os.getenv("POOL_FEEDS_LOG_LEVEL", "INFO")).upper()
    level = TRACE if level_name == "TRACE" else getattr(logging, level_name, logging.INFO)

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(
        ColoredFormatter(
            fmt="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
        )
    )
    handler.addFilter(FeedContextFilter())

    logging.basicConfig(
        level=level,
        handlers=[handler],
        force=True,
    )

    if level_name == "TRACE":
        for name in NOISY_LOGGERS:
            logging.getLogger(name).setLevel(TRACE)
    elif level <= logging.DEBUG:
        for name in NOISY_LOGGERS:
            logging.getLogger(name).setLevel(logging.WARNING)


def get_logger(name: str) -> logging.Logger:
    """Get a logger instance for a module.

    Args:
        name: Usually __name__ of the calling module

    Returns:
        Configured logger instance
    """
    return logging.getLogger(name)
