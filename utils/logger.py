# This module contains a custom formatter for logging messages with different log levels.
import logging
from typing import Optional

APP_LOGGER_NAME = "fomo"


class CustomFormatter(logging.Formatter):
    """
    A custom formatter for logging messages with different log levels.

    Attributes:
        grey (str): ANSI escape sequence for grey color.
        yellow (str): ANSI escape sequence for yellow color.
        red (str): ANSI escape sequence for red color.
        bold_red (str): ANSI escape sequence for bold red color.
        reset (str): ANSI escape sequence to reset color.
        format (str): The log message format.
        FORMATS (dict): A dictionary mapping log levels to their respective log message formats.

    Usage:
        formatter = CustomFormatter()
        handler = logging.StreamHandler()
        handler.setFormatter(formatter)
    """
    grey = "\x1b[37;20m"
    yellow = "\x1b[33;20m"
    red = "\x1b[31;20m"
    bold_red = "\x1b[31;1m"
    dark_grey = "\x1b[30;1m"
    reset = "\x1b[0m"
    format = '[%(levelname)s] %(asctime)s - %(message)s'

    FORMATS = {
        logging.DEBUG: dark_grey + format + reset,
        logging.INFO: grey + format + reset,
        logging.WARNING: yellow + format + reset,
        logging.ERROR: red + format + reset,
        logging.CRITICAL: bold_red + format + reset
    }

    def format(self, record):
        """
        Formats the log record based on its log level.

        Args:
            record (logging.LogRecord): The log record to be formatted.

        Returns:
            str: The formatted log message.
        """
        log_fmt = self.FORMATS.get(record.levelno)
        formatter = logging.Formatter(log_fmt)
        return formatter.format(record)


def _app_logger() -> logging.Logger:
    """Return the application logger, attaching the console handler once."""
    log = logging.getLogger(APP_LOGGER_NAME)
    if not any(getattr(h, "_fomo_console", False) for h in log.handlers):
        ch = logging.StreamHandler()
        ch.setLevel(logging.DEBUG)
        ch.setFormatter(CustomFormatter())
        ch._fomo_console = True
        log.addHandler(ch)
        log.setLevel(logging.INFO)
    return log


def get_logger(name: str) -> logging.Logger:
    """
    Get a logger that writes through the application's colored console handler.

    Module names are nested under the application logger so one level setting
    controls them all.

    Args:
        name: Usually ``__name__`` of the calling module.

    Returns:
        logging.Logger: The child logger.
    """
    _app_logger()
    if name == APP_LOGGER_NAME or name.startswith(APP_LOGGER_NAME + "."):
        return logging.getLogger(name)
    return logging.getLogger(f"{APP_LOGGER_NAME}.{name}")


def set_log_level(level: str) -> None:
    """Set the application log level by name (e.g. "DEBUG")."""
    _app_logger().setLevel(getattr(logging, level.upper(), logging.INFO))


def setup_file_logging(log_file: str, level: Optional[str] = None) -> logging.Handler:
    """
    Add a plain-text file handler to the application logger.

    Args:
        log_file: Path of the log file to append to.
        level: Optional level name for the file handler.

    Returns:
        logging.Handler: The handler that was attached.
    """
    handler = logging.FileHandler(log_file, encoding="utf-8")
    handler.setFormatter(logging.Formatter('[%(levelname)s] %(asctime)s %(name)s - %(message)s'))
    if level:
        handler.setLevel(getattr(logging, level.upper(), logging.INFO))
    _app_logger().addHandler(handler)
    return handler
