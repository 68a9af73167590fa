"""
Logging setup shared by the CLI and the report service.

Three sinks hang off the `ultralinq_helper` logger:
- console: colored, INFO unless --verbose
- ultralinq_helper.log: one JSON object per line (python-json-logger),
  DEBUG, rotated at midnight, seven days kept
- ultralinq_helper.error.log: plain text, ERROR and above
"""

from logging.handlers import TimedRotatingFileHandler
from pathlib import Path
from typing import Optional
import logging
import sys

from pythonjsonlogger import jsonlogger

LOGGER_NAME = "ultralinq_helper"
JSON_LOG_FILE = "ultralinq_helper.log"
ERROR_LOG_FILE = "ultralinq_helper.error.log"

CONSOLE_FORMAT = "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s"
ERROR_FORMAT = "%(asctime)s | %(levelname)s | %(name)s:%(lineno)d | %(message)s"
JSON_FIELDS = "%(asctime)s %(name)s %(levelname)s %(message)s %(module)s %(funcName)s %(lineno)d"


class ColoredFormatter(logging.Formatter):
    """Colors the level name and message by severity."""

    LEVEL_COLORS = {
        logging.DEBUG: "\033[36m",
        logging.INFO: "\033[32m",
        logging.WARNING: "\033[33m",
        logging.ERROR: "\033[31m",
        logging.CRITICAL: "\033[1;35m",
    }
    RESET = "\033[0m"

    def format(self, record: logging.LogRecord) -> str:
        # Copy, so other handlers format the untouched record
        colored = logging.makeLogRecord(record.__dict__)
        color = self.LEVEL_COLORS.get(record.levelno, "")
        colored.levelname = f"{color}{record.levelname}{self.RESET}"
        colored.msg = f"{color}{record.getMessage()}{self.RESET}"
        colored.args = None
        return super().format(colored)


def _console_handler(level: int) -> logging.Handler:
    handler = logging.StreamHandler(sys.stdout)
    handler.setLevel(level)
    handler.setFormatter(ColoredFormatter(CONSOLE_FORMAT, datefmt="%H:%M:%S"))
    return handler


def _json_handler(log_dir: Path) -> logging.Handler:
    handler = TimedRotatingFileHandler(
        log_dir / JSON_LOG_FILE, when="midnight", backupCount=7, encoding="utf-8"
    )
    handler.setLevel(logging.DEBUG)
    handler.setFormatter(jsonlogger.JsonFormatter(
        JSON_FIELDS, rename_fields={"levelname": "level", "asctime": "timestamp"}
    ))
    return handler


def _error_handler(log_dir: Path) -> logging.Handler:
    handler = logging.FileHandler(log_dir / ERROR_LOG_FILE, encoding="utf-8")
    handler.setLevel(logging.ERROR)
    handler.setFormatter(logging.Formatter(ERROR_FORMAT))
    return handler


def setup_logging(log_dir: Optional[Path] = None, console_level: int = logging.INFO) -> logging.Logger:
    """
    (Re)configure the package logger. Safe to call more than once.

    Args:
        log_dir: Directory for the JSON and error logs; None means console only
        console_level: Console threshold

    Returns:
        The package logger
    """
    logger = logging.getLogger(LOGGER_NAME)
    logger.setLevel(logging.DEBUG)
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()

    logger.addHandler(_console_handler(console_level))

    if log_dir is not None:
        log_dir = Path(log_dir)
        log_dir.mkdir(parents=True, exist_ok=True)
        logger.addHandler(_json_handler(log_dir))
        logger.addHandler(_error_handler(log_dir))

    return logger
