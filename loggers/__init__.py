import logging
from logging import FileHandler, Logger, StreamHandler
import os
from typing import Any

from src.core.validations import JWT_IN_TEXT
from src.main.config import config

ROOT_DIR = os.path.join(os.path.dirname(__file__), "..")
LOG_DIR = os.path.join(ROOT_DIR, config.app.LOG_DIR)
LOG_FILE = os.path.join(LOG_DIR, "debug.log")

REDACTED = "[Filtered]"

logging_format = "%(asctime)s [%(levelname)s]|[%(process)d]| %(name)s: %(message)s"
time_logging_format = "%Y-%m-%d %H:%M:%S"

log_level = getattr(logging, config.app.LOG_LEVEL.upper(), logging.INFO)
file_log_level = getattr(logging, config.app.LOG_LEVEL_FILE.upper(), logging.WARNING)


class TokenRedactionFilter(logging.Filter):
    """Replaces encoded JWTs in a record's rendered message with a placeholder."""

    def filter(self, record: logging.LogRecord) -> bool:
        message = record.getMessage()
        if JWT_IN_TEXT.search(message):
            record.msg = JWT_IN_TEXT.sub(REDACTED, message)
            record.args = None
        return True


def get_file_handler() -> FileHandler:
    os.makedirs(LOG_DIR, exist_ok=True)
    file_handler = logging.FileHandler(LOG_FILE, "a", "utf-8")
    file_handler.setLevel(file_log_level)
    file_handler.setFormatter(logging.Formatter(logging_format, time_logging_format))
    return file_handler


def get_stream_handler(formatter: logging.Formatter | None = None) -> StreamHandler:  # type: ignore
    stream_handler = logging.StreamHandler()
    stream_handler.setLevel(log_level)
    stream_handler.setFormatter(
        formatter or logging.Formatter(logging_format, time_logging_format)
    )
    return stream_handler


def get_logger(name: Any, *, plain_format: bool = False) -> Logger:
    logger = logging.getLogger(name)

    if logger.handlers:
        return logger

    logger.setLevel(log_level)
    logger.addFilter(TokenRedactionFilter())

    if plain_format:
        logger.addHandler(
            get_stream_handler(
                logging.Formatter(
                    "%(asctime)s [%(process)d]| %(message)s", time_logging_format
                )
            )
        )
    elif config.app.TESTING:
        # Tests never write to the shared log file
        logger.addHandler(get_stream_handler())
    else:
        logger.addHandler(get_file_handler())
        logger.addHandler(get_stream_handler())

    logger.propagate = False
    return logger
