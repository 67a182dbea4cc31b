# core/audit.py

"""
Logging setup and the audit channel used for release/unrelease events.

`AuditLogger` is passed into the services that need it rather than looked up globally,
so tests and callers can supply their own `logging.Logger` (or a subclass that records lines).
"""

import logging

from core import config

LOG_FORMAT = "%(asctime)s - %(levelname)s - %(message)s"


def configure_logging(
    log_file: str | None = config.LOG_FILE, level: str = config.LOG_LEVEL
) -> None:
    """
    Configures the root logger with the program-wide format.

    Args:
        log_file (str | None): If provided, log lines are appended to this file; otherwise to stderr.
        level (str): A standard logging level name (e.g., "INFO", "DEBUG").
    """
    if log_file:
        logging.basicConfig(filename=log_file, level=level, format=LOG_FORMAT)
    else:
        logging.basicConfig(level=level, format=LOG_FORMAT)


class AuditLogger:
    """
    Accepts free-text audit lines and writes them at INFO level.

    Attributes:
        logger (logging.Logger): The underlying logger; defaults to the configured audit logger name.
    """

    def __init__(self, logger: logging.Logger | None = None):
        self._logger = logger or logging.getLogger(config.AUDIT_LOGGER_NAME)

    @property
    def logger(self) -> logging.Logger:
        return self._logger

    def log(self, message: str) -> None:
        self._logger.info(message)
