"""
Logging setup for the clinic functions.

All modules log through children of the "vetclinic" logger, e.g.
logging.getLogger("vetclinic.services.meeting_provisioner"), and attach
structured context with `extra={...}`. Secrets are never logged.
"""

import logging
import sys

LOGGER_NAME = "vetclinic"


def setup_logging(level: str = "INFO") -> logging.Logger:
    """
    Configure the "vetclinic" logger with a single stdout handler.

    Safe to call more than once: the handler is only installed the first time.

    Args:
        level: Logging level name (DEBUG, INFO, WARNING, ERROR)

    Returns:
        The configured root logger for the application
    """
    logger = logging.getLogger(LOGGER_NAME)
    logger.setLevel(getattr(logging, level.upper(), logging.INFO))

    if not logger.handlers:
        handler = logging.StreamHandler(sys.stdout)
        formatter = logging.Formatter(
            "[%(asctime)s] %(levelname)s [%(name)s] %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
        )
        handler.setFormatter(formatter)
        logger.addHandler(handler)

    return logger
