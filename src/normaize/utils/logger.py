import logging
import os
import sys
from normaize.config import settings

PACKAGE_LOGGER = "normaize"
LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"


def _configure_package_logger() -> logging.Logger:
    """
    Attaches the console and file handlers to the package logger, once.
    Module loggers ("normaize.core.ingestion", ...) propagate to it, so the
    log file is opened a single time for the whole process.
    """
    root = logging.getLogger(PACKAGE_LOGGER)
    if root.handlers:
        return root

    root.setLevel(getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO))
    root.propagate = False
    formatter = logging.Formatter(fmt=LOG_FORMAT, datefmt=DATE_FORMAT)

    handlers = [logging.StreamHandler(sys.stdout)]
    if settings.LOG_TO_FILE:
        os.makedirs(settings.LOG_DIR, exist_ok=True)
        handlers.append(
            logging.FileHandler(os.path.join(settings.LOG_DIR, settings.LOG_FILE), mode="a")
        )
    for handler in handlers:
        handler.setFormatter(formatter)
        root.addHandler(handler)
    return root


def get_logger(name: str) -> logging.Logger:
    """
    Logger for `name`, parented under the configured package logger.
    Names outside the package (e.g. "__main__") are nested under it.
    """
    _configure_package_logger()
    if name != PACKAGE_LOGGER and not name.startswith(PACKAGE_LOGGER + "."):
        name = f"{PACKAGE_LOGGER}.{name}"
    return logging.getLogger(name)
