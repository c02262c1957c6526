"""Logging setup for ChangeGate.

Every module logs through ``logging.getLogger(__name__)``; configuring the
``changegate`` package logger once at startup is enough for all of them.
"""

import logging
import logging.handlers
import os
from typing import List, Optional

from changegate.core.config import Settings

LOG_FORMAT = "%(asctime)s [%(levelname)s] [%(name)s] %(message)s"
DATE_FORMAT = "%Y-%m-%dT%H:%M:%S"

# Third-party loggers that are too chatty at INFO
NOISY_LOGGERS = ("sqlalchemy.engine", "httpx", "httpcore")


def parse_level(level: str) -> int:
    """Resolve a level name (case-insensitive) to its numeric value."""
    value = logging.getLevelName(str(level).upper())
    if not isinstance(value, int):
        raise ValueError(
            f"Invalid log level: {level}. Must be one of: DEBUG, INFO, WARNING, ERROR, CRITICAL"
        )
    return value


def build_handlers(
    name: str,
    log_dir: str,
    file_logging: bool,
    console_logging: bool,
    max_bytes: int = 10 * 1024 * 1024,
    backup_count: int = 5,
) -> List[logging.Handler]:
    """Console and rotating-file handlers sharing one formatter."""
    formatter = logging.Formatter(LOG_FORMAT, datefmt=DATE_FORMAT)
    handlers: List[logging.Handler] = []

    if file_logging:
        os.makedirs(log_dir, exist_ok=True)
        handlers.append(logging.handlers.RotatingFileHandler(
            os.path.join(log_dir, f"{name}.log"),
            maxBytes=max_bytes,
            backupCount=backup_count,
        ))
    if console_logging:
        handlers.append(logging.StreamHandler())

    for handler in handlers:
        handler.setFormatter(formatter)
    return handlers


def setup_logger(
    name: str = "changegate",
    log_dir: str = "./logs",
    level: str = "INFO",
    file_logging: bool = False,
    console_logging: bool = True,
) -> logging.Logger:
    """Configure a package logger.

    Calling it again only updates the level, so app restarts inside one
    process (tests, reloaders) do not stack handlers.

    Raises:
        ValueError: If ``level`` is not a logging level name
    """
    logger = logging.getLogger(name)
    logger.setLevel(parse_level(level))

    if not logger.handlers:
        for handler in build_handlers(name, log_dir, file_logging, console_logging):
            logger.addHandler(handler)

    return logger


def configure_logging(settings: Settings, name: str = "changegate") -> logging.Logger:
    """Configure the package logger from application settings."""
    logger = setup_logger(
        name,
        log_dir=settings.log_dir,
        level=settings.log_level,
        file_logging=settings.file_logging,
    )

    library_level = logging.DEBUG if settings.debug else logging.WARNING
    for noisy in NOISY_LOGGERS:
        logging.getLogger(noisy).setLevel(library_level)

    logger.debug(f"Logging configured (level={settings.log_level}, file={settings.file_logging})")
    return logger


def get_logger(name: Optional[str] = None) -> logging.Logger:
    """Logger under the ``changegate`` namespace."""
    if not name:
        return logging.getLogger("changegate")
    if name == "changegate" or name.startswith("changegate."):
        return logging.getLogger(name)
    return logging.getLogger(f"changegate.{name}")
