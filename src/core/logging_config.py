"""
Logging setup for the sentinel and its backend.

Console plus rotating file output. Observations for different entities are
processed on different threads, so records carry the thread name.
"""

import logging
import logging.handlers
from typing import Optional

from .config import Config, config

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - [%(threadName)s] %(message)s"


def setup_logging(
    logger_name: str = "pool_risk_sentinel",
    settings: Optional[Config] = None,
) -> logging.Logger:
    """
    Configure and return a logger writing to the console and to
    ``<logs_dir>/<logger_name>.log``.

    Calling it again for an already configured logger is a no-op.
    """
    settings = settings or config
    logger = logging.getLogger(logger_name)
    if logger.handlers:
        return logger

    logger.setLevel(settings.log_level)
    formatter = logging.Formatter(fmt=LOG_FORMAT, datefmt="%Y-%m-%d %H:%M:%S")

    console_handler = logging.StreamHandler()
    console_handler.setFormatter(formatter)
    logger.addHandler(console_handler)

    file_handler = logging.handlers.RotatingFileHandler(
        settings.logs_dir / f"{logger_name}.log",
        maxBytes=settings.log_max_bytes,
        backupCount=settings.log_backup_count,
        encoding="utf-8",
    )
    file_handler.setFormatter(formatter)
    logger.addHandler(file_handler)

    return logger
