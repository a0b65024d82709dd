from __future__ import annotations

import logging

from perfboard.config.schemas import LoggingConfig

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"


def setup_logging(config: LoggingConfig | None = None, name: str = "perfboard") -> logging.Logger:
    """Configure the package logger with a console handler and an optional file handler.

    Calling it again replaces the handlers, so the Streamlit script can rerun safely.
    """
    config = config or LoggingConfig()
    logger = logging.getLogger(name)
    logger.setLevel(getattr(logging, config.level))
    logger.handlers.clear()

    formatter = logging.Formatter(LOG_FORMAT, datefmt=DATE_FORMAT)

    console_handler = logging.StreamHandler()
    console_handler.setFormatter(formatter)
    logger.addHandler(console_handler)

    if config.file:
        config.file.parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(config.file, encoding="utf-8")
        file_handler.setFormatter(formatter)
        logger.addHandler(file_handler)

    return logger
