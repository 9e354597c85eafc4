"""
Logging setup for the quote tool.

All module loggers live under the "fab_quote" namespace so one call to
setup_logging() configures the Streamlit app, the API and the setup script.

Usage:
    from logging_config import setup_logging, get_logger

    setup_logging(log_level=logging.INFO)
    logger = get_logger(__name__)
"""

import logging
import sys
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Optional, Union

APP_NAME = "fab_quote"


def setup_logging(
    app_name: str = APP_NAME,
    log_level: Union[int, str] = logging.INFO,
    log_dir: Optional[Path] = None,
    enable_file_logging: bool = False,
) -> logging.Logger:
    """
    Configure the application logger.

    Args:
        app_name: Name of the root application logger
        log_level: Minimum level (int or name such as "DEBUG")
        log_dir: Directory for log files (default: ./logs next to this file)
        enable_file_logging: Also write a rotating log file

    Returns:
        The configured application logger
    """
    if isinstance(log_level, str):
        log_level = logging.getLevelName(log_level.upper())
        if not isinstance(log_level, int):
            log_level = logging.INFO

    logger = logging.getLogger(app_name)
    logger.setLevel(log_level)
    logger.propagate = False

    # Allows re-configuration (Streamlit re-runs the script on every interaction)
    logger.handlers.clear()

    formatter = logging.Formatter(
        fmt="%(asctime)s [%(levelname)-8s] %(name)s - %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setLevel(log_level)
    console_handler.setFormatter(formatter)
    logger.addHandler(console_handler)

    if enable_file_logging:
        if log_dir is None:
            log_dir = Path(__file__).parent / "logs"
        log_dir.mkdir(parents=True, exist_ok=True)

        file_handler = RotatingFileHandler(
            filename=log_dir / f"{app_name}.log",
            maxBytes=5 * 1024 * 1024,
            backupCount=3,
            encoding="utf-8",
        )
        file_handler.setLevel(log_level)
        file_handler.setFormatter(formatter)
        logger.addHandler(file_handler)

    logger.debug("Logging configured at level %s", logging.getLevelName(log_level))
    return logger


def get_logger(name: str) -> logging.Logger:
    """
    Get a child logger under the application namespace.

    get_logger("job_store") -> logger named "fab_quote.job_store"
    """
    if not name.startswith(APP_NAME):
        name = f"{APP_NAME}.{name}"
    return logging.getLogger(name)
