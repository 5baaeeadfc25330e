"""Logging configuration for the SageMaker cost monitor."""

import logging
import logging.handlers
import sys
from pathlib import Path
from typing import Optional

# Logs go to stderr so that report output on stdout stays machine-readable
DEFAULT_FORMAT = "%(asctime)s - %(threadName)s - %(name)s - %(levelname)s - %(message)s"

NOISY_LOGGERS = ("boto3", "botocore", "urllib3", "s3transfer")


def setup_logging(
    level: str = "WARNING",
    log_file: Optional[str] = None,
    log_format: Optional[str] = None,
    enable_color: bool = True,
) -> None:
    """
    Configure the ``sagemaker_monitor`` logger hierarchy.

    Args:
        level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        log_file: Optional rotating log file path
        log_format: Optional custom log format
        enable_color: Colorize level names when stderr is a terminal
    """
    log_format = log_format or DEFAULT_FORMAT
    numeric_level = getattr(logging, level.upper())

    package_logger = logging.getLogger("sagemaker_monitor")
    package_logger.setLevel(numeric_level)
    package_logger.handlers.clear()
    package_logger.propagate = False

    console_handler = logging.StreamHandler(sys.stderr)
    console_handler.setLevel(numeric_level)
    if enable_color and sys.stderr.isatty():
        console_handler.setFormatter(ColoredFormatter(log_format))
    else:
        console_handler.setFormatter(logging.Formatter(log_format))
    package_logger.addHandler(console_handler)

    if log_file:
        log_path = Path(log_file)
        log_path.parent.mkdir(parents=True, exist_ok=True)

        # 5MB max, keep 3 backups
        file_handler = logging.handlers.RotatingFileHandler(
            log_file, maxBytes=5 * 1024 * 1024, backupCount=3
        )
        file_handler.setLevel(numeric_level)
        file_handler.setFormatter(logging.Formatter(log_format))
        package_logger.addHandler(file_handler)

    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)

    package_logger.debug(f"Logging configured with level: {level}")


class ColoredFormatter(logging.Formatter):
    """Formatter that colors the level name with ANSI codes."""

    COLORS = {
        "DEBUG": "\033[36m",  # Cyan
        "INFO": "\033[32m",  # Green
        "WARNING": "\033[33m",  # Yellow
        "ERROR": "\033[31m",  # Red
        "CRITICAL": "\033[35m",  # Magenta
    }
    RESET = "\033[0m"

    def format(self, record: logging.LogRecord) -> str:
        levelname = record.levelname
        if levelname in self.COLORS:
            record.levelname = f"{self.COLORS[levelname]}{levelname}{self.RESET}"
        try:
            return super().format(record)
        finally:
            # Other handlers must see the plain level name
            record.levelname = levelname
