"""
Common logging configuration for backend services.

This module provides centralized logging configuration using loguru. It
configures console and file-based logging with formatting, rotation and
retention policies, so every service writes logs the same way.

Log Files:
    - {service_name}.log: All logs at configured level (default: INFO)
    - {service_name}-error.log: Only ERROR level logs

Log Rotation:
    - Error logs: Rotate at 10 MB, retain 30 days, compress with zip
    - General logs: Rotate at 50 MB, retain 7 days, compress with zip

Example:
    ```python
    from common.logging import setup_logging

    setup_logging("report-delivery-service")

    from loguru import logger
    logger.info("Report delivery service started")
    ```
"""

from pathlib import Path
import sys

from loguru import logger

from common.config import get_settings

CONSOLE_FORMAT = (
    "<green>{time:YYYY-MM-DD HH:mm:ss}</green> | "
    "<level>{level: <8}</level> | "
    "<cyan>{name}</cyan>:<cyan>{function}</cyan>:<cyan>{line}</cyan> | "
    "<level>{message}</level>"
)
FILE_FORMAT = "{time:YYYY-MM-DD HH:mm:ss} | {level: <8} | {name}:{function}:{line} | {message}"


def setup_logging(service_name: str | None = None, logs_dir: str = "logs") -> None:
    """
    Configure loguru for the application.

    Removes loguru's default handler and installs a colorized console handler
    plus two rotating file handlers (all logs, errors only). The level comes
    from the LOG_LEVEL setting of the service.

    Args:
        service_name: Name of the service (e.g., "report-delivery-service").
            Used to select settings and to name the log files. When None,
            generic "app.log" / "error.log" names are used.
        logs_dir: Directory the log files are written to. Created if missing.

    Note:
        - Call this early in application startup, before other modules log
        - The logs directory is relative to the current working directory
    """
    settings = get_settings(service_name)

    # Remove default handler
    logger.remove()

    logger.add(
        sys.stdout,
        format=CONSOLE_FORMAT,
        level=settings.LOG_LEVEL,
        colorize=True,
    )

    log_path = Path(logs_dir)
    log_path.mkdir(parents=True, exist_ok=True)

    if service_name:
        service_log_file = log_path / f"{service_name}.log"
        service_error_file = log_path / f"{service_name}-error.log"
    else:
        service_log_file = log_path / "app.log"
        service_error_file = log_path / "error.log"

    logger.add(
        str(service_error_file),
        format=FILE_FORMAT,
        level="ERROR",
        rotation="10 MB",
        retention="30 days",
        compression="zip",
    )

    logger.add(
        str(service_log_file),
        format=FILE_FORMAT,
        level=settings.LOG_LEVEL,
        rotation="50 MB",
        retention="7 days",
        compression="zip",
    )
