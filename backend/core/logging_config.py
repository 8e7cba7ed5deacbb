"""
Loguru logging configuration.

Features:
- Structured JSON logging outside development
- Console logging for development
- Correlation ID in all log messages
- Rotating file sink
"""

import sys
from pathlib import Path
from typing import TYPE_CHECKING, Optional

from loguru import logger

from core.correlation import get_correlation_id
from models.config import settings

if TYPE_CHECKING:
    from loguru import Record

LOG_FORMAT = (
    "<green>{time:YYYY-MM-DD HH:mm:ss}</green> | "
    "<level>{level: <8}</level> | "
    "<cyan>{extra[correlation_id]}</cyan> | "
    "<cyan>{name}</cyan>:<cyan>{function}</cyan>:<cyan>{line}</cyan> | "
    "<level>{message}</level>"
)


def correlation_filter(record: "Record") -> bool:
    """
    Add correlation ID to log record.

    Args:
        record: Loguru log record.

    Returns:
        Always True (filter never drops messages).
    """
    record["extra"]["correlation_id"] = get_correlation_id() or "-"
    return True


def configure_logging(
    environment: Optional[str] = None,
    log_dir: Optional[str] = None,
) -> None:
    """
    Configure Loguru for the application.

    Args:
        environment: "development" for console, anything else for JSON.
            Defaults to settings.ENVIRONMENT.
        log_dir: Directory for the rotating file sink. Defaults to
            settings.LOG_DIR; an empty value disables the file sink.
    """
    environment = environment or settings.ENVIRONMENT
    log_dir = settings.LOG_DIR if log_dir is None else log_dir
    is_development = environment == "development"

    logger.remove()

    if is_development:
        logger.add(
            sys.stderr,
            format=LOG_FORMAT,
            level="DEBUG",
            filter=correlation_filter,
            colorize=True,
        )
    else:
        logger.add(
            sys.stderr,
            format="{message}",
            level=settings.LOG_LEVEL,
            filter=correlation_filter,
            serialize=True,
        )

    if not log_dir:
        return

    logs_path = Path(log_dir)
    logs_path.mkdir(parents=True, exist_ok=True)

    logger.add(
        str(logs_path / "compliance.log"),
        format=LOG_FORMAT if is_development else "{message}",
        level=settings.LOG_LEVEL,
        filter=correlation_filter,
        rotation="10 MB",
        retention="7 days",
        serialize=not is_development,
    )
