"""
Logging configuration for the Funding Rate Aggregator

Builds the service logger on top of UnifiedLogger and keeps third-party
loggers (ccxt, urllib3, apscheduler) from flooding the console.
"""

import logging
import os
from pathlib import Path

from loguru import logger as _loguru_logger

from helpers.unified_logger import get_service_logger

from funding_aggregator.config import settings


NOISY_LOGGERS = ("ccxt", "ccxt.base.exchange", "urllib3", "urllib3.connectionpool", "asyncio", "apscheduler")


def _configure_external_loggers() -> None:
    """Limit noisy third-party loggers to ``settings.http_log_level``."""
    http_level = getattr(logging, settings.http_log_level.upper(), logging.WARNING)
    for name in NOISY_LOGGERS:
        logger_obj = logging.getLogger(name)
        logger_obj.setLevel(http_level)
        if http_level >= logging.WARNING:
            logger_obj.propagate = False


_configure_external_loggers()

logger = get_service_logger("funding_aggregator", log_level=settings.log_level)

if not hasattr(_loguru_logger, "_funding_service_files_setup"):
    logs_dir = Path(os.getenv("LOG_DIR", "logs"))
    logs_dir.mkdir(parents=True, exist_ok=True)

    _loguru_logger.add(
        str(logs_dir / "error.log"),
        format="{time:YYYY-MM-DD HH:mm:ss} | {level: <8} | {extra[component_id]:<35} | {message}",
        level="ERROR",
        rotation="10 MB",
        retention="30 days",
        compression="zip",
        filter=lambda record: "component_id" in record["extra"],
        enqueue=True,
        catch=True
    )

    _loguru_logger.add(
        str(logs_dir / "app.log"),
        format="{time:YYYY-MM-DD HH:mm:ss} | {level: <8} | {extra[component_id]:<35} | {message}",
        level=settings.log_level,
        rotation="100 MB",
        retention="7 days",
        compression="zip",
        filter=lambda record: "component_id" in record["extra"],
        enqueue=True,
        catch=True
    )
    _loguru_logger._funding_service_files_setup = True


def clamp_external_logger_levels() -> None:
    """Reapply external logger configuration when a library resets logging."""
    _configure_external_loggers()
