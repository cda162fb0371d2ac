"""
Unified logging for the funding rate aggregator

Provides consistent, colored, and attributable logging across components:
- Exchange adapters
- Collection and aggregation stages
- Background tasks and the read API

Based on loguru. Every record carries a ``component_id`` built from the
component and its bound context (task, cycle id, exchange...), so output from
concurrent cycles stays attributable without touching any global switch.
"""

import os
import sys
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, Optional

from loguru import logger as _logger


def _logs_dir() -> Path:
    logs_dir = Path(os.getenv("LOG_DIR", Path(__file__).parent.parent / "logs"))
    logs_dir.mkdir(parents=True, exist_ok=True)
    return logs_dir


def _truncate_module_path(module: str, max_width: int) -> str:
    if len(module) <= max_width:
        return module

    parts = module.split(".")
    # Longest dotted suffix that fits, always keeping the final segment
    for idx in range(1, len(parts)):
        candidate = ".".join(parts[idx:])
        if len(candidate) + 3 <= max_width:
            return f"...{candidate}"

    return f"...{parts[-1][-(max_width - 3):]}"


def _format_source(record: Dict[str, Any]) -> bool:
    """Attach a fixed-width ``module:function:line`` label for the console sink."""
    module_name = record.get("module") or record.get("name", "")
    function_name = record.get("function", "")
    line_number = record.get("line", 0)

    max_width = 55
    suffix = f":{function_name}:{line_number}" if function_name else f":{line_number}"

    # function:line is never truncated
    available_for_module = max_width - len(suffix)
    if available_for_module <= 3:
        module_display = "..."
    else:
        module_display = _truncate_module_path(module_name, available_for_module)

    source_location = f"{module_display}{suffix}"
    record["extra"]["short_name"] = f"{source_location:>{max_width}}"
    return True


def _ensure_component(record: Dict[str, Any]) -> bool:
    if "component_id" not in record["extra"]:
        record["extra"]["component_id"] = "UNKNOWN"
    return True


FILE_FORMAT = (
    "{time:YYYY-MM-DD HH:mm:ss} | "
    "{level:<8} | "
    "{extra[component_id]:<35} | "
    "{message}"
)


class UnifiedLogger:
    """
    Component logger with bound context.

    Sinks are installed once per process:
    - Colored console output with source location (file:function:line)
    - ``unified_history.log`` shared across runs
    - ``session_<timestamp>.log`` for the current process
    """

    def __init__(
        self,
        component_type: str,  # "exchange", "service", "core"
        component_name: str,  # "binance", "funding_aggregator", ...
        context: Optional[Dict[str, Any]] = None,
        log_to_console: bool = True,
        log_level: str = "INFO"
    ):
        """
        Initialize unified logger.

        Args:
            component_type: Type of component (exchange, service, core)
            component_name: Name of specific component
            context: Additional context (task, cycle, exchange...)
            log_to_console: Whether to log to console
            log_level: Minimum console log level
        """
        self.component_type = component_type.upper()
        self.component_name = component_name.upper()
        self.context = context or {}
        self.log_level = log_level.upper()
        self.log_to_console = log_to_console

        self.component_id = f"{self.component_type}:{self.component_name}"
        if self.context:
            context_str = ":".join([f"{k}={v}" for k, v in self.context.items()])
            self.component_id = f"{self.component_id}:{context_str}"

        self._setup_sinks()
        self._logger = _logger.bind(component_id=self.component_id)

    def _setup_sinks(self) -> None:
        """Install the shared sinks the first time any component logger is built."""
        if not hasattr(_logger, "_funding_console_setup"):
            _logger.remove()

            if self.log_to_console:
                console_format = (
                    "<green>{time:YYYY-MM-DD HH:mm:ss}</green> | "
                    "<level>{level: <8}</level> | "
                    "<cyan>{extra[short_name]}</cyan> | "
                    "<level>{message}</level>"
                )
                _logger.add(
                    sys.stdout,
                    format=console_format,
                    level=self.log_level,
                    colorize=True,
                    filter=lambda record: bool(record["extra"].get("component_id")) and _format_source(record),
                    backtrace=True,
                    diagnose=False,
                )

            _logger._funding_console_setup = True

        if not hasattr(_logger, "_funding_history_setup"):
            _logger.add(
                str(_logs_dir() / "unified_history.log"),
                format=FILE_FORMAT,
                level="DEBUG",
                filter=_ensure_component,
                backtrace=False,
                diagnose=False,
                enqueue=True,
                catch=True
            )
            _logger._funding_history_setup = True

        if not hasattr(_logger, "_funding_session_setup"):
            session_ts = datetime.now().strftime("%Y%m%d_%H%M%S")
            _logger.add(
                str(_logs_dir() / f"session_{session_ts}.log"),
                format=FILE_FORMAT,
                level="DEBUG",
                filter=_ensure_component,
                backtrace=False,
                diagnose=False,
                enqueue=True,
                catch=True
            )
            _logger._funding_session_setup = True

    def debug(self, message: str, **kwargs):
        self._logger.opt(depth=1).debug(message, **kwargs)

    def info(self, message: str, **kwargs):
        self._logger.opt(depth=1).info(message, **kwargs)

    def warning(self, message: str, **kwargs):
        self._logger.opt(depth=1).warning(message, **kwargs)

    def error(self, message: str, **kwargs):
        self._logger.opt(depth=1).error(message, **kwargs)

    def critical(self, message: str, **kwargs):
        self._logger.opt(depth=1).critical(message, **kwargs)

    def exception(self, message: str, **kwargs):
        """Log an error with the active exception's traceback."""
        self._logger.opt(depth=1, exception=True).error(message, **kwargs)

    def with_context(self, **context) -> 'UnifiedLogger':
        """
        Create a new logger instance with additional context.

        Used to scope logs to one cycle and one exchange, e.g.
        ``logger.with_context(cycle="3f9a1c2e", exchange="binance")``.
        """
        new_context = {**self.context, **context}
        return UnifiedLogger(
            component_type=self.component_type.lower(),
            component_name=self.component_name.lower(),
            context=new_context,
            log_to_console=self.log_to_console,
            log_level=self.log_level
        )

    def __repr__(self) -> str:
        return f"<UnifiedLogger {self.component_id}>"


def get_logger(
    component_type: str,
    component_name: str,
    context: Optional[Dict[str, Any]] = None,
    log_to_console: bool = True,
    log_level: Optional[str] = None
) -> UnifiedLogger:
    """
    Factory function to create unified loggers.

    Args:
        component_type: Type of component (exchange, service, core)
        component_name: Name of specific component
        context: Additional context
        log_to_console: Whether to log to console
        log_level: Log level (defaults to env LOG_LEVEL or INFO)

    Examples:
        logger = get_logger("exchange", "binance")
        logger = get_logger("service", "funding_aggregator", {"task": "combined"})
    """
    if log_level is None:
        log_level = os.getenv('LOG_LEVEL', 'INFO')

    return UnifiedLogger(
        component_type=component_type,
        component_name=component_name,
        context=context,
        log_to_console=log_to_console,
        log_level=log_level
    )


def get_exchange_logger(exchange_name: str, **context) -> UnifiedLogger:
    """Get logger for exchange adapters."""
    return get_logger("exchange", exchange_name, context)


def get_service_logger(service_name: str, log_level: Optional[str] = None, **context) -> UnifiedLogger:
    """Get logger for services."""
    return get_logger("service", service_name, context, log_level=log_level)


def get_core_logger(module_name: str, **context) -> UnifiedLogger:
    """Get logger for core utilities."""
    return get_logger("core", module_name, context)
