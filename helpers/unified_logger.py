"""
Unified logging for the DipCoin client.

Every component logs through loguru with a bound ``component_id`` so console
and file output can be traced back to the exchange and identity that emitted
it. Handlers are installed once per process.
"""

import os
import sys
from pathlib import Path
from typing import Any, Dict, Optional

from loguru import logger as _logger

_CONSOLE_FORMAT = (
    "<green>{time:YYYY-MM-DD HH:mm:ss}</green> | "
    "<level>{level: <8}</level> | "
    "<cyan>{extra[component_id]: <28}</cyan> | "
    "<cyan>{name}:{function}:{line}</cyan> | "
    "<level>{message}</level>"
)

_FILE_FORMAT = (
    "{time:YYYY-MM-DD HH:mm:ss} | "
    "{level:<8} | "
    "{extra[component_id]:<28} | "
    "{message}"
)

_TRUTHY = {"1", "true", "yes", "on"}


def _ensure_component(record) -> bool:
    record["extra"].setdefault("component_id", "UNKNOWN")
    return True


def _setup_handlers(log_level: str, log_to_console: bool) -> None:
    """Install the shared console/file handlers exactly once."""
    if getattr(_logger, "_dipcoin_handlers_setup", False):
        return

    _logger.remove()

    if log_to_console:
        _logger.add(
            sys.stderr,
            format=_CONSOLE_FORMAT,
            level=log_level,
            colorize=True,
            filter=_ensure_component,
            backtrace=True,
            diagnose=False,
        )

    if os.getenv("LOG_TO_FILE", "").lower() in _TRUTHY:
        logs_dir = Path(os.getenv("LOG_DIR", "logs"))
        logs_dir.mkdir(parents=True, exist_ok=True)
        _logger.add(
            str(logs_dir / "dipcoin_{time:YYYYMMDD}.log"),
            format=_FILE_FORMAT,
            level="DEBUG",
            filter=_ensure_component,
            rotation="50 MB",
            retention=10,
            compression="zip",
            enqueue=True,
            catch=True,
        )

    _logger._dipcoin_handlers_setup = True


class UnifiedLogger:
    """
    Logger bound to one component.

    Keeps the ``.log(message, level)`` call style used throughout the
    exchange clients alongside the usual level methods.
    """

    def __init__(
        self,
        component_type: str,
        component_name: str,
        context: Optional[Dict[str, Any]] = None,
        log_to_console: bool = True,
        log_level: str = "INFO",
    ):
        self.component_type = component_type.upper()
        self.component_name = component_name.upper()
        self.context = context or {}
        self.log_level = log_level.upper()

        self.component_id = f"{self.component_type}:{self.component_name}"
        if self.context:
            context_str = ":".join(f"{k}={v}" for k, v in self.context.items())
            self.component_id = f"{self.component_id}:{context_str}"

        _setup_handlers(self.log_level, log_to_console)
        self._logger = _logger.bind(component_id=self.component_id)

    def debug(self, message: str, **kwargs):
        self._logger.opt(depth=1).debug(message, **kwargs)

    def info(self, message: str, **kwargs):
        self._logger.opt(depth=1).info(message, **kwargs)

    def warning(self, message: str, **kwargs):
        self._logger.opt(depth=1).warning(message, **kwargs)

    def error(self, message: str, **kwargs):
        self._logger.opt(depth=1).error(message, **kwargs)

    def exception(self, message: str, **kwargs):
        self._logger.opt(depth=1, exception=True).error(message, **kwargs)

    def log(self, message: str, level: str = "INFO", **kwargs):
        """Log at a level given by name; unknown levels fall back to INFO."""
        level = level.upper()
        if level not in {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}:
            level = "INFO"
        self._logger.opt(depth=1).log(level, message, **kwargs)

    def with_context(self, **context) -> "UnifiedLogger":
        """Return a new logger carrying additional context (e.g. symbol, identity)."""
        return UnifiedLogger(
            component_type=self.component_type.lower(),
            component_name=self.component_name.lower(),
            context={**self.context, **context},
            log_level=self.log_level,
        )


def get_logger(
    component_type: str,
    component_name: str,
    context: Optional[Dict[str, Any]] = None,
    log_to_console: bool = True,
    log_level: Optional[str] = None,
) -> UnifiedLogger:
    """
    Factory for component loggers.

    Examples:
        logger = get_logger("exchange", "dipcoin", {"account": "0x12ab..."})
        logger = get_logger("core", "http")
    """
    if log_level is None:
        log_level = os.getenv("LOG_LEVEL", "INFO")

    return UnifiedLogger(
        component_type=component_type,
        component_name=component_name,
        context=context,
        log_to_console=log_to_console,
        log_level=log_level,
    )


def get_exchange_logger(exchange_name: str, ticker: str = None, **context) -> UnifiedLogger:
    """Get logger for exchange clients."""
    ctx = {"ticker": ticker} if ticker else {}
    ctx.update(context)
    return get_logger("exchange", exchange_name, ctx)


def get_core_logger(module_name: str, **context) -> UnifiedLogger:
    """Get logger for core utilities."""
    return get_logger("core", module_name, context)


def short_id(value: Optional[str], keep: int = 6) -> str:
    """Truncate addresses, hashes and tokens for log output."""
    if not value:
        return "-"
    if len(value) <= keep * 2 + 3:
        return value
    return f"{value[:keep + 2]}...{value[-keep:]}"
