"""
Sentinel Logging Configuration

Console and JSON log formatting, operation correlation ids, a performance
decorator, and structured helpers for trade lifecycle events.
"""

import asyncio
import json
import logging
import os
import sys
import time
import uuid
from contextvars import ContextVar
from datetime import datetime, timezone
from functools import wraps
from typing import Any, Callable, Dict, Optional, TypeVar

# Correlates every log line emitted while one command runs
operation_id_var: ContextVar[Optional[str]] = ContextVar("operation_id", default=None)


# =============================================================================
# Log Level Strategy
# =============================================================================
#
# DEBUG   - Quote parsing, skipped quotes, lock waits
# INFO    - Positions opened, trades executed, prices refreshed
# WARNING - Rejected executions, empty or failed fetches, busy sources
# ERROR   - Unexpected failures inside an external source adapter
# =============================================================================


class StructuredFormatter(logging.Formatter):
    """JSON log formatter for log aggregation systems."""

    def __init__(self, service_name: str = "sentinel", environment: str = "development"):
        super().__init__()
        self.service_name = service_name
        self.environment = environment
        self.hostname = os.uname().nodename

    def format(self, record: logging.LogRecord) -> str:
        log_data = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "service": self.service_name,
            "environment": self.environment,
            "hostname": self.hostname,
            "logger": record.name,
            "function": record.funcName,
            "line": record.lineno,
            "message": record.getMessage(),
            "operation_id": operation_id_var.get(),
        }

        if record.exc_info:
            log_data["exception"] = {
                "type": record.exc_info[0].__name__ if record.exc_info[0] else None,
                "message": str(record.exc_info[1]) if record.exc_info[1] else None,
                "traceback": self.formatException(record.exc_info),
            }

        # Context fields prefixed with ctx_ are included without the prefix
        for key, value in record.__dict__.items():
            if key.startswith("ctx_"):
                log_data[key[4:]] = value

        log_data = {k: v for k, v in log_data.items() if v is not None}

        return json.dumps(log_data, default=str)


class ConsoleFormatter(logging.Formatter):
    """Human-readable, coloured console formatter for development."""

    COLORS = {
        "DEBUG": "\033[36m",     # Cyan
        "INFO": "\033[32m",      # Green
        "WARNING": "\033[33m",   # Yellow
        "ERROR": "\033[31m",     # Red
        "CRITICAL": "\033[35m",  # Magenta
    }
    RESET = "\033[0m"

    def format(self, record: logging.LogRecord) -> str:
        color = self.COLORS.get(record.levelname, self.RESET)
        timestamp = datetime.now().strftime("%Y-%m-%d %H:%M:%S.%f")[:-3]
        operation_id = operation_id_var.get()
        op_str = f"[{operation_id[:8]}]" if operation_id else ""

        formatted = (
            f"{timestamp} {color}{record.levelname:8}{self.RESET} "
            f"{op_str} {record.name} - {record.getMessage()}"
        )

        extras = [f"{key[4:]}={value}" for key, value in record.__dict__.items() if key.startswith("ctx_")]
        if extras:
            formatted += f" | {', '.join(extras)}"

        if record.exc_info:
            formatted += f"\n{self.formatException(record.exc_info)}"

        return formatted


def configure_logging(
    level: str = "INFO",
    json_format: bool = False,
    service_name: str = "sentinel",
    environment: str = "development",
    log_file: Optional[str] = None,
) -> None:
    """
    Configure root logging for Sentinel.

    Args:
        level: Log level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        json_format: Use JSON structured logging
        service_name: Service name for structured logs
        environment: Environment name (development, staging, production)
        log_file: Optional file path; always written in JSON
    """
    root_logger = logging.getLogger()
    root_logger.setLevel(getattr(logging, level.upper()))
    root_logger.handlers.clear()

    if json_format:
        formatter: logging.Formatter = StructuredFormatter(service_name, environment)
    else:
        formatter = ConsoleFormatter()

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setFormatter(formatter)
    root_logger.addHandler(console_handler)

    if log_file:
        file_handler = logging.FileHandler(log_file)
        file_handler.setFormatter(StructuredFormatter(service_name, environment))
        root_logger.addHandler(file_handler)

    # Reduce third-party noise
    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)
    logging.getLogger("httpx").setLevel(logging.WARNING)


# =============================================================================
# Context Management
# =============================================================================


def set_operation_context(operation_id: Optional[str] = None) -> str:
    """
    Set the correlation id for the command currently running.

    Returns:
        The operation id being used
    """
    op_id = operation_id or uuid.uuid4().hex
    operation_id_var.set(op_id)
    return op_id


def clear_operation_context() -> None:
    operation_id_var.set(None)


def get_operation_id() -> Optional[str]:
    return operation_id_var.get()


# =============================================================================
# Performance Logging Decorator
# =============================================================================

T = TypeVar("T")


def log_performance(threshold_ms: float = 1000.0) -> Callable:
    """
    Decorator to log function duration, warning above a threshold.

    Example:
        @log_performance(threshold_ms=500)
        async def request_price_refresh(self):
            ...
    """

    def decorator(func: Callable[..., T]) -> Callable[..., T]:
        logger = logging.getLogger(func.__module__)

        def _report(start_time: float, status: str, error: Optional[BaseException] = None) -> None:
            duration_ms = (time.perf_counter() - start_time) * 1000
            extra: Dict[str, Any] = {
                "ctx_function": func.__name__,
                "ctx_duration_ms": round(duration_ms, 2),
                "ctx_status": status,
            }
            if error is not None:
                extra["ctx_error_type"] = type(error).__name__
                logger.error(f"Operation failed: {func.__name__} - {error}", extra=extra, exc_info=True)
            elif duration_ms > threshold_ms:
                logger.warning(f"Slow operation: {func.__name__} took {duration_ms:.2f}ms", extra=extra)
            else:
                logger.debug(f"Operation completed: {func.__name__} in {duration_ms:.2f}ms", extra=extra)

        @wraps(func)
        async def async_wrapper(*args, **kwargs) -> T:
            start_time = time.perf_counter()
            try:
                result = await func(*args, **kwargs)
            except Exception as e:
                _report(start_time, "error", e)
                raise
            _report(start_time, "success")
            return result

        @wraps(func)
        def sync_wrapper(*args, **kwargs) -> T:
            start_time = time.perf_counter()
            try:
                result = func(*args, **kwargs)
            except Exception as e:
                _report(start_time, "error", e)
                raise
            _report(start_time, "success")
            return result

        if asyncio.iscoroutinefunction(func):
            return async_wrapper
        return sync_wrapper

    return decorator


# =============================================================================
# Trade Event Logging
# =============================================================================


class TradeEventLogger:
    """
    Logger for trade lifecycle events with structured context.

    Mirrors the activity log for operators; the activity log remains the
    user-facing surface.
    """

    def __init__(self, logger_name: str = "sentinel.trades"):
        self.logger = logging.getLogger(logger_name)

    def log_execution(
        self,
        recommendation_id: str,
        action: str,
        symbol: str,
        quantity: int,
        price: float,
        cash_delta: float,
    ) -> None:
        self.logger.info(
            f"Executed {action} {symbol} x{quantity} @ {price:.2f}",
            extra={
                "ctx_event": "execution",
                "ctx_recommendation_id": recommendation_id,
                "ctx_action": action,
                "ctx_symbol": symbol,
                "ctx_quantity": quantity,
                "ctx_price": round(price, 4),
                "ctx_cash_delta": round(cash_delta, 2),
            },
        )

    def log_rejection(self, recommendation_id: str, action: str, symbol: str, reason: str) -> None:
        self.logger.warning(
            f"Rejected {action} {symbol}: {reason}",
            extra={
                "ctx_event": "execution_rejected",
                "ctx_recommendation_id": recommendation_id,
                "ctx_action": action,
                "ctx_symbol": symbol,
            },
        )

    def log_price_refresh(self, source: str, requested: int, updated: int, duration_ms: float) -> None:
        level = logging.INFO if updated else logging.WARNING
        self.logger.log(
            level,
            f"Price refresh from {source}: {updated}/{requested} symbols updated",
            extra={
                "ctx_event": "price_refresh",
                "ctx_source": source,
                "ctx_requested": requested,
                "ctx_updated": updated,
                "ctx_duration_ms": round(duration_ms, 2),
            },
        )

    def log_analysis(self, source: str, recommendation_count: int, duration_ms: float) -> None:
        self.logger.info(
            f"Analysis from {source} produced {recommendation_count} recommendations",
            extra={
                "ctx_event": "analysis",
                "ctx_source": source,
                "ctx_result_count": recommendation_count,
                "ctx_duration_ms": round(duration_ms, 2),
            },
        )


trade_logger = TradeEventLogger()
