"""
Sentinel Error Handling Module

Structured error codes and the exception hierarchy raised by the position
book, recommendation queue, execution engine and data sources.

None of these errors is fatal to the process: they are either no-ops,
retained-state warnings or caller-visible rejections.
"""

import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum, auto
from typing import Any, Dict, Optional

logger = logging.getLogger(__name__)

# =============================================================================
# Error Code Taxonomy
# =============================================================================


class ErrorCategory(Enum):
    """Top-level error categories."""

    VALIDATION = "VALIDATION"
    STATE = "STATE"
    FUNDS = "FUNDS"
    EXTERNAL = "EXTERNAL"


class ErrorSeverity(Enum):
    """Error severity levels used when logging the error."""

    DEBUG = auto()
    INFO = auto()
    WARNING = auto()
    ERROR = auto()


@dataclass(frozen=True)
class ErrorCode:
    """Structured error code with metadata."""

    code: str
    category: ErrorCategory
    severity: ErrorSeverity
    message: str
    http_status: int
    retryable: bool = False
    recovery_hint: str = ""

    def __str__(self) -> str:
        return self.code


class ErrorCodes:
    """Central registry of Sentinel error codes."""

    INVALID_INPUT = ErrorCode(
        code="INVALID_INPUT",
        category=ErrorCategory.VALIDATION,
        severity=ErrorSeverity.WARNING,
        message="Invalid input",
        http_status=422,
        recovery_hint="Quantity and price must both be positive.",
    )

    NOT_FOUND = ErrorCode(
        code="NOT_FOUND",
        category=ErrorCategory.STATE,
        severity=ErrorSeverity.INFO,
        message="Referenced entity not found",
        http_status=404,
        recovery_hint="The position or recommendation may already be closed or dismissed.",
    )

    INSUFFICIENT_CASH = ErrorCode(
        code="INSUFFICIENT_CASH",
        category=ErrorCategory.FUNDS,
        severity=ErrorSeverity.WARNING,
        message="Insufficient cash for the requested trade",
        http_status=409,
        recovery_hint="Free up cash or lower the suggested quantity.",
    )

    SOURCE_UNAVAILABLE = ErrorCode(
        code="SOURCE_UNAVAILABLE",
        category=ErrorCategory.EXTERNAL,
        severity=ErrorSeverity.WARNING,
        message="External data source unavailable",
        http_status=503,
        retryable=True,
        recovery_hint="Previous state was retained. Try again shortly.",
    )

    SOURCE_BUSY = ErrorCode(
        code="SOURCE_BUSY",
        category=ErrorCategory.EXTERNAL,
        severity=ErrorSeverity.WARNING,
        message="A fetch of the same kind is already in flight",
        http_status=409,
        retryable=True,
        recovery_hint="Wait for the running request to finish.",
    )


# =============================================================================
# Exception Classes
# =============================================================================


class SentinelError(Exception):
    """
    Base exception for all Sentinel errors.

    Carries a registered ErrorCode plus free-form detail and context so the
    API layer and the activity log can render it without string parsing.
    """

    error_code: ErrorCode = ErrorCodes.INVALID_INPUT

    def __init__(
        self,
        detail: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
        original_error: Optional[Exception] = None,
    ):
        self.detail = detail
        self.context = context or {}
        self.original_error = original_error
        self.timestamp = datetime.now(timezone.utc)
        super().__init__(self.technical_message)

    @property
    def code(self) -> str:
        """Error code string."""
        return str(self.error_code)

    @property
    def http_status(self) -> int:
        """HTTP status code to return."""
        return self.error_code.http_status

    @property
    def is_retryable(self) -> bool:
        """Whether the operation can be retried."""
        return self.error_code.retryable

    @property
    def technical_message(self) -> str:
        msg = f"[{self.code}] {self.error_code.message}"
        if self.detail:
            msg = f"{msg}: {self.detail}"
        return msg

    def to_dict(self) -> Dict[str, Any]:
        """Convert error to dictionary for API responses."""
        return {
            "code": self.code,
            "category": self.error_code.category.value,
            "message": self.detail or self.error_code.message,
            "recovery_hint": self.error_code.recovery_hint,
            "retryable": self.is_retryable,
            "context": {k: _safe_repr(v) for k, v in self.context.items()},
            "timestamp": self.timestamp.isoformat(),
        }

    def log(self) -> None:
        """Log the error with its registered severity."""
        log_method = getattr(logger, self.error_code.severity.name.lower(), logger.error)
        log_method(
            self.technical_message,
            extra={"ctx_error_code": self.code, "ctx_retryable": self.is_retryable},
        )


class InvalidInputError(SentinelError):
    """Non-positive quantity or price, or a malformed symbol."""

    error_code = ErrorCodes.INVALID_INPUT

    def __init__(self, detail: str, field: Optional[str] = None, value: Any = None):
        context = {}
        if field is not None:
            context["field"] = field
            context["value"] = value
        super().__init__(detail, context=context)
        self.field = field
        self.value = value


class NotFoundError(SentinelError):
    """Operation references an unknown position or recommendation id."""

    error_code = ErrorCodes.NOT_FOUND

    def __init__(self, kind: str, identifier: str):
        super().__init__(
            f"{kind} {identifier!r} does not exist",
            context={"kind": kind, "id": identifier},
        )
        self.kind = kind
        self.identifier = identifier


class InsufficientCashError(SentinelError):
    """Purchase cost exceeds available cash."""

    error_code = ErrorCodes.INSUFFICIENT_CASH

    def __init__(self, required: float, available: float, symbol: Optional[str] = None):
        label = f" for {symbol}" if symbol else ""
        super().__init__(
            f"need {required:.2f}{label}, have {available:.2f}",
            context={"required": required, "available": available, "symbol": symbol},
        )
        self.required = required
        self.available = available
        self.symbol = symbol


class SourceUnavailableError(SentinelError):
    """Price or analysis fetch failed or timed out."""

    error_code = ErrorCodes.SOURCE_UNAVAILABLE

    def __init__(
        self,
        source: str,
        detail: Optional[str] = None,
        original_error: Optional[Exception] = None,
    ):
        super().__init__(
            f"{source}: {detail}" if detail else source,
            context={"source": source},
            original_error=original_error,
        )
        self.source = source


class SourceBusyError(SentinelError):
    """A fetch cycle of the same kind is already running."""

    error_code = ErrorCodes.SOURCE_BUSY

    def __init__(self, operation: str):
        super().__init__(f"{operation} already in progress", context={"operation": operation})
        self.operation = operation


def _safe_repr(value: Any) -> Any:
    """Keep context values JSON friendly and short."""
    if value is None or isinstance(value, (int, float, bool)):
        return value
    value_str = str(value)
    if len(value_str) > 100:
        return value_str[:100] + "..."
    return value_str


__all__ = [
    "ErrorCategory",
    "ErrorSeverity",
    "ErrorCode",
    "ErrorCodes",
    "SentinelError",
    "InvalidInputError",
    "NotFoundError",
    "InsufficientCashError",
    "SourceUnavailableError",
    "SourceBusyError",
]
