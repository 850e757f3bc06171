"""
Activity Log Module

Bounded, append-only record of state transitions shown to the user. Past
capacity the oldest entry is dropped. The log is advisory: nothing reads it
to make a decision.
"""

import logging
import uuid
from collections import deque
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Deque, Dict, List, Optional

logger = logging.getLogger(__name__)

DEFAULT_CAPACITY = 50


class LogSeverity(Enum):
    """Activity entry type."""

    INFO = "INFO"
    WARNING = "WARNING"
    ACTION = "ACTION"
    THOUGHT = "THOUGHT"


# Activity severity -> process log level
_LEVELS = {
    LogSeverity.INFO: logging.INFO,
    LogSeverity.WARNING: logging.WARNING,
    LogSeverity.ACTION: logging.INFO,
    LogSeverity.THOUGHT: logging.DEBUG,
}


@dataclass(frozen=True)
class LogEntry:
    """One activity log line."""

    message: str
    severity: LogSeverity = LogSeverity.INFO
    timestamp: datetime = field(default_factory=datetime.now)
    entry_id: str = field(default_factory=lambda: uuid.uuid4().hex[:12])

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.entry_id,
            "timestamp": self.timestamp.isoformat(),
            "message": self.message,
            "type": self.severity.value,
        }


class ActivityLog:
    """Fixed-capacity ring of LogEntry records, oldest first."""

    def __init__(self, capacity: int = DEFAULT_CAPACITY):
        if capacity < 1:
            raise ValueError("capacity must be at least 1")
        self._entries: Deque[LogEntry] = deque(maxlen=capacity)

    @property
    def capacity(self) -> int:
        return self._entries.maxlen or 0

    def __len__(self) -> int:
        return len(self._entries)

    def append(self, message: str, severity: LogSeverity = LogSeverity.INFO) -> LogEntry:
        entry = LogEntry(message=message, severity=severity)
        self._entries.append(entry)
        logger.log(_LEVELS[severity], message, extra={"ctx_activity": severity.value})
        return entry

    def info(self, message: str) -> LogEntry:
        return self.append(message, LogSeverity.INFO)

    def warning(self, message: str) -> LogEntry:
        return self.append(message, LogSeverity.WARNING)

    def action(self, message: str) -> LogEntry:
        return self.append(message, LogSeverity.ACTION)

    def thought(self, message: str) -> LogEntry:
        return self.append(message, LogSeverity.THOUGHT)

    def entries(self, severity: Optional[LogSeverity] = None) -> List[LogEntry]:
        """Entries oldest first, optionally filtered by severity."""
        if severity is None:
            return list(self._entries)
        return [e for e in self._entries if e.severity is severity]

    def latest(self) -> Optional[LogEntry]:
        return self._entries[-1] if self._entries else None

    def clear(self) -> None:
        self._entries.clear()

    def to_list(self) -> List[Dict[str, Any]]:
        return [e.to_dict() for e in self._entries]


__all__ = ["ActivityLog", "LogEntry", "LogSeverity", "DEFAULT_CAPACITY"]
