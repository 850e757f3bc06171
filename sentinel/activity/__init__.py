"""
Activity Module

User-facing activity log of trades, refreshes and warnings.
"""

from .activity_log import DEFAULT_CAPACITY, ActivityLog, LogEntry, LogSeverity

__all__ = ["ActivityLog", "LogEntry", "LogSeverity", "DEFAULT_CAPACITY"]
