"""
Execution Module

Reconciles recommendations against the position book.
"""

from .engine import ExecutionEngine, ExecutionOutcome, ExecutionResult

__all__ = ["ExecutionEngine", "ExecutionOutcome", "ExecutionResult"]
