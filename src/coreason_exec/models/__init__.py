# src/coreason_exec/models/__init__.py

"""
Data models for the execution engine.
"""

from .execution import (
    Completed,
    Denied,
    ExecutionArtifact,
    ExecutionRequest,
    ExecutionResult,
    Failed,
    TimedOut,
    infer_mime_type,
)

__all__ = [
    "Completed",
    "Denied",
    "ExecutionArtifact",
    "ExecutionRequest",
    "ExecutionResult",
    "Failed",
    "TimedOut",
    "infer_mime_type",
]
