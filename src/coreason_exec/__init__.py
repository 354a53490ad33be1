# Copyright (c) 2025 CoReason, Inc.
#
# This software is proprietary and dual-licensed.
# Licensed under the Prosperity Public License 3.0 (the "License").
# A copy of the license is available at https://prosperitylicense.com/versions/3.0.0
# For details, see the LICENSE file.
# Commercial use beyond a 30-day trial requires a separate license.
#
# Source Code: https://github.com/CoReason-AI/coreason_exec

"""
coreason-exec
"""

__version__ = "0.1.0"
__author__ = "Gowtham A Rao"
__email__ = "gowtham.rao@coreason.ai"

from .artifacts import ArtifactManager
from .async_execution import AsyncExecution
from .config import ExecutorConfig
from .executor import NoOpExecutor, SandboxedExecutor
from .executors.docker import DockerExecutor, Mount
from .executors.process import ProcessExecutor
from .factory import ExecutorFactory, get_executor
from .models.execution import (
    Completed,
    Denied,
    ExecutionArtifact,
    ExecutionRequest,
    ExecutionResult,
    Failed,
    TimedOut,
    infer_mime_type,
)
from .scripts import ScriptLanguage, script_request

__all__ = [
    "ArtifactManager",
    "AsyncExecution",
    "Completed",
    "Denied",
    "DockerExecutor",
    "ExecutionArtifact",
    "ExecutionRequest",
    "ExecutionResult",
    "ExecutorConfig",
    "ExecutorFactory",
    "Failed",
    "Mount",
    "NoOpExecutor",
    "ProcessExecutor",
    "SandboxedExecutor",
    "ScriptLanguage",
    "TimedOut",
    "get_executor",
    "infer_mime_type",
    "script_request",
]
