# Copyright (c) 2025 CoReason, Inc.
#
# This software is proprietary and dual-licensed.
# Licensed under the Prosperity Public License 3.0 (the "License").
# A copy of the license is available at https://prosperitylicense.com/versions/3.0.0
# For details, see the LICENSE file.
# Commercial use beyond a 30-day trial requires a separate license.
#
# Source Code: https://github.com/CoReason-AI/coreason_exec

from abc import ABC, abstractmethod
from concurrent.futures import Executor

import anyio

from coreason_exec.async_execution import AsyncExecution
from coreason_exec.models import Denied, ExecutionRequest, ExecutionResult


class SandboxedExecutor(ABC):
    """
    Abstract base class for sandboxed command executors.
    Follows the Strategy Pattern: callers pick a backend at construction time
    and use the same calls whatever the isolation strategy.

    Every executor gives the command two environment variables:
    ``INPUT_DIR`` (staged input files) and ``OUTPUT_DIR`` (where artifacts go).
    """

    @abstractmethod
    def execute(self, request: ExecutionRequest) -> ExecutionResult:
        """Run a command and wait for it.

        Never raises: every failure mode is one of the result variants.

        Args:
            request: The execution request.

        Returns:
            ExecutionResult: Completed, TimedOut, Failed or Denied.
        """
        pass  # pragma: no cover

    def execute_async(self, request: ExecutionRequest, pool: Executor | None = None) -> AsyncExecution:
        """Run a command on a worker thread.

        The default wraps ``execute``; such executors cannot report partial
        output or stop a command that has already started.

        Args:
            request: The execution request.
            pool: Optional worker pool. Defaults to the shared pool.

        Returns:
            AsyncExecution: A handle to monitor and control the execution.
        """
        return AsyncExecution(lambda _monitor: self.execute(request), pool=pool)

    async def aexecute(self, request: ExecutionRequest) -> ExecutionResult:
        """Run ``execute`` on a worker thread and await the result."""
        return await anyio.to_thread.run_sync(self.execute, request)

    @abstractmethod
    def check_availability(self) -> str | None:
        """Check that the executor can run commands.

        Returns:
            str | None: None if available, otherwise the reason it is not.
        """
        pass  # pragma: no cover

    def validate(self, request: ExecutionRequest) -> Denied | None:
        """Check a request without running it.

        Returns:
            Denied | None: None if the request may run.
        """
        return None


NO_EXECUTOR_REASON = "Execution is disabled. No sandbox executor is configured."


class NoOpExecutor(SandboxedExecutor):
    """Denies all execution. The safe default when no backend is configured."""

    def execute(self, request: ExecutionRequest) -> ExecutionResult:
        return Denied(reason=NO_EXECUTOR_REASON)

    def check_availability(self) -> str | None:
        return "No sandbox executor is configured."

    def validate(self, request: ExecutionRequest) -> Denied | None:
        return Denied(reason=NO_EXECUTOR_REASON)
