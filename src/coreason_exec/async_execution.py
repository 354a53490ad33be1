# Copyright (c) 2025 CoReason, Inc.
#
# This software is proprietary and dual-licensed.
# Licensed under the Prosperity Public License 3.0 (the "License").
# A copy of the license is available at https://prosperitylicense.com/versions/3.0.0
# For details, see the LICENSE file.
# Commercial use beyond a 30-day trial requires a separate license.
#
# Source Code: https://github.com/CoReason-AI/coreason_exec

import threading
from concurrent.futures import CancelledError, Executor, Future, ThreadPoolExecutor
from concurrent.futures import TimeoutError as FutureTimeoutError
from functools import partial
from typing import Callable

import anyio
from loguru import logger

from coreason_exec.models import ExecutionResult, Failed, TimedOut
from coreason_exec.supervisor import ExecutionMonitor

DEFAULT_MAX_WORKERS = 32
CANCELLED_BEFORE_START = "Execution was cancelled before starting"

_shared_pool: ThreadPoolExecutor | None = None
_shared_pool_lock = threading.Lock()


def shared_pool() -> ThreadPoolExecutor:
    """Return the process-wide worker pool used when no pool is supplied."""
    global _shared_pool
    with _shared_pool_lock:
        if _shared_pool is None:
            _shared_pool = ThreadPoolExecutor(max_workers=DEFAULT_MAX_WORKERS, thread_name_prefix="sandbox-exec")
        return _shared_pool


class AsyncExecution:
    """Handle for an execution running on a worker thread.

    Allows polling, waiting (optionally bounded), best-effort cancellation and,
    for executors that stream, reading output captured so far.

    Cancellation is honoured for certain only if the work has not started yet.
    Once the command is running, executors that watch the monitor kill it;
    others run to completion.
    """

    def __init__(
        self,
        run: Callable[[ExecutionMonitor], ExecutionResult],
        pool: Executor | None = None,
    ):
        """Submits ``run`` to the pool.

        Args:
            run: The synchronous execution. It receives the monitor this handle
                uses for cancellation and partial output.
            pool: Worker pool to run on. Defaults to the shared pool.
        """
        self._run = run
        self._monitor = ExecutionMonitor()
        self._lock = threading.Lock()
        self._cancelled = False
        self._future: Future[ExecutionResult] = (pool or shared_pool()).submit(self._guarded_run)

    def _guarded_run(self) -> ExecutionResult:
        if self._cancelled:
            return Failed(error=CANCELLED_BEFORE_START)
        try:
            return self._run(self._monitor)
        except Exception as e:
            logger.exception("Asynchronous execution raised")
            return Failed(error=f"Unexpected error: {e}", cause=e)

    @property
    def is_running(self) -> bool:
        """Whether the execution has not finished yet."""
        return not self._future.done()

    @property
    def is_cancelled(self) -> bool:
        """Whether ``cancel`` was called successfully."""
        return self._cancelled

    def wait(self, timeout: float | None = None) -> ExecutionResult:
        """Wait for the result.

        With a ``timeout``, gives up waiting after that many seconds and returns
        ``TimedOut(terminated=False)``. Giving up does NOT stop the command: it
        keeps running under its own request timeout. Call ``cancel`` to stop it.

        Args:
            timeout: Maximum seconds to wait, or None to wait indefinitely.

        Returns:
            ExecutionResult: The execution result or a wait-timeout marker.
        """
        try:
            if timeout is None:
                return self._future.result()
            try:
                return self._future.result(timeout=timeout)
            except FutureTimeoutError:
                return TimedOut(partial_stderr=self.partial_stderr(), duration=timeout, terminated=False)
        except CancelledError:
            return Failed(error=CANCELLED_BEFORE_START)

    async def wait_async(self, timeout: float | None = None) -> ExecutionResult:
        """Awaitable variant of ``wait`` for async callers."""
        return await anyio.to_thread.run_sync(partial(self.wait, timeout))

    def cancel(self) -> bool:
        """Request cancellation.

        Returns:
            bool: True if cancellation was initiated, False if the execution had
            already finished or was already cancelled.
        """
        with self._lock:
            if self._cancelled or self._future.done():
                return False
            self._cancelled = True
        self._monitor.cancel()
        if self._future.cancel():
            logger.info("Cancelled execution before it started")
        else:
            logger.info("Cancellation requested for running execution")
        return True

    def partial_stdout(self) -> str | None:
        """Stdout captured so far, or None if the executor does not stream."""
        return self._monitor.partial_stdout()

    def partial_stderr(self) -> str | None:
        """Stderr captured so far, or None if the executor does not stream."""
        return self._monitor.partial_stderr()

    def to_future(self) -> "Future[ExecutionResult]":
        """The underlying future, completed when the execution finishes."""
        return self._future
