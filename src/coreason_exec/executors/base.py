# Copyright (c) 2025 CoReason, Inc.
#
# This software is proprietary and dual-licensed.
# Licensed under the Prosperity Public License 3.0 (the "License").
# A copy of the license is available at https://prosperitylicense.com/versions/3.0.0
# For details, see the LICENSE file.
# Commercial use beyond a 30-day trial requires a separate license.
#
# Source Code: https://github.com/CoReason-AI/coreason_exec

from abc import abstractmethod
from concurrent.futures import Executor
from dataclasses import dataclass
from functools import partial
from pathlib import Path
from typing import Callable

from loguru import logger

from coreason_exec.artifacts import ArtifactManager
from coreason_exec.async_execution import CANCELLED_BEFORE_START, AsyncExecution
from coreason_exec.executor import SandboxedExecutor
from coreason_exec.models import Completed, Denied, ExecutionRequest, ExecutionResult, Failed, TimedOut
from coreason_exec.staging import StagingArea
from coreason_exec.supervisor import ExecutionMonitor, ProcessOutcome, run_supervised

INPUT_DIR_VAR = "INPUT_DIR"
OUTPUT_DIR_VAR = "OUTPUT_DIR"


@dataclass(frozen=True)
class Invocation:
    """How a backend wants the supervised child launched."""

    command: list[str]
    env: dict[str, str] | None = None
    cwd: Path | None = None
    on_kill: Callable[[], None] | None = None


def validate_request_paths(request: ExecutionRequest) -> Denied | None:
    """Deny requests whose input files or working directory are unusable."""
    for input_file in request.input_files:
        if not input_file.exists():
            return Denied(reason=f"Input file does not exist: {input_file}")
        if not input_file.is_file():
            return Denied(reason=f"Input path is not a file: {input_file}")
    if request.working_directory is not None and not request.working_directory.is_dir():
        return Denied(reason=f"Working directory does not exist: {request.working_directory}")
    return None


class StagedExecutor(SandboxedExecutor):
    """
    Runs a request through validate → stage → spawn → supervise → collect.
    Subclasses only decide how the child is launched.
    """

    staging_prefix = "sandbox-exec-"

    def __init__(self, artifact_manager: ArtifactManager | None = None):
        self.artifact_manager = artifact_manager or ArtifactManager()

    @abstractmethod
    def _prepare(self, request: ExecutionRequest, staging: StagingArea) -> Invocation:
        """Build the launch description for a staged request."""
        pass  # pragma: no cover

    def validate(self, request: ExecutionRequest) -> Denied | None:
        return validate_request_paths(request)

    def execute(self, request: ExecutionRequest) -> ExecutionResult:
        return self._run(request, None)

    def execute_async(self, request: ExecutionRequest, pool: Executor | None = None) -> AsyncExecution:
        """Run on a worker thread with streaming output and cooperative cancellation."""
        return AsyncExecution(partial(self._run, request), pool=pool)

    def _run(self, request: ExecutionRequest, monitor: ExecutionMonitor | None) -> ExecutionResult:
        denied = self.validate(request)
        if denied is not None:
            logger.warning(f"Execution denied: {denied.reason}")
            return denied
        if monitor is not None and monitor.cancelled:
            return Failed(error=CANCELLED_BEFORE_START)

        try:
            with StagingArea(prefix=self.staging_prefix) as staging:
                staging.stage_inputs(request.input_files)
                invocation = self._prepare(request, staging)
                logger.info(f"Executing command with {type(self).__name__}: {request.command[0]}")
                try:
                    outcome = run_supervised(
                        invocation.command,
                        timeout=request.timeout,
                        env=invocation.env,
                        cwd=invocation.cwd,
                        stdin=request.stdin,
                        capture_output=request.capture_output,
                        monitor=monitor,
                        on_kill=invocation.on_kill,
                    )
                except OSError as e:
                    logger.error(f"Failed to start process {invocation.command[0]}: {e}")
                    return Failed(error=f"Failed to start process: {e}", cause=e)
                return self._to_result(request, outcome, staging)
        except Exception as e:
            logger.exception(f"Unexpected error executing command: {e}")
            return Failed(error=f"Unexpected error: {e}", cause=e)

    def _to_result(self, request: ExecutionRequest, outcome: ProcessOutcome, staging: StagingArea) -> ExecutionResult:
        if outcome.status == "timed_out":
            logger.warning(f"Command timed out after {outcome.duration:.2f}s (limit {request.timeout}s)")
            return TimedOut(
                partial_stderr=outcome.stderr if request.capture_output else None,
                duration=outcome.duration,
            )
        if outcome.status == "cancelled":
            logger.info(f"Command cancelled after {outcome.duration:.2f}s")
            return Failed(error="Execution was cancelled")

        if outcome.exit_code is None:
            raise RuntimeError("Completed process reported no exit code")
        artifacts = self.artifact_manager.collect(staging.output_dir)
        logger.info(
            f"Command finished with exit code {outcome.exit_code} in {outcome.duration:.2f}s, "
            f"{len(artifacts)} artifact(s)"
        )
        return Completed(
            exit_code=outcome.exit_code,
            stdout=outcome.stdout,
            stderr=outcome.stderr,
            duration=outcome.duration,
            artifacts=artifacts,
        )
