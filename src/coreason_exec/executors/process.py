# Copyright (c) 2025 CoReason, Inc.
#
# This software is proprietary and dual-licensed.
# Licensed under the Prosperity Public License 3.0 (the "License").
# A copy of the license is available at https://prosperitylicense.com/versions/3.0.0
# For details, see the LICENSE file.
# Commercial use beyond a 30-day trial requires a separate license.
#
# Source Code: https://github.com/CoReason-AI/coreason_exec

import os

from coreason_exec.artifacts import ArtifactManager
from coreason_exec.executors.base import INPUT_DIR_VAR, OUTPUT_DIR_VAR, Invocation, StagedExecutor
from coreason_exec.models import ExecutionRequest
from coreason_exec.staging import StagingArea


class ProcessExecutor(StagedExecutor):
    """
    Runs commands as direct child processes of this interpreter.

    The process boundary is the only isolation: the command sees the host
    filesystem and network with the permissions of the current user. Use
    ``DockerExecutor`` for anything untrusted.
    """

    staging_prefix = "exec-"

    def __init__(
        self,
        base_environment: dict[str, str] | None = None,
        inherit_environment: bool = True,
        artifact_manager: ArtifactManager | None = None,
    ):
        """Initializes the ProcessExecutor.

        Args:
            base_environment: Variables applied to every execution, below the request's own.
            inherit_environment: Whether children start from this process's environment.
            artifact_manager: Where collected artifacts are persisted.
        """
        super().__init__(artifact_manager)
        self.base_environment = dict(base_environment or {})
        self.inherit_environment = inherit_environment

    def check_availability(self) -> str | None:
        return None

    def build_environment(self, request: ExecutionRequest, staging: StagingArea) -> dict[str, str]:
        """Layer inherited, base and request variables, then the staging bindings."""
        env = dict(os.environ) if self.inherit_environment else {}
        env.update(self.base_environment)
        env.update(request.environment)
        env[INPUT_DIR_VAR] = str(staging.input_dir.resolve())
        env[OUTPUT_DIR_VAR] = str(staging.output_dir.resolve())
        return env

    def _prepare(self, request: ExecutionRequest, staging: StagingArea) -> Invocation:
        return Invocation(
            command=list(request.command),
            env=self.build_environment(request, staging),
            cwd=request.working_directory,
        )
