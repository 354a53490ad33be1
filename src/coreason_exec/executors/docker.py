# Copyright (c) 2025 CoReason, Inc.
#
# This software is proprietary and dual-licensed.
# Licensed under the Prosperity Public License 3.0 (the "License").
# A copy of the license is available at https://prosperitylicense.com/versions/3.0.0
# For details, see the LICENSE file.
# Commercial use beyond a 30-day trial requires a separate license.
#
# Source Code: https://github.com/CoReason-AI/coreason_exec

import subprocess
from dataclasses import dataclass
from functools import partial
from pathlib import Path
from uuid import uuid4

import docker
from docker.errors import DockerException, ImageNotFound
from loguru import logger

from coreason_exec.artifacts import ArtifactManager
from coreason_exec.executors.base import INPUT_DIR_VAR, OUTPUT_DIR_VAR, Invocation, StagedExecutor
from coreason_exec.models import Denied, ExecutionRequest
from coreason_exec.staging import StagingArea

DEFAULT_SANDBOX_IMAGE = "python:3.12-slim"
DEFAULT_WORK_DIR = "/workspace"
CONTAINER_INPUT_DIR = "/input"
CONTAINER_OUTPUT_DIR = "/output"
TMPFS_SPEC = "/tmp:rw,noexec,nosuid,size=64m"
_CONTAINER_REMOVE_TIMEOUT = 10.0


def is_docker_available() -> bool:
    """Whether a Docker daemon is reachable from this host."""
    try:
        client = docker.from_env()
        try:
            client.ping()
        finally:
            client.close()
    except DockerException:
        return False
    return True


def image_exists(image: str) -> bool:
    """Whether ``image`` is present in the local image store."""
    try:
        client = docker.from_env()
        try:
            client.images.get(image)
        finally:
            client.close()
    except DockerException:
        return False
    return True


def ensure_image(image: str) -> bool:
    """Pull ``image`` if it is not present locally.

    Returns:
        bool: True if the image is available afterwards.
    """
    if image_exists(image):
        return True
    logger.info(f"Pulling Docker image: {image}")
    try:
        client = docker.from_env()
        try:
            client.images.pull(image)
        finally:
            client.close()
    except DockerException as e:
        logger.error(f"Failed to pull image {image}: {e}")
        return False
    return True


@dataclass(frozen=True)
class Mount:
    """An extra bind mount for the container."""

    host_path: Path
    container_path: str
    read_only: bool = False

    def to_docker_arg(self) -> str:
        mode = "ro" if self.read_only else "rw"
        return f"{self.host_path.resolve()}:{self.container_path}:{mode}"


class DockerExecutor(StagedExecutor):
    """
    Runs each command in a fresh ``docker run --rm`` container.

    The engine only launches the docker CLI and supervises it like any other
    child; isolation comes from the container runtime. Staged directories are
    bind-mounted at ``/input`` (read-only) and ``/output`` (read-write), and
    ``INPUT_DIR``/``OUTPUT_DIR`` point at those in-container paths.
    """

    staging_prefix = "docker-exec-"

    def __init__(
        self,
        image: str = DEFAULT_SANDBOX_IMAGE,
        network_enabled: bool = True,
        memory_limit: str | None = "512m",
        cpu_limit: str | None = "1.0",
        base_environment: dict[str, str] | None = None,
        user: str | None = None,
        work_dir: str | None = None,
        mounts: list[Mount] | None = None,
        read_only_rootfs: bool = False,
        docker_binary: str = "docker",
        pull_if_missing: bool = False,
        artifact_manager: ArtifactManager | None = None,
    ):
        """Initializes the DockerExecutor.

        Args:
            image: The image every command runs in.
            network_enabled: False adds ``--network none``.
            memory_limit: Value for ``--memory`` (e.g. "512m"), or None for no limit.
            cpu_limit: Value for ``--cpus`` (e.g. "1.0"), or None for no limit.
            base_environment: Variables passed to every container, below the request's own.
            user: Value for ``--user``.
            work_dir: Working directory inside the container. Defaults to /workspace.
            mounts: Additional bind mounts.
            read_only_rootfs: Mount the root filesystem read-only, with a tmpfs at /tmp.
            docker_binary: The container CLI to launch.
            pull_if_missing: Pull the image during the availability check when absent.
            artifact_manager: Where collected artifacts are persisted.
        """
        super().__init__(artifact_manager)
        self.image = image
        self.network_enabled = network_enabled
        self.memory_limit = memory_limit
        self.cpu_limit = cpu_limit
        self.base_environment = dict(base_environment or {})
        self.user = user
        self.work_dir = work_dir or DEFAULT_WORK_DIR
        self.mounts = list(mounts or [])
        self.read_only_rootfs = read_only_rootfs
        self.docker_binary = docker_binary
        self.pull_if_missing = pull_if_missing

    @classmethod
    def isolated(cls, image: str = DEFAULT_SANDBOX_IMAGE, **kwargs: object) -> "DockerExecutor":
        """Maximally isolated preset: no network, 256m memory, half a CPU, read-only root."""
        settings: dict[str, object] = {
            "network_enabled": False,
            "memory_limit": "256m",
            "cpu_limit": "0.5",
            "read_only_rootfs": True,
        }
        settings.update(kwargs)
        return cls(image=image, **settings)  # type: ignore[arg-type]

    @classmethod
    def for_python(cls, image: str = DEFAULT_SANDBOX_IMAGE, network_enabled: bool = False) -> "DockerExecutor":
        """Preset for running Python scripts."""
        return cls(image=image, network_enabled=network_enabled, memory_limit="512m", cpu_limit="1.0")

    def check_availability(self) -> str | None:
        try:
            client = docker.from_env()
        except DockerException as e:
            return f"Docker is not available: {e}"

        try:
            client.ping()
            try:
                client.images.get(self.image)
            except ImageNotFound:
                if not self.pull_if_missing:
                    return f"Docker image is not available locally: {self.image}"
                logger.info(f"Pulling Docker image: {self.image}")
                client.images.pull(self.image)
        except DockerException as e:
            return f"Docker is not available: {e}"
        finally:
            client.close()
        return None

    def validate(self, request: ExecutionRequest) -> Denied | None:
        reason = self.check_availability()
        if reason is not None:
            return Denied(reason=reason)
        return super().validate(request)

    def build_command(
        self,
        request: ExecutionRequest,
        input_dir: Path,
        output_dir: Path,
        container_name: str | None = None,
    ) -> list[str]:
        """Translate a request and the isolation knobs into a ``docker run`` command line."""
        command = [self.docker_binary, "run", "--rm"]
        if container_name:
            command += ["--name", container_name]
        if request.stdin is not None:
            command.append("-i")

        if self.memory_limit:
            command += ["--memory", self.memory_limit]
        if self.cpu_limit:
            command += ["--cpus", self.cpu_limit]
        if not self.network_enabled:
            command += ["--network", "none"]
        if self.read_only_rootfs:
            command += ["--read-only", "--tmpfs", TMPFS_SPEC]
        if self.user:
            command += ["--user", self.user]
        command += ["--workdir", self.work_dir]

        command += ["-v", f"{input_dir.resolve()}:{CONTAINER_INPUT_DIR}:ro"]
        command += ["-v", f"{output_dir.resolve()}:{CONTAINER_OUTPUT_DIR}:rw"]
        if request.working_directory is not None:
            command += ["-v", f"{request.working_directory.resolve()}:{self.work_dir}:rw"]
        for mount in self.mounts:
            command += ["-v", mount.to_docker_arg()]

        for key, value in {**self.base_environment, **request.environment}.items():
            if key in (INPUT_DIR_VAR, OUTPUT_DIR_VAR):
                continue
            command += ["-e", f"{key}={value}"]
        command += ["-e", f"{INPUT_DIR_VAR}={CONTAINER_INPUT_DIR}"]
        command += ["-e", f"{OUTPUT_DIR_VAR}={CONTAINER_OUTPUT_DIR}"]

        command.append(self.image)
        command += request.command
        return command

    def _remove_container(self, container_name: str) -> None:
        """Remove a container whose launcher was killed; the daemon would keep it running."""
        try:
            subprocess.run(
                [self.docker_binary, "rm", "-f", container_name],
                capture_output=True,
                check=False,
                timeout=_CONTAINER_REMOVE_TIMEOUT,
            )
        except (OSError, subprocess.TimeoutExpired) as e:
            logger.warning(f"Failed to remove container {container_name}: {e}")

    def _prepare(self, request: ExecutionRequest, staging: StagingArea) -> Invocation:
        # Non-root container users must be able to read inputs and write outputs.
        staging.input_dir.chmod(0o755)
        staging.output_dir.chmod(0o777)
        container_name = f"sandbox-{uuid4().hex[:12]}"
        command = self.build_command(request, staging.input_dir, staging.output_dir, container_name)
        logger.debug(f"Executing docker command: {' '.join(command)}")
        return Invocation(command=command, on_kill=partial(self._remove_container, container_name))
