from coreason_exec.artifacts import ArtifactManager
from coreason_exec.config import ExecutorConfig
from coreason_exec.executor import NoOpExecutor, SandboxedExecutor
from coreason_exec.executors.docker import DockerExecutor
from coreason_exec.executors.process import ProcessExecutor


class ExecutorFactory:
    """
    Factory to create SandboxedExecutor instances based on configuration.
    """

    @staticmethod
    def get_executor(config: ExecutorConfig) -> SandboxedExecutor:
        """
        Returns an instance of the configured SandboxedExecutor.
        """
        artifact_manager = ArtifactManager(artifact_root=config.artifact_dir)

        if config.backend == "none":
            return NoOpExecutor()
        elif config.backend == "process":
            return ProcessExecutor(
                base_environment=config.base_environment,
                inherit_environment=config.inherit_environment,
                artifact_manager=artifact_manager,
            )
        elif config.backend == "docker":
            common = {
                "base_environment": config.base_environment,
                "user": config.user,
                "work_dir": config.work_dir,
                "docker_binary": config.docker_binary,
                "pull_if_missing": config.pull_if_missing,
                "artifact_manager": artifact_manager,
            }
            if config.isolated:
                return DockerExecutor.isolated(image=config.docker_image, **common)
            return DockerExecutor(
                image=config.docker_image,
                network_enabled=config.network_enabled,
                memory_limit=config.memory_limit,
                cpu_limit=config.cpu_limit,
                read_only_rootfs=config.read_only_rootfs,
                **common,  # type: ignore[arg-type]
            )
        else:
            # This should be unreachable due to Pydantic validation, but for safety:
            raise ValueError(f"Unknown backend: {config.backend}")  # pragma: no cover


def get_executor(config: ExecutorConfig | None = None) -> SandboxedExecutor:
    """Build the executor described by ``config`` (or by the environment)."""
    return ExecutorFactory.get_executor(config or ExecutorConfig())
