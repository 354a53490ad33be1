# Copyright (c) 2025 CoReason, Inc.
#
# This software is proprietary and dual-licensed.
# Licensed under the Prosperity Public License 3.0 (the "License").
# A copy of the license is available at https://prosperitylicense.com/versions/3.0.0
# For details, see the LICENSE file.
# Commercial use beyond a 30-day trial requires a separate license.
#
# Source Code: https://github.com/CoReason-AI/coreason_exec

from pathlib import Path
from typing import Literal

from pydantic_settings import BaseSettings, SettingsConfigDict

from coreason_exec.utils.logger import configure_logging


class ExecutorConfig(BaseSettings):
    """
    Configuration for the execution engine.
    """

    backend: Literal["none", "process", "docker"] = "none"

    # Process backend
    inherit_environment: bool = True
    base_environment: dict[str, str] = {}

    # Where collected artifacts are copied; a fresh temp dir per run when unset
    artifact_dir: Path | None = None

    # Docker backend
    docker_image: str = "python:3.12-slim"
    docker_binary: str = "docker"
    network_enabled: bool = True
    memory_limit: str | None = "512m"
    cpu_limit: str | None = "1.0"
    user: str | None = None
    work_dir: str = "/workspace"
    read_only_rootfs: bool = False
    isolated: bool = False
    pull_if_missing: bool = False

    log_level: str = "INFO"
    log_dir: Path | None = None

    model_config = SettingsConfigDict(
        env_prefix="COREASON_EXEC_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    def apply_logging(self) -> None:
        """Configure loguru sinks from ``log_level`` and ``log_dir``."""
        configure_logging(self.log_level, self.log_dir)
