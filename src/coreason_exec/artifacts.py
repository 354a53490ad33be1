# Copyright (c) 2025 CoReason, Inc.
#
# This software is proprietary and dual-licensed.
# Licensed under the Prosperity Public License 3.0 (the "License").
# A copy of the license is available at https://prosperitylicense.com/versions/3.0.0
# For details, see the LICENSE file.
# Commercial use beyond a 30-day trial requires a separate license.
#
# Source Code: https://github.com/CoReason-AI/coreason_exec

import shutil
import tempfile
from pathlib import Path
from uuid import uuid4

from loguru import logger

from coreason_exec.models import ExecutionArtifact, infer_mime_type


class ArtifactManager:
    """Copies files out of an output staging directory into durable storage."""

    def __init__(self, artifact_root: Path | None = None):
        """Initializes the ArtifactManager.

        Args:
            artifact_root: Directory under which each collection gets its own
                subdirectory. When omitted, every collection gets a fresh system
                temp directory that the caller owns.
        """
        self.artifact_root = artifact_root

    def _new_destination(self) -> Path:
        if self.artifact_root is None:
            return Path(tempfile.mkdtemp(prefix="sandbox-artifacts-"))
        destination = self.artifact_root / uuid4().hex
        destination.mkdir(parents=True, exist_ok=False)
        return destination

    def collect(self, output_dir: Path) -> list[ExecutionArtifact]:
        """Persist every regular file directly inside ``output_dir``.

        Subdirectories and anything outside ``output_dir`` are ignored. The
        durable directory is only created when there is something to copy.

        Args:
            output_dir: The output staging directory of a finished command.

        Returns:
            list[ExecutionArtifact]: One entry per file, sorted by name.
        """
        if not output_dir.is_dir():
            return []

        files = sorted((p for p in output_dir.iterdir() if p.is_file() and not p.is_symlink()), key=lambda p: p.name)
        if not files:
            return []

        destination = self._new_destination()
        artifacts: list[ExecutionArtifact] = []
        for file in files:
            persistent_path = destination / file.name
            shutil.copyfile(file, persistent_path)
            artifacts.append(
                ExecutionArtifact(
                    name=file.name,
                    path=persistent_path,
                    mime_type=infer_mime_type(file.name),
                    size_bytes=persistent_path.stat().st_size,
                )
            )
        logger.debug(f"Collected {len(artifacts)} artifact(s) into {destination}")
        return artifacts
