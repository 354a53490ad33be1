from pathlib import Path
from typing import Any, Generator
from unittest.mock import MagicMock, patch

import pytest

from coreason_exec.artifacts import ArtifactManager
from coreason_exec.executors.process import ProcessExecutor
from coreason_exec.models import ExecutionRequest


@pytest.fixture
def artifact_root(tmp_path: Path) -> Path:
    root = tmp_path / "artifacts"
    root.mkdir()
    return root


@pytest.fixture
def process_executor(artifact_root: Path) -> ProcessExecutor:
    return ProcessExecutor(artifact_manager=ArtifactManager(artifact_root))


@pytest.fixture
def make_request() -> Any:
    def _make(*command: str, timeout: float = 10.0, **kwargs: Any) -> ExecutionRequest:
        return ExecutionRequest(command=list(command), timeout=timeout, **kwargs)

    return _make


@pytest.fixture
def mock_docker_client() -> Generator[Any, None, None]:
    with patch("coreason_exec.executors.docker.docker.from_env") as mock:
        mock.return_value = MagicMock()
        yield mock
