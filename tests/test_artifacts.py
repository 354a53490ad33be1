import os
from pathlib import Path

import pytest

from coreason_exec.artifacts import ArtifactManager


@pytest.fixture
def output_dir(tmp_path: Path) -> Path:
    path = tmp_path / "output"
    path.mkdir()
    return path


def test_collect_copies_files_out_of_output_dir(output_dir: Path, artifact_root: Path) -> None:
    (output_dir / "result.json").write_text('{"ok": true}')
    (output_dir / "plot.png").write_bytes(b"\x89PNG")

    artifacts = ArtifactManager(artifact_root).collect(output_dir)

    assert [a.name for a in artifacts] == ["plot.png", "result.json"]
    png, json_file = artifacts
    assert png.mime_type == "image/png"
    assert png.size_bytes == 4
    assert json_file.mime_type == "application/json"
    assert json_file.path.read_text() == '{"ok": true}'
    for artifact in artifacts:
        assert artifact.path.is_relative_to(artifact_root)
        assert not artifact.path.is_relative_to(output_dir)


def test_collected_copies_survive_output_dir_removal(output_dir: Path, artifact_root: Path) -> None:
    (output_dir / "hello.txt").write_text("hello")
    artifacts = ArtifactManager(artifact_root).collect(output_dir)

    for child in output_dir.iterdir():
        child.unlink()
    output_dir.rmdir()

    assert artifacts[0].path.read_text() == "hello"


def test_collect_ignores_subdirectories_and_symlinks(output_dir: Path, artifact_root: Path, tmp_path: Path) -> None:
    (output_dir / "nested").mkdir()
    (output_dir / "nested" / "deep.txt").write_text("deep")
    secret = tmp_path / "secret.txt"
    secret.write_text("secret")
    os.symlink(secret, output_dir / "link.txt")
    (output_dir / "real.txt").write_text("real")

    artifacts = ArtifactManager(artifact_root).collect(output_dir)

    assert [a.name for a in artifacts] == ["real.txt"]


def test_collect_empty_output_creates_nothing(output_dir: Path, artifact_root: Path) -> None:
    assert ArtifactManager(artifact_root).collect(output_dir) == []
    assert list(artifact_root.iterdir()) == []


def test_collect_missing_output_dir(tmp_path: Path) -> None:
    assert ArtifactManager().collect(tmp_path / "missing") == []


def test_each_collection_gets_its_own_directory(output_dir: Path, artifact_root: Path) -> None:
    (output_dir / "same.txt").write_text("one")
    manager = ArtifactManager(artifact_root)
    first = manager.collect(output_dir)
    (output_dir / "same.txt").write_text("two")
    second = manager.collect(output_dir)

    assert first[0].path != second[0].path
    assert first[0].path.read_text() == "one"
    assert second[0].path.read_text() == "two"


def test_default_destination_is_temp_dir(output_dir: Path) -> None:
    (output_dir / "x.bin").write_bytes(b"\x00\x01")
    artifacts = ArtifactManager().collect(output_dir)

    assert artifacts[0].mime_type == "application/octet-stream"
    assert artifacts[0].path.parent.name.startswith("sandbox-artifacts-")
    assert artifacts[0].path.read_bytes() == b"\x00\x01"
