import os
import sys
import time
from concurrent.futures import ThreadPoolExecutor
from pathlib import Path
from typing import Any
from unittest.mock import patch

from coreason_exec.executors.process import ProcessExecutor
from coreason_exec.models import Completed, Denied, ExecutionRequest, Failed, TimedOut


def test_echo(process_executor: ProcessExecutor, make_request: Any) -> None:
    result = process_executor.execute(make_request("echo", "hi"))

    assert isinstance(result, Completed)
    assert result.success
    assert result.stdout == "hi\n"
    assert result.stderr == ""
    assert result.artifacts == []
    assert result.duration > 0


def test_non_zero_exit_is_completed(process_executor: ProcessExecutor, make_request: Any) -> None:
    result = process_executor.execute(make_request("sh", "-c", "echo oops >&2; exit 42"))

    assert isinstance(result, Completed)
    assert result.exit_code == 42
    assert not result.success
    assert result.stderr == "oops\n"


def test_timeout(process_executor: ProcessExecutor, make_request: Any) -> None:
    start = time.monotonic()
    result = process_executor.execute(make_request("sh", "-c", "echo waiting >&2; sleep 10", timeout=1))
    elapsed = time.monotonic() - start

    assert isinstance(result, TimedOut)
    assert result.terminated
    assert 0.9 <= result.duration < 3
    assert elapsed < 5
    assert result.partial_stderr == "waiting\n"


def test_artifact_written_to_output_dir(
    process_executor: ProcessExecutor, make_request: Any, artifact_root: Path
) -> None:
    result = process_executor.execute(make_request("sh", "-c", 'printf hello > "$OUTPUT_DIR/result.txt"'))

    assert isinstance(result, Completed)
    assert result.exit_code == 0
    assert len(result.artifacts) == 1
    artifact = result.artifacts[0]
    assert artifact.name == "result.txt"
    assert artifact.mime_type == "text/plain"
    assert artifact.size_bytes == 5
    assert artifact.path.read_text() == "hello"
    assert artifact.path.is_relative_to(artifact_root)


def test_staging_removed_after_execution(process_executor: ProcessExecutor, make_request: Any) -> None:
    result = process_executor.execute(make_request("sh", "-c", 'echo "$INPUT_DIR"; echo "$OUTPUT_DIR"'))

    assert isinstance(result, Completed)
    input_dir, output_dir = result.stdout.splitlines()
    assert Path(input_dir).is_absolute()
    assert Path(input_dir).parent == Path(output_dir).parent
    assert not Path(input_dir).parent.exists()


def test_input_files_are_staged(process_executor: ProcessExecutor, make_request: Any, tmp_path: Path) -> None:
    source = tmp_path / "numbers.txt"
    source.write_text("1\n2\n3\n")

    result = process_executor.execute(make_request("sh", "-c", 'cat "$INPUT_DIR/numbers.txt"', input_files=[source]))

    assert isinstance(result, Completed)
    assert result.stdout == "1\n2\n3\n"


def test_missing_input_file_is_denied_without_staging(
    process_executor: ProcessExecutor, make_request: Any, tmp_path: Path
) -> None:
    missing = tmp_path / "missing.txt"
    with patch("coreason_exec.executors.base.StagingArea") as mock_staging:
        result = process_executor.execute(make_request("cat", str(missing), input_files=[missing]))

    assert isinstance(result, Denied)
    assert "missing.txt" in result.reason
    mock_staging.assert_not_called()


def test_directory_as_input_file_is_denied(
    process_executor: ProcessExecutor, make_request: Any, tmp_path: Path
) -> None:
    result = process_executor.execute(make_request("true", input_files=[tmp_path]))
    assert isinstance(result, Denied)
    assert "not a file" in result.reason


def test_missing_working_directory_is_denied(
    process_executor: ProcessExecutor, make_request: Any, tmp_path: Path
) -> None:
    request = make_request("pwd", working_directory=tmp_path / "nowhere")
    assert isinstance(process_executor.validate(request), Denied)
    assert isinstance(process_executor.execute(request), Denied)


def test_duplicate_input_names_fail(process_executor: ProcessExecutor, make_request: Any, tmp_path: Path) -> None:
    (tmp_path / "a").mkdir()
    (tmp_path / "b").mkdir()
    first = tmp_path / "a" / "dup.txt"
    second = tmp_path / "b" / "dup.txt"
    first.write_text("1")
    second.write_text("2")

    result = process_executor.execute(make_request("true", input_files=[first, second]))

    assert isinstance(result, Failed)
    assert "dup.txt" in result.error
    assert isinstance(result.cause, FileExistsError)


def test_working_directory(process_executor: ProcessExecutor, make_request: Any, tmp_path: Path) -> None:
    result = process_executor.execute(make_request("pwd", working_directory=tmp_path))
    assert isinstance(result, Completed)
    assert Path(result.stdout.strip()).resolve() == tmp_path.resolve()


def test_environment_layering(make_request: Any) -> None:
    executor = ProcessExecutor(base_environment={"BASE": "base", "SHARED": "from-base"})
    request = make_request(
        "sh",
        "-c",
        'echo "$BASE $SHARED $REQ $OUTPUT_DIR"',
        environment={"SHARED": "from-request", "REQ": "req", "OUTPUT_DIR": "/hijacked"},
    )

    result = executor.execute(request)

    assert isinstance(result, Completed)
    base, shared, req, output_dir = result.stdout.split()
    assert (base, shared, req) == ("base", "from-request", "req")
    assert output_dir != "/hijacked"


def test_environment_inheritance_can_be_disabled(make_request: Any) -> None:
    with patch.dict(os.environ, {"LEAKY_VARIABLE": "leaked"}):
        inherited = ProcessExecutor().execute(make_request("sh", "-c", 'echo "[$LEAKY_VARIABLE]"'))
        isolated = ProcessExecutor(inherit_environment=False).execute(
            make_request("/bin/sh", "-c", 'echo "[$LEAKY_VARIABLE]"')
        )

    assert isinstance(inherited, Completed) and inherited.stdout == "[leaked]\n"
    assert isinstance(isolated, Completed) and isolated.stdout == "[]\n"


def test_stdin(process_executor: ProcessExecutor, make_request: Any) -> None:
    result = process_executor.execute(make_request("cat", stdin="piped input"))
    assert isinstance(result, Completed)
    assert result.stdout == "piped input"


def test_unknown_command_fails(process_executor: ProcessExecutor, make_request: Any) -> None:
    result = process_executor.execute(make_request("no-such-command-for-sure"))

    assert isinstance(result, Failed)
    assert result.error.startswith("Failed to start process")
    assert isinstance(result.cause, OSError)


def test_large_output_on_both_streams(process_executor: ProcessExecutor, make_request: Any) -> None:
    script = "import sys; sys.stdout.write('x' * 100000); sys.stderr.write('y' * 100000)"
    result = process_executor.execute(make_request(sys.executable, "-c", script, timeout=30))

    assert isinstance(result, Completed)
    assert result.stdout == "x" * 100000
    assert result.stderr == "y" * 100000


def test_capture_output_disabled(process_executor: ProcessExecutor, make_request: Any) -> None:
    result = process_executor.execute(make_request("sh", "-c", "echo out; echo err >&2", capture_output=False))
    assert isinstance(result, Completed)
    assert result.stdout == ""
    assert result.stderr == ""


def test_unexpected_error_becomes_failed(process_executor: ProcessExecutor, make_request: Any) -> None:
    with patch("coreason_exec.executors.base.run_supervised", side_effect=RuntimeError("kaboom")):
        result = process_executor.execute(make_request("true"))
    assert isinstance(result, Failed)
    assert result.error == "Unexpected error: kaboom"


def test_check_availability() -> None:
    assert ProcessExecutor().check_availability() is None


def test_concurrent_executions_are_isolated(process_executor: ProcessExecutor, make_request: Any) -> None:
    def _run(i: int) -> Any:
        return process_executor.execute(make_request("sh", "-c", f'echo {i} > "$OUTPUT_DIR/id.txt"'))

    with ThreadPoolExecutor(max_workers=4) as pool:
        results = list(pool.map(_run, range(4)))

    contents = sorted(r.artifacts[0].path.read_text().strip() for r in results)
    assert contents == ["0", "1", "2", "3"]


def test_large_stdin_round_trip(process_executor: ProcessExecutor, make_request: Any) -> None:
    payload = "line of stdin text\n" * 100_000
    result = process_executor.execute(make_request("cat", stdin=payload, timeout=30))

    assert isinstance(result, Completed)
    assert len(payload) > 1_000_000
    assert result.stdout == payload


def test_timeout_with_unread_large_stdin(process_executor: ProcessExecutor, make_request: Any) -> None:
    start = time.monotonic()
    result = process_executor.execute(make_request("sh", "-c", "sleep 6", stdin="x" * 1_000_000, timeout=1))
    elapsed = time.monotonic() - start

    assert isinstance(result, TimedOut)
    assert result.terminated
    assert result.duration < 2
    assert elapsed < 2.5


def test_unencodable_stdin_fails_without_running(process_executor: ProcessExecutor, tmp_path: Path) -> None:
    marker = tmp_path / "marker"
    request = ExecutionRequest.model_construct(
        command=["sh", "-c", f"sleep 1; touch {marker}"], stdin="\ud800", timeout=5
    )

    result = process_executor.execute(request)

    assert isinstance(result, Failed)
    assert isinstance(result.cause, UnicodeEncodeError)
    time.sleep(1.5)
    assert not marker.exists()
