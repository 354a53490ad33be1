# Copyright (c) 2025 CoReason, Inc.
#
# This software is proprietary and dual-licensed.
# Licensed under the Prosperity Public License 3.0 (the "License").
# A copy of the license is available at https://prosperitylicense.com/versions/3.0.0
# For details, see the LICENSE file.
# Commercial use beyond a 30-day trial requires a separate license.
#
# Source Code: https://github.com/CoReason-AI/coreason_exec

"""Spawns a child process and supervises it until it exits or is killed.

stdout and stderr are drained on two threads from the moment the child starts,
and stdin is fed from a third. Reading only one pipe while the child fills the
other would block it forever once the OS pipe buffer is full, and a stdin write
to a child that never reads would block the same way. The supervising thread
only waits, so the deadline always holds.
"""

import os
import signal
import subprocess
import threading
import time
from dataclasses import dataclass
from functools import partial
from pathlib import Path
from typing import IO, Callable, Literal, Sequence

from loguru import logger

DRAIN_GRACE_SECONDS = 1.0
POLL_INTERVAL_SECONDS = 0.05
_CHUNK_SIZE = 64 * 1024


class StreamBuffer:
    """Thread-safe accumulator for one output stream."""

    def __init__(self, keep: bool = True):
        self.keep = keep
        self._chunks: list[bytes] = []
        self._lock = threading.Lock()

    def append(self, data: bytes) -> None:
        if not self.keep:
            return
        with self._lock:
            self._chunks.append(data)

    def text(self) -> str:
        with self._lock:
            data = b"".join(self._chunks)
        return data.decode("utf-8", errors="replace")


class ExecutionMonitor:
    """State shared between a running execution and whoever is watching it.

    The executor attaches the live stream buffers once the child is spawned and
    polls ``cancel_event`` while waiting for it.
    """

    def __init__(self) -> None:
        self.cancel_event = threading.Event()
        self.stdout: StreamBuffer | None = None
        self.stderr: StreamBuffer | None = None

    @property
    def cancelled(self) -> bool:
        return self.cancel_event.is_set()

    def cancel(self) -> None:
        self.cancel_event.set()

    def partial_stdout(self) -> str | None:
        return self.stdout.text() if self.stdout is not None else None

    def partial_stderr(self) -> str | None:
        return self.stderr.text() if self.stderr is not None else None


@dataclass(frozen=True)
class ProcessOutcome:
    """What happened to a supervised child."""

    status: Literal["completed", "timed_out", "cancelled"]
    exit_code: int | None
    stdout: str
    stderr: str
    duration: float


def _drain(stream: IO[bytes], buffer: StreamBuffer) -> None:
    try:
        for chunk in iter(partial(stream.read1, _CHUNK_SIZE), b""):  # type: ignore[attr-defined]
            buffer.append(chunk)
    except (OSError, ValueError):
        # Pipe closed underneath us after a forced kill.
        pass
    finally:
        try:
            stream.close()
        except OSError:
            pass


def _feed(stream: IO[bytes], data: bytes) -> None:
    try:
        stream.write(data)
    except BrokenPipeError:
        logger.debug("Child closed stdin before all input was written")
    except (OSError, ValueError):
        # Pipe closed underneath us after a forced kill.
        pass
    finally:
        try:
            stream.close()
        except OSError:
            pass


def _start_thread(name: str, target: Callable[..., None], *args: object) -> threading.Thread:
    thread = threading.Thread(target=target, args=args, name=f"sandbox-{name}", daemon=True)
    thread.start()
    return thread


def _join_all(threads: list[threading.Thread], timeout: float) -> None:
    for thread in threads:
        thread.join(timeout)


def kill_process_tree(process: subprocess.Popen[bytes]) -> None:
    """Forcibly terminate ``process`` and everything in its process group."""
    if os.name == "posix":
        try:
            os.killpg(process.pid, signal.SIGKILL)
        except (ProcessLookupError, PermissionError):
            process.kill()
    else:  # pragma: no cover
        process.kill()
    try:
        process.wait(timeout=DRAIN_GRACE_SECONDS)
    except subprocess.TimeoutExpired:  # pragma: no cover
        logger.warning(f"Process {process.pid} did not exit after SIGKILL")


def run_supervised(
    command: Sequence[str],
    *,
    timeout: float,
    env: dict[str, str] | None = None,
    cwd: Path | None = None,
    stdin: str | None = None,
    capture_output: bool = True,
    monitor: ExecutionMonitor | None = None,
    on_kill: Callable[[], None] | None = None,
) -> ProcessOutcome:
    """Run ``command`` to completion, timeout or cancellation.

    If anything fails once the child exists, the child's process group is
    killed before the error propagates.

    Args:
        command: The executable and its arguments.
        timeout: Wall-clock limit in seconds, measured from spawn.
        env: Full environment for the child. Inherited when None.
        cwd: Working directory for the child.
        stdin: Text for the child's stdin; stdin is closed right after.
        capture_output: When False the drains still run but discard data.
        monitor: Receives the live buffers and is polled for cancellation.
        on_kill: Called after a forced kill, e.g. to remove a container.

    Returns:
        ProcessOutcome: The terminal state with captured output.

    Raises:
        OSError: If the child cannot be spawned (e.g. executable not found).
        UnicodeEncodeError: If ``stdin`` is not encodable as UTF-8. Raised
            before anything is spawned.
    """
    stdin_data = stdin.encode("utf-8") if stdin is not None else None

    process = subprocess.Popen(
        list(command),
        stdin=subprocess.PIPE,
        stdout=subprocess.PIPE,
        stderr=subprocess.PIPE,
        cwd=str(cwd) if cwd is not None else None,
        env=env,
        start_new_session=os.name == "posix",
    )
    start = time.monotonic()
    deadline = start + timeout
    logger.debug(f"Spawned pid {process.pid}: {command[0]}")

    threads: list[threading.Thread] = []
    try:
        if process.stdin is None or process.stdout is None or process.stderr is None:
            raise RuntimeError(f"Pipes of pid {process.pid} were not created")
        stdout_buffer = StreamBuffer(keep=capture_output)
        stderr_buffer = StreamBuffer(keep=capture_output)
        if monitor is not None:
            monitor.stdout = stdout_buffer
            monitor.stderr = stderr_buffer
        threads.append(_start_thread("drain-stdout", _drain, process.stdout, stdout_buffer))
        threads.append(_start_thread("drain-stderr", _drain, process.stderr, stderr_buffer))
        if stdin_data:
            threads.append(_start_thread("stdin", _feed, process.stdin, stdin_data))
        else:
            process.stdin.close()

        status: Literal["completed", "timed_out", "cancelled"] = "completed"
        exit_code: int | None = None
        while True:
            remaining = deadline - time.monotonic()
            if remaining <= 0:
                status = "timed_out"
                break
            if monitor is not None and monitor.cancelled:
                status = "cancelled"
                break
            try:
                exit_code = process.wait(timeout=min(remaining, POLL_INTERVAL_SECONDS))
                break
            except subprocess.TimeoutExpired:
                continue

        if status != "completed":
            kill_process_tree(process)
            duration = time.monotonic() - start
            if on_kill is not None:
                on_kill()
            _join_all(threads, DRAIN_GRACE_SECONDS)
            return ProcessOutcome(
                status=status,
                exit_code=None,
                stdout=stdout_buffer.text(),
                stderr=stderr_buffer.text(),
                duration=duration,
            )

        duration = time.monotonic() - start
        # Background grandchildren can keep the pipes open after the child exits.
        _join_all(threads, max(deadline - time.monotonic(), DRAIN_GRACE_SECONDS))
        if any(thread.is_alive() for thread in threads):
            logger.warning(f"Pipes of pid {process.pid} still open after exit; killing its process group")
            kill_process_tree(process)
            _join_all(threads, DRAIN_GRACE_SECONDS)

        return ProcessOutcome(
            status="completed",
            exit_code=exit_code,
            stdout=stdout_buffer.text(),
            stderr=stderr_buffer.text(),
            duration=duration,
        )
    except BaseException:
        logger.error(f"Supervision of pid {process.pid} failed; killing its process group")
        kill_process_tree(process)
        _join_all(threads, DRAIN_GRACE_SECONDS)
        raise
