# Copyright (c) 2025 CoReason, Inc.
#
# This software is proprietary and dual-licensed.
# Licensed under the Prosperity Public License 3.0 (the "License").
# A copy of the license is available at https://prosperitylicense.com/versions/3.0.0
# For details, see the LICENSE file.
# Commercial use beyond a 30-day trial requires a separate license.
#
# Source Code: https://github.com/CoReason-AI/coreason_exec

"""Request, result and artifact models shared by every executor."""

from pathlib import Path
from typing import Annotated, Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator

DEFAULT_MIME_TYPE = "application/octet-stream"

_MIME_TYPES: dict[str, str] = {
    "pdf": "application/pdf",
    "json": "application/json",
    "xml": "application/xml",
    "html": "text/html",
    "htm": "text/html",
    "txt": "text/plain",
    "md": "text/markdown",
    "csv": "text/csv",
    "png": "image/png",
    "jpg": "image/jpeg",
    "jpeg": "image/jpeg",
    "gif": "image/gif",
    "svg": "image/svg+xml",
    "zip": "application/zip",
    "tar": "application/x-tar",
    "gz": "application/gzip",
    "py": "text/x-python",
    "js": "text/javascript",
    "kt": "text/x-kotlin",
    "kts": "text/x-kotlin",
    "java": "text/x-java",
    "sh": "text/x-shellscript",
}


def infer_mime_type(file_name: str) -> str:
    """Infer a MIME type from a file name extension.

    Args:
        file_name: The file name (a path is accepted, only the suffix matters).

    Returns:
        str: The content type from the known-extension table, or
        ``application/octet-stream`` for anything else.
    """
    _, dot, extension = file_name.rpartition(".")
    if not dot:
        return DEFAULT_MIME_TYPE
    return _MIME_TYPES.get(extension.lower(), DEFAULT_MIME_TYPE)


class ExecutionRequest(BaseModel):
    """A request to run one command in a sandbox.

    Attributes:
        command: The executable followed by its arguments.
        working_directory: Directory the command runs in. Inherited when omitted.
        environment: Extra environment variables for the command.
        stdin: Text written to the command's standard input, encoded as UTF-8.
            When omitted the input stream is closed immediately so readers see EOF.
        input_files: Host files copied into ``INPUT_DIR`` before the command starts.
        timeout: Wall-clock limit in seconds. The command is killed when it is exceeded.
        capture_output: Whether stdout/stderr are kept in the result.
    """

    model_config = ConfigDict(frozen=True)

    command: list[str] = Field(..., min_length=1)
    working_directory: Path | None = None
    environment: dict[str, str] = Field(default_factory=dict)
    stdin: str | None = None
    input_files: list[Path] = Field(default_factory=list)
    timeout: float = Field(..., gt=0)
    capture_output: bool = True

    @field_validator("stdin")
    @classmethod
    def stdin_must_be_utf8(cls, value: str | None) -> str | None:
        if value is not None:
            try:
                value.encode("utf-8")
            except UnicodeEncodeError as e:
                raise ValueError(f"stdin is not encodable as UTF-8: {e.reason} at position {e.start}") from e
        return value


class ExecutionArtifact(BaseModel):
    """A file the command left in ``OUTPUT_DIR``.

    Attributes:
        name: The file name only.
        path: Location of the durable copy, outside any staging directory.
        mime_type: Content type inferred from the extension.
        size_bytes: Size of the file in bytes.
    """

    model_config = ConfigDict(frozen=True)

    name: str
    path: Path
    mime_type: str | None = None
    size_bytes: int


class Completed(BaseModel):
    """The command ran to completion, whatever its exit code."""

    model_config = ConfigDict(frozen=True)

    kind: Literal["completed"] = "completed"
    exit_code: int
    stdout: str
    stderr: str
    duration: float
    artifacts: list[ExecutionArtifact] = Field(default_factory=list)

    @property
    def success(self) -> bool:
        """Whether the process exited with code 0."""
        return self.exit_code == 0


class TimedOut(BaseModel):
    """The time limit was reached before a result was available.

    ``terminated`` is True when the executor killed the process. It is False
    when only a caller's wait gave up (see ``AsyncExecution.wait``), in which
    case the command may still be running.
    """

    model_config = ConfigDict(frozen=True)

    kind: Literal["timed_out"] = "timed_out"
    partial_stderr: str | None = None
    duration: float
    terminated: bool = True


class Failed(BaseModel):
    """The command could not be started or an internal error occurred."""

    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    kind: Literal["failed"] = "failed"
    error: str
    cause: BaseException | None = Field(default=None, exclude=True)


class Denied(BaseModel):
    """Execution was refused before any process was spawned."""

    model_config = ConfigDict(frozen=True)

    kind: Literal["denied"] = "denied"
    reason: str


ExecutionResult = Annotated[Completed | TimedOut | Failed | Denied, Field(discriminator="kind")]
