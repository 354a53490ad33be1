# Copyright (c) 2025 CoReason, Inc.
#
# This software is proprietary and dual-licensed.
# Licensed under the Prosperity Public License 3.0 (the "License").
# A copy of the license is available at https://prosperitylicense.com/versions/3.0.0
# For details, see the LICENSE file.
# Commercial use beyond a 30-day trial requires a separate license.
#
# Source Code: https://github.com/CoReason-AI/coreason_exec

"""Builds execution requests for script files run through an interpreter."""

from enum import Enum
from pathlib import Path
from typing import Mapping, Sequence

from coreason_exec.models import ExecutionRequest


class ScriptLanguage(Enum):
    """Supported script languages and their file extensions."""

    PYTHON = frozenset({"py"})
    BASH = frozenset({"sh", "bash"})
    JAVASCRIPT = frozenset({"js", "mjs"})
    KOTLIN_SCRIPT = frozenset({"kts"})

    @property
    def extensions(self) -> frozenset[str]:
        return self.value

    @classmethod
    def from_file_name(cls, file_name: str) -> "ScriptLanguage | None":
        """Detect the language from a file name, or None if unrecognised."""
        _, dot, extension = file_name.rpartition(".")
        if not dot:
            return None
        extension = extension.lower()
        for language in cls:
            if extension in language.extensions:
                return language
        return None


DEFAULT_INTERPRETERS: Mapping[ScriptLanguage, Sequence[str]] = {
    ScriptLanguage.PYTHON: ("python3",),
    ScriptLanguage.BASH: ("bash",),
    ScriptLanguage.JAVASCRIPT: ("node",),
    ScriptLanguage.KOTLIN_SCRIPT: ("kotlin",),
}


def script_request(
    script_path: Path,
    args: Sequence[str] = (),
    *,
    timeout: float,
    stdin: str | None = None,
    input_files: Sequence[Path] = (),
    environment: Mapping[str, str] | None = None,
    interpreters: Mapping[ScriptLanguage, Sequence[str]] = DEFAULT_INTERPRETERS,
) -> ExecutionRequest:
    """Build a request that runs ``script_path`` with the interpreter for its language.

    The command is the interpreter, the absolute script path, then ``args``. It
    runs in the script's own directory.

    Raises:
        ValueError: If the extension is unknown or the language has no interpreter.
    """
    language = ScriptLanguage.from_file_name(script_path.name)
    if language is None:
        raise ValueError(f"Unrecognised script language: {script_path.name}")
    interpreter = interpreters.get(language)
    if not interpreter:
        raise ValueError(f"No interpreter configured for {language.name}")

    resolved = script_path.resolve()
    return ExecutionRequest(
        command=[*interpreter, str(resolved), *args],
        working_directory=resolved.parent,
        environment=dict(environment or {}),
        stdin=stdin,
        input_files=list(input_files),
        timeout=timeout,
    )
