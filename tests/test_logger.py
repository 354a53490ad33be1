# Copyright (c) 2025 CoReason, Inc.
#
# This software is proprietary and dual-licensed.
# Licensed under the Prosperity Public License 3.0 (the "License").
# A copy of the license is available at https://prosperitylicense.com/versions/3.0.0
# For details, see the LICENSE file.
# Commercial use beyond a 30-day trial requires a separate license.
#
# Source Code: https://github.com/CoReason-AI/coreason_exec

import sys
from pathlib import Path
from typing import Generator

import pytest

from coreason_exec.utils.logger import configure_logging, logger


@pytest.fixture(autouse=True)
def restore_logger() -> Generator[None, None, None]:
    yield
    logger.remove()
    logger.add(sys.stderr)


def test_stderr_sink_only_by_default(capsys: pytest.CaptureFixture[str]) -> None:
    """
    Verify that without a log directory only the stderr sink is configured.
    """
    configure_logging()

    # Accessing internal attributes like this is for testing purposes.
    assert len(logger._core.handlers) == 1  # type: ignore[attr-defined]

    logger.info("stderr only")
    assert "stderr only" in capsys.readouterr().err


def test_level_filters_messages(capsys: pytest.CaptureFixture[str]) -> None:
    configure_logging(level="warning")

    logger.info("quiet")
    logger.warning("loud")

    err = capsys.readouterr().err
    assert "quiet" not in err
    assert "loud" in err


def test_file_sink_writes_json(tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
    """
    Verify the JSON file sink is created under the log directory.
    """
    # GIVEN a log directory that does not exist yet
    log_dir = tmp_path / "logs"

    # WHEN logging is configured and a message is logged
    configure_logging(log_dir=log_dir)
    assert len(logger._core.handlers) == 2  # type: ignore[attr-defined]
    test_message = "This is a test message."
    logger.info(test_message)

    # THEN it appears on stderr
    assert test_message in capsys.readouterr().err

    # AND in the log file, once the enqueued sink has been flushed
    logger.remove()
    log_content = (log_dir / "app.log").read_text()
    assert '"message": "' + test_message + '"' in log_content
