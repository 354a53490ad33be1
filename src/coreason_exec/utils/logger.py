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

from loguru import logger

LOG_FORMAT = (
    "<green>{time:YYYY-MM-DD HH:mm:ss.SSS}</green> | <level>{level: <8}</level> | "
    "<cyan>{name}</cyan>:<cyan>{function}</cyan>:<cyan>{line}</cyan> - <level>{message}</level>"
)


def configure_logging(level: str = "INFO", log_dir: Path | None = None) -> None:
    """Replace loguru's sinks with the engine's defaults.

    Adds a coloured stderr sink and, when ``log_dir`` is given, a rotating JSON
    file sink at ``<log_dir>/app.log``. Libraries embedding the engine can skip
    this entirely and configure loguru themselves.

    Args:
        level: Minimum level for both sinks.
        log_dir: Directory for the JSON log file; created if missing.
    """
    logger.remove()
    logger.add(sys.stderr, level=level.upper(), format=LOG_FORMAT)

    if log_dir is not None:
        log_dir.mkdir(parents=True, exist_ok=True)
        logger.add(
            log_dir / "app.log",
            level=level.upper(),
            rotation="10 MB",
            retention="7 days",
            serialize=True,
            enqueue=True,
        )


__all__ = ["configure_logging", "logger"]
