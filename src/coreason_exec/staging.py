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
from types import TracebackType
from typing import Iterable

from loguru import logger


class StagingArea:
    """Private input/output directories for a single invocation.

    Used as a context manager; the whole tree is removed on exit whatever
    happened inside the block.

    Example:
        with StagingArea(prefix="exec-") as staging:
            staging.stage_inputs(request.input_files)
            ...  # run with INPUT_DIR=staging.input_dir, OUTPUT_DIR=staging.output_dir
    """

    def __init__(self, prefix: str = "sandbox-exec-"):
        self.prefix = prefix
        self.base_dir: Path | None = None

    @property
    def input_dir(self) -> Path:
        if self.base_dir is None:
            raise RuntimeError("Staging area is not open")
        return self.base_dir / "input"

    @property
    def output_dir(self) -> Path:
        if self.base_dir is None:
            raise RuntimeError("Staging area is not open")
        return self.base_dir / "output"

    def __enter__(self) -> "StagingArea":
        self.base_dir = Path(tempfile.mkdtemp(prefix=self.prefix))
        try:
            self.input_dir.mkdir()
            self.output_dir.mkdir()
        except OSError:
            self.cleanup()
            raise
        logger.debug(f"Created staging area {self.base_dir}")
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: TracebackType | None,
    ) -> None:
        self.cleanup()

    def stage_inputs(self, input_files: Iterable[Path]) -> None:
        """Copy input files into the input directory under their own names.

        Raises:
            FileExistsError: If two input files share a file name.
        """
        for input_file in input_files:
            target = self.input_dir / input_file.name
            if target.exists():
                raise FileExistsError(f"Duplicate input file name: {input_file.name}")
            shutil.copyfile(input_file, target)
            logger.debug(f"Copied input file {input_file} to {target}")

    def cleanup(self) -> None:
        """Remove the staging tree. Failures are logged, never raised."""
        if self.base_dir is None:
            return
        try:
            shutil.rmtree(self.base_dir)
        except FileNotFoundError:
            pass
        except OSError as e:
            logger.warning(f"Failed to clean up staging directory {self.base_dir}: {e}")
        finally:
            self.base_dir = None
