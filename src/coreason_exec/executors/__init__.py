"""
Concrete executor backends.
"""

from .base import INPUT_DIR_VAR, OUTPUT_DIR_VAR, StagedExecutor
from .docker import DockerExecutor, Mount
from .process import ProcessExecutor

__all__ = [
    "DockerExecutor",
    "INPUT_DIR_VAR",
    "Mount",
    "OUTPUT_DIR_VAR",
    "ProcessExecutor",
    "StagedExecutor",
]
