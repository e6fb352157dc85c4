"""Utility modules for prime360."""

from prime360.utils.logs import setup_logger
from prime360.utils.run_manager import RunManager, Run, RunMetadata

__all__ = [
    "setup_logger",
    "RunManager",
    "Run",
    "RunMetadata",
]
