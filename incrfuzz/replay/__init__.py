"""
Differential replay of a commit range.

Replay builds and tests every commit normally and incrementally and aborts
on the first discrepancy.
"""

from .orchestrator import STAGES, ReplayOptions, ReplayOrchestrator, Stage, replay
from .summary import ReplaySummary, format_optional
from .workdirs import WorkDirs, recreate_dir
from .manifest import disable_debuginfo

__all__ = [
    "STAGES",
    "ReplayOptions",
    "ReplayOrchestrator",
    "Stage",
    "replay",
    "ReplaySummary",
    "format_optional",
    "WorkDirs",
    "recreate_dir",
    "disable_debuginfo",
]
