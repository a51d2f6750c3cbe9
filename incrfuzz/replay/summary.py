"""
Run-wide replay statistics.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, Optional

from ..core.results import CompilationStats


@dataclass
class ReplaySummary:
    """
    Aggregated outcome of a replay run.

    Fields:
        commits: Number of commits replayed
        normal: Stats of every normal build
        incremental: Stats of every primary incremental build
        tests_total: Test cases run in normal mode, over all commits
        tests_passed: Of those, how many reported "ok"

    Ratios with a zero denominator are reported as None ("n/a").
    """
    commits: int = 0
    normal: CompilationStats = field(default_factory=CompilationStats)
    incremental: CompilationStats = field(default_factory=CompilationStats)
    tests_total: int = 0
    tests_passed: int = 0

    def ratio(self) -> Optional[float]:
        """Normal build time divided by incremental build time."""
        if self.incremental.build_time == 0:
            return None
        return self.normal.build_time / self.incremental.build_time

    def reuse_percent(self) -> Optional[float]:
        return self.incremental.reuse_percent()

    def to_dict(self) -> Dict[str, Any]:
        return {
            "commits": self.commits,
            "normal_build_time": self.normal.build_time,
            "incremental_build_time": self.incremental.build_time,
            "ratio": self.ratio(),
            "tests_total": self.tests_total,
            "tests_passed": self.tests_passed,
            "modules_reused": self.incremental.modules_reused,
            "modules_total": self.incremental.modules_total,
            "reuse_percent": self.reuse_percent(),
        }


def format_optional(value: Optional[float], fmt: str = "{:.2f}") -> str:
    return "n/a" if value is None else fmt.format(value)
