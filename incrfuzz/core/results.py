"""
Result model for build and test invocations.

BuildResult and TestResult compare on their parsed content only; the raw
process output travels along as evidence but never takes part in equality.
"""

from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import List, Optional


@dataclass(frozen=True)
class ProcessOutput:
    """
    Raw outcome of one child process.

    Fields:
        returncode: Exit code (negative for a signal, as reported by subprocess)
        stdout: Captured standard output bytes
        stderr: Captured standard error bytes
    """
    returncode: int
    stdout: bytes = b""
    stderr: bytes = b""

    @property
    def success(self) -> bool:
        return self.returncode == 0

    @property
    def status_line(self) -> str:
        if self.returncode < 0:
            return f"signal: {-self.returncode}"
        return f"exit code: {self.returncode}"

    def combined_bytes(self) -> bytes:
        return self.stdout + self.stderr


@dataclass(frozen=True)
class Message:
    """A compiler diagnostic: kind is "warning" or "error"."""
    kind: str
    message: str
    location: str


@dataclass(frozen=True, order=True)
class TestCaseResult:
    __test__ = False

    test_name: str
    status: str


@dataclass(frozen=True)
class BuildResult:
    success: bool
    messages: List[Message] = field(default_factory=list)
    raw_output: Optional[ProcessOutput] = field(default=None, compare=False)


@dataclass(frozen=True)
class TestResult:
    """Test outcomes; results are kept sorted by test name."""
    __test__ = False

    success: bool
    results: List[TestCaseResult] = field(default_factory=list)
    raw_output: Optional[ProcessOutput] = field(default=None, compare=False)

    @property
    def passed(self) -> int:
        return sum(1 for r in self.results if r.status == "ok")


@dataclass
class CompilationStats:
    """
    Cumulative statistics for one build mode over a whole run.

    Fields:
        build_time: Total reported build time, in seconds
        modules_reused: Modules the compiler reported as reused
        modules_total: Modules the compiler considered
    """
    build_time: float = 0.0
    modules_reused: int = 0
    modules_total: int = 0

    def reuse_percent(self) -> Optional[float]:
        """Percentage of reused modules, or None when no module was reported."""
        if self.modules_total == 0:
            return None
        return self.modules_reused / self.modules_total * 100.0


class BuildMode(str, Enum):
    NORMAL = "normal"
    INCREMENTAL = "incremental"
    INCREMENTAL_FROM_SCRATCH = "incremental-from-scratch"

    @property
    def is_incremental(self) -> bool:
        return self is not BuildMode.NORMAL


class CacheScope(str, Enum):
    """Which crates compile against the incremental cache."""
    ALL_DEPS = "all-deps"
    CURRENT_PROJECT = "current-project"


@dataclass(frozen=True)
class BuildInvocationConfig:
    """
    How to invoke the build tool for one stage.

    Fields:
        mode: Normal or one of the incremental modes
        target_dir: Isolated output directory (CARGO_TARGET_DIR)
        cache_dir: Incremental cache directory (required for incremental modes)
        scope: Which crates use the cache
    """
    mode: BuildMode
    target_dir: Path
    cache_dir: Optional[Path] = None
    scope: CacheScope = CacheScope.ALL_DEPS

    def __post_init__(self):
        if self.mode.is_incremental and self.cache_dir is None:
            raise ValueError(f"{self.mode.value} build requires a cache directory")
